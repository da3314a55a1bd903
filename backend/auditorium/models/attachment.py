"""
Proof-of-payment upload, stored as an opaque blob keyed by a random id.
"""

import uuid

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String, func

from auditorium.db.base import Base


def new_attachment_id() -> str:
    return uuid.uuid4().hex


class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(String(32), primary_key=True, default=new_attachment_id)
    filename = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    data = Column(LargeBinary, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self) -> str:
        return f"<Attachment(id={self.id}, filename={self.filename}, size={self.size})>"
