"""
Blob store for proof-of-payment uploads.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from auditorium.models.attachment import Attachment


class AttachmentRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(self, filename: str, content_type: str, data: bytes) -> Attachment:
        attachment = Attachment(
            filename=filename,
            content_type=content_type,
            size=len(data),
            data=data,
        )
        self.db.add(attachment)
        await self.db.flush()
        return attachment

    async def get(self, attachment_id: str) -> Optional[Attachment]:
        return await self.db.get(Attachment, attachment_id)
