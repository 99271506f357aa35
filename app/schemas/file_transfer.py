from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.file_transfer import TransferStatus


class ProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str | None = None


class FileTransferRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    recipient_email: str
    file_name: str
    file_size: int
    file_type: str | None = None
    file_url: str | None = None
    status: TransferStatus
    progress: int
    transfer_code: str | None = None
    expires_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    sender: ProfileRead | None = None
    recipient: ProfileRead | None = None


class TransferNotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    transfer_id: UUID
    recipient_email: str
    message: str
    is_read: bool
    created_at: datetime
    transfer: FileTransferRead | None = None


class TransferResultRead(BaseModel):
    success: bool
    transfer: FileTransferRead | None = None
    error: str | None = None


class DownloadLocationRead(BaseModel):
    url: str
    file_name: str
