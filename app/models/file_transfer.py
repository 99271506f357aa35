"""File transfer and recipient notification records."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class TransferStatus(enum.Enum):
    pending = "pending"
    uploading = "uploading"
    transferring = "transferring"
    completed = "completed"
    failed = "failed"


class FileTransfer(Base):
    """One file handoff from a sender to a recipient email."""

    __tablename__ = "file_transfers"
    __table_args__ = (
        Index("ix_file_transfers_sender_created", "sender_id", "created_at"),
        Index("ix_file_transfers_recipient_created", "recipient_email", "created_at"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_file_transfers_progress"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("profiles.id"), nullable=False
    )
    # Not a foreign key: the recipient may not have an account yet.
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    file_type: Mapped[str | None] = mapped_column(String(255))
    file_url: Mapped[str | None] = mapped_column(String(2048))
    storage_key: Mapped[str | None] = mapped_column(String(1024))
    status: Mapped[TransferStatus] = mapped_column(
        Enum(TransferStatus), default=TransferStatus.pending, nullable=False
    )
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    transfer_code: Mapped[str | None] = mapped_column(String(32), unique=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    sender = relationship("Profile", back_populates="sent_transfers", lazy="joined")
    recipient = relationship(
        "Profile",
        primaryjoin="foreign(FileTransfer.recipient_email) == Profile.email",
        viewonly=True,
        uselist=False,
    )
    notifications = relationship("TransferNotification", back_populates="transfer")


class TransferNotification(Base):
    __tablename__ = "transfer_notifications"
    __table_args__ = (
        Index("ix_transfer_notifications_recipient_unread", "recipient_email", "is_read"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    transfer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("file_transfers.id"), nullable=False
    )
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    transfer = relationship("FileTransfer", back_populates="notifications")
