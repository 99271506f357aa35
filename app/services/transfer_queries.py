"""Read side for transfer history, notifications and downloads.

List reads degrade to an empty result when the store fails so views built
on top of them never crash on a read error.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session, joinedload

from app.models.file_transfer import FileTransfer, TransferNotification
from app.services.caller_session import CallerSession
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)


class TransferNotFoundError(LookupError):
    """No persisted transfer matches the lookup."""


class DownloadUnavailableError(Exception):
    """The transfer exists but has no storage location recorded."""


@dataclass(frozen=True)
class DownloadLocation:
    transfer_id: uuid.UUID
    url: str
    file_name: str


def _newest_first(query):
    return query.order_by(FileTransfer.created_at.desc(), FileTransfer.id.desc())


def _parse_id(value) -> uuid.UUID | None:
    try:
        return coerce_uuid(value)
    except (TypeError, ValueError):
        return None


class TransferQueries:
    @staticmethod
    def get_sent_transfers(db: Session, session: CallerSession) -> list[FileTransfer]:
        try:
            query = (
                db.query(FileTransfer)
                .options(joinedload(FileTransfer.sender))
                .filter(FileTransfer.sender_id == session.principal_id)
            )
            return _newest_first(query).all()
        except Exception:
            logger.exception("sent_transfers_read_failed sender=%s", session.principal_id)
            db.rollback()
            return []

    @staticmethod
    def get_received_transfers(db: Session, recipient_email: str) -> list[FileTransfer]:
        try:
            query = (
                db.query(FileTransfer)
                .options(joinedload(FileTransfer.sender))
                .filter(FileTransfer.recipient_email == recipient_email)
            )
            return _newest_first(query).all()
        except Exception:
            logger.exception("received_transfers_read_failed recipient=%s", recipient_email)
            db.rollback()
            return []

    @staticmethod
    def get_unread_notifications(
        db: Session, recipient_email: str
    ) -> list[TransferNotification]:
        try:
            return (
                db.query(TransferNotification)
                .options(
                    joinedload(TransferNotification.transfer).joinedload(FileTransfer.sender)
                )
                .filter(TransferNotification.recipient_email == recipient_email)
                .filter(TransferNotification.is_read.is_(False))
                .order_by(
                    TransferNotification.created_at.desc(), TransferNotification.id.desc()
                )
                .all()
            )
        except Exception:
            logger.exception("notifications_read_failed recipient=%s", recipient_email)
            db.rollback()
            return []

    @staticmethod
    def mark_notification_read(db: Session, notification_id) -> None:
        notification_uuid = _parse_id(notification_id)
        if notification_uuid is None:
            logger.warning("notification_mark_read_invalid_id id=%s", notification_id)
            return
        try:
            notification = db.get(TransferNotification, notification_uuid)
            if notification is None or notification.is_read:
                return
            notification.is_read = True
            db.commit()
        except Exception:
            logger.exception("notification_mark_read_failed id=%s", notification_id)
            db.rollback()

    @staticmethod
    def resolve_download_location(db: Session, transfer_id) -> DownloadLocation:
        transfer_uuid = _parse_id(transfer_id)
        transfer = db.get(FileTransfer, transfer_uuid) if transfer_uuid else None
        if transfer is None:
            raise TransferNotFoundError("Transfer not found")
        if not transfer.file_url:
            logger.warning("transfer_download_unavailable transfer_id=%s", transfer.id)
            raise DownloadUnavailableError("File URL not available")
        return DownloadLocation(
            transfer_id=transfer.id, url=transfer.file_url, file_name=transfer.file_name
        )

    @staticmethod
    def get_transfer_by_code(db: Session, transfer_code: str) -> FileTransfer:
        transfer = (
            db.query(FileTransfer)
            .options(joinedload(FileTransfer.sender))
            .filter(FileTransfer.transfer_code == transfer_code.strip().upper())
            .first()
        )
        if transfer is None:
            raise TransferNotFoundError("Transfer not found")
        return transfer


transfer_queries = TransferQueries()
