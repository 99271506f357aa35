"""Transfer orchestration: upload, record, compensate, notify.

The blob is always uploaded before the record is inserted, so a persisted
``completed`` transfer can never point at a missing object. When the insert
fails the uploaded object is removed by a fire-and-forget cleanup task.
Notification delivery is best-effort and never changes the outcome.
"""

from __future__ import annotations

import enum
import logging
import re
import secrets
import string
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, BinaryIO

from sqlalchemy.orm import Session, joinedload

from app.config import settings
from app.models.file_transfer import FileTransfer, TransferNotification, TransferStatus
from app.services.caller_session import CallerSession
from app.services.object_storage import ObjectStorageError, get_s3_storage
from app.services.transfer_status import advance, advance_progress

logger = logging.getLogger(__name__)

UNSAFE_KEY_CHARS_RE = re.compile(r"[/\\\x00-\x1f\x7f]+")
TRANSFER_CODE_ALPHABET = "".join(
    ch for ch in string.ascii_uppercase + string.digits if ch not in "0O1IL"
)

NOTIFICATION_EFFECT = "notification"
CLEANUP_EFFECT = "compensating_delete"


class TransferFailure(enum.Enum):
    unauthenticated = "Unauthenticated"
    upload_failed = "UploadFailed"
    record_failed = "RecordFailed"
    unknown = "Unknown"


@dataclass(frozen=True)
class SideEffectOutcome:
    """Observed result of a best-effort action attached to a transfer."""

    name: str
    dispatched: bool
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.dispatched and self.error is None


@dataclass
class ProvisionalTransfer:
    """In-memory record created the moment a send starts; never persisted."""

    recipient_email: str
    file_name: str
    file_size: int
    file_type: str | None
    id: str = field(default_factory=lambda: f"local-{uuid.uuid4().hex}")
    status: TransferStatus = TransferStatus.pending
    progress: int = 0


@dataclass
class TransferResult:
    """Primary outcome of a send plus the outcomes of its side effects."""

    success: bool
    transfer: FileTransfer | None = None
    failure: TransferFailure | None = None
    reason: str | None = None
    storage_key: str | None = None
    provisional: ProvisionalTransfer | None = None
    side_effects: list[SideEffectOutcome] = field(default_factory=list)

    @property
    def status(self) -> TransferStatus:
        return TransferStatus.completed if self.success else TransferStatus.failed

    @property
    def error(self) -> str | None:
        if self.failure is None:
            return None
        return f"{self.failure.value}: {self.reason}"

    def side_effect(self, name: str) -> SideEffectOutcome | None:
        for outcome in self.side_effects:
            if outcome.name == name:
                return outcome
        return None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.transfer is not None:
            payload["transfer"] = self.transfer
        if self.error is not None:
            payload["error"] = self.error
        return payload


class StorageKeyClock:
    """Strictly increasing millisecond stamps for storage keys."""

    def __init__(self, now: Callable[[], float] = time.time) -> None:
        self._now = now
        self._last = 0
        self._lock = threading.Lock()

    def next_millis(self) -> int:
        with self._lock:
            millis = int(self._now() * 1000)
            if millis <= self._last:
                millis = self._last + 1
            self._last = millis
            return millis


def _key_segment(file_name: str) -> str:
    cleaned = UNSAFE_KEY_CHARS_RE.sub("_", file_name).strip()
    return cleaned[:200] or "file"


def _read_bytes(data: bytes | BinaryIO) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    return data.read()


def _enqueue_object_cleanup(storage_key: str) -> None:
    from app.tasks.transfers import delete_orphaned_object

    delete_orphaned_object.delay(storage_key)


def generate_transfer_code(length: int | None = None) -> str:
    size = length or settings.transfer_code_length
    return "".join(secrets.choice(TRANSFER_CODE_ALPHABET) for _ in range(size))


def _move(
    provisional: ProvisionalTransfer, target: TransferStatus, progress: int | None = None
) -> None:
    provisional.status = advance(provisional.status, target)
    if progress is not None:
        provisional.progress = advance_progress(
            provisional.status, provisional.progress, progress
        )


_default_clock = StorageKeyClock()


@dataclass(frozen=True)
class _NotificationDraft:
    """Values captured before commit so notifying never reloads the transfer."""

    transfer_id: uuid.UUID
    recipient_email: str
    message: str


class FileTransfers:
    """Coordinates object storage and the transfer tables for one send."""

    def __init__(
        self,
        storage=None,
        cleanup: Callable[[str], None] | None = None,
        clock: StorageKeyClock | None = None,
    ) -> None:
        self.storage = storage
        self.cleanup = cleanup or _enqueue_object_cleanup
        self.clock = clock or _default_clock

    def _storage_client(self):
        if self.storage is None:
            self.storage = get_s3_storage()
        return self.storage

    def build_storage_key(self, principal_id: uuid.UUID | str, file_name: str) -> str:
        key = f"{principal_id}/{self.clock.next_millis()}_{_key_segment(file_name)}"
        prefix = settings.transfer_key_prefix.strip("/")
        return f"{prefix}/{key}" if prefix else key

    def initiate_transfer(
        self,
        db: Session,
        session: CallerSession | None,
        recipient_email: str,
        file_name: str,
        file_size: int,
        file_type: str | None,
        data: bytes | BinaryIO,
    ) -> TransferResult:
        provisional = ProvisionalTransfer(
            recipient_email=recipient_email,
            file_name=file_name,
            file_size=file_size,
            file_type=file_type,
        )
        if session is None or not session.principal_id:
            logger.warning("transfer_unauthenticated file=%s", file_name)
            return self._failed(provisional, TransferFailure.unauthenticated, "User not authenticated")

        storage_key: str | None = None
        uploaded = False
        transfer: FileTransfer | None = None
        try:
            storage_key = self.build_storage_key(session.principal_id, file_name)
            _move(provisional, TransferStatus.uploading)
            try:
                self._storage_client().upload(
                    storage_key, _read_bytes(data), file_type, overwrite=False
                )
            except ObjectStorageError as exc:
                logger.warning(
                    "transfer_upload_failed sender=%s key=%s error=%s",
                    session.principal_id,
                    storage_key,
                    exc,
                )
                return self._failed(
                    provisional, TransferFailure.upload_failed, str(exc), storage_key=storage_key
                )
            uploaded = True
            _move(provisional, TransferStatus.transferring)
            file_url = self._storage_client().public_url(storage_key)

            try:
                transfer, draft = self._insert_transfer(
                    db, session, provisional, storage_key, file_url
                )
            except Exception as exc:
                db.rollback()
                reason = str(getattr(exc, "orig", None) or exc)
                logger.error(
                    "transfer_record_failed sender=%s key=%s error=%s",
                    session.principal_id,
                    storage_key,
                    reason,
                )
                return self._failed(
                    provisional,
                    TransferFailure.record_failed,
                    reason,
                    storage_key=storage_key,
                    side_effects=[self._compensate(storage_key)],
                )
            _move(provisional, TransferStatus.completed, progress=100)

            notification = self._notify_recipient(db, draft)
            logger.info(
                "transfer_completed transfer_id=%s sender=%s recipient=%s key=%s",
                draft.transfer_id,
                session.principal_id,
                recipient_email,
                storage_key,
            )
            return self._completed(provisional, transfer, storage_key, notification)
        except Exception as exc:
            logger.exception("transfer_unexpected_error sender=%s", session.principal_id)
            db.rollback()
            if transfer is not None:
                # The record is committed; only the follow-up work failed.
                return self._completed(
                    provisional,
                    transfer,
                    storage_key,
                    SideEffectOutcome(NOTIFICATION_EFFECT, dispatched=False, error=str(exc)),
                )
            side_effects = []
            if uploaded and storage_key:
                side_effects.append(self._compensate(storage_key))
            return self._failed(
                provisional,
                TransferFailure.unknown,
                str(exc) or exc.__class__.__name__,
                storage_key=storage_key,
                side_effects=side_effects,
            )

    def _insert_transfer(
        self,
        db: Session,
        session: CallerSession,
        provisional: ProvisionalTransfer,
        storage_key: str,
        file_url: str,
    ) -> tuple[FileTransfer, _NotificationDraft]:
        now = datetime.now(UTC)
        expires_at = None
        if settings.transfer_expiry_days > 0:
            expires_at = now + timedelta(days=settings.transfer_expiry_days)
        record = FileTransfer(
            sender_id=session.principal_id,
            recipient_email=provisional.recipient_email,
            file_name=provisional.file_name,
            file_size=provisional.file_size,
            file_type=provisional.file_type,
            file_url=file_url,
            storage_key=storage_key,
            status=TransferStatus.completed,
            progress=100,
            completed_at=now,
            transfer_code=generate_transfer_code(),
            expires_at=expires_at,
            created_at=now,
        )
        db.add(record)
        db.flush()
        # Read back with the sender profile joined before committing.
        transfer = (
            db.query(FileTransfer)
            .options(joinedload(FileTransfer.sender))
            .filter(FileTransfer.id == record.id)
            .one()
        )
        sender_label = (transfer.sender.name if transfer.sender else None) or session.email
        draft = _NotificationDraft(
            transfer_id=transfer.id,
            recipient_email=transfer.recipient_email,
            message=f"You received a file: {transfer.file_name} from {sender_label}",
        )
        db.commit()
        return transfer, draft

    def _notify_recipient(self, db: Session, draft: _NotificationDraft) -> SideEffectOutcome:
        try:
            db.add(
                TransferNotification(
                    transfer_id=draft.transfer_id,
                    recipient_email=draft.recipient_email,
                    message=draft.message,
                )
            )
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.warning(
                "transfer_notification_failed transfer_id=%s recipient=%s error=%s",
                draft.transfer_id,
                draft.recipient_email,
                exc,
            )
            return SideEffectOutcome(NOTIFICATION_EFFECT, dispatched=True, error=str(exc))
        return SideEffectOutcome(NOTIFICATION_EFFECT, dispatched=True)

    def _compensate(self, storage_key: str) -> SideEffectOutcome:
        try:
            self.cleanup(storage_key)
        except Exception as exc:
            logger.warning("transfer_cleanup_dispatch_failed key=%s error=%s", storage_key, exc)
            return SideEffectOutcome(CLEANUP_EFFECT, dispatched=False, error=str(exc))
        logger.info("transfer_cleanup_dispatched key=%s", storage_key)
        return SideEffectOutcome(CLEANUP_EFFECT, dispatched=True)

    @staticmethod
    def _completed(
        provisional: ProvisionalTransfer,
        transfer: FileTransfer,
        storage_key: str | None,
        notification: SideEffectOutcome,
    ) -> TransferResult:
        if provisional.status != TransferStatus.completed:
            _move(provisional, TransferStatus.completed, progress=100)
        return TransferResult(
            success=True,
            transfer=transfer,
            storage_key=storage_key,
            provisional=provisional,
            side_effects=[notification],
        )

    @staticmethod
    def _failed(
        provisional: ProvisionalTransfer,
        failure: TransferFailure,
        reason: str,
        storage_key: str | None = None,
        side_effects: list[SideEffectOutcome] | None = None,
    ) -> TransferResult:
        _move(provisional, TransferStatus.failed)
        return TransferResult(
            success=False,
            failure=failure,
            reason=reason,
            storage_key=storage_key,
            provisional=provisional,
            side_effects=side_effects or [],
        )


file_transfers = FileTransfers()
