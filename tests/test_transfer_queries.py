from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.models.file_transfer import FileTransfer, TransferNotification, TransferStatus
from app.models.profile import Profile
from app.services.transfer_queries import (
    DownloadUnavailableError,
    TransferNotFoundError,
    transfer_queries,
)

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _transfer(sender, recipient_email="bob@example.com", minutes=0, **overrides):
    values = dict(
        sender_id=sender.id,
        recipient_email=recipient_email,
        file_name=f"file-{minutes}.txt",
        file_size=10,
        file_type="text/plain",
        file_url=f"https://files.example.com/file-transfers/{sender.id}/{minutes}.txt",
        status=TransferStatus.completed,
        progress=100,
        completed_at=BASE_TIME + timedelta(minutes=minutes),
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )
    values.update(overrides)
    return FileTransfer(**values)


def test_sent_transfers_newest_first_with_sender(db_session, sender, caller):
    other = Profile(email="other@example.com", name="Other")
    db_session.add(other)
    db_session.commit()
    db_session.add_all(
        [
            _transfer(sender, minutes=5),
            _transfer(sender, minutes=30),
            _transfer(sender, minutes=10),
            _transfer(other, minutes=60),
        ]
    )
    db_session.commit()

    items = transfer_queries.get_sent_transfers(db_session, caller)

    assert [item.file_name for item in items] == ["file-30.txt", "file-10.txt", "file-5.txt"]
    assert all(item.sender.email == sender.email for item in items)
    stamps = [item.created_at for item in items]
    assert all(a > b for a, b in zip(stamps, stamps[1:]))


def test_sent_transfers_degrade_to_empty_on_read_error(db_session, caller, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(db_session, "query", _boom)

    assert transfer_queries.get_sent_transfers(db_session, caller) == []


def test_received_transfers_match_email_exactly(db_session, sender):
    db_session.add_all(
        [
            _transfer(sender, "bob@example.com", minutes=1),
            _transfer(sender, "bob@example.com", minutes=2),
            _transfer(sender, "Bob@example.com", minutes=3),
            _transfer(sender, "alice@example.com", minutes=4),
        ]
    )
    db_session.commit()

    items = transfer_queries.get_received_transfers(db_session, "bob@example.com")

    assert [item.file_name for item in items] == ["file-2.txt", "file-1.txt"]


def test_received_transfers_degrade_to_empty_on_read_error(db_session, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(db_session, "query", _boom)

    assert transfer_queries.get_received_transfers(db_session, "bob@example.com") == []


def test_received_transfer_resolves_recipient_profile_when_registered(db_session, sender):
    bob = Profile(email="bob@example.com", name="Bob")
    db_session.add(bob)
    db_session.add(_transfer(sender, "bob@example.com", minutes=1))
    db_session.add(_transfer(sender, "nobody@example.com", minutes=2))
    db_session.commit()

    registered = transfer_queries.get_received_transfers(db_session, "bob@example.com")
    unregistered = transfer_queries.get_received_transfers(db_session, "nobody@example.com")

    assert registered[0].recipient.id == bob.id
    assert unregistered[0].recipient is None


def test_unread_notifications_joined_and_filtered(db_session, sender):
    first = _transfer(sender, minutes=1)
    second = _transfer(sender, minutes=2)
    db_session.add_all([first, second])
    db_session.commit()
    db_session.add_all(
        [
            TransferNotification(
                transfer_id=first.id,
                recipient_email="bob@example.com",
                message="old",
                created_at=BASE_TIME,
            ),
            TransferNotification(
                transfer_id=second.id,
                recipient_email="bob@example.com",
                message="new",
                created_at=BASE_TIME + timedelta(minutes=2),
            ),
            TransferNotification(
                transfer_id=second.id,
                recipient_email="bob@example.com",
                message="seen",
                is_read=True,
                created_at=BASE_TIME + timedelta(minutes=3),
            ),
            TransferNotification(
                transfer_id=second.id,
                recipient_email="alice@example.com",
                message="not bob",
                created_at=BASE_TIME + timedelta(minutes=4),
            ),
        ]
    )
    db_session.commit()

    items = transfer_queries.get_unread_notifications(db_session, "bob@example.com")

    assert [item.message for item in items] == ["new", "old"]
    assert items[0].transfer.id == second.id
    assert items[0].transfer.sender.email == sender.email


def test_mark_notification_read_is_idempotent(db_session, sender):
    transfer = _transfer(sender)
    db_session.add(transfer)
    db_session.commit()
    notification = TransferNotification(
        transfer_id=transfer.id, recipient_email="bob@example.com", message="hi"
    )
    db_session.add(notification)
    db_session.commit()

    transfer_queries.mark_notification_read(db_session, str(notification.id))
    transfer_queries.mark_notification_read(db_session, notification.id)

    db_session.refresh(notification)
    assert notification.is_read is True
    assert transfer_queries.get_unread_notifications(db_session, "bob@example.com") == []


def test_mark_notification_read_ignores_unknown_and_malformed_ids(db_session):
    transfer_queries.mark_notification_read(db_session, uuid.uuid4())
    transfer_queries.mark_notification_read(db_session, "not-a-uuid")


def test_mark_notification_read_swallows_store_errors(db_session, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(db_session, "get", _boom)

    transfer_queries.mark_notification_read(db_session, uuid.uuid4())


def test_resolve_download_location(db_session, sender):
    transfer = _transfer(sender, file_name="report.pdf")
    db_session.add(transfer)
    db_session.commit()

    location = transfer_queries.resolve_download_location(db_session, str(transfer.id))

    assert location.url == transfer.file_url
    assert location.file_name == "report.pdf"
    assert location.transfer_id == transfer.id


def test_resolve_download_location_not_found(db_session):
    with pytest.raises(TransferNotFoundError):
        transfer_queries.resolve_download_location(db_session, uuid.uuid4())
    with pytest.raises(TransferNotFoundError):
        transfer_queries.resolve_download_location(db_session, "garbage")


def test_resolve_download_location_unavailable_without_url(db_session, sender):
    legacy = _transfer(sender, file_url=None, status=TransferStatus.failed, completed_at=None)
    db_session.add(legacy)
    db_session.commit()

    with pytest.raises(DownloadUnavailableError):
        transfer_queries.resolve_download_location(db_session, legacy.id)


def test_get_transfer_by_code(db_session, sender):
    transfer = _transfer(sender, transfer_code="ABC234XY")
    db_session.add(transfer)
    db_session.commit()

    found = transfer_queries.get_transfer_by_code(db_session, " abc234xy ")

    assert found.id == transfer.id
    with pytest.raises(TransferNotFoundError):
        transfer_queries.get_transfer_by_code(db_session, "MISSING1")
