"""Client-observable transfer status transitions.

``pending -> uploading -> transferring -> completed`` with ``failed``
reachable from every non-terminal state. The orchestrator only ever reports
``completed`` or ``failed``; the intermediate states exist for presentation
layers that interpolate progress while a send is outstanding and carry no
information about bytes actually moved.
"""

from __future__ import annotations

from app.models.file_transfer import TransferStatus

TERMINAL_STATUSES = frozenset({TransferStatus.completed, TransferStatus.failed})

_TRANSITIONS: dict[TransferStatus, frozenset[TransferStatus]] = {
    TransferStatus.pending: frozenset({TransferStatus.uploading, TransferStatus.failed}),
    TransferStatus.uploading: frozenset({TransferStatus.transferring, TransferStatus.failed}),
    TransferStatus.transferring: frozenset({TransferStatus.completed, TransferStatus.failed}),
    TransferStatus.completed: frozenset(),
    TransferStatus.failed: frozenset(),
}


class InvalidStatusTransition(ValueError):
    """Raised when a status change is not allowed."""


def is_terminal(status: TransferStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: TransferStatus, target: TransferStatus) -> bool:
    return target in _TRANSITIONS[current]


def advance(current: TransferStatus, target: TransferStatus) -> TransferStatus:
    if not can_transition(current, target):
        raise InvalidStatusTransition(f"{current.value} -> {target.value}")
    return target


def advance_progress(status: TransferStatus, current: int, value: int) -> int:
    """Clamp to 0..100; progress never moves backwards while in flight."""
    value = max(0, min(100, value))
    if status in {TransferStatus.uploading, TransferStatus.transferring} and value < current:
        return current
    return value
