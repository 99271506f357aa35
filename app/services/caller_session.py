"""Explicit caller session passed into the transfer services."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from app.services.common import coerce_uuid


@dataclass(frozen=True)
class CallerSession:
    """Identity of the authenticated principal issuing a call.

    Built from identity provider claims; the services trust it without
    re-validating credentials.
    """

    principal_id: uuid.UUID
    email: str
    name: str | None = None

    @classmethod
    def from_claims(cls, claims: dict) -> CallerSession | None:
        subject = claims.get("sub")
        email = claims.get("email")
        if not subject or not email:
            return None
        try:
            principal_id = coerce_uuid(subject)
        except ValueError:
            return None
        metadata = claims.get("user_metadata")
        name = metadata.get("name") if isinstance(metadata, dict) else claims.get("name")
        return cls(principal_id=principal_id, email=str(email), name=name)
