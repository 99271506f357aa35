"""Send, list and download file transfers."""

from __future__ import annotations

import re

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_session, get_db
from app.config import settings
from app.schemas.file_transfer import (
    DownloadLocationRead,
    FileTransferRead,
    TransferResultRead,
)
from app.services.caller_session import CallerSession
from app.services.file_transfers import TransferFailure, file_transfers
from app.services.transfer_queries import (
    DownloadUnavailableError,
    TransferNotFoundError,
    transfer_queries,
)

router = APIRouter(prefix="/transfers", tags=["transfers"])

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_FAILURE_STATUS = {
    TransferFailure.unauthenticated: status.HTTP_401_UNAUTHORIZED,
    TransferFailure.upload_failed: status.HTTP_502_BAD_GATEWAY,
    TransferFailure.record_failed: status.HTTP_500_INTERNAL_SERVER_ERROR,
    TransferFailure.unknown: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@router.post("", response_model=TransferResultRead, status_code=status.HTTP_201_CREATED)
def create_transfer(
    recipient_email: str = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    session: CallerSession = Depends(get_current_session),
):
    recipient_email = recipient_email.strip()
    if not EMAIL_RE.match(recipient_email):
        raise HTTPException(status_code=400, detail="Please enter a valid email address")
    limit = settings.transfer_max_size_bytes
    if file.size is not None and file.size > limit:
        raise HTTPException(status_code=413, detail="File exceeds maximum allowed size")
    # Read at most one byte past the limit when the declared size is unknown.
    data = file.file.read(limit + 1)
    if len(data) > limit:
        raise HTTPException(status_code=413, detail="File exceeds maximum allowed size")

    result = file_transfers.initiate_transfer(
        db,
        session,
        recipient_email=recipient_email,
        file_name=file.filename or "file",
        file_size=len(data),
        file_type=file.content_type or "application/octet-stream",
        data=data,
    )
    if not result.success:
        raise HTTPException(
            status_code=_FAILURE_STATUS[result.failure],
            detail={"code": result.failure.value, "message": result.error},
        )
    return TransferResultRead(
        success=True, transfer=FileTransferRead.model_validate(result.transfer)
    )


@router.get("/sent", response_model=list[FileTransferRead])
def list_sent_transfers(
    db: Session = Depends(get_db),
    session: CallerSession = Depends(get_current_session),
):
    return transfer_queries.get_sent_transfers(db, session)


@router.get("/received", response_model=list[FileTransferRead])
def list_received_transfers(
    db: Session = Depends(get_db),
    session: CallerSession = Depends(get_current_session),
):
    return transfer_queries.get_received_transfers(db, session.email)


@router.get("/code/{transfer_code}", response_model=FileTransferRead)
def get_transfer_by_code(
    transfer_code: str,
    db: Session = Depends(get_db),
    session: CallerSession = Depends(get_current_session),
):
    try:
        return transfer_queries.get_transfer_by_code(db, transfer_code)
    except TransferNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Transfer not found") from exc


@router.get("/{transfer_id}/download", response_model=DownloadLocationRead)
def download_transfer(
    transfer_id: str,
    db: Session = Depends(get_db),
    session: CallerSession = Depends(get_current_session),
):
    try:
        location = transfer_queries.resolve_download_location(db, transfer_id)
    except TransferNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Transfer not found") from exc
    except DownloadUnavailableError as exc:
        raise HTTPException(status_code=409, detail="File URL not available") from exc
    return DownloadLocationRead(url=location.url, file_name=location.file_name)
