from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_session, get_db
from app.schemas.file_transfer import TransferNotificationRead
from app.services.caller_session import CallerSession
from app.services.transfer_queries import transfer_queries

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/unread", response_model=list[TransferNotificationRead])
def list_unread_notifications(
    db: Session = Depends(get_db),
    session: CallerSession = Depends(get_current_session),
):
    return transfer_queries.get_unread_notifications(db, session.email)


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    session: CallerSession = Depends(get_current_session),
):
    transfer_queries.mark_notification_read(db, notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
