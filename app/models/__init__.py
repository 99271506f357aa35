from app.models.file_transfer import (  # noqa: F401
    FileTransfer,
    TransferNotification,
    TransferStatus,
)
from app.models.profile import Profile  # noqa: F401
