from app.tasks.transfers import delete_orphaned_object

__all__ = [
    "delete_orphaned_object",
]
