"""Operations (reconcile, delete, restart)"""
from .transfer import reconcile_file
from .delete import delete_remote_file, delete_remote_dir
from .restart import restart_ftp_service

__all__ = [
    "reconcile_file",
    "delete_remote_file", "delete_remote_dir",
    "restart_ftp_service",
]
