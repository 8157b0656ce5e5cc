"""
Remote delete operations (files and drained directories)
"""
from typing import Optional
from ..core.ftp_manager import FTPManager
from ..errors import RemovalError
from ..utils.logging import log, warn


def delete_remote_file(mgr: FTPManager, remote_path: str, dry_run: bool,
                       stats: Optional[dict] = None) -> bool:
    """Delete one remote file. Failures are reported, never raised."""
    if dry_run:
        log(f"  [DEL-REMOTE-DRY] {remote_path}")
        return False
    log(f"  [DEL-REMOTE] {remote_path}")
    try:
        mgr.remove_file(remote_path)
    except RemovalError as exc:
        warn(f"Error deleting remote file: {exc}")
        if stats is not None:
            stats["failures"] += 1
        return False
    if stats is not None:
        stats["deleted_files"] += 1
    return True


def delete_remote_dir(mgr: FTPManager, remote_dir: str, dry_run: bool,
                      stats: Optional[dict] = None) -> bool:
    """Delete one empty remote directory. Failures are reported, never raised."""
    if dry_run:
        log(f"  [RMDIR-REMOTE-DRY] {remote_dir}")
        return False
    log(f"  [RMDIR-REMOTE] {remote_dir}")
    try:
        mgr.remove_dir(remote_dir)
    except RemovalError as exc:
        warn(f"Error removing remote directory: {exc}")
        if stats is not None:
            stats["failures"] += 1
        return False
    if stats is not None:
        stats["deleted_dirs"] += 1
    return True
