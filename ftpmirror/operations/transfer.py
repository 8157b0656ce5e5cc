"""
Per-file reconciliation: download when absent, then optionally delete remote
"""
from pathlib import Path, PurePosixPath
from typing import Optional
from ..core.ftp_manager import FTPManager
from ..errors import LocalIOError, TransferError
from ..utils.file_utils import local_exists
from ..utils.logging import log, vlog, warn
from .delete import delete_remote_file


def reconcile_file(mgr: FTPManager, remote_dir: str, file_name: str,
                   local_path: Path, delete_remote: bool,
                   dry_run: bool = False, stats: Optional[dict] = None) -> str:
    """
    Bring one remote file in line with the local tree.

    Presence of a regular file at *local_path* is the only signal that the
    file was already handled; content is never compared. The remote copy is
    deleted only when the local copy was already there or the fetch just
    succeeded. Anything else at *local_path* (a directory, say) is a failure
    and leaves the remote copy alone.

    Returns "present", "fetched" or "failed".
    """
    remote_path = str(PurePosixPath(remote_dir) / file_name)

    try:
        present = local_exists(local_path)
    except LocalIOError as exc:
        warn(f"Skipping {remote_path}: {exc}")
        if stats is not None:
            stats["failures"] += 1
        return "failed"

    if present:
        vlog(f"  [SKIP] {remote_path} already at {local_path}")
        if stats is not None:
            stats["present"] += 1
        if delete_remote:
            delete_remote_file(mgr, remote_path, dry_run, stats)
        return "present"

    if dry_run:
        log(f"  [FETCH-DRY] {remote_path} → {local_path}")
        if delete_remote:
            delete_remote_file(mgr, remote_path, dry_run, stats)
        return "fetched"

    log(f"  [FETCH] {remote_path} → {local_path} …")
    try:
        mgr.fetch(local_path, remote_path)
    except (TransferError, LocalIOError) as exc:
        warn(f"Error downloading file: {exc}")
        if stats is not None:
            stats["failures"] += 1
        return "failed"

    log(f"  [FETCH ✓] {remote_path}")
    if stats is not None:
        stats["fetched"] += 1
    if delete_remote:
        delete_remote_file(mgr, remote_path, dry_run, stats)
    return "fetched"
