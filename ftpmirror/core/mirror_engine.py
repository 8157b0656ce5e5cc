"""
Mirror engine - recursive remote → local traversal
"""
from pathlib import Path, PurePosixPath
from typing import Optional
from .. import config as _cfg
from ..errors import ListingError, LocalIOError, NavigationError
from ..operations.delete import delete_remote_dir
from ..operations.transfer import reconcile_file
from ..utils.file_utils import ensure_local_dir
from ..utils.logging import log, vlog, warn
from .ftp_manager import DIR, FILE, FTPManager


def new_stats() -> dict:
    """Counters for one mirror run."""
    return dict(dirs=0, created_dirs=0, fetched=0, present=0,
                deleted_files=0, deleted_dirs=0, failures=0)


def mirror_directory(mgr: FTPManager, remote_dir: str, local_dir: Path,
                     fresh_descent: bool = False,
                     delete_remote: Optional[bool] = None,
                     dry_run: bool = False,
                     stats: Optional[dict] = None) -> dict:
    """
    Recursively mirror *remote_dir* into *local_dir*, depth-first, in listing order.

    fresh_descent is False only for the configured root. A fresh descent that
    lists no entries is deleted on the remote; the root never is.
    Failures to enter or list a directory abort that directory only.
    FTPConnectError is not handled here and ends the whole run.
    Returns the stats dict.
    """
    if delete_remote is None:
        delete_remote = _cfg.DELETE_REMOTE_FILES
    if stats is None:
        stats = new_stats()

    log(f"[dir] {remote_dir}")
    try:
        mgr.cwd(remote_dir)
        if not remote_dir.startswith("/"):
            # child paths are built from this one, so it must not depend on the cwd
            remote_dir = mgr.pwd()
            vlog(f"  resolved to {remote_dir}")
        entries = mgr.list_entries()
    except (NavigationError, ListingError) as exc:
        warn(f"Skipping {remote_dir}: {exc}")
        stats["failures"] += 1
        return stats
    stats["dirs"] += 1

    if not entries:
        vlog(f"  empty dir {remote_dir}")
        if fresh_descent:
            delete_remote_dir(mgr, remote_dir, dry_run, stats)
        return stats

    for entry in entries:
        local_path = Path(local_dir) / entry.name
        remote_path = str(PurePosixPath(remote_dir) / entry.name)

        if entry.kind == DIR:
            if dry_run and not local_path.is_dir():
                log(f"  [MKDIR-DRY] {local_path}")
            elif not dry_run:
                try:
                    if ensure_local_dir(local_path):
                        vlog(f"  [MKDIR] {local_path}")
                        stats["created_dirs"] += 1
                except LocalIOError as exc:
                    warn(f"Skipping {remote_path}: {exc}")
                    stats["failures"] += 1
                    continue
            mirror_directory(mgr, remote_path, local_path, fresh_descent=True,
                             delete_remote=delete_remote, dry_run=dry_run,
                             stats=stats)
        elif entry.kind == FILE:
            reconcile_file(mgr, remote_dir, entry.name, local_path,
                           delete_remote, dry_run=dry_run, stats=stats)
        else:
            vlog(f"  [IGNORE] {remote_path} ({entry.kind or 'unknown type'})")

    return stats


def run_mirror(dry_run: bool = False, delete_remote: Optional[bool] = None,
               manager_factory=FTPManager) -> dict:
    """
    One full run: connect, mirror the configured root, disconnect.
    The connection is closed on every exit path; connection failures propagate.
    """
    if delete_remote is None:
        delete_remote = _cfg.DELETE_REMOTE_FILES
    local_root = Path(_cfg.LOCAL_ROOT)
    remote_root = str(_cfg.REMOTE_ROOT)

    print()
    print(f"{'═' * 64}")
    print(f" ftpmirror  {remote_root}  →  {local_root}")
    print(f"  delete remote files: {'yes' if delete_remote else 'no'}")
    if dry_run:
        print("  *** DRY-RUN — no files will be changed ***")
    print(f"{'═' * 64}")

    if not dry_run and not local_root.is_dir():
        try:
            local_root.mkdir(parents=True)
        except OSError as exc:
            raise LocalIOError(f"cannot create local root {local_root}: {exc}") from exc
        log(f"[local] created {local_root}")

    mgr = manager_factory()
    try:
        mgr.connect()
        stats = mirror_directory(mgr, remote_root, local_root, fresh_descent=False,
                                 delete_remote=delete_remote, dry_run=dry_run)
    finally:
        mgr.disconnect()

    print_summary(stats)
    return stats


def print_summary(stats: dict):
    print()
    print(f"{'─' * 64}")
    print(" SUMMARY")
    print(f"  Directories  : {stats['dirs']}")
    print(f"  Created local: {stats['created_dirs']}")
    print(f"  Downloaded   : {stats['fetched']}")
    print(f"  Already local: {stats['present']}")
    print(f"  Del remote   : {stats['deleted_files']} file(s), {stats['deleted_dirs']} dir(s)")
    print(f"  Failures     : {stats['failures']}")
    print(f"{'─' * 64}")
