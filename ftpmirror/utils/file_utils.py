"""
Local filesystem helpers
"""
from pathlib import Path
from ..errors import LocalIOError


def local_exists(path: Path) -> bool:
    """
    Presence of a regular file is the only signal that it was already handled.
    Raises LocalIOError if something other than a file sits at *path*.
    """
    if path.is_file():
        return True
    if path.exists():
        raise LocalIOError(f"{path} exists but is not a regular file")
    return False


def ensure_local_dir(path: Path) -> bool:
    """
    Create *path* if it does not exist yet.
    Returns True if the directory was created, False if it already existed.
    Raises LocalIOError if it cannot be created.
    """
    if path.is_dir():
        return False
    try:
        path.mkdir()
    except OSError as exc:
        raise LocalIOError(f"cannot create local directory {path}: {exc}") from exc
    return True
