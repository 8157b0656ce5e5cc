"""Utilities (logging, local file helpers)"""
from .logging import log, vlog, warn, set_verbose
from .file_utils import ensure_local_dir, local_exists

__all__ = [
    "log", "vlog", "warn", "set_verbose",
    "ensure_local_dir", "local_exists",
]
