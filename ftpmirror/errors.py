"""
Error taxonomy for ftpmirror

Per-item errors (LocalIOError, TransferError, RemovalError) and per-subtree
errors (NavigationError, ListingError) are logged and swallowed by the mirror
engine. FTPConnectError and SessionError escape to the recovery loop.
"""


class MirrorError(Exception):
    """Base class for every error raised by ftpmirror."""


class ConfigError(MirrorError):
    """Configuration file missing, unreadable or malformed."""


class FTPConnectError(MirrorError):
    """The FTP control connection could not be opened or was lost."""


class NavigationError(MirrorError):
    """A remote directory is missing or not accessible."""


class ListingError(MirrorError):
    """A remote directory could not be listed."""


class LocalIOError(MirrorError):
    """A local directory or file could not be created."""


class TransferError(MirrorError):
    """A file could not be downloaded."""


class RemovalError(MirrorError):
    """A remote file or directory could not be deleted."""


class SessionError(MirrorError):
    """The SSH session used for the restart command failed."""
