"""
FTP connection manager (the transport every mirror run goes through)
"""
import ftplib
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import NamedTuple, Optional

from .. import config as _cfg
from ..errors import (
    FTPConnectError, ListingError, LocalIOError, NavigationError,
    RemovalError, TransferError,
)
from ..utils.logging import log, vlog

FILE = "file"
DIR = "dir"

# MLSD types that refer to the listed directory itself or its parent
_SELF_TYPES = ("cdir", "pdir")

# Suffix of the hidden in-progress download next to the target file
TEMP_SUFFIX = ".ftpmirror-part"


class RemoteEntry(NamedTuple):
    name: str
    kind: str  # FILE, DIR or the raw MLSD type for anything else


def _connection_lost(exc: BaseException) -> bool:
    """True for failures that mean the control connection is gone."""
    if isinstance(exc, (OSError, EOFError)):
        return True
    # 421 Service not available, closing control connection
    return isinstance(exc, ftplib.error_temp) and str(exc).startswith("421")


class FTPManager:
    """
    Wraps ftplib.FTP / FTP_TLS.
    Every ftplib failure is translated into the ftpmirror error taxonomy:
    a lost connection becomes FTPConnectError, anything else the error class
    of the operation that failed. Nothing is retried here.
    """

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 user: Optional[str] = None, password: Optional[str] = None,
                 secure: Optional[bool] = None, timeout: Optional[int] = None):
        self.host = host if host is not None else _cfg.FTP_HOST
        self.port = port if port is not None else _cfg.FTP_PORT
        self.user = user if user is not None else _cfg.FTP_USER
        self.password = password if password is not None else _cfg.FTP_PASSWORD
        self.secure = secure if secure is not None else _cfg.FTP_SECURE
        self.timeout = timeout if timeout is not None else _cfg.FTP_TIMEOUT
        self._ftp: Optional[ftplib.FTP] = None
        self._cwd: Optional[str] = None

    # ── connection ─────────────────────────────────────────────────────────

    def _new_client(self) -> ftplib.FTP:
        if self.secure:
            return ftplib.FTP_TLS(timeout=self.timeout)
        return ftplib.FTP(timeout=self.timeout)

    def connect(self):
        if self._ftp is not None:
            self.disconnect()

        log(f"[FTP] connecting to {self.user}@{self.host}:{self.port} …")
        client = self._new_client()
        try:
            client.connect(self.host, self.port)
            client.login(self.user, self.password)
            if self.secure:
                client.prot_p()
            client.voidcmd("TYPE I")
        except ftplib.all_errors as exc:
            try:
                client.close()
            except OSError:
                pass
            raise FTPConnectError(f"cannot connect to {self.host}:{self.port}: {exc}") from exc

        self._ftp = client
        self._cwd = None
        log("[FTP] connected ✓")

    @property
    def closed(self) -> bool:
        return self._ftp is None

    def disconnect(self):
        if self._ftp is None:
            return
        client, self._ftp = self._ftp, None
        self._cwd = None
        try:
            client.quit()
        except ftplib.all_errors:
            client.close()
        log("[FTP] disconnected.")

    def _client(self) -> ftplib.FTP:
        if self._ftp is None:
            raise FTPConnectError("not connected")
        return self._ftp

    @contextmanager
    def _translate(self, error_cls, what: str):
        try:
            yield
        except ftplib.all_errors as exc:
            if _connection_lost(exc):
                raise FTPConnectError(f"{what}: {exc}") from exc
            raise error_cls(f"{what}: {exc}") from exc

    # ── navigation / listing ───────────────────────────────────────────────

    def cwd(self, remote_dir: str):
        """Enter *remote_dir*; a relative path is resolved to absolute with PWD."""
        client = self._client()
        with self._translate(NavigationError, f"cannot change to remote directory {remote_dir}"):
            client.cwd(remote_dir)
            self._cwd = remote_dir if remote_dir.startswith("/") else client.pwd()

    def pwd(self) -> Optional[str]:
        """Absolute path of the directory last entered with cwd()."""
        return self._cwd

    def list_entries(self) -> list[RemoteEntry]:
        """
        List the current remote directory.
        Prefers MLSD; falls back to NLST + a CWD check per name when the
        server does not implement MLSD.
        """
        client = self._client()
        with self._translate(ListingError, f"cannot list {self._cwd}"):
            try:
                return [
                    RemoteEntry(name, (facts.get("type") or "").lower())
                    for name, facts in client.mlsd()
                    if name not in (".", "..")
                    and (facts.get("type") or "").lower() not in _SELF_TYPES
                ]
            except ftplib.error_perm as exc:
                if not str(exc).startswith(("500", "501", "502", "504")):
                    raise
                vlog(f"  MLSD not supported ({exc}); falling back to NLST")
            return self._list_with_nlst(client)

    def _list_with_nlst(self, client: ftplib.FTP) -> list[RemoteEntry]:
        try:
            names = client.nlst()
        except ftplib.error_perm as exc:
            # Some servers answer "550 No files found" for an empty directory
            if str(exc).startswith("550"):
                return []
            raise
        entries = []
        for raw in names:
            name = PurePosixPath(raw).name
            if name in (".", ".."):
                continue
            entries.append(RemoteEntry(name, DIR if self._is_dir(client, name) else FILE))
        return entries

    def _is_dir(self, client: ftplib.FTP, name: str) -> bool:
        try:
            client.cwd(name)
        except ftplib.error_perm:
            return False
        client.cwd(self._cwd)
        return True

    # ── transfer ───────────────────────────────────────────────────────────

    def fetch(self, local_path: Path, remote_path: str):
        """
        Download *remote_path* to *local_path*.
        Bytes go to a hidden temp file in the same directory that is moved into
        place only once the transfer completed, so a failed fetch never leaves
        a file at local_path and never touches another file in the directory.
        """
        client = self._client()
        try:
            fh = tempfile.NamedTemporaryFile(
                dir=local_path.parent, prefix=f".{local_path.name}.",
                suffix=TEMP_SUFFIX, delete=False,
            )
        except OSError as exc:
            raise LocalIOError(f"cannot create a temp file in {local_path.parent}: {exc}") from exc
        tmp = Path(fh.name)

        def write(chunk: bytes):
            try:
                fh.write(chunk)
            except OSError as exc:
                raise LocalIOError(f"cannot write {tmp}: {exc}") from exc

        done = False
        try:
            with fh:
                try:
                    with self._translate(TransferError, f"cannot download {remote_path}"):
                        client.retrbinary(f"RETR {remote_path}", write)
                except LocalIOError:
                    self._drain_transfer_reply(client)
                    raise
            try:
                os.replace(tmp, local_path)
            except OSError as exc:
                raise LocalIOError(f"cannot move {tmp} to {local_path}: {exc}") from exc
            done = True
        finally:
            if not done:
                tmp.unlink(missing_ok=True)

    def _drain_transfer_reply(self, client: ftplib.FTP):
        """
        Read the reply the server sends once a RETR aborted by a local error
        has closed its data connection, so the next command gets its own reply.
        """
        try:
            client.voidresp()
        except (ftplib.error_reply, ftplib.error_temp, ftplib.error_perm) as exc:
            vlog(f"  transfer ended with: {exc}")
        except (OSError, EOFError) as exc:
            raise FTPConnectError(f"connection lost after a failed download: {exc}") from exc

    # ── removal ────────────────────────────────────────────────────────────

    def remove_file(self, remote_path: str):
        client = self._client()
        with self._translate(RemovalError, f"cannot delete remote file {remote_path}"):
            client.delete(remote_path)

    def remove_dir(self, remote_path: str):
        """Remove an (empty) remote directory, stepping out of it first."""
        client = self._client()
        parent = str(PurePosixPath(remote_path).parent)
        with self._translate(RemovalError, f"cannot delete remote directory {remote_path}"):
            if self._cwd == remote_path:
                client.cwd(parent)
                self._cwd = parent
            client.rmd(remote_path)
