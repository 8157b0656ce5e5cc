"""
SSH session used to run the FTP restart command
"""
from typing import Optional
import paramiko
from .. import config as _cfg
from ..config import SSHAuth
from ..errors import SessionError
from ..utils.logging import log, warn


class SSHManager:
    """
    Wraps paramiko SSHClient for one-shot remote commands.
    Authentication comes from an SSHAuth descriptor resolved before connect().
    """

    def __init__(self, auth: SSHAuth, host: Optional[str] = None,
                 port: Optional[int] = None, user: Optional[str] = None):
        self.auth = auth
        self.host = host if host is not None else _cfg.SSH_HOST
        self.port = port if port is not None else _cfg.SSH_PORT
        self.user = user if user is not None else _cfg.SSH_USER
        self._ssh: Optional[paramiko.SSHClient] = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *exc_info):
        self.disconnect()

    # ── connection ─────────────────────────────────────────────────────────

    def _connect_kwargs(self) -> dict:
        kw: dict = dict(hostname=self.host, port=self.port, username=self.user,
                        timeout=20, banner_timeout=30, auth_timeout=30)
        if self.auth.kind == "key":
            kw.update(key_filename=self.auth.key_path, allow_agent=False, look_for_keys=False)
        elif self.auth.kind == "agent":
            kw.update(allow_agent=True, look_for_keys=False)
        if self.auth.password:
            kw["password"] = self.auth.password
        return kw

    def connect(self):
        log(f"[SSH] connecting to {self.user}@{self.host}:{self.port} ({self.auth.kind} auth) …")
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(**self._connect_kwargs())
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise SessionError(f"SSH connection to {self.host}:{self.port} failed: {exc}") from exc
        self._ssh = client
        log("[SSH] connected ✓")

    def disconnect(self):
        if self._ssh is None:
            return
        try:
            self._ssh.close()
        finally:
            self._ssh = None
        log("[SSH] disconnected.")

    # ── exec ────────────────────────────────────────────────────────────────

    def run(self, cmd: str, timeout: Optional[int] = None) -> int:
        """
        Run *cmd*, streaming stdout through log() and stderr through warn()
        line by line. Returns the exit status.
        """
        if self._ssh is None:
            raise SessionError("not connected")
        try:
            _, stdout, stderr = self._ssh.exec_command(cmd, timeout=timeout)
            for line in stdout:
                log(f"  [out] {line.rstrip()}")
            for line in stderr:
                warn(f"  [err] {line.rstrip()}")
            return stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as exc:
            raise SessionError(f"remote command failed: {cmd!r}: {exc}") from exc
