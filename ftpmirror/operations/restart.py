"""
Restart the FTP daemon over SSH
"""
from typing import Optional
from .. import config as _cfg
from ..config import SSHAuth, current_ssh_auth
from ..core.ssh_manager import SSHManager
from ..errors import SessionError
from ..utils.logging import log, warn


def restart_ftp_service(command: Optional[str] = None,
                        auth: Optional[SSHAuth] = None,
                        session_factory=SSHManager) -> bool:
    """
    Open an SSH session, run the restart command to completion and close.
    Returns True if the command exited 0. Failures are reported, never raised.
    """
    command = command or _cfg.RESTART_COMMAND
    auth = auth or current_ssh_auth()
    try:
        with session_factory(auth) as session:
            log(f"[restart] running {command!r}")
            rc = session.run(command)
    except SessionError as exc:
        warn(f"FTP restart failed: {exc}")
        return False

    if rc != 0:
        warn(f"[restart] command exited {rc}")
        return False
    log("[restart] FTP service restarted ✓")
    return True
