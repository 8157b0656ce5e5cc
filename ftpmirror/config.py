"""
Configuration constants for ftpmirror
"""
from pathlib import Path, PurePosixPath
from typing import NamedTuple, Optional

from .errors import ConfigError
from .utils.logging import log, warn

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS  ── overridden by apply_config()
# ══════════════════════════════════════════════════════════════════════════════

FTP_HOST = "localhost"
FTP_PORT = 21
FTP_USER = "anonymous"
FTP_PASSWORD = ""
# Explicit FTPS (AUTH TLS) instead of plain FTP
FTP_SECURE = False
FTP_TIMEOUT = 30  # seconds; applies to every control/data socket operation

REMOTE_ROOT = PurePosixPath("/")
LOCAL_ROOT = Path(".")

SSH_HOST = "localhost"
SSH_PORT = 22
SSH_USER = "root"
SSH_PASSWORD: Optional[str] = None
# Truthy → let paramiko use the running ssh-agent (SSH_AUTH_SOCK / Pageant)
SSH_AGENT: Optional[str] = None
SSH_KEY_PATH: Optional[str] = None

DEFAULT_RESTART_COMMAND = "sudo systemctl restart vsftpd"
RESTART_COMMAND = DEFAULT_RESTART_COMMAND
# Seconds to wait after the restart command returns before the run is retried
RESTART_DELAY = 5.0

DELETE_REMOTE_FILES = False

CONFIG_FILE = ".ftpmirror"
# Also accepted, in this order, when no .ftpmirror is found
FALLBACK_CONFIG_FILES = ("config.json", "config.yaml")


# ══════════════════════════════════════════════════════════════════════════════
#  CONFIG FILE  ── .ftpmirror (searched upward), YAML or JSON
# ══════════════════════════════════════════════════════════════════════════════

def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a .ftpmirror file.
    If none exists, look for config.json / config.yaml in *start* itself.
    Returns the Path if found, or None.
    """
    origin = (start or Path.cwd()).resolve()
    current = origin
    while True:
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    for name in FALLBACK_CONFIG_FILES:
        candidate = origin / name
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path) -> dict:
    """Parse a YAML (or JSON) config file and return its contents as a dict."""
    import yaml

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"invalid config file {path}: top level must be a mapping")
    return data


# ══════════════════════════════════════════════════════════════════════════════
#  APPLY CONFIG  ── mutates module-level variables
# ══════════════════════════════════════════════════════════════════════════════

def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def apply_config(data: dict):
    """
    Apply a config dict to the module-level variables.
    Sections:
      ftpConfig:  host, port, user, password, secure, timeout, remoteDir, localDir
      sshConfig:  host, port, username, password, agent, privateKeyPath, restartCommand
    Top level:    deleteRemoteFiles, restartDelay
    """
    global FTP_HOST, FTP_PORT, FTP_USER, FTP_PASSWORD, FTP_SECURE, FTP_TIMEOUT
    global REMOTE_ROOT, LOCAL_ROOT
    global SSH_HOST, SSH_PORT, SSH_USER, SSH_PASSWORD, SSH_AGENT, SSH_KEY_PATH
    global RESTART_COMMAND, RESTART_DELAY, DELETE_REMOTE_FILES

    ftp = data.get("ftpConfig") or {}
    ssh = data.get("sshConfig") or {}
    if not isinstance(ftp, dict) or not isinstance(ssh, dict):
        raise ConfigError("ftpConfig and sshConfig must be mappings")

    try:
        if "host" in ftp:
            FTP_HOST = str(ftp["host"])
        if "port" in ftp:
            FTP_PORT = int(ftp["port"])
        if "user" in ftp:
            FTP_USER = str(ftp["user"])
        if "password" in ftp:
            FTP_PASSWORD = str(ftp["password"]) if ftp["password"] is not None else ""
        if "secure" in ftp:
            FTP_SECURE = _as_bool(ftp["secure"])
        if "timeout" in ftp:
            FTP_TIMEOUT = int(ftp["timeout"])
        if "remoteDir" in ftp:
            REMOTE_ROOT = PurePosixPath(str(ftp["remoteDir"]) or "/")
        if "localDir" in ftp:
            LOCAL_ROOT = Path(str(ftp["localDir"])).expanduser()

        if "host" in ssh:
            SSH_HOST = str(ssh["host"])
        if "port" in ssh:
            SSH_PORT = int(ssh["port"])
        if "username" in ssh:
            SSH_USER = str(ssh["username"])
        if "password" in ssh:
            SSH_PASSWORD = str(ssh["password"]) if ssh["password"] else None
        if "agent" in ssh:
            SSH_AGENT = str(ssh["agent"]) if ssh["agent"] else None
        if "privateKeyPath" in ssh:
            SSH_KEY_PATH = str(ssh["privateKeyPath"]) if ssh["privateKeyPath"] else None
        if ssh.get("restartCommand"):
            RESTART_COMMAND = str(ssh["restartCommand"])

        if "deleteRemoteFiles" in data:
            DELETE_REMOTE_FILES = _as_bool(data["deleteRemoteFiles"])
        if "restartDelay" in data:
            RESTART_DELAY = float(data["restartDelay"])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid config value: {exc}") from exc


# ══════════════════════════════════════════════════════════════════════════════
#  SSH AUTH  ── resolved once before the restart session is opened
# ══════════════════════════════════════════════════════════════════════════════

class SSHAuth(NamedTuple):
    """How the restart session authenticates: kind is "key", "agent" or "default"."""
    kind: str
    key_path: Optional[str] = None
    password: Optional[str] = None


def resolve_ssh_auth(key_path: Optional[str] = None,
                     agent: Optional[str] = None,
                     password: Optional[str] = None) -> SSHAuth:
    """
    A readable private key wins and drops agent auth.
    An unreadable key is reported and auth falls back to the agent (if
    configured) or paramiko's defaults (agent + ~/.ssh/id_*).
    """
    if key_path:
        path = Path(key_path).expanduser()
        try:
            with path.open("rb"):
                pass
        except OSError as exc:
            warn(f"Error reading private key file {path}: {exc}")
            log("Falling back to other SSH authentication methods (e.g., agent).")
        else:
            log("Using private key for SSH connection.")
            return SSHAuth("key", key_path=str(path), password=password)
    if agent:
        return SSHAuth("agent", password=password)
    return SSHAuth("default", password=password)


def current_ssh_auth() -> SSHAuth:
    """Resolve the SSH auth descriptor from the applied configuration."""
    return resolve_ssh_auth(SSH_KEY_PATH, SSH_AGENT, SSH_PASSWORD)
