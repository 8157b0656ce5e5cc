#!/usr/bin/env python3
"""
ftpmirror  —  Mirror an FTP tree locally, with operator-driven recovery
======================================================================

Subcommands:
  init      Create a .ftpmirror config file in the current directory.
  run       Mirror the remote tree using the nearest .ftpmirror config.
  restart   Run the configured FTP restart command over SSH once.
  show      Print the effective configuration (passwords masked).

Run 'ftpmirror <subcommand> --help' for more details.
"""
import sys
import argparse
from pathlib import Path


def _load_config(args):
    """Find, parse and apply the config file; exit 1 if that is impossible."""
    from ftpmirror import config as _cfg
    from ftpmirror.errors import ConfigError

    path = Path(args.config) if args.config else _cfg.find_config()
    if path is None:
        print("error: no .ftpmirror file found in this directory or any parent.", file=sys.stderr)
        print("Run 'ftpmirror init' to create one.", file=sys.stderr)
        sys.exit(1)
    if not path.is_file():
        print(f"error: config file not found: {path}", file=sys.stderr)
        sys.exit(1)

    if args.verbose:
        print(f"[config] Using {path}")

    try:
        _cfg.apply_config(_cfg.load_config_file(path))
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    return path


# ── init ─────────────────────────────────────────────────────────────────────

def cmd_init(args):
    """Create a .ftpmirror config file in the current directory."""
    from ftpmirror import config as _cfg

    target = Path.cwd() / _cfg.CONFIG_FILE

    if target.exists() and not args.force:
        print(f"error: {_cfg.CONFIG_FILE} already exists in {Path.cwd()}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        sys.exit(1)

    host = args.host or "ftp.example.com"
    if not args.host and sys.stdin.isatty():
        val = input(f"FTP server hostname [{host}]: ").strip()
        if val:
            host = val

    user = args.user or "anonymous"
    if not args.user and sys.stdin.isatty():
        val = input(f"FTP user [{user}]: ").strip()
        if val:
            user = val

    remote_dir = args.remote or "/"
    local_dir = (args.local or str(Path.cwd())).replace("\\", "/")
    ssh_host = args.ssh_host or host
    ssh_user = args.ssh_user or "root"

    def _yq(value: str) -> str:
        """Wrap a string in YAML single quotes, escaping embedded single quotes."""
        return "'" + value.replace("'", "''") + "'"

    lines = [
        "# .ftpmirror — ftpmirror configuration",
        "#",
        "# ftpConfig: the FTP server to mirror from and the local target directory.",
        "# sshConfig: used only to restart the FTP daemon when the operator asks for it.",
        "# privateKeyPath wins over agent when the key file is readable.",
        "ftpConfig:",
        f"  host: {_yq(host)}",
        f"  port: {args.port}",
        f"  user: {_yq(user)}",
        "  password: ''",
        "  secure: false",
        f"  remoteDir: {_yq(remote_dir)}",
        f"  localDir: {_yq(local_dir)}",
        "sshConfig:",
        f"  host: {_yq(ssh_host)}",
        f"  port: {args.ssh_port}",
        f"  username: {_yq(ssh_user)}",
    ]
    if args.key:
        key_path = args.key.replace("\\", "/")
        lines.append(f"  privateKeyPath: {_yq(key_path)}")
    else:
        lines.append("  agent: null")
    lines += [
        f"  restartCommand: {_yq(args.restart_command or _cfg.DEFAULT_RESTART_COMMAND)}",
        f"deleteRemoteFiles: {'true' if args.delete_remote else 'false'}",
        f"restartDelay: {_cfg.RESTART_DELAY:g}",
    ]

    content = "\n".join(lines) + "\n"

    if args.dry_run:
        print(f"[dry-run] Would write {target}:")
        print(content)
        return

    target.write_text(content, encoding="utf-8")
    print(f"Created {target}")
    if args.verbose:
        print(content)


# ── run ──────────────────────────────────────────────────────────────────────

def cmd_run(args):
    """Mirror the remote tree, prompting the operator after each failed run."""
    import ftpmirror.config as _cfg
    from ftpmirror.core.mirror_engine import run_mirror
    from ftpmirror.core.recovery import run_with_recovery
    from ftpmirror.operations.restart import restart_ftp_service
    from ftpmirror.utils.logging import set_verbose

    set_verbose(args.verbose)
    _load_config(args)

    delete_remote = _cfg.DELETE_REMOTE_FILES if args.delete_remote is None else args.delete_remote
    restart_delay = _cfg.RESTART_DELAY if args.restart_delay is None else args.restart_delay

    ok = run_with_recovery(
        lambda: run_mirror(dry_run=args.dry_run, delete_remote=delete_remote),
        restart=restart_ftp_service,
        restart_delay=restart_delay,
    )
    if not ok:
        sys.exit(1)


# ── restart ──────────────────────────────────────────────────────────────────

def cmd_restart(args):
    """Run the FTP restart command once."""
    from ftpmirror.operations.restart import restart_ftp_service
    from ftpmirror.utils.logging import set_verbose

    set_verbose(args.verbose)
    _load_config(args)
    if not restart_ftp_service():
        sys.exit(1)


# ── show ─────────────────────────────────────────────────────────────────────

def cmd_show(args):
    """Print the effective configuration."""
    import ftpmirror.config as _cfg

    path = _load_config(args)

    def _mask(value) -> str:
        return "****" if value else "(none)"

    print(f"\nConfig  : {path}")
    scheme = "ftps" if _cfg.FTP_SECURE else "ftp"
    print(f"FTP     : {scheme}://{_cfg.FTP_USER}@{_cfg.FTP_HOST}:{_cfg.FTP_PORT}  password {_mask(_cfg.FTP_PASSWORD)}")
    print(f"Remote  : {_cfg.REMOTE_ROOT}")
    print(f"Local   : {_cfg.LOCAL_ROOT}")
    print(f"Delete  : {'yes' if _cfg.DELETE_REMOTE_FILES else 'no'}")
    print(f"SSH     : {_cfg.SSH_USER}@{_cfg.SSH_HOST}:{_cfg.SSH_PORT}  password {_mask(_cfg.SSH_PASSWORD)}")
    print(f"Key     : {_cfg.SSH_KEY_PATH or '(none)'}")
    print(f"Agent   : {_cfg.SSH_AGENT or '(none)'}")
    print(f"Restart : {_cfg.RESTART_COMMAND}  (then wait {_cfg.RESTART_DELAY:g}s)")


# ── main ──────────────────────────────────────────────────────────────────────

def main():
    """CLI entry point for ftpmirror"""
    parser = argparse.ArgumentParser(
        prog="ftpmirror",
        description="Mirror an FTP tree locally, with operator-driven recovery",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── init ──────────────────────────────────────────────────────────────────
    init_p = subparsers.add_parser(
        "init",
        help="Create a .ftpmirror config file in the current directory",
        description="Create a .ftpmirror YAML config file.",
    )
    init_p.add_argument("--host", metavar="HOST", help="FTP server hostname or IP")
    init_p.add_argument("--port", type=int, default=21, metavar="N",
                        help="FTP port (default: 21)")
    init_p.add_argument("--user", metavar="NAME", help="FTP username (default: anonymous)")
    init_p.add_argument("--remote", metavar="PATH", help="Remote root directory (default: /)")
    init_p.add_argument("--local", metavar="PATH",
                        help="Local root directory (default: current directory)")
    init_p.add_argument("--ssh-host", metavar="HOST",
                        help="SSH host for restarts (default: the FTP host)")
    init_p.add_argument("--ssh-port", type=int, default=22, metavar="N",
                        help="SSH port (default: 22)")
    init_p.add_argument("--ssh-user", metavar="NAME", help="SSH username (default: root)")
    init_p.add_argument("--key", metavar="PATH", help="SSH private key file")
    init_p.add_argument("--restart-command", metavar="CMD",
                        help="Command that restarts the FTP daemon")
    init_p.add_argument("--delete-remote", action="store_true",
                        help="Delete remote files once they are present locally")
    init_p.add_argument("--force", action="store_true", help="Overwrite existing .ftpmirror")
    init_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Preview without writing files")
    init_p.add_argument("-v", "--verbose", action="store_true", help="Show extra output")

    # ── run ───────────────────────────────────────────────────────────────────
    run_p = subparsers.add_parser(
        "run",
        help="Mirror the remote tree using the nearest .ftpmirror config",
        description="Download every remote file that is not present locally.",
    )
    run_p.add_argument("--config", metavar="PATH", help="Config file (default: nearest .ftpmirror)")
    run_p.add_argument("-n", "--dry-run", action="store_true",
                       help="Preview without downloading or deleting anything")
    run_p.add_argument("-v", "--verbose", action="store_true",
                       help="Show every entry, not just actions")
    delete_g = run_p.add_mutually_exclusive_group()
    delete_g.add_argument("--delete-remote", dest="delete_remote", action="store_true",
                          default=None, help="Delete remote files once present locally")
    delete_g.add_argument("--keep-remote", dest="delete_remote", action="store_false",
                          help="Never delete remote files")
    run_p.add_argument("--restart-delay", type=float, default=None, metavar="SECONDS",
                       help="Wait after an FTP restart before retrying (default: from config)")

    # ── restart ───────────────────────────────────────────────────────────────
    restart_p = subparsers.add_parser(
        "restart",
        help="Restart the FTP daemon over SSH",
        description="Run sshConfig.restartCommand once and stream its output.",
    )
    restart_p.add_argument("--config", metavar="PATH", help="Config file (default: nearest .ftpmirror)")
    restart_p.add_argument("-v", "--verbose", action="store_true", help="Show extra output")

    # ── show ──────────────────────────────────────────────────────────────────
    show_p = subparsers.add_parser(
        "show",
        help="Print the effective configuration",
        description="Print the effective configuration with passwords masked.",
    )
    show_p.add_argument("--config", metavar="PATH", help="Config file (default: nearest .ftpmirror)")
    show_p.add_argument("-v", "--verbose", action="store_true", help="Show extra output")

    args = parser.parse_args()

    if args.command == "init":
        cmd_init(args)
    elif args.command == "run":
        cmd_run(args)
    elif args.command == "restart":
        cmd_restart(args)
    elif args.command == "show":
        cmd_show(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
