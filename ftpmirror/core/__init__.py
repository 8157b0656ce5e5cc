"""Core functionality"""
from .ftp_manager import FTPManager, RemoteEntry
from .ssh_manager import SSHManager

__all__ = ["FTPManager", "RemoteEntry", "SSHManager"]
