"""ftpmirror — mirror an FTP tree locally, with operator-driven recovery"""

__version__ = "1.0.0"
