"""
Tests for FTPManager against a mocked ftplib client.

Tests:
  - connect/login/disconnect and connection failures
  - error translation: 5xx → operation error, socket loss / 421 → FTPConnectError
  - MLSD listing, NLST + CWD fallback, empty NLST
  - cwd resolves relative directories to absolute ones with PWD
  - fetch goes through a hidden temp file, leaves nothing behind on failure
    and never touches other files in the target directory
  - a local write failure still reads the reply of the aborted transfer
  - remove_dir steps out of the directory before RMD
"""
import ftplib
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ftpmirror.core.ftp_manager import DIR, FILE, FTPManager, RemoteEntry
from ftpmirror.errors import (
    FTPConnectError, ListingError, LocalIOError, NavigationError, RemovalError,
    TransferError,
)


class FTPManagerTestCase(unittest.TestCase):

    def setUp(self):
        patcher = mock.patch("ftplib.FTP")
        self.ftp_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = self.ftp_cls.return_value
        self.mgr = FTPManager(host="ftp.test", port=2121, user="u", password="p",
                              secure=False, timeout=5)

    def connected(self) -> FTPManager:
        self.mgr.connect()
        return self.mgr


# ── Tests: connection ─────────────────────────────────────────────────────────

class TestConnection(FTPManagerTestCase):

    def test_connect_logs_in(self):
        mgr = self.connected()
        self.ftp_cls.assert_called_once_with(timeout=5)
        self.client.connect.assert_called_once_with("ftp.test", 2121)
        self.client.login.assert_called_once_with("u", "p")
        self.client.voidcmd.assert_called_once_with("TYPE I")
        self.assertFalse(mgr.closed)

    def test_connect_failure(self):
        self.client.connect.side_effect = ConnectionRefusedError("refused")
        with self.assertRaises(FTPConnectError):
            self.mgr.connect()
        self.client.close.assert_called_once()
        self.assertTrue(self.mgr.closed)

    def test_login_failure(self):
        self.client.login.side_effect = ftplib.error_perm("530 Login incorrect.")
        with self.assertRaises(FTPConnectError):
            self.mgr.connect()

    def test_disconnect(self):
        mgr = self.connected()
        mgr.disconnect()
        self.client.quit.assert_called_once()
        self.assertTrue(mgr.closed)
        mgr.disconnect()
        self.client.quit.assert_called_once()

    def test_disconnect_closes_when_quit_fails(self):
        mgr = self.connected()
        self.client.quit.side_effect = EOFError()
        mgr.disconnect()
        self.client.close.assert_called_once()
        self.assertTrue(mgr.closed)

    def test_operations_require_connection(self):
        with self.assertRaises(FTPConnectError):
            self.mgr.cwd("/")


# ── Tests: navigation ─────────────────────────────────────────────────────────

class TestCwd(FTPManagerTestCase):

    def test_missing_directory(self):
        self.client.cwd.side_effect = ftplib.error_perm("550 No such directory.")
        with self.assertRaises(NavigationError):
            self.connected().cwd("/nope")

    def test_lost_connection(self):
        self.client.cwd.side_effect = EOFError()
        with self.assertRaises(FTPConnectError):
            self.connected().cwd("/data")

    def test_service_not_available(self):
        self.client.cwd.side_effect = ftplib.error_temp("421 Timeout.")
        with self.assertRaises(FTPConnectError):
            self.connected().cwd("/data")

    def test_relative_dir_is_resolved(self):
        """After entering a relative directory the manager knows its absolute path."""
        self.client.pwd.return_value = "/home/alice/data"
        mgr = self.connected()
        mgr.cwd("data")
        self.client.cwd.assert_called_once_with("data")
        self.assertEqual(mgr.pwd(), "/home/alice/data")

    def test_absolute_dir_needs_no_pwd(self):
        mgr = self.connected()
        mgr.cwd("/data")
        self.client.pwd.assert_not_called()
        self.assertEqual(mgr.pwd(), "/data")


# ── Tests: listing ────────────────────────────────────────────────────────────

class TestListEntries(FTPManagerTestCase):

    def test_mlsd(self):
        self.client.mlsd.return_value = iter([
            (".", {"type": "cdir"}),
            ("..", {"type": "pdir"}),
            ("a.txt", {"type": "file", "size": "3"}),
            ("sub", {"type": "dir"}),
            ("link", {"type": "OS.unix=symlink"}),
        ])
        mgr = self.connected()
        mgr.cwd("/data")
        self.assertEqual(mgr.list_entries(), [
            RemoteEntry("a.txt", FILE),
            RemoteEntry("sub", DIR),
            RemoteEntry("link", "os.unix=symlink"),
        ])

    def test_nlst_fallback(self):
        """Without MLSD, each name is tried with CWD to tell directories from files."""
        self.client.mlsd.side_effect = ftplib.error_perm("500 Unknown command.")
        self.client.nlst.return_value = ["file.bin", "subdir"]

        def cwd(path):
            if path == "file.bin":
                raise ftplib.error_perm("550 Not a directory.")

        self.client.cwd.side_effect = cwd
        mgr = self.connected()
        mgr.cwd("/data")
        self.assertEqual(mgr.list_entries(), [
            RemoteEntry("file.bin", FILE),
            RemoteEntry("subdir", DIR),
        ])
        self.assertEqual(self.client.cwd.call_args_list[-1], mock.call("/data"))

    def test_nlst_fallback_returns_to_absolute_dir(self):
        """After probing a name the fallback re-enters the resolved path, not the relative one."""
        self.client.mlsd.side_effect = ftplib.error_perm("500 Unknown command.")
        self.client.nlst.return_value = ["subdir"]
        self.client.pwd.return_value = "/home/alice/data"
        mgr = self.connected()
        mgr.cwd("data")
        self.assertEqual(mgr.list_entries(), [RemoteEntry("subdir", DIR)])
        self.assertEqual(self.client.cwd.call_args_list, [
            mock.call("data"), mock.call("subdir"), mock.call("/home/alice/data"),
        ])

    def test_nlst_empty_directory(self):
        self.client.mlsd.side_effect = ftplib.error_perm("502 Not implemented.")
        self.client.nlst.side_effect = ftplib.error_perm("550 No files found")
        mgr = self.connected()
        mgr.cwd("/data")
        self.assertEqual(mgr.list_entries(), [])

    def test_listing_denied(self):
        self.client.mlsd.side_effect = ftplib.error_perm("550 Permission denied.")
        mgr = self.connected()
        mgr.cwd("/data")
        with self.assertRaises(ListingError):
            mgr.list_entries()

    def test_listing_connection_lost(self):
        self.client.mlsd.side_effect = ConnectionResetError("reset")
        mgr = self.connected()
        with self.assertRaises(FTPConnectError):
            mgr.list_entries()


# ── Tests: fetch ──────────────────────────────────────────────────────────────

class TestFetch(FTPManagerTestCase):

    def setUp(self):
        super().setUp()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.local = Path(self.tmpdir.name) / "a.txt"

    def test_success(self):
        def retr(cmd, callback):
            self.assertFalse(self.local.exists())
            callback(b"hello ")
            callback(b"world")

        self.client.retrbinary.side_effect = retr
        self.connected().fetch(self.local, "/data/a.txt")
        self.client.retrbinary.assert_called_once_with("RETR /data/a.txt", mock.ANY)
        self.assertEqual(self.local.read_bytes(), b"hello world")
        self.assertEqual([p.name for p in self.local.parent.iterdir()], ["a.txt"])

    def test_download_goes_to_hidden_temp_file(self):
        seen = []

        def retr(cmd, callback):
            callback(b"x")
            seen.extend(p.name for p in self.local.parent.iterdir())

        self.client.retrbinary.side_effect = retr
        self.connected().fetch(self.local, "/data/a.txt")
        self.assertEqual(len(seen), 1)
        self.assertTrue(seen[0].startswith(".a.txt."))
        self.assertTrue(seen[0].endswith(".ftpmirror-part"))

    def test_existing_part_file_is_left_alone(self):
        """A mirrored a.txt.part next to a.txt is never used as scratch space."""
        part = self.local.with_name("a.txt.part")
        part.write_bytes(b"mirrored earlier")

        def retr(cmd, callback):
            callback(b"new content")

        self.client.retrbinary.side_effect = retr
        self.connected().fetch(self.local, "/data/a.txt")
        self.assertEqual(part.read_bytes(), b"mirrored earlier")
        self.assertEqual(self.local.read_bytes(), b"new content")
        self.assertEqual(sorted(p.name for p in self.local.parent.iterdir()),
                         ["a.txt", "a.txt.part"])

    def test_failure_leaves_nothing(self):
        def retr(cmd, callback):
            callback(b"partial")
            raise ftplib.error_perm("550 Failed to open file.")

        self.client.retrbinary.side_effect = retr
        with self.assertRaises(TransferError):
            self.connected().fetch(self.local, "/data/a.txt")
        self.assertEqual(list(self.local.parent.iterdir()), [])

    def test_connection_drop_leaves_nothing(self):
        def retr(cmd, callback):
            callback(b"partial")
            raise TimeoutError("timed out")

        self.client.retrbinary.side_effect = retr
        with self.assertRaises(FTPConnectError):
            self.connected().fetch(self.local, "/data/a.txt")
        self.assertEqual(list(self.local.parent.iterdir()), [])

    def _failing_temp_file(self):
        tmp = self.local.with_name(".a.txt.tmp")
        tmp.write_bytes(b"")
        fh = mock.MagicMock()
        fh.name = str(tmp)
        fh.write.side_effect = OSError(28, "No space left on device")
        patcher = mock.patch("tempfile.NamedTemporaryFile", return_value=fh)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client.retrbinary.side_effect = lambda cmd, callback: callback(b"chunk")
        return tmp

    def test_local_write_failure_reads_transfer_reply(self):
        """The 426/226 reply of the abandoned RETR is consumed before the next command."""
        tmp = self._failing_temp_file()
        self.client.voidresp.side_effect = ftplib.error_temp("426 Transfer aborted.")
        with self.assertRaises(LocalIOError):
            self.connected().fetch(self.local, "/data/a.txt")
        self.client.voidresp.assert_called_once_with()
        self.assertFalse(tmp.exists())
        self.assertFalse(self.local.exists())

    def test_connection_lost_after_local_write_failure(self):
        self._failing_temp_file()
        self.client.voidresp.side_effect = EOFError()
        with self.assertRaises(FTPConnectError):
            self.connected().fetch(self.local, "/data/a.txt")


# ── Tests: removal ────────────────────────────────────────────────────────────

class TestRemoval(FTPManagerTestCase):

    def test_remove_file(self):
        self.connected().remove_file("/data/a.txt")
        self.client.delete.assert_called_once_with("/data/a.txt")

    def test_remove_file_failure(self):
        self.client.delete.side_effect = ftplib.error_perm("550 Permission denied.")
        with self.assertRaises(RemovalError):
            self.connected().remove_file("/data/a.txt")

    def test_remove_current_dir_steps_out_first(self):
        mgr = self.connected()
        mgr.cwd("/data/empty")
        mgr.remove_dir("/data/empty")
        self.assertEqual(self.client.cwd.call_args_list[-1], mock.call("/data"))
        self.client.rmd.assert_called_once_with("/data/empty")

    def test_remove_dir_failure(self):
        self.client.rmd.side_effect = ftplib.error_perm("550 Directory not empty.")
        with self.assertRaises(RemovalError):
            self.connected().remove_dir("/data/full")


if __name__ == "__main__":
    unittest.main()
