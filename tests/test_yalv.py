# Test suite for the main yalv application
import unittest
from unittest.mock import MagicMock, patch
import io
import subprocess
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from fake_backend import FakeBackend, make_records
from textual.app import SuspendNotSupported

from yalv.constants import AppInfo, ControllerState, MessageLevel, ViewFilter, VmStatus
from yalv.errors import OperationFailed
from yalv.registry import VmRegistry
from yalv.yalv import TerminalHandoff, YalvTUI, build_parser, main

DEFAULT_TEST_CONFIG = {
    "VIRSH_PATH": "virsh",
    "SSH_PATH": "ssh",
    "CONNECT_URI": None,
    "SSH_USER": None,
    "SSH_RESOLVE_ADDRESS": False,
    "LOG_FILE_PATH": "/tmp/yalv-test.log",
    "LOG_LEVEL": "INFO",
}


class TestParser(unittest.TestCase):
    def test_default_is_running_only(self):
        self.assertFalse(build_parser().parse_args([]).all)

    def test_all_flag(self):
        self.assertTrue(build_parser().parse_args(["--all"]).all)

    @patch("sys.stdout", new_callable=io.StringIO)
    def test_help_exits_zero(self, mock_stdout):
        with self.assertRaises(SystemExit) as cm:
            main(["--help"])
        self.assertEqual(cm.exception.code, 0)
        self.assertIn("--all", mock_stdout.getvalue())
        self.assertIn("keybindings", mock_stdout.getvalue())

    @patch("sys.stderr", new_callable=io.StringIO)
    def test_invalid_argument(self, mock_stderr):
        with self.assertRaises(SystemExit) as cm:
            main(["--bogus"])
        self.assertNotEqual(cm.exception.code, 0)
        self.assertIn("usage", mock_stderr.getvalue())


@patch("yalv.yalv.setup_logging")
@patch("yalv.yalv.load_config", return_value=DEFAULT_TEST_CONFIG)
class TestMain(unittest.TestCase):
    @patch("sys.stderr", new_callable=io.StringIO)
    @patch("yalv.yalv.check_virsh", return_value=False)
    def test_virsh_missing(self, mock_check, mock_stderr, mock_load, mock_logging):
        self.assertEqual(main([]), 1)
        self.assertIn("virsh", mock_stderr.getvalue())

    @patch("sys.stderr", new_callable=io.StringIO)
    @patch("yalv.yalv.YalvTUI")
    @patch("yalv.yalv.VirshBackend")
    @patch("yalv.yalv.check_virsh", return_value=True)
    def test_initial_refresh_failure(self, mock_check, mock_backend_cls, mock_app_cls,
                                     mock_stderr, mock_load, mock_logging):
        backend = FakeBackend()
        backend.unavailable = True
        backend.virsh_path = "virsh"
        mock_backend_cls.from_config.return_value = backend
        self.assertEqual(main(["--all"]), 1)
        mock_app_cls.assert_not_called()
        self.assertIn("connection refused", mock_stderr.getvalue())

    @patch("yalv.yalv.YalvTUI")
    @patch("yalv.yalv.VirshBackend")
    @patch("yalv.yalv.check_virsh", return_value=True)
    def test_normal_run(self, mock_check, mock_backend_cls, mock_app_cls, mock_load, mock_logging):
        backend = FakeBackend(make_records(("A", VmStatus.RUNNING), ("B", VmStatus.SHUT_OFF)))
        backend.virsh_path = "virsh"
        mock_backend_cls.from_config.return_value = backend
        mock_app = MagicMock()
        mock_app.return_code = 0
        mock_app_cls.return_value = mock_app

        self.assertEqual(main(["--all"]), 0)

        registry = mock_app_cls.call_args[0][0]
        self.assertEqual(registry.view_filter, ViewFilter.ALL)
        self.assertEqual(len(registry.visible()), 2)
        mock_app.run.assert_called_once()

    @patch("yalv.yalv.YalvTUI")
    @patch("yalv.backend.subprocess.run")
    @patch("yalv.yalv.check_virsh", return_value=True)
    def test_unexpected_list_format_still_starts(self, mock_check, mock_run, mock_app_cls,
                                                 mock_load, mock_logging):
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="Domains:\n", stderr=""
        )
        mock_app_cls.return_value.return_code = 0
        self.assertEqual(main([]), 0)
        registry = mock_app_cls.call_args[0][0]
        self.assertEqual(registry.records, ())
        self.assertEqual(registry.degraded_rows, 1)

    @patch("sys.stderr", new_callable=io.StringIO)
    @patch("yalv.yalv.YalvTUI")
    @patch("yalv.yalv.VirshBackend")
    @patch("yalv.yalv.check_virsh", return_value=True)
    def test_terminal_failure(self, mock_check, mock_backend_cls, mock_app_cls,
                              mock_stderr, mock_load, mock_logging):
        backend = FakeBackend()
        backend.virsh_path = "virsh"
        mock_backend_cls.from_config.return_value = backend
        mock_app_cls.return_value.run.side_effect = OSError("not a tty")
        self.assertEqual(main([]), 1)
        self.assertIn("not a tty", mock_stderr.getvalue())


class TestYalvTUI(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.backend = FakeBackend(make_records(("A", VmStatus.RUNNING), ("B", VmStatus.SHUT_OFF)))
        self.registry = VmRegistry(self.backend, ViewFilter.ALL)
        self.registry.refresh()
        self.app = YalvTUI(self.registry, self.backend)

    def test_constants(self):
        self.assertTrue(hasattr(YalvTUI, "BINDINGS"))
        self.assertTrue(hasattr(YalvTUI, "CSS"))

    def test_app_lends_its_terminal(self):
        self.assertIsInstance(self.app.controller.terminal, TerminalHandoff)
        self.assertIs(self.app.controller.terminal.app, self.app)
        self.assertIs(self.app.controller.registry, self.registry)

    async def test_keys_and_quit(self):
        async with self.app.run_test() as pilot:
            self.assertIn(AppInfo.namecase, self.app.title)
            await pilot.press("j")
            self.assertEqual(self.registry.selected_name, "B")
            await pilot.press("u")
            self.assertIn(("start", "B"), self.backend.calls)
            self.assertEqual(self.registry.selected().state, VmStatus.RUNNING)
            await pilot.press("A")
            self.assertEqual(self.registry.view_filter, ViewFilter.RUNNING_ONLY)
            self.assertEqual(self.registry.selected_name, "B")
            await pilot.press("q")
        self.assertEqual(self.app.controller.state, ControllerState.EXITING)
        self.assertEqual(self.app.return_code, 0)

    async def test_backend_error_keeps_app_running(self):
        async with self.app.run_test() as pilot:
            self.backend.unavailable = True
            await pilot.press("A")
            self.assertIsNotNone(self.app.controller.status)
            self.assertEqual(self.registry.view_filter, ViewFilter.ALL)
            await pilot.press("escape")
        self.assertEqual(self.app.return_code, 0)

    async def test_console_when_terminal_cannot_suspend(self):
        """The headless driver cannot suspend: the error is shown and the list refreshed."""
        async with self.app.run_test() as pilot:
            self.backend.calls.clear()
            await pilot.press("enter")
            self.assertTrue(self.app.is_running)
            self.assertEqual(self.app.controller.state, ControllerState.BROWSING)
            self.assertEqual(self.app.controller.status.level, MessageLevel.ERROR)
            self.assertEqual(self.backend.calls, [("list", True)])
            await pilot.press("q")
        self.assertEqual(self.app.return_code, 0)


class TestTerminalHandoff(unittest.TestCase):
    def test_suspend_not_supported(self):
        app = MagicMock()
        app.suspend.side_effect = SuspendNotSupported("driver cannot suspend")
        ran = []
        with self.assertRaises(OperationFailed) as cm:
            with TerminalHandoff(app).suspend():
                ran.append(True)
        self.assertEqual(ran, [])
        self.assertIn("driver cannot suspend", str(cm.exception))

    def test_suspend_wraps_body(self):
        app = MagicMock()
        with TerminalHandoff(app).suspend():
            app.suspend.return_value.__enter__.assert_called_once()
        app.suspend.return_value.__exit__.assert_called_once()


if __name__ == "__main__":
    unittest.main()
