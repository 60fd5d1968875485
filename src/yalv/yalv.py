"""
Main interface
"""
import argparse
import logging
import sys
from contextlib import contextmanager

import yaml
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.binding import Binding
from textual.widgets import Footer, Header, Static

from .backend import VirshBackend
from .config import load_config
from .constants import AppInfo, ControllerState, ErrorMessages, ViewFilter
from .controller import InputController
from .errors import BackendError, OperationFailed, log_backend_error
from .registry import VmRegistry
from .renderer import render
from .utils import check_virsh, setup_logging

KEYBINDINGS_HELP = """\
keybindings:
  j / Down      Move selection down
  k / Up        Move selection up
  A             Toggle between all VMs and running VMs
  Enter         Open console (running VMs only)
  s             SSH into VM (running VMs only)
  u             Start VM (shut off VMs only)
  d             Shut down VM (running VMs only)
  q / Esc       Quit
"""


class TerminalHandoff:
    """Lends the app's screen to console and ssh sessions."""

    def __init__(self, app: App):
        self.app = app

    @contextmanager
    def suspend(self):
        """Suspend the app while the body runs, restoring it afterwards."""
        try:
            with self.app.suspend():
                yield
        except SuspendNotSupported as e:
            logging.error("Terminal cannot be suspended: %s", e)
            raise OperationFailed(ErrorMessages.SUSPEND_FAILED.format(error=e)) from e


class YalvTUI(App):
    """A Textual application to browse and control VMs through virsh."""

    CSS = """
    #vm-list {
        height: 1fr;
        padding: 0 1;
    }
    #status-line {
        height: auto;
        padding: 0 1;
        background: $panel;
    }
    """

    ENABLE_COMMAND_PALETTE = False

    # Every key goes through the controller; priority so no widget can take them.
    BINDINGS = [
        Binding("j,down", "dispatch('j')", "Down", priority=True),
        Binding("k,up", "dispatch('k')", "Up", priority=True),
        Binding("A,shift+a", "dispatch('A')", "All/Running", priority=True),
        Binding("enter", "dispatch('enter')", "Console", priority=True),
        Binding("s", "dispatch('s')", "SSH", priority=True),
        Binding("u", "dispatch('u')", "Start", priority=True),
        Binding("d", "dispatch('d')", "Shutdown", priority=True),
        Binding("q,escape", "dispatch('q')", "Quit", priority=True),
    ]

    def __init__(self, registry, backend):
        super().__init__()
        self.registry = registry
        self.handoff = TerminalHandoff(self)
        self.controller = InputController(registry, backend, self.handoff)
        self.ui = {}

    def compose(self) -> ComposeResult:
        """Create child widgets for the app."""
        self.ui["vm_list"] = Static(id="vm-list")
        self.ui["status_line"] = Static(id="status-line")
        yield Header()
        yield self.ui["vm_list"]
        yield self.ui["status_line"]
        yield Footer()

    def on_mount(self) -> None:
        """Called when the app is mounted."""
        self.update_view()

    def update_view(self) -> None:
        """Draw the current registry state."""
        frame = render(self.registry, self.controller.status)
        self.title = frame.title
        self.sub_title = f"v{AppInfo.version}"
        self.ui["vm_list"].update(frame.body())
        self.ui["status_line"].update(frame.status_line)

    def action_dispatch(self, key: str) -> None:
        """Pass a key to the controller, then redraw or exit."""
        state = self.controller.dispatch(key)
        if state == ControllerState.EXITING:
            self.exit(return_code=0)
            return
        self.update_view()


def build_parser() -> argparse.ArgumentParser:
    """Command line arguments."""
    parser = argparse.ArgumentParser(
        prog=AppInfo.name,
        description=f"{AppInfo.fullname} - browse and control libvirt VMs using virsh.",
        epilog=KEYBINDINGS_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--all", action="store_true", help="Show all VMs (including inactive)"
    )
    return parser


def main(argv=None) -> int:
    """Entry point for the yalv TUI application."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
        setup_logging(config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"{AppInfo.name}: failed to load configuration: {e}", file=sys.stderr)
        return 1

    logging.info("%s started with args: %s", AppInfo.name, vars(args))

    backend = VirshBackend.from_config(config)
    if not check_virsh(backend.virsh_path):
        logging.error("virsh not found at %s", backend.virsh_path)
        print(ErrorMessages.VIRSH_NOT_FOUND, file=sys.stderr)
        return 1

    view_filter = ViewFilter.ALL if args.all else ViewFilter.RUNNING_ONLY
    registry = VmRegistry(backend, view_filter)
    try:
        registry.refresh()
    except BackendError as e:
        log_backend_error("initial refresh", e)
        print(f"{AppInfo.name}: {e}", file=sys.stderr)
        return 1
    logging.info("Loaded %d VMs (filter=%s)", len(registry.records), view_filter)

    app = YalvTUI(registry, backend)
    try:
        app.run()
    except Exception as e:  # pylint: disable=broad-exception-caught
        logging.error("Terminal failure: %s", e)
        print(ErrorMessages.TERMINAL_FAILED.format(error=e), file=sys.stderr)
        return 1

    logging.info("Exiting with status %s", app.return_code)
    return app.return_code or 0


if __name__ == "__main__":
    sys.exit(main())
