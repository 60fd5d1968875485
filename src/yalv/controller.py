"""
Key handling: maps keys to registry moves and backend actions.
"""

import logging
from dataclasses import dataclass

from .constants import ControllerState, ErrorMessages, Keys, MessageLevel
from .errors import BackendError, log_backend_error


@dataclass(frozen=True)
class StatusMessage:
    """A message for the status line."""
    level: str
    text: str


class InputController:
    """
    State machine driven by key presses.

    Backend calls are made synchronously, so an action and the refresh that
    follows it finish before the next key is handled. The terminal passed in
    must provide a suspend() context manager that gives the screen to a child
    process for the duration of the block.
    """

    def __init__(self, registry, backend, terminal):
        self.registry = registry
        self.backend = backend
        self.terminal = terminal
        self.state = ControllerState.BROWSING
        self.status: StatusMessage | None = None
        self._handlers = {}
        for keys, handler in (
            (Keys.DOWN, self._move_down),
            (Keys.UP, self._move_up),
            (Keys.TOGGLE_FILTER, self._toggle_filter),
            (Keys.CONSOLE, self._open_console),
            (Keys.SSH, self._open_ssh),
            (Keys.START, self._start),
            (Keys.SHUTDOWN, self._shutdown),
            (Keys.QUIT, self._quit),
        ):
            for key in keys:
                self._handlers[key] = handler

    def dispatch(self, key: str) -> str:
        """Handle one key press and return the resulting controller state."""
        if self.state == ControllerState.EXITING:
            return self.state
        self.status = None
        handler = self._handlers.get(key)
        if handler is None:
            logging.debug("Ignoring key %r", key)
            return self.state
        handler()
        return self.state

    def _report(self, level: str, text: str) -> None:
        """Keep the most severe message of the current dispatch."""
        if self.status is None or (
            MessageLevel.ORDER.index(level) >= MessageLevel.ORDER.index(self.status.level)
        ):
            self.status = StatusMessage(level, text)

    def _refresh(self, view_filter: str | None = None) -> None:
        try:
            self.registry.refresh(view_filter)
        except BackendError as e:
            log_backend_error("refresh", e)
            self._report(MessageLevel.WARNING, ErrorMessages.LIST_FAILED.format(error=e))

    def _move_down(self) -> None:
        self.registry.move_selection(1)

    def _move_up(self) -> None:
        self.registry.move_selection(-1)

    def _toggle_filter(self) -> None:
        try:
            self.registry.toggle_filter()
        except BackendError as e:
            log_backend_error("toggle filter", e)
            self._report(MessageLevel.WARNING, ErrorMessages.LIST_FAILED.format(error=e))
            return
        logging.info("View filter is now %s", self.registry.view_filter)

    def _quit(self) -> None:
        logging.info("Quit requested")
        self.state = ControllerState.EXITING

    def _start(self) -> None:
        record = self.registry.selected()
        if record is None or not record.is_shut_off:
            return
        self._run_action("start", self.backend.start, record.name)

    def _shutdown(self) -> None:
        record = self.registry.selected()
        if record is None or not record.is_running:
            return
        self._run_action("shutdown", self.backend.shutdown, record.name)

    def _run_action(self, action: str, func, name: str) -> None:
        logging.info("Requesting %s of VM '%s'", action, name)
        try:
            func(name)
        except BackendError as e:
            log_backend_error(f"{action} {name}", e)
            self._report(MessageLevel.ERROR, str(e))
        else:
            self._report(MessageLevel.INFO, f"{action} requested for {name}")
        # The backend is the only source of truth, refresh whatever happened.
        self._refresh()

    def _open_console(self) -> None:
        record = self.registry.selected()
        if record is None or not record.is_running:
            return
        self._handoff("console", self.backend.open_console, record.name)

    def _open_ssh(self) -> None:
        record = self.registry.selected()
        if record is None or not record.is_running:
            return
        self._handoff("ssh", self.backend.open_ssh, record.name)

    def _handoff(self, kind: str, opener, name: str) -> None:
        """Give the terminal to an interactive session, then take it back and refresh."""
        logging.info("Opening %s for VM '%s'", kind, name)
        self.state = ControllerState.AWAITING_SUBPROCESS
        try:
            with self.terminal.suspend():
                returncode = opener(name)
        except BackendError as e:
            log_backend_error(f"{kind} {name}", e)
            self._report(MessageLevel.ERROR, str(e))
        else:
            if returncode:
                self._report(
                    MessageLevel.WARNING,
                    f"{kind} session for {name} exited with status {returncode}",
                )
        finally:
            self.state = ControllerState.BROWSING
        self._refresh()
