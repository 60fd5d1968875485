"""
Shared constants for the application.
"""

class AppInfo:
    """Define app data"""
    name = "yalv"
    namecase = "YALV"
    fullname = "Yet Another Libvirt Viewer"
    version = "0.1.0"

class VmStatus:
    """State strings as printed by 'virsh list'."""
    RUNNING = "running"
    SHUT_OFF = "shut off"
    PAUSED = "paused"

class ViewFilter:
    """Defines which VMs are shown."""
    ALL = "all"
    RUNNING_ONLY = "running"

class ControllerState:
    """States of the input controller."""
    BROWSING = "browsing"
    AWAITING_SUBPROCESS = "awaiting_subprocess"
    EXITING = "exiting"

class MessageLevel:
    """Severity of a status line message, lowest first."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    ORDER = (INFO, WARNING, ERROR)

class Keys:
    """Normalised key names handled by the controller."""
    DOWN = ("j", "down")
    UP = ("k", "up")
    TOGGLE_FILTER = ("A",)
    CONSOLE = ("enter",)
    SSH = ("s",)
    START = ("u",)
    SHUTDOWN = ("d",)
    QUIT = ("q", "escape")

class StateColors:
    """Rich styles used for the state column."""
    COLOR = {
        VmStatus.RUNNING: "green",
        VmStatus.SHUT_OFF: "red",
        VmStatus.PAUSED: "yellow",
    }

class StatusText:
    """Text shown in the status line."""
    FILTER_LABELS = {
        ViewFilter.ALL: "All VMs",
        ViewFilter.RUNNING_ONLY: "Running VMs",
    }
    KEY_HINTS = "j/k: move  A: all/running  Enter: console  s: ssh  u: start  d: shutdown  q: quit"
    EMPTY_ALL = "No virtual machines defined."
    EMPTY_RUNNING = "No running virtual machines. Press 'A' to show all."
    DEGRADED = "{count} unparseable row(s) skipped in 'virsh list' output"

class ErrorMessages:
    """Error messages shown to the user."""
    VIRSH_NOT_FOUND = "virsh command not found. Please install libvirt client tools."
    LIST_FAILED = "Could not refresh VM list, showing previous data: {error}"
    TERMINAL_FAILED = "Failed to initialize the terminal: {error}"
    SUSPEND_FAILED = "Cannot hand the terminal over to a subprocess: {error}"
