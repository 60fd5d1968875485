"""
virsh backend adapter.

Every interaction with the hypervisor goes through the 'virsh' command line
tool. The adapter keeps no state about VMs: each call runs the tool and
returns what it reported.
"""
import logging
import shlex
import subprocess
from dataclasses import dataclass

from .config import load_config
from .constants import VmStatus
from .errors import BackendUnavailable, OperationFailed, ParseFailure, log_backend_error
from .utils import log_function_call

# 'lease' only works for libvirt-managed DHCP networks, so fall back to the
# ARP table and the guest agent.
DOMIFADDR_SOURCES = ("lease", "arp", "agent")


@dataclass(frozen=True)
class VmRecord:
    """
    One VM as reported by 'virsh list'.

    state keeps the text virsh printed. "running" (VmStatus.RUNNING) and
    "shut off" (VmStatus.SHUT_OFF) are the two states the UI acts on, see
    is_running and is_shut_off. Any other value ("paused", "in shutdown",
    "crashed", ...) is carried through unchanged for display only.
    """
    id: str
    name: str
    state: str

    @property
    def is_running(self) -> bool:
        return self.state == VmStatus.RUNNING

    @property
    def is_shut_off(self) -> bool:
        return self.state == VmStatus.SHUT_OFF


@dataclass(frozen=True)
class ListResult:
    """Parsed 'virsh list' output and the number of rows that had to be skipped."""
    records: tuple
    degraded: int = 0


def _is_separator(line: str) -> bool:
    return set(line) == {"-"}


def _is_header(parts: list[str]) -> bool:
    return len(parts) >= 3 and parts[0].lower() == "id"


def parse_list_output(output: str) -> ListResult:
    """
    Parse the tabular output of 'virsh list [--all]'.

    Example input::

         Id   Name       State
        --------------------------
         1    vm1        running
         -    vm2        shut off

    The header and separator lines are skipped when present. Any other line
    that does not have an id, a name and a state is skipped and counted in
    ListResult.degraded, as are rows repeating an already seen name. Output
    in an unexpected format therefore yields fewer records, never an error.
    """
    lines = [line.strip() for line in output.splitlines()]
    lines = [line for line in lines if line]
    if lines and _is_header(lines[0].split()):
        lines = lines[1:]

    records = []
    seen_names = set()
    degraded = 0
    for line in lines:
        if _is_separator(line):
            continue
        parts = line.split()
        if len(parts) < 3:
            logging.warning("Skipping malformed 'virsh list' row: %r", line)
            degraded += 1
            continue
        vm_id, name = parts[0], parts[1]
        if name in seen_names:
            logging.warning("Skipping duplicate VM name in 'virsh list' output: %s", name)
            degraded += 1
            continue
        seen_names.add(name)
        # State may contain spaces ("shut off", "in shutdown")
        records.append(VmRecord(id=vm_id, name=name, state=" ".join(parts[2:])))

    return ListResult(records=tuple(records), degraded=degraded)


def parse_domifaddr_output(output: str) -> str | None:
    """
    Return the first IPv4 address from 'virsh domifaddr' output.

    Output format::

         Name       MAC address          Protocol     Address
        -------------------------------------------------------
         vnet0      52:54:00:xx:xx:xx    ipv4         192.168.122.x/24
    """
    for line in output.splitlines()[2:]:
        parts = line.split()
        if len(parts) >= 4 and parts[2] == "ipv4":
            return parts[3].split("/")[0]
    return None


class VirshBackend:
    """Runs virsh and ssh on behalf of the UI."""

    def __init__(
        self,
        virsh_path: str = "virsh",
        ssh_path: str = "ssh",
        uri: str | None = None,
        ssh_user: str | None = None,
        resolve_ssh_address: bool = False,
    ):
        self.virsh_path = virsh_path
        self.ssh_path = ssh_path
        self.uri = uri
        self.ssh_user = ssh_user
        self.resolve_ssh_address = resolve_ssh_address

    @classmethod
    def from_config(cls, config: dict | None = None) -> "VirshBackend":
        """Build a backend from the loaded configuration."""
        if config is None:
            config = load_config()
        return cls(
            virsh_path=config.get("VIRSH_PATH") or "virsh",
            ssh_path=config.get("SSH_PATH") or "ssh",
            uri=config.get("CONNECT_URI"),
            ssh_user=config.get("SSH_USER"),
            resolve_ssh_address=bool(config.get("SSH_RESOLVE_ADDRESS")),
        )

    def _virsh_cmd(self, *args: str) -> list[str]:
        cmd = [self.virsh_path]
        if self.uri:
            cmd.extend(["-c", self.uri])
        cmd.extend(args)
        return cmd

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        """Run a command and capture its output."""
        logging.info("Running: %s", shlex.join(cmd))
        try:
            return subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise BackendUnavailable(f"Failed to run {cmd[0]}: {e}") from e

    def _handoff(self, cmd: list[str]) -> int:
        """Run an interactive command on the current terminal and wait for it."""
        logging.info("Handing terminal to: %s", shlex.join(cmd))
        try:
            completed = subprocess.run(cmd, check=False)
        except OSError as e:
            raise BackendUnavailable(f"Failed to run {cmd[0]}: {e}") from e
        logging.info("%s exited with status %d", cmd[0], completed.returncode)
        return completed.returncode

    @staticmethod
    def _error_text(completed: subprocess.CompletedProcess) -> str:
        text = (completed.stderr or completed.stdout or "").strip()
        return text or f"exit status {completed.returncode}"

    @log_function_call
    def list_vms(self, include_inactive: bool = False) -> ListResult:
        """
        List VMs in backend order.

        Raises:
            BackendUnavailable: virsh could not be run or exited with an error
        """
        args = ["list"]
        if include_inactive:
            args.append("--all")
        completed = self._run(self._virsh_cmd(*args))
        if completed.returncode != 0:
            raise BackendUnavailable(f"virsh list failed: {self._error_text(completed)}")

        result = parse_list_output(completed.stdout)
        if result.degraded:
            log_backend_error(
                "virsh list",
                ParseFailure(f"{result.degraded} unparseable row(s) skipped"),
            )
        logging.info(
            "Parsed %d VMs from virsh output (%d rows skipped)",
            len(result.records),
            result.degraded,
        )
        return result

    def _domain_action(self, action: str, name: str) -> None:
        completed = self._run(self._virsh_cmd(action, name))
        if completed.returncode != 0:
            raise OperationFailed(f"{action} {name} failed: {self._error_text(completed)}")

    @log_function_call
    def start(self, name: str) -> None:
        """Start a defined VM."""
        self._domain_action("start", name)

    @log_function_call
    def shutdown(self, name: str) -> None:
        """Ask a running VM to shut down."""
        self._domain_action("shutdown", name)

    def open_console(self, name: str) -> int:
        """
        Attach to the VM serial console. Returns once the console session
        ends, with its exit status.
        """
        return self._handoff(self._virsh_cmd("console", name))

    def resolve_address(self, name: str) -> str | None:
        """Look up an IPv4 address for a VM, trying each domifaddr source in turn."""
        logging.info("Looking up IP for VM '%s'", name)
        for source in DOMIFADDR_SOURCES:
            try:
                completed = self._run(self._virsh_cmd("domifaddr", name, "--source", source))
            except BackendUnavailable as e:
                logging.warning("virsh domifaddr --source %s failed: %s", source, e)
                continue
            if completed.returncode != 0:
                logging.warning("virsh domifaddr --source %s failed for VM '%s'", source, name)
                continue
            address = parse_domifaddr_output(completed.stdout)
            if address:
                logging.info("Resolved VM '%s' -> %s (source: %s)", name, address, source)
                return address
        logging.warning("No IPv4 address found for VM '%s' from any source", name)
        return None

    def ssh_target(self, name: str) -> str:
        """The destination passed to ssh for a VM."""
        host = name
        if self.resolve_ssh_address:
            host = self.resolve_address(name) or name
        if self.ssh_user:
            return f"{self.ssh_user}@{host}"
        return host

    def open_ssh(self, name: str) -> int:
        """
        Open an SSH session to the VM. Returns once the session ends, with
        its exit status.
        """
        return self._handoff([self.ssh_path, self.ssh_target(name)])
