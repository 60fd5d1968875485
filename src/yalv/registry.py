"""
VM registry and selection state
"""

import logging

from .backend import ListResult, VmRecord
from .constants import ViewFilter


class VmRegistry:
    """
    Holds the VM list last reported by the backend, the active view filter
    and the cursor into the visible VMs.

    The cursor is None exactly when no VM is visible.
    """

    def __init__(self, backend, view_filter: str = ViewFilter.RUNNING_ONLY):
        self.backend = backend
        self.view_filter = view_filter
        self.records: tuple[VmRecord, ...] = ()
        self.cursor: int | None = None
        self.degraded_rows = 0

    def visible(self) -> tuple[VmRecord, ...]:
        """VMs shown under the current filter, in backend order."""
        if self.view_filter == ViewFilter.RUNNING_ONLY:
            return tuple(record for record in self.records if record.is_running)
        return self.records

    def selected(self) -> VmRecord | None:
        """The VM under the cursor, or None if nothing is visible."""
        visible = self.visible()
        if self.cursor is None or not visible:
            return None
        return visible[self.cursor]

    @property
    def selected_name(self) -> str | None:
        record = self.selected()
        return record.name if record else None

    def refresh(self, view_filter: str | None = None) -> ListResult:
        """
        Reload the VM list from the backend.

        Records and filter are only replaced once the backend call succeeded;
        on error the exception propagates and the registry is unchanged.
        """
        if view_filter is None:
            view_filter = self.view_filter
        previous_name = self.selected_name

        result = self.backend.list_vms(include_inactive=view_filter == ViewFilter.ALL)

        self.records = tuple(result.records)
        self.view_filter = view_filter
        self.degraded_rows = result.degraded
        self._clamp_cursor(previous_name)
        logging.debug(
            "Registry refreshed: %d records, filter=%s, cursor=%s",
            len(self.records),
            self.view_filter,
            self.cursor,
        )
        return result

    def toggle_filter(self) -> ListResult:
        """Switch between all VMs and running VMs only."""
        if self.view_filter == ViewFilter.ALL:
            new_filter = ViewFilter.RUNNING_ONLY
        else:
            new_filter = ViewFilter.ALL
        return self.refresh(new_filter)

    def move_selection(self, delta: int) -> None:
        visible = self.visible()
        if self.cursor is None or not visible:
            return
        self.cursor = max(0, min(len(visible) - 1, self.cursor + delta))

    def _clamp_cursor(self, previous_name: str | None) -> None:
        """Keep the previously selected VM under the cursor if it is still visible."""
        visible = self.visible()
        if not visible:
            self.cursor = None
            return
        for index, record in enumerate(visible):
            if record.name == previous_name:
                self.cursor = index
                return
        self.cursor = 0
