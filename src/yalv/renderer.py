"""
Build the screen contents from the registry.
"""

from dataclasses import dataclass

from rich.text import Text

from .constants import (
    AppInfo, MessageLevel, StateColors, StatusText, ViewFilter,
)

HIGHLIGHT_SYMBOL = ">> "
ID_WIDTH = 6
NAME_WIDTH = 24

MESSAGE_STYLES = {
    MessageLevel.INFO: "bold",
    MessageLevel.WARNING: "bold yellow",
    MessageLevel.ERROR: "bold red",
}


@dataclass(frozen=True)
class Frame:
    """Everything needed to draw one screen."""
    title: str
    header: Text
    rows: tuple
    empty_message: str | None
    status_line: Text

    def body(self) -> Text:
        """Header and VM rows (or the empty-state message) as one block of text."""
        lines = [self.header]
        if self.empty_message:
            lines.append(Text(self.empty_message, style="italic"))
        else:
            lines.extend(self.rows)
        return Text("\n").join(lines)


def _format_row(record, highlighted: bool) -> Text:
    marker = HIGHLIGHT_SYMBOL if highlighted else " " * len(HIGHLIGHT_SYMBOL)
    row = Text(marker)
    row.append(f"{record.id:<{ID_WIDTH}}")
    row.append(f"{record.name:<{NAME_WIDTH}} ")
    row.append(record.state, style=StateColors.COLOR.get(record.state, ""))
    if highlighted:
        row.stylize("reverse")
    return row


def render(registry, status=None) -> Frame:
    """
    Render the registry view.

    Args:
        registry: The VmRegistry to display
        status: Optional StatusMessage from the last action
    """
    visible = registry.visible()
    header = Text(
        " " * len(HIGHLIGHT_SYMBOL) + f"{'Id':<{ID_WIDTH}}{'Name':<{NAME_WIDTH}} State",
        style="bold",
    )
    rows = tuple(
        _format_row(record, index == registry.cursor)
        for index, record in enumerate(visible)
    )

    empty_message = None
    if not visible:
        if registry.view_filter == ViewFilter.RUNNING_ONLY:
            empty_message = StatusText.EMPTY_RUNNING
        else:
            empty_message = StatusText.EMPTY_ALL

    filter_label = StatusText.FILTER_LABELS.get(registry.view_filter, registry.view_filter)
    status_line = Text(f"[{filter_label}] {len(visible)} VM(s) | {StatusText.KEY_HINTS}")
    if registry.degraded_rows:
        status_line.append(" | ")
        status_line.append(
            StatusText.DEGRADED.format(count=registry.degraded_rows),
            style=MESSAGE_STYLES[MessageLevel.WARNING],
        )
    if status is not None:
        status_line.append(" | ")
        status_line.append(status.text, style=MESSAGE_STYLES.get(status.level, ""))

    return Frame(
        title=f"{AppInfo.namecase} - {AppInfo.fullname}",
        header=header,
        rows=rows,
        empty_message=empty_message,
        status_line=status_line,
    )
