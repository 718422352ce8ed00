from typing import Optional

from rich.console import RenderableType
from rich.panel import Panel

from skillsync.tui.enums import UIStyle


class UISection:
    """Left-titled panels framing each block of CLI output."""

    @staticmethod
    def wrap(
        title: str,
        body: RenderableType,
        style: str = UIStyle.BLUE.value,
        subtitle: Optional[str] = None,
    ) -> Panel:
        return Panel(
            body,
            title=f"[bold]{title}[/bold]",
            title_align="left",
            subtitle=subtitle,
            subtitle_align="right",
            border_style=style,
            padding=(0, 1),
        )

    @staticmethod
    def note(title: str, body: str, style: str = UIStyle.DIM.value) -> Panel:
        # Notes size to their text instead of the terminal width.
        panel = UISection.wrap(title, body, style=style)
        panel.expand = False
        return panel
