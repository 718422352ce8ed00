"""Interactive conflict resolution: a Textual app and a plain prompt fallback."""

from __future__ import annotations

import sys

import click
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.widgets import Footer, Header, Static

from skillsync.sync.models import Conflict, ResolutionChoice
from skillsync.sync.resolvers import ConflictResolver
from skillsync.tui.renderers import SyncConsoleUI
from skillsync.tui.tables import DiffView
from skillsync.utils import compact_home_path


class ConflictSelectorApp(App[ResolutionChoice]):
    """Shows one conflict and returns the user's choice."""

    TITLE = "Resolve Conflict"
    CSS = """
    Screen {
        layout: vertical;
    }
    #info {
        height: 3;
        content-align: center middle;
        background: $primary-darken-2;
        color: $text;
        padding: 0 1;
    }
    #diff {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("s", "choose('use-source')", "Use Source"),
        Binding("t", "choose('use-target')", "Use Target"),
        Binding("m", "choose('merge')", "Merge"),
        Binding("k", "choose('skip')", "Skip"),
        Binding("q", "choose('skip')", "Quit"),
    ]

    def __init__(self, conflict: Conflict, position: str = "") -> None:
        super().__init__()
        self._conflict = conflict
        self._position = position

    def compose(self) -> ComposeResult:
        yield Header()
        source = compact_home_path(self._conflict.source.path or "")
        target = compact_home_path(self._conflict.target.path or "")
        prefix = f"{self._position} " if self._position else ""
        yield Static(
            f"{prefix}{self._conflict.name} ({self._conflict.type.value}) | source: {source} | target: {target}",
            id="info",
        )
        with VerticalScroll(id="diff"):
            yield Static(DiffView.conflict(self._conflict))
        yield Footer()

    def action_choose(self, choice: str) -> None:
        self.exit(ResolutionChoice(choice))


class TextualConflictResolver:
    def __init__(self) -> None:
        self._count = 0

    def resolve(self, conflict: Conflict) -> ResolutionChoice:
        self._count += 1
        choice = ConflictSelectorApp(conflict, position=f"#{self._count}").run()
        return choice or ResolutionChoice.SKIP


class PromptConflictResolver:
    """Line-oriented fallback used when stdin/stdout are not terminals."""

    def __init__(self, ui: SyncConsoleUI) -> None:
        self.ui = ui

    def resolve(self, conflict: Conflict) -> ResolutionChoice:
        self.ui.render_conflict(conflict)
        answer = click.prompt(
            f"Resolve {conflict.name}",
            type=click.Choice([choice.value for choice in ResolutionChoice]),
            default=ResolutionChoice.SKIP.value,
            show_choices=True,
        )
        return ResolutionChoice(answer)


def terminal_resolver(ui: SyncConsoleUI) -> ConflictResolver:
    if sys.stdin.isatty() and sys.stdout.isatty():
        return TextualConflictResolver()
    return PromptConflictResolver(ui)
