from __future__ import annotations

from typing import Mapping, Optional, Protocol

from skillsync.sync.models import Conflict, ResolutionChoice


class ConflictResolver(Protocol):
    def resolve(self, conflict: Conflict) -> ResolutionChoice: ...


class ScriptedResolver:
    """Answers from a name -> choice mapping, falling back to ``default``."""

    def __init__(
        self,
        choices: Optional[Mapping[str, ResolutionChoice | str]] = None,
        default: ResolutionChoice = ResolutionChoice.SKIP,
    ) -> None:
        self.choices = {name: ResolutionChoice(choice) for name, choice in (choices or {}).items()}
        self.default = default
        self.seen: list[str] = []

    def resolve(self, conflict: Conflict) -> ResolutionChoice:
        self.seen.append(conflict.name)
        return self.choices.get(conflict.name, self.default)
