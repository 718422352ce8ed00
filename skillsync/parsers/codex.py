from __future__ import annotations

import logging
import tomllib
from dataclasses import replace
from pathlib import Path

from skillsync.constants import AGENTS_FILENAME, CODEX_CONFIG_FILENAME, SKILLS_DIRNAME
from skillsync.errors import MalformedFrontmatterError, PermissionDeniedError, SkillFileError
from skillsync.models import Platform, Skill
from skillsync.parsers.base import ISkillParser, ParseResult, add_unique, collect, read_skill_file
from skillsync.parsers.frontmatter import normalize_content

logger = logging.getLogger(__name__)

CONFIG_SKILL_NAME = "codex-config"
AGENTS_SKILL_NAME = "agents"
CONFIG_INSTRUCTION_KEYS: tuple[str, ...] = ("instructions", "developer_instructions")
CONFIG_METADATA_KEYS: tuple[str, ...] = ("model", "approval_policy", "sandbox_mode", "profile")


class CodexParser(ISkillParser):
    """Reads ``<name>/SKILL.md`` folders.

    When the base is a ``skills`` directory, the sibling ``config.toml``
    instructions and ``AGENTS.md`` are read as aggregate, read-only skills.
    """

    platform = Platform.CODEX

    @property
    def codex_root(self) -> Path | None:
        if self.base.name != SKILLS_DIRNAME:
            return None
        return self.base.parent

    def exists(self) -> bool:
        root = self.codex_root
        if self.base.exists() or root is None:
            return self.base.exists()
        return (root / CODEX_CONFIG_FILENAME).is_file() or (root / AGENTS_FILENAME).is_file()

    def parse(self) -> ParseResult:
        result = ParseResult()
        seen: dict[str, Skill] = {}
        for path in self._skill_files(result):
            skill = collect(
                result,
                read_skill_file(path, self.platform, default_name=path.parent.name, scope=self.scope),
            )
            if skill is not None:
                add_unique(result, seen, skill)

        root = self.codex_root
        if root is not None:
            for reader in (self._read_config, self._read_agents):
                outcome = reader(root)
                skill = collect(result, outcome) if outcome is not None else None
                if skill is None:
                    continue
                if skill.name in seen:
                    logger.debug("Skill folder %s shadows aggregate %s", seen[skill.name].path, skill.path)
                    continue
                seen[skill.name] = skill
                result.skills.append(skill)

        result.skills.sort(key=lambda item: item.name)
        return result

    def _read_config(self, root: Path) -> Skill | SkillFileError | None:
        path = root / CODEX_CONFIG_FILENAME
        if not path.is_file():
            return None
        try:
            with path.open("rb") as handle:
                data = tomllib.load(handle)
            stat = path.stat()
        except PermissionError:
            return PermissionDeniedError(path)
        except tomllib.TOMLDecodeError as exc:
            return MalformedFrontmatterError(path, str(exc))
        instructions = next(
            (data[key] for key in CONFIG_INSTRUCTION_KEYS if isinstance(data.get(key), str) and data[key].strip()),
            None,
        )
        if instructions is None:
            return None
        metadata = {"source": CODEX_CONFIG_FILENAME}
        metadata.update({key: data[key] for key in CONFIG_METADATA_KEYS if key in data})
        return Skill(
            name=CONFIG_SKILL_NAME,
            platform=self.platform,
            description="Instructions from Codex config.toml",
            content=normalize_content(instructions),
            metadata=metadata,
            scope=self.scope,
            path=path.resolve(),
            mod_time=stat.st_mtime,
            aggregate=True,
        )

    def _read_agents(self, root: Path) -> Skill | SkillFileError | None:
        path = root / AGENTS_FILENAME
        if not path.is_file():
            return None
        outcome = read_skill_file(path, self.platform, default_name=AGENTS_SKILL_NAME, scope=self.scope)
        if isinstance(outcome, SkillFileError):
            return outcome
        metadata = dict(outcome.metadata)
        metadata.setdefault("source", AGENTS_FILENAME)
        return replace(outcome, metadata=metadata, aggregate=True)
