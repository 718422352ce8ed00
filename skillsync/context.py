from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from rich.console import Console

from skillsync import __version__
from skillsync.backup.store import BackupStore
from skillsync.config import SkillSyncConfig, load_config
from skillsync.constants import ENV_NO_COLOR
from skillsync.log import configure_logging, parse_level
from skillsync.parsers.tiered import SearchRoots
from skillsync.utils import find_repo_root


@dataclass(frozen=True)
class AppContext:
    """Process-wide values, built once at CLI entry and passed down explicitly."""

    console: Console
    err_console: Console
    config: SkillSyncConfig
    version: str
    user_home: Path
    cwd: Path
    repo_root: Optional[Path]
    env: Mapping[str, str] = field(default_factory=dict)

    @property
    def search_roots(self) -> SearchRoots:
        return SearchRoots(
            home=self.user_home,
            cwd=self.cwd,
            repo_root=self.repo_root,
            overrides=self.config.platform_paths,
        )

    def backup_store(self) -> BackupStore:
        return BackupStore(self.config.backups_dir)

    @property
    def logger(self) -> logging.Logger:
        return logging.getLogger("skillsync")


def build_context(
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
    verbose: bool = False,
    no_color: bool = False,
) -> AppContext:
    env = dict(os.environ if env is None else env)
    cwd = cwd or Path.cwd()
    user_home = Path.home()
    config = load_config(env, user_home, cwd)
    no_color = no_color or bool(env.get(ENV_NO_COLOR))
    console = Console(no_color=no_color, highlight=False)
    err_console = Console(stderr=True, no_color=no_color, highlight=False)
    level = logging.DEBUG if verbose else parse_level(config.log_level)
    configure_logging(level, err_console)
    return AppContext(
        console=console,
        err_console=err_console,
        config=config,
        version=__version__,
        user_home=user_home,
        cwd=cwd,
        repo_root=find_repo_root(cwd),
        env=env,
    )
