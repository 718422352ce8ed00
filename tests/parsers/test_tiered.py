"""Tests for scope-aware parsing across tiers."""

from pathlib import Path

from skillsync.errors import DuplicateSkillNameError, ScopeCollisionError
from skillsync.models import Platform, Skill, SkillScope, SkillType
from skillsync.parsers.base import ParseResult
from skillsync.parsers.tiered import (
    ScopedPath,
    SearchRoots,
    TieredParser,
    default_search_paths,
    infer_scope,
    merge_by_precedence,
    writable_root,
)


def _skill(name: str, scope: SkillScope, content: str = "", type: SkillType = SkillType.SKILL) -> Skill:
    return Skill(name=name, platform=Platform.CURSOR, content=content, scope=scope, type=type)


def test_repo_scope_wins_over_user(home: Path, workdir: Path, write_skill) -> None:
    write_skill(workdir / ".cursor" / "skills" / "alpha.md", "repo alpha\n")
    write_skill(home / ".cursor" / "skills" / "alpha.md", "user alpha\n")
    write_skill(home / ".cursor" / "skills" / "beta.md", "user beta\n")

    parser = TieredParser.for_platform(Platform.CURSOR, SearchRoots(home=home, cwd=workdir))
    result = parser.parse()

    skills = result.by_name()
    assert sorted(skills) == ["alpha", "beta"]
    assert skills["alpha"].content == "repo alpha\n"
    assert skills["alpha"].scope == SkillScope.REPO
    assert skills["beta"].scope == SkillScope.USER
    assert result.issues == []


def test_precedence_does_not_depend_on_path_order(tmp_path: Path, write_skill) -> None:
    user_dir = tmp_path / "user"
    repo_dir = tmp_path / "repo"
    write_skill(user_dir / "alpha.md", "user\n")
    write_skill(repo_dir / "alpha.md", "repo\n")

    parser = TieredParser(
        Platform.CURSOR,
        [ScopedPath(SkillScope.USER, user_dir), ScopedPath(SkillScope.REPO, repo_dir)],
    )

    assert parser.parse().skills[0].content == "repo\n"


def test_plugin_scope_is_shadowed_by_user(home: Path, workdir: Path, write_skill) -> None:
    cache = home / ".claude" / "plugins" / "cache"
    write_skill(cache / "market" / "kit" / "1.0.0" / "skills" / "lint" / "SKILL.md", "plugin\n")
    write_skill(cache / "market" / "kit" / "1.0.0" / "skills" / "format" / "SKILL.md", "plugin format\n")
    write_skill(home / ".claude" / "skills" / "lint" / "SKILL.md", "user\n")

    result = TieredParser.for_platform(Platform.CLAUDE_CODE, SearchRoots(home=home, cwd=workdir)).parse()

    skills = result.by_name()
    assert skills["lint"].content == "user\n"
    assert skills["lint"].scope == SkillScope.USER
    assert skills["format"].scope == SkillScope.PLUGIN


def test_parse_from_scope(home: Path, workdir: Path, write_skill) -> None:
    write_skill(workdir / ".cursor" / "skills" / "alpha.md")
    write_skill(home / ".cursor" / "skills" / "beta.md")
    parser = TieredParser.for_platform(Platform.CURSOR, SearchRoots(home=home, cwd=workdir))

    assert [skill.name for skill in parser.parse_from_scope(SkillScope.USER).skills] == ["beta"]
    assert [skill.name for skill in parser.parse_from_scope(SkillScope.REPO).skills] == ["alpha"]
    assert [skill.name for skill in parser.parse_with_scope_filter({SkillScope.USER, SkillScope.REPO}).skills] == [
        "alpha",
        "beta",
    ]


def test_same_scope_clash_across_locations_keeps_first_reading(home: Path, workdir: Path, write_skill) -> None:
    first = home / "rules-a"
    second = home / "rules-b"
    write_skill(first / "alpha.md", "a\n")
    write_skill(second / "alpha.md", "b\n")
    roots = SearchRoots(home=home, cwd=workdir, overrides={Platform.CURSOR: (first, second)})

    result = TieredParser.for_platform(Platform.CURSOR, roots).parse()

    assert [skill.content for skill in result.skills] == ["a\n"]
    assert result.errors == []
    assert isinstance(result.warnings[0].error, DuplicateSkillNameError)


def test_cross_scope_type_collision_warns(home: Path, workdir: Path, write_skill) -> None:
    write_skill(workdir / ".claude" / "commands" / "alpha.md", "command\n")
    write_skill(home / ".claude" / "skills" / "alpha" / "SKILL.md", "skill\n")

    result = TieredParser.for_platform(Platform.CLAUDE_CODE, SearchRoots(home=home, cwd=workdir)).parse()

    assert result.skills[0].type == SkillType.PROMPT
    assert result.errors == []
    assert isinstance(result.warnings[0].error, ScopeCollisionError)


def test_merge_by_precedence_keeps_issues() -> None:
    repo = ParseResult(skills=[_skill("alpha", SkillScope.REPO, "repo")])
    user = ParseResult(skills=[_skill("alpha", SkillScope.USER, "user"), _skill("beta", SkillScope.USER)])
    system = ParseResult(skills=[_skill("beta", SkillScope.SYSTEM, "system")])

    merged = merge_by_precedence([system, user, repo])

    assert [(skill.name, skill.scope) for skill in merged.skills] == [
        ("alpha", SkillScope.REPO),
        ("beta", SkillScope.USER),
    ]
    assert merged.issues == []


def test_injected_parse_function() -> None:
    calls = []

    def fake_parse(platform: Platform, path: Path, scope: SkillScope) -> ParseResult:
        calls.append((path.name, scope))
        return ParseResult(skills=[Skill(name=path.name, platform=platform)])

    parser = TieredParser(
        Platform.CODEX,
        [ScopedPath(SkillScope.REPO, Path("/x/a")), ScopedPath(SkillScope.ADMIN, Path("/x/b"))],
        parse_fn=fake_parse,
    )

    result = parser.parse()
    assert [(skill.name, skill.scope) for skill in result.skills] == [("a", SkillScope.REPO), ("b", SkillScope.ADMIN)]
    assert calls == [("a", SkillScope.REPO), ("b", SkillScope.ADMIN)]

    calls.clear()
    parser.parse_from_scope(SkillScope.ADMIN)
    assert calls == [("b", SkillScope.ADMIN)]


def test_default_search_paths(home: Path, workdir: Path, tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    roots = SearchRoots(home=home, cwd=workdir, repo_root=repo)

    claude = default_search_paths(Platform.CLAUDE_CODE, roots)
    assert [scoped.scope for scoped in claude] == [
        SkillScope.REPO,
        SkillScope.REPO,
        SkillScope.USER,
        SkillScope.PLUGIN,
    ]
    assert claude[0].path == workdir / ".claude" / "skills"
    assert claude[1].path == repo / ".claude" / "skills"
    assert claude[3].path == home / ".claude" / "plugins" / "cache"

    codex = default_search_paths(Platform.CODEX, SearchRoots(home=home, cwd=workdir))
    assert [scoped.scope for scoped in codex] == [SkillScope.REPO, SkillScope.USER, SkillScope.SYSTEM]
    assert codex[2].path == Path("/etc/codex/skills")


def test_override_paths_infer_scope(home: Path, workdir: Path) -> None:
    roots = SearchRoots(
        home=home,
        cwd=workdir,
        repo_root=workdir,
        overrides={Platform.CURSOR: (workdir / "rules", home / "rules", Path("/opt/cursor/rules"))},
    )
    paths = default_search_paths(Platform.CURSOR, roots)
    assert [scoped.scope for scoped in paths] == [SkillScope.REPO, SkillScope.USER, SkillScope.ADMIN]


def test_infer_scope(home: Path, workdir: Path) -> None:
    assert infer_scope(home / ".claude" / "plugins" / "cache" / "m", home, None) == SkillScope.PLUGIN
    assert infer_scope(workdir / ".cursor" / "skills", home, workdir) == SkillScope.REPO
    assert infer_scope(home / ".cursor" / "skills", home, workdir) == SkillScope.USER
    assert infer_scope(Path("/etc/codex/skills"), home, None) == SkillScope.SYSTEM
    assert infer_scope(Path("/opt/skills"), home, None) == SkillScope.ADMIN
    assert infer_scope(Path("/srv/skills"), home, None) == SkillScope.USER


def test_writable_root(home: Path, workdir: Path) -> None:
    roots = SearchRoots(home=home, cwd=workdir)
    assert writable_root(Platform.CURSOR, SkillScope.USER, roots) == home / ".cursor" / "skills"
    assert writable_root(Platform.CODEX, SkillScope.REPO, roots) == workdir / ".codex" / "skills"


def test_existing_paths(home: Path, workdir: Path, write_skill) -> None:
    write_skill(home / ".cursor" / "skills" / "alpha.md")
    parser = TieredParser.for_platform(Platform.CURSOR, SearchRoots(home=home, cwd=workdir))

    assert [scoped.scope for scoped in parser.existing_paths()] == [SkillScope.USER]
    assert parser.existing_paths({SkillScope.REPO}) == []
