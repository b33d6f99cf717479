"""Shared fixtures for skillsync tests."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest
import yaml

from skillsync.frontmatter import SkillDocument, read_skill
from skillsync.platforms import COMMON_SKILLS_DIR, PLATFORM_MAP


def _skills_dir(root: Path, site: str) -> Path:
    if site == "common":
        return root / COMMON_SKILLS_DIR
    return root / PLATFORM_MAP[site]


def _skill_text(frontmatter: dict, body: str) -> str:
    raw = yaml.safe_dump(frontmatter, sort_keys=False) if frontmatter else ""
    return f"---\n{raw}---\n{body}"


def write_config(root: Path, assistants: list[str]) -> Path:
    path = root / ".agents-common" / "config.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"version": 1, "assistants": assistants}))
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root with claude and codex folders enabled in config."""
    (tmp_path / ".claude").mkdir()
    (tmp_path / ".codex").mkdir()
    write_config(tmp_path, ["claude", "codex"])
    return tmp_path


@pytest.fixture
def write_skill() -> Callable[..., Path]:
    """Factory: write_skill(root, site, name, body, frontmatter) -> SKILL.md path.

    site is a platform name or "common"; frontmatter defaults to name + description.
    """

    def _write(
        root: Path,
        site: str,
        name: str,
        body: str = "# Skill\n",
        frontmatter: dict | None = None,
    ) -> Path:
        if frontmatter is None:
            frontmatter = {"name": name, "description": f"{name} skill"}
        path = _skills_dir(root, site) / name / "SKILL.md"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_skill_text(frontmatter, body))
        return path

    return _write


@pytest.fixture
def read() -> Callable[[Path], SkillDocument]:
    return read_skill


@pytest.fixture
def make_config() -> Callable[[Path, list[str]], Path]:
    return write_config
