"""Discovery: enumerate SKILL.md occurrences per platform and in the canonical store."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from skillsync.frontmatter import FrontmatterError, read_skill
from skillsync.models import ScanResult, SkillOccurrence
from skillsync.platforms import CANONICAL, SKILL_FILE, PlatformConfig, canonical_skills_path

logger = logging.getLogger(__name__)

IGNORED_DIRECTORIES = frozenset(
    {
        "node_modules",
        ".git",
        ".github",
        "dist",
        "build",
        "coverage",
        ".vscode",
        ".idea",
        "__pycache__",
    }
)
IGNORED_FILES = frozenset({".DS_Store"})


def find_skill_files(skills_dir: Path) -> list[Path]:
    """SKILL.md files under skills_dir, sorted.

    A directory holding SKILL.md is a skill; nothing below it is searched,
    so files inside a skill (dependents) never become occurrences.
    """
    if not skills_dir.is_dir():
        return []
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(skills_dir):
        if SKILL_FILE in filenames and Path(dirpath) != skills_dir:
            found.append(Path(dirpath) / SKILL_FILE)
            dirnames[:] = []
            continue
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)
    return sorted(found)


def load_occurrence(platform: str, path: Path) -> SkillOccurrence | None:
    """Parse one SKILL.md; unreadable or malformed files are skipped with a warning."""
    try:
        doc = read_skill(path)
    except (OSError, FrontmatterError) as e:
        logger.warning(f"Skipping {path}: {e}")
        return None
    return SkillOccurrence(
        platform=platform,
        skill_name=path.parent.name,
        path=str(path),
        frontmatter=doc.frontmatter,
        body=doc.body,
        is_reference=doc.is_reference,
    )


def scan_directory(platform: str, skills_dir: Path) -> list[SkillOccurrence]:
    occurrences: list[SkillOccurrence] = []
    for path in find_skill_files(skills_dir):
        occ = load_occurrence(platform, path)
        if occ is not None:
            occurrences.append(occ)
    return occurrences


def scan(root: Path, platforms: list[PlatformConfig]) -> ScanResult:
    """Build the inventory. Absent directories contribute nothing."""
    result = ScanResult(
        platforms={p.name: scan_directory(p.name, p.skills_path(root)) for p in platforms},
        canonical=scan_directory(CANONICAL, canonical_skills_path(root)),
    )
    logger.debug(
        f"Scanned {root}: {len(result.canonical)} canonical, "
        + ", ".join(f"{name}={len(occ)}" for name, occ in result.platforms.items())
    )
    return result
