"""Platform registry: which assistant folders hold skills, in projects and in $HOME."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

SKILL_FILE = "SKILL.md"
CANONICAL = "common"
COMMON_DIR = ".agents-common"
COMMON_SKILLS_DIR = f"{COMMON_DIR}/skills"

# name -> skills directory relative to the project root
PLATFORM_MAP: dict[str, str] = {
    "claude": ".claude/skills",
    "codex": ".codex/skills",
    "kilo": ".kilocode/skills",
    "cursor": ".cursor/skills",
    "windsurf": ".windsurf/skills",
    "gemini": ".gemini/skills",
    "cline": ".cline/skills",
}

# Only entries that differ from PLATFORM_MAP when running against $HOME
HOME_PLATFORM_MAP: dict[str, str] = {
    "windsurf": ".codeium/windsurf/skills",
}


@dataclass(frozen=True)
class PlatformConfig:
    name: str
    dir: str
    skills_dir: str

    def root_dir(self, root: Path) -> Path:
        return root / self.dir

    def skills_path(self, root: Path) -> Path:
        return root / self.skills_dir

    def skill_file(self, root: Path, skill_name: str) -> Path:
        return root / self.skills_dir / skill_name / SKILL_FILE


def canonical_skills_path(root: Path) -> Path:
    return root / COMMON_SKILLS_DIR


def canonical_skill_file(root: Path, skill_name: str) -> Path:
    return root / COMMON_SKILLS_DIR / skill_name / SKILL_FILE


def known_platforms() -> list[str]:
    return list(PLATFORM_MAP)


def get_platform_configs(
    names: list[str] | None = None,
    *,
    home_mode: bool = False,
) -> list[PlatformConfig]:
    """Build configs for the requested platform names (all when None).

    Unknown names are dropped with a warning instead of failing the run.
    """
    requested = names if names is not None else known_platforms()
    valid: list[PlatformConfig] = []
    invalid: list[str] = []
    for name in requested:
        if name not in PLATFORM_MAP:
            invalid.append(name)
            continue
        skills_dir = PLATFORM_MAP[name]
        if home_mode:
            skills_dir = HOME_PLATFORM_MAP.get(name, skills_dir)
        valid.append(PlatformConfig(name=name, dir=skills_dir.split("/")[0], skills_dir=skills_dir))
    if invalid:
        logger.warning(
            f"Invalid platform names ignored: {', '.join(invalid)} "
            f"(valid: {', '.join(known_platforms())})"
        )
    return valid
