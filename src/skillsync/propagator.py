"""Push canonical core frontmatter and hash down to every platform reference."""

from __future__ import annotations

import logging
from pathlib import Path

from skillsync.frontmatter import FrontmatterError, read_skill
from skillsync.platforms import PlatformConfig, canonical_skill_file
from skillsync.promotion import write_platform_reference

logger = logging.getLogger(__name__)


def propagate(
    root: Path,
    skill_name: str,
    platforms: list[PlatformConfig],
    *,
    dry_run: bool = False,
) -> list[Path]:
    """Refresh every reference occurrence of skill_name. Returns rewritten paths.

    Literal platform copies are never touched; they are still pending their
    own promotion or resolution.
    """
    canonical_file = canonical_skill_file(root, skill_name)
    if not canonical_file.exists():
        logger.warning(f"Canonical skill {skill_name} not found, skipping propagation")
        return []

    updated: list[Path] = []
    for platform in platforms:
        platform_file = platform.skill_file(root, skill_name)
        if not platform_file.exists():
            continue
        try:
            doc = read_skill(platform_file)
        except (OSError, FrontmatterError) as e:
            logger.warning(f"Cannot read {platform_file}: {e}")
            continue
        if not doc.is_reference:
            continue
        if write_platform_reference(platform_file, canonical_file, root, dry_run=dry_run):
            updated.append(platform_file)
            logger.info(f"Propagated {skill_name} to {platform.name}")
    return updated
