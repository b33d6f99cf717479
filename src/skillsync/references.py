"""Reference bodies: `@<path>/SKILL.md` pointers from a platform copy to the canonical skill."""

from __future__ import annotations

import re
from pathlib import Path

from skillsync.platforms import COMMON_SKILLS_DIR, SKILL_FILE

_REFERENCE_RE = re.compile(r"@(\S+)")


def extract_reference(body: str) -> str | None:
    """Return the path of a reference body, or None for literal content."""
    match = _REFERENCE_RE.fullmatch(body.strip())
    return match.group(1) if match else None


def is_reference(body: str) -> bool:
    return extract_reference(body) is not None


def canonical_reference_path(skill_name: str) -> str:
    return f"{COMMON_SKILLS_DIR}/{skill_name}/{SKILL_FILE}"


def build_reference(skill_name: str) -> str:
    """Root-relative reference string, e.g. `@.agents-common/skills/x/SKILL.md`."""
    return f"@{canonical_reference_path(skill_name)}"


def reference_targets(reference: str, root: Path, platform_file: Path) -> list[Path]:
    """Candidate absolute targets: root-relative first, then file-relative."""
    return [
        (root / reference).resolve(),
        (platform_file.parent / reference).resolve(),
    ]


def points_to(reference: str | None, root: Path, platform_file: Path, canonical_file: Path) -> bool:
    """True when reference resolves to canonical_file under either convention."""
    if reference is None:
        return False
    target = canonical_file.resolve()
    return any(candidate == target for candidate in reference_targets(reference, root, platform_file))
