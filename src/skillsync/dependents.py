"""Dependent files: non-SKILL.md files bundled in a skill directory.

Platform copies are consolidated into the canonical skill directory, their
fingerprints are recorded in `metadata.sync.files`, and the platform copies
are removed once the canonical copy is verified.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from skillsync.hashing import file_fingerprint, hash_matches
from skillsync.models import (
    ConsolidationResult,
    DependentAction,
    DependentConflict,
    DependentFile,
    DependentResolution,
)
from skillsync.platforms import SKILL_FILE, PlatformConfig
from skillsync.scanner import IGNORED_DIRECTORIES, IGNORED_FILES
from skillsync.writer import copy_file

logger = logging.getLogger(__name__)


def detect_dependent_files(skill_dir: Path) -> list[DependentFile]:
    """Every file under skill_dir except SKILL.md and ignored entries."""
    if not skill_dir.is_dir():
        return []
    found: list[DependentFile] = []
    for dirpath, dirnames, filenames in os.walk(skill_dir):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRECTORIES)
        for filename in sorted(filenames):
            if filename == SKILL_FILE or filename in IGNORED_FILES:
                continue
            path = Path(dirpath) / filename
            try:
                file_hash = file_fingerprint(path)
            except OSError as e:
                logger.warning(f"Skipping dependent file {path}: {e}")
                continue
            found.append(
                DependentFile(
                    relative_path=path.relative_to(skill_dir).as_posix(),
                    absolute_path=str(path),
                    hash=file_hash,
                )
            )
    return found


def collect_dependent_files(
    root: Path,
    skill_name: str,
    platforms: list[PlatformConfig],
) -> dict[str, list[DependentFile]]:
    """Dependent files per platform; platforms without any are left out."""
    result: dict[str, list[DependentFile]] = {}
    for platform in platforms:
        files = detect_dependent_files(platform.skills_path(root) / skill_name)
        if files:
            result[platform.name] = files
    return result


def _canonical_hash(path: Path) -> str | None:
    if not path.is_file():
        return None
    try:
        return file_fingerprint(path)
    except OSError as e:
        logger.warning(f"Cannot hash {path}: {e}")
        return None


def consolidate(
    skill_name: str,
    platform_files: dict[str, list[DependentFile]],
    canonical_dir: Path,
    stored_hashes: dict[str, str],
    *,
    dry_run: bool = False,
) -> ConsolidationResult:
    """Mirror platform dependent files into canonical_dir.

    A path is copied without asking when every platform copy agrees and no
    canonical copy exists. It is accepted as already consolidated when every
    platform copy equals the canonical one. Anything else is a conflict:
    platforms disagreeing with each other, or with a canonical copy (which
    may itself have been edited since its fingerprint was recorded).
    """
    by_path: dict[str, dict[str, DependentFile]] = {}
    for platform, files in platform_files.items():
        for dependent in files:
            by_path.setdefault(dependent.relative_path, {})[platform] = dependent

    result = ConsolidationResult()
    for relative_path in sorted(by_path):
        copies = by_path[relative_path]
        first = next(iter(copies.values()))
        all_agree = all(hash_matches(c.hash, first.hash) for c in copies.values())
        canonical_file = canonical_dir / relative_path
        canonical_hash = _canonical_hash(canonical_file)

        if canonical_hash is None and all_agree:
            if not dry_run:
                _ = copy_file(Path(first.absolute_path), canonical_file)
                logger.info(f"Consolidated {skill_name}/{relative_path} into common")
            result.fingerprints[relative_path] = first.hash
            continue
        if canonical_hash is not None and all_agree and hash_matches(first.hash, canonical_hash):
            result.fingerprints[relative_path] = canonical_hash
            continue

        result.conflicts.append(
            DependentConflict(
                skill_name=skill_name,
                relative_path=relative_path,
                versions={platform: c.hash for platform, c in copies.items()},
                paths={platform: c.absolute_path for platform, c in copies.items()},
                canonical_path=str(canonical_file) if canonical_hash is not None else None,
                canonical_hash=canonical_hash,
                stored_hash=stored_hashes.get(relative_path),
            )
        )
    return result


def apply_dependent_resolution(
    conflict: DependentConflict,
    resolution: DependentResolution,
    canonical_dir: Path,
) -> str | None:
    """Apply a decision. Returns the accepted canonical fingerprint, None when skipped."""
    target = canonical_dir / conflict.relative_path
    if resolution.action == DependentAction.USE_COMMON:
        if not target.is_file():
            logger.warning(f"Common copy of {conflict.skill_name}/{conflict.relative_path} is missing")
            return None
        return file_fingerprint(target)
    if resolution.action == DependentAction.USE_PLATFORM:
        platform = resolution.platform or conflict.platform
        source = Path(conflict.paths[platform])
        _ = copy_file(source, target)
        logger.info(f"Used {platform} copy of {conflict.skill_name}/{conflict.relative_path}")
        return file_fingerprint(target)
    return None


def remove_empty_dirs(skill_dir: Path) -> None:
    """Remove empty directories below skill_dir (never skill_dir itself)."""
    if not skill_dir.is_dir():
        return
    for dirpath, _dirnames, _filenames in os.walk(skill_dir, topdown=False):
        path = Path(dirpath)
        if path == skill_dir:
            continue
        try:
            if not any(path.iterdir()):
                path.rmdir()
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")


def cleanup_platform_files(
    platform_files: dict[str, list[DependentFile]],
    fingerprints: dict[str, str],
    canonical_dir: Path,
) -> list[Path]:
    """Delete platform copies of consolidated paths whose canonical copy verifies.

    Paths that were skipped (absent from fingerprints) stay in place.
    """
    removed: list[Path] = []
    skill_dirs: set[Path] = set()
    for platform, files in platform_files.items():
        for dependent in files:
            accepted = fingerprints.get(dependent.relative_path)
            if accepted is None:
                continue
            canonical_hash = _canonical_hash(canonical_dir / dependent.relative_path)
            if canonical_hash is None or not hash_matches(canonical_hash, accepted):
                logger.warning(
                    f"Keeping {platform} copy of {dependent.relative_path}: common copy does not verify"
                )
                continue
            path = Path(dependent.absolute_path)
            skill_dir = path.parents[len(Path(dependent.relative_path).parts) - 1]
            try:
                path.unlink()
            except OSError as e:
                logger.warning(f"Could not remove {path}: {e}")
                continue
            removed.append(path)
            skill_dirs.add(skill_dir)
    for skill_dir in sorted(skill_dirs):
        remove_empty_dirs(skill_dir)
    return removed
