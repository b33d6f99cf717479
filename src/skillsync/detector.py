"""Divergence detection: platform-vs-platform conflicts and platform-vs-canonical drift."""

from __future__ import annotations

import difflib
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from skillsync.frontmatter import canonical_dumps, identity_frontmatter, stored_files, stored_hash
from skillsync.hashing import hash_bytes, hash_matches, skill_fingerprint
from skillsync.models import (
    Conflict,
    ConflictType,
    MismatchType,
    OutOfSyncRecord,
    SkillOccurrence,
)
from skillsync.references import points_to, reference_targets

logger = logging.getLogger(__name__)

DIFF_LIMIT = 20
DIFF_TRUNCATED = "... (diff truncated)"


def normalize_for_comparison(frontmatter: dict[str, Any], body: str) -> str:
    """Core frontmatter minus sync data, keys sorted, plus the stripped body."""
    return canonical_dumps(identity_frontmatter(frontmatter)) + "\n" + body.strip()


def _comparison_body(occurrence: SkillOccurrence, root: Path | None) -> str:
    """Reference bodies compare by the file they resolve to, not by spelling."""
    reference = occurrence.reference
    if reference is None or root is None:
        return occurrence.body
    for candidate in reference_targets(reference, root, occurrence.file):
        if candidate.exists():
            return "@" + candidate.as_posix()
    return occurrence.body


def comparison_hash(occurrence: SkillOccurrence, root: Path | None = None) -> str:
    normalized = normalize_for_comparison(occurrence.frontmatter, _comparison_body(occurrence, root))
    return hash_bytes(normalized.encode())


def format_diff(text_a: str, text_b: str, limit: int = DIFF_LIMIT) -> list[str]:
    """Line diff of two bodies, cut to the first `limit` lines."""
    lines = list(
        difflib.unified_diff(
            text_a.splitlines(),
            text_b.splitlines(),
            lineterm="",
            n=1,
        )
    )
    # Drop the ---/+++ file header; there are no filenames to show
    lines = lines[2:]
    if len(lines) > limit:
        return lines[:limit] + [DIFF_TRUNCATED]
    return lines


def _conflict_type(a: SkillOccurrence, b: SkillOccurrence, root: Path | None) -> ConflictType:
    ref_a, ref_b = a.reference, b.reference
    if ref_a is None or ref_b is None:
        return ConflictType.CONTENT
    if ref_a == ref_b:
        return ConflictType.FRONTMATTER
    if root is not None:
        # Root-relative and file-relative spellings of the same target
        targets_a = set(reference_targets(ref_a, root, a.file))
        if targets_a & set(reference_targets(ref_b, root, b.file)):
            return ConflictType.FRONTMATTER
    return ConflictType.CONTENT


def is_synced_to(occurrence: SkillOccurrence, canonical: SkillOccurrence, root: Path) -> bool:
    """A reference aimed at canonical whose recorded hash (if any) is current."""
    if not occurrence.is_reference:
        return False
    if not points_to(occurrence.reference, root, occurrence.file, canonical.file):
        return False
    recorded = stored_hash(occurrence.frontmatter)
    if recorded is None:
        return True
    return hash_matches(recorded, skill_fingerprint(canonical.frontmatter, canonical.body))


def _index(occurrences: Iterable[SkillOccurrence]) -> dict[str, SkillOccurrence]:
    return {occ.skill_name: occ for occ in occurrences}


def detect_conflicts(
    occurrences_a: list[SkillOccurrence],
    occurrences_b: list[SkillOccurrence],
    *,
    canonical: Iterable[SkillOccurrence] = (),
    root: Path | None = None,
) -> list[Conflict]:
    """Compare same-named skills across two platforms.

    Key order and `metadata.sync` never cause a conflict. When a canonical
    copy exists, each side is tagged with whether it is a current reference
    so the resolver can restrict the choices to the stale side.
    """
    canonical_by_name = _index(canonical)
    others = _index(occurrences_b)
    conflicts: list[Conflict] = []
    for a in occurrences_a:
        b = others.get(a.skill_name)
        if b is None:
            continue
        hash_a, hash_b = comparison_hash(a, root), comparison_hash(b, root)
        if hash_a == hash_b:
            continue

        synced_a = synced_b = None
        common = canonical_by_name.get(a.skill_name)
        if common is not None and root is not None:
            synced_a = is_synced_to(a, common, root)
            synced_b = is_synced_to(b, common, root)

        conflicts.append(
            Conflict(
                skill_name=a.skill_name,
                platform_a=a.platform,
                platform_b=b.platform,
                path_a=a.path,
                path_b=b.path,
                hash_a=hash_a,
                hash_b=hash_b,
                content_a=a.body,
                content_b=b.body,
                conflict_type=_conflict_type(a, b, root),
                diff=format_diff(a.body, b.body),
                synced_a=synced_a,
                synced_b=synced_b,
            )
        )
    return conflicts


def classify_mismatch(
    occurrence: SkillOccurrence,
    canonical: SkillOccurrence,
    root: Path,
) -> tuple[MismatchType | None, bool, bool]:
    """Return (mismatch type or None when in sync, stale hash, wrong target)."""
    frontmatter_differs = canonical_dumps(identity_frontmatter(occurrence.frontmatter)) != canonical_dumps(
        identity_frontmatter(canonical.frontmatter)
    )
    recorded = stored_hash(occurrence.frontmatter)
    current = skill_fingerprint(canonical.frontmatter, canonical.body)
    stale = recorded is not None and not hash_matches(recorded, current)

    wrong_target = False
    if occurrence.is_reference:
        wrong_target = not points_to(occurrence.reference, root, occurrence.file, canonical.file)
        # The recorded hash still matching this frontmatter over the current
        # canonical body means only frontmatter moved
        own = skill_fingerprint(occurrence.frontmatter, canonical.body, stored_files(canonical.frontmatter))
        body_differs = wrong_target or (stale and not hash_matches(recorded or "", own))
    else:
        body_differs = occurrence.content != canonical.content

    if body_differs and frontmatter_differs:
        return MismatchType.BOTH, stale, wrong_target
    if body_differs:
        return MismatchType.BODY, stale, wrong_target
    if frontmatter_differs:
        return MismatchType.FRONTMATTER, stale, wrong_target
    return None, stale, wrong_target


def detect_out_of_sync(
    platform_occurrences: list[SkillOccurrence],
    canonical_occurrences: list[SkillOccurrence],
    platform_name: str,
    root: Path,
) -> list[OutOfSyncRecord]:
    """Platform occurrences that disagree with their canonical skill."""
    canonical_by_name = _index(canonical_occurrences)
    records: list[OutOfSyncRecord] = []
    for occ in platform_occurrences:
        canonical = canonical_by_name.get(occ.skill_name)
        if canonical is None:
            continue
        mismatch, stale, wrong_target = classify_mismatch(occ, canonical, root)
        if mismatch is None:
            continue
        logger.debug(f"{platform_name}/{occ.skill_name} out of sync ({mismatch})")
        records.append(
            OutOfSyncRecord(
                skill_name=occ.skill_name,
                platform=platform_name,
                platform_path=occ.path,
                canonical_path=canonical.path,
                mismatch_type=mismatch,
                platform_is_reference=occ.is_reference,
                platform_content=occ.body,
                canonical_content=canonical.body,
                stale_hash=stale,
                wrong_target=wrong_target,
            )
        )
    return records


def group_by_skill(records: Iterable[OutOfSyncRecord]) -> dict[str, list[OutOfSyncRecord]]:
    groups: dict[str, list[OutOfSyncRecord]] = {}
    for record in records:
        groups.setdefault(record.skill_name, []).append(record)
    return groups
