"""Promotion: turn a literal platform skill into a canonical copy plus a reference.

Write order matters for crash safety: the canonical file is always written
before any platform file is rewritten to point at it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from skillsync.frontmatter import (
    CORE_FIELDS,
    SYNC_VERSION,
    SkillDocument,
    canonical_sync_block,
    dump_skill,
    get_sync_block,
    identity_frontmatter,
    read_skill,
    reference_sync_block,
    stored_files,
    stored_hash,
    with_sync_block,
    write_skill,
)
from skillsync.hashing import fingerprint, hash_changed, skill_fingerprint
from skillsync.platforms import canonical_skill_file
from skillsync.references import build_reference, points_to
from skillsync.writer import copy_file

logger = logging.getLogger(__name__)


def reference_frontmatter(
    platform_frontmatter: dict[str, Any],
    canonical_frontmatter: dict[str, Any],
    skill_hash: str,
) -> dict[str, Any]:
    """Canonical core fields, the platform's own non-core fields, and the hash."""
    merged = identity_frontmatter(canonical_frontmatter)
    for key, value in platform_frontmatter.items():
        if key not in CORE_FIELDS and key != "sync":
            merged[key] = value
    return with_sync_block(merged, reference_sync_block(skill_hash))


def reference_document(
    platform_doc: SkillDocument,
    canonical_doc: SkillDocument,
    skill_hash: str,
    reference: str,
) -> SkillDocument:
    return SkillDocument(
        frontmatter=reference_frontmatter(platform_doc.frontmatter, canonical_doc.frontmatter, skill_hash),
        body=reference + "\n",
    )


def write_canonical(
    canonical_file: Path,
    frontmatter: dict[str, Any],
    body: str,
    files: dict[str, str] | None = None,
) -> str:
    """Write a canonical SKILL.md with a fresh sync block. Returns its fingerprint."""
    files = dict(files or {})
    skill_hash = fingerprint(identity_frontmatter(frontmatter), body.strip(), files)
    doc = SkillDocument(
        frontmatter=with_sync_block(frontmatter, canonical_sync_block(skill_hash, files)),
        body=body.strip() + "\n",
    )
    write_skill(canonical_file, doc)
    return skill_hash


def refresh_canonical(canonical_file: Path, *, dry_run: bool = False) -> tuple[SkillDocument, str]:
    """Recompute the canonical fingerprint and store it if the recorded one is stale."""
    doc = read_skill(canonical_file)
    current = skill_fingerprint(doc.frontmatter, doc.body)
    sync = get_sync_block(doc.frontmatter)
    if hash_changed(current, stored_hash(doc.frontmatter)) or sync.get("version") != SYNC_VERSION:
        doc.frontmatter = with_sync_block(
            doc.frontmatter, canonical_sync_block(current, stored_files(doc.frontmatter))
        )
        if not dry_run:
            write_skill(canonical_file, doc)
            logger.info(f"Updated canonical hash for {canonical_file.parent.name}")
    return doc, current


def update_canonical_files(canonical_file: Path, files: dict[str, str]) -> str:
    """Replace the recorded dependent-file fingerprints and recompute the hash."""
    doc = read_skill(canonical_file)
    skill_hash = skill_fingerprint(doc.frontmatter, doc.body, files)
    doc.frontmatter = with_sync_block(doc.frontmatter, canonical_sync_block(skill_hash, files))
    write_skill(canonical_file, doc)
    return skill_hash


def write_platform_reference(
    platform_file: Path,
    canonical_file: Path,
    root: Path,
    *,
    dry_run: bool = False,
) -> bool:
    """Rewrite platform_file as a reference to canonical_file.

    Non-core platform fields survive. A reference already pointing at the
    canonical file keeps its spelling. Returns True when the file changed.
    """
    canonical_doc, skill_hash = refresh_canonical(canonical_file, dry_run=dry_run)
    platform_doc = read_skill(platform_file) if platform_file.exists() else SkillDocument()
    reference = f"@{platform_doc.reference}" if points_to(
        platform_doc.reference, root, platform_file, canonical_file
    ) else build_reference(canonical_file.parent.name)
    desired = reference_document(platform_doc, canonical_doc, skill_hash, reference)
    if platform_file.exists() and dump_skill(desired) == platform_file.read_text(encoding="utf-8"):
        return False
    if not dry_run:
        write_skill(platform_file, desired)
    return True


def promote(platform_file: Path, root: Path) -> Path | None:
    """Promote a literal platform skill into the canonical store.

    Returns the canonical path, or None when the file already is a reference
    or a canonical copy already exists (reconciled by the later phases).
    """
    doc = read_skill(platform_file)
    if doc.is_reference:
        return None
    skill_name = platform_file.parent.name
    canonical_file = canonical_skill_file(root, skill_name)
    if canonical_file.exists():
        logger.debug(f"Canonical copy of {skill_name} exists; not promoting {platform_file}")
        return None

    core = identity_frontmatter(doc.frontmatter)
    skill_hash = write_canonical(canonical_file, core, doc.content)

    stamped = SkillDocument(
        frontmatter=reference_frontmatter(doc.frontmatter, doc.frontmatter, skill_hash),
        body=build_reference(skill_name) + "\n",
    )
    write_skill(platform_file, stamped)
    logger.info(f"Promoted {skill_name} from {platform_file}")
    return canonical_file


def apply_platform_version(
    platform_file: Path,
    canonical_file: Path,
    root: Path,
    *,
    use_platform_body: bool,
) -> str:
    """Make a platform copy authoritative: its core frontmatter (and literal body) move into canonical.

    Canonical keeps its own non-core fields and recorded dependent files.
    The platform file is rewritten as a reference last. Returns the new fingerprint.
    """
    platform_doc = read_skill(platform_file)
    canonical_doc = read_skill(canonical_file)

    frontmatter = {k: v for k, v in canonical_doc.frontmatter.items() if k not in CORE_FIELDS and k != "sync"}
    frontmatter.update(identity_frontmatter(platform_doc.frontmatter))
    body = canonical_doc.content
    if use_platform_body and not platform_doc.is_reference:
        body = platform_doc.content

    skill_hash = write_canonical(canonical_file, frontmatter, body, stored_files(canonical_doc.frontmatter))
    _ = write_platform_reference(platform_file, canonical_file, root)
    logger.info(f"Applied {platform_file} to common skill {canonical_file.parent.name}")
    return skill_hash


def copy_skill(source: Path, target: Path) -> Path:
    return copy_file(source, target)
