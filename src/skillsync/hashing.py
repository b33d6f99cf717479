"""Skill fingerprints: sha256 over core frontmatter, body, and dependent files."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from skillsync.frontmatter import canonical_dumps, identity_frontmatter, stored_files

PREFIX = "sha256-"


def fingerprint(
    core_frontmatter: Mapping[str, Any],
    body: str,
    dependent_files: Mapping[str, str] | Iterable[tuple[str, str]] = (),
) -> str:
    """Fingerprint a skill state as `sha256-<hex>`.

    Key order (at any depth) and dependent-file order do not matter; any
    change to a core value, the body, or a file fingerprint does.
    """
    files = dependent_files.items() if isinstance(dependent_files, Mapping) else dependent_files
    digest = hashlib.sha256()
    digest.update(canonical_dumps(dict(core_frontmatter)).encode())
    digest.update(b"\n")
    digest.update(body.encode())
    digest.update(b"\n")
    for path, file_hash in sorted(files):
        digest.update(f"{path}:{file_hash}\n".encode())
    return PREFIX + digest.hexdigest()


def skill_fingerprint(
    frontmatter: Mapping[str, Any],
    body: str,
    files: Mapping[str, str] | None = None,
) -> str:
    """Fingerprint a parsed SKILL.md as it stands on disk.

    Uses the identity frontmatter and stripped body; dependent files default
    to the `metadata.sync.files` recorded in the frontmatter itself.
    """
    data = dict(frontmatter)
    recorded = stored_files(data) if files is None else files
    return fingerprint(identity_frontmatter(data), body.strip(), recorded)


def hash_bytes(data: bytes) -> str:
    return PREFIX + hashlib.sha256(data).hexdigest()


def file_fingerprint(path: Path) -> str:
    return hash_bytes(path.read_bytes())


def _normalize(value: str) -> str:
    return value if value.startswith(PREFIX) else PREFIX + value


def hash_matches(a: str, b: str) -> bool:
    """Compare fingerprints, tolerating a missing `sha256-` tag on either side."""
    return _normalize(a) == _normalize(b)


def hash_changed(current: str, stored: str | None) -> bool:
    if not stored:
        return True
    return not hash_matches(current, stored)
