"""SKILL.md frontmatter: YAML parse/dump, core fields, and the tool-owned sync block.

A skill file is a `---` delimited YAML mapping followed by a body:

    ---
    name: alpha
    metadata:
      sync:
        version: 2
        hash: "sha256-..."
    ---
    @.agents-common/skills/alpha/SKILL.md

`canonical_dumps` is the one serialization used both for fingerprints and for
conflict normalization, so the two always agree on what "equal" means.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from skillsync.references import extract_reference
from skillsync.writer import atomic_write

DELIMITER = "---"
SYNC_VERSION = 2

CORE_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "license",
    "compatibility",
    "metadata",
    "allowed-tools",
)

# Legacy top-level stamp: sync: {managed-by, refactored}
_LEGACY_SYNC_KEY = "sync"


class FrontmatterError(Exception):
    """Raised when a skill file's frontmatter is not a valid YAML mapping."""


@dataclass
class SkillDocument:
    frontmatter: dict[str, Any] = field(default_factory=dict)
    body: str = ""

    @property
    def content(self) -> str:
        """Body with surrounding whitespace removed; the unit of comparison."""
        return self.body.strip()

    @property
    def reference(self) -> str | None:
        return extract_reference(self.body)

    @property
    def is_reference(self) -> bool:
        return self.reference is not None


def parse_skill(text: str) -> SkillDocument:
    """Split text into frontmatter mapping and body.

    Text without an opening delimiter is all body.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != DELIMITER:
        return SkillDocument(frontmatter={}, body=text)

    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == DELIMITER:
            raw = "".join(lines[1:i])
            body = "".join(lines[i + 1 :])
            break
    else:
        raise FrontmatterError("missing closing frontmatter delimiter")

    try:
        data = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as e:
        raise FrontmatterError(f"invalid YAML frontmatter: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontmatterError("frontmatter must be a mapping")
    return SkillDocument(frontmatter=data, body=body)


def dump_skill(doc: SkillDocument) -> str:
    if doc.frontmatter:
        raw = yaml.safe_dump(
            doc.frontmatter,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
    else:
        raw = ""
    body = doc.body
    if body and not body.endswith("\n"):
        body += "\n"
    return f"{DELIMITER}\n{raw}{DELIMITER}\n{body}"


def read_skill(path: Path) -> SkillDocument:
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise FrontmatterError(f"not valid UTF-8: {e}") from e
    return parse_skill(text)


def write_skill(path: Path, doc: SkillDocument) -> None:
    atomic_write(path, dump_skill(doc))


def canonical_dumps(value: Any) -> str:
    """Deterministic JSON: keys sorted at every depth, compact separators."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def pick_core_frontmatter(data: dict[str, Any]) -> dict[str, Any]:
    return {key: copy.deepcopy(data[key]) for key in CORE_FIELDS if data.get(key) is not None}


def strip_sync_metadata(data: dict[str, Any]) -> dict[str, Any]:
    """Drop `metadata.sync` (and the legacy top-level `sync`); drop empty metadata."""
    cleaned = dict(data)
    cleaned.pop(_LEGACY_SYNC_KEY, None)
    metadata = cleaned.get("metadata")
    if isinstance(metadata, dict):
        metadata = {k: v for k, v in metadata.items() if k != "sync"}
        if metadata:
            cleaned["metadata"] = metadata
        else:
            del cleaned["metadata"]
    return cleaned


def identity_frontmatter(data: dict[str, Any]) -> dict[str, Any]:
    """Core frontmatter without tool-owned sync data: what fingerprints cover."""
    return strip_sync_metadata(pick_core_frontmatter(data))


def get_sync_block(data: dict[str, Any]) -> dict[str, Any]:
    metadata = data.get("metadata")
    if not isinstance(metadata, dict):
        return {}
    sync = metadata.get("sync")
    return sync if isinstance(sync, dict) else {}


def stored_hash(data: dict[str, Any]) -> str | None:
    value = get_sync_block(data).get("hash")
    return value if isinstance(value, str) and value else None


def stored_files(data: dict[str, Any]) -> dict[str, str]:
    files = get_sync_block(data).get("files")
    if not isinstance(files, dict):
        return {}
    return {str(k): str(v) for k, v in files.items()}


def with_sync_block(data: dict[str, Any], block: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of data whose metadata.sync is exactly block."""
    result = copy.deepcopy(data)
    result.pop(_LEGACY_SYNC_KEY, None)
    metadata = result.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    metadata["sync"] = block
    result["metadata"] = metadata
    return result


def canonical_sync_block(fingerprint: str, files: dict[str, str]) -> dict[str, Any]:
    return {"version": SYNC_VERSION, "hash": fingerprint, "files": dict(sorted(files.items()))}


def reference_sync_block(fingerprint: str) -> dict[str, Any]:
    return {"hash": fingerprint}
