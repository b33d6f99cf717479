"""Pydantic models for the sync engine."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from skillsync.references import extract_reference


class SkillOccurrence(BaseModel):
    platform: str
    skill_name: str
    path: str
    frontmatter: dict[str, Any] = Field(default_factory=dict)
    body: str = ""
    is_reference: bool = False

    @property
    def file(self) -> Path:
        return Path(self.path)

    @property
    def content(self) -> str:
        return self.body.strip()

    @property
    def reference(self) -> str | None:
        return extract_reference(self.body)


class ScanResult(BaseModel):
    platforms: dict[str, list[SkillOccurrence]] = Field(default_factory=dict)
    canonical: list[SkillOccurrence] = Field(default_factory=list)

    def canonical_for(self, skill_name: str) -> SkillOccurrence | None:
        for occ in self.canonical:
            if occ.skill_name == skill_name:
                return occ
        return None

    def platform_skill(self, platform: str, skill_name: str) -> SkillOccurrence | None:
        for occ in self.platforms.get(platform, []):
            if occ.skill_name == skill_name:
                return occ
        return None

    def occurrences_of(self, skill_name: str) -> list[SkillOccurrence]:
        return [
            occ
            for occurrences in self.platforms.values()
            for occ in occurrences
            if occ.skill_name == skill_name
        ]

    def skill_names(self) -> list[str]:
        names = {occ.skill_name for occ in self.canonical}
        for occurrences in self.platforms.values():
            names.update(occ.skill_name for occ in occurrences)
        return sorted(names)

    @property
    def is_empty(self) -> bool:
        return not self.canonical and not any(self.platforms.values())


class ConflictType(StrEnum):
    FRONTMATTER = "frontmatter"
    CONTENT = "content"


class Conflict(BaseModel):
    skill_name: str
    platform_a: str
    platform_b: str
    path_a: str
    path_b: str
    hash_a: str
    hash_b: str
    content_a: str = ""
    content_b: str = ""
    conflict_type: ConflictType = ConflictType.CONTENT
    diff: list[str] = Field(default_factory=list)
    # Whether each side's recorded hash matches canonical; None when unknown
    synced_a: bool | None = None
    synced_b: bool | None = None


class MismatchType(StrEnum):
    BODY = "body"
    FRONTMATTER = "frontmatter"
    BOTH = "both"


class OutOfSyncRecord(BaseModel):
    skill_name: str
    platform: str
    platform_path: str
    canonical_path: str
    mismatch_type: MismatchType
    platform_is_reference: bool
    platform_content: str = ""
    canonical_content: str = ""
    stale_hash: bool = False
    wrong_target: bool = False

    @property
    def body_differs(self) -> bool:
        return self.mismatch_type in (MismatchType.BODY, MismatchType.BOTH)

    @property
    def platform_authored(self) -> bool:
        """False when the divergence is only a stale or misdirected reference."""
        return not (self.platform_is_reference and self.body_differs)


class DependentFile(BaseModel):
    relative_path: str
    absolute_path: str
    hash: str


class DependentConflict(BaseModel):
    skill_name: str
    relative_path: str
    # platform name -> fingerprint / absolute path of that platform's copy
    versions: dict[str, str]
    paths: dict[str, str]
    canonical_path: str | None = None
    canonical_hash: str | None = None
    stored_hash: str | None = None

    @property
    def platform(self) -> str:
        return next(iter(self.versions))

    @property
    def canonical_edited(self) -> bool:
        return (
            self.canonical_hash is not None
            and self.stored_hash is not None
            and self.canonical_hash != self.stored_hash
        )


class ConsolidationResult(BaseModel):
    conflicts: list[DependentConflict] = Field(default_factory=list)
    # relative path -> fingerprint of the accepted canonical copy
    fingerprints: dict[str, str] = Field(default_factory=dict)


class ConflictAction(StrEnum):
    USE_A = "use-a"
    USE_B = "use-b"
    USE_COMMON = "use-common"
    KEEP_BOTH = "keep-both"
    ABORT = "abort"


class OutOfSyncAction(StrEnum):
    USE_PLATFORM = "use-platform"
    USE_COMMON = "use-common"
    ABORT = "abort"


class DependentAction(StrEnum):
    USE_COMMON = "use-common"
    USE_PLATFORM = "use-platform"
    SKIP = "skip"
    ABORT = "abort"


class Choice(BaseModel):
    label: str
    value: str


class OutOfSyncResolution(BaseModel):
    action: OutOfSyncAction
    platform: str | None = None


class DependentResolution(BaseModel):
    action: DependentAction
    platform: str | None = None
