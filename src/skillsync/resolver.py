"""Resolution: compute the legal choices for a detected issue and obtain a decision.

Two policies:
- interactive: ask the injected Prompter, offering only legal choices.
- fail-fast: never ask; raise UnresolvedConflictError naming every affected skill.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum

from skillsync.models import (
    Choice,
    Conflict,
    ConflictAction,
    DependentAction,
    DependentConflict,
    DependentResolution,
    OutOfSyncAction,
    OutOfSyncRecord,
    OutOfSyncResolution,
)
from skillsync.prompts import Prompter

_SEP = ":"


class SyncAbortedError(Exception):
    """Raised when the user chooses to abort the run."""


class UnresolvedConflictError(Exception):
    """Raised under the fail-fast policy; names every affected skill."""

    def __init__(self, kind: str, skill_names: Iterable[str]) -> None:
        self.kind = kind
        self.skill_names = sorted(set(skill_names))
        super().__init__(f"{kind} detected in: {', '.join(self.skill_names)}")


class ResolutionPolicy(StrEnum):
    INTERACTIVE = "interactive"
    FAIL_FAST = "fail-fast"


def _with_platform(action: str, platform: str) -> str:
    return f"{action}{_SEP}{platform}"


def _split_platform(value: str) -> tuple[str, str | None]:
    action, _, platform = value.partition(_SEP)
    return action, platform or None


def conflict_choices(conflict: Conflict, *, has_canonical: bool) -> list[Choice]:
    """Choices for a two-platform conflict.

    When exactly one side is a current reference, only the stale side may be
    overwritten: the current side's "use" option stays, the stale side's goes.
    """
    allow_a = allow_b = True
    if conflict.synced_a is not None and conflict.synced_b is not None and conflict.synced_a != conflict.synced_b:
        allow_a, allow_b = conflict.synced_a, conflict.synced_b

    a, b = conflict.platform_a, conflict.platform_b
    choices: list[Choice] = []
    if allow_a:
        choices.append(Choice(label=f"Use {a} version (overwrite {b})", value=ConflictAction.USE_A.value))
    if allow_b:
        choices.append(Choice(label=f"Use {b} version (overwrite {a})", value=ConflictAction.USE_B.value))
    if has_canonical:
        choices.append(
            Choice(label="Use common version (reset both to reference)", value=ConflictAction.USE_COMMON.value)
        )
    choices.append(Choice(label="Keep both (skip for now)", value=ConflictAction.KEEP_BOTH.value))
    choices.append(Choice(label="Abort", value=ConflictAction.ABORT.value))
    return choices


def out_of_sync_choices(group: list[OutOfSyncRecord]) -> list[Choice]:
    """Keeping the platform version is legal only for a single offending
    platform whose divergence is its own authored content.
    """
    choices: list[Choice] = []
    if len(group) == 1 and group[0].platform_authored:
        record = group[0]
        choices.append(
            Choice(
                label=f"Use {record.platform} version (update common, {record.mismatch_type} changed)",
                value=_with_platform(OutOfSyncAction.USE_PLATFORM, record.platform),
            )
        )
    choices.append(
        Choice(label="Use common version (discard platform changes)", value=OutOfSyncAction.USE_COMMON.value)
    )
    choices.append(Choice(label="Abort", value=OutOfSyncAction.ABORT.value))
    return choices


def dependent_choices(conflict: DependentConflict) -> list[Choice]:
    choices: list[Choice] = []
    if conflict.canonical_path is not None:
        choices.append(Choice(label="Use common version", value=DependentAction.USE_COMMON.value))
    for platform in conflict.versions:
        choices.append(
            Choice(
                label=f"Use {platform} version",
                value=_with_platform(DependentAction.USE_PLATFORM, platform),
            )
        )
    choices.append(Choice(label="Skip (leave platform copies in place)", value=DependentAction.SKIP.value))
    choices.append(Choice(label="Abort", value=DependentAction.ABORT.value))
    return choices


def _print_conflict(conflict: Conflict) -> None:
    print(f"\nConflict in skill: {conflict.skill_name} ({conflict.conflict_type})")
    print(f"  {conflict.platform_a}: {conflict.path_a}")
    print(f"  {conflict.platform_b}: {conflict.path_b}")
    for line in conflict.diff:
        print(f"    {line}")


def _print_out_of_sync(group: list[OutOfSyncRecord]) -> None:
    print(f"\nOut of sync: {group[0].skill_name}")
    print(f"  common: {group[0].canonical_path}")
    for record in group:
        notes = []
        if record.wrong_target:
            notes.append("reference points elsewhere")
        if record.stale_hash:
            notes.append("stale hash")
        suffix = f" ({', '.join(notes)})" if notes else ""
        print(f"  {record.platform}: {record.mismatch_type} differs{suffix}")


def _print_dependent(conflict: DependentConflict) -> None:
    print(f"\nDependent file conflict: {conflict.skill_name}/{conflict.relative_path}")
    if conflict.canonical_path is not None:
        edited = " (edited since last sync)" if conflict.canonical_edited else ""
        print(f"  common: {conflict.canonical_hash}{edited}")
    for platform, file_hash in conflict.versions.items():
        print(f"  {platform}: {file_hash}")


class Resolver:
    """Turns detected issues into decisions under a policy."""

    def __init__(self, prompter: Prompter, policy: ResolutionPolicy = ResolutionPolicy.INTERACTIVE) -> None:
        self.prompter = prompter
        self.policy = policy

    @property
    def fail_fast(self) -> bool:
        return self.policy == ResolutionPolicy.FAIL_FAST

    def guard(self, kind: str, skill_names: Iterable[str]) -> None:
        """Under fail-fast, raise for the whole batch before anything is asked."""
        names = list(skill_names)
        if names and self.fail_fast:
            raise UnresolvedConflictError(kind, names)

    def resolve_conflict(self, conflict: Conflict, *, has_canonical: bool) -> ConflictAction:
        self.guard("Conflicts", [conflict.skill_name])
        _print_conflict(conflict)
        value = self.prompter.choose(
            f"How should {conflict.skill_name} be resolved?",
            conflict_choices(conflict, has_canonical=has_canonical),
        )
        action = ConflictAction(value)
        if action == ConflictAction.ABORT:
            raise SyncAbortedError("Sync aborted")
        return action

    def resolve_out_of_sync(self, group: list[OutOfSyncRecord]) -> OutOfSyncResolution:
        self.guard("Out-of-sync skills", [group[0].skill_name])
        _print_out_of_sync(group)
        value = self.prompter.choose(
            f"{group[0].skill_name} differs from the common version. Which version should win?",
            out_of_sync_choices(group),
        )
        action, platform = _split_platform(value)
        resolution = OutOfSyncResolution(action=OutOfSyncAction(action), platform=platform)
        if resolution.action == OutOfSyncAction.ABORT:
            raise SyncAbortedError("Sync aborted")
        return resolution

    def resolve_dependent(self, conflict: DependentConflict) -> DependentResolution:
        self.guard("Dependent file conflicts", [conflict.skill_name])
        _print_dependent(conflict)
        value = self.prompter.choose(
            f"Which version of {conflict.relative_path} should be kept?",
            dependent_choices(conflict),
        )
        action, platform = _split_platform(value)
        resolution = DependentResolution(action=DependentAction(action), platform=platform)
        if resolution.action == DependentAction.ABORT:
            raise SyncAbortedError("Sync aborted")
        return resolution
