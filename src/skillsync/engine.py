"""Sync driver: runs the phases in order, re-scanning the filesystem between them.

Phases:
1. resolve literal copies that disagree before any canonical copy exists
2. promote literal copies (or adopt ones identical to canonical)
3. mirror canonical skills into enabled platforms that lack them, as references
4. resolve platform copies that drifted from canonical
5. resolve remaining platform-vs-platform conflicts
6. propagate canonical core frontmatter and hash to every reference
7. consolidate dependent files

Nothing is held in memory across a mutating step; every phase starts from a
fresh scan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import combinations
from pathlib import Path

from skillsync.config import (
    SyncConfig,
    SyncOptions,
    detect_available_platforms,
    enabled_platforms,
    ensure_config,
    read_config,
    reconfigure,
)
from skillsync.dependents import (
    apply_dependent_resolution,
    cleanup_platform_files,
    collect_dependent_files,
    consolidate,
    detect_dependent_files,
)
from skillsync.detector import classify_mismatch, detect_conflicts, detect_out_of_sync, group_by_skill
from skillsync.frontmatter import stored_files
from skillsync.models import (
    Conflict,
    ConflictAction,
    OutOfSyncAction,
    OutOfSyncRecord,
    ScanResult,
    SkillOccurrence,
)
from skillsync.platforms import (
    CANONICAL,
    PlatformConfig,
    canonical_skill_file,
    get_platform_configs,
    known_platforms,
)
from skillsync.promotion import (
    apply_platform_version,
    copy_skill,
    promote,
    update_canonical_files,
    write_platform_reference,
)
from skillsync.prompts import DefaultPrompter, Prompter
from skillsync.propagator import propagate
from skillsync.resolver import ResolutionPolicy, Resolver
from skillsync.scanner import load_occurrence, scan

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    created: list[str] = field(default_factory=list)
    promoted: list[str] = field(default_factory=list)
    adopted: list[str] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)
    deferred: list[str] = field(default_factory=list)
    propagated: list[str] = field(default_factory=list)
    consolidated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return any(
            (self.created, self.promoted, self.adopted, self.resolved, self.propagated, self.consolidated)
        )


def _site(occ: SkillOccurrence) -> str:
    return f"{occ.platform}/{occ.skill_name}"


class SyncEngine:
    def __init__(
        self,
        root: Path,
        platforms: list[PlatformConfig],
        prompter: Prompter,
        policy: ResolutionPolicy = ResolutionPolicy.INTERACTIVE,
    ) -> None:
        self.root = root
        self.platforms = platforms
        self.prompter = prompter
        self.resolver = Resolver(prompter, policy)
        self.report = SyncReport()
        # Platforms whose folder creation was declined this run
        self.blocked: set[str] = set()
        self.approved: set[str] = set()
        # Skills left alone for the rest of the run (keep-both)
        self.deferred: set[str] = set()

    @property
    def active_platforms(self) -> list[PlatformConfig]:
        return [p for p in self.platforms if p.name not in self.blocked]

    def rescan(self) -> ScanResult:
        return scan(self.root, self.active_platforms)

    def _canonical(self, skill_name: str) -> SkillOccurrence | None:
        path = canonical_skill_file(self.root, skill_name)
        if not path.exists():
            return None
        return load_occurrence(CANONICAL, path)

    # -- phase 3 -----------------------------------------------------------

    def _platform_allowed(self, platform: PlatformConfig) -> bool:
        """Ask once per platform before creating its folder from scratch."""
        if platform.name in self.blocked:
            return False
        if platform.root_dir(self.root).is_dir() or platform.name in self.approved:
            return True
        if self.prompter.confirm(
            f"{platform.dir} does not exist. Create it to sync skills to {platform.name}?"
        ):
            self.approved.add(platform.name)
            return True
        self.blocked.add(platform.name)
        print(f"Skipping {platform.name} for this run")
        return False

    def fill_missing_references(self) -> None:
        result = self.rescan()
        for canonical in result.canonical:
            name = canonical.skill_name
            if name in self.deferred:
                continue
            for platform in self.platforms:
                target = platform.skill_file(self.root, name)
                if target.exists():
                    continue
                if not self._platform_allowed(platform):
                    continue
                _ = write_platform_reference(target, canonical.file, self.root)
                self.report.created.append(f"{platform.name}/{name}")
                logger.info(f"Created reference {target}")

    # -- phases 1 and 5 ----------------------------------------------------

    def _pair_conflicts(self, result: ScanResult, *, literal_only: bool) -> list[Conflict]:
        conflicts: list[Conflict] = []
        for a, b in combinations(self.active_platforms, 2):
            if literal_only:
                side_a = [
                    o
                    for o in result.platforms.get(a.name, [])
                    if not o.is_reference and result.canonical_for(o.skill_name) is None
                ]
                side_b = [
                    o
                    for o in result.platforms.get(b.name, [])
                    if not o.is_reference and result.canonical_for(o.skill_name) is None
                ]
                found = detect_conflicts(side_a, side_b)
            else:
                found = detect_conflicts(
                    result.platforms.get(a.name, []),
                    result.platforms.get(b.name, []),
                    canonical=result.canonical,
                    root=self.root,
                )
            conflicts.extend(c for c in found if c.skill_name not in self.deferred)
        return conflicts

    def _apply_conflict(self, conflict: Conflict, action: ConflictAction) -> None:
        path_a, path_b = Path(conflict.path_a), Path(conflict.path_b)
        if action == ConflictAction.USE_A:
            _ = copy_skill(path_a, path_b)
        elif action == ConflictAction.USE_B:
            _ = copy_skill(path_b, path_a)
        elif action == ConflictAction.USE_COMMON:
            canonical_file = canonical_skill_file(self.root, conflict.skill_name)
            if not canonical_file.exists():
                logger.warning(f"Common skill not found for {conflict.skill_name}")
                return
            _ = write_platform_reference(path_a, canonical_file, self.root)
            _ = write_platform_reference(path_b, canonical_file, self.root)
        elif action == ConflictAction.KEEP_BOTH:
            self.deferred.add(conflict.skill_name)
            self.report.deferred.append(conflict.skill_name)
            return
        self.report.resolved.append(conflict.skill_name)

    def resolve_conflicts(self, *, literal_only: bool) -> None:
        """Resolve pairwise conflicts, one platform pair at a time."""
        pending = self._pair_conflicts(self.rescan(), literal_only=literal_only)
        self.resolver.guard("Conflicts", [c.skill_name for c in pending])
        for a, b in combinations(self.active_platforms, 2):
            result = self.rescan()
            pair = [
                c
                for c in self._pair_conflicts(result, literal_only=literal_only)
                if {c.platform_a, c.platform_b} == {a.name, b.name}
            ]
            for conflict in pair:
                if conflict.skill_name in self.deferred:
                    continue
                has_canonical = result.canonical_for(conflict.skill_name) is not None
                action = self.resolver.resolve_conflict(conflict, has_canonical=has_canonical)
                self._apply_conflict(conflict, action)

    # -- phase 2 -----------------------------------------------------------

    def promote_literals(self) -> None:
        result = self.rescan()
        for platform in self.active_platforms:
            for occ in result.platforms.get(platform.name, []):
                if occ.is_reference or occ.skill_name in self.deferred:
                    continue
                canonical = self._canonical(occ.skill_name)
                if canonical is None:
                    if promote(occ.file, self.root) is not None:
                        self.report.promoted.append(_site(occ))
                    continue
                mismatch, _stale, _wrong = classify_mismatch(occ, canonical, self.root)
                if mismatch is None:
                    _ = write_platform_reference(occ.file, canonical.file, self.root)
                    self.report.adopted.append(_site(occ))
                    logger.info(f"Adopted identical copy {occ.file}")

    # -- phase 4 -----------------------------------------------------------

    def _out_of_sync_groups(self, result: ScanResult) -> dict[str, list[OutOfSyncRecord]]:
        records: list[OutOfSyncRecord] = []
        for platform in self.active_platforms:
            records.extend(
                detect_out_of_sync(
                    result.platforms.get(platform.name, []), result.canonical, platform.name, self.root
                )
            )
        return group_by_skill(r for r in records if r.skill_name not in self.deferred)

    def resolve_out_of_sync(self) -> None:
        groups = self._out_of_sync_groups(self.rescan())
        self.resolver.guard("Out-of-sync skills", groups)
        for skill_name, group in groups.items():
            resolution = self.resolver.resolve_out_of_sync(group)
            canonical_file = canonical_skill_file(self.root, skill_name)
            if not canonical_file.exists():
                logger.warning(f"Common skill not found for {skill_name}, skipping")
                continue
            if resolution.action == OutOfSyncAction.USE_PLATFORM:
                chosen = next(r for r in group if r.platform == resolution.platform)
                _ = apply_platform_version(
                    Path(chosen.platform_path),
                    canonical_file,
                    self.root,
                    use_platform_body=chosen.body_differs,
                )
                print(f"Applied {chosen.platform} changes to common skill: {skill_name}")
                others = [r for r in group if r is not chosen]
            else:
                others = group
                print(f"Kept common version for {skill_name}")
            for record in others:
                _ = write_platform_reference(Path(record.platform_path), canonical_file, self.root)
            _ = propagate(self.root, skill_name, self.active_platforms)
            self.report.resolved.append(skill_name)

    # -- phase 6 -----------------------------------------------------------

    def propagate_all(self) -> None:
        for canonical in self.rescan().canonical:
            if canonical.skill_name in self.deferred:
                continue
            for path in propagate(self.root, canonical.skill_name, self.active_platforms):
                self.report.propagated.append(str(path))

    # -- phase 7 -----------------------------------------------------------

    def _dependent_conflict_names(self, result: ScanResult) -> list[str]:
        names: list[str] = []
        for canonical in result.canonical:
            platform_files = collect_dependent_files(self.root, canonical.skill_name, self.active_platforms)
            if not platform_files:
                continue
            planned = consolidate(
                canonical.skill_name,
                platform_files,
                canonical.file.parent,
                stored_files(canonical.frontmatter),
                dry_run=True,
            )
            if planned.conflicts:
                names.append(canonical.skill_name)
        return names

    def consolidate_dependents(self) -> None:
        result = self.rescan()
        self.resolver.guard("Dependent file conflicts", self._dependent_conflict_names(result))
        for canonical in result.canonical:
            skill_name = canonical.skill_name
            if skill_name in self.deferred:
                continue
            canonical_dir = canonical.file.parent
            stored = stored_files(canonical.frontmatter)
            platform_files = collect_dependent_files(self.root, skill_name, self.active_platforms)

            consolidation = consolidate(skill_name, platform_files, canonical_dir, stored)
            for conflict in consolidation.conflicts:
                resolution = self.resolver.resolve_dependent(conflict)
                accepted = apply_dependent_resolution(conflict, resolution, canonical_dir)
                if accepted is not None:
                    consolidation.fingerprints[conflict.relative_path] = accepted

            files = {f.relative_path: f.hash for f in detect_dependent_files(canonical_dir)}
            if files != stored:
                _ = update_canonical_files(canonical.file, files)
                _ = propagate(self.root, skill_name, self.active_platforms)
                self.report.consolidated.append(skill_name)

            for path in cleanup_platform_files(platform_files, consolidation.fingerprints, canonical_dir):
                self.report.removed.append(str(path))

    def sync(self) -> SyncReport:
        self.resolve_conflicts(literal_only=True)
        self.promote_literals()
        self.fill_missing_references()
        self.resolve_out_of_sync()
        self.resolve_conflicts(literal_only=False)
        self.propagate_all()
        self.consolidate_dependents()
        return self.report

    def plan(self) -> list[str]:
        """Describe what sync() would do. Writes nothing and asks nothing."""
        result = self.rescan()
        lines: list[str] = []
        for canonical in result.canonical:
            for platform in self.active_platforms:
                if not platform.skill_file(self.root, canonical.skill_name).exists():
                    lines.append(f"Would create reference {platform.name}/{canonical.skill_name}")

        literal_conflicts = self._pair_conflicts(result, literal_only=True)
        conflicted = {c.skill_name for c in literal_conflicts}
        for conflict in literal_conflicts:
            lines.append(
                f"Conflict: {conflict.skill_name} ({conflict.platform_a} vs {conflict.platform_b}, "
                f"{conflict.conflict_type})"
            )
        for platform in self.active_platforms:
            for occ in result.platforms.get(platform.name, []):
                if occ.is_reference or occ.skill_name in conflicted:
                    continue
                canonical = result.canonical_for(occ.skill_name)
                if canonical is None:
                    lines.append(f"Would promote {_site(occ)}")
                elif classify_mismatch(occ, canonical, self.root)[0] is None:
                    lines.append(f"Would adopt {_site(occ)} as a reference")

        for skill_name, group in self._out_of_sync_groups(result).items():
            detail = ", ".join(f"{r.platform}: {r.mismatch_type}" for r in group)
            lines.append(f"Out of sync: {skill_name} ({detail})")
        for conflict in self._pair_conflicts(result, literal_only=False):
            if conflict.skill_name in conflicted:
                continue
            lines.append(
                f"Conflict: {conflict.skill_name} ({conflict.platform_a} vs {conflict.platform_b}, "
                f"{conflict.conflict_type})"
            )
        for canonical in result.canonical:
            stale = propagate(self.root, canonical.skill_name, self.active_platforms, dry_run=True)
            lines.extend(f"Would update reference {path}" for path in stale)
        for skill_name in self._dependent_conflict_names(result):
            lines.append(f"Dependent file conflict: {skill_name}")
        return lines


def list_skills(result: ScanResult) -> None:
    if result.is_empty:
        print("No skills found.")
        return
    for name in result.skill_names():
        canonical = result.canonical_for(name)
        occurrences = result.occurrences_of(name)
        sites = ([CANONICAL] if canonical else []) + [occ.platform for occ in occurrences]
        source = canonical or occurrences[0]
        print(f"{name} [{', '.join(sites)}]")
        description = source.frontmatter.get("description")
        if description:
            print(f"  {description}")


def _load_config(options: SyncOptions, prompter: Prompter) -> SyncConfig:
    if options.dry_run:
        existing = read_config(options.root)
        if existing is not None:
            return existing
        detected = detect_available_platforms(options.root, home_mode=options.home_mode)
        return SyncConfig(assistants=detected or known_platforms())
    if options.reconfigure:
        return reconfigure(options.root, prompter, home_mode=options.home_mode)
    return ensure_config(options.root, prompter, home_mode=options.home_mode)


def run(options: SyncOptions, prompter: Prompter | None = None) -> SyncReport | None:
    """Run one sync (or listing, or dry-run plan) under options.

    Returns the report of a real sync, None otherwise.
    """
    prompter = prompter or DefaultPrompter()
    root = options.root
    if options.home_mode:
        print(f"Using home directory: {root}")

    if options.list_mode:
        config = read_config(root)
        names = config.assistants if config is not None else None
        list_skills(scan(root, get_platform_configs(names, home_mode=options.home_mode)))
        return None

    initial = scan(root, get_platform_configs(home_mode=options.home_mode))
    if initial.is_empty:
        print("No skills found. Exiting.")
        return None

    config = _load_config(options, prompter)
    platforms = enabled_platforms(config, targets=options.targets, home_mode=options.home_mode)
    policy = ResolutionPolicy.FAIL_FAST if options.fail_on_conflict else ResolutionPolicy.INTERACTIVE
    engine = SyncEngine(root, platforms, prompter, policy)

    if options.dry_run:
        lines = engine.plan()
        for line in lines:
            print(f"[dry-run] {line}")
        if not lines:
            print("[dry-run] Nothing to do")
        return None

    report = engine.sync()
    if report.deferred:
        print(f"Left unresolved for a later run: {', '.join(sorted(set(report.deferred)))}")
    print("Sync complete")
    return report
