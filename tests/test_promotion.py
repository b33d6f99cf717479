"""Tests for promotion.py: canonical copies and platform references."""

from __future__ import annotations

from skillsync.detector import detect_conflicts, detect_out_of_sync
from skillsync.frontmatter import SYNC_VERSION, stored_hash
from skillsync.hashing import fingerprint, skill_fingerprint
from skillsync.platforms import canonical_skill_file, get_platform_configs
from skillsync.promotion import (
    apply_platform_version,
    promote,
    refresh_canonical,
    write_platform_reference,
)
from skillsync.scanner import scan

_FM = {"name": "alpha", "description": "First", "model": "opus", "metadata": {"owner": "me"}}


class TestPromote:
    def test_round_trip(self, project, write_skill, read):
        path = write_skill(project, "claude", "alpha", body="# Alpha\n", frontmatter=_FM)
        canonical_file = promote(path, project)

        assert canonical_file == canonical_skill_file(project, "alpha")
        canonical = read(canonical_file)
        assert canonical.content == "# Alpha"
        assert canonical.frontmatter["name"] == "alpha"
        assert canonical.frontmatter["description"] == "First"
        assert "model" not in canonical.frontmatter
        sync = canonical.frontmatter["metadata"]["sync"]
        expected = fingerprint({"name": "alpha", "description": "First", "metadata": {"owner": "me"}}, "# Alpha")
        assert sync == {"version": SYNC_VERSION, "hash": expected, "files": {}}
        assert canonical.frontmatter["metadata"]["owner"] == "me"

        platform = read(path)
        assert platform.content == "@.agents-common/skills/alpha/SKILL.md"
        assert platform.frontmatter["model"] == "opus"
        assert platform.frontmatter["metadata"]["sync"] == {"hash": expected}

    def test_rescan_is_clean(self, project, write_skill):
        path = write_skill(project, "claude", "alpha", body="# Alpha\n", frontmatter=_FM)
        promote(path, project)
        result = scan(project, get_platform_configs(["claude", "codex"]))
        assert detect_out_of_sync(result.platforms["claude"], result.canonical, "claude", project) == []

    def test_empty_frontmatter(self, project, write_skill, read):
        path = write_skill(project, "claude", "alpha", body="# Alpha\n", frontmatter={})
        canonical_file = promote(path, project)
        doc = read(canonical_file)
        assert list(doc.frontmatter) == ["metadata"]
        assert stored_hash(doc.frontmatter) == fingerprint({}, "# Alpha")

    def test_reference_is_noop(self, project, write_skill):
        path = write_skill(project, "claude", "alpha", body="@.agents-common/skills/alpha/SKILL.md\n")
        assert promote(path, project) is None
        assert not canonical_skill_file(project, "alpha").exists()

    def test_existing_canonical_not_overwritten(self, project, write_skill, read):
        write_skill(project, "common", "alpha", body="# Canonical\n")
        path = write_skill(project, "claude", "alpha", body="# Local\n")
        assert promote(path, project) is None
        assert read(canonical_skill_file(project, "alpha")).content == "# Canonical"
        assert read(path).content == "# Local"


class TestWritePlatformReference:
    def test_creates_reference_for_new_platform(self, project, write_skill, read):
        canonical_file = write_skill(project, "common", "alpha", body="# A\n")
        target = project / ".codex" / "skills" / "alpha" / "SKILL.md"
        assert write_platform_reference(target, canonical_file, project)
        doc = read(target)
        assert doc.content == "@.agents-common/skills/alpha/SKILL.md"
        assert stored_hash(doc.frontmatter) == skill_fingerprint(read(canonical_file).frontmatter, "# A")

    def test_unchanged_returns_false(self, project, write_skill):
        canonical_file = write_skill(project, "common", "alpha", body="# A\n")
        target = project / ".codex" / "skills" / "alpha" / "SKILL.md"
        write_platform_reference(target, canonical_file, project)
        assert not write_platform_reference(target, canonical_file, project)

    def test_keeps_relative_spelling(self, project, write_skill, read):
        canonical_file = write_skill(project, "common", "alpha", body="# A\n")
        target = write_skill(project, "claude", "alpha", body="@../../../.agents-common/skills/alpha/SKILL.md\n")
        write_platform_reference(target, canonical_file, project)
        assert read(target).content == "@../../../.agents-common/skills/alpha/SKILL.md"

    def test_repoints_wrong_target(self, project, write_skill, read):
        canonical_file = write_skill(project, "common", "alpha", body="# A\n")
        target = write_skill(project, "claude", "alpha", body="@.agents-common/skills/beta/SKILL.md\n")
        write_platform_reference(target, canonical_file, project)
        assert read(target).content == "@.agents-common/skills/alpha/SKILL.md"

    def test_dry_run_writes_nothing(self, project, write_skill):
        canonical_file = write_skill(project, "common", "alpha", body="# A\n")
        before = canonical_file.read_text()
        target = project / ".codex" / "skills" / "alpha" / "SKILL.md"
        assert write_platform_reference(target, canonical_file, project, dry_run=True)
        assert not target.exists()
        assert canonical_file.read_text() == before


class TestRefreshCanonical:
    def test_stamps_missing_hash(self, project, write_skill, read):
        canonical_file = write_skill(project, "common", "alpha", body="# A\n")
        _doc, current = refresh_canonical(canonical_file)
        sync = read(canonical_file).frontmatter["metadata"]["sync"]
        assert sync == {"version": SYNC_VERSION, "hash": current, "files": {}}


class TestApplyPlatformVersion:
    def test_platform_literal_becomes_canonical(self, project, write_skill, read):
        canonical_file = write_skill(project, "common", "alpha", body="# Old\n")
        platform_file = write_skill(
            project, "claude", "alpha", body="# New\n", frontmatter={"name": "alpha", "description": "Edited"}
        )
        new_hash = apply_platform_version(platform_file, canonical_file, project, use_platform_body=True)

        canonical = read(canonical_file)
        assert canonical.content == "# New"
        assert canonical.frontmatter["description"] == "Edited"
        assert stored_hash(canonical.frontmatter) == new_hash
        platform = read(platform_file)
        assert platform.is_reference
        assert stored_hash(platform.frontmatter) == new_hash

    def test_frontmatter_only_keeps_canonical_body(self, project, write_skill, read):
        canonical_file = write_skill(project, "common", "alpha", body="# Canonical\n")
        platform_file = write_skill(
            project, "claude", "alpha", body="# Other\n", frontmatter={"name": "alpha", "description": "Edited"}
        )
        apply_platform_version(platform_file, canonical_file, project, use_platform_body=False)
        canonical = read(canonical_file)
        assert canonical.content == "# Canonical"
        assert canonical.frontmatter["description"] == "Edited"


class TestDetectAfterPromotion:
    def test_two_promoted_platforms_do_not_conflict(self, project, write_skill):
        a = write_skill(project, "claude", "alpha", body="# A\n")
        write_skill(project, "codex", "alpha", body="# A\n")
        promote(a, project)
        codex_file = project / ".codex" / "skills" / "alpha" / "SKILL.md"
        write_platform_reference(codex_file, canonical_skill_file(project, "alpha"), project)
        result = scan(project, get_platform_configs(["claude", "codex"]))
        assert (
            detect_conflicts(
                result.platforms["claude"], result.platforms["codex"], canonical=result.canonical, root=project
            )
            == []
        )
