"""Tests for hashing.py: skill fingerprints and file fingerprints."""

from __future__ import annotations

import hashlib

from skillsync.hashing import (
    PREFIX,
    file_fingerprint,
    fingerprint,
    hash_changed,
    hash_matches,
    skill_fingerprint,
)

_CORE = {
    "name": "alpha",
    "description": "First skill",
    "metadata": {"owner": "team", "tags": {"b": 1, "a": 2}},
    "allowed-tools": ["Read", "Write"],
}
_FILES = [("scripts/run.sh", "sha256-aaa"), ("README.md", "sha256-bbb")]


class TestFingerprintFormat:
    def test_tagged_hex(self):
        fp = fingerprint({}, "")
        assert fp.startswith(PREFIX)
        assert len(fp) == len(PREFIX) + 64

    def test_matches_documented_layout(self):
        expected = hashlib.sha256(b'{"name":"a"}\nbody\nx.txt:sha256-1\n').hexdigest()
        assert fingerprint({"name": "a"}, "body", {"x.txt": "sha256-1"}) == PREFIX + expected


class TestFingerprintDeterminism:
    def test_key_order_irrelevant_at_any_depth(self):
        reordered = {
            "allowed-tools": ["Read", "Write"],
            "metadata": {"tags": {"a": 2, "b": 1}, "owner": "team"},
            "description": "First skill",
            "name": "alpha",
        }
        assert fingerprint(_CORE, "body", _FILES) == fingerprint(reordered, "body", _FILES)

    def test_file_order_irrelevant(self):
        assert fingerprint(_CORE, "body", _FILES) == fingerprint(_CORE, "body", list(reversed(_FILES)))

    def test_mapping_and_pairs_agree(self):
        assert fingerprint(_CORE, "body", dict(_FILES)) == fingerprint(_CORE, "body", _FILES)

    def test_body_change_of_one_character(self):
        assert fingerprint(_CORE, "body", _FILES) != fingerprint(_CORE, "Body", _FILES)

    def test_value_change(self):
        changed = {**_CORE, "description": "First skill."}
        assert fingerprint(_CORE, "body") != fingerprint(changed, "body")

    def test_added_core_field(self):
        added = {**_CORE, "license": "MIT"}
        assert fingerprint(_CORE, "body") != fingerprint(added, "body")

    def test_list_order_is_significant(self):
        swapped = {**_CORE, "allowed-tools": ["Write", "Read"]}
        assert fingerprint(_CORE, "body") != fingerprint(swapped, "body")

    def test_dependent_file_hash_change(self):
        changed = [("scripts/run.sh", "sha256-ccc"), ("README.md", "sha256-bbb")]
        assert fingerprint(_CORE, "body", _FILES) != fingerprint(_CORE, "body", changed)

    def test_dependent_file_added(self):
        assert fingerprint(_CORE, "body") != fingerprint(_CORE, "body", _FILES[:1])


class TestSkillFingerprint:
    def test_ignores_sync_block_and_platform_fields(self):
        plain = {"name": "alpha", "description": "d"}
        stamped = {
            "name": "alpha",
            "model": "opus",
            "description": "d",
            "metadata": {"sync": {"version": 2, "hash": "sha256-old", "files": {}}},
        }
        assert skill_fingerprint(plain, "# A\n") == skill_fingerprint(stamped, "\n# A")

    def test_uses_recorded_files_by_default(self):
        data = {"name": "a", "metadata": {"sync": {"files": {"x.txt": "sha256-1"}}}}
        assert skill_fingerprint(data, "b") == fingerprint({"name": "a"}, "b", {"x.txt": "sha256-1"})

    def test_explicit_files_override(self):
        data = {"name": "a", "metadata": {"sync": {"files": {"x.txt": "sha256-1"}}}}
        assert skill_fingerprint(data, "b", {}) == fingerprint({"name": "a"}, "b")


class TestFileHashes:
    def test_file_fingerprint(self, tmp_path):
        path = tmp_path / "util.txt"
        path.write_bytes(b"a")
        assert file_fingerprint(path) == PREFIX + hashlib.sha256(b"a").hexdigest()

    def test_hash_matches_tolerates_missing_prefix(self):
        assert hash_matches("sha256-abc", "abc")
        assert hash_matches("abc", "sha256-abc")
        assert not hash_matches("sha256-abc", "sha256-abd")

    def test_hash_changed(self):
        assert hash_changed("sha256-abc", None)
        assert hash_changed("sha256-abc", "")
        assert not hash_changed("sha256-abc", "abc")
        assert hash_changed("sha256-abc", "sha256-xyz")
