"""Tests for CLI entry point."""

from pathlib import Path
from unittest.mock import patch

import pytest

from skillsync.cli import main
from skillsync.platforms import canonical_skill_file


def _run(root: Path, *args: str) -> None:
    with patch("sys.argv", ["skillsync", "--root", str(root), *args]):
        main()


class TestFlags:
    def test_version(self, capsys: pytest.CaptureFixture[str]):
        with patch("sys.argv", ["skillsync", "--version"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
            assert exc_info.value.code == 0
        assert "skillsync" in capsys.readouterr().out

    def test_empty_targets_rejected(self, tmp_path: Path):
        with pytest.raises(SystemExit) as exc_info:
            _run(tmp_path, "--targets", ",")
        assert exc_info.value.code == 2


class TestListCommand:
    def test_list(self, project, write_skill, capsys: pytest.CaptureFixture[str]):
        write_skill(project, "claude", "alpha", frontmatter={"name": "alpha", "description": "First skill"})
        _run(project, "--list")
        out = capsys.readouterr().out
        assert "alpha [claude]" in out
        assert "First skill" in out
        assert not canonical_skill_file(project, "alpha").exists()


class TestSyncCommand:
    def test_sync_promotes(self, project, write_skill, capsys: pytest.CaptureFixture[str]):
        write_skill(project, "claude", "alpha")
        _run(project, "--fail-on-conflict")
        assert canonical_skill_file(project, "alpha").exists()
        assert "Sync complete" in capsys.readouterr().out

    def test_dry_run(self, project, write_skill, capsys: pytest.CaptureFixture[str]):
        write_skill(project, "claude", "alpha")
        _run(project, "--dry-run")
        assert "[dry-run] Would promote claude/alpha" in capsys.readouterr().out
        assert not canonical_skill_file(project, "alpha").exists()

    def test_no_skills(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
        _run(tmp_path, "-f")
        assert "No skills found. Exiting." in capsys.readouterr().out


class TestFailOnConflict:
    def test_conflict_exits_nonzero(self, project, write_skill, capsys: pytest.CaptureFixture[str]):
        write_skill(project, "claude", "beta", body="X\n")
        write_skill(project, "codex", "beta", body="Y\n")

        with pytest.raises(SystemExit) as exc_info:
            _run(project, "--fail-on-conflict")

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "Conflicts detected in: beta" in err
        assert "--fail-on-conflict" in err

    def test_env_forces_fail_fast(
        self, project, write_skill, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ):
        monkeypatch.setenv("SKILLSYNC_FAIL_ON_CONFLICT", "true")
        write_skill(project, "claude", "beta", body="X\n")
        write_skill(project, "codex", "beta", body="Y\n")

        with pytest.raises(SystemExit) as exc_info:
            _run(project)

        assert exc_info.value.code == 1
        assert "beta" in capsys.readouterr().err


class TestInteractive:
    def test_closed_input_aborts(self, project, write_skill, capsys: pytest.CaptureFixture[str]):
        write_skill(project, "claude", "beta", body="X\n")
        write_skill(project, "codex", "beta", body="Y\n")

        with patch("builtins.input", side_effect=EOFError), pytest.raises(SystemExit) as exc_info:
            _run(project)

        assert exc_info.value.code == 1
        assert "input closed" in capsys.readouterr().err

    def test_numbered_answer(self, project, write_skill, read):
        write_skill(project, "claude", "beta", body="X\n")
        codex = write_skill(project, "codex", "beta", body="Y\n")

        with patch("builtins.input", return_value="2"):
            _run(project)

        assert read(canonical_skill_file(project, "beta")).content == "Y"
        assert read(codex).is_reference
