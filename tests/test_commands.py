"""Tests for subprocess helpers."""

import subprocess
from unittest.mock import Mock, patch

import pytest

from ddsafe.exceptions import MissingDependencyError
from ddsafe.storage import commands


@patch("ddsafe.storage.commands.subprocess.run")
class TestRunCommand:
    def test_captures_text(self, mock_run):
        mock_run.return_value = Mock(returncode=0, stdout="out\n", stderr="")

        result = commands.run_command(("lsblk", "--pairs"))

        assert result.stdout == "out\n"
        mock_run.assert_called_once_with(
            ["lsblk", "--pairs"], check=True, text=True, capture_output=True
        )

    def test_unchecked(self, mock_run):
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="boom")
        assert commands.run_command(["mc", "ls"], check=False).returncode == 1
        assert mock_run.call_args.kwargs["check"] is False

    def test_failure_propagates(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(32, ["umount"], stderr="busy")
        with pytest.raises(subprocess.CalledProcessError):
            commands.run_command(["umount", "/mnt"])


class TestWithSudo:
    def test_prefixes(self):
        assert commands.with_sudo(["dd", "of=/dev/sdb"], True) == ["sudo", "dd", "of=/dev/sdb"]

    def test_unchanged(self):
        assert commands.with_sudo(("umount", "/mnt"), False) == ["umount", "/mnt"]


@patch("ddsafe.storage.commands.shutil.which")
class TestRequirePrograms:
    def test_all_present(self, mock_which):
        mock_which.side_effect = lambda name: f"/usr/bin/{name}"
        commands.require_programs(["lsblk", "dd"])

    def test_first_missing_reported(self, mock_which):
        mock_which.side_effect = lambda name: None if name in ("mc", "sudo") else "/bin/x"
        with pytest.raises(MissingDependencyError) as exc_info:
            commands.require_programs(["lsblk", "sudo", "mc"])
        assert exc_info.value.program == "sudo"
