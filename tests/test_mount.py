"""Tests for ddsafe.storage.mount - mount inspection and unmounting."""

import subprocess
from unittest.mock import Mock, patch

import pytest

from ddsafe.exceptions import UnmountFailedError
from ddsafe.storage import mount

PROC_MOUNTS = (
    "/dev/nvme0n1p2 / ext4 rw,relatime 0 0\n"
    "/dev/sdb1 /media/user/BOOT vfat rw 0 0\n"
    "/dev/sdb2 /media/user/rootfs ext4 rw 0 0\n"
    "/dev/sdb2 /media/user/rootfs/boot/firmware vfat rw 0 0\n"
    "/dev/sdb10 /media/user/My\\040Data ext4 rw 0 0\n"
    "/dev/sdbb1 /media/other ext4 rw 0 0\n"
    "tmpfs /run tmpfs rw 0 0\n"
)


@pytest.fixture
def mounts_file(tmp_path):
    path = tmp_path / "mounts"
    path.write_text(PROC_MOUNTS)
    return path


class TestIsPartitionOf:
    @pytest.mark.parametrize(
        "source, device",
        [
            ("/dev/sdb", "/dev/sdb"),
            ("/dev/sdb1", "/dev/sdb"),
            ("/dev/sdb12", "/dev/sdb"),
            ("/dev/mmcblk0p2", "/dev/mmcblk0"),
            ("/dev/nvme0n1p1", "/dev/nvme0n1"),
        ],
    )
    def test_partitions(self, source, device):
        assert mount.is_partition_of(source, device)

    @pytest.mark.parametrize(
        "source, device",
        [
            ("/dev/sdbb1", "/dev/sdb"),
            ("/dev/sda1", "/dev/sdb"),
            ("tmpfs", "/dev/sdb"),
            ("/dev/nbd10", "/dev/nbd1"),
            ("/dev/mmcblk10p1", "/dev/mmcblk1"),
            ("/dev/sdbp1", "/dev/sdb"),
        ],
    )
    def test_other_devices(self, source, device):
        assert not mount.is_partition_of(source, device)


class TestListMountpoints:
    def test_neighbouring_numbered_device_ignored(self, tmp_path):
        path = tmp_path / "mounts"
        path.write_text(
            "/dev/nbd10 /mnt/other ext4 rw 0 0\n"
            "/dev/nbd1p1 /mnt/nbd ext4 rw 0 0\n"
        )
        assert mount.list_mountpoints("/dev/nbd1", path) == ["/mnt/nbd"]

    def test_lists_device_mounts_only(self, mounts_file):
        result = mount.list_mountpoints("/dev/sdb", mounts_file)
        assert result == [
            "/media/user/BOOT",
            "/media/user/rootfs",
            "/media/user/rootfs/boot/firmware",
            "/media/user/My Data",
        ]

    def test_unmounted_device(self, mounts_file):
        assert mount.list_mountpoints("/dev/sdc", mounts_file) == []

    def test_missing_mounts_file(self, tmp_path):
        assert mount.list_mountpoints("/dev/sdb", tmp_path / "missing") == []


class TestUnmountDevice:
    @patch("ddsafe.storage.mount.run_command")
    def test_nothing_mounted(self, mock_run, mounts_file):
        assert mount.unmount_device("/dev/sdc", mounts_path=mounts_file) == []
        mock_run.assert_not_called()

    @patch("ddsafe.storage.mount.run_command")
    def test_unmounts_nested_first(self, mock_run, mounts_file):
        mock_run.return_value = Mock(returncode=0)

        result = mount.unmount_device("/dev/sdb", mounts_path=mounts_file)

        assert result[0] == "/media/user/rootfs/boot/firmware"
        commands = [c.args[0] for c in mock_run.call_args_list]
        assert commands[0] == ["umount", "/media/user/rootfs/boot/firmware"]
        assert len(commands) == 4

    @patch("ddsafe.storage.mount.run_command")
    def test_sudo_prefix(self, mock_run, mounts_file):
        mock_run.return_value = Mock(returncode=0)
        mount.unmount_device("/dev/sdb", use_sudo=True, mounts_path=mounts_file)
        assert all(c.args[0][:2] == ["sudo", "umount"] for c in mock_run.call_args_list)

    @patch("ddsafe.storage.mount.run_command")
    def test_any_failure_fails_the_whole_operation(self, mock_run, mounts_file):
        def fake_run(command, check=True):
            if command[-1] == "/media/user/BOOT":
                raise subprocess.CalledProcessError(32, command, stderr="target is busy")
            return Mock(returncode=0)

        mock_run.side_effect = fake_run

        with pytest.raises(UnmountFailedError) as exc_info:
            mount.unmount_device("/dev/sdb", mounts_path=mounts_file)

        assert exc_info.value.mountpoints == ["/media/user/BOOT"]
        assert "/dev/sdb" in str(exc_info.value)

    @patch("ddsafe.storage.mount.run_command")
    def test_dry_run_does_not_unmount(self, mock_run, mounts_file):
        result = mount.unmount_device("/dev/sdb", dry_run=True, mounts_path=mounts_file)
        assert len(result) == 4
        mock_run.assert_not_called()
