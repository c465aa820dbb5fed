"""Unit tests for the storage pool backend."""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from devprobe.backends.zfs import (
    JsonPoolStatusQuery,
    PoolBackend,
    TextPoolStatusQuery,
    is_redundancy_group,
    leaf_vdevs,
    member_path,
    parse_pool_status,
    solaris_raw_path,
)
from devprobe.core.errors import CommandUnavailableError
from devprobe.models.device import PoolReference
from devprobe.utils.shell import CommandResult

# Pool with a vdev left behind by a device removal next to a real disk
INDIRECT_VDEV_JSON = """{
  "pools": {
    "tank": {
      "vdevs": {
        "tank": {
          "vdevs": {
            "indirect-0": {"name": "indirect-0", "vdev_type": "indirect"},
            "/dev/sdb1": {"name": "/dev/sdb1", "vdev_type": "disk", "path": "/dev/sdb1"}
          }
        }
      }
    }
  }
}"""


@contextmanager
def fake_stream(output: str, returncode: int = 0):
    """Stand-in for open_command_stream yielding canned output."""
    stream = SimpleNamespace(lines=lambda: iter(output.splitlines()), returncode=None)
    yield stream
    stream.returncode = returncode


class TestRedundancyGroups:
    """Tests for is_redundancy_group function."""

    @pytest.mark.parametrize("name", ["mirror", "mirror-0", "raidz", "raidz1-0", "raidz2", "raidz3-12"])
    def test_groups(self, name: str) -> None:
        """Mirror and raidz labels are groups."""
        assert is_redundancy_group(name)

    @pytest.mark.parametrize("name", ["sda1", "mirrored", "raidz-disk", "logs"])
    def test_devices(self, name: str) -> None:
        """Device names are not groups."""
        assert not is_redundancy_group(name)


class TestParsePoolStatus:
    """Tests for parse_pool_status function."""

    def test_single_disk(self, mock_zpool_status_output: str) -> None:
        """The only leaf of a single-disk pool is returned."""
        devices = list(parse_pool_status(mock_zpool_status_output.splitlines(), "tank"))

        assert devices == ["/dev/sda1"]

    def test_mirror_skips_groups_and_faulted(self, mock_zpool_mirror_output: str) -> None:
        """Group rows and devices that are not online are left out."""
        devices = list(parse_pool_status(mock_zpool_mirror_output.splitlines(), "rpool"))

        assert devices == ["/dev/disk/by-id/ata-A", "/dev/sdc", "/dev/nvme0n1p1"]

    def test_other_pool_row(self, mock_zpool_status_output: str) -> None:
        """Nothing is collected until the requested pool's row appears."""
        assert list(parse_pool_status(mock_zpool_status_output.splitlines(), "other")) == []

    def test_pool_row_before_header_ignored(self) -> None:
        """A pool-named row counts only after the column header."""
        lines = [
            "tank ONLINE 0 0 0",
            "sda1 ONLINE 0 0 0",
        ]

        assert list(parse_pool_status(lines, "tank")) == []

    def test_custom_dev_dir(self, mock_zpool_status_output: str) -> None:
        """Bare names are prefixed with the device directory."""
        devices = list(parse_pool_status(mock_zpool_status_output.splitlines(), "tank", "/devices"))

        assert devices == ["/devices/sda1"]

    def test_member_path(self) -> None:
        """Absolute names are kept as they are."""
        assert member_path("/dev/disk/by-id/x") == "/dev/disk/by-id/x"
        assert member_path("sda") == "/dev/sda"


class TestLeafVdevs:
    """Tests for leaf_vdevs function."""

    def test_descends_first_chain(self) -> None:
        """Leaves of the first top-level vdev are returned."""
        pool = {
            "vdevs": {
                "tank": {
                    "vdevs": {
                        "mirror-0": {"vdevs": {"a": {"path": "/dev/a"}, "b": {"path": "/dev/b"}}},
                        "mirror-1": {"vdevs": {"c": {"path": "/dev/c"}}},
                    }
                }
            }
        }

        assert [v["path"] for v in leaf_vdevs(pool, "tank")] == ["/dev/a", "/dev/b"]

    def test_missing_tree(self) -> None:
        """A pool without vdevs has no leaves."""
        assert leaf_vdevs({}, "tank") is None

    def test_root_without_children(self) -> None:
        """A root vdev without children has no leaves."""
        assert leaf_vdevs({"vdevs": {"tank": {}}}, "tank") is None


class TestSolarisRawPath:
    """Tests for solaris_raw_path function."""

    def test_dsk_to_rdsk(self) -> None:
        """/dev/dsk nodes map to /dev/rdsk."""
        assert solaris_raw_path("/dev/dsk/c0t0d0s0") == "/dev/rdsk/c0t0d0s0"

    def test_devices_raw_suffix(self) -> None:
        """/devices paths gain the ,raw suffix once."""
        assert solaris_raw_path("/devices/pci@0/disk@0:a") == "/devices/pci@0/disk@0:a,raw"
        assert solaris_raw_path("/devices/pci@0/disk@0:a,raw") == "/devices/pci@0/disk@0:a,raw"


class TestTextPoolStatusQuery:
    """Tests for TextPoolStatusQuery class."""

    @patch("devprobe.backends.zfs.open_command_stream")
    def test_members(self, mock_open: MagicMock, mock_zpool_status_output: str) -> None:
        """zpool status <pool> is run and parsed."""
        mock_open.return_value = fake_stream(mock_zpool_status_output)

        assert TextPoolStatusQuery().members("tank") == ["/dev/sda1"]
        assert mock_open.call_args.args[0] == ["zpool", "status", "tank"]

    @patch("devprobe.backends.zfs.open_command_stream")
    def test_unavailable(self, mock_open: MagicMock, caplog: pytest.LogCaptureFixture) -> None:
        """A tool that cannot be started gives no answer and no warning."""
        mock_open.side_effect = CommandUnavailableError(["zpool"], "No such file or directory", 127)

        with caplog.at_level(logging.WARNING):
            assert TextPoolStatusQuery().members("tank") is None
        assert caplog.records == []

    @patch("devprobe.backends.zfs.open_command_stream")
    def test_failed_without_devices(self, mock_open: MagicMock) -> None:
        """An unknown pool (nonzero exit, no output) gives no answer."""
        mock_open.return_value = fake_stream("cannot open 'nope': no such pool", returncode=1)

        assert TextPoolStatusQuery().members("nope") is None


class TestJsonPoolStatusQuery:
    """Tests for JsonPoolStatusQuery class."""

    @patch("devprobe.backends.zfs.os.path.exists", return_value=True)
    @patch("devprobe.backends.zfs.run_command")
    def test_members(self, mock_run: MagicMock, _mock_exists: MagicMock, mock_zpool_json_output: str) -> None:
        """Leaf paths of the first vdev chain are returned."""
        mock_run.return_value = CommandResult(stdout=mock_zpool_json_output, stderr="", returncode=0)

        query = JsonPoolStatusQuery(platform="linux")

        assert query.members("tank") == ["/dev/sda1", "/dev/sdb1"]
        assert mock_run.call_args.args[0] == ["zpool", "status", "-j", "-P", "tank"]

    @patch("devprobe.backends.zfs.os.path.exists", side_effect=lambda p: p == "/dev/sdb1")
    @patch("devprobe.backends.zfs.run_command")
    def test_skips_missing_paths(
        self, mock_run: MagicMock, _mock_exists: MagicMock, mock_zpool_json_output: str
    ) -> None:
        """Members whose path does not exist here are skipped."""
        mock_run.return_value = CommandResult(stdout=mock_zpool_json_output, stderr="", returncode=0)

        assert JsonPoolStatusQuery(platform="linux").members("tank") == ["/dev/sdb1"]

    @patch("devprobe.backends.zfs.run_command")
    def test_old_tool_without_json(self, mock_run: MagicMock) -> None:
        """A tool that rejects -j gives no answer."""
        mock_run.return_value = CommandResult(stdout="", stderr="invalid option 'j'", returncode=2)

        assert JsonPoolStatusQuery().members("tank") is None

    @patch("devprobe.backends.zfs.run_command")
    def test_not_json(self, mock_run: MagicMock) -> None:
        """Unparseable output gives no answer."""
        mock_run.return_value = CommandResult(stdout="pool: tank", stderr="", returncode=0)

        assert JsonPoolStatusQuery().members("tank") is None

    @patch("devprobe.backends.zfs.run_command", side_effect=FileNotFoundError("zpool"))
    def test_missing_tool(self, _mock_run: MagicMock) -> None:
        """A missing tool gives no answer."""
        assert JsonPoolStatusQuery().members("tank") is None

    @patch("devprobe.backends.zfs.os.path.exists", return_value=True)
    @patch("devprobe.backends.zfs.run_command")
    def test_leaf_without_path(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """A leaf without a path (a removed vdev) gives no answer."""
        mock_run.return_value = CommandResult(stdout=INDIRECT_VDEV_JSON, stderr="", returncode=0)

        assert JsonPoolStatusQuery().members("tank") is None

    @patch("devprobe.backends.zfs.run_command")
    def test_pool_without_vdev_tree(self, mock_run: MagicMock) -> None:
        """A pool object without vdevs gives no answer."""
        mock_run.return_value = CommandResult(stdout='{"pools": {"tank": {"name": "tank"}}}', stderr="", returncode=0)

        assert JsonPoolStatusQuery().members("tank") is None

    @patch("devprobe.backends.zfs.os.path.exists", return_value=True)
    @patch("devprobe.backends.zfs.run_command")
    def test_solaris_raw_paths(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """On Solaris member paths name the raw disk."""
        mock_run.return_value = CommandResult(
            stdout='{"pools": {"rpool": {"vdevs": {"rpool": {"vdevs": {"c0": {"path": "/dev/dsk/c0t0d0s0"}}}}}}}',
            stderr="",
            returncode=0,
        )

        assert JsonPoolStatusQuery(platform="sunos5").members("rpool") == ["/dev/rdsk/c0t0d0s0"]


class TestPoolBackend:
    """Tests for PoolBackend class."""

    def test_name(self) -> None:
        """Backend reports its identifier."""
        assert PoolBackend().name == "zfs"

    @patch("devprobe.backends.zfs.command_exists", return_value=False)
    def test_unavailable(self, _mock_exists: MagicMock) -> None:
        """Without the tool the backend is unavailable."""
        backend = PoolBackend()

        assert backend.is_available() is False
        assert backend.resolve_if_available("/tank/home") is None

    @patch("devprobe.backends.zfs.os.stat")
    def test_find_pool(self, mock_stat: MagicMock, tmp_path: Path, mock_mountinfo_output: str, stats) -> None:
        """The dataset mounted on the directory's device is found."""
        mountinfo = tmp_path / "mountinfo"
        mountinfo.write_text(mock_mountinfo_output)
        mock_stat.return_value = stats.fake(0o40755, dev=os.makedev(0, 45))

        backend = PoolBackend(mountinfo_path=str(mountinfo))

        assert backend.find_pool("/tank/home/alice") == PoolReference("tank", "home")

    @patch("devprobe.backends.zfs.os.stat")
    def test_find_pool_not_pooled(
        self, mock_stat: MagicMock, tmp_path: Path, mock_mountinfo_output: str, stats
    ) -> None:
        """Directories on other filesystems are not on a pool."""
        mountinfo = tmp_path / "mountinfo"
        mountinfo.write_text(mock_mountinfo_output)
        mock_stat.return_value = stats.fake(0o40755, dev=os.makedev(8, 1))

        assert PoolBackend(mountinfo_path=str(mountinfo)).find_pool("/etc") is None

    def test_structured_query_first(self) -> None:
        """The JSON answer is used when it is available."""
        backend = PoolBackend()
        with (
            patch.object(JsonPoolStatusQuery, "members", return_value=["/dev/sda1"]) as json_members,
            patch.object(TextPoolStatusQuery, "members") as text_members,
        ):
            assert backend.resolve_pool("tank") == ["/dev/sda1"]

        json_members.assert_called_once_with("tank")
        text_members.assert_not_called()

    def test_falls_back_to_text(self) -> None:
        """The text parser answers when the JSON query cannot."""
        backend = PoolBackend()
        with (
            patch.object(JsonPoolStatusQuery, "members", return_value=None),
            patch.object(TextPoolStatusQuery, "members", return_value=["/dev/sdb1"]),
        ):
            assert backend.resolve_pool("tank") == ["/dev/sdb1"]

    @patch("devprobe.backends.zfs.os.path.exists", return_value=True)
    @patch("devprobe.backends.zfs.run_command")
    def test_removed_vdev_falls_back_to_text(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """A structured answer with a pathless leaf hands over to the text parser."""
        mock_run.return_value = CommandResult(stdout=INDIRECT_VDEV_JSON, stderr="", returncode=0)
        backend = PoolBackend()
        with patch.object(TextPoolStatusQuery, "members", return_value=["/dev/sdb1"]) as text_members:
            assert backend.resolve_pool("tank") == ["/dev/sdb1"]

        text_members.assert_called_once_with("tank")

    def test_text_only(self) -> None:
        """With prefer_structured off only the text parser is used."""
        backend = PoolBackend(prefer_structured=False)
        with (
            patch.object(JsonPoolStatusQuery, "members") as json_members,
            patch.object(TextPoolStatusQuery, "members", return_value=["/dev/sda1"]),
        ):
            assert backend.resolve_pool("tank") == ["/dev/sda1"]

        json_members.assert_not_called()

    def test_no_answer(self) -> None:
        """None is returned when no query can answer."""
        backend = PoolBackend()
        with (
            patch.object(JsonPoolStatusQuery, "members", return_value=None),
            patch.object(TextPoolStatusQuery, "members", return_value=None),
        ):
            assert backend.resolve_pool("tank") is None

    @patch("devprobe.backends.zfs.open_command_stream")
    def test_resolve_directory(
        self, mock_open: MagicMock, mock_zpool_status_output: str
    ) -> None:
        """A directory resolves through its pool to the member devices."""
        mock_open.return_value = fake_stream(mock_zpool_status_output)
        backend = PoolBackend(prefer_structured=False)

        with patch.object(PoolBackend, "find_pool", return_value=PoolReference("tank", "home")):
            assert backend.resolve("/tank/home") == ["/dev/sda1"]
