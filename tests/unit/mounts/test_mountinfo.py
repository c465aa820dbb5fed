"""Unit tests for the mount table reader."""

from pathlib import Path

from devprobe.models.device import DeviceId
from devprobe.mounts.mountinfo import (
    find_mount_entry,
    parse_mountinfo,
    parse_mountinfo_line,
    read_mount_table,
    unescape_mount_path,
)


class TestEscaping:
    """Tests for octal path escapes."""

    def test_unescape_space(self) -> None:
        """\\040 decodes to a space."""
        assert unescape_mount_path("/mnt/my\\040disk") == "/mnt/my disk"

    def test_unescape_leaves_plain_text(self) -> None:
        """Paths without escapes are unchanged."""
        assert unescape_mount_path("/srv/data") == "/srv/data"


class TestParseMountinfoLine:
    """Tests for parse_mountinfo_line function."""

    def test_parses_fields(self) -> None:
        """All fields are read around the optional-field separator."""
        entry = parse_mountinfo_line(
            "36 35 98:0 /mnt1 /mnt2 rw,noatime master:1 - ext3 /dev/root rw,errors=continue"
        )

        assert entry is not None
        assert entry.mount_id == 36
        assert entry.parent_id == 35
        assert entry.device_id == DeviceId(98, 0)
        assert entry.root == "/mnt1"
        assert entry.mount_point == "/mnt2"
        assert entry.options == ("rw", "noatime")
        assert entry.fs_type == "ext3"
        assert entry.source == "/dev/root"

    def test_no_optional_fields(self) -> None:
        """The separator may directly follow the mount options."""
        entry = parse_mountinfo_line("27 22 253:0 / /mnt rw - ext4 /dev/mapper/vg-lv rw")

        assert entry is not None
        assert entry.fs_type == "ext4"
        assert entry.source == "/dev/mapper/vg-lv"

    def test_missing_separator(self) -> None:
        """Lines without a separator are malformed."""
        assert parse_mountinfo_line("22 1 8:1 / / rw shared:1 ext4 /dev/sda1 rw") is None

    def test_truncated_line(self) -> None:
        """Lines ending at the separator are malformed."""
        assert parse_mountinfo_line("22 1 8:1 / / rw -") is None

    def test_bad_device_number(self) -> None:
        """Lines with unparseable ids are malformed."""
        assert parse_mountinfo_line("22 1 sda / / rw - ext4 /dev/sda1 rw") is None


class TestParseMountinfo:
    """Tests for parse_mountinfo function."""

    def test_parses_table(self, mock_mountinfo_output: str) -> None:
        """Every well-formed line becomes an entry in order."""
        entries = parse_mountinfo(mock_mountinfo_output.splitlines())

        assert [e.mount_point for e in entries] == [
            "/",
            "/proc",
            "/mnt/data",
            "/srv/boot",
            "/tank/home",
            "/mnt/my disk",
        ]

    def test_skips_garbage(self) -> None:
        """Blank and malformed lines are dropped."""
        entries = parse_mountinfo(["", "garbage", "22 1 8:1 / / rw - ext4 /dev/sda1 rw"])

        assert len(entries) == 1


class TestReadMountTable:
    """Tests for read_mount_table function."""

    def test_reads_file(self, tmp_path: Path, mock_mountinfo_output: str) -> None:
        """The table is read from the given path."""
        path = tmp_path / "mountinfo"
        path.write_text(mock_mountinfo_output)

        assert len(read_mount_table(str(path))) == 6

    def test_missing_file(self, tmp_path: Path) -> None:
        """An unreadable table is empty."""
        assert read_mount_table(str(tmp_path / "missing")) == []


class TestFindMountEntry:
    """Tests for find_mount_entry function."""

    def _entries(self, mock_mountinfo_output: str):
        return parse_mountinfo(mock_mountinfo_output.splitlines())

    def test_deepest_prefix_wins(self, mock_mountinfo_output: str) -> None:
        """The most specific mount point containing the path is chosen."""
        entry = find_mount_entry(self._entries(mock_mountinfo_output), "/mnt/data/sub/file")

        assert entry is not None
        assert entry.mount_point == "/mnt/data"

    def test_root_mount(self, mock_mountinfo_output: str) -> None:
        """Paths outside other mounts belong to /."""
        entry = find_mount_entry(self._entries(mock_mountinfo_output), "/home/alice")

        assert entry is not None
        assert entry.mount_point == "/"

    def test_prefix_must_end_at_separator(self, mock_mountinfo_output: str) -> None:
        """/mnt/database is not under /mnt/data."""
        entry = find_mount_entry(self._entries(mock_mountinfo_output), "/mnt/database")

        assert entry is not None
        assert entry.mount_point == "/"

    def test_filter_by_device(self, mock_mountinfo_output: str) -> None:
        """Only entries for the given device are considered."""
        entry = find_mount_entry(self._entries(mock_mountinfo_output), "/srv/boot/grub", DeviceId(8, 17))

        assert entry is not None
        assert entry.root == "/exports/boot"

    def test_no_match_for_device(self, mock_mountinfo_output: str) -> None:
        """None is returned when no entry of the device contains the path."""
        assert find_mount_entry(self._entries(mock_mountinfo_output), "/home", DeviceId(99, 9)) is None

    def test_later_mount_shadows_earlier(self) -> None:
        """Of two mounts at the same point the later one wins."""
        entries = parse_mountinfo(
            [
                "30 22 8:2 / /mnt rw - ext4 /dev/sda2 rw",
                "31 30 8:3 / /mnt rw - ext4 /dev/sda3 rw",
            ]
        )

        entry = find_mount_entry(entries, "/mnt/x")

        assert entry is not None
        assert entry.source == "/dev/sda3"
