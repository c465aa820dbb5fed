"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
import stat
from pathlib import Path
from types import SimpleNamespace

import pytest


@pytest.fixture
def mock_zpool_status_output() -> str:
    """Sample zpool status output for a pool with a single disk."""
    return """  pool: tank
 state: ONLINE
  scan: none requested
config:

\tNAME        STATE     READ WRITE CKSUM
\ttank        ONLINE       0     0     0
\t  sda1      ONLINE       0     0     0

errors: No known data errors"""


@pytest.fixture
def mock_zpool_mirror_output() -> str:
    """Sample zpool status output for a mirrored pool with a faulted disk."""
    return """  pool: rpool
 state: DEGRADED
config:

\tNAME                        STATE     READ WRITE CKSUM
\trpool                       DEGRADED     0     0     0
\t  mirror-0                  DEGRADED     0     0     0
\t    /dev/disk/by-id/ata-A   ONLINE       0     0     0
\t    sdb2                    FAULTED      3     0     0  too many errors
\t  raidz1-1                  ONLINE       0     0     0
\t    sdc                     ONLINE       0     0     0
\tlogs
\t  nvme0n1p1                 ONLINE       0     0     0

errors: No known data errors"""


@pytest.fixture
def mock_zpool_json_output() -> str:
    """Sample zpool status -j -P output for a mirrored pool."""
    return """{
  "output_version": {"command": "zpool status", "vers_major": 0, "vers_minor": 1},
  "pools": {
    "tank": {
      "name": "tank",
      "state": "ONLINE",
      "vdevs": {
        "tank": {
          "name": "tank",
          "vdev_type": "root",
          "state": "ONLINE",
          "vdevs": {
            "mirror-0": {
              "name": "mirror-0",
              "vdev_type": "mirror",
              "state": "ONLINE",
              "vdevs": {
                "/dev/sda1": {"name": "/dev/sda1", "vdev_type": "disk", "path": "/dev/sda1", "state": "ONLINE"},
                "/dev/sdb1": {"name": "/dev/sdb1", "vdev_type": "disk", "path": "/dev/sdb1", "state": "ONLINE"}
              }
            }
          }
        }
      }
    }
  }
}"""


@pytest.fixture
def mock_vgs_output() -> str:
    """Sample vgs --options pv_name --noheadings --separator : output."""
    return "  /dev/sda2\n  /dev/sdb1\n"


@pytest.fixture
def mock_mountinfo_output() -> str:
    """Sample /proc/self/mountinfo content."""
    return """22 1 8:1 / / rw,relatime shared:1 - ext4 /dev/sda1 rw,errors=remount-ro
23 22 0:21 / /proc rw,nosuid,nodev,noexec,relatime shared:12 - proc proc rw
24 22 8:17 / /mnt/data rw,relatime shared:2 - xfs /dev/sdb1 rw
25 22 8:17 /exports/boot /srv/boot rw,relatime shared:2 - xfs /dev/sdb1 rw
26 22 0:45 / /tank/home rw,noatime shared:3 - zfs tank/home rw,xattr
27 22 253:0 / /mnt/my\\040disk rw,relatime - ext4 /dev/mapper/vg-lv rw
"""


def fake_stat(mode: int, *, dev: int = 0, rdev: int = 0) -> SimpleNamespace:
    """Build a minimal stat result with the fields the probes read."""
    return SimpleNamespace(st_mode=mode, st_dev=dev, st_rdev=rdev)


def block_stat(major: int, minor: int) -> SimpleNamespace:
    """Stat result of a block device node."""
    return fake_stat(stat.S_IFBLK | 0o660, rdev=os.makedev(major, minor))


def char_stat(major: int, minor: int) -> SimpleNamespace:
    """Stat result of a character device node."""
    return fake_stat(stat.S_IFCHR | 0o660, rdev=os.makedev(major, minor))


@pytest.fixture
def device_nodes():
    """Patchable replacement for devtree.read_node backed by a dict.

    Paths registered in the returned mapping report the given stat
    result; all other paths are stat'ed for real.
    """
    nodes: dict[str, SimpleNamespace] = {}

    def read_node(path: str, *, follow_symlinks: bool):
        if path in nodes:
            return nodes[path]
        if follow_symlinks:
            target = os.path.realpath(path)
            if target in nodes:
                return nodes[target]
        return os.stat(path, follow_symlinks=follow_symlinks)

    read_node.nodes = nodes  # type: ignore[attr-defined]
    return read_node


@pytest.fixture
def dev_tree(tmp_path: Path) -> Path:
    """Create an empty device directory tree with a mapper subdirectory."""
    dev = tmp_path.resolve() / "dev"
    (dev / "mapper").mkdir(parents=True)
    return dev


@pytest.fixture
def stats() -> SimpleNamespace:
    """Factories for fake stat results (fake, block, char)."""
    return SimpleNamespace(fake=fake_stat, block=block_stat, char=char_stat)
