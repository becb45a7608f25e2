from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

from shortcutsync.utils.backups import (
    create_managed_backup,
    list_backups,
    restore_backup,
    steam_user_from_path,
)


def _vdf(tmp_path: Path, content: bytes = b"original") -> Path:
    path = tmp_path / "steam" / "userdata" / "777" / "config" / "shortcuts.vdf"
    path.parent.mkdir(parents=True)
    path.write_bytes(content)
    return path


def test_steam_user_from_path() -> None:
    assert steam_user_from_path("/home/deck/.steam/steam/userdata/777/config/shortcuts.vdf") == "777"
    assert steam_user_from_path("C:\\Steam\\userdata\\42\\config\\shortcuts.vdf") == "42"
    assert steam_user_from_path("/tmp/shortcuts.vdf") is None


def test_backup_is_stored_per_user(tmp_path: Path) -> None:
    vdf = _vdf(tmp_path)
    root = tmp_path / "backups"

    backup = create_managed_backup(str(vdf), backups_root=str(root))

    assert backup is not None
    assert Path(backup).parent == root / "777"
    assert Path(backup).name.startswith("shortcuts-")
    assert Path(backup).name.endswith(".bak.vdf")
    assert Path(backup).read_bytes() == b"original"
    assert list_backups("777", str(root)) == [backup]


def test_missing_file_is_not_backed_up(tmp_path: Path) -> None:
    assert create_managed_backup(str(tmp_path / "nope.vdf"), backups_root=str(tmp_path)) is None


def test_unknown_user_uses_default_folder(tmp_path: Path) -> None:
    vdf = tmp_path / "shortcuts.vdf"
    vdf.write_bytes(b"x")
    backup = create_managed_backup(str(vdf), backups_root=str(tmp_path / "backups"))
    assert Path(backup).parent.name == "user"


def test_only_newest_backups_are_kept(tmp_path: Path) -> None:
    vdf = _vdf(tmp_path)
    root = str(tmp_path / "backups")
    stamps = [f"20240101_0000{i:02d}" for i in range(7)]

    with patch("shortcutsync.utils.backups.time") as fake_time:
        fake_time.strftime.side_effect = stamps
        for _ in stamps:
            create_managed_backup(str(vdf), "777", root, keep=5)

    names = [os.path.basename(p) for p in list_backups("777", root)]
    assert names == [f"shortcuts-{s}.bak.vdf" for s in reversed(stamps[2:])]


def test_same_second_backups_do_not_collide(tmp_path: Path) -> None:
    vdf = _vdf(tmp_path)
    root = str(tmp_path / "backups")

    with patch("shortcutsync.utils.backups.time") as fake_time:
        fake_time.strftime.return_value = "20240101_000000"
        first = create_managed_backup(str(vdf), "777", root)
        second = create_managed_backup(str(vdf), "777", root)

    assert first != second
    assert len(list_backups("777", root)) == 2


def test_restore_backs_up_current_file_first(tmp_path: Path) -> None:
    vdf = _vdf(tmp_path, b"old")
    root = str(tmp_path / "backups")
    with patch("shortcutsync.utils.backups.time") as fake_time:
        fake_time.strftime.return_value = "20240101_000000"
        backup = create_managed_backup(str(vdf), "777", root)
    vdf.write_bytes(b"broken")

    with patch("shortcutsync.utils.backups.time") as fake_time:
        fake_time.strftime.return_value = "20240102_000000"
        assert restore_backup(backup, str(vdf), "777", root) is True

    assert vdf.read_bytes() == b"old"
    newest = list_backups("777", root)[0]
    assert Path(newest).read_bytes() == b"broken"


def test_restore_missing_backup_fails(tmp_path: Path) -> None:
    vdf = _vdf(tmp_path)
    assert restore_backup(str(tmp_path / "missing.bak.vdf"), str(vdf), "777", str(tmp_path)) is False
    assert vdf.read_bytes() == b"original"


def test_same_second_counters_order_numerically(tmp_path: Path) -> None:
    vdf = _vdf(tmp_path)
    root = str(tmp_path / "backups")

    with patch("shortcutsync.utils.backups.time") as fake_time:
        fake_time.strftime.return_value = "20240101_000000"
        created = [create_managed_backup(str(vdf), "777", root, keep=5) for _ in range(12)]

    names = [os.path.basename(p) for p in list_backups("777", root)]
    assert names == [f"shortcuts-20240101_000000_{i}.bak.vdf" for i in range(11, 6, -1)]
    assert list_backups("777", root) == list(reversed(created[-5:]))


def test_failed_restore_leaves_current_file(tmp_path: Path) -> None:
    vdf = _vdf(tmp_path, b"current")
    backup = tmp_path / "shortcuts-20240101_000000.bak.vdf"
    backup.write_bytes(b"restored")

    with patch("shortcutsync.shortcuts.vdf.os.replace", side_effect=OSError("disk full")):
        assert restore_backup(str(backup), str(vdf), "777", str(tmp_path / "backups")) is False

    assert vdf.read_bytes() == b"current"
    assert os.listdir(vdf.parent) == ["shortcuts.vdf"]
