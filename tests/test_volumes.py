"""Tests for volume identifiers, metadata and mount status."""

from __future__ import annotations

import base64
import json
import plistlib
from datetime import datetime, timezone
from pathlib import Path

import pytest

from drivefinder.models import VolumeInfo
from drivefinder.volumes import (
    PreferencesVolumeDirectory,
    StaticVolumeDirectory,
    cf_absolute_time_to_datetime,
    decode_volume_id,
    encode_volume_id,
    full_path,
    index_filename,
    is_volume_mounted,
    parse_drive_log,
    resolve_volume_name,
)

from conftest import VOLUME_A, VOLUME_B

ENCODED_A = "NkI3NUVEMjItMDMzMi0zQTVDLTgyNTItMTU2ODFGQjAxRTRB"


class TestVolumeIdentifiers:
    """Test encoding and decoding of index filenames."""

    def test_encode(self) -> None:
        assert encode_volume_id(VOLUME_A) == ENCODED_A

    def test_decode(self) -> None:
        assert decode_volume_id(f"{ENCODED_A}.json") == VOLUME_A

    def test_decode_without_suffix(self) -> None:
        assert decode_volume_id(ENCODED_A) == VOLUME_A

    def test_decode_full_path(self) -> None:
        assert decode_volume_id(str(Path("/indexes") / f"{ENCODED_A}.json")) == VOLUME_A

    @pytest.mark.parametrize("volume_id", [VOLUME_A, VOLUME_B, "x", "Macintosh HD"])
    def test_round_trip(self, volume_id: str) -> None:
        assert decode_volume_id(index_filename(volume_id)) == volume_id

    @pytest.mark.parametrize("filename", ["not-base64!.json", "abc.json", "////.json"])
    def test_malformed_falls_back_to_stem(self, filename: str) -> None:
        assert decode_volume_id(filename) == filename[: -len(".json")]

    def test_non_ascii_identifier_filename(self) -> None:
        assert index_filename("Dísk") == "Dísk.json"


class TestCfAbsoluteTime:
    """Test Apple reference date conversion."""

    def test_reference_date(self) -> None:
        assert cf_absolute_time_to_datetime(0) == datetime(2001, 1, 1, tzinfo=timezone.utc)

    def test_offset(self) -> None:
        assert cf_absolute_time_to_datetime(86400.5) == datetime(2001, 1, 2, 0, 0, 0, 500000, tzinfo=timezone.utc)


class TestStaticVolumeDirectory:
    """Test the in-memory metadata provider."""

    def test_lookup(self) -> None:
        volumes = StaticVolumeDirectory.from_names({VOLUME_A: "Backup"})
        assert volumes.lookup(VOLUME_A) == VolumeInfo(volume_id=VOLUME_A, name="Backup")
        assert volumes.lookup(VOLUME_B) is None

    def test_add(self) -> None:
        volumes = StaticVolumeDirectory()
        volumes.add(VolumeInfo(volume_id=VOLUME_B, name="Archive"))
        assert resolve_volume_name(volumes, VOLUME_B) == "Archive"

    def test_resolve_blank_name(self) -> None:
        volumes = StaticVolumeDirectory({VOLUME_A: VolumeInfo(volume_id=VOLUME_A, name="")})
        assert resolve_volume_name(volumes, VOLUME_A) is None


class TestParseDriveLog:
    """Test decoding the drive log blob."""

    def test_parses_last_known(self) -> None:
        volumes = parse_drive_log(
            {
                VOLUME_A: {
                    "lastKnown": {
                        "name": "Backup",
                        "path": "/Volumes/Backup",
                        "totalSize": 2000,
                        "availableSize": 500,
                        "summary": "Time Machine",
                    },
                    "lastSeen": 0,
                }
            }
        )

        info = volumes[VOLUME_A]
        assert info.name == "Backup"
        assert info.path == "/Volumes/Backup"
        assert info.total_size == 2000
        assert info.available_size == 500
        assert info.summary == "Time Machine"
        assert info.last_seen_at == datetime(2001, 1, 1, tzinfo=timezone.utc)

    def test_skips_records_without_last_known(self) -> None:
        volumes = parse_drive_log({VOLUME_A: {"lastSeen": 1}, VOLUME_B: "junk"})
        assert volumes == {}


class TestPreferencesVolumeDirectory:
    """Test reading metadata from the preferences property list."""

    def test_reads_binary_data_blob(self, write_preferences) -> None:
        volumes = PreferencesVolumeDirectory(write_preferences({VOLUME_A: "Backup"}))

        info = volumes.lookup(VOLUME_A)

        assert info is not None
        assert info.name == "Backup"
        assert volumes.lookup(VOLUME_B) is None

    def test_reads_base64_string_blob(self, tmp_path: Path) -> None:
        drive_log = {VOLUME_A: {"lastKnown": {"name": "Backup"}}}
        encoded = base64.b64encode(json.dumps(drive_log).encode("utf-8")).decode("ascii")
        path = tmp_path / "prefs.plist"
        with path.open("wb") as handle:
            plistlib.dump({"DriveLogByKey": encoded}, handle, fmt=plistlib.FMT_BINARY)

        assert PreferencesVolumeDirectory(path).lookup(VOLUME_A).name == "Backup"

    def test_missing_file(self, tmp_path: Path) -> None:
        assert PreferencesVolumeDirectory(tmp_path / "missing.plist").lookup(VOLUME_A) is None

    def test_corrupt_file(self, tmp_path: Path) -> None:
        path = tmp_path / "prefs.plist"
        path.write_bytes(b"garbage")
        assert PreferencesVolumeDirectory(path).lookup(VOLUME_A) is None

    def test_missing_key(self, tmp_path: Path) -> None:
        path = tmp_path / "prefs.plist"
        with path.open("wb") as handle:
            plistlib.dump({"Other": 1}, handle)
        assert PreferencesVolumeDirectory(path).lookup(VOLUME_A) is None

    def test_reload(self, write_preferences) -> None:
        path = write_preferences({VOLUME_A: "Backup"})
        volumes = PreferencesVolumeDirectory(path)
        assert volumes.lookup(VOLUME_B) is None

        write_preferences({VOLUME_A: "Backup", VOLUME_B: "Archive"})
        assert volumes.lookup(VOLUME_B) is None
        volumes.reload()
        assert volumes.lookup(VOLUME_B).name == "Archive"


class TestMountStatus:
    """Test mount detection and path building."""

    def test_full_path(self, tmp_path: Path) -> None:
        expected = tmp_path.resolve() / "Backup" / "docs" / "a.txt"
        assert full_path("Backup", "docs/a.txt", tmp_path) == expected
        assert full_path("Backup", "/docs/a.txt", tmp_path) == expected
        assert full_path("Backup", "docs/../docs/a.txt", tmp_path) == expected

    @pytest.mark.parametrize("relative_path", ["../Archive/a.txt", "docs/../../a.txt", "/../../etc/passwd"])
    def test_full_path_rejects_escape(self, tmp_path: Path, relative_path: str) -> None:
        with pytest.raises(ValueError):
            full_path("Backup", relative_path, tmp_path)

    def test_default_root(self) -> None:
        assert full_path("Backup", "a.txt") == Path("/Volumes/Backup/a.txt")

    def test_mounted(self, tmp_path: Path) -> None:
        (tmp_path / "Backup").mkdir()
        assert is_volume_mounted("Backup", tmp_path)
        assert not is_volume_mounted("Archive", tmp_path)
        assert not is_volume_mounted("", tmp_path)
