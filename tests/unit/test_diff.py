"""Unit tests for feedgate/policy/diff.py — diff payload shape and hex encoding.

Covers:
  - exactly one coordinates block and one dependency entry
  - groupId present in both sub-objects iff the package has a non-empty group
  - checksums.MD5 present iff an MD5 hash was supplied
  - lowercase two-digit hex with no separators, round-tripping to the bytes
  - MissingHashError when SHA1 is absent
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytest

from feedgate.models.package import HashAlgorithm, PackageDescriptor
from feedgate.policy.diff import build_diff, serialize_diff, to_hex
from feedgate.policy.errors import MissingHashError


# ─── to_hex ──────────────────────────────────────────────────────────────────


class TestToHex:
    def test_lowercase_two_digits_per_byte(self) -> None:
        assert to_hex(bytes([0x00, 0x0A, 0xAB, 0xFF])) == "000aabff"

    def test_no_separators(self) -> None:
        encoded = to_hex(bytes(range(20)))
        assert len(encoded) == 40
        assert encoded.isalnum()

    def test_round_trips(self) -> None:
        digest = bytes([0xDE, 0xAD, 0xBE, 0xEF] * 5)
        assert bytes.fromhex(to_hex(digest)) == digest

    def test_never_uppercase(self) -> None:
        encoded = to_hex(bytes(range(256)))
        assert encoded == encoded.lower()


# ─── build_diff ──────────────────────────────────────────────────────────────


class TestBuildDiff:
    def test_single_project_single_dependency(self, package: PackageDescriptor) -> None:
        diff = build_diff(package)
        assert isinstance(diff, list)
        assert len(diff) == 1
        assert set(diff[0]) == {"coordinates", "dependencies"}
        assert len(diff[0]["dependencies"]) == 1

    def test_coordinates_fields(self, package: PackageDescriptor) -> None:
        coordinates = build_diff(package)[0]["coordinates"]
        assert coordinates == {"artifactId": "left-pad", "version": "1.3.0", "groupId": "npm"}

    def test_dependency_fields(self, package: PackageDescriptor) -> None:
        dependency = build_diff(package)[0]["dependencies"][0]
        sha1_hex = package.sha1.hex()
        assert dependency["artifactId"] == "left-pad"
        assert dependency["version"] == "1.3.0"
        assert dependency["groupId"] == "npm"
        assert dependency["sha1"] == sha1_hex
        assert dependency["checksums"] == {"SHA1": sha1_hex, "MD5": package.md5.hex()}

    def test_group_omitted_when_absent(self, bare_package: PackageDescriptor) -> None:
        project = build_diff(bare_package)[0]
        assert "groupId" not in project["coordinates"]
        assert "groupId" not in project["dependencies"][0]

    def test_empty_group_treated_as_absent(self) -> None:
        package = PackageDescriptor(name="x", version="1", group="", sha1=b"\x01" * 20)
        project = build_diff(package)[0]
        assert "groupId" not in project["coordinates"]
        assert "groupId" not in project["dependencies"][0]

    def test_md5_omitted_when_absent(self, bare_package: PackageDescriptor) -> None:
        checksums = build_diff(bare_package)[0]["dependencies"][0]["checksums"]
        assert checksums == {"SHA1": bare_package.sha1.hex()}

    def test_missing_sha1_raises(self, unhashed_package: PackageDescriptor) -> None:
        with pytest.raises(MissingHashError) as exc_info:
            build_diff(unhashed_package)
        assert "mystery 0.0.1" in exc_info.value.message
        assert exc_info.value.code == "MISSING_HASH"

    def test_md5_without_sha1_still_raises(self) -> None:
        package = PackageDescriptor(name="x", version="1", md5=b"\x02" * 16)
        with pytest.raises(MissingHashError):
            build_diff(package)

    def test_accepts_any_hashed_package(self) -> None:
        """Host objects only need the HashedPackage capability, not the dataclass."""

        @dataclass
        class HostPackage:
            name: str
            version: str
            group: Optional[str] = None
            last_modified: Optional[datetime] = None

            def get_package_hash(self, algorithm: HashAlgorithm) -> Optional[bytes]:
                return b"\xaa" * 20 if algorithm is HashAlgorithm.SHA1 else None

        diff = build_diff(HostPackage(name="Newtonsoft.Json", version="13.0.3"))
        assert diff[0]["dependencies"][0]["sha1"] == "aa" * 20


# ─── serialize_diff ──────────────────────────────────────────────────────────


class TestSerializeDiff:
    def test_is_valid_json_matching_build_diff(self, package: PackageDescriptor) -> None:
        assert json.loads(serialize_diff(package)) == build_diff(package)

    def test_compact_output(self, package: PackageDescriptor) -> None:
        assert ", " not in serialize_diff(package)
        assert ": " not in serialize_diff(package)
