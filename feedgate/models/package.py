"""Package identity contracts for the access gate.

Two shapes are accepted by the policy check:

  - ``PackageDescriptor`` — the concrete frozen dataclass built by the HTTP
    surface and by tests.
  - ``HashedPackage``     — a structural Protocol. Any host-side package object
    exposing name/version/group/last_modified and ``get_package_hash()`` can be
    checked directly, without conversion.

A package that does not satisfy ``HashedPackage`` cannot be hashed and is
treated exactly like a package with no SHA1 hash (deny).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from feedgate.constants import MD5_DIGEST_SIZE, SHA1_DIGEST_SIZE


class HashAlgorithm(str, enum.Enum):
    """Content-hash algorithms the policy service understands."""

    SHA1 = "SHA1"
    MD5 = "MD5"


_DIGEST_SIZES: dict[HashAlgorithm, int] = {
    HashAlgorithm.SHA1: SHA1_DIGEST_SIZE,
    HashAlgorithm.MD5: MD5_DIGEST_SIZE,
}


@runtime_checkable
class HashedPackage(Protocol):
    """Capability: a package that can report its identity and content hashes."""

    name: str
    version: str
    group: Optional[str]
    last_modified: Optional[datetime]

    def get_package_hash(self, algorithm: HashAlgorithm) -> Optional[bytes]:
        """Return the raw digest for ``algorithm``, or None if not computed."""
        ...


@dataclass(frozen=True)
class PackageDescriptor:
    """Immutable description of one package-download attempt.

    ``sha1`` is required for a check to reach the policy service; a descriptor
    without one is still constructible so the gate can deny it with an
    actionable message.
    """

    name: str
    version: str
    group: Optional[str] = None
    sha1: Optional[bytes] = None
    md5: Optional[bytes] = None
    last_modified: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("package name must not be empty")
        if not self.version:
            raise ValueError("package version must not be empty")
        _check_digest(HashAlgorithm.SHA1, self.sha1)
        _check_digest(HashAlgorithm.MD5, self.md5)

    def get_package_hash(self, algorithm: HashAlgorithm) -> Optional[bytes]:
        if algorithm is HashAlgorithm.SHA1:
            return self.sha1
        if algorithm is HashAlgorithm.MD5:
            return self.md5
        return None

    @classmethod
    def from_hex(
        cls,
        name: str,
        version: str,
        group: Optional[str] = None,
        sha1: Optional[str] = None,
        md5: Optional[str] = None,
        last_modified: Optional[datetime] = None,
    ) -> "PackageDescriptor":
        """Build a descriptor from hex-encoded digests.

        Raises:
            ValueError: If a digest is not valid hex or has the wrong length.
        """
        return cls(
            name=name,
            version=version,
            group=group or None,
            sha1=bytes.fromhex(sha1) if sha1 else None,
            md5=bytes.fromhex(md5) if md5 else None,
            last_modified=last_modified,
        )

    def __str__(self) -> str:
        if self.group:
            return f"{self.group}/{self.name} {self.version}"
        return f"{self.name} {self.version}"


def _check_digest(algorithm: HashAlgorithm, digest: Optional[bytes]) -> None:
    if digest is None:
        return
    expected = _DIGEST_SIZES[algorithm]
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != expected:
        raise ValueError(
            f"{algorithm.value} digest must be exactly {expected} bytes"
        )
