"""Diff payload builder.

The policy service evaluates a "diff": a JSON array describing one project
(``coordinates``) and its dependencies. The gate always sends exactly one
project whose single dependency is the package being downloaded:

.. code-block:: json

    [
      {
        "coordinates": {"artifactId": "left-pad", "version": "1.3.0", "groupId": "npm"},
        "dependencies": [
          {
            "artifactId": "left-pad",
            "version": "1.3.0",
            "sha1": "<40 hex chars>",
            "checksums": {"SHA1": "<40 hex chars>", "MD5": "<32 hex chars>"},
            "groupId": "npm"
          }
        ]
      }
    ]

``groupId`` is omitted (not empty) when the package has no group, and
``checksums.MD5`` is omitted when no MD5 hash is available.
"""

from __future__ import annotations

import json
from typing import Any

from feedgate.models.package import HashAlgorithm, HashedPackage
from feedgate.policy.errors import MissingHashError


def to_hex(data: bytes) -> str:
    """Encode a digest as lowercase hex, two digits per byte, no separators."""
    return bytes(data).hex()


def build_diff(package: HashedPackage) -> list[dict[str, Any]]:
    """Build the diff payload for ``package``.

    Raises:
        MissingHashError: If the package has no SHA1 hash.
    """
    sha1 = package.get_package_hash(HashAlgorithm.SHA1)
    if not sha1:
        raise MissingHashError(package.name, str(package.version))
    sha1_hex = to_hex(sha1)

    version = str(package.version)
    coordinates: dict[str, Any] = {
        "artifactId": package.name,
        "version": version,
    }
    dependency: dict[str, Any] = {
        "artifactId": package.name,
        "version": version,
        "sha1": sha1_hex,
        "checksums": {"SHA1": sha1_hex},
    }

    if package.group:
        coordinates["groupId"] = package.group
        dependency["groupId"] = package.group

    md5 = package.get_package_hash(HashAlgorithm.MD5)
    if md5:
        dependency["checksums"]["MD5"] = to_hex(md5)

    return [{"coordinates": coordinates, "dependencies": [dependency]}]


def serialize_diff(package: HashedPackage) -> str:
    """Serialize the diff payload for ``package`` as a compact JSON string."""
    return json.dumps(build_diff(package), separators=(",", ":"), ensure_ascii=False)
