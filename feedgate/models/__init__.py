"""FeedGate models package.

Defines the data contracts shared by the policy client and the host adapter:

  - package.py  — PackageDescriptor, HashedPackage capability, HashAlgorithm
  - decision.py — AccessDecision (allow / deny + reason)
"""
from feedgate.models.decision import ALLOWED, AccessDecision
from feedgate.models.package import HashAlgorithm, HashedPackage, PackageDescriptor

__all__ = [
    "ALLOWED",
    "AccessDecision",
    "HashAlgorithm",
    "HashedPackage",
    "PackageDescriptor",
]
