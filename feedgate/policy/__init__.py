"""Policy-service protocol: diff payload, request envelope, response interpretation.

Public API:
    PolicyCheckClient — one policy check per package-download attempt
    find_policies     — collect every ``policy`` object in a policy document
"""
from feedgate.policy.client import PolicyCheckClient
from feedgate.policy.response import find_policies

__all__ = ["PolicyCheckClient", "find_policies"]
