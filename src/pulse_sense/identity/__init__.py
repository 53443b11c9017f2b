"""
Identity Module
===============

Hashing and pseudonymous identifiers for radio sources.

No component stores a raw platform identifier: sources are known only by
digests, and ephemeral ids rotate on a fixed schedule.
"""

from pulse_sense.identity.hashing import hash_hex, sha256_hex, stable_hash
from pulse_sense.identity.ephemeral import EphemeralIdGenerator
from pulse_sense.identity.device_key import build_device_key, resolve_scan_key

__all__ = [
    "hash_hex",
    "sha256_hex",
    "stable_hash",
    "EphemeralIdGenerator",
    "build_device_key",
    "resolve_scan_key",
]
