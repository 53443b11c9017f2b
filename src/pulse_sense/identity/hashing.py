"""
Hashing Utilities
=================

Deterministic digests used to build identifiers without storing raw
platform identifiers.

Functions:
    - hash_hex: 64-bit FNV-1a digest rendered as 16 hex characters
    - stable_hash: 32-bit polynomial string hash (h = h * 31 + ch)
    - sha256_hex: SHA-256 hex digest of UTF-8 text

stable_hash is the single source of deterministic pseudo-randomness in the
system (azimuth seeding, hash placement, cluster ids). It must never be
replaced with a PRNG: repeat runs have to produce identical output.
"""

import hashlib
from typing import Union


_FNV_OFFSET_BASIS = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
_MASK_64 = 0xFFFFFFFFFFFFFFFF


def hash_hex(data: Union[bytes, str]) -> str:
    """
    Compute the 64-bit FNV-1a digest of raw bytes.
    
    Args:
        data: Bytes to hash. Strings are UTF-8 encoded first.
        
    Returns:
        16-character lowercase hex string
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    
    value = _FNV_OFFSET_BASIS
    for byte in data:
        value ^= byte
        value = (value * _FNV_PRIME) & _MASK_64
    return f"{value:016x}"


def stable_hash(text: str) -> int:
    """
    Signed 32-bit polynomial hash of a string.
    
    Wraps with two's-complement semantics after every step, so the
    result is always in [-2**31, 2**31 - 1].
    """
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def sha256_hex(text: str) -> str:
    """SHA-256 hex digest of UTF-8 encoded text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
