"""
Device Key Derivation
=====================

Builds track keys from advertisement fields. Every key is a digest; no
raw address leaves this module.

Preference order for scanners:
    1. Digest of the stable-within-session hardware address, when the
       platform exposes one
    2. Digest of manufacturer id, sorted service UUIDs, local name and the
       raw advertisement digest

Two advertisements from the same unnamed device collide to the same key
within one scan session, whatever order its service UUIDs arrive in.
"""

from typing import Optional, Sequence

from pulse_sense.identity.hashing import hash_hex


def build_device_key(
    platform: str,
    address: Optional[str],
    manufacturer_id: Optional[int],
    service_uuids: Sequence[str],
    local_name: Optional[str],
    raw_adv_hash: Optional[str],
) -> str:
    """
    Digest every identifying field of an advertisement into one key.
    
    Service UUIDs are sorted so their advertised order does not matter.
    Missing fields contribute an empty segment.
    """
    parts = [
        platform,
        address or "",
        str(manufacturer_id) if manufacturer_id is not None else "",
        ",".join(sorted(service_uuids)),
        local_name or "",
        raw_adv_hash or "",
    ]
    return hash_hex("|".join(parts))


def resolve_scan_key(
    address: Optional[str],
    raw_bytes: Optional[bytes],
    manufacturer_id: Optional[int],
    service_uuids: Sequence[str],
    local_name: Optional[str] = None,
    platform: str = "ble",
) -> str:
    """
    Scanner-side key policy.

    A non-blank address is digested on its own. Otherwise every
    advertisement field goes through build_device_key, with the raw
    bytes reduced to their digest first.
    """
    if address and address.strip():
        return hash_hex(address)
    raw_adv_hash = hash_hex(raw_bytes) if raw_bytes else None
    return build_device_key(
        platform,
        None,
        manufacturer_id,
        service_uuids,
        local_name,
        raw_adv_hash,
    )
