"""
Ephemeral Source IDs
====================

Rotating pseudonyms for radio sources.

The same raw platform identifier maps to a different opaque id once the
rotation window elapses. Long-run re-identification is intentionally
defeated: nothing downstream ever sees the raw identifier.

    bucket = floor(now_ms / rotation_ms)
    id     = sha256("{prefix}|{raw_id}|{bucket}")
"""

import logging

from pulse_sense.errors import ConfigurationError
from pulse_sense.identity.hashing import sha256_hex


logger = logging.getLogger(__name__)


class EphemeralIdGenerator:
    """
    Derives time-bucketed one-way ids from raw identifiers.
    
    Attributes:
        rotation_minutes: Width of one rotation bucket in minutes
        
    Example:
        ids = EphemeralIdGenerator(rotation_minutes=5)
        source_id = ids.id_for("wifi", "aa:bb:cc:dd:ee:ff", now_ms)
    """
    
    def __init__(self, rotation_minutes: int = 5) -> None:
        if rotation_minutes <= 0:
            raise ConfigurationError(
                f"rotation_minutes must be > 0, got {rotation_minutes}"
            )
        self.rotation_minutes = rotation_minutes
        logger.info(f"EphemeralIdGenerator initialized: rotation={rotation_minutes}min")
    
    @property
    def rotation_ms(self) -> int:
        """Rotation window in milliseconds."""
        return self.rotation_minutes * 60_000
    
    def bucket_for(self, now_ms: int) -> int:
        """Rotation bucket index containing now_ms."""
        return now_ms // self.rotation_ms
    
    def id_for(self, prefix: str, raw_id: str, now_ms: int) -> str:
        """
        Opaque id for raw_id within the bucket containing now_ms.
        
        Args:
            prefix: Source kind namespace ("ble", "wifi")
            raw_id: Raw platform identifier (address, BSSID, fallback key)
            now_ms: Wall-clock milliseconds
            
        Returns:
            64-character hex id
        """
        bucket = self.bucket_for(now_ms)
        return sha256_hex(f"{prefix}|{raw_id}|{bucket}")
