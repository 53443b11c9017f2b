"""
Cluster Summary
===============

Read-only aggregate over a list of cluster snapshots.

    total_devices    = sum(estimated_device_count)
    confidence_level = highest confidence present among clusters
    stationary_count = clusters with stability_score >= 0.7
"""

from typing import Sequence

from pulse_sense.models.signal import ClusterSnapshot, ConfidenceLevel, PresenceSummary


STATIONARY_STABILITY = 0.7


def compute_cluster_summary(clusters: Sequence[ClusterSnapshot]) -> PresenceSummary:
    """Summarize clusters for the UI."""
    levels = {cluster.confidence for cluster in clusters}
    if ConfidenceLevel.HIGH in levels:
        confidence = ConfidenceLevel.HIGH
    elif ConfidenceLevel.MEDIUM in levels:
        confidence = ConfidenceLevel.MEDIUM
    else:
        confidence = ConfidenceLevel.LOW
    
    return PresenceSummary(
        total_devices=sum(cluster.estimated_device_count for cluster in clusters),
        confidence_level=confidence,
        stationary_count=sum(
            1 for cluster in clusters if cluster.stability_score >= STATIONARY_STABILITY
        ),
    )
