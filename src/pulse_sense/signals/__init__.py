"""
Signals Module
==============

Clustering variant of presence estimation.

This module provides the sliding sample window, the signal fusion engine
that groups ephemeral sources into clusters, and the cluster summary.
"""

from pulse_sense.signals.window import SignalWindow
from pulse_sense.signals.engine import SignalEngine
from pulse_sense.signals.summary import compute_cluster_summary

__all__ = ["SignalWindow", "SignalEngine", "compute_cluster_summary"]
