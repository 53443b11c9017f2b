#!/usr/bin/env python3
"""
Offline Presence Simulation
===========================

Standalone script that drives both estimators from the mock scan source on
a simulated clock. No radios, no server, no wall-clock waiting.

This script:
    1. Generates mock BLE and Wi-Fi scans every --scan-interval ms
    2. Ticks the tracker every --tick-interval ms
    3. Logs cluster and tracker state every --report-interval seconds
    4. Reports a final summary

Usage:
    python scripts/simulate.py --duration 120
    python scripts/simulate.py --devices 8 --projection hash_radial
"""

import argparse
import logging
import os
import sys

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from pulse_sense.ingest import MockScanSource, SignalIngestor
from pulse_sense.signals import SignalEngine
from pulse_sense.tracking import DeviceTracker, create_projector


logger = logging.getLogger("simulate")


def run_simulation(
    duration: int,
    devices: int,
    access_points: int,
    scan_interval_ms: int,
    tick_interval_ms: int,
    report_interval: int,
    projection: str = "compass_cone",
) -> dict:
    """
    Run the simulation.
    
    Args:
        duration: Simulated duration in seconds
        devices: Number of mock BLE devices
        access_points: Number of mock Wi-Fi access points
        scan_interval_ms: Simulated time between scan batches
        tick_interval_ms: Simulated time between tracker ticks
        report_interval: Simulated seconds between progress reports
        projection: Dot placement policy
        
    Returns:
        Final metrics dict
    """
    logger.info("=" * 60)
    logger.info("Presence Simulation")
    logger.info("=" * 60)
    logger.info(f"Duration: {duration} seconds (simulated)")
    logger.info(f"Devices: {devices}, access points: {access_points}")
    logger.info(f"Scan interval: {scan_interval_ms}ms, tick interval: {tick_interval_ms}ms")
    logger.info("=" * 60)
    
    engine = SignalEngine(log_every_n_ticks=0)
    tracker = DeviceTracker(projector=create_projector(projection), log_every_n_ticks=0)
    tracker.set_viewport(1080, 1920)
    ingestor = SignalIngestor(engine=engine, tracker=tracker)
    source = MockScanSource(device_count=devices, access_point_count=access_points)
    
    end_ms = duration * 1000
    next_scan_ms = 0
    next_tick_ms = tick_interval_ms
    next_report_ms = report_interval * 1000
    clusters = []
    
    now_ms = 0
    while now_ms <= end_ms:
        if now_ms >= next_scan_ms:
            for advertisement in source.advertisements(now_ms):
                ingestor.on_ble(advertisement)
            ingestor.on_wifi_batch(source.wifi_results(now_ms))
            next_scan_ms += scan_interval_ms
        
        if now_ms >= next_tick_ms:
            tracker.tick(now_ms)
            clusters = engine.get_clusters_snapshot(now_ms)
            next_tick_ms += tick_interval_ms
        
        if now_ms >= next_report_ms:
            summary = tracker.get_summary_snapshot()
            logger.info("-" * 40)
            logger.info(f"Progress Report (t={now_ms / 1000:.0f}s)")
            logger.info(f"  Clusters: {len(clusters)}")
            for cluster in clusters:
                logger.info(
                    f"    {cluster.cluster_id}: presence={cluster.aggregated_presence_score:.2f} "
                    f"devices={cluster.estimated_device_count} trend={cluster.trend.value}"
                )
            logger.info(f"  Tracks: {tracker.track_count}")
            logger.info(f"  Dots: {len(tracker.get_dots_snapshot())}")
            logger.info(f"  Tracker confidence: {summary.confidence_level.value}")
            next_report_ms += report_interval * 1000
        
        now_ms = min(next_scan_ms, next_tick_ms, next_report_ms)
    
    cluster_summary = engine.summary(end_ms)
    tracker_summary = tracker.get_summary_snapshot()
    
    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Scan batches: {source.step_count}")
    logger.info(f"Estimated devices (clusters): {cluster_summary.total_devices}")
    logger.info(f"Cluster confidence: {cluster_summary.confidence_level.value}")
    logger.info(f"Trackable devices: {tracker_summary.total_devices}")
    logger.info(f"Dots: {len(tracker.get_dots_snapshot())}")
    logger.info("=" * 60)
    
    return {
        "scan_batches": source.step_count,
        "cluster_count": len(clusters),
        "estimated_devices": cluster_summary.total_devices,
        "trackable_devices": tracker_summary.total_devices,
        "dot_count": len(tracker.get_dots_snapshot()),
        "engine": engine.get_metrics(),
        "tracker": tracker.get_metrics(),
    }


def main():
    parser = argparse.ArgumentParser(
        description="Offline presence simulation over the mock scan source"
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=120,
        help="Simulated duration in seconds (default: 120)",
    )
    parser.add_argument(
        "--devices",
        type=int,
        default=4,
        help="Mock BLE devices (default: 4)",
    )
    parser.add_argument(
        "--access-points",
        type=int,
        default=2,
        help="Mock Wi-Fi access points (default: 2)",
    )
    parser.add_argument(
        "--scan-interval",
        type=int,
        default=250,
        help="Simulated ms between scan batches (default: 250)",
    )
    parser.add_argument(
        "--tick-interval",
        type=int,
        default=500,
        help="Simulated ms between ticks (default: 500)",
    )
    parser.add_argument(
        "--report-interval",
        type=int,
        default=10,
        help="Simulated seconds between progress reports (default: 10)",
    )
    parser.add_argument(
        "--projection",
        choices=["compass_cone", "hash_radial"],
        default="compass_cone",
        help="Dot placement policy (default: compass_cone)",
    )
    
    args = parser.parse_args()
    
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    
    result = run_simulation(
        duration=args.duration,
        devices=args.devices,
        access_points=args.access_points,
        scan_interval_ms=args.scan_interval,
        tick_interval_ms=args.tick_interval,
        report_interval=args.report_interval,
        projection=args.projection,
    )
    
    sys.exit(0 if result["trackable_devices"] > 0 else 1)


if __name__ == "__main__":
    main()
