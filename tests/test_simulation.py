"""
Simulation Script Tests
=======================
"""

import importlib.util
from pathlib import Path


SCRIPT = Path(__file__).parent.parent / "scripts" / "simulate.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("simulate", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestSimulation:
    """Tests for the offline simulation driver."""
    
    def test_mock_devices_become_trackable(self):
        simulate = _load_script()
        
        result = simulate.run_simulation(
            duration=30,
            devices=4,
            access_points=2,
            scan_interval_ms=250,
            tick_interval_ms=500,
            report_interval=10,
        )
        
        assert result["scan_batches"] == 121
        assert result["tracker"]["track_count"] == 4
        assert result["trackable_devices"] == 4
        assert result["dot_count"] == 4
        assert result["cluster_count"] >= 1
