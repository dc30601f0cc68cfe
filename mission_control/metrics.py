"""
mission_control.metrics - Persistence Metrics

Tracks timing and size figures for state persistence:
- Save/load counts and last/average durations
- Last serialization/deserialization time
- Size of the last written state file

Reading the metrics never changes them.

Usage:
    metrics = PersistenceMetrics()
    metrics.record_save(duration_ms=4.2, file_size=2048)
    metrics.get_summary()
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class PersistenceMetrics:
    """
    Accumulates persistence metrics for one store.

    All durations are in milliseconds. Optional fields stay None until the
    corresponding operation has happened at least once.
    """
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    total_saves: int = 0
    total_loads: int = 0
    last_save_duration: Optional[float] = None
    last_load_duration: Optional[float] = None
    average_save_duration: Optional[float] = None
    average_load_duration: Optional[float] = None
    last_serialization_time: Optional[float] = None
    last_deserialization_time: Optional[float] = None
    state_file_size: Optional[int] = None

    def record_save(self, duration_ms: float, file_size: Optional[int] = None) -> None:
        """Record a completed save."""
        with self._lock:
            self.total_saves += 1
            self.last_save_duration = duration_ms
            if self.average_save_duration is None:
                self.average_save_duration = duration_ms
            else:
                self.average_save_duration = (
                    self.average_save_duration * (self.total_saves - 1) + duration_ms
                ) / self.total_saves
            if file_size is not None:
                self.state_file_size = file_size

    def record_load(self, duration_ms: float) -> None:
        """Record a completed load."""
        with self._lock:
            self.total_loads += 1
            self.last_load_duration = duration_ms
            if self.average_load_duration is None:
                self.average_load_duration = duration_ms
            else:
                self.average_load_duration = (
                    self.average_load_duration * (self.total_loads - 1) + duration_ms
                ) / self.total_loads

    def record_serialization(self, duration_ms: float) -> None:
        with self._lock:
            self.last_serialization_time = duration_ms

    def record_deserialization(self, duration_ms: float) -> None:
        with self._lock:
            self.last_deserialization_time = duration_ms

    def get_summary(self) -> Dict[str, Any]:
        """Get a point-in-time copy of all metrics."""
        with self._lock:
            return {
                "total_saves": self.total_saves,
                "total_loads": self.total_loads,
                "last_save_duration": self.last_save_duration,
                "last_load_duration": self.last_load_duration,
                "average_save_duration": self.average_save_duration,
                "average_load_duration": self.average_load_duration,
                "last_serialization_time": self.last_serialization_time,
                "last_deserialization_time": self.last_deserialization_time,
                "state_file_size": self.state_file_size,
            }

    def reset(self) -> None:
        """Reset all metrics (for testing)."""
        with self._lock:
            self.total_saves = 0
            self.total_loads = 0
            self.last_save_duration = None
            self.last_load_duration = None
            self.average_save_duration = None
            self.average_load_duration = None
            self.last_serialization_time = None
            self.last_deserialization_time = None
            self.state_file_size = None
