# termgraph/instrumentation.py
"""
Instrumentation module for timing the expensive graph operations.

Provides utilities for:
- Timing ontology construction, subgraph reduction and redundancy scans
- Aggregating the timings in a thread-safe registry
- Formatting durations for log output
"""

import time
import json
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Any, Callable, Optional
from functools import wraps

logger = logging.getLogger(__name__)


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class StageTiming:
    """Accumulated timing for one named operation."""
    name: str
    calls: int = 0
    total_seconds: float = 0.0
    last_seconds: float = 0.0

    @property
    def mean_seconds(self) -> float:
        if self.calls == 0:
            return 0.0
        return self.total_seconds / self.calls

    @property
    def duration_formatted(self) -> str:
        """Format the total duration as human-readable string."""
        return format_duration(self.total_seconds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "calls": self.calls,
            "total_seconds": self.total_seconds,
            "last_seconds": self.last_seconds,
            "mean_seconds": self.mean_seconds,
            "duration_formatted": self.duration_formatted,
        }


# =============================================================================
# Helper Functions
# =============================================================================

def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.0f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = seconds % 60
        return f"{hours}h {minutes}m {secs:.0f}s"


# =============================================================================
# Timing Registry
# =============================================================================

class TimingRegistry:
    """
    Thread-safe registry of operation timings.

    Usage:
        registry = TimingRegistry()
        registry.record("Ontology.create", 1.25)
        registry.get("Ontology.create").calls  # 1
    """

    def __init__(self):
        self._stages: Dict[str, StageTiming] = {}
        self._lock = threading.Lock()

    def record(self, name: str, seconds: float):
        """Add one measurement for the named operation."""
        with self._lock:
            stage = self._stages.get(name)
            if stage is None:
                stage = StageTiming(name=name)
                self._stages[name] = stage
            stage.calls += 1
            stage.total_seconds += seconds
            stage.last_seconds = seconds

    def get(self, name: str) -> Optional[StageTiming]:
        """Return a snapshot of the named timing or None."""
        with self._lock:
            stage = self._stages.get(name)
            if stage is None:
                return None
            return StageTiming(
                name=stage.name,
                calls=stage.calls,
                total_seconds=stage.total_seconds,
                last_seconds=stage.last_seconds,
            )

    def reset(self):
        """Forget all recorded timings."""
        with self._lock:
            self._stages = {}

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {name: stage.to_dict() for name, stage in self._stages.items()}

    def to_json(self, indent: int = 2) -> str:
        """Convert timings to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


timings = TimingRegistry()


# =============================================================================
# Decorators
# =============================================================================

def timed(name: Optional[str] = None, registry: Optional[TimingRegistry] = None) -> Callable:
    """
    Decorator to time a function, log its duration and record it.

    Usage:
        @timed()
        def my_function():
            pass

        @timed("Ontology.create")
        def create(...):
            pass
    """
    def decorator(func: Callable) -> Callable:
        stage_name = name or func.__qualname__

        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                duration = time.perf_counter() - start
                (registry or timings).record(stage_name, duration)
                logger.debug(f"{stage_name} completed in {format_duration(duration)}")

        return wrapper

    return decorator
