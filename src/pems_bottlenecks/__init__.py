"""Freeway bottleneck detection from PeMS station speed differentials.

Not named 'bottleneck' to avoid clashing with the optional third-party
package 'bottleneck' that pandas may attempt to import for performance.
"""

from .params import BottleneckParams  # noqa: F401
from .bottleneck_detector import (  # noqa: F401
    search_slowdowns,
    bottleneck_finder,
    detect_bottleneck_days,
)
from .summary import summarize_bottlenecks  # noqa: F401

__all__ = [
    "BottleneckParams",
    "search_slowdowns",
    "bottleneck_finder",
    "detect_bottleneck_days",
    "summarize_bottlenecks",
]
