"""
Metric generation for the live dashboard sync system.

Components:
    generator: Seeds history and writes realtime ticks through the store
"""

from livesync.generator.generator import SEED_LINE_POINTS, MetricsGenerator

__all__: list[str] = [
    "MetricsGenerator",
    "SEED_LINE_POINTS",
]
