"""Response time distribution over satisfied/tolerated/untolerated/failed buckets."""

__all__ = [
    "buckets",
    "cli",
    "config",
    "distribution",
    "graph",
    "labels",
    "report",
]
