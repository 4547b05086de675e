"""Prayer time resolution, alarm scheduling and widget cache sync."""

__version__ = "0.1.0"
