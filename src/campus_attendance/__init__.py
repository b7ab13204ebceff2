"""Campus attendance capture: geofenced roster submission with a timed edit window."""

__version__ = "0.1.0"
