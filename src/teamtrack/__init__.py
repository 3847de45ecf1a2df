"""TeamTrack: location-based team game core."""

__version__ = "0.1.0"
