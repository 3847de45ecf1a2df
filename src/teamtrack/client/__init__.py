"""Device-side configuration and session."""
