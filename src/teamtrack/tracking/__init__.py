"""Location pings, task attempts, impossible-travel detection."""
