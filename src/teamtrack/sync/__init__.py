"""Device-side leaderboard sync."""
