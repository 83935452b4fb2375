"""Per-engine DBManager implementations."""
