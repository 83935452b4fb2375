"""Infrastructure adapters (SQL client, cluster stores)."""
