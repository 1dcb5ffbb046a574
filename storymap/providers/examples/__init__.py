"""Read-only example story sources."""
