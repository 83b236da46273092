"""Application layer: use-case services and caches."""
