"""Infrastructure layer: upstream clients, persistence, observability."""
