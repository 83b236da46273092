"""Domain layer: entities, exceptions, ports and pure matching rules."""
