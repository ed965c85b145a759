"""Domain layer: models, ports and exceptions."""
