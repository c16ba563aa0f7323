"""Domain layer: model, resolution core, services and ports."""
