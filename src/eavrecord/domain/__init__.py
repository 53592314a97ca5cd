"""Domain layer: catalog entities and validation services."""
