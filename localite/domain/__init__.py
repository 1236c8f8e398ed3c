"""Domain layer: badge rules, journey records, notification state."""
