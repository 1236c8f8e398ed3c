"""Infrastructure layer: document stores, configuration, logging, events."""
