"""Application layer: services orchestrating domain rules and the record store."""
