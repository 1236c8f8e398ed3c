"""Persistence adapters and the record store facade."""
