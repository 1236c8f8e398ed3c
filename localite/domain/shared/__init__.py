"""Shared kernel: errors, events, ports and timestamp normalization."""
