"""
Localite achievement & journey sync.

Badge awarding, journey activity records and the journeys
subcollection migration, following Clean Architecture layering.

Structure:
- domain/: Business rules and domain models
- application/: Services orchestrating domain and persistence
- infrastructure/: Document stores, config, logging, events
- scripts/: Out-of-band operational entry points
"""

__version__ = "1.0.0"
