"""
Participant store.

NOTE:
This package __init__ MUST be lightweight.
Do NOT import SQLAlchemy models here; the in-memory store and the engine
must stay importable without mapping the ORM tables.
"""

__all__: list[str] = []
