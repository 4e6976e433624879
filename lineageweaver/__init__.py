"""
Lineageweaver Sync Engine.

Local-first synchronization of genealogy data between an on-device store
and a per-tenant remote document store.
"""

__version__ = "1.0.0"
