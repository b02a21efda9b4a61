"""Sync layer - one read-through/write-through adapter per entity type.

Each adapter talks to the remote store first and keeps the local store as a
mirror and fallback; see base.EntitySync for the shared read/write rules.
"""
