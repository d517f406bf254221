"""Record store adapters."""

from examly.providers.store.sqlite_material_store import SQLiteMaterialStore

__all__ = ["SQLiteMaterialStore"]
