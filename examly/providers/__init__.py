"""Concrete adapters for the interfaces in :mod:`examly.interfaces`."""
