"""Concrete adapters for the interfaces in :mod:`rightsdesk.interfaces`."""
