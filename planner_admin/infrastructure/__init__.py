"""Adapters for external infrastructure."""
