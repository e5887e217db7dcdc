"""Connections to external infrastructure."""
