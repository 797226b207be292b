"""Concrete adapters for every libdocs interface."""
