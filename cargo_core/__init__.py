"""Cargo shipping core: rating engine and shipment lifecycle."""

__version__ = "0.1.0"
