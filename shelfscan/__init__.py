# Path: shelfscan/__init__.py
# Purpose: Package initializer for the shelfscan catalog lookup service.
# Layer: root.
# Details: Camera-driven lookup of products and bookings combining barcode, text, and visual search.

__version__ = "0.1.0"
