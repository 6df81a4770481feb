# Path: shelfscan/core/__init__.py
# Purpose: Package initializer for core application layer.
# Layer: core.
# Details: Aggregates subpackages for models, preprocessing, embedders, storage, indexing, search, cart, and capture.
