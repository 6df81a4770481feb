# Path: shelfscan/core/cart/__init__.py
# Purpose: Package initializer for the cart ledger.
# Layer: core/cart.
# Details: Exposes CartLedger.

from .ledger import CartLedger

__all__ = ["CartLedger"]
