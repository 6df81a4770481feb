# Path: shelfscan/core/capture/__init__.py
# Purpose: Package initializer for the live scanning session.
# Layer: core/capture.
# Details: Exposes FrameGate, ScanSession, and the CameraSource protocol.

from .session import CameraSource, FrameGate, ScanSession

__all__ = ["CameraSource", "FrameGate", "ScanSession"]
