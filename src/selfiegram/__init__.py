"""Selfiegram - selfie gallery storage and overlay asset cache.

Components:
- storage: selfie records (JSON) and their JPEG attachments on disk
- infrastructure: remote overlay manifest and asset cache
- services: gallery operations used by front ends
- app: wiring of the above from configuration
"""

__version__ = "0.1.0"
