"""File-based storage layer for selfie records and images."""

from selfiegram.storage.protocols import SelfieRepositoryProtocol
from selfiegram.storage.selfie_store import SelfieStore

__all__ = ["SelfieRepositoryProtocol", "SelfieStore"]
