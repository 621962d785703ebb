"""
Typed event contracts for well-known publishers.
"""
from .storage import BlobDeleted, BlobEventData

__all__ = ["BlobDeleted", "BlobEventData"]
