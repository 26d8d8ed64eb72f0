"""
Clients package - HTTP access to state source documents.
"""
from .http_client import CBenefHttpClient
from .availability import AvailabilityClient
from .download import DownloadClient

__all__ = [
    "CBenefHttpClient",
    "AvailabilityClient",
    "DownloadClient",
]
