"""
Knowledge Scout - Typed API Client
==================================

    token store ──▶ RequestExecutor ──httpx──▶ server
                          │
    ScoutClient ──────────┘  (one thin method per endpoint)

Usage:
    tokens = InMemoryTokenStore()
    executor = RequestExecutor(settings.api_url, tokens.get)
    client = ScoutClient(executor, tokens)
    await client.login("admin@mail.com", "admin123")
    documents = await client.get_documents()

Every call raises one of TransportFailure, ApplicationFailure or
DecodeFailure (all ClientError) or returns the validated envelope.
"""

from scout.client.api import ScoutClient
from scout.client.config import ClientSettings
from scout.client.errors import ApplicationFailure, ClientError, DecodeFailure, TransportFailure
from scout.client.executor import MultipartBody, RequestDescriptor, RequestExecutor
from scout.client.tokens import InMemoryTokenStore

__all__ = [
    "ApplicationFailure",
    "ClientError",
    "ClientSettings",
    "DecodeFailure",
    "InMemoryTokenStore",
    "MultipartBody",
    "RequestDescriptor",
    "RequestExecutor",
    "ScoutClient",
    "TransportFailure",
]
