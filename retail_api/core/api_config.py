"""
API base URL helpers for clients

A client loaded from file:// (packaged desktop shell) cannot use relative
URLs, so it gets the public deployment URL. Every other protocol uses
relative URLs against the current origin.
"""
from typing import Optional

from retail_api.core.config import settings


def get_api_base_url(protocol: Optional[str] = None) -> str:
    """Absolute base URL for file: clients, empty string otherwise."""
    if protocol and protocol.rstrip(":").lower() == "file":
        return settings.PUBLIC_API_URL.rstrip("/")
    return ""


def client_protocol(origin: Optional[str], default: str) -> str:
    """Protocol of the page that issued the request, taken from its Origin header."""
    if origin and "://" in origin:
        return origin.split("://", 1)[0]
    return default


def api_url(endpoint: str, protocol: Optional[str] = None) -> str:
    """Build the URL of an API endpoint for a client loaded over protocol."""
    base_url = get_api_base_url(protocol)
    clean_endpoint = endpoint[1:] if endpoint.startswith("/") else endpoint
    return f"{base_url}/{clean_endpoint}" if base_url else f"/{clean_endpoint}"
