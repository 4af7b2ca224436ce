"""Tasy database access (Supabase)."""

from .client import get_service_client, get_authenticated_client

__all__ = ["get_service_client", "get_authenticated_client"]
