"""
Tasy - Supabase Client.

Low-level database access. All queries go through here.
"""

from supabase import Client, create_client

from tasy.config import settings

# Singleton client instance
_service_client: Client | None = None

# Title prefix marking the mockups created from an onboarding batch
ONBOARDING_MOCKUP_PREFIX = "Onboarding Mockup"


def get_service_client() -> Client:
    """Get the service-role Supabase client (bypasses RLS, server only)."""
    global _service_client

    if _service_client is None:
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client


def get_authenticated_client(access_token: str) -> Client:
    """
    Get a client that runs queries as the given user.

    Not cached: one per request so RLS sees the caller's JWT.
    """
    client = create_client(settings.supabase_url, settings.supabase_anon_key)
    client.postgrest.auth(access_token)
    return client


# =============================================================================
# Mockup Operations
# =============================================================================


async def find_onboarding_mockups(client: Client, user_id: str, limit: int = 3) -> list[dict]:
    """Get mockups a user already received from an onboarding batch."""
    response = (
        client.table("mockups")
        .select("id, image_urls")
        .eq("user_id", user_id)
        .like("title", f"{ONBOARDING_MOCKUP_PREFIX}%")
        .limit(limit)
        .execute()
    )
    return response.data or []


async def insert_mockup(client: Client, user_id: str, mockup: dict) -> dict | None:
    """Create a mockup row. Returns the created row."""
    data = {"user_id": user_id, **mockup}
    response = client.table("mockups").insert(data).execute()
    return response.data[0] if response.data else None
