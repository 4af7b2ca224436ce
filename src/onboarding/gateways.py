"""
Onboarding Gateways.

Boundaries the onboarding flow talks to:
- AuthEvent: session notifications from Supabase Auth
- BackendGateway: permanent storage for generated onboarding images
- ImageAdaptationGateway: logo-on-template image generation (edge function)
"""

import asyncio
import base64
import logging
from enum import Enum
from typing import Any, Protocol, Sequence

import httpx
from pydantic import BaseModel, Field

from .errors import BackendError

logger = logging.getLogger(__name__)

# Only the first few generated images become mockups
MAX_ONBOARDING_MOCKUPS = 3


class AuthEvent(Enum):
    """Supabase Auth state-change events."""
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


class PersistResult(BaseModel):
    """Outcome of persisting onboarding images."""
    count: int
    already_persisted: bool = False
    mockups: list[dict] = Field(default_factory=list)


class BackendGateway(Protocol):
    """Permanent account storage for generated onboarding images."""

    async def persist_generated_images(
        self, images: Sequence[str], logo: str | None
    ) -> PersistResult: ...


# =============================================================================
# Backend: server side (Supabase)
# =============================================================================


class SupabaseBackendGateway:
    """
    Saves onboarding images as mockups for one user.

    Deduplicates server-side: if the user already has onboarding mockups,
    those are returned and nothing new is created.
    """

    def __init__(self, client: Any, user_id: str, max_images: int = MAX_ONBOARDING_MOCKUPS):
        self.client = client
        self.user_id = user_id
        self.max_images = max_images

    async def persist_generated_images(
        self, images: Sequence[str], logo: str | None
    ) -> PersistResult:
        from tasy.db.client import (
            ONBOARDING_MOCKUP_PREFIX,
            find_onboarding_mockups,
            insert_mockup,
        )

        if not images:
            raise BackendError("No images provided", status_code=400)

        existing = await find_onboarding_mockups(self.client, self.user_id, limit=self.max_images)
        if existing:
            logger.info(f"User {self.user_id} already has {len(existing)} onboarding mockups")
            return PersistResult(count=len(existing), already_persisted=True, mockups=existing)

        saved = []
        for i, image_url in enumerate(images[:self.max_images], start=1):
            if not image_url or not isinstance(image_url, str):
                logger.error(f"Invalid image URL at index {i - 1}: {image_url!r}")
                continue

            try:
                mockup = await insert_mockup(self.client, self.user_id, {
                    "title": f"{ONBOARDING_MOCKUP_PREFIX} {i}",
                    "logo_url": logo or None,
                    "aesthetic_vibe": None,
                    "platform": None,
                    "content_type": None,
                    "image_urls": [image_url],
                })
            except Exception as e:
                # One bad row should not lose the others
                logger.error(f"Error saving onboarding mockup {i}: {e}")
                continue

            if mockup:
                saved.append(mockup)

        logger.info(f"Saved {len(saved)} onboarding mockups for user {self.user_id}")
        return PersistResult(count=len(saved), already_persisted=False, mockups=saved)


# =============================================================================
# Backend: client side (HTTP)
# =============================================================================


class HttpBackendGateway:
    """Calls POST /api/onboarding/save-images as the signed-in user."""

    def __init__(
        self,
        api_url: str,
        access_token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    async def persist_generated_images(
        self, images: Sequence[str], logo: str | None
    ) -> PersistResult:
        url = f"{self.api_url}/api/onboarding/save-images"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    url,
                    json={"images": list(images), "logo": logo},
                    headers={"Authorization": f"Bearer {self.access_token}"},
                )
        except httpx.HTTPError as e:
            raise BackendError(f"Request to {url} failed: {e}") from e

        if response.is_error:
            raise BackendError(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        body = response.json()
        return PersistResult(
            count=body.get("count", len(images)),
            already_persisted=body.get("already_persisted", False),
            mockups=body.get("mockups", []),
        )


# =============================================================================
# Image adaptation (Supabase edge function)
# =============================================================================


class ImageAdaptationGateway:
    """
    Places a logo onto template images via the onboarding-generate-images
    edge function. Templates are fetched from the site and sent as data URLs.
    """

    def __init__(
        self,
        supabase_url: str,
        api_key: str,
        asset_base_url: str,
        function_name: str = "onboarding-generate-images",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.function_url = f"{supabase_url.rstrip('/')}/functions/v1/{function_name}"
        self.api_key = api_key
        self.asset_base_url = asset_base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def adapt_images(self, logo_base64: str, image_paths: Sequence[str]) -> list[str]:
        """
        Adapt every template in parallel.

        Images that fail are dropped; the result keeps the order of the
        templates that succeeded.
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            results = await asyncio.gather(
                *(self._adapt_one(client, logo_base64, path) for path in image_paths)
            )
        return [image for image in results if image]

    async def _adapt_one(self, client: httpx.AsyncClient, logo_base64: str, image_path: str) -> str | None:
        try:
            image_base64 = await self._fetch_as_data_url(client, image_path)
            response = await client.post(
                self.function_url,
                json={"logoBase64": logo_base64, "imageBase64": image_base64},
                headers={"apikey": self.api_key},
            )
        except httpx.HTTPError as e:
            logger.error(f"Error processing image {image_path}: {e}")
            return None

        if response.is_error:
            logger.error(f"Failed to adapt image {image_path}: HTTP {response.status_code} {response.text}")
            return None

        return response.json().get("image")

    async def _fetch_as_data_url(self, client: httpx.AsyncClient, image_path: str) -> str:
        response = await client.get(f"{self.asset_base_url}{image_path}")
        response.raise_for_status()
        content_type = response.headers.get("content-type", "image/png")
        encoded = base64.b64encode(response.content).decode("ascii")
        return f"data:{content_type};base64,{encoded}"
