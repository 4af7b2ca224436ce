"""
Onboarding API Endpoints.

Server side of the onboarding flow:
- step catalog for the wizard
- saving generated images to the account after sign-up
- proxying logo-on-template generation to the edge function
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from tasy.web.auth import AuthenticatedUser, get_current_user

from .errors import BackendError
from .gateways import ImageAdaptationGateway, SupabaseBackendGateway
from .steps import TOTAL_STEPS, get_step_catalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


# =============================================================================
# Request/Response Models
# =============================================================================


class SaveImagesRequest(BaseModel):
    """Generated images to keep after sign-up."""
    images: list[str] = Field(default_factory=list)
    logo: str | None = None


class SaveImagesResponse(BaseModel):
    success: bool
    count: int
    already_persisted: bool = False
    mockups: list[dict] = Field(default_factory=list)


class GenerateImagesRequest(BaseModel):
    """Logo plus template image paths to adapt."""
    logo_base64: str = ""
    image_paths: list[str] = Field(default_factory=list)


class GenerateImagesResponse(BaseModel):
    images: list[str]


class StepsResponse(BaseModel):
    total_steps: int
    steps: list[dict]


# =============================================================================
# Dependencies
# =============================================================================


def get_backend_gateway(user: AuthenticatedUser = Depends(get_current_user)) -> SupabaseBackendGateway:
    """Backend gateway acting as the calling user."""
    from tasy.db.client import get_authenticated_client

    return SupabaseBackendGateway(get_authenticated_client(user.access_token), user.id)


def get_image_gateway() -> ImageAdaptationGateway:
    """Edge-function gateway built from settings."""
    from tasy.config import settings

    return ImageAdaptationGateway(
        supabase_url=settings.supabase_url,
        api_key=settings.supabase_anon_key,
        asset_base_url=settings.tasy_site_url,
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/steps", response_model=StepsResponse)
async def get_steps() -> StepsResponse:
    """Ordered onboarding steps with auth requirements."""
    return StepsResponse(total_steps=TOTAL_STEPS, steps=get_step_catalog())


@router.post("/save-images", response_model=SaveImagesResponse)
async def save_onboarding_images(
    request: SaveImagesRequest,
    gateway: SupabaseBackendGateway = Depends(get_backend_gateway),
) -> SaveImagesResponse:
    """
    Save generated onboarding images as the user's first mockups.

    Idempotent: a user who already has onboarding mockups gets those back.
    """
    if not request.images:
        raise HTTPException(status_code=400, detail="No images provided")

    try:
        result = await gateway.persist_generated_images(request.images, request.logo)
    except BackendError as e:
        logger.error(f"Error saving onboarding images: {e}")
        raise HTTPException(status_code=e.status_code or 500, detail=str(e))
    except Exception as e:
        logger.error(f"Error in save-images: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return SaveImagesResponse(
        success=True,
        count=result.count,
        already_persisted=result.already_persisted,
        mockups=result.mockups,
    )


@router.post("/generate-images", response_model=GenerateImagesResponse)
async def generate_onboarding_images(
    request: GenerateImagesRequest,
    gateway: ImageAdaptationGateway = Depends(get_image_gateway),
) -> GenerateImagesResponse:
    """Adapt template images with the visitor's logo (no auth: pre-signup step)."""
    if not request.logo_base64 or not request.image_paths:
        raise HTTPException(status_code=400, detail="Missing required fields: logo_base64, image_paths")

    images = await gateway.adapt_images(request.logo_base64, request.image_paths)
    logger.info(f"Generated {len(images)}/{len(request.image_paths)} onboarding images")
    return GenerateImagesResponse(images=images)
