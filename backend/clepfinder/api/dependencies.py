"""
API Dependencies

FastAPI dependency injection for services, process-level singletons
and the session stub.

Authentication is a non-cryptographic stub: /api/auth/login hands out a
bearer token, and any non-empty bearer token identifies a session actor.
"""

import logging
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from clepfinder.config.settings import get_settings
from clepfinder.domain.feedback import FeedbackLedger, FeedbackLedgerRegistry
from clepfinder.domain.interfaces import Geocoder, LanguageModel
from clepfinder.infrastructure.ai.gemini_service import GeminiService
from clepfinder.infrastructure.cache import InstitutionCache
from clepfinder.infrastructure.db.dependencies import InstitutionStoreDep
from clepfinder.infrastructure.exceptions import ConfigurationError
from clepfinder.infrastructure.services.assistant_service import AssistantService
from clepfinder.infrastructure.services.geocoding_service import NominatimGeocoder
from clepfinder.infrastructure.services.institution_catalog_service import (
    InstitutionCatalogService,
)
from clepfinder.infrastructure.services.institution_update_service import (
    InstitutionUpdateService,
)
from clepfinder.infrastructure.services.map_service import MapService


logger = logging.getLogger(__name__)

ANONYMOUS_ACTOR = "anonymous"


# =============================================================================
# Process-level singletons
# =============================================================================

@lru_cache
def get_institution_cache() -> InstitutionCache:
    return InstitutionCache(ttl_seconds=get_settings().institution_cache_ttl_seconds)


@lru_cache
def get_feedback_registry() -> FeedbackLedgerRegistry:
    return FeedbackLedgerRegistry()


@lru_cache
def get_language_model() -> Optional[LanguageModel]:
    """Gemini client, or None when no API key is configured."""
    settings = get_settings()
    if not settings.llm_configured:
        logger.warning("GOOGLE_API_KEY not configured, assistant disabled")
        return None
    try:
        return GeminiService(settings)
    except ConfigurationError as e:
        logger.error(f"Language model unavailable: {e.message}")
        return None


@lru_cache
def get_geocoder() -> Geocoder:
    settings = get_settings()
    return NominatimGeocoder(
        base_url=settings.geocoding_base_url,
        user_agent=settings.geocoding_user_agent,
        timeout=settings.geocoding_timeout_seconds,
        cache_size=settings.geocoding_cache_size,
    )


# =============================================================================
# Per-request services
# =============================================================================

def get_catalog_service(
    store: InstitutionStoreDep,
    cache: Annotated[InstitutionCache, Depends(get_institution_cache)],
) -> InstitutionCatalogService:
    return InstitutionCatalogService(store, cache)


def get_update_service(store: InstitutionStoreDep) -> InstitutionUpdateService:
    return InstitutionUpdateService(store)


def get_assistant_service(
    language_model: Annotated[Optional[LanguageModel], Depends(get_language_model)],
) -> AssistantService:
    return AssistantService(
        language_model,
        context_limit=get_settings().assistant_context_limit,
    )


def get_map_service(
    geocoder: Annotated[Geocoder, Depends(get_geocoder)],
) -> MapService:
    return MapService(geocoder)


# =============================================================================
# Session stub
# =============================================================================

def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


async def get_session_actor(
    authorization: Optional[str] = Header(None),
) -> str:
    """
    Session actor for endpoints that require a login.

    Raises:
        HTTPException 401: missing or malformed bearer token
    """
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


async def get_optional_session_actor(
    authorization: Optional[str] = Header(None),
) -> str:
    """Session actor, or "anonymous" for public endpoints."""
    return _bearer_token(authorization) or ANONYMOUS_ACTOR


def get_feedback_ledger(
    actor: Annotated[str, Depends(get_optional_session_actor)],
    registry: Annotated[FeedbackLedgerRegistry, Depends(get_feedback_registry)],
) -> FeedbackLedger:
    return registry.ledger_for(actor)


# =============================================================================
# Annotated aliases for routers
# =============================================================================

CacheDep = Annotated[InstitutionCache, Depends(get_institution_cache)]
CatalogServiceDep = Annotated[InstitutionCatalogService, Depends(get_catalog_service)]
UpdateServiceDep = Annotated[InstitutionUpdateService, Depends(get_update_service)]
AssistantServiceDep = Annotated[AssistantService, Depends(get_assistant_service)]
MapServiceDep = Annotated[MapService, Depends(get_map_service)]
FeedbackLedgerDep = Annotated[FeedbackLedger, Depends(get_feedback_ledger)]
SessionActorDep = Annotated[str, Depends(get_session_actor)]
