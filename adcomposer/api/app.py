"""
AdComposer FastAPI Application.

REST API around the creative agent and the version streams.

Features:
- Initial generation and chat refinement endpoints
- Version stream browsing, activation, cloning and deletion
- API key authentication
- Rate limiting
- Health check endpoint
"""

# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import logging
import time
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .models import (
    AgentRunResponse,
    ChatRequest,
    ConversationResponse,
    ErrorResponse,
    GenerateRequest,
    HealthResponse,
    StreamVersionsResponse,
    VersionActionResponse,
    VersionEntry,
)
from .. import __version__
from ..agent.dependencies import AgentDependencies
from ..agent.prompts import (
    build_focused_message,
    build_generation_system_prompt,
    build_generation_user_message,
)
from ..agent.types import AgentResult
from ..agent.voice_prefetch import format_voice_options, prefetch_voices
from ..core.config import Config
from ..core.exceptions import (
    ActiveVersionDeletionError,
    ConversationNotFoundError,
    UnknownProviderError,
    VersionNotFoundError,
)
from ..core.observability import setup_logfire
from ..services.models import Stream
from ..tools.definitions import ToolSet

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# FastAPI Application Setup
# ============================================================================

app = FastAPI(
    title="AdComposer API",
    description="REST API for LLM-driven audio ad composition",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# ============================================================================
# CORS Configuration
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# Rate Limiting
# ============================================================================

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# API Key Authentication
# ============================================================================

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: Optional[str] = Depends(API_KEY_HEADER)):
    """
    Verify API key from request header.

    Checks against Config.ADCOMPOSER_API_KEY. If not set, allows all
    requests (development mode).

    Raises:
        HTTPException: If API key is invalid or missing
    """
    expected_key = Config.ADCOMPOSER_API_KEY

    # Development mode - no API key required
    if not expected_key:
        return True

    if not api_key:
        logger.warning("API key missing from request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required. Provide via X-API-Key header."
        )

    if api_key != expected_key:
        logger.warning(f"Invalid API key attempt: {api_key[:10]}...")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key"
        )

    return True


# ============================================================================
# Dependencies
# ============================================================================

_deps: Optional[AgentDependencies] = None


def get_deps() -> AgentDependencies:
    """Process-wide AgentDependencies, created on first use."""
    global _deps
    if _deps is None:
        _deps = AgentDependencies.create()
    return _deps


def _run_response(result: AgentResult) -> AgentRunResponse:
    return AgentRunResponse(
        conversation_id=result.conversation_id,
        message=result.message,
        drafts=result.drafts,
        provider=result.provider,
        tool_calls=len(result.tool_call_history),
        usage=result.total_usage,
        iterations=result.iterations,
        stop_reason=result.stop_reason,
    )


# ============================================================================
# Health Check Endpoint
# ============================================================================

@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check(deps: AgentDependencies = Depends(get_deps)):
    """
    Check API health and service status.

    Reports Redis connectivity and which LLM providers have API keys.
    """
    services = {}

    try:
        await deps.versions.redis.ping()
        services["redis"] = "connected"
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        services["redis"] = "error"

    for provider in deps.providers.available_providers():
        available = deps.providers.is_provider_available(provider)
        services[provider] = "available" if available else "not_configured"

    overall_status = "healthy" if all(
        s != "error" for s in services.values()
    ) else "degraded"

    return HealthResponse(
        status=overall_status,
        version=__version__,
        timestamp=datetime.now(),
        services=services
    )


# ============================================================================
# Agent Endpoints
# ============================================================================

@app.post(
    "/ads/{ad_id}/generate",
    response_model=AgentRunResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Unknown or unconfigured provider"},
        401: {"model": ErrorResponse, "description": "Unauthorized - Invalid API key"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
    },
    tags=["Agent"],
    summary="Generate the initial drafts for an ad"
)
@limiter.limit("10/minute")
async def generate_ad(
    request: Request,
    ad_id: str,
    generate_request: GenerateRequest,
    authenticated: bool = Depends(verify_api_key),
    deps: AgentDependencies = Depends(get_deps),
):
    """
    Run the agent for a new ad: title, voice, music and sound effects drafts.

    With `prefetch_voices` the approved voices are put in the prompt and
    the run uses the generation tool set (no search_voices) and the lower
    generation iteration cap.
    """
    if not deps.providers.is_provider_available(generate_request.provider):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Provider not available: {generate_request.provider}"
        )

    start_time = time.time()

    voice_options = None
    tool_set = ToolSet.FULL
    max_iterations = Config.AGENT_MAX_ITERATIONS
    if generate_request.prefetch_voices:
        prefetched = await prefetch_voices(
            deps.catalogue,
            generate_request.voice_provider,
            generate_request.language,
            generate_request.accent,
        )
        if prefetched.total_count:
            voice_options = format_voice_options(prefetched)
            tool_set = ToolSet.GENERATION
            max_iterations = Config.GENERATION_MAX_ITERATIONS

    system_prompt = build_generation_system_prompt(
        ad_id=ad_id,
        client_description=generate_request.client_description,
        creative_brief=generate_request.creative_brief,
        language=generate_request.language,
        voice_provider=generate_request.voice_provider,
        campaign_format=generate_request.campaign_format,
        duration=generate_request.duration,
        accent=generate_request.accent,
        voice_options=voice_options,
    )

    result = await deps.executor.run_agent_loop(
        system_prompt,
        build_generation_user_message(ad_id),
        ad_id=ad_id,
        provider=generate_request.provider,
        max_iterations=max_iterations,
        tool_set=tool_set,
        session_id=generate_request.session_id,
        brief=generate_request.model_dump(exclude={"session_id", "prefetch_voices"}),
    )

    logger.info(
        f"[/ads/{ad_id}/generate] Completed in {time.time() - start_time:.2f}s, "
        f"drafts: {result.drafts.model_dump(exclude_none=True)}"
    )
    return _run_response(result)


@app.post(
    "/ads/{ad_id}/chat",
    response_model=AgentRunResponse,
    responses={
        400: {"model": ErrorResponse, "description": "No conversation for this ad"},
        404: {"model": ErrorResponse, "description": "Parent version not found"},
    },
    tags=["Agent"],
    summary="Refine an existing ad through conversation"
)
@limiter.limit("20/minute")
async def chat(
    request: Request,
    ad_id: str,
    chat_request: ChatRequest,
    authenticated: bool = Depends(verify_api_key),
    deps: AgentDependencies = Depends(get_deps),
):
    """
    Continue the ad's conversation with a refinement request.

    With `stream` the request is constrained to that stream; with
    `parent_version_id` the new draft records its lineage.
    """
    if not await deps.conversations.has_conversation(ad_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No conversation found for this ad. Generate the ad first."
        )

    stream = chat_request.stream
    parent_id = chat_request.parent_version_id
    focused = build_focused_message(chat_request.message, stream, parent_id)

    try:
        if chat_request.freeze_parent and parent_id and stream:
            await deps.versions.set_active_version(ad_id, stream, parent_id)
            logger.info(f"[/ads/{ad_id}/chat] Set parent {parent_id} as active")

        result = await deps.executor.continue_conversation(
            ad_id, focused, provider=chat_request.provider
        )
    except VersionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (ConversationNotFoundError, UnknownProviderError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if stream and parent_id:
        new_version_id = getattr(result.drafts, stream.value)
        if new_version_id:
            await deps.versions.update_version(ad_id, stream, new_version_id, {
                "parent_version_id": parent_id,
                "request_text": chat_request.message,
            })
            logger.info(f"[/ads/{ad_id}/chat] Updated lineage: {parent_id} -> {new_version_id}")

    return _run_response(result)


@app.get(
    "/ads/{ad_id}/conversation",
    response_model=ConversationResponse,
    tags=["Agent"],
    summary="Get the stored conversation of an ad"
)
async def get_conversation(
    ad_id: str,
    authenticated: bool = Depends(verify_api_key),
    deps: AgentDependencies = Depends(get_deps),
):
    messages = await deps.conversations.get_conversation(ad_id)
    return ConversationResponse(
        ad_id=ad_id,
        messages=[m.model_dump(mode="json", exclude_none=True) for m in messages],
    )


# ============================================================================
# Version Endpoints
# ============================================================================

@app.get(
    "/ads/{ad_id}/{stream}",
    response_model=StreamVersionsResponse,
    tags=["Versions"],
    summary="List the versions of a stream"
)
async def list_stream_versions(
    ad_id: str,
    stream: Stream,
    authenticated: bool = Depends(verify_api_key),
    deps: AgentDependencies = Depends(get_deps),
):
    versions = await deps.versions.get_all_versions_with_data(ad_id, stream)
    active = await deps.versions.get_active_version(ad_id, stream)
    return StreamVersionsResponse(
        ad_id=ad_id,
        stream=stream,
        versions=[
            VersionEntry(version_id=vid, data=data.model_dump(mode="json"))
            for vid, data in versions.items()
        ],
        active=active,
    )


@app.post(
    "/ads/{ad_id}/{stream}/{version_id}/activate",
    response_model=VersionActionResponse,
    responses={404: {"model": ErrorResponse, "description": "Version not found"}},
    tags=["Versions"],
    summary="Make a version the active one"
)
async def activate_version(
    ad_id: str,
    stream: Stream,
    version_id: str,
    authenticated: bool = Depends(verify_api_key),
    deps: AgentDependencies = Depends(get_deps),
):
    try:
        await deps.versions.set_active_version(ad_id, stream, version_id)
    except VersionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return VersionActionResponse(ad_id=ad_id, stream=stream, version_id=version_id)


@app.post(
    "/ads/{ad_id}/{stream}/{version_id}/clone",
    response_model=VersionActionResponse,
    responses={404: {"model": ErrorResponse, "description": "Version not found"}},
    tags=["Versions"],
    summary="Clone a version into a new draft"
)
async def clone_version(
    ad_id: str,
    stream: Stream,
    version_id: str,
    authenticated: bool = Depends(verify_api_key),
    deps: AgentDependencies = Depends(get_deps),
):
    try:
        new_version_id = await deps.versions.clone_version(ad_id, stream, version_id)
    except VersionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return VersionActionResponse(
        ad_id=ad_id, stream=stream, version_id=new_version_id, source_version_id=version_id
    )


@app.delete(
    "/ads/{ad_id}/{stream}/{version_id}",
    response_model=VersionActionResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Version not found"},
        409: {"model": ErrorResponse, "description": "Version is active"},
    },
    tags=["Versions"],
    summary="Delete a version"
)
async def delete_version(
    ad_id: str,
    stream: Stream,
    version_id: str,
    authenticated: bool = Depends(verify_api_key),
    deps: AgentDependencies = Depends(get_deps),
):
    try:
        await deps.versions.delete_version(ad_id, stream, version_id)
    except ActiveVersionDeletionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except VersionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return VersionActionResponse(ad_id=ad_id, stream=stream, version_id=version_id)


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent error format."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            detail=str(exc),
        ).model_dump(mode="json")
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc),
        ).model_dump(mode="json")
    )


# ============================================================================
# Startup/Shutdown Events
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Configure observability and log startup information."""
    setup_logfire()
    logger.info("=" * 60)
    logger.info("AdComposer API Starting...")
    logger.info(f"API Version: {__version__}")
    logger.info(f"Auth mode: {'Production (API key required)' if Config.ADCOMPOSER_API_KEY else 'Development (no auth)'}")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("AdComposer API Shutting down...")


# ============================================================================
# Root Endpoint
# ============================================================================

@app.get("/", tags=["System"])
async def root():
    """API root endpoint with basic information."""
    return {
        "name": "AdComposer API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }
