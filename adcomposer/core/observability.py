"""
Logfire observability configuration for AdComposer.

Provides tracing and monitoring for:
- Agent runs and their iterations
- LLM provider invocations
- Tool executions

Usage:
    # At app startup (API app or CLI)
    from adcomposer.core.observability import setup_logfire
    setup_logfire()

    # In modules, use spans around operations
    import logfire

    with logfire.span("agent run {ad_id}", ad_id=ad_id):
        ...

Environment Variables:
    LOGFIRE_TOKEN: Your Logfire write token (required to send data)
    LOGFIRE_PROJECT_NAME: Project name in Logfire dashboard
    LOGFIRE_ENVIRONMENT: Environment name (development, staging, production)
"""

import os
import logging
from typing import Optional

import logfire

logger = logging.getLogger(__name__)

_logfire_configured = False


def setup_logfire(
    project_name: Optional[str] = None,
    environment: Optional[str] = None,
    service_name: str = "adcomposer"
) -> bool:
    """
    Configure Logfire for observability.

    Spans are always created; they are only exported when LOGFIRE_TOKEN is set.

    Args:
        project_name: Logfire project name (or LOGFIRE_PROJECT_NAME env var)
        environment: Environment name (or LOGFIRE_ENVIRONMENT env var)
        service_name: Service name for tracing

    Returns:
        True if Logfire will export to the backend, False if running local-only
    """
    global _logfire_configured

    token = os.environ.get("LOGFIRE_TOKEN")

    if _logfire_configured:
        logger.debug("Logfire already configured")
        return bool(token)

    project = project_name or os.environ.get("LOGFIRE_PROJECT_NAME", "adcomposer")
    env = environment or os.environ.get("LOGFIRE_ENVIRONMENT", "development")

    try:
        logfire.configure(
            token=token,
            service_name=service_name,
            environment=env,
            send_to_logfire="if-token-present",
            console=False,
        )

        # Instrument Pydantic for validation tracing
        logfire.instrument_pydantic()

        _logfire_configured = True
        if token:
            logger.info(f"Logfire configured: project={project}, environment={env}")
        else:
            logger.info("LOGFIRE_TOKEN not set, spans stay local")
        return bool(token)

    except Exception as e:
        logger.error(f"Failed to configure Logfire: {e}")
        return False
