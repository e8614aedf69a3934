"""Cloud Function Entry Point.

This module provides the entry point for Google Cloud Functions.
It's a thin wrapper that loads configuration and invokes the orchestrator.
Run it as a script to poll locally at the configured interval.
"""

import logging
import os
from typing import Any

import functions_framework
from flask import Request

from safequake.core.config import Config, validate_config
from safequake.orchestrator import Orchestrator
from safequake.shell.config_loader import load_config, load_config_from_env


# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    elif os.environ.get("TELEGRAM_BOT_TOKEN"):
        # Simple env-based config
        return load_config_from_env()
    else:
        # Try default config path
        return load_config()


def _validated_config() -> Config:
    """Load configuration and log validation findings.

    Raises:
        ValueError: If the configuration has critical errors
    """
    config = _get_config()
    validation = validate_config(config)

    for warning in validation.warnings:
        logger.warning("Config %s: %s", warning.field, warning.message)

    if not validation.valid:
        messages = [f"{e.field}: {e.message}" for e in validation.critical_errors]
        raise ValueError("Invalid configuration: " + "; ".join(messages))

    return config


@functions_framework.http
def seismic_monitor(request: Request) -> tuple[dict[str, Any], int]:
    """HTTP Cloud Function entry point.

    This function is triggered by Cloud Scheduler or direct HTTP requests.
    It runs one proximity-notification cycle.

    Args:
        request: Flask request object (not used, but required by framework)

    Returns:
        Tuple of (response dict, HTTP status code)
    """
    logger.info("Starting proximity cycle")

    try:
        try:
            config = _validated_config()
        except ValueError as e:
            logger.error(str(e))
            return {
                "status": "error",
                "message": str(e),
            }, 400

        orchestrator = Orchestrator(config)
        result = orchestrator.process()

        response = {
            "status": "success" if result.success else "partial_failure",
            "summary": result.summary,
            "events_fetched": result.events_fetched,
            "latest_event_id": result.latest.id if result.latest else None,
            "duplicate": result.duplicate,
            "users_in_range": result.users_in_range,
            "alerts_sent": len(result.alerts_sent),
            "alerts_failed": len(result.alerts_failed),
            "records_created": result.records_created,
        }

        if result.errors:
            response["errors"] = result.errors

        logger.info("Completed: %s", result.summary)

        status_code = 200 if result.success else 207  # 207 = Multi-Status
        return response, status_code

    except Exception as e:
        logger.exception("Unexpected error in seismic monitor")
        return {
            "status": "error",
            "message": str(e),
        }, 500


@functions_framework.cloud_event
def seismic_monitor_pubsub(cloud_event: Any) -> None:
    """Pub/Sub Cloud Function entry point.

    Alternative trigger for Cloud Scheduler via Pub/Sub.

    Args:
        cloud_event: CloudEvent from Pub/Sub
    """
    logger.info("Starting proximity cycle (Pub/Sub trigger)")

    try:
        config = _validated_config()
        orchestrator = Orchestrator(config)
        result = orchestrator.process()

        logger.info("Completed: %s", result.summary)

        if result.errors:
            for error in result.errors:
                logger.error("Error: %s", error)

    except Exception:
        logger.exception("Unexpected error in seismic monitor")
        raise


# Local polling loop
if __name__ == "__main__":
    from safequake.poller import run_forever

    local_config = _validated_config()
    try:
        run_forever(Orchestrator(local_config), local_config.polling_interval_seconds)
    except KeyboardInterrupt:
        logger.info("Poller stopped")
