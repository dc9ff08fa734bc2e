"""Readiness probe driver.

One invocation runs exactly one readiness cycle and maps the verdict to a
process exit status (0 ready, 1 not ready). The probe must never crash or
hang: every failure becomes a not-ready verdict and the next scheduled
invocation retries.
"""

from __future__ import annotations

import asyncio
import logging
import os
from uuid import uuid4

from switchboard.config import Settings
from switchboard.distributed.leader import ClaimProtocol, Sleeper
from switchboard.distributed.readiness import (
    ReadinessDecision,
    ReadinessGate,
    ReadinessReason,
)
from switchboard.health import HealthCheck, TcpHealthCheck
from switchboard.lease.factory import create_lease_store
from switchboard.lease.store import LeaseStore, LeaseStoreError
from switchboard.observability.logging import LogContext, configure_logging

logger = logging.getLogger(__name__)


async def run_probe(
    settings: Settings,
    store: LeaseStore | None = None,
    health_check: HealthCheck | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> ReadinessDecision:
    """Run one readiness cycle.

    Args:
        settings: Probe configuration
        store: Lease store; built from settings when None
        health_check: Local listener check; built from settings when None
        sleep: Async sleep used for the claim grace delay

    Returns:
        The verdict. Never raises for store or probe failures.
    """
    if store is None:
        try:
            store = create_lease_store(settings)
        except (LeaseStoreError, ValueError) as e:
            logger.error(f"Could not initialize lease store: {e}")
            return ReadinessDecision.not_ready(ReadinessReason.STORE_UNAVAILABLE)

    if health_check is None:
        health_check = TcpHealthCheck(
            settings.effective_health_host,
            settings.health_port,
            timeout=settings.health_timeout,
        )

    protocol = ClaimProtocol(
        store,
        lease_duration=settings.lease_duration,
        grace_delay=settings.grace_delay,
        sleep=sleep,
    )
    gate = ReadinessGate(protocol, health_check, settings.identity)

    try:
        return await gate.decide()
    except Exception:
        logger.exception("Readiness probe failed")
        return ReadinessDecision.not_ready(ReadinessReason.PROBE_ERROR)
    finally:
        try:
            await store.close()
        except Exception as e:
            logger.warning(f"Error closing lease store: {e}")


def probe(settings: Settings) -> ReadinessDecision:
    """Entry point for one scheduled probe invocation.

    Truncates the probe log, runs the cycle and logs the verdict.
    """
    configure_logging(
        json_format=settings.log_json,
        level=settings.log_level,
        log_file=settings.log_file,
    )

    with LogContext(identity=settings.identity, probe_id=uuid4().hex[:8]):
        logger.info(
            f"Probing as {settings.identity} "
            f"(lease {settings.lease_duration}s, backend {settings.store_backend})"
        )
        decision = asyncio.run(run_probe(settings))
        if decision.ready:
            logger.info("OK")
        else:
            logger.info(f"DEFER ({decision.reason.value})")
        return decision


def report_invalid_configuration(error: Exception, log_file: str | None = None) -> None:
    """Truncate the probe log and record a configuration error in it.

    Settings could not be loaded, so the log path comes from the override,
    the ``SWITCHBOARD_LOG_FILE`` environment variable or the default.
    """
    if log_file is None:
        log_file = os.environ.get(
            "SWITCHBOARD_LOG_FILE", Settings.model_fields["log_file"].default
        )
    configure_logging(log_file=log_file)
    logger.error(f"Invalid configuration: {error}")
    logger.info("DEFER (invalid-configuration)")
