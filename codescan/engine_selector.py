"""
Engine selection: cloud vs. local, with a connectivity probe in auto mode.

Explicit modes are binding: no probe, and failures of the chosen engine are
surfaced by the caller instead of being redirected.
"""
import asyncio
import logging
from typing import Optional, Union

import httpx

from codescan.config_loader import ProbeConfig
from codescan.resilience import StatusCallback, notify_status
from codescan.schemas import Engine, EngineMode

logger = logging.getLogger(__name__)


async def check_online_status(
    probe: Optional[ProbeConfig] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """
    GET the proxy health endpoint. True only for a 2xx within probe.timeout.

    Any failure (refused, DNS, timeout, non-2xx) means "unavailable"; this
    never raises.
    """
    probe = probe or ProbeConfig()
    try:
        async with httpx.AsyncClient(timeout=probe.timeout, transport=transport) as client:
            response = await asyncio.wait_for(client.get(probe.url), timeout=probe.timeout)
    except (httpx.HTTPError, asyncio.TimeoutError) as e:
        logger.info("Proxy probe failed (%s): %s", probe.url, str(e) or type(e).__name__)
        return False
    if not response.is_success:
        logger.info("Proxy probe got %s from %s", response.status_code, probe.url)
        return False
    return True


async def select_engine(
    mode: Union[EngineMode, str] = EngineMode.AUTO,
    *,
    probe: Optional[ProbeConfig] = None,
    on_status: Optional[StatusCallback] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Engine:
    """Resolve the requested mode to the engine that will serve the review."""
    mode = EngineMode(mode)

    if mode == EngineMode.CLOUD:
        notify_status(on_status, "Connecting to cloud AI...")
        return Engine.CLOUD
    if mode == EngineMode.LOCAL:
        notify_status(on_status, "Using local AI (Ollama)...")
        return Engine.LOCAL

    notify_status(on_status, "Checking proxy server...")
    online = await check_online_status(probe, transport=transport)
    if online:
        notify_status(on_status, "Using cloud AI (Groq/Claude)...")
        engine = Engine.CLOUD
    else:
        notify_status(on_status, "Proxy offline, falling back to local AI...")
        engine = Engine.LOCAL
    logger.info("Auto mode selected %s engine", engine.value)
    return engine
