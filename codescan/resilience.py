"""
Resilience helpers for the review pipeline.

notify_status delivers advisory status text to an optional observer and never
lets the observer's failure reach the review. retry_async re-runs an engine call
on connection-level failures, spacing attempts by the backoff schedule in
settings.resilience.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterator, Optional, Tuple, Type

from codescan.config_loader import ResilienceConfig, get_settings

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], Any]


def get_resilience_config() -> ResilienceConfig:
    """Retry policy from settings, or the built-in policy if settings cannot load."""
    try:
        return get_settings().resilience
    except Exception:
        logger.warning("Could not load resilience config, using defaults", exc_info=True)
        return ResilienceConfig()


def notify_status(callback: Optional[StatusCallback], message: str) -> None:
    """Send `message` to the observer, if any. Observer errors are logged and dropped."""
    logger.debug("Status: %s", message)
    if callback is None:
        return
    try:
        callback(message)
    except Exception:
        logger.warning("Status callback failed for %r, ignored", message, exc_info=True)


def backoff_delays(policy: ResilienceConfig) -> Iterator[float]:
    """Waits between attempts: base, base*factor, ... capped at max. One fewer than attempts."""
    delay = policy.retry_base_delay
    for _ in range(policy.retry_attempts - 1):
        yield min(delay, policy.retry_max_delay)
        delay *= policy.retry_backoff_factor


async def retry_async(
    call: Callable[..., Awaitable],
    *args: Any,
    attempts: Optional[int] = None,
    policy: Optional[ResilienceConfig] = None,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    context: str = "",
    **kwargs: Any,
) -> Any:
    """
    Await call(*args, **kwargs), retrying on `retryable` errors.

    `attempts` overrides policy.retry_attempts (a client constructed with an
    explicit retry count keeps it). Errors outside `retryable` propagate on the
    first occurrence; the last retryable error propagates once attempts run out.
    """
    policy = policy or get_resilience_config()
    if attempts:
        policy = policy.model_copy(update={"retry_attempts": attempts})
    where = f" [{context}]" if context else ""
    delays = backoff_delays(policy)

    attempt = 1
    while True:
        try:
            return await call(*args, **kwargs)
        except retryable as exc:
            delay = next(delays, None)
            if delay is None:
                if policy.retry_attempts > 1:
                    logger.error("Giving up after %d attempts%s: %s", policy.retry_attempts, where, exc)
                raise
            logger.warning(
                "Attempt %d/%d failed%s: %s, next try in %.1fs",
                attempt, policy.retry_attempts, where, exc, delay,
            )
            await asyncio.sleep(delay)
            attempt += 1
