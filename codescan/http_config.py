"""
HTTP Configuration - shared settings for engine clients.

Centralizes connection pool limits and timeout construction so the cloud and
local clients and the connectivity probe agree on them.
"""
import httpx

# Reviews of a project run a handful of files at once; keep the pool modest.
POOL_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=10,
    keepalive_expiry=30.0,
)

# Fail fast on connect, be generous on read (inference can be slow).
CONNECT_TIMEOUT = 5.0


def make_timeout(total: float) -> httpx.Timeout:
    """Timeout with a short connect phase and `total` seconds for everything else."""
    return httpx.Timeout(total, connect=min(CONNECT_TIMEOUT, total))
