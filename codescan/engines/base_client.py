"""
Base Engine Client

Shared functionality for inference engine clients:
- Pooled httpx.AsyncClient, created lazily and guarded by a lock
- Per-call timeout covering every retry
- Retry of connection-level failures with exponential backoff
- Mapping of transport / status failures onto the codescan error taxonomy

Used by: CloudEngineClient, LocalEngineClient
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from codescan.errors import EngineUnavailableError, InferenceError, InferenceTimeoutError
from codescan.http_config import POOL_LIMITS, make_timeout
from codescan.resilience import retry_async
from codescan.schemas import Engine

logger = logging.getLogger(__name__)

# Connection-level failures worth another attempt. Timeouts are not retried:
# a model that did not answer in time will rarely answer faster the second time.
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.RemoteProtocolError, httpx.ReadError, httpx.WriteError)


class BaseEngineClient(ABC):
    """
    Abstract base class for engine clients.

    Subclasses must implement:
    - ENGINE / DISPLAY_NAME
    - _build_payload(): request body for the engine's wire contract
    - _extract_text(): raw model text from a 2xx JSON body
    - _error_message(): human-readable message for a non-2xx response
    """

    ENGINE: Engine
    DISPLAY_NAME: str = ""

    def __init__(
        self,
        url: str,
        default_model: str,
        default_timeout: float,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_attempts: Optional[int] = None,
    ):
        self.url = url
        self.default_model = default_model
        self.default_timeout = default_timeout
        self._transport = transport
        self._retry_attempts = retry_attempts
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client."""
        if self._client is None or self._client.is_closed:
            async with self._client_lock:
                if self._client is None or self._client.is_closed:
                    self._client = httpx.AsyncClient(
                        limits=POOL_LIMITS,
                        timeout=make_timeout(self.default_timeout),
                        transport=self._transport,
                    )
                    logger.info("Created pooled HTTP client for %s engine", self.ENGINE.value)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _get_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    @abstractmethod
    def _build_payload(self, prompt: str, model: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def _extract_text(self, data: Any) -> str:
        ...

    @abstractmethod
    def _error_message(self, response: httpx.Response) -> str:
        ...

    async def _post(self, payload: Dict[str, Any], timeout: float) -> httpx.Response:
        client = await self._get_client()
        return await client.post(
            self.url,
            json=payload,
            headers=self._get_headers(),
            timeout=make_timeout(timeout),
        )

    async def generate(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Send one prompt, return the raw model text.

        Raises:
            InferenceTimeoutError: no answer within `timeout` seconds, counting
                every retry.
            EngineUnavailableError: engine unreachable after retries.
            InferenceError: non-2xx status or a body that is not JSON.
        """
        model = model or self.default_model
        timeout = timeout or self.default_timeout
        payload = self._build_payload(prompt, model)
        engine = self.ENGINE.value

        # `timeout` bounds the whole call, retries and backoff included; httpx
        # applies it per read as well.
        try:
            response = await asyncio.wait_for(
                retry_async(
                    self._post,
                    payload,
                    timeout,
                    attempts=self._retry_attempts,
                    retryable=RETRYABLE_ERRORS,
                    context=f"{engine}:{model}",
                ),
                timeout,
            )
        except httpx.ConnectTimeout as e:
            raise EngineUnavailableError(
                engine, f"Timed out connecting to {self.DISPLAY_NAME} at {self.url}"
            ) from e
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise InferenceTimeoutError(
                engine, f"{self.DISPLAY_NAME} did not respond within {timeout:g}s"
            ) from e
        except httpx.TransportError as e:
            raise EngineUnavailableError(
                engine, f"Could not reach {self.DISPLAY_NAME} at {self.url}: {e}"
            ) from e

        if not response.is_success:
            message = self._error_message(response)
            logger.warning("%s returned %s for model %s", self.DISPLAY_NAME, response.status_code, model)
            raise InferenceError(engine, message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise InferenceError(
                engine,
                f"{self.DISPLAY_NAME} returned a non-JSON body",
                status_code=response.status_code,
            ) from e

        text = self._extract_text(data)
        logger.debug("%s returned %d chars for model %s", self.DISPLAY_NAME, len(text), model)
        return text
