"""
Review orchestrator: one request in, one ReviewResult out.

    validate -> select engine -> build prompt -> inference -> decode -> stamp

Input errors fail fast before any network call. Transport errors from the
engine propagate to the caller. Malformed model output never does: the decoder
degrades it to a labelled low-confidence result.
"""
import asyncio
import logging
from typing import Any, Awaitable, Optional

import httpx

from codescan.config_loader import Settings, get_settings
from codescan.engine_selector import select_engine
from codescan.engines import BaseEngineClient, CloudEngineClient, LocalEngineClient
from codescan.errors import ReviewCancelledError, ReviewValidationError
from codescan.prompt_builder import build_local_prompt, build_prompt
from codescan.resilience import StatusCallback, notify_status
from codescan.response_decoder import decode_review_response
from codescan.schemas import Engine, ReviewOptions, ReviewRequest, ReviewResult, utc_timestamp

logger = logging.getLogger(__name__)


def validate_request(request: ReviewRequest) -> None:
    """Raise ReviewValidationError for requests that cannot be reviewed."""
    if not (request.code or "").strip():
        raise ReviewValidationError("No code provided")
    if not (request.language or "").strip():
        raise ReviewValidationError("No language specified")
    if not request.standards:
        raise ReviewValidationError("No standards selected")


def _raise_if_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ReviewCancelledError("Review cancelled")


async def run_cancellable(aw: Awaitable[Any], cancel_event: Optional[asyncio.Event]) -> Any:
    """
    Await `aw` unless cancel_event fires first. On cancellation the in-flight
    task is cancelled (aborting its HTTP request) and ReviewCancelledError raised.
    """
    if cancel_event is None:
        return await aw
    _raise_if_cancelled(cancel_event)
    task = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
    if task.cancelled():
        raise ReviewCancelledError("Review cancelled")
    return task.result()


class CodeReviewer:
    """
    Owns the engine clients (pooled connections) and runs single reviews.

    Usage:
        async with CodeReviewer() as reviewer:
            result = await reviewer.review(request, ReviewOptions(mode="auto"))
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        cloud_client: Optional[BaseEngineClient] = None,
        local_client: Optional[BaseEngineClient] = None,
        probe_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.cloud_client = cloud_client or CloudEngineClient(self.settings.engines.cloud)
        self.local_client = local_client or LocalEngineClient(self.settings.engines.local)
        self._probe_transport = probe_transport

    async def __aenter__(self) -> "CodeReviewer":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.cloud_client.close()
        await self.local_client.close()

    def client_for(self, engine: Engine) -> BaseEngineClient:
        return self.cloud_client if engine == Engine.CLOUD else self.local_client

    async def review(
        self,
        request: ReviewRequest,
        options: Optional[ReviewOptions] = None,
        *,
        on_status: Optional[StatusCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ReviewResult:
        """
        Review one piece of code.

        Raises:
            ReviewValidationError: empty code, missing language or no standards.
            ReviewCancelledError: cancel_event was set before or during the call.
            EngineUnavailableError / InferenceError: engine failures (not retried
                onto the other engine unless mode is auto and the probe failed).
        """
        options = options or ReviewOptions()
        validate_request(request)
        _raise_if_cancelled(cancel_event)

        engine = await run_cancellable(
            select_engine(
                options.mode,
                probe=self.settings.probe,
                on_status=on_status,
                transport=self._probe_transport,
            ),
            cancel_event,
        )

        if engine == Engine.CLOUD:
            prompt = build_prompt(request)
            model = options.cloud_model
        else:
            prompt = build_local_prompt(request)
            model = options.local_model

        client = self.client_for(engine)
        logger.info(
            "Reviewing %d chars of %s on %s engine (standards: %s)",
            len(request.code), request.language, engine.value, ", ".join(request.standards),
        )
        raw_text = await run_cancellable(
            client.generate(prompt, model=model, timeout=options.timeout),
            cancel_event,
        )

        notify_status(on_status, "Parsing review...")
        result = decode_review_response(raw_text)
        return result.model_copy(update={
            "language": request.language,
            "standards": list(request.standards),
            "reviewed_at": utc_timestamp(),
            "engine": engine,
        })


async def review_code(
    request: ReviewRequest,
    options: Optional[ReviewOptions] = None,
    *,
    on_status: Optional[StatusCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    settings: Optional[Settings] = None,
) -> ReviewResult:
    """One-shot review with a throwaway CodeReviewer."""
    async with CodeReviewer(settings) as reviewer:
        return await reviewer.review(
            request, options, on_status=on_status, cancel_event=cancel_event
        )
