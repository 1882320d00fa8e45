"""
Tests for the review orchestrator.

Engine clients are stubbed (tests.conftest.make_engine_client); the auto-mode
probe runs against an httpx.MockTransport.
"""
import asyncio
from unittest.mock import MagicMock, patch

import pytest

from codescan.errors import (
    EngineUnavailableError,
    InferenceError,
    ReviewCancelledError,
    ReviewValidationError,
)
from codescan.reviewer import CodeReviewer, review_code, run_cancellable, validate_request
from codescan.schemas import Engine, EngineMode, ReviewOptions, ReviewRequest, Severity
from tests.conftest import failing_probe_transport, make_engine_client, probe_transport

CODE = "function getUser(id) { return db.query('SELECT * FROM users WHERE id=' + id) }"


def _request(**overrides):
    fields = {"code": CODE, "language": "JavaScript", "standards": ["owasp", "null_safety"]}
    fields.update(overrides)
    return ReviewRequest(**fields)


def _reviewer(settings, cloud_client, local_client, probe_status=None):
    transport = None
    if probe_status == "refused":
        transport = failing_probe_transport()
    elif probe_status is not None:
        transport = probe_transport(probe_status)
    return CodeReviewer(
        settings,
        cloud_client=cloud_client,
        local_client=local_client,
        probe_transport=transport,
    )


# ============================================================
# Validation
# ============================================================


@pytest.mark.unit
class TestValidation:

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"code": ""}, "No code provided"),
            ({"code": "   \n\t"}, "No code provided"),
            ({"language": ""}, "No language specified"),
            ({"standards": []}, "No standards selected"),
        ],
    )
    def test_validate_request(self, overrides, message):
        with pytest.raises(ReviewValidationError, match=message):
            validate_request(_request(**overrides))

    @pytest.mark.asyncio
    async def test_invalid_request_makes_no_inference_call(self, settings, cloud_client, local_client):
        reviewer = _reviewer(settings, cloud_client, local_client)
        with pytest.raises(ReviewValidationError, match="No standards selected"):
            await reviewer.review(_request(standards=[]), ReviewOptions(mode=EngineMode.CLOUD))
        cloud_client.generate.assert_not_awaited()
        local_client.generate.assert_not_awaited()

    def test_validation_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_request(_request(code=""))


# ============================================================
# Engine routing
# ============================================================


@pytest.mark.unit
class TestReview:

    @pytest.mark.asyncio
    async def test_cloud_mode_uses_verbose_prompt_and_stamps_result(self, settings, cloud_client, local_client):
        reviewer = _reviewer(settings, cloud_client, local_client)
        result = await reviewer.review(_request(), ReviewOptions(mode=EngineMode.CLOUD, cloud_model="big"))

        cloud_client.generate.assert_awaited_once()
        local_client.generate.assert_not_awaited()
        prompt = cloud_client.generate.await_args.args[0]
        assert "world-class senior software engineer" in prompt
        assert "### OWASP Security" in prompt
        assert cloud_client.generate.await_args.kwargs["model"] == "big"

        assert result.score == 72
        assert result.engine == Engine.CLOUD
        assert result.language == "JavaScript"
        assert result.standards == ["owasp", "null_safety"]
        assert result.reviewed_at.endswith("Z")
        assert result.decode_tier == "strict"
        assert result.issues[0].severity == Severity.CRITICAL

    @pytest.mark.asyncio
    async def test_local_mode_uses_compact_prompt_and_local_model(self, settings, cloud_client, local_client):
        reviewer = _reviewer(settings, cloud_client, local_client)
        options = ReviewOptions(mode=EngineMode.LOCAL, local_model="qwen2.5-coder", timeout=42)
        result = await reviewer.review(_request(), options)

        cloud_client.generate.assert_not_awaited()
        call = local_client.generate.await_args
        assert call.args[0].startswith("Review this JavaScript code for: OWASP Security")
        assert call.kwargs == {"model": "qwen2.5-coder", "timeout": 42}
        assert result.engine == Engine.LOCAL

    @pytest.mark.asyncio
    async def test_auto_mode_probe_ok_routes_to_cloud(self, settings, cloud_client, local_client):
        reviewer = _reviewer(settings, cloud_client, local_client, probe_status=200)
        result = await reviewer.review(_request())
        assert result.engine == Engine.CLOUD
        local_client.generate.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("probe_status", [503, "refused"])
    async def test_auto_mode_probe_failure_routes_to_local(self, settings, cloud_client, local_client, probe_status):
        messages = []
        reviewer = _reviewer(settings, cloud_client, local_client, probe_status=probe_status)
        result = await reviewer.review(_request(), on_status=messages.append)

        assert result.engine == Engine.LOCAL
        cloud_client.generate.assert_not_awaited()
        assert local_client.generate.await_args.args[0].startswith("Review this JavaScript code")
        assert messages == [
            "Checking proxy server...",
            "Proxy offline, falling back to local AI...",
            "Parsing review...",
        ]

    @pytest.mark.asyncio
    async def test_broken_status_callback_does_not_fail_review(self, settings, cloud_client, local_client):
        on_status = MagicMock(side_effect=RuntimeError("UI gone"))
        reviewer = _reviewer(settings, cloud_client, local_client)
        result = await reviewer.review(_request(), ReviewOptions(mode="cloud"), on_status=on_status)
        assert result.score == 72
        assert on_status.call_count == 2

    @pytest.mark.asyncio
    async def test_malformed_output_degrades_to_fallback(self, settings, local_client):
        cloud_client = make_engine_client("Sorry, I can't help with that.")
        reviewer = _reviewer(settings, cloud_client, local_client)
        result = await reviewer.review(_request(), ReviewOptions(mode="cloud"))
        assert result.decode_tier == "fallback"
        assert result.score == 50
        assert result.engine == Engine.CLOUD
        assert result.language == "JavaScript"

    @pytest.mark.asyncio
    async def test_engine_errors_propagate_without_switching_engine(self, settings, cloud_client, local_client):
        cloud_client.generate.side_effect = InferenceError("cloud", "API error 429: rate limited", status_code=429)
        reviewer = _reviewer(settings, cloud_client, local_client)
        with pytest.raises(InferenceError, match="rate limited"):
            await reviewer.review(_request(), ReviewOptions(mode="cloud"))
        local_client.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_local_unavailable_propagates(self, settings, cloud_client, local_client):
        local_client.generate.side_effect = EngineUnavailableError("local", "Could not reach Ollama")
        reviewer = _reviewer(settings, cloud_client, local_client)
        with pytest.raises(EngineUnavailableError):
            await reviewer.review(_request(), ReviewOptions(mode="local"))

    @pytest.mark.asyncio
    async def test_context_manager_closes_clients(self, settings, cloud_client, local_client):
        async with _reviewer(settings, cloud_client, local_client) as reviewer:
            await reviewer.review(_request(), ReviewOptions(mode="cloud"))
        cloud_client.close.assert_awaited_once()
        local_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_review_code_builds_clients_from_settings(self, settings, cloud_client, local_client):
        with patch("codescan.reviewer.CloudEngineClient", return_value=cloud_client) as cloud_cls, \
                patch("codescan.reviewer.LocalEngineClient", return_value=local_client) as local_cls:
            result = await review_code(_request(), ReviewOptions(mode="cloud"), settings=settings)
        cloud_cls.assert_called_once_with(settings.engines.cloud)
        local_cls.assert_called_once_with(settings.engines.local)
        assert result.engine == Engine.CLOUD
        cloud_client.close.assert_awaited_once()


# ============================================================
# Cancellation
# ============================================================


@pytest.mark.unit
class TestCancellation:

    @pytest.mark.asyncio
    async def test_pre_set_event_cancels_before_any_call(self, settings, cloud_client, local_client):
        event = asyncio.Event()
        event.set()
        reviewer = _reviewer(settings, cloud_client, local_client)
        with pytest.raises(ReviewCancelledError):
            await reviewer.review(_request(), ReviewOptions(mode="cloud"), cancel_event=event)
        cloud_client.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_mid_flight_cancel_aborts_inference(self, settings, local_client):
        aborted = asyncio.Event()

        async def slow_generate(prompt, model=None, timeout=None):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                aborted.set()
                raise
            return "{}"

        cloud_client = make_engine_client()
        cloud_client.generate.side_effect = slow_generate
        event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, event.set)

        reviewer = _reviewer(settings, cloud_client, local_client)
        with pytest.raises(ReviewCancelledError):
            await asyncio.wait_for(
                reviewer.review(_request(), ReviewOptions(mode="cloud"), cancel_event=event),
                timeout=2,
            )
        assert aborted.is_set()

    @pytest.mark.asyncio
    async def test_run_cancellable_returns_result_when_not_cancelled(self):
        async def work():
            return 7
        assert await run_cancellable(work(), asyncio.Event()) == 7
        assert await run_cancellable(work(), None) == 7

    @pytest.mark.asyncio
    async def test_run_cancellable_propagates_task_errors(self):
        async def boom():
            raise InferenceError("cloud", "bad")
        with pytest.raises(InferenceError):
            await run_cancellable(boom(), asyncio.Event())
