"""
Cloud engine client: messages-style proxy endpoint.

Request:  {model, max_tokens, messages: [{role: "user", content: prompt}]}
Response: {content: [{text}, ...]}; text parts are concatenated.
The proxy forwards to Groq or Anthropic, so the body shape is Anthropic's.
"""
import json
from typing import Any, Dict, Optional

import httpx

from codescan.config_loader import CloudEngineConfig
from codescan.engines.base_client import BaseEngineClient
from codescan.schemas import Engine


class CloudEngineClient(BaseEngineClient):
    ENGINE = Engine.CLOUD
    DISPLAY_NAME = "Cloud API"

    def __init__(
        self,
        config: Optional[CloudEngineConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_attempts: Optional[int] = None,
    ):
        self.config = config or CloudEngineConfig()
        super().__init__(
            self.config.url,
            self.config.model,
            self.config.timeout,
            transport=transport,
            retry_attempts=retry_attempts,
        )

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        if self.config.api_key:
            headers["x-api-key"] = self.config.api_key
        return headers

    def _build_payload(self, prompt: str, model: str) -> Dict[str, Any]:
        return {
            "model": model,
            "max_tokens": self.config.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    def _extract_text(self, data: Any) -> str:
        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, list):
            return ""
        return "".join(
            part.get("text") or "" for part in content if isinstance(part, dict)
        )

    def _error_message(self, response: httpx.Response) -> str:
        """`API error <status>: <embedded message or raw body>`."""
        try:
            body = response.json()
        except ValueError:
            body = None
        detail = ""
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict):
                detail = err.get("message") or ""
            elif isinstance(err, str):
                detail = err
            if not detail:
                detail = json.dumps(body)
        elif body is not None:
            detail = json.dumps(body)
        else:
            detail = response.text.strip() or response.reason_phrase
        return f"API error {response.status_code}: {detail}"
