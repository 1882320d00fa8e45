"""
Local engine client: Ollama /api/generate.

Request:  {model, prompt, stream: false, format: "json", options: {temperature, num_predict}}
Response: {response: <raw model text>}
"""
from typing import Any, Dict, Optional

import httpx

from codescan.config_loader import LocalEngineConfig
from codescan.engines.base_client import BaseEngineClient
from codescan.schemas import Engine


class LocalEngineClient(BaseEngineClient):
    ENGINE = Engine.LOCAL
    DISPLAY_NAME = "Ollama"

    def __init__(
        self,
        config: Optional[LocalEngineConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_attempts: Optional[int] = None,
    ):
        self.config = config or LocalEngineConfig()
        super().__init__(
            self.config.url,
            self.config.model,
            self.config.timeout,
            transport=transport,
            retry_attempts=retry_attempts,
        )

    def _build_payload(self, prompt: str, model: str) -> Dict[str, Any]:
        return {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {
                "temperature": self.config.temperature,
                "num_predict": self.config.num_predict,
            },
        }

    def _extract_text(self, data: Any) -> str:
        if not isinstance(data, dict):
            return ""
        return data.get("response") or ""

    def _error_message(self, response: httpx.Response) -> str:
        message = f"Ollama error {response.status_code}. Is Ollama running? Run: ollama serve"
        try:
            body = response.json()
        except ValueError:
            return message
        if isinstance(body, dict) and body.get("error"):
            message = f"{message} ({body['error']})"
        return message
