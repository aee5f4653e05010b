from typing import Any, Dict, Optional
import logging

import httpx

from ..config import settings
from ..core.errors import GenerationError, upstream_error_from_response

logger = logging.getLogger("assistant.generator")

GENERATION_TEMPERATURE = 0.5


class GenerationClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.gemini_api_key.get_secret_value()
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_api_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    async def generate(
        self,
        system_prompt: str,
        query: str,
        temperature: float = GENERATION_TEMPERATURE,
    ) -> str:
        """
        Single-turn, non-streaming completion. Returns the plain answer text:

        {
            "candidates": [
                {"content": {"parts": [{"text": "..."}], "role": "model"}}
            ]
        }
        """
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": query}]}],
            "generationConfig": {"temperature": temperature},
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    f"{self.base_url}/models/{self.model}:generateContent",
                    json=payload,
                    headers={"x-goog-api-key": self.api_key},
                )
        except httpx.HTTPError as exc:
            raise GenerationError(
                f"Generation request failed: {type(exc).__name__}",
                reason=type(exc).__name__,
            ) from exc

        if not resp.is_success:
            raise upstream_error_from_response(resp, GenerationError, "Generation")

        try:
            data = resp.json()
        except ValueError as exc:
            raise GenerationError(
                "Generation response is not JSON",
                upstream_status=resp.status_code,
                body=resp.text,
            ) from exc

        text = self._extract_text(data)
        if not text:
            raise GenerationError(
                "Generation response contained no text",
                upstream_status=resp.status_code,
                body=resp.text,
            )
        return text

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates or not isinstance(candidates, list):
            return ""
        first = candidates[0] if isinstance(candidates[0], dict) else {}
        content = first.get("content") or {}
        parts = content.get("parts") or []
        return "".join(
            part["text"] for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
