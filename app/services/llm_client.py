"""
Outline generation via an OpenAI-compatible chat-completions endpoint.

Sends one request per call (system = synthesized instruction, user = prompt),
pulls ``choices[0].message.content`` out of the reply, strips Markdown code
fences, parses the JSON, and validates it into an ``Outline``.

Public API
----------
OutlineGenerationClient.generate(prompt, settings) -> Outline
strip_code_fences(text)                            -> str

Failures are raised, never swallowed:
  TransportError   network failure, timeout, non-2xx status
  MalformedReply   reply lacks the text payload
  ParseError       payload is not JSON
  Invalid*         outline schema violations (from outline_validator)
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from app.config import settings as app_settings
from app.models.schemas import (
    DEFAULT_OUTLINE_METADATA,
    GenerationSettings,
    Outline,
    merge_settings,
)
from app.services.errors import MalformedReply, ParseError, TransportError
from app.services.outline_validator import parse_outline
from app.services.prompt_builder import build_instruction

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to generate mind map content"


def strip_code_fences(text: str) -> str:
    """
    Remove ```json / ``` wrapping that LLMs often put around JSON.

    The first fenced block wins; unwrapped text is only trimmed.
    """
    if "```json" in text:
        text = text.split("```json", 1)[1].split("```", 1)[0]
    elif "```" in text:
        text = text.split("```", 2)[1]
    return text.strip()


def _extract_content(payload: Any) -> str:
    """Return ``choices[0].message.content`` or raise MalformedReply.

    Only a missing or empty field is malformed; whitespace-only text is
    passed on and fails as a ParseError.
    """
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not isinstance(content, str) or not content:
        raise MalformedReply(
            "Invalid API response format",
            {"received": _preview(payload)},
        )
    return content


def _error_message(response: httpx.Response) -> str:
    """Message from an OpenAI-style ``{"error": {"message": ...}}`` body."""
    try:
        body = response.json()
    except ValueError:
        return GENERIC_FAILURE_MESSAGE
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return GENERIC_FAILURE_MESSAGE


def _preview(value: Any, limit: int = 300) -> str:
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    return text[:limit]


class OutlineGenerationClient:
    """
    Chat-completions client producing validated outlines.

    Stateless apart from its configuration; concurrent ``generate`` calls are
    independent.  Pass *transport* (e.g. ``httpx.MockTransport``) to redirect
    requests in tests.
    """

    TOP_P: float = app_settings.LLM_TOP_P
    FREQUENCY_PENALTY: float = app_settings.LLM_FREQUENCY_PENALTY
    PRESENCE_PENALTY: float = app_settings.LLM_PRESENCE_PENALTY

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else app_settings.LLM_API_KEY
        self.base_url = (base_url or app_settings.LLM_BASE_URL).rstrip("/")
        self.model = model or app_settings.LLM_MODEL
        self.timeout_seconds = float(timeout or app_settings.LLM_TIMEOUT)
        self.timeout = httpx.Timeout(self.timeout_seconds, connect=10.0)
        self._transport = transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(
        self,
        prompt: str,
        settings: Any = None,
    ) -> Outline:
        """
        Ask the LLM for an outline of *prompt* and return it validated.

        *settings* may be a ``GenerationSettings``, a partial mapping of
        overrides, or None; it is merged over the defaults and clamped.
        """
        merged = merge_settings(settings)
        payload = await self._request_completion(prompt, merged)
        content = _extract_content(payload)
        logger.debug("generate: raw content preview: %s", _preview(content))

        cleaned = strip_code_fences(content)
        try:
            raw = json.loads(cleaned)
        except (json.JSONDecodeError, ValueError) as exc:
            logger.warning(
                "generate: reply is not valid JSON (%s). Preview: %s",
                exc,
                _preview(cleaned),
            )
            raise ParseError(
                "Failed to parse mind map content",
                {"error": str(exc), "content": _preview(cleaned)},
            ) from exc

        outline = parse_outline(raw)
        if outline.metadata is None:
            outline = outline.model_copy(update={"metadata": DEFAULT_OUTLINE_METADATA})

        logger.info("generate: outline with %d topics", len(outline.topics))
        return outline

    def build_request_body(self, prompt: str, settings: GenerationSettings) -> Dict[str, Any]:
        """JSON body for the chat-completions call."""
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": build_instruction(settings)},
                {"role": "user", "content": prompt},
            ],
            "temperature": settings.temperature,
            "max_tokens": settings.max_tokens,
            "top_p": self.TOP_P,
            "frequency_penalty": self.FREQUENCY_PENALTY,
            "presence_penalty": self.PRESENCE_PENALTY,
        }

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request_completion(
        self,
        prompt: str,
        settings: GenerationSettings,
    ) -> Any:
        """POST to ``/chat/completions`` and return the decoded JSON body."""
        body = self.build_request_body(prompt, settings)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        logger.info("Sending request to %s (model=%s)", self.base_url, self.model)
        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=body,
                    headers=headers,
                )
        except httpx.TimeoutException as exc:
            logger.error(
                "_request_completion: request timed out after %.0f s",
                self.timeout_seconds,
            )
            raise TransportError(
                f"Request timed out after {self.timeout_seconds:.0f} s",
                {"error": str(exc)},
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("_request_completion: transport error — %s", exc)
            raise TransportError(
                "Failed to reach the language model service",
                {"error": str(exc)},
            ) from exc

        elapsed_ms = (time.monotonic() - t0) * 1000
        if not resp.is_success:
            message = _error_message(resp)
            logger.error(
                "_request_completion: HTTP %d after %.0f ms: %s",
                resp.status_code,
                elapsed_ms,
                resp.text[:300],
            )
            raise TransportError(
                message,
                {"status_code": resp.status_code, "body": resp.text[:300]},
            )

        logger.info(
            "_request_completion: HTTP %d in %.0f ms", resp.status_code, elapsed_ms
        )
        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedReply(
                "Invalid API response format",
                {"received": resp.text[:300]},
            ) from exc
