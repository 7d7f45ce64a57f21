"""
Gemini File API + generateContent client.

Two outbound calls per extraction, made in sequence over one
``httpx.AsyncClient``:

1. upload the questionnaire to ``/upload/v1beta/files``
2. call ``/v1beta/models/{model}:generateContent`` with the file reference
   and the extraction prompt, asking for a JSON response

There are no retries: any non-success response raises ``UpstreamError``
carrying the raw response body.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Optional

import httpx

from app.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class UploadedFile:
    """File handle returned by the upload endpoint."""

    uri: str
    mime_type: str


class GeminiClient:
    """Thin async wrapper over the two Gemini endpoints the builder uses."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com",
        model: str = "gemini-2.0-flash",
        timeout: float = 120.0,
        temperature: float = 0.2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model if model.startswith("models/") else f"models/{model}"
        self.temperature = temperature
        self.timeout = httpx.Timeout(timeout, connect=10.0)
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    async def extract(
        self,
        data: bytes,
        mime_type: str,
        filename: str,
        prompt: str,
    ) -> str:
        """Upload *data* and return the raw generated text for *prompt*."""
        if not self.is_configured:
            raise ConfigurationError("Missing GEMINI_API_KEY")

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            uploaded = await self.upload_file(client, data, mime_type, filename)
            return await self.generate(client, uploaded, prompt)

    async def upload_file(
        self,
        client: httpx.AsyncClient,
        data: bytes,
        mime_type: str,
        filename: str,
    ) -> UploadedFile:
        url = f"{self.base_url}/upload/v1beta/files"
        resp = await self._post(
            client,
            url,
            "upload",
            files={"file": (filename, data, mime_type)},
        )
        if not resp.is_success:
            logger.error("Upload error (HTTP %d): %s", resp.status_code, resp.text)
            raise UpstreamError("Gemini upload failed", details=resp.text)

        payload = _json_or_empty(resp)
        file_info = payload.get("file") or {}
        uri = file_info.get("uri") or file_info.get("name") or ""
        if not uri:
            logger.error("Upload returned no file URI: %s", payload)
            raise UpstreamError(
                "Upload succeeded but no file URI returned", details=payload
            )

        uploaded = UploadedFile(uri=uri, mime_type=file_info.get("mimeType") or mime_type)
        logger.info("Uploaded %r (%d bytes) → %s", filename, len(data), uploaded.uri)
        return uploaded

    async def generate(
        self,
        client: httpx.AsyncClient,
        uploaded: UploadedFile,
        prompt: str,
    ) -> str:
        url = f"{self.base_url}/v1beta/{self.model}:generateContent"
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"fileData": {"fileUri": uploaded.uri, "mimeType": uploaded.mime_type}},
                        {"text": prompt},
                    ],
                }
            ],
            "generationConfig": {
                "temperature": self.temperature,
                "responseMimeType": "application/json",
            },
        }
        resp = await self._post(client, url, "generate", json=body)
        if not resp.is_success:
            logger.error("Generate error (HTTP %d): %s", resp.status_code, resp.text)
            raise UpstreamError("Gemini generate failed", details=resp.text)

        text = _candidate_text(_json_or_empty(resp))
        logger.info("Generate returned %d characters", len(text))
        return text

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _post(
        self, client: httpx.AsyncClient, url: str, step: str, **kwargs: Any
    ) -> httpx.Response:
        try:
            return await client.post(url, params={"key": self.api_key}, **kwargs)
        except httpx.TimeoutException as exc:
            logger.error("Gemini %s timed out: %s", step, exc)
            raise UpstreamError(f"Gemini {step} timed out", details=str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.error("Gemini %s request failed: %s", step, exc)
            raise UpstreamError(f"Gemini {step} failed", details=str(exc)) from exc


def _json_or_empty(resp: httpx.Response) -> Dict[str, Any]:
    try:
        payload = resp.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _candidate_text(payload: Dict[str, Any]) -> str:
    """``candidates[0].content.parts[0].text``, or ``""`` when any hop is missing."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""
