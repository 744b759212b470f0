# core/groq_client.py
import mimetypes
from pathlib import Path
from typing import Any, Dict, Optional
import httpx
from fastapi import status
from config.settings import settings
import logging
from util.constants import ExternalURIs
from util.errors import AuthInvalid, ProviderError, RateLimited
from util.functions import parse_retry_after
from util.timing import timed

logger = logging.getLogger(__name__)

_AUTH_CODES = {"invalid_api_key"}
_RATE_LIMIT_CODES = {"rate_limit_exceeded"}


def _error_fields(r: httpx.Response) -> Dict[str, str]:
    """
    Pull {message, code} out of an OpenAI-style error body. Missing fields become "".
    """
    try:
        body = r.json()
    except ValueError:
        return {"message": r.text or "", "code": ""}
    err = body.get("error") if isinstance(body, dict) else None
    if not isinstance(err, dict):
        return {"message": str(body or ""), "code": ""}
    return {
        "message": str(err.get("message") or ""),
        "code": str(err.get("code") or err.get("type") or ""),
    }


def classify_failure(r: httpx.Response) -> Exception:
    """
    Map a non-2xx provider response onto our error classes:
    - 401/403 or invalid_api_key -> AuthInvalid
    - 429 or rate_limit_exceeded -> RateLimited (with retry-after hint when present)
    - anything else -> ProviderError
    """
    fields = _error_fields(r)
    code, message = fields["code"], fields["message"]
    if (
        r.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)
        or code in _AUTH_CODES
    ):
        return AuthInvalid()
    if r.status_code == status.HTTP_429_TOO_MANY_REQUESTS or code in _RATE_LIMIT_CODES:
        return RateLimited(
            message, retry_after=parse_retry_after(message, r.headers.get("retry-after"))
        )
    return ProviderError(r.status_code, message)


class GroqClient:
    """
    BYOK client for Groq's OpenAI-compatible API. One instance per job; the key
    lives only as long as the instance.

    Transport failures are left as httpx.TransportError so callers decide what to retry.
    """

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = settings.GROQ_API_URL,
        transcribe_model: str = settings.TRANSCRIBE_MODEL,
        language: str = settings.TRANSCRIBE_LANGUAGE,
        timeout: float = settings.PROVIDER_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url.rstrip("/")
        self._transcribe_model = transcribe_model
        self._language = language
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._api_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _post(self, endpoint: str, **kwargs: Any) -> httpx.Response:
        async with self._client() as client:
            r = await client.post(endpoint, **kwargs)
        if r.status_code // 100 != 2:
            err = classify_failure(r)
            logger.warning(
                "ai.call.failed endpoint=%s status=%d kind=%s",
                endpoint,
                r.status_code,
                type(err).__name__,
            )
            raise err
        return r

    async def transcribe(self, path: Path) -> str:
        """
        Send one audio file to speech-to-text and return the plain-text transcript.
        """
        mime = mimetypes.guess_type(path.name)[0] or "audio/mpeg"
        data = {
            "model": self._transcribe_model,
            "language": self._language,
            "response_format": "text",
        }
        with timed(logger, "ai.transcribe", file=path.name):
            with path.open("rb") as fh:
                r = await self._post(
                    ExternalURIs.GROQ_TRANSCRIPTIONS,
                    data=data,
                    files={"file": (path.name, fh, mime)},
                )
        return r.text

    async def complete(
        self,
        *,
        system: str,
        user: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """
        One chat completion; returns the first choice's text ("" when absent).
        """
        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        with timed(logger, "ai.complete", model=model, chars=len(user)):
            r = await self._post(ExternalURIs.GROQ_CHAT_COMPLETIONS, json=payload)

        try:
            data = r.json()
        except ValueError:
            data = {}
        text = ""
        try:
            choices = data.get("choices") or []
            if choices and isinstance(choices, list):
                message = choices[0].get("message") or {}
                text = message.get("content") or ""
        except (AttributeError, TypeError):
            text = ""
        return text


def make_provider(api_key: str) -> GroqClient:
    return GroqClient(api_key)
