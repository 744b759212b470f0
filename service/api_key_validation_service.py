# service/api_key_validation_service.py
from typing import Optional
import httpx
from fastapi import status
from config.settings import settings
from util.constants import ExternalURIs
from util.enums import ErrorMessage
from util.errors import AppError
import logging

logger = logging.getLogger(__name__)


class ApiKeyValidationService:
    """
    Checks a caller's Groq key before they start a long job.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._url: str = settings.GROQ_API_URL.rstrip("/") + ExternalURIs.GROQ_MODELS
        self._transport = transport

    async def validate_key(self, api_key: str) -> None:
        timeout = httpx.Timeout(10.0, connect=5.0)

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                res = await client.get(
                    self._url, headers={"Authorization": f"Bearer {api_key}"}
                )
        except httpx.RequestError as e:
            logger.error("api.key.request_error err=%s", type(e).__name__)
            raise AppError(
                ErrorMessage.INTERNAL_ERROR.value.message,
                ErrorMessage.INTERNAL_ERROR.value.http_status,
            )

        if res.status_code // 100 == 2:
            logger.info("api.key.validated")
            return

        if res.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
            logger.warning("api.key.invalid status=%d", res.status_code)
            raise AppError(
                ErrorMessage.INVALID_API_KEY.value.message,
                ErrorMessage.INVALID_API_KEY.value.http_status,
            )

        logger.error("api.key.unexpected status=%d", res.status_code)
        raise AppError(
            ErrorMessage.INTERNAL_ERROR.value.message,
            ErrorMessage.INTERNAL_ERROR.value.http_status,
        )
