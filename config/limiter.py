# config/limiter.py
# Redis backs the per-IP request limiter only; jobs are never stored.
from typing import Optional
from fastapi import Request
from fastapi_limiter import FastAPILimiter
from redis.asyncio import Redis, from_url
from config.settings import settings

_client: Optional[Redis] = None


async def client_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def init_rate_limiter() -> None:
    global _client
    if _client is None:
        _client = from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,  # limiter scripts return plain ints
            socket_keepalive=True,
            health_check_interval=30,
        )
        # Fail fast on startup if Redis is unreachable.
        await _client.ping()
    await FastAPILimiter.init(_client, identifier=client_ip)


async def close_rate_limiter() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
