import shutil
import routes
from contextlib import asynccontextmanager
from util.enums import Environment, Color
from fastapi import FastAPI, Request, status
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from config.limiter import close_rate_limiter, init_rate_limiter
from fastapi.responses import JSONResponse
from util.logger import init_logger
import logging

logger = logging.getLogger(__name__)


def _check_media_tools() -> None:
    # jobs cannot probe or split audio without these
    for tool in ("ffmpeg", "ffprobe"):
        if shutil.which(tool) is None:
            logger.warning("startup.missing_binary name=%s", tool)


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    init_logger()
    print(f"{Color.GREEN}Starting podcast-digest ({settings.APP_ENV}){Color.RESET}")
    _check_media_tools()
    try:
        await init_rate_limiter()
    except Exception as e:
        print(f"{Color.RED}Rate limiter unavailable (Redis): {e}{Color.RESET}")
        raise
    logger.info(
        "startup.ready temp_root=%s primary=%s fallback=%s",
        settings.TEMP_ROOT,
        settings.PRIMARY_MODEL,
        settings.FALLBACK_MODEL,
    )

    try:
        yield
    finally:
        try:
            await close_rate_limiter()
        except Exception as e:
            print("Error closing Redis:", e)
        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(title="podcast-digest", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-API-Key"],
    # the browser needs this to name proxied downloads
    expose_headers=["Content-Disposition"],
)


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.exception_handler(status.HTTP_429_TOO_MANY_REQUESTS)
async def ratelimit_handler(request: Request, exc):
    wait = settings.RATE_LIMIT_SECONDS
    logger.warning("request.rate_limited path=%s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": f"Too many requests. Try again in {wait}s.",
        },
        headers={"Retry-After": str(wait)},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=reload)
