# config/settings.py
import os
import sys
import tempfile
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")
    TEMP_ROOT: str = Field(default=tempfile.gettempdir(), validation_alias="TEMP_ROOT")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(..., validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(..., validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(..., validation_alias="RATE_LIMIT_SECONDS")
    TRUST_PROXY: bool = Field(..., validation_alias="TRUST_PROXY")

    # Podcast platform
    SUPPORTED_HOST: str = "xiaoyuzhoufm.com"
    RESOLVE_TIMEOUT_SECONDS: float = 10.0
    DOWNLOAD_CONNECT_TIMEOUT_SECONDS: float = 60.0
    PROXY_CONNECT_TIMEOUT_SECONDS: float = 30.0

    # Groq Settings
    GROQ_API_URL: str = Field(
        default="https://api.groq.com/openai/v1", validation_alias="GROQ_API_URL"
    )
    # Server-side key, used only when the caller does not bring one
    GROQ_API_KEY: str = Field(default="", validation_alias="GROQ_API_KEY")
    TRANSCRIBE_MODEL: str = "whisper-large-v3-turbo"
    TRANSCRIBE_LANGUAGE: str = "zh"
    PRIMARY_MODEL: str = "llama-3.3-70b-versatile"
    FALLBACK_MODEL: str = "llama-3.1-8b-instant"

    # Pipeline knobs
    SEGMENT_SECONDS: int = 180
    TRANSCRIBE_ATTEMPTS: int = 3
    TRANSCRIBE_BACKOFF_SECONDS: float = 1.0
    PROVIDER_TIMEOUT_SECONDS: float = 300.0
    SUMMARY_DIRECT_MAX_CHARS: int = 15000
    SUMMARY_CHUNK_CHARS: int = 8000
    SUMMARY_TEMPERATURE: float = 0.6
    SUMMARY_MAX_TOKENS: int = 6000
    SUMMARY_PARTIAL_MAX_TOKENS: int = 4000
    HEARTBEAT_SECONDS: float = 3.0
    JOB_TIMEOUT_SECONDS: float = 600.0

    # Logging knobs
    LOGGER_NAME: str = "podcast-digest"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    # Prompts
    SUMMARY_SYSTEM_PROMPT: str = (
        "You turn podcast transcripts into study notes for a curious friend who has little time. "
        "The notes must let them recover the full substance of the episode and painlessly follow "
        "any hard ideas in it.\n"
        "\n"
        "PRINCIPLES:\n"
        "- Retention: do not flatten the episode into bare bullet points. Follow the flow of the "
        "conversation and restore the complete arguments. Record guests' sharpest points, concrete "
        "cases, book titles and numbers in detail.\n"
        "- Translation: when a term, theory or expression is abstract or specialised, explain it with "
        "an everyday analogy. Skip the explanation when the content is already simple.\n"
        "- Structure: logical, layered, easy to scan.\n"
        "- Write in the language of the transcript.\n"
        "\n"
        "OUTPUT (Markdown):\n"
        "# {Title: accurate and inclusive}\n"
        "\n"
        "## The Context\n"
        "(Who is talking, what the core topic is, what the mood is like.)\n"
        "\n"
        "## The Notes\n"
        "(About 80% of the length. Split by the logic of the conversation into parts and write them "
        "out fully.)\n"
        "\n"
        "### Part 1. [Subtitle]\n"
        "- **What was said**: a detailed retelling of this segment, keeping arguments, details and "
        "examples.\n"
        "- **In plain words**: only when a concept is hard; one good analogy.\n"
        "\n"
        "### Part 2. [Subtitle]\n"
        "...\n"
        "\n"
        "---\n"
        "\n"
        "## Closing Thoughts\n"
        "(10-15% of the length. A personal, reflective note, like a late-night voice message to a "
        "friend about the one point that moved you. Do not summarise the episode again, do not "
        "lecture, and do not end with pleasantries such as 'see you next time'. Stop where the "
        "thought lingers.)\n"
    )

    SUMMARY_PARTIAL_PROMPT: str = (
        "This is one part of a podcast transcript ({length} characters). Extract the key content, "
        "viewpoints and examples of this part in full detail. Do not add a concluding wrap-up.\n"
        "\n"
        "TRANSCRIPT:\n"
        "\n"
        "{content}"
    )

    SUMMARY_MERGE_PROMPT: str = (
        "I have analysed this podcast part by part. These are the detailed notes for each part:\n"
        "\n"
        "{content}\n"
        "\n"
        "Now, based on these notes, produce one complete, structured summary of the podcast. Follow "
        "the output structure you were given: title, context, detailed notes split into sensible "
        "parts, and the closing thoughts.\n"
        "\n"
        "IMPORTANT: do not repeat content. Reconcile the notes into one coherent, logically ordered "
        "document."
    )


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
