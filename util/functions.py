# util/functions.py
import re
from typing import List, Optional
from urllib.parse import urlparse

AUDIO_EXTENSIONS = (".m4a", ".mp4", ".wav")
DEFAULT_EXTENSION = ".mp3"

_HIGHLIGHT = re.compile(r"^[*\-]\s+(.*)$", re.MULTILINE)
_RETRY_AFTER = re.compile(r"try again in ([\d\w.]+)")
_UNSAFE_FILENAME = re.compile(r'[<>:"/\\|?*]+')


def detect_extension(url: str) -> str:
    """
    Guess the container extension from the URL path; ffmpeg picks its demuxer from it.
    """
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return DEFAULT_EXTENSION
    for ext in AUDIO_EXTENSIONS:
        if path.endswith(ext):
            return ext
    return DEFAULT_EXTENSION


def extract_highlights(markdown: str, limit: int = 3) -> List[str]:
    """
    - First `limit` top-level bullet lines ("- x" / "* x") of a Markdown document.
    - Indented (nested) bullets are ignored.
    """
    return [m.group(1).strip() for m in _HIGHLIGHT.finditer(markdown)][:limit]


def parse_retry_after(message: str, header: Optional[str] = None) -> Optional[str]:
    # Best effort: provider wording first, then the standard header (seconds).
    match = _RETRY_AFTER.search(message or "")
    if match:
        return match.group(1).rstrip(".")
    if header and header.strip():
        return f"{header.strip()}s"
    return None


def safe_filename(name: str, default: str = "podcast") -> str:
    cleaned = _UNSAFE_FILENAME.sub("_", name or "").strip()
    return cleaned or default


def is_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def host_matches(url: str, domain: str) -> bool:
    """True when the URL's host is `domain` or one of its subdomains."""
    if not is_http_url(url):
        return False
    host = (urlparse(url).hostname or "").lower()
    domain = domain.lower().lstrip(".")
    return host == domain or host.endswith("." + domain)
