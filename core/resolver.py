# core/resolver.py
from typing import Optional
import httpx
from bs4 import BeautifulSoup
from config.settings import settings
from core.entities import ResolvedEpisode
import logging
from util.constants import BROWSER_USER_AGENT
from util.errors import FetchTimeout, ResolveFailed
from util.timing import timed

logger = logging.getLogger(__name__)

UNKNOWN_TITLE = "Unknown Podcast"


def _meta(soup: BeautifulSoup, prop: str) -> str:
    tag = soup.find("meta", attrs={"property": prop})
    return (tag.get("content") or "").strip() if tag else ""


def parse_episode_page(html: str) -> Optional[ResolvedEpisode]:
    """
    Audio: <audio><source src>, else og:audio. Title: first <h1>, else og:title.
    Returns None when the page carries no audio (not an episode page).
    """
    soup = BeautifulSoup(html, "html.parser")

    source = soup.select_one("audio source[src]")
    audio_url = (source.get("src") or "").strip() if source else ""
    audio_url = audio_url or _meta(soup, "og:audio")
    if not audio_url:
        return None

    h1 = soup.find("h1")
    title = h1.get_text(strip=True) if h1 else ""
    title = title or _meta(soup, "og:title") or UNKNOWN_TITLE
    return ResolvedEpisode(audio_url=audio_url, title=title)


async def resolve(
    url: str,
    *,
    timeout: float = settings.RESOLVE_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ResolvedEpisode:
    """
    Fetch an episode page and pull out its audio location and display title.
    """
    try:
        with timed(logger, "resolve.fetch"):
            async with httpx.AsyncClient(
                timeout=timeout,
                headers={"User-Agent": BROWSER_USER_AGENT},
                follow_redirects=True,
                transport=transport,
            ) as client:
                r = await client.get(url)
                r.raise_for_status()
    except httpx.TimeoutException:
        logger.warning("resolve.timeout")
        raise FetchTimeout("Timed out connecting to the podcast site, check the network or the link")
    except httpx.HTTPError as e:
        logger.warning("resolve.failed err=%s", type(e).__name__)
        raise ResolveFailed()

    episode = parse_episode_page(r.text)
    if episode is None:
        logger.warning("resolve.no_audio")
        raise ResolveFailed("No audio link found (this may not be an episode page)")
    logger.info("resolve.ok title_chars=%d", len(episode.title))
    return episode
