import html
import logging
import re
import requests
from typing import Optional
from songrank.core.config import settings
from songrank.schemas.songs import VideoMetadata

logger = logging.getLogger(__name__)


class VideoResolutionError(Exception):
    """Base exception for YouTube metadata resolution errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidUrl(VideoResolutionError):
    pass


class FetchError(VideoResolutionError):
    pass


class ParseError(VideoResolutionError):
    pass


class VideoMetadataResolver:
    """
    Resolves a YouTube URL into title, view count and thumbnail by scraping
    the public watch page.

    - The video id comes from ``watch?v=``, ``youtu.be/`` or ``embed/`` URLs
    - A missing title is fatal (``ParseError``)
    - View count strategies are tried in order; if none matches, views = 0
    """

    VIDEO_ID_PATTERNS = [
        re.compile(r"youtube\.com/watch\?(?:[^#]*&)?v=([A-Za-z0-9_-]+)"),
        re.compile(r"youtu\.be/([A-Za-z0-9_-]+)"),
        re.compile(r"youtube\.com/embed/([A-Za-z0-9_-]+)"),
    ]

    TITLE_PATTERNS = [
        re.compile(r"<title>(.+?) - YouTube</title>", re.DOTALL),
        re.compile(r'<meta\s+name="title"\s+content="([^"]+)"'),
    ]

    VIEW_PATTERNS = [
        re.compile(r'"viewCount":\s*"(\d+)"'),
        re.compile(r'"viewCount"\s*:\s*\{.*?"simpleText"\s*:\s*"([\d,\.]+)', re.DOTALL),
        re.compile(r'itemprop="interactionCount"\s+content="(\d+)"'),
    ]

    def __init__(self, http=None, timeout: Optional[float] = None):
        # Anything with a requests-compatible ``get`` works (tests pass a stub)
        self.http = http or requests
        self.timeout = timeout or settings.YOUTUBE_FETCH_TIMEOUT_SECONDS
        self.watch_url = settings.YOUTUBE_WATCH_URL
        self.thumbnail_template = settings.YOUTUBE_THUMBNAIL_URL
        self.user_agent = settings.YOUTUBE_USER_AGENT

    def resolve(self, url: str) -> VideoMetadata:
        video_id = self.extract_video_id(url)
        if not video_id:
            raise InvalidUrl("Invalid YouTube URL")

        page = self._fetch_page(video_id)
        title = self._extract_title(page)
        views = self._extract_views(page)

        logger.info(f"Resolved YouTube video {video_id}: '{title}' ({views} views)")
        return VideoMetadata(
            video_id=video_id,
            title=title,
            views=views,
            thumbnail=self.thumbnail_url(video_id),
        )

    def extract_video_id(self, url: str) -> Optional[str]:
        for pattern in self.VIDEO_ID_PATTERNS:
            match = pattern.search(url or "")
            if match:
                return match.group(1)
        return None

    def thumbnail_url(self, video_id: str) -> str:
        return self.thumbnail_template.format(video_id=video_id)

    def _fetch_page(self, video_id: str) -> str:
        try:
            response = self.http.get(
                f"{self.watch_url}{video_id}",
                headers={
                    "User-Agent": self.user_agent,
                    "Accept-Language": "en-US,en;q=0.9",
                },
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            logger.warning(f"YouTube fetch failed for {video_id}: {e}")
            raise FetchError(f"Error accessing YouTube: {e}")

        if response.status_code != 200:
            raise FetchError(f"Error accessing YouTube: HTTP {response.status_code}")

        return response.text

    def _extract_title(self, page: str) -> str:
        for pattern in self.TITLE_PATTERNS:
            match = pattern.search(page)
            if match:
                title = html.unescape(match.group(1)).strip()
                if title:
                    return title
        raise ParseError("Could not find video title")

    def _extract_views(self, page: str) -> int:
        for pattern in self.VIEW_PATTERNS:
            match = pattern.search(page)
            if match:
                digits = re.sub(r"[^\d]", "", match.group(1))
                if digits:
                    return int(digits)
        logger.debug("No view count found on page, defaulting to 0")
        return 0


def get_video_resolver() -> VideoMetadataResolver:
    """FastAPI dependency (overridden in tests)."""
    return VideoMetadataResolver()
