import asyncio
import time
from typing import List, Optional, Tuple

import httpx

from .comments import BodyOptions, extract_comment_thread, extract_thread_page
from .config import HTTP_TIMEOUT, MIN_REQUEST_INTERVAL, REDDIT_BASE_URL
from .errors import NetworkError
from .markup import MarkupDocument
from .models import Comment, MixedItem, Post, PostInfo, SortOption
from .posts import extract_post
from .profile import extract_profile
from .urls import absolute_url, apply_sort, build_profile_url


USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


class RedditScraper:
    """
    Load old.reddit HTML pages and run the extractors over them:
    - Thread:   /r/<sub>/comments/<id>/<slug>/  -> comments + self text
    - Post:     any permalink                   -> Post
    - Profile:  /user/<name>[/<filter>]         -> mixed posts/comments
    ``fetch_post_info`` is the default fetch primitive for enrichment.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        log_callback=None,
        base_url: str = REDDIT_BASE_URL,
        min_interval: float = MIN_REQUEST_INTERVAL,
        body: Optional[BodyOptions] = None,
    ):
        self._log = log_callback or (lambda msg, lvl="info": None)
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Connection": "keep-alive",
            "DNT": "1",
        }
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers=headers,
            timeout=HTTP_TIMEOUT,
            follow_redirects=True,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )
        self.base_url = base_url
        self.body = body or BodyOptions()

        self._rate_lock = asyncio.Lock()
        self._last_request_time = 0.0
        self._min_interval = float(min_interval)

    async def close(self):
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _rate_limit(self):
        async with self._rate_lock:
            now = time.time()
            elapsed = now - self._last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.time()

    async def load_html(self, url: str, retries: int = 3) -> str:
        last_error: Optional[Exception] = None
        for attempt in range(retries):
            await self._rate_limit()
            try:
                resp = await self.client.get(url)
            except httpx.TimeoutException as e:
                last_error = e
                self._log(f"timeout loading {url[:120]}", "warning")
                await asyncio.sleep(3)
                continue
            except httpx.HTTPError as e:
                last_error = e
                self._log(f"request error: {e}", "error")
                if attempt < retries - 1:
                    await asyncio.sleep(2)
                continue

            if resp.status_code == 429:
                wait = 10 * (attempt + 1)
                self._log(f"rate limited, sleep {wait}s then retry", "warning")
                last_error = NetworkError("rate limited (429)", url=url, status_code=429)
                await asyncio.sleep(wait)
                continue
            if resp.status_code in (403, 404):
                self._log(f"http {resp.status_code}: {url[:120]}", "warning")
                raise NetworkError(f"http {resp.status_code}", url=url, status_code=resp.status_code)
            if resp.status_code >= 400:
                last_error = NetworkError(f"http {resp.status_code}", url=url, status_code=resp.status_code)
                self._log(f"http {resp.status_code}: {url[:120]}", "error")
                if attempt < retries - 1:
                    await asyncio.sleep(2)
                continue
            return resp.text

        raise NetworkError(f"failed to load {url}: {last_error}", url=url) from last_error

    async def _load_document(self, url: str) -> MarkupDocument:
        return MarkupDocument(await self.load_html(url))

    # ---------------------------
    # Pages
    # ---------------------------

    async def scrape_comments(
        self,
        comments_url: str,
        sort: Optional[SortOption] = None,
    ) -> Tuple[List[Comment], Optional[str]]:
        url = apply_sort(absolute_url(comments_url, self.base_url), sort)
        doc = await self._load_document(url)
        comments, post_body = extract_thread_page(doc, body=self.body, log_callback=self._log)
        self._log(f"thread {url[:120]}: comments={len(comments)}")
        return comments, post_body

    async def scrape_post(self, url: str) -> Post:
        doc = await self._load_document(absolute_url(url, self.base_url))
        return extract_post(doc)

    async def scrape_comment_thread(self, url: str) -> Tuple[Post, List[Comment]]:
        doc = await self._load_document(absolute_url(url, self.base_url))
        return extract_comment_thread(doc)

    async def scrape_profile(
        self,
        username: str,
        filter_type: Optional[str] = None,
        after: Optional[str] = None,
    ) -> List[MixedItem]:
        url = build_profile_url(username, filter_type, after, base=self.base_url)
        doc = await self._load_document(url)
        items = extract_profile(doc, body=self.body, log_callback=self._log)
        self._log(f"profile {username}: items={len(items)}")
        return items

    async def fetch_post_info(self, url: str) -> PostInfo:
        """Title and author of the post a comment/post link belongs to."""
        doc = await self._load_document(absolute_url(url, self.base_url))
        post = extract_post(doc)
        return PostInfo(title=post.title, author=post.author)
