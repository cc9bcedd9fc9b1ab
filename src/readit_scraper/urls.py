from typing import Optional
from urllib.parse import parse_qsl, quote, urlencode, urljoin, urlsplit, urlunsplit

from .config import REDDIT_BASE_URL
from .errors import InvalidURLError
from .models import SortOption

RESOURCE_KEY_SEGMENTS = 6


def apply_sort(url: str, sort: Optional[SortOption]) -> str:
    """Put ``sort=<value>`` in front of the query, keeping the caller's own items."""
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidURLError(url, str(e)) from e
    if not parts.scheme or not parts.netloc:
        raise InvalidURLError(url, "expected an absolute url")
    if sort is None:
        return url

    query = [("sort", sort.query_value)]
    query.extend(parse_qsl(parts.query, keep_blank_values=True))
    return urlunsplit(parts._replace(query=urlencode(query)))


def resource_key(url: str) -> str:
    """Group key for links that point at the same post.

    "https://x/r/a/comments/123/slug/t1_1" -> "https://x/r/a/comments/123":
    subreddit and post id, without slug or comment id. Links that are not
    thread permalinks fall back to their first six "/" segments; shorter
    or unparseable urls are their own key.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        parts = None
    if parts is not None:
        path = [p for p in parts.path.split("/") if p]
        if len(path) >= 4 and path[0] == "r" and path[2] == "comments":
            prefix = f"{parts.scheme}://{parts.netloc}" if parts.netloc else ""
            return prefix + "/" + "/".join(path[:4])

    segments = url.split("/")
    if len(segments) < RESOURCE_KEY_SEGMENTS:
        return url
    return "/".join(segments[:RESOURCE_KEY_SEGMENTS])


def absolute_url(href: str, base: str = REDDIT_BASE_URL) -> str:
    if not href:
        return ""
    return urljoin(base.rstrip("/") + "/", href)


def build_profile_url(
    username: str,
    filter_type: Optional[str] = None,
    after: Optional[str] = None,
    *,
    base: str = REDDIT_BASE_URL,
) -> str:
    username = (username or "").strip()
    if not username:
        raise InvalidURLError(username, "empty username")
    url = f"{base.rstrip('/')}/user/{quote(username)}"
    if filter_type:
        url += f"/{quote(filter_type)}"
    if after:
        url += "?" + urlencode({"after": after})
    return url
