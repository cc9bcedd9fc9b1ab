from pathlib import PurePosixPath
from typing import List, Optional
from urllib.parse import urlsplit

from .errors import NotFoundError
from .markup import Element, MarkupDocument
from .models import Post, PostType

POST_SELECTOR = "div.link"
LISTING_POST_SELECTOR = "div.thing.link"

VIDEO_HOSTS = {"v.redd.it", "youtube.com", "www.youtube.com", "m.youtube.com", "youtu.be", "streamable.com"}
IMAGE_HOSTS = {"i.redd.it", "i.imgur.com", "preview.redd.it"}

VIDEO_EXTENSIONS = {".mp4", ".webm", ".mov", ".mkv", ".gifv"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tiff"}

THUMBNAIL_TYPES = {PostType.VIDEO, PostType.GALLERY, PostType.ARTICLE}


def classify_media_url(media_url: str) -> PostType:
    """Derive the post kind from the link a post points at."""
    url = (media_url or "").strip()
    if not url or url.startswith(("/r/", "/u/", "/user/")):
        return PostType.TEXT
    try:
        parts = urlsplit(url if "://" in url or url.startswith("//") else f"//{url}")
    except ValueError:
        return PostType.ARTICLE

    host = (parts.hostname or "").lower()
    path = parts.path.lower()
    suffix = PurePosixPath(path).suffix

    if "/gallery/" in path or (host == "imgur.com" and path.startswith("/a/")):
        return PostType.GALLERY
    if host in VIDEO_HOSTS or suffix in VIDEO_EXTENSIONS:
        return PostType.VIDEO
    if host in IMAGE_HOSTS or suffix in IMAGE_EXTENSIONS:
        return PostType.IMAGE
    if host.endswith("reddit.com") and "/comments/" in path:
        return PostType.TEXT
    return PostType.ARTICLE


def _force_https(src: str) -> str:
    if src.startswith("//"):
        return f"https:{src}"
    return src


def _first_token(text: str) -> str:
    parts = text.split()
    return parts[0] if parts else ""


def parse_post_element(element: Element) -> Post:
    media_url = element.attr("data-url")
    post_type = classify_media_url(media_url)

    title_el = element.select_one("p.title a.title")
    tag_el = element.select_one("span.linkflairlabel")
    time_el = element.select_one("time")
    comments_el = element.select_one("a.bylink.comments.may-blank")

    thumbnail_url: Optional[str] = None
    if post_type in THUMBNAIL_TYPES:
        thumb = element.select_one("a.thumbnail img")
        if thumb is not None and thumb.attr("src"):
            thumbnail_url = _force_https(thumb.attr("src"))

    return Post(
        id=element.attr("data-fullname"),
        subreddit=element.attr("data-subreddit"),
        title=title_el.text() if title_el else "",
        tag=tag_el.text() if tag_el else "",
        author=element.attr("data-author"),
        votes=element.attr("data-score"),
        time=time_el.attr("datetime") if time_el else "",
        media_url=media_url,
        comments_url=comments_el.attr("href") if comments_el else "",
        comments_count=_first_token(comments_el.text()) if comments_el else "",
        type=post_type,
        thumbnail_url=thumbnail_url,
    )


def extract_posts(doc: MarkupDocument) -> List[Post]:
    elements = doc.select(LISTING_POST_SELECTOR) or doc.select(POST_SELECTOR)
    return [parse_post_element(el) for el in elements]


def extract_post(doc: MarkupDocument) -> Post:
    element = doc.select_one(POST_SELECTOR)
    if element is None:
        raise NotFoundError("post container not found")
    return parse_post_element(element)
