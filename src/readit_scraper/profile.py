from datetime import datetime
from typing import List, Optional

from .comments import BodyOptions, read_comment
from .markup import MarkupDocument
from .models import Comment, MixedItem
from .posts import extract_posts

PROFILE_COMMENT_SELECTOR = "div.thing.comment"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """Parse reddit's ``datetime`` attribute, e.g. ``2024-01-10T12:34:56+00:00``."""
    if not raw:
        return None
    try:
        return datetime.strptime(raw.strip(), TIMESTAMP_FORMAT)
    except ValueError:
        return None


def extract_profile_comments(
    doc: MarkupDocument,
    *,
    body: Optional[BodyOptions] = None,
    log_callback=None,
) -> List[Comment]:
    opts = body or BodyOptions()
    comments: List[Comment] = []
    for element in doc.select(PROFILE_COMMENT_SELECTOR):
        comment = read_comment(
            element,
            parent_id=element.attr("data-parent-fullname") or None,
            depth=0,
            body=opts,
            body_prefix_match=False,
            require_author_for_body=False,
            log_callback=log_callback,
        )
        comments.append(comment)
    return comments


def _sort_key(item: MixedItem) -> float:
    return item.date.timestamp() if item.date is not None else float("-inf")


def sort_mixed_items(items: List[MixedItem]) -> List[MixedItem]:
    """Newest first. Undated items go last, keeping their relative order."""
    return sorted(items, key=_sort_key, reverse=True)


def extract_profile(
    doc: MarkupDocument,
    *,
    body: Optional[BodyOptions] = None,
    log_callback=None,
) -> List[MixedItem]:
    """Posts and comments of a user page, merged and sorted newest first.

    Posts and comments come from separate selector passes and are
    concatenated (posts first) before sorting, so ties and undated entries
    keep posts ahead of comments.
    """
    items: List[MixedItem] = []
    for post in extract_posts(doc):
        items.append(MixedItem.of_post(post, parse_timestamp(post.time)))
    for comment in extract_profile_comments(doc, body=body, log_callback=log_callback):
        items.append(MixedItem.of_comment(comment, parse_timestamp(comment.time_raw)))
    return sort_mixed_items(items)
