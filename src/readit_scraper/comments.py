from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

from .body import body_to_markdown
from .config import INTERNAL_SCHEME, REDDIT_DOMAIN, SHOW_ORIGINAL_URL
from .errors import ElementMissingError, NotFoundError
from .markup import Element, MarkupDocument
from .models import SCORE_HIDDEN, Comment, Post
from .posts import extract_post

TOP_LEVEL_SELECTOR = "div.sitetable.nestedlisting > div.comment"
CHILD_SELECTOR = ":scope > div.child > div.sitetable.listing > div.comment"
ENTRY_SELECTOR = ":scope > div.entry"
POST_BODY_SELECTOR = "div.expando"


@dataclass
class BodyOptions:
    scheme: str = INTERNAL_SCHEME
    domain: str = REDDIT_DOMAIN
    show_original_url: bool = SHOW_ORIGINAL_URL

    def render(self, element: Element) -> str:
        return body_to_markdown(
            element,
            scheme=self.scheme,
            domain=self.domain,
            show_original_url=self.show_original_url,
        )


@dataclass
class TraversalContext:
    """State threaded through one extraction pass."""

    body: BodyOptions = field(default_factory=BodyOptions)
    visited: Set[str] = field(default_factory=set)
    by_id: Dict[str, Comment] = field(default_factory=dict)
    out: List[Comment] = field(default_factory=list)
    log_callback: Optional[Callable[..., None]] = None


def score_from_text(text: str) -> str:
    parts = text.split()
    return parts[0] if parts else SCORE_HIDDEN


def find_body_form(entry: Element, comment_id: str, *, prefix: bool = True) -> Optional[Element]:
    """The ``form-<id>...`` element under an entry holding the comment text."""
    needle = f"form-{comment_id}"
    for form in entry.select(":scope > form"):
        form_id = form.attr("id")
        if (prefix and form_id.startswith(needle)) or (not prefix and needle in form_id):
            return form
    return None


def read_comment(
    element: Element,
    *,
    parent_id: Optional[str],
    depth: int,
    body: BodyOptions,
    body_prefix_match: bool = True,
    require_author_for_body: bool = True,
    log_callback=None,
) -> Comment:
    """Build a Comment from one ``div.comment``; missing pieces become defaults."""
    cid = element.attr("data-fullname")
    author = element.attr("data-author")

    try:
        entry = element.require(ENTRY_SELECTOR)
    except ElementMissingError:
        entry = None

    score_text = SCORE_HIDDEN
    time_raw = ""
    text = ""
    stickied = False
    direct_url = ""
    if entry is not None:
        score_el = entry.select_one("span.score.unvoted")
        if score_el is not None:
            score_text = score_from_text(score_el.text())
        time_el = entry.select_one("time")
        if time_el is not None:
            time_raw = time_el.attr("datetime")

        form = None
        if entry.has_class("unvoted"):
            form = find_body_form(entry, cid, prefix=body_prefix_match)
        if form is not None and (author or not require_author_for_body):
            try:
                text = body.render(form)
            except Exception as e:
                if log_callback is not None:
                    log_callback(f"comment {cid}: body not rendered: {e}", "warning")

        stickied = entry.select_one("span.stickied-tagline") is not None
        bylink = entry.select_one("a.bylink")
        if bylink is not None:
            direct_url = bylink.attr("href")

    return Comment.create(
        id=cid,
        parent_id=parent_id,
        author=author,
        score_text=score_text,
        time_raw=time_raw,
        body=text,
        depth=depth,
        stickied=stickied,
        direct_url=direct_url,
    )


def _visit(element: Element, parent_id: Optional[str], depth: int, ctx: TraversalContext) -> None:
    cid = element.attr("data-fullname")
    if cid in ctx.visited:
        return
    ctx.visited.add(cid)

    comment = read_comment(
        element, parent_id=parent_id, depth=depth, body=ctx.body, log_callback=ctx.log_callback
    )
    ctx.out.append(comment)
    ctx.by_id[cid] = comment

    for child in element.select(CHILD_SELECTOR):
        _visit(child, cid, depth + 1, ctx)


def extract_comments(
    doc: MarkupDocument,
    *,
    body: Optional[BodyOptions] = None,
    log_callback=None,
) -> List[Comment]:
    """Flatten the nested comment listing of a thread page.

    Output is pre-order: every comment is followed by its replies. A comment
    id seen twice is skipped together with everything nested under the
    second copy.
    """
    ctx = TraversalContext(body=body or BodyOptions(), log_callback=log_callback)
    for element in doc.select(TOP_LEVEL_SELECTOR):
        _visit(element, None, 0, ctx)
    return ctx.out


def extract_post_body(doc: MarkupDocument, *, body: Optional[BodyOptions] = None) -> Optional[str]:
    """Markdown of a self post's text, or None for link posts."""
    element = doc.select_one(POST_BODY_SELECTOR)
    if element is None or not element.text():
        return None
    return (body or BodyOptions()).render(element)


def _int_or_zero(raw: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def extract_comment_thread(doc: MarkupDocument) -> Tuple[Post, List[Comment]]:
    """Post plus every comment of a flat thread layout (depth read from markup)."""
    post = extract_post(doc)
    comments: List[Comment] = []
    for element in doc.select("div.comment"):
        author_el = element.select_one("a.author")
        score_el = element.select_one("span.score")
        time_el = element.select_one("time")
        body_el = element.select_one("div.md")
        bylink = element.select_one("a.bylink")
        comments.append(
            Comment(
                id=element.attr("data-fullname"),
                parent_id=element.attr("data-parent-id") or None,
                author=author_el.text() if author_el else "",
                score_text=score_el.text() if score_el else "",
                time_raw=time_el.attr("datetime") if time_el else "",
                body=body_el.text() if body_el else "",
                depth=_int_or_zero(element.attr("data-depth")),
                stickied=element.has_class("stickied"),
                direct_url=bylink.attr("href") if bylink else "",
            )
        )
    return post, comments


def extract_thread_page(
    doc: MarkupDocument,
    *,
    body: Optional[BodyOptions] = None,
    log_callback=None,
) -> Tuple[List[Comment], Optional[str]]:
    comments = extract_comments(doc, body=body, log_callback=log_callback)
    return comments, extract_post_body(doc, body=body)


# ---------------------------
# Tree helpers
# ---------------------------

def count_descendants(comment: Comment, comments: List[Comment]) -> int:
    children: Dict[Optional[str], List[Comment]] = {}
    for c in comments:
        children.setdefault(c.parent_id, []).append(c)

    total = 0
    stack = [comment.id]
    seen: Set[str] = set()
    while stack:
        cid = stack.pop()
        if cid in seen:
            continue
        seen.add(cid)
        for child in children.get(cid, []):
            total += 1
            stack.append(child.id)
    return total


def find_root_comment(comment: Comment, comments: List[Comment]) -> Comment:
    by_id = {c.id: c for c in comments}
    current = comment
    seen = {current.id}
    while current.parent_id is not None:
        parent = by_id.get(current.parent_id)
        if parent is None or parent.id in seen:
            break
        seen.add(parent.id)
        current = parent
    return current


def collapse_children(comments: List[Comment], parent_id: str, collapsed: bool) -> None:
    """Hide or show every reply under ``parent_id``.

    Replies that are themselves root-collapsed keep their own subtree as is.
    """
    pending = [parent_id]
    seen: Set[str] = set()
    while pending:
        pid = pending.pop()
        if pid in seen:
            continue
        seen.add(pid)
        for c in comments:
            if c.parent_id != pid:
                continue
            c.is_collapsed = collapsed
            if not c.is_root_collapsed:
                pending.append(c.id)


def toggle_collapse(comments: List[Comment], comment_id: str) -> Optional[Comment]:
    """Collapse gesture: a root toggles its subtree, a reply collapses its root.

    Returns the root comment whose state changed, or None for an unknown id.
    """
    target = next((c for c in comments if c.id == comment_id), None)
    if target is None:
        return None
    if target.parent_id is None:
        target.is_root_collapsed = not target.is_root_collapsed
        collapse_children(comments, target.id, target.is_root_collapsed)
        return target

    root = find_root_comment(target, comments)
    root.is_root_collapsed = True
    collapse_children(comments, root.id, True)
    return root


def apply_initial_collapse(comments: List[Comment]) -> None:
    for c in comments:
        if c.is_root_collapsed:
            collapse_children(comments, c.id, True)


def restamp_depths(comments: List[Comment]) -> None:
    """Recompute depth from parent links, for lists no longer in traversal order."""
    by_id = {c.id: c for c in comments}
    for c in comments:
        depth = 0
        seen = {c.id}
        parent = by_id.get(c.parent_id) if c.parent_id is not None else None
        while parent is not None and parent.id not in seen:
            seen.add(parent.id)
            depth += 1
            parent = by_id.get(parent.parent_id) if parent.parent_id is not None else None
        c.depth = depth
