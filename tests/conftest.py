from __future__ import annotations

import pytest

from readit_scraper.markup import MarkupDocument


def comment_html(
    cid: str,
    author: str,
    *,
    score: str | None = "5 points",
    when: str = "2024-01-10T13:00:00+00:00",
    body: str = "<p>hello</p>",
    stickied: bool = False,
    permalink: str = "",
    children: str = "",
) -> str:
    score_html = f'<span class="score unvoted">{score}</span>' if score is not None else ""
    sticky_html = '<span class="stickied-tagline">stickied comment</span>' if stickied else ""
    permalink = permalink or f"https://old.reddit.com/r/python/comments/abc/hello/{cid}/"
    return f"""
    <div class="thing comment" data-fullname="{cid}" data-author="{author}">
      <div class="entry unvoted">
        <p class="tagline">
          <a class="author">{author}</a>
          {score_html}
          <time datetime="{when}">1 hour ago</time>
          {sticky_html}
        </p>
        <form id="form-{cid}x9" class="usertext"><div class="md">{body}</div></form>
        <ul class="flat-list buttons"><li class="first"><a class="bylink" href="{permalink}">permalink</a></li></ul>
      </div>
      <div class="child"><div class="sitetable listing">{children}</div></div>
    </div>
    """


POST_HTML = """
<div class="thing link" data-fullname="t3_abc" data-subreddit="python" data-author="alice"
     data-score="42" data-url="https://example.com/article">
  <a class="thumbnail" href="https://example.com/article"><img src="//b.thumbs.redditmedia.com/thumb.jpg"></a>
  <p class="title"><a class="title" href="https://example.com/article">Hello world</a>
    <span class="linkflairlabel">Discussion</span></p>
  <p class="tagline"><time datetime="2024-01-10T12:00:00+00:00">1 day ago</time></p>
  <ul class="flat-list buttons">
    <li class="first"><a class="bylink comments may-blank" href="https://old.reddit.com/r/python/comments/abc/hello/">12 comments</a></li>
  </ul>
  <div class="expando"><div class="md"><p>Self text with <a href="https://example.com/page.">a link</a></p></div></div>
</div>
"""


def thread_html() -> str:
    grandchild = comment_html("t1_c", "dave", score="1 point", body="<p>grandchild</p>")
    child = comment_html("t1_b", "carol", score="3 points", body="<p>child</p>", children=grandchild)
    root = comment_html(
        "t1_a",
        "bob",
        body='<p>Root body see <a href="/r/rust">r/rust</a></p>',
        stickied=True,
        children=child,
    )
    deleted = comment_html("t1_d", "", score=None, body="<p>[deleted]</p>")
    mirrored = comment_html(
        "t1_a",
        "bob",
        body="<p>mirror</p>",
        children=comment_html("t1_z", "zed", body="<p>never parsed</p>"),
    )
    return f"""
    <html><body>
    <div class="sitetable linklisting">{POST_HTML}</div>
    <div class="commentarea">
      <div class="sitetable nestedlisting">{root}{deleted}{mirrored}</div>
    </div>
    </body></html>
    """


@pytest.fixture
def thread_doc() -> MarkupDocument:
    return MarkupDocument(thread_html())


@pytest.fixture
def post_doc() -> MarkupDocument:
    return MarkupDocument(f"<html><body>{POST_HTML}</body></html>")
