from bs4 import BeautifulSoup
from markdownify import MarkdownConverter

from .config import INTERNAL_SCHEME, REDDIT_DOMAIN, SHOW_ORIGINAL_URL
from .links import normalize_links
from .markup import Element

_CONVERTER = MarkdownConverter(
    heading_style="ATX",
    bullets="-",
    strip=["script", "style"],
)


def html_to_markdown(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    return _CONVERTER.convert_soup(soup).strip()


def body_to_markdown(
    element: Element,
    *,
    scheme: str = INTERNAL_SCHEME,
    domain: str = REDDIT_DOMAIN,
    show_original_url: bool = SHOW_ORIGINAL_URL,
) -> str:
    """Rewrite the links of a comment/post body and render it as markdown."""
    html = normalize_links(
        element,
        scheme=scheme,
        domain=domain,
        show_original_url=show_original_url,
    )
    return html_to_markdown(html)
