#!/usr/bin/env python3
import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path

# Allow running without installing the package
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from readit_scraper.cache import EnrichmentCache  # noqa: E402
from readit_scraper.comments import BodyOptions  # noqa: E402
from readit_scraper.config import (  # noqa: E402
    ENRICH_CONCURRENCY,
    ENRICH_MAX_ATTEMPTS,
    ENRICH_TIMEOUT,
    SHOW_ORIGINAL_URL,
)
from readit_scraper.enrichment import EnrichmentPipeline  # noqa: E402
from readit_scraper.errors import ScraperError  # noqa: E402
from readit_scraper.fetcher import BoundedFetcher  # noqa: E402
from readit_scraper.models import SortOption  # noqa: E402
from readit_scraper.scraper import RedditScraper  # noqa: E402


def parse_args():
    p = argparse.ArgumentParser(
        description="Scrape an old.reddit comment thread into JSON (optionally enrich comments into cards)."
    )
    p.add_argument("url", type=str, help="Comment thread URL (absolute or /r/... permalink).")
    p.add_argument(
        "--sort",
        type=str,
        default="",
        help="Comment sort: best,top,new,controversial,old,qa.",
    )
    p.add_argument("--enrich", action="store_true", help="Fetch post title/author for every comment link.")
    p.add_argument("--concurrency", type=int, default=ENRICH_CONCURRENCY, help="Max concurrent enrichment fetches.")
    p.add_argument("--timeout", type=float, default=ENRICH_TIMEOUT, help="Per-attempt enrichment timeout (seconds).")
    p.add_argument("--attempts", type=int, default=ENRICH_MAX_ATTEMPTS, help="Attempts per record before giving up.")
    p.add_argument(
        "--show-original-url",
        action="store_true",
        default=SHOW_ORIGINAL_URL,
        help="Keep the original text of external links instead of the host name.",
    )
    p.add_argument("--output", type=str, default="", help="Write JSON here instead of stdout.")
    return p.parse_args()


def _card_row(card) -> dict:
    return {
        "id": card.id,
        "title": card.title,
        "author": card.author,
        "resource_key": card.resource_key,
        "time": card.time,
        "link": card.record.link,
    }


async def main():
    args = parse_args()

    def log(msg: str, level: str = "info"):
        prefix = {"info": "[*]", "success": "[+]", "warning": "[!]", "error": "[x]"}.get(level, "[*]")
        print(f"{prefix} {msg}", file=sys.stderr)

    sort = SortOption.from_name(args.sort) if args.sort else None
    scraper = RedditScraper(log_callback=log, body=BodyOptions(show_original_url=args.show_original_url))

    try:
        try:
            comments, post_body = await scraper.scrape_comments(args.url, sort=sort)
        except ScraperError as e:
            log(f"could not load thread: {e}", "error")
            raise SystemExit(1)

        payload = {
            "url": args.url,
            "sort": sort.query_value if sort else None,
            "post_body": post_body,
            "comments": [asdict(c) for c in comments],
        }
        log(f"comments = {len(comments)}", "success")

        if args.enrich:
            fetcher = BoundedFetcher(
                scraper.fetch_post_info,
                cache=EnrichmentCache(),
                concurrency=args.concurrency,
                timeout=args.timeout,
                max_attempts=args.attempts,
                log_callback=log,
            )
            batch = await EnrichmentPipeline(fetcher, log_callback=log).load_cards(comments)
            payload["cards"] = [_card_row(c) for c in batch.cards]
            payload["enrichment"] = {"requested": batch.requested, "enriched": batch.enriched}
            if batch.degraded:
                log(f"only {batch.enriched}/{batch.requested} comments could be enriched", "warning")

        text = json.dumps(payload, ensure_ascii=False, indent=2)
        if args.output:
            out = Path(args.output)
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(text, encoding="utf-8")
            log(f"wrote {out}", "success")
        else:
            print(text)
    finally:
        await scraper.close()


if __name__ == "__main__":
    asyncio.run(main())
