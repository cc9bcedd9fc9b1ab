from typing import Iterable, List

from .cards import aggregate
from .fetcher import BoundedFetcher
from .models import CardBatch, Record


class EnrichmentPipeline:
    """Fetch title/author for a batch of records and fold them into cards.

    Every call is an independent pass: cards from an earlier call are never
    merged into a later one. The returned CardBatch carries how many records
    went in and how many were enriched so callers can report partial results.
    """

    def __init__(self, fetcher: BoundedFetcher, log_callback=None):
        self.fetcher = fetcher
        self._log = log_callback or (lambda msg, lvl="info": None)

    async def load_cards(self, records: Iterable[Record]) -> CardBatch:
        records: List[Record] = list(records)
        batch = await self.fetcher.fetch_all(records)
        cards = aggregate(records, batch.results)
        out = CardBatch(cards=cards, requested=batch.requested, enriched=batch.succeeded)
        self._log(
            f"cards: records={out.requested} enriched={out.enriched} cards={len(cards)}",
            "warning" if out.degraded else "success",
        )
        return out
