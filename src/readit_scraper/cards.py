from datetime import datetime
from typing import Dict, Iterable, List

from .models import Card, EnrichmentResult, Record
from .urls import resource_key


def record_timestamp(record: Record) -> float:
    """Numeric time of a record: epoch seconds, or an ISO-8601 date, else 0."""
    raw = (record.time_raw or "").strip()
    if not raw:
        return 0.0
    try:
        return float(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def aggregate(records: Iterable[Record], results: Iterable[EnrichmentResult]) -> List[Card]:
    """Turn enrichment results into one card per post, newest first.

    Cards whose links share a resource key collapse into the one with the
    greatest time; on equal times the record listed first wins. The
    reduction runs over the complete result set, so the output does not
    depend on the order fetches finished in.
    """
    by_key = {r.key: r for r in results}

    best: Dict[str, Card] = {}
    for record in records:
        result = by_key.get(record.key)
        if result is None:
            continue
        group = resource_key(record.link)
        card = Card(
            id=record.key,
            title=result.title,
            author=result.author,
            record=record,
            resource_key=group,
            time=record_timestamp(record),
        )
        current = best.get(group)
        if current is None or card.time > current.time:
            best[group] = card

    return sorted(best.values(), key=lambda c: c.time, reverse=True)
