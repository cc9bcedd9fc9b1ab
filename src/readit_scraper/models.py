from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union


SCORE_HIDDEN = "[score hidden]"


class PostType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    GALLERY = "gallery"
    ARTICLE = "article"


class SortOption(Enum):
    """Comment sort orders understood by reddit's ``sort`` query parameter."""

    BEST = "confidence"
    TOP = "top"
    NEW = "new"
    CONTROVERSIAL = "controversial"
    OLD = "old"
    QA = "qa"

    @property
    def query_value(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "SortOption":
        key = (name or "").strip().lower()
        for opt in cls:
            if opt.name.lower() == key or opt.value == key:
                return opt
        raise ValueError(f"unknown sort option: {name!r}")


@dataclass
class Comment:
    id: str
    parent_id: Optional[str]
    author: str
    score_text: str
    time_raw: str
    body: str
    depth: int
    stickied: bool
    direct_url: str
    is_collapsed: bool = False
    is_root_collapsed: bool = False

    @classmethod
    def create(cls, **kwargs) -> "Comment":
        """Build a comment whose root-collapsed flag follows ``stickied``."""
        kwargs.setdefault("is_root_collapsed", bool(kwargs.get("stickied", False)))
        return cls(**kwargs)

    @property
    def key(self) -> str:
        return self.id

    @property
    def link(self) -> str:
        return self.direct_url


@dataclass
class Post:
    id: str
    subreddit: str
    title: str
    tag: str
    author: str
    votes: str
    time: str
    media_url: str
    comments_url: str
    comments_count: str
    type: PostType
    thumbnail_url: Optional[str] = None

    @property
    def key(self) -> str:
        return self.id

    @property
    def link(self) -> str:
        return self.comments_url

    @property
    def time_raw(self) -> str:
        return self.time


@dataclass
class MixedItem:
    """A profile feed entry: either a post or a comment, with its parsed date."""

    kind: str
    item: Union[Post, Comment]
    date: Optional[datetime] = None

    @classmethod
    def of_post(cls, post: Post, date: Optional[datetime]) -> "MixedItem":
        return cls(kind="post", item=post, date=date)

    @classmethod
    def of_comment(cls, comment: Comment, date: Optional[datetime]) -> "MixedItem":
        return cls(kind="comment", item=comment, date=date)

    @property
    def key(self) -> str:
        return self.item.key

    @property
    def link(self) -> str:
        return self.item.link

    @property
    def time_raw(self) -> str:
        return self.item.time_raw


Record = Union[Comment, Post, MixedItem]


@dataclass(frozen=True)
class PostInfo:
    title: str
    author: str


@dataclass(frozen=True)
class EnrichmentResult:
    key: str
    title: str
    author: str


@dataclass
class Card:
    id: str
    title: str
    author: str
    record: Record
    resource_key: str
    time: float = 0.0


@dataclass(frozen=True)
class FetchSuccess:
    info: PostInfo
    attempts: int
    from_cache: bool = False

    ok = True


@dataclass(frozen=True)
class FetchFailure:
    error: Exception
    attempts: int

    ok = False


FetchOutcome = Union[FetchSuccess, FetchFailure]


@dataclass
class BatchResult:
    """Settled outcome of one enrichment batch, keyed by record key."""

    outcomes: Dict[str, FetchOutcome] = field(default_factory=dict)
    requested: int = 0

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes.values() if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes.values() if not o.ok)

    @property
    def results(self) -> List[EnrichmentResult]:
        out: List[EnrichmentResult] = []
        for key, outcome in self.outcomes.items():
            if isinstance(outcome, FetchSuccess):
                out.append(EnrichmentResult(key=key, title=outcome.info.title, author=outcome.info.author))
        return out

    @property
    def failures(self) -> Dict[str, FetchFailure]:
        return {k: o for k, o in self.outcomes.items() if isinstance(o, FetchFailure)}


@dataclass
class CardBatch:
    cards: List[Card]
    requested: int
    enriched: int

    @property
    def degraded(self) -> bool:
        return self.enriched < self.requested
