"""Engine components orchestrating query → session → fetch → normalise → export."""

from .context import RunContext
from .dedup import SeenSet
from .fetcher import BackoffPolicy, FetchState, PageFetcher, PageResult, classify_status
from .normalizer import CanonicalItem, ItemNormalizer, PageBatch, normalize_item
from .pager import CatalogPager, StopReason
from .query import CanonicalQuery, NormalizedQuery, normalize_query
from .session import CredentialStore, Session, SessionBootstrapper

__all__ = [
    "BackoffPolicy",
    "CanonicalItem",
    "CanonicalQuery",
    "CatalogPager",
    "CredentialStore",
    "FetchState",
    "ItemNormalizer",
    "NormalizedQuery",
    "PageBatch",
    "PageFetcher",
    "PageResult",
    "RunContext",
    "SeenSet",
    "Session",
    "SessionBootstrapper",
    "StopReason",
    "classify_status",
    "normalize_item",
    "normalize_query",
]
