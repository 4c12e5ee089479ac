"""Turn user filters into the canonical, pagination-free catalog query."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import NamedTuple
from urllib.parse import parse_qsl, urlencode, urlsplit

from ..config.models import DEFAULT_BASE_URL

CATEGORY_SLUGS = {
    "women": "1904-women",
    "men": "5-men",
    "kids": "47-kids",
    "home": "2000-home",
}
DEFAULT_CATEGORY_SLUG = CATEGORY_SLUGS["women"]
DEFAULT_CATALOG_ID = "1904"
DEFAULT_ORDER = "newest_first"

CATALOG_PARAM = "catalog_ids[]"
# Browser URLs and older API clients spell the catalog filter several ways.
CATALOG_ALIASES = frozenset({"catalog[]", "catalog_ids[]", "catalog_ids", "catalog_id", "catalog"})
PAGINATION_PARAMS = frozenset({"page", "per_page"})
PRIMARY_PARAMS = ("search_text", "price_from", "price_to", "order")

_SLUG_PATTERN = re.compile(r"^\d+(?:-[a-z0-9-]+)?$")
_CATALOG_PATH = re.compile(r"/catalog/(\d+)")


@dataclass(frozen=True, slots=True)
class CanonicalQuery:
    """Alias-merged filter set reused by every page request of a run."""

    catalog_ids: tuple[str, ...]
    params: tuple[tuple[str, str], ...] = ()

    def get(self, name: str) -> str | None:
        for key, value in self.params:
            if key == name:
                return value
        return None

    @property
    def keyword(self) -> str:
        return self.get("search_text") or ""

    @property
    def min_price(self) -> str | None:
        return self.get("price_from")

    @property
    def max_price(self) -> str | None:
        return self.get("price_to")

    def pairs(self) -> tuple[tuple[str, str], ...]:
        return tuple((CATALOG_PARAM, catalog_id) for catalog_id in self.catalog_ids) + self.params

    def to_query_string(self, page: int, per_page: int) -> str:
        """Render the API query string for one page.

        The catalog endpoint expects array parameters with literal brackets.
        """

        parts = list(self.pairs())
        parts.append(("page", str(page)))
        parts.append(("per_page", str(per_page)))
        return urlencode(parts).replace("%5B%5D", "[]")


class NormalizedQuery(NamedTuple):
    query: CanonicalQuery
    initial_url: str


def _format_price(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def resolve_category_slug(category: str | None) -> str:
    """Map a logical category name (or explicit slug/id) to a catalog slug."""

    name = (category or "").strip().lower()
    if name in CATEGORY_SLUGS:
        return CATEGORY_SLUGS[name]
    if _SLUG_PATTERN.match(name):
        return name
    return DEFAULT_CATEGORY_SLUG


def build_initial_url(
    keyword: str = "",
    category: str | None = "women",
    min_price: float | None = None,
    max_price: float | None = None,
    base_url: str = DEFAULT_BASE_URL,
) -> str:
    slug = resolve_category_slug(category)
    params: list[tuple[str, str]] = []
    if keyword and keyword.strip():
        params.append(("search_text", keyword.strip()))
    if min_price is not None:
        params.append(("price_from", _format_price(min_price)))
    if max_price is not None:
        params.append(("price_to", _format_price(max_price)))
    url = f"{base_url.rstrip('/')}/catalog/{slug}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def normalize_query(
    start_url: str | None = None,
    keyword: str = "",
    category: str | None = "women",
    min_price: float | None = None,
    max_price: float | None = None,
    base_url: str = DEFAULT_BASE_URL,
) -> NormalizedQuery:
    """Build the canonical query and the initial (bootstrap/referer) URL.

    A ``start_url`` overrides every derived field: it is used verbatim and its
    own query parameters become the filter set.
    """

    initial_url = start_url or build_initial_url(keyword, category, min_price, max_price, base_url)
    parts = urlsplit(initial_url)

    catalog_ids: list[str] = []
    primary: dict[str, str] = {}
    passthrough: list[tuple[str, str]] = []
    for key, raw_value in parse_qsl(parts.query, keep_blank_values=True):
        value = raw_value.strip()
        if not value or key in PAGINATION_PARAMS:
            continue
        if key in CATALOG_ALIASES:
            if value not in catalog_ids:
                catalog_ids.append(value)
        elif key in PRIMARY_PARAMS:
            primary.setdefault(key, value)
        elif (key, value) not in passthrough:
            passthrough.append((key, value))

    if not catalog_ids:
        match = _CATALOG_PATH.search(parts.path)
        catalog_ids.append(match.group(1) if match else DEFAULT_CATALOG_ID)
    primary.setdefault("order", DEFAULT_ORDER)

    params = tuple((key, primary[key]) for key in PRIMARY_PARAMS if key in primary)
    query = CanonicalQuery(catalog_ids=tuple(catalog_ids), params=params + tuple(passthrough))
    return NormalizedQuery(query=query, initial_url=initial_url)


__all__ = [
    "CATEGORY_SLUGS",
    "CanonicalQuery",
    "NormalizedQuery",
    "build_initial_url",
    "normalize_query",
    "resolve_category_slug",
]
