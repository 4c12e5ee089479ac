"""Map raw catalog records to the canonical listing shape."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Mapping

from ..config.models import DEFAULT_BASE_URL
from .dedup import SeenSet

SIZE_NOT_SPECIFIED = "Not specified"
DEFAULT_CURRENCY = "USD"
# item_box.second_line looks like "M / 38 · Very good"
DESCRIPTION_SEPARATOR = " · "


@dataclass(slots=True)
class CanonicalItem:
    """A normalised listing; two items with the same ``id`` are the same entity."""

    id: str
    title: str = ""
    brand: str = ""
    size: str = SIZE_NOT_SPECIFIED
    condition: str = ""
    price: str = ""
    total_price: str = ""
    currency: str = DEFAULT_CURRENCY
    service_fee: str = ""
    image_url: str = ""
    image_full_url: str = ""
    url: str = ""
    favorite_count: int = 0
    view_count: int = 0
    is_favorite: bool = False
    is_visible: bool = True
    is_promoted: bool = False
    content_source: str = ""
    seller_id: str = ""
    seller_username: str = ""
    seller_profile_url: str = ""
    seller_is_business: bool = False
    search_score: float | None = None
    matched_queries: list[str] = field(default_factory=list)
    page: int = 0

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class PageBatch:
    """Outcome of normalising one page of raw records."""

    page: int
    items: list[CanonicalItem] = field(default_factory=list)
    discarded: int = 0
    duplicates: int = 0
    truncated: int = 0

    def records(self) -> list[dict[str, Any]]:
        return [item.to_record() for item in self.items]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _first_text(*values: Any) -> str:
    for value in values:
        text = _text(value)
        if text:
            return text
    return ""


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _money(value: Any) -> tuple[str, str]:
    """Return ``(amount, currency)`` from a price object or a bare value."""

    if isinstance(value, Mapping):
        return _text(value.get("amount")), _text(value.get("currency_code") or value.get("currency"))
    return _text(value), ""


def _description_segments(raw: Mapping[str, Any]) -> list[str]:
    line = _text(_mapping(raw.get("item_box")).get("second_line"))
    if not line:
        return []
    return [segment.strip() for segment in line.split(DESCRIPTION_SEPARATOR.strip()) if segment.strip()]


def _first_photo(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    photo = _mapping(raw.get("photo"))
    if photo:
        return photo
    photos = raw.get("photos")
    if isinstance(photos, list) and photos:
        return _mapping(photos[0])
    return {}


def _listing_url(raw: Mapping[str, Any], item_id: str, base_url: str) -> str:
    url = _text(raw.get("url"))
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("/"):
        return f"{base_url}{url}"
    path = _text(raw.get("path"))
    if path.startswith("/"):
        return f"{base_url}{path}"
    return f"{base_url}/items/{item_id}"


def normalize_item(
    raw: Mapping[str, Any], page: int = 0, base_url: str = DEFAULT_BASE_URL
) -> CanonicalItem | None:
    """Map one raw record, or return ``None`` when it carries no usable id."""

    if not isinstance(raw, Mapping):
        return None
    item_id = _text(raw.get("id"))
    if not item_id:
        return None
    base_url = base_url.rstrip("/")

    segments = _description_segments(raw)
    size = _first_text(raw.get("size_title"), raw.get("size"), segments[0] if segments else None)
    condition = _first_text(raw.get("status"), DESCRIPTION_SEPARATOR.join(segments[1:]))

    price, price_currency = _money(raw.get("price"))
    total_price, total_currency = _money(raw.get("total_item_price"))
    service_fee, fee_currency = _money(raw.get("service_fee"))
    currency = _first_text(
        price_currency, raw.get("currency"), total_currency, fee_currency
    ) or DEFAULT_CURRENCY

    photo = _first_photo(raw)
    user = _mapping(raw.get("user"))
    tracking = _mapping(raw.get("search_tracking_params"))
    matched = tracking.get("matched_queries")

    return CanonicalItem(
        id=item_id,
        title=_text(raw.get("title")),
        brand=_first_text(
            raw.get("brand_title"), raw.get("brand"), _mapping(raw.get("item_box")).get("first_line")
        ),
        size=size or SIZE_NOT_SPECIFIED,
        condition=condition,
        price=price,
        total_price=total_price,
        currency=currency,
        service_fee=service_fee,
        image_url=_text(photo.get("url")),
        image_full_url=_text(photo.get("full_size_url")),
        url=_listing_url(raw, item_id, base_url),
        favorite_count=_as_int(raw.get("favourite_count", raw.get("favorite_count"))),
        view_count=_as_int(raw.get("view_count")),
        is_favorite=bool(raw.get("is_favourite", raw.get("is_favorite", False))),
        is_visible=bool(raw.get("is_visible", True)),
        is_promoted=bool(raw.get("promoted", raw.get("is_promoted", False))),
        content_source=_text(raw.get("content_source")),
        seller_id=_text(user.get("id")),
        seller_username=_text(user.get("login")),
        seller_profile_url=_text(user.get("profile_url")),
        seller_is_business=bool(user.get("business", False)),
        search_score=_as_float(tracking.get("score")),
        matched_queries=[_text(q) for q in matched] if isinstance(matched, list) else [],
        page=page,
    )


class ItemNormalizer:
    """Normalise, deduplicate and cap the records of one page."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL) -> None:
        self.base_url = base_url.rstrip("/")

    def process_page(
        self,
        raw_items: Iterable[Any],
        page: int,
        seen: SeenSet,
        remaining: int,
    ) -> PageBatch:
        batch = PageBatch(page=page)
        for raw in raw_items:
            item = normalize_item(raw, page=page, base_url=self.base_url)
            if item is None:
                batch.discarded += 1
                continue
            if not seen.check_and_add(item.id):
                batch.duplicates += 1
                continue
            batch.items.append(item)
        limit = max(0, remaining)
        if len(batch.items) > limit:
            batch.truncated = len(batch.items) - limit
            del batch.items[limit:]
        return batch


__all__ = [
    "CanonicalItem",
    "DEFAULT_CURRENCY",
    "ItemNormalizer",
    "PageBatch",
    "SIZE_NOT_SPECIFIED",
    "normalize_item",
]
