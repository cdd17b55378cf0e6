"""
Catalog pipeline: category filter -> price filter -> sort -> grid layout.

All stages are pure functions over lists of Product and never mutate their
input.
"""

import unicodedata
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, Field

from schemas import Product

ALL = "all"

# UI category -> backend category codes. Tokens missing from the table match
# by equality (a singleton group).
CATEGORY_GROUPS: Dict[str, FrozenSet[str]] = {
    "clothing": frozenset({"MAN", "WOMAN"}),
    "shirts": frozenset({"MAN", "WOMAN"}),
    "jeans": frozenset({"MAN", "WOMAN"}),
    "accessories": frozenset({"ACCESSORIES"}),
    "shoes": frozenset({"SHOES"}),
    "outerwear": frozenset({"OUTERWEAR"}),
}


def category_codes(category: Optional[str]) -> Optional[FrozenSet[str]]:
    """Backend codes a UI category stands for; None means no filtering."""
    if not category or category.lower() == ALL:
        return None
    return CATEGORY_GROUPS.get(category.lower(), frozenset({category}))


def filter_by_category(products: Iterable[Product], category: Optional[str]) -> List[Product]:
    codes = category_codes(category)
    if codes is None:
        return list(products)
    return [p for p in products if p.category in codes]


def filter_by_price(products: Iterable[Product], price_range: Tuple[float, float]) -> List[Product]:
    # min > max is not rejected; nothing can satisfy it so the result is empty
    lo, hi = price_range
    return [p for p in products if lo <= p.price <= hi]


class SortKey(str, Enum):
    NEWEST = "newest"
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    NAME_ASC = "name-asc"

    @classmethod
    def parse(cls, value: Union[str, "SortKey", None]) -> "SortKey":
        try:
            return cls(value)
        except ValueError:
            return cls.NEWEST


_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def _name_key(p: Product) -> Tuple[str, str]:
    # accents fold onto their base letter so "Élan" sorts with the E names
    decomposed = unicodedata.normalize("NFKD", p.name)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return base.casefold(), p.name


def sort_products(products: Iterable[Product], sort: Union[str, SortKey, None]) -> List[Product]:
    key = SortKey.parse(sort)
    items = list(products)
    if key is SortKey.PRICE_ASC:
        return sorted(items, key=lambda p: p.price)
    if key is SortKey.PRICE_DESC:
        return sorted(items, key=lambda p: p.price, reverse=True)
    if key is SortKey.NAME_ASC:
        return sorted(items, key=_name_key)
    # reverse=True keeps ties in input order
    return sorted(items, key=lambda p: p.created_at or _NEVER, reverse=True)


class StandardLayout(str, Enum):
    """Layouts offered by the man/woman/view-all/favorites pages."""
    TWO = "2x2"
    THREE = "3x3"
    FIVE = "5x5"


class DenseLayout(str, Enum):
    """Layouts offered by the kids page."""
    TWO = "2x2"
    SIX = "6x6"
    TEN = "10x10"


GridLayout = Union[StandardLayout, DenseLayout]


class GridSpec(NamedTuple):
    columns: int
    density: str


def grid_spec(layout: GridLayout) -> GridSpec:
    if not isinstance(layout, (StandardLayout, DenseLayout)):
        raise TypeError(f"Expected a page layout, got {layout!r}")
    columns = int(layout.value.split("x", 1)[0])
    if columns <= 2:
        density = "detailed"
    elif columns <= 3:
        density = "regular"
    elif columns <= 6:
        density = "compact"
    else:
        density = "thumbnail"
    return GridSpec(columns, density)


class FilterState(BaseModel):
    category: Optional[str] = None
    price_range: Tuple[float, float] = (0, 1000)
    sort: SortKey = SortKey.NEWEST
    layout: str = Field(StandardLayout.FIVE.value, description="Layout token of the page's family")


def apply_filters(products: Iterable[Product], state: FilterState) -> List[Product]:
    filtered = filter_by_category(products, state.category)
    filtered = filter_by_price(filtered, state.price_range)
    return sort_products(filtered, state.sort)
