"""
Catalog page definitions.

Each page picks its products (a backend query, a scope, or the wishlist),
runs them through the catalog pipeline and lays them out on its own grid
family.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple, Type

from pydantic import BaseModel

from catalog import (
    ALL,
    DenseLayout,
    FilterState,
    GridLayout,
    SortKey,
    StandardLayout,
    apply_filters,
    grid_spec,
)
from schemas import Product
from sources import CatalogSource
from store import QueryCache, WishlistStore

logger = logging.getLogger(__name__)

CATEGORIES = ("all", "clothing", "accessories", "shoes", "outerwear")
KIDS_SUBCATEGORIES = ("newborn", "baby-girl", "baby-boy", "girl", "boy", "special-occasion")
KIDS_CATEGORIES = ("all",) + KIDS_SUBCATEGORIES + ("shoes", "accessories", "outerwear")

# kids subcategory codes never belong on the woman page
WOMAN_EXCLUDES = frozenset({"MAN", "KID"} | {c.upper() for c in KIDS_SUBCATEGORIES})


@dataclass(frozen=True)
class CatalogPage:
    name: str
    title: str
    layout_type: Type[GridLayout]
    default_layout: GridLayout
    price_range: Tuple[float, float] = (0, 1000)
    categories: Tuple[str, ...] = CATEGORIES
    backend_category: Optional[str] = None
    exclude: FrozenSet[str] = field(default_factory=frozenset)
    from_wishlist: bool = False

    def filter_state(
        self,
        category: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort: Optional[str] = None,
        layout: Optional[GridLayout] = None,
    ) -> FilterState:
        lo, hi = self.price_range
        if category and category.lower() == ALL:
            category = None
        return FilterState(
            category=category or None,
            price_range=(lo if min_price is None else min_price, hi if max_price is None else max_price),
            sort=SortKey.parse(sort),
            layout=self.layout_type(layout or self.default_layout).value,
        )

    def backend_query(self, state: FilterState) -> Dict[str, str]:
        if not self.backend_category:
            return {}
        query = {
            "category": self.backend_category,
            "minPrice": f"{state.price_range[0]:g}",
            "maxPrice": f"{state.price_range[1]:g}",
            "sortBy": state.sort.value,
        }
        if state.category:
            query["subCategory"] = state.category
        return query

    def in_scope(self, product: Product) -> bool:
        return product.category.upper() not in self.exclude


PAGES: Dict[str, CatalogPage] = {
    "man": CatalogPage(
        "man", "MAN", StandardLayout, StandardLayout.FIVE, backend_category="MAN",
    ),
    "woman": CatalogPage(
        "woman", "WOMAN", StandardLayout, StandardLayout.FIVE, exclude=WOMAN_EXCLUDES,
    ),
    "kids": CatalogPage(
        "kids", "KIDS", DenseLayout, DenseLayout.TEN, price_range=(0, 500),
        categories=KIDS_CATEGORIES, exclude=frozenset({"MAN", "WOMAN"}),
    ),
    "view-all": CatalogPage("view-all", "VIEW ALL", StandardLayout, StandardLayout.THREE),
    "favorites": CatalogPage(
        "favorites", "FAVORITES", StandardLayout, StandardLayout.FIVE, from_wishlist=True,
    ),
}


class PageView(BaseModel):
    page: str
    title: str
    layout: str
    columns: int
    density: str
    item_count: int
    categories: List[str]
    filters: FilterState
    products: List[Product]


async def load_page(
    page: CatalogPage,
    state: FilterState,
    cache: QueryCache,
    source: CatalogSource,
    wishlist: WishlistStore,
) -> PageView:
    if page.from_wishlist:
        products = await wishlist.products()
    else:
        query = page.backend_query(state)
        key = ("products", page.name) + tuple(sorted(query.items()))
        products = await cache.fetch(key, lambda: source.list_products(**query))

    shown = apply_filters([p for p in products if page.in_scope(p)], state)
    grid = grid_spec(page.layout_type(state.layout))
    logger.debug("%s: %d of %d products shown", page.name, len(shown), len(products))
    return PageView(
        page=page.name,
        title=page.title,
        layout=state.layout,
        columns=grid.columns,
        density=grid.density,
        item_count=len(shown),
        categories=list(page.categories),
        filters=state,
        products=shown,
    )
