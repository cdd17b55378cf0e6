"""
Read-through cache and the cart/wishlist mutation pipeline.

Writes never patch cached data: a successful mutation invalidates the
affected cache keys and the next read fetches server truth. Same-entity
mutations are serialised per (entity type, entity id) key.
"""

import asyncio
import itertools
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel

from errors import ApiError, AuthExpiredError
from schemas import CartItem, Product
from sources import CartSource, WishlistSource

logger = logging.getLogger(__name__)

CacheKey = Tuple[Any, ...]

CART_KEY: CacheKey = ("cart", "cartItems")
FAVORITES_KEY: CacheKey = ("favorites",)


class QueryCache:
    def __init__(self):
        self._entries: Dict[CacheKey, Any] = {}

    async def fetch(self, key: CacheKey, loader: Callable[[], Awaitable[Any]]) -> Any:
        if key in self._entries:
            return self._entries[key]
        data = await loader()
        self._entries[key] = data
        return data

    def keys(self) -> List[CacheKey]:
        return list(self._entries)

    def peek(self, key: CacheKey) -> Any:
        return self._entries.get(key)

    def invalidate(self, prefix: CacheKey) -> None:
        n = len(prefix)
        for key in [k for k in self._entries if k[:n] == prefix]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()


class MutationTracker:
    """Per-entity lock plus a monotonically increasing sequence number."""

    def __init__(self):
        self._locks: Dict[CacheKey, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._latest: Dict[CacheKey, int] = {}
        self._seq = itertools.count(1)

    def begin(self, key: CacheKey) -> int:
        seq = next(self._seq)
        self._latest[key] = seq
        return seq

    def is_current(self, key: CacheKey, seq: int) -> bool:
        return self._latest.get(key) == seq

    def lock(self, key: CacheKey) -> asyncio.Lock:
        return self._locks[key]


class CartState(BaseModel):
    adding_item: Optional[str] = None
    updating_item: Optional[str] = None
    removing_item: Optional[str] = None
    clearing_cart: bool = False
    error: Optional[str] = None


class WishlistState(BaseModel):
    toggling_item: Optional[str] = None
    error: Optional[str] = None


class CartStore:
    def __init__(self, source: CartSource, cache: QueryCache, tracker: Optional[MutationTracker] = None):
        self.source = source
        self.cache = cache
        self.tracker = tracker or MutationTracker()
        self.state = CartState()

    async def items(self) -> List[CartItem]:
        return await self.cache.fetch(CART_KEY, self.source.get_cart)

    async def total(self) -> float:
        return round(sum(item.subtotal for item in await self.items()), 2)

    async def count(self) -> int:
        return sum(item.quantity for item in await self.items())

    async def _mutate(self, key: CacheKey, flag: str, value: Any, call: Callable[[], Awaitable[None]],
                      supersedable: bool = False) -> bool:
        """Run one cart write: flag it, send it, invalidate on success.

        A supersedable write that a newer same-key write has replaced while it
        waited for the lock is dropped without being sent.
        """
        seq_key = (flag,) + key
        seq = self.tracker.begin(seq_key)
        setattr(self.state, flag, value)
        self.state.error = None
        try:
            async with self.tracker.lock(key):
                if supersedable and not self.tracker.is_current(seq_key, seq):
                    return True
                await call()
            self.cache.invalidate(("cart",))
            return True
        except AuthExpiredError:
            raise
        except ApiError as e:
            logger.warning("Cart %s failed: %s", flag, e.message)
            self.state.error = e.message
            return False
        finally:
            if self.tracker.is_current(seq_key, seq) and getattr(self.state, flag) == value:
                setattr(self.state, flag, False if flag == "clearing_cart" else None)

    async def add(self, product_id: str, quantity: int = 1) -> bool:
        quantity = max(1, quantity)
        return await self._mutate(
            ("cart-item", product_id), "adding_item", product_id,
            lambda: self.source.add_to_cart(product_id, quantity),
        )

    async def remove(self, item_id: str) -> bool:
        # lines are locked by product so a remove waits behind quantity updates on
        # the same line; a line missing from the cached cart locks on its own id
        cached = self.cache.peek(CART_KEY) or []
        product_id = next((i.product_id for i in cached if i.id == item_id), item_id)
        return await self._mutate(
            ("cart-item", product_id), "removing_item", item_id,
            lambda: self.source.remove_cart_item(item_id),
        )

    async def update_quantity(self, product_id: str, quantity: int) -> bool:
        quantity = max(1, quantity)
        return await self._mutate(
            ("cart-item", product_id), "updating_item", product_id,
            lambda: self.source.update_cart_item(product_id, quantity),
            supersedable=True,
        )

    async def clear(self) -> bool:
        return await self._mutate(("cart",), "clearing_cart", True, self.source.clear_cart)


class WishlistStore:
    def __init__(self, source: WishlistSource, cache: QueryCache, tracker: Optional[MutationTracker] = None):
        self.source = source
        self.cache = cache
        self.tracker = tracker or MutationTracker()
        self.state = WishlistState()

    async def products(self) -> List[Product]:
        return await self.cache.fetch(FAVORITES_KEY, self.source.get_wishlist)

    async def contains(self, product_id: str) -> bool:
        return any(p.id == product_id for p in await self.products())

    async def toggle(self, product_id: str) -> Optional[bool]:
        """Flip membership; returns the new membership, None on failure.

        Membership is read from the cached wishlist, not confirmed by the
        backend, so toggles from another device can still interleave.
        """
        key = ("wishlist-entry", product_id)
        seq = self.tracker.begin(key)
        self.state.toggling_item = product_id
        self.state.error = None
        try:
            async with self.tracker.lock(key):
                if await self.contains(product_id):
                    await self.source.remove_from_wishlist(product_id)
                    member = False
                else:
                    await self.source.add_to_wishlist(product_id)
                    member = True
                self.cache.invalidate(FAVORITES_KEY)
            return member
        except AuthExpiredError:
            raise
        except ApiError as e:
            logger.warning("Wishlist toggle for %s failed: %s", product_id, e.message)
            self.state.error = e.message
            return None
        finally:
            if self.tracker.is_current(key, seq) and self.state.toggling_item == product_id:
                self.state.toggling_item = None
