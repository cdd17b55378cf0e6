import logging
from typing import Optional

import httpx

from account import ProfileService
from auth import AuthService
from client import ApiClient
from config import Settings
from session import SessionContext
from sources import StorefrontSource, build_source
from store import CartStore, MutationTracker, QueryCache, WishlistStore

logger = logging.getLogger(__name__)


class Storefront:
    """One signed-in storefront: session, backend client, caches and stores."""

    def __init__(
        self,
        settings: Settings,
        source: Optional[StorefrontSource] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.session = SessionContext(settings.session_file)
        self.client = ApiClient(settings.api_url, self.session, timeout=settings.timeout, transport=transport)
        self.source = source or build_source(settings, self.client)
        self.cache = QueryCache()
        tracker = MutationTracker()
        self.cart = CartStore(self.source, self.cache, tracker)
        self.wishlist = WishlistStore(self.source, self.cache, tracker)
        self.auth = AuthService(self.client, self.session)
        self.account = ProfileService(self.source, self.cache, self.session)

    @property
    def can_use_wishlist(self) -> bool:
        return not self.settings.is_remote or self.session.is_authenticated

    def open(self) -> None:
        self.session.load()
        logger.info("Storefront ready (source=%s, api=%s)", self.settings.data_source, self.settings.api_url)

    def logout(self) -> None:
        self.auth.logout()
        self.cache.clear()

    async def aclose(self) -> None:
        self.session.close()
        await self.client.aclose()
