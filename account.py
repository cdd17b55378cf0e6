"""
Tabbed profile area: my profile, my orders, settings, and for admins the
user list and product creation.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field

from errors import ApiError, AuthExpiredError, FormValidationError
from forms import ChangePasswordForm, ProductForm, ProfileForm, validate_form
from schemas import Order, User
from session import SessionContext
from sources import StorefrontSource
from store import QueryCache

logger = logging.getLogger(__name__)

PROFILE_KEY = ("user-profile",)
ORDERS_KEY = ("orders",)
USERS_KEY = ("all-users",)


class Tab(NamedTuple):
    id: str
    label: str


USER_TABS: Tuple[Tab, ...] = (
    Tab("profile", "MY PROFILE"),
    Tab("orders", "MY ORDERS"),
    Tab("settings", "SETTINGS"),
)
ADMIN_TABS: Tuple[Tab, ...] = USER_TABS + (
    Tab("users", "MANAGE USERS"),
    Tab("products", "PRODUCTS"),
)


def tabs_for(user: Optional[User]) -> Tuple[Tab, ...]:
    return ADMIN_TABS if user is not None and user.is_admin else USER_TABS


class SectionState(BaseModel):
    """What a profile section shows next to its submit button."""
    pending: Optional[str] = None
    success: Optional[str] = None
    error: Optional[str] = None
    field_errors: Dict[str, str] = Field(default_factory=dict)


class ProfileService:
    def __init__(self, source: StorefrontSource, cache: QueryCache, session: SessionContext):
        self.source = source
        self.cache = cache
        self.session = session
        self.sections: Dict[str, SectionState] = {
            "profile": SectionState(),
            "settings": SectionState(),
            "products": SectionState(),
        }

    async def profile(self) -> User:
        return await self.cache.fetch(PROFILE_KEY, self.source.get_profile)

    async def tabs(self) -> Tuple[Tab, ...]:
        return tabs_for(await self.profile())

    async def orders(self) -> List[Order]:
        return await self.cache.fetch(ORDERS_KEY, self.source.list_orders)

    async def _require_admin(self) -> None:
        if not (await self.profile()).is_admin:
            raise ApiError(403, "Admin access required")

    async def users(self) -> List[User]:
        await self._require_admin()
        return await self.cache.fetch(USERS_KEY, self.source.list_users)

    async def section(self, tab: str) -> Any:
        if tab not in {t.id for t in await self.tabs()}:
            raise ApiError(403, f"Tab {tab!r} is not available")
        if tab == "profile":
            return await self.profile()
        if tab == "orders":
            return await self.orders()
        if tab == "users":
            return await self.users()
        return self.sections[tab]

    async def _run(self, name: str, form, data: Dict[str, Any], loading: str, success: str, failure: str,
                   send: Callable[[Any], Awaitable[None]]) -> bool:
        state = self.sections[name] = SectionState()
        try:
            validated = validate_form(form, data)
        except FormValidationError as e:
            state.field_errors = e.errors
            return False
        state.pending = loading
        try:
            await send(validated)
            state.success = success
            return True
        except AuthExpiredError:
            raise
        except ApiError as e:
            logger.warning("%s: %s", failure, e.message)
            state.error = failure
            state.field_errors = e.field_errors
            return False
        finally:
            state.pending = None

    async def update_profile(self, data: Dict[str, Any]) -> bool:
        async def send(form: ProfileForm) -> None:
            user = await self.source.update_profile(form)
            self.cache.invalidate(PROFILE_KEY)
            if self.session.is_authenticated:
                self.session.set_user(user)

        return await self._run(
            "profile", ProfileForm, data, "UPDATING...",
            "Profile updated successfully", "Failed to update profile", send,
        )

    async def change_password(self, data: Dict[str, Any]) -> bool:
        async def send(form: ChangePasswordForm) -> None:
            await self.source.change_password(form.current_password, form.new_password)

        return await self._run(
            "settings", ChangePasswordForm, data, "UPDATING...",
            "Password updated successfully", "Failed to update password", send,
        )

    async def create_product(self, data: Dict[str, Any]) -> bool:
        await self._require_admin()

        async def send(form: ProductForm) -> None:
            await self.source.create_product(form)
            self.cache.invalidate(("products",))

        return await self._run(
            "products", ProductForm, data, "CREATING...",
            "Product created successfully", "Failed to create product", send,
        )
