import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from account import SectionState
from auth import AuthState
from config import load_settings
from errors import ApiError, AuthExpiredError, FormValidationError, NotFoundError
from pages import PAGES, CatalogPage, load_page
from schemas import CartRequest, OrderRequest
from storefront import Storefront

logger = logging.getLogger(__name__)

_storefront: Optional[Storefront] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _storefront
    _storefront = Storefront(load_settings())
    _storefront.open()
    try:
        yield
    finally:
        await _storefront.aclose()
        _storefront = None


app = FastAPI(title="Fashion Storefront", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_storefront() -> Storefront:
    if _storefront is None:
        raise HTTPException(status_code=503, detail="Storefront not initialised")
    return _storefront


# Error mapping

@app.exception_handler(AuthExpiredError)
async def auth_expired_handler(request, exc: AuthExpiredError):
    if _storefront is not None:
        _storefront.cache.clear()
    return JSONResponse(status_code=401, content={"detail": exc.message, "redirect": "/auth/login"})


@app.exception_handler(NotFoundError)
async def not_found_handler(request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(ApiError)
async def api_error_handler(request, exc: ApiError):
    status = exc.status_code if 400 <= exc.status_code < 600 else 502
    return JSONResponse(status_code=status, content={"detail": exc.message, "errors": exc.field_errors})


@app.exception_handler(FormValidationError)
async def form_error_handler(request, exc: FormValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.first(), "errors": exc.errors})


def _auth_response(ok: bool, state: AuthState) -> JSONResponse:
    return JSONResponse(status_code=200 if ok else 400, content=state.model_dump())


def _section_response(ok: bool, state: SectionState) -> JSONResponse:
    if ok:
        status = 200
    elif state.field_errors and not state.error:
        status = 422
    else:
        status = 400
    return JSONResponse(status_code=status, content=state.model_dump())


# Health

@app.get("/")
def read_root():
    return {"message": "Fashion Storefront running"}


@app.get("/test")
def test_storefront(sf: Storefront = Depends(get_storefront)):
    response = {
        "storefront": "✅ Running",
        "data_source": sf.settings.data_source,
        "api_url": "✅ Set" if os.getenv("STOREFRONT_API_URL") else "⚠️  Using default",
        "session": "✅ Signed in" if sf.session.is_authenticated else "❌ Signed out",
        "pending_verification": sf.session.verification_email,
        "cached_queries": [list(map(str, k)) for k in sf.cache.keys()][:10],
    }
    return response


# Catalog pages

def _register_page(page: CatalogPage) -> None:
    layout_type = page.layout_type

    async def view(
        category: Optional[str] = None,
        min_price: Optional[float] = Query(None, ge=0),
        max_price: Optional[float] = Query(None, ge=0),
        sort: Optional[str] = None,
        layout: Optional[layout_type] = None,
        sf: Storefront = Depends(get_storefront),
    ):
        state = page.filter_state(category, min_price, max_price, sort, layout.value if layout else None)
        try:
            result = await load_page(page, state, sf.cache, sf.source, sf.wishlist)
        except (AuthExpiredError, NotFoundError):
            raise
        except ApiError as e:
            logger.error("Failed to fetch products for %s: %s", page.name, e.message)
            raise ApiError(e.status_code, "Failed to load products. Please try again later.")
        return result.model_dump(mode="json", by_alias=True)

    view.__name__ = f"{page.name.replace('-', '_')}_page"
    app.get(f"/{page.name}")(view)


for _page in PAGES.values():
    _register_page(_page)


# Products

@app.get("/products/{product_id}")
async def get_product(product_id: str, sf: Storefront = Depends(get_storefront)):
    product = await sf.cache.fetch(("product", product_id), lambda: sf.source.get_product(product_id))
    is_favorite = await sf.wishlist.contains(product_id) if sf.can_use_wishlist else None
    return {"product": product.to_json(), "isFavorite": is_favorite}


@app.post("/products")
async def create_product(payload: Dict[str, Any] = Body(...), sf: Storefront = Depends(get_storefront)):
    ok = await sf.account.create_product(payload)
    return _section_response(ok, sf.account.sections["products"])


# Cart

async def _cart_view(sf: Storefront) -> dict:
    items = await sf.cart.items()
    return {
        "items": [i.to_json() for i in items],
        "count": await sf.cart.count(),
        "total": await sf.cart.total(),
        "state": sf.cart.state.model_dump(),
    }


def _cart_failed(sf: Storefront):
    raise HTTPException(status_code=400, detail=sf.cart.state.error or "Cart update failed")


@app.get("/cart")
async def get_cart(sf: Storefront = Depends(get_storefront)):
    return await _cart_view(sf)


@app.post("/cart")
async def add_to_cart(payload: CartRequest, sf: Storefront = Depends(get_storefront)):
    if not await sf.cart.add(payload.product_id, payload.quantity):
        _cart_failed(sf)
    return await _cart_view(sf)


@app.put("/cart")
async def update_cart_item(payload: CartRequest, sf: Storefront = Depends(get_storefront)):
    if not await sf.cart.update_quantity(payload.product_id, payload.quantity):
        _cart_failed(sf)
    return await _cart_view(sf)


@app.delete("/cart/clear")
async def clear_cart(sf: Storefront = Depends(get_storefront)):
    if not await sf.cart.clear():
        _cart_failed(sf)
    return await _cart_view(sf)


@app.delete("/cart/{item_id}")
async def remove_cart_item(item_id: str, sf: Storefront = Depends(get_storefront)):
    if not await sf.cart.remove(item_id):
        _cart_failed(sf)
    return await _cart_view(sf)


# Wishlist

@app.get("/wishlist")
async def get_wishlist(sf: Storefront = Depends(get_storefront)):
    products = await sf.wishlist.products()
    return {"products": [p.to_json() for p in products], "state": sf.wishlist.state.model_dump()}


@app.post("/wishlist/{product_id}/toggle")
async def toggle_wishlist(product_id: str, sf: Storefront = Depends(get_storefront)):
    member = await sf.wishlist.toggle(product_id)
    if member is None:
        raise HTTPException(status_code=400, detail=sf.wishlist.state.error or "Wishlist update failed")
    return {"productId": product_id, "isFavorite": member}


# Auth

@app.post("/auth/register")
async def register(payload: Dict[str, Any] = Body(...), sf: Storefront = Depends(get_storefront)):
    return _auth_response(await sf.auth.register(payload), sf.auth.state)


@app.post("/auth/login")
async def login(payload: Dict[str, Any] = Body(...), sf: Storefront = Depends(get_storefront)):
    ok = await sf.auth.login(payload)
    if ok:
        sf.cache.clear()
    return _auth_response(ok, sf.auth.state)


@app.post("/auth/verify-email")
async def verify_email(payload: Dict[str, Any] = Body(...), sf: Storefront = Depends(get_storefront)):
    ok = await sf.auth.verify_email(str(payload.get("otp") or ""), payload.get("email"))
    return _auth_response(ok, sf.auth.state)


@app.post("/auth/resend-otp")
async def resend_otp(payload: Optional[Dict[str, Any]] = Body(None), sf: Storefront = Depends(get_storefront)):
    ok = await sf.auth.resend_otp((payload or {}).get("email"))
    return _auth_response(ok, sf.auth.state)


@app.post("/auth/forgot-password")
async def forgot_password(payload: Dict[str, Any] = Body(...), sf: Storefront = Depends(get_storefront)):
    return _auth_response(await sf.auth.forgot_password(payload), sf.auth.state)


@app.post("/auth/reset-password/{token}")
async def reset_password(token: str, payload: Dict[str, Any] = Body(...), sf: Storefront = Depends(get_storefront)):
    return _auth_response(await sf.auth.reset_password(token, payload), sf.auth.state)


@app.post("/auth/logout")
def logout(sf: Storefront = Depends(get_storefront)):
    sf.logout()
    return sf.auth.state.model_dump()


# Profile

@app.get("/profile")
async def get_profile(sf: Storefront = Depends(get_storefront)):
    user = await sf.account.profile()
    tabs = await sf.account.tabs()
    return {"user": user.to_json(), "tabs": [t._asdict() for t in tabs]}


@app.get("/profile/{tab}")
async def get_profile_tab(tab: str, sf: Storefront = Depends(get_storefront)):
    data = await sf.account.section(tab)
    if isinstance(data, list):
        return {"tab": tab, "items": [d.to_json() for d in data]}
    if isinstance(data, SectionState):
        return {"tab": tab, "state": data.model_dump()}
    return {"tab": tab, "user": data.to_json()}


@app.put("/profile")
async def update_profile(payload: Dict[str, Any] = Body(...), sf: Storefront = Depends(get_storefront)):
    ok = await sf.account.update_profile(payload)
    return _section_response(ok, sf.account.sections["profile"])


@app.put("/profile/password")
async def change_password(payload: Dict[str, Any] = Body(...), sf: Storefront = Depends(get_storefront)):
    ok = await sf.account.change_password(payload)
    return _section_response(ok, sf.account.sections["settings"])


# Orders

@app.get("/orders")
async def list_orders(sf: Storefront = Depends(get_storefront)):
    return [o.to_json() for o in await sf.account.orders()]


@app.get("/orders/{order_id}")
async def get_order(order_id: str, sf: Storefront = Depends(get_storefront)):
    order = await sf.cache.fetch(("orders", order_id), lambda: sf.source.get_order(order_id))
    return order.to_json()


@app.post("/orders")
async def create_order(payload: OrderRequest, sf: Storefront = Depends(get_storefront)):
    order = await sf.source.create_order(payload)
    sf.cache.invalidate(("orders",))
    return order.to_json()


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=load_settings().log_level)
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
