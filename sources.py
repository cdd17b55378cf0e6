"""
Data sources for the storefront.

Pages and stores only talk to the capability interfaces below. There are two
implementations: RemoteSource (the REST backend) and MemorySource (a fixture
catalog for demos and tests). Which one is used is decided by configuration.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId

from client import ApiClient
from errors import ApiError, NotFoundError
from forms import ProductForm, ProfileForm
from schemas import CartItem, Order, OrderRequest, Product, User

logger = logging.getLogger(__name__)


class CatalogSource(ABC):
    @abstractmethod
    async def list_products(self, **query) -> List[Product]:
        """Products, optionally narrowed by backend query params
        (category, subCategory, minPrice, maxPrice, sortBy)."""

    @abstractmethod
    async def get_product(self, product_id: str) -> Product:
        """Raises NotFoundError when the product does not exist."""

    @abstractmethod
    async def create_product(self, form: ProductForm) -> Product:
        pass


class CartSource(ABC):
    @abstractmethod
    async def get_cart(self) -> List[CartItem]:
        pass

    @abstractmethod
    async def add_to_cart(self, product_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def update_cart_item(self, product_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def remove_cart_item(self, item_id: str) -> None:
        pass

    @abstractmethod
    async def clear_cart(self) -> None:
        pass


class WishlistSource(ABC):
    @abstractmethod
    async def get_wishlist(self) -> List[Product]:
        pass

    @abstractmethod
    async def add_to_wishlist(self, product_id: str) -> None:
        pass

    @abstractmethod
    async def remove_from_wishlist(self, product_id: str) -> None:
        pass


class OrderSource(ABC):
    @abstractmethod
    async def list_orders(self) -> List[Order]:
        pass

    @abstractmethod
    async def get_order(self, order_id: str) -> Order:
        pass

    @abstractmethod
    async def create_order(self, request: OrderRequest) -> Order:
        pass


class AccountSource(ABC):
    @abstractmethod
    async def get_profile(self) -> User:
        pass

    @abstractmethod
    async def update_profile(self, form: ProfileForm) -> User:
        pass

    @abstractmethod
    async def change_password(self, current_password: str, new_password: str) -> None:
        pass

    @abstractmethod
    async def list_users(self) -> List[User]:
        pass


class StorefrontSource(CatalogSource, CartSource, WishlistSource, OrderSource, AccountSource):
    """Everything a storefront page can ask for."""


# Remote

def _unwrap(body: Any, *path: str, default: Any = None) -> Any:
    """Walk the backend's {"data": {...}} envelope."""
    node = body
    for key in ("data",) + path:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node if node is not None else default


class RemoteSource(StorefrontSource):
    def __init__(self, client: ApiClient):
        self.client = client

    async def list_products(self, **query) -> List[Product]:
        params = {k: str(v) for k, v in query.items() if v is not None}
        body = await self.client.get("/products", params=params, fallback="Failed to load products")
        return [Product.model_validate(p) for p in _unwrap(body, "products", default=[])]

    async def get_product(self, product_id: str) -> Product:
        body = await self.client.get(f"/products/{product_id}", fallback="Product not found")
        doc = _unwrap(body, "product")
        if not doc:
            raise NotFoundError("Product not found")
        return Product.model_validate(doc)

    async def create_product(self, form: ProductForm) -> Product:
        body = await self.client.post("/products", json=form.payload(), fallback="Failed to create product")
        doc = _unwrap(body, "product")
        if not doc:
            raise ApiError(502, "Invalid response structure")
        return Product.model_validate(doc)

    async def get_cart(self) -> List[CartItem]:
        body = await self.client.get("/cart", fallback="Failed to load cart")
        return [CartItem.model_validate(i) for i in _unwrap(body, "cart", "items", default=[])]

    async def add_to_cart(self, product_id: str, quantity: int) -> None:
        await self.client.post(
            "/cart", json={"productId": product_id, "quantity": quantity}, fallback="Failed to add to cart"
        )

    async def update_cart_item(self, product_id: str, quantity: int) -> None:
        await self.client.put(
            "/cart", json={"productId": product_id, "quantity": quantity}, fallback="Failed to update quantity"
        )

    async def remove_cart_item(self, item_id: str) -> None:
        await self.client.delete(f"/cart/{item_id}", fallback="Failed to remove item")

    async def clear_cart(self) -> None:
        await self.client.delete("/cart/clear", fallback="Failed to clear cart")

    async def get_wishlist(self) -> List[Product]:
        body = await self.client.get("/wishlist", fallback="Failed to load wishlist")
        return [Product.model_validate(p) for p in _unwrap(body, "wishlist", "products", default=[])]

    async def add_to_wishlist(self, product_id: str) -> None:
        await self.client.post("/wishlist", json={"productId": product_id}, fallback="Failed to update wishlist")

    async def remove_from_wishlist(self, product_id: str) -> None:
        await self.client.delete(f"/wishlist/{product_id}", fallback="Failed to update wishlist")

    async def list_orders(self) -> List[Order]:
        body = await self.client.get("/orders", fallback="Failed to load orders")
        docs = body if isinstance(body, list) else _unwrap(body, "orders", default=[])
        return [Order.model_validate(o) for o in docs]

    async def get_order(self, order_id: str) -> Order:
        body = await self.client.get(f"/orders/{order_id}", fallback="Order not found")
        doc = _unwrap(body, "order")
        if not doc:
            raise NotFoundError("Order not found")
        return Order.model_validate(doc)

    async def create_order(self, request: OrderRequest) -> Order:
        body = await self.client.post("/orders", json=request.to_json(), fallback="Failed to place order")
        doc = _unwrap(body, "order")
        if not doc:
            raise ApiError(502, "Invalid response structure")
        return Order.model_validate(doc)

    async def get_profile(self) -> User:
        body = await self.client.get("/users/profile", fallback="Failed to load profile")
        doc = _unwrap(body, "user")
        if not doc:
            raise ApiError(502, "Invalid response structure")
        return User.model_validate(doc)

    async def update_profile(self, form: ProfileForm) -> User:
        body = await self.client.put("/users/profile", json=form.payload(), fallback="Failed to update profile")
        doc = _unwrap(body, "user")
        if not doc:
            raise ApiError(502, "Invalid response structure")
        return User.model_validate(doc)

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self.client.put(
            "/users/change-password",
            json={"currentPassword": current_password, "newPassword": new_password},
            fallback="Failed to change password",
        )

    async def list_users(self) -> List[User]:
        body = await self.client.get("/users", fallback="Failed to load users")
        return [User.model_validate(u) for u in _unwrap(body, "users", default=[])]


# In-memory fixtures

FIXTURE_PRODUCTS: List[Dict[str, Any]] = [
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d501",
        "name": "Oversized Cotton T-Shirt",
        "description": "Premium cotton oversized t-shirt with minimalist design",
        "price": 29.99,
        "category": "MAN",
        "imageUrl": "https://images.unsplash.com/photo-1521572163474-6864f9cf17ab",
        "stock": 100,
        "createdAt": "2024-01-15T10:00:00Z",
    },
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d502",
        "name": "Tailored Wool Trousers",
        "description": "Slim fit wool trousers with pressed creases",
        "price": 89.0,
        "category": "MAN",
        "imageUrl": "https://images.unsplash.com/photo-1520975693416-35a1d9d8f5f4",
        "stock": 40,
        "createdAt": "2024-02-02T09:30:00Z",
    },
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d503",
        "name": "Silk Emerald Blouse",
        "description": "Silk satin blouse with subtle sheen",
        "price": 120.0,
        "category": "WOMAN",
        "imageUrl": "https://images.unsplash.com/photo-1485968579580-b6d095142e6e",
        "stock": 25,
        "createdAt": "2024-02-10T12:00:00Z",
    },
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d504",
        "name": "Pleated Midi Skirt",
        "description": "Flowing pleated skirt in washed linen",
        "price": 64.5,
        "category": "WOMAN",
        "imageUrl": "https://images.unsplash.com/photo-1583496661160-fb5886a0aaaa",
        "stock": 30,
        "createdAt": "2024-01-20T08:00:00Z",
    },
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d505",
        "name": "Calf Leather Oxfords",
        "description": "Hand-polished leather shoes",
        "price": 180.0,
        "category": "SHOES",
        "imageUrl": "https://images.unsplash.com/photo-1515542706656-8e6ef17a1521",
        "stock": 12,
        "createdAt": "2024-03-01T10:00:00Z",
    },
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d506",
        "name": "Canvas Tote Bag",
        "description": "Heavy canvas tote with leather handles",
        "price": 35.0,
        "category": "ACCESSORIES",
        "imageUrl": "https://images.unsplash.com/photo-1544816155-12df9643f363",
        "stock": 60,
        "createdAt": "2024-01-05T10:00:00Z",
    },
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d507",
        "name": "Quilted Puffer Jacket",
        "description": "Lightweight quilted jacket for cold days",
        "price": 149.0,
        "category": "OUTERWEAR",
        "imageUrl": "https://images.unsplash.com/photo-1539533018447-63fcce2678e3",
        "stock": 18,
        "createdAt": "2024-02-20T10:00:00Z",
    },
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d508",
        "name": "Girl's Party Dress",
        "description": "Tulle skirt with satin bodice",
        "price": 52.0,
        "category": "girl",
        "imageUrl": "https://images.unsplash.com/photo-1518831959646-742c3a14ebf7",
        "stock": 15,
        "createdAt": "2024-02-14T10:00:00Z",
    },
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d509",
        "name": "boy's denim overalls",
        "description": "Soft denim overalls with adjustable straps",
        "price": 38.0,
        "category": "boy",
        "imageUrl": "https://images.unsplash.com/photo-1519238263530-99bdd11df2ea",
        "stock": 22,
        "createdAt": "2024-01-28T10:00:00Z",
    },
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d510",
        "name": "Newborn Knit Set",
        "description": "Organic cotton knit romper and hat",
        "price": 24.0,
        "category": "newborn",
        "imageUrl": "https://images.unsplash.com/photo-1522771930-78848d9293e8",
        "stock": 40,
        "createdAt": "2024-03-05T10:00:00Z",
    },
]

FIXTURE_USER: Dict[str, Any] = {
    "_id": "65a1f0c2e4b0a1a2b3c4d600",
    "firstName": "John",
    "lastName": "Doe",
    "email": "john.doe@example.com",
    "isEmailVerified": True,
    "role": "user",
    "createdAt": "2024-01-10T15:30:00Z",
}

FIXTURE_ORDERS: List[Dict[str, Any]] = [
    {
        "_id": "65a1f0c2e4b0a1a2b3c4d700",
        "userId": "65a1f0c2e4b0a1a2b3c4d600",
        "products": [{"productId": "65a1f0c2e4b0a1a2b3c4d501", "quantity": 2, "price": 29.99}],
        "total": 59.98,
        "status": "delivered",
        "shippingAddress": {
            "street": "123 Main St",
            "city": "New York",
            "state": "NY",
            "postalCode": "10001",
            "country": "USA",
        },
        "createdAt": "2024-01-10T15:30:00Z",
    }
]


class MemorySource(StorefrontSource):
    """Fixture-backed source holding one user's cart, wishlist and orders."""

    def __init__(
        self,
        products: Optional[List[Dict[str, Any]]] = None,
        user: Optional[Dict[str, Any]] = None,
        latency: float = 0.0,
    ):
        docs = FIXTURE_PRODUCTS if products is None else products
        self.products: Dict[str, Product] = {}
        for d in docs:
            p = Product.model_validate(d)
            self.products[p.id] = p
        self.user = User.model_validate(user or FIXTURE_USER)
        self.users: List[User] = [self.user]
        self.cart: List[CartItem] = []
        self.wishlist: List[str] = []
        self.orders: List[Order] = [Order.model_validate(o) for o in FIXTURE_ORDERS]
        self.latency = latency

    async def _delay(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)

    def _product(self, product_id: str) -> Product:
        product = self.products.get(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def list_products(self, **query) -> List[Product]:
        await self._delay()
        products = list(self.products.values())
        category = query.get("category")
        if category:
            products = [p for p in products if p.category == category]
        return products

    async def get_product(self, product_id: str) -> Product:
        await self._delay()
        return self._product(product_id)

    async def create_product(self, form: ProductForm) -> Product:
        await self._delay()
        now = datetime.now(timezone.utc)
        product = Product(
            id=str(ObjectId()),
            name=form.name,
            description=form.description,
            price=form.price,
            category=form.category,
            image_url=form.image_url,
            stock=form.stock,
            created_at=now,
            updated_at=now,
        )
        self.products[product.id] = product
        return product

    async def get_cart(self) -> List[CartItem]:
        await self._delay()
        return [item.model_copy() for item in self.cart]

    async def add_to_cart(self, product_id: str, quantity: int) -> None:
        await self._delay()
        product = self._product(product_id)
        for i, item in enumerate(self.cart):
            if item.product_id == product_id:
                self.cart[i] = item.model_copy(update={"quantity": item.quantity + quantity})
                return
        self.cart.append(CartItem(id=str(ObjectId()), product=product, quantity=quantity))

    async def update_cart_item(self, product_id: str, quantity: int) -> None:
        await self._delay()
        if quantity < 1:
            raise ApiError(400, "Quantity must be at least 1")
        for i, item in enumerate(self.cart):
            if item.product_id == product_id:
                self.cart[i] = item.model_copy(update={"quantity": quantity})
                return
        raise NotFoundError("Item not found in cart")

    async def remove_cart_item(self, item_id: str) -> None:
        await self._delay()
        self.cart = [item for item in self.cart if item.id != item_id]

    async def clear_cart(self) -> None:
        await self._delay()
        self.cart = []

    async def get_wishlist(self) -> List[Product]:
        await self._delay()
        return [self.products[pid] for pid in self.wishlist if pid in self.products]

    async def add_to_wishlist(self, product_id: str) -> None:
        await self._delay()
        self._product(product_id)
        if product_id not in self.wishlist:
            self.wishlist.append(product_id)

    async def remove_from_wishlist(self, product_id: str) -> None:
        await self._delay()
        if product_id in self.wishlist:
            self.wishlist.remove(product_id)

    async def list_orders(self) -> List[Order]:
        await self._delay()
        return list(self.orders)

    async def get_order(self, order_id: str) -> Order:
        await self._delay()
        for order in self.orders:
            if order.id == order_id:
                return order
        raise NotFoundError("Order not found")

    async def create_order(self, request: OrderRequest) -> Order:
        await self._delay()
        for line in request.products:
            self._product(line.product_id)
        total = sum(line.price * line.quantity for line in request.products)
        order = Order(
            id=str(ObjectId()),
            user_id=self.user.id,
            products=request.products,
            total=round(total, 2),
            shipping_address=request.shipping_address,
            created_at=datetime.now(timezone.utc),
        )
        self.orders.append(order)
        return order

    async def get_profile(self) -> User:
        await self._delay()
        return self.user

    async def update_profile(self, form: ProfileForm) -> User:
        await self._delay()
        self.user = self.user.model_copy(
            update={"first_name": form.first_name, "last_name": form.last_name, "email": form.email}
        )
        self.users = [self.user if u.id == self.user.id else u for u in self.users]
        return self.user

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self._delay()
        logger.info("Password changed for %s (memory source, not persisted)", self.user.email)

    async def list_users(self) -> List[User]:
        await self._delay()
        if not self.user.is_admin:
            raise ApiError(403, "Admin access required")
        return list(self.users)


def build_source(settings, client: ApiClient) -> StorefrontSource:
    if settings.is_remote:
        return RemoteSource(client)
    logger.info("Using in-memory fixture data")
    return MemorySource(latency=settings.mock_latency)
