"""
Storefront records

Each Pydantic model mirrors a record the backend serves. The backend speaks
camelCase JSON with Mongo-style "_id" keys; models accept both "_id" and "id"
and serialize back to camelCase.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _id_field(**kwargs):
    return Field(..., validation_alias=AliasChoices("_id", "id"), **kwargs)


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Timestamped(Record):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # naive timestamps are treated as UTC so they sort against aware ones
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class Product(Timestamped):
    """
    Catalog entry
    Backend path: /products
    """
    id: str = _id_field(description="Product id")
    name: str = Field(..., description="Product name")
    description: str = Field("", description="Product description")
    price: float = Field(..., ge=0, description="Price in dollars")
    category: str = Field(..., description="Backend category code, e.g. MAN, WOMAN, KID")
    image_url: str = Field("", description="Image URL")
    stock: int = Field(0, ge=0, description="Units in stock")
    is_active: bool = Field(True, description="Whether the product is listed")


class CartItem(Record):
    """
    Line item in the signed-in user's cart
    Backend path: /cart
    """
    id: str = _id_field()
    product: Product
    quantity: int = Field(1, ge=1)

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def subtotal(self) -> float:
        return self.product.price * self.quantity


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class User(Record):
    """
    Account record
    Backend path: /users/profile
    """
    id: str = _id_field()
    first_name: str = ""
    last_name: str = ""
    email: str
    is_email_verified: bool = Field(
        False, validation_alias=AliasChoices("isEmailVerified", "isVerified", "is_email_verified")
    )
    role: Role = Role.USER
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


class OrderLine(Record):
    product_id: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price at order time")


class ShippingAddress(Record):
    street: str
    city: str
    state: str
    postal_code: str
    country: str


class Order(Record):
    """
    Placed order (read-only)
    Backend path: /orders
    """
    id: str = _id_field()
    user_id: Optional[str] = None
    products: List[OrderLine] = Field(default_factory=list)
    total: float = Field(0, ge=0)
    status: OrderStatus = OrderStatus.PENDING
    shipping_address: Optional[ShippingAddress] = None
    created_at: Optional[datetime] = None


class OrderRequest(Record):
    products: List[OrderLine] = Field(..., min_length=1)
    shipping_address: ShippingAddress


class CartRequest(Record):
    product_id: str
    quantity: int = 1
