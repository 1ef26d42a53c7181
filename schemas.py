"""
Database Schemas for the Twenty-Two storefront

Each collection model below describes the documents stored in MongoDB
(`products`, `orders`, `users`). Field names are snake_case in Python and
camelCase on the wire and in the store, so dump with ``by_alias=True``.

The ``*Request`` / ``*In`` models are request bodies. They only coerce
types; range and shape rules live in ``validation.py`` so that callers
get the full list of field errors at once.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PRODUCT_CATEGORIES = ["t-shirts", "pants", "sweatshirts", "accessories", "shoes"]
ORDER_STATUSES = ["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----- Collections -----

class Product(CamelModel):
    name: str = Field(..., description="Product name")
    price: float = Field(..., gt=0, le=10000, description="Unit price")
    category: str = Field(..., description="One of PRODUCT_CATEGORIES")
    image: str = Field(..., description="Main image URL")
    images: Optional[List[str]] = Field(None, description="Ordered image URLs, first is main")
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    description: Optional[str] = Field(None, max_length=1000)
    sku: Optional[str] = None
    is_active: bool = True
    sold_out: bool = False
    created_at: str
    updated_at: str
    created_by: Optional[str] = None
    updated_by: Optional[str] = None


class CustomerInfo(CamelModel):
    name: str
    phone: str
    address: str
    city: str
    notes: str = ""
    email: Optional[str] = None


class OrderLineItem(CamelModel):
    """Point-in-time snapshot of a product inside an order"""
    product_id: str
    name: str
    price: float
    image: Optional[str] = None
    color: str
    size: str
    quantity: int = Field(..., ge=1, le=10)
    total: float


class Pricing(CamelModel):
    subtotal: float
    shipping_fee: float
    total: float


class StatusHistoryEntry(CamelModel):
    status: OrderStatus
    timestamp: str
    updated_by: str
    notes: Optional[str] = None


class Order(CamelModel):
    order_id: str
    customer_info: CustomerInfo
    items: List[OrderLineItem] = Field(..., min_length=1)
    pricing: Pricing
    status: OrderStatus = "pending"
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    payment_method: Literal["cash_on_delivery"] = "cash_on_delivery"
    estimated_delivery: str
    user_id: Optional[str] = None
    created_at: str
    updated_at: str


class UserPreferences(CamelModel):
    newsletter: bool = False
    notifications: bool = True


class UserProfile(CamelModel):
    phone: str = ""
    address: str = ""
    city: str = ""
    preferences: UserPreferences = Field(default_factory=UserPreferences)


class User(CamelModel):
    name: str
    email: str = Field(..., description="Lowercased, unique")
    hashed_password: str
    provider_uid: Optional[str] = Field(None, description="UID at the external identity provider")
    role: Literal["customer", "admin"] = "customer"
    is_active: bool = True
    profile: UserProfile = Field(default_factory=UserProfile)
    created_at: str
    updated_at: str
    last_login: Optional[str] = None


# ----- Request bodies -----

class ProductIn(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    description: Optional[str] = None
    sku: Optional[str] = None
    is_active: Optional[bool] = None
    sold_out: Optional[bool] = None


class CustomerInfoIn(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    notes: Optional[str] = None
    email: Optional[str] = None


class OrderItemIn(CamelModel):
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    color: Optional[str] = None
    size: Optional[str] = None
    # client-side snapshot, never trusted for pricing
    price: Optional[float] = None
    name: Optional[str] = None


class CreateOrderRequest(CamelModel):
    customer_info: Optional[CustomerInfoIn] = None
    items: Optional[List[OrderItemIn]] = None


class StatusUpdateRequest(CamelModel):
    status: Optional[str] = None
    notes: Optional[str] = None


class AdminLoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserStatusUpdate(CamelModel):
    is_active: Any = None


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    preferences: Optional[Dict[str, bool]] = None


class ChangePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None
