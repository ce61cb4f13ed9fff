"""
Database Schemas for Taste of Pi

Each Pydantic model represents a collection in the record store. The collection
name is the lowercase of the class name (e.g., MenuItem -> "menuitem").

Fields are snake_case in stored documents and camelCase on the wire.
"""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

CENT = Decimal("0.01")
MAX_MONEY = Decimal("9999999999.99")
MAX_QUANTITY = 1000


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT)


Money = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2), AfterValidator(_quantize)]

OrderStatus = Literal["received", "preparing", "ready", "completed"]
PaymentStatus = Literal["pending", "completed", "failed"]
PaymentMethod = Literal["cash", "upi", "pending"]
SettledPaymentMethod = Literal["cash", "upi"]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# Catalog
# -----------------------------

class Category(ApiModel):
    id: str
    name: str = Field(..., description="Category name, e.g. Pasta")
    description: Optional[str] = None
    image: Optional[str] = None


class CategoryCreate(ApiModel):
    id: Optional[str] = Field(None, description="Optional fixed id, generated when omitted")
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None


class CategoryUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None


class MenuItem(ApiModel):
    id: str
    name: str = Field(..., description="Dish name")
    description: str = Field("", description="Dish description")
    price: Money = Field(..., description="Unit price in restaurant currency")
    image: str = Field("", description="Image reference for the dish")
    category_id: Optional[str] = Field(None, description="Category id, null when uncategorized")
    ingredients: Optional[List[str]] = None
    recipe: Optional[str] = None
    is_available: bool = Field(True, description="Whether this item can currently be ordered")
    allergens: Optional[List[str]] = None


class MenuItemCreate(ApiModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    description: str = ""
    price: Money
    image: str = ""
    category_id: Optional[str] = None
    ingredients: Optional[List[str]] = None
    recipe: Optional[str] = None
    is_available: bool = True
    allergens: Optional[List[str]] = None


class MenuItemUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[Money] = None
    image: Optional[str] = None
    category_id: Optional[str] = None
    ingredients: Optional[List[str]] = None
    recipe: Optional[str] = None
    is_available: Optional[bool] = None
    allergens: Optional[List[str]] = None


# -----------------------------
# Cart & Orders
# -----------------------------

class Customizations(ApiModel):
    spice_level: Optional[str] = None
    addons: Optional[List[str]] = None
    special_instructions: Optional[str] = None

    @field_validator("addons")
    @classmethod
    def unique_addons(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        # addons are a set; keep first-seen order
        if v is None:
            return v
        return list(dict.fromkeys(a.strip() for a in v if a and a.strip()))

    @property
    def addons_count(self) -> int:
        return len(self.addons or [])


class CartLine(ApiModel):
    menu_item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY, description="Units ordered")
    customizations: Customizations = Field(default_factory=Customizations)


class OrderItem(ApiModel):
    menu_item_id: str
    name: str = Field(..., description="Item name at the time of order")
    price: Money = Field(..., description="Unit price at the time of order")
    quantity: int = Field(..., ge=1)
    customizations: Customizations = Field(default_factory=Customizations)


class Order(ApiModel):
    id: str
    user_id: Optional[str] = None
    customer_name: str
    coupon_number: Optional[str] = None
    bill_number: str
    items: List[OrderItem]
    subtotal: Money
    tax: Money
    total_amount: Money
    payment_method: PaymentMethod = "pending"
    payment_status: PaymentStatus = "pending"
    status: OrderStatus = "received"
    special_instructions: Optional[str] = None
    created_at: datetime


class OrderCreate(ApiModel):
    customer_name: str = ""
    items: List[CartLine] = Field(default_factory=list)
    coupon_number: Optional[str] = None
    special_instructions: Optional[str] = None
    user_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = Field(None, description="Hint only, settled by payment")


class OrderUpdate(ApiModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[SettledPaymentMethod] = None


class StatusOverride(ApiModel):
    status: OrderStatus


# -----------------------------
# Coupons
# -----------------------------

class Coupon(ApiModel):
    id: str
    code: str
    is_used: bool = False
    created_at: Optional[datetime] = None


class CouponCreate(ApiModel):
    code: str = Field(..., min_length=1)


class CouponCheckResponse(ApiModel):
    valid: bool
    already_used: bool


# -----------------------------
# Feedback & Notifications
# -----------------------------

class Feedback(ApiModel):
    id: str
    order_id: Optional[str] = None
    customer_name: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    created_at: datetime


class FeedbackCreate(ApiModel):
    customer_name: str = ""
    rating: int
    comment: Optional[str] = None
    order_id: Optional[str] = None


class Notification(ApiModel):
    id: str
    order_id: Optional[str] = None
    message: str
    sent_at: datetime


class NotifyRequest(ApiModel):
    order_id: Optional[str] = None
    message: str = ""


# -----------------------------
# Users & Auth
# -----------------------------

class User(ApiModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    google_id: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None


class UserCreate(ApiModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    google_id: Optional[str] = None


class SendOtpRequest(ApiModel):
    phone: str = Field(..., min_length=1)


class SendOtpResponse(ApiModel):
    success: bool
    message: str
    otp: str = Field(..., description="Returned for the mock flow, no SMS is sent")


class VerifyOtpRequest(ApiModel):
    phone: str = Field(..., min_length=1)
    otp: str


class VerifyOtpResponse(ApiModel):
    success: bool
    user: User


class AdminVerifyRequest(ApiModel):
    passcode: str


class RestaurantConfig(ApiModel):
    youtube_video_url: str
    restaurant_name: str
    location: str
    phone: str
    email: str
