from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, constr


class ShippingAddress(BaseModel):
    full_name: Optional[str] = None
    street: str
    city: str
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = "US"
    phone: Optional[str] = None


class OrderItemRequest(BaseModel):
    product_id: constr(min_length=1, max_length=64)
    vendor_id: constr(min_length=1, max_length=64)
    title: Optional[str] = None
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)


class CreateOrderRequest(BaseModel):
    items: List[OrderItemRequest] = Field(min_length=1)
    shipping_address: ShippingAddress
    shipping_method: Literal["free", "standard", "express"] = "standard"
    payment_method: Optional[str] = None
    payment_status: Literal["pending", "completed"] = "pending"
    order_notes: Optional[constr(max_length=500)] = None
    subtotal: Optional[Decimal] = Field(default=None, ge=0)
    shipping_cost: Decimal = Field(default=Decimal("0"), ge=0)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    total: Decimal = Field(gt=0)


class TrackingRequest(BaseModel):
    tracking_number: constr(min_length=1, max_length=100)
    tracking_url: Optional[constr(max_length=500)] = None
