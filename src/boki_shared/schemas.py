"""
Pydantic schemas for request validation.
"""

from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, validator

from boki_shared.constants import (
    BAN_DURATION_DAYS,
    BanReason,
    CancellationReason,
    OrderType,
    PaymentMethod,
)


def _check_payment_method(v):
    if v is not None and v not in {pm.value for pm in PaymentMethod}:
        allowed = ", ".join(pm.value for pm in PaymentMethod)
        raise ValueError(f"Invalid payment method. Allowed values: {allowed}")
    return v


def _check_order_type(v):
    if v not in {ot.value for ot in OrderType}:
        raise ValueError("order_type must be 'delivery' or 'pickup'")
    return v


class OrderItemRequest(BaseModel):
    food_item_id: str = Field(..., min_length=1)
    size_option_id: str | None = None
    size_name: str | None = None
    size_multiplier: Decimal | None = Field(None, gt=0)
    quantity: int = Field(default=1, ge=1)
    unit_price: Decimal = Field(..., ge=0)
    total_price: Decimal | None = Field(None, ge=0)
    special_instructions: str | None = None


class PlaceOrderRequest(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_email: EmailStr | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    order_type: str = Field(default=OrderType.PICKUP.value)
    payment_method: str = Field(default=PaymentMethod.CASH.value)
    user_id: str | None = None
    delivery_fee: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Decimal = Field(..., ge=0)
    notes: str | None = None
    items: list[OrderItemRequest] = Field(..., min_length=1)

    @validator("order_type")
    def validate_order_type(cls, v):
        return _check_order_type(v)

    @validator("payment_method")
    def validate_payment_method(cls, v):
        return _check_payment_method(v)


class CreateKioskOrderRequest(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_phone: str | None = None
    order_type: str = Field(default=OrderType.PICKUP.value)
    total_amount: Decimal = Field(..., ge=0)
    payment_method: str | None = None
    notes: str | None = None
    items: list[OrderItemRequest] = Field(..., min_length=1)

    @validator("order_type")
    def validate_order_type(cls, v):
        return _check_order_type(v)

    @validator("payment_method")
    def validate_payment_method(cls, v):
        return _check_payment_method(v)


class UpdateOrderStatusRequest(BaseModel):
    status: str = Field(..., min_length=1)
    note: str | None = None
    cancellation_reason: str | None = None
    cancellation_notes: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    notes: str | None = None

    @validator("reason")
    def validate_reason(cls, v):
        if v not in {reason.value for reason in CancellationReason}:
            raise ValueError(f"Unknown cancellation reason: {v}")
        return v


class ConfirmPaymentRequest(BaseModel):
    payment_method: str | None = None

    @validator("payment_method")
    def validate_payment_method(cls, v):
        return _check_payment_method(v)


class BanCustomerRequest(BaseModel):
    ban_reason: str
    custom_reason: str | None = None
    duration_days: int | None = None
    notes: str | None = None

    @validator("ban_reason")
    def validate_ban_reason(cls, v):
        if v not in {reason.value for reason in BanReason}:
            raise ValueError(f"Invalid ban reason: {v}")
        return v

    @validator("custom_reason", always=True)
    def validate_custom_reason(cls, v, values):
        if values.get("ban_reason") == BanReason.OTHER.value and not (v or "").strip():
            raise ValueError("custom_reason is required when ban_reason is 'other'")
        return v

    @validator("duration_days")
    def validate_duration(cls, v):
        if v is not None and v not in BAN_DURATION_DAYS:
            raise ValueError("duration_days must be one of 1, 3, 7, 30, 90, 365 or null")
        return v


class CreateSizeOptionRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=60)
    description: str | None = None
    price_multiplier: Decimal = Field(..., gt=0)
    sort_order: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True)


class UpdateSizeOptionRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=60)
    description: str | None = None
    price_multiplier: Decimal | None = Field(None, gt=0)
    sort_order: int | None = Field(None, ge=0)
    is_active: bool | None = None


class AssignSizesRequest(BaseModel):
    size_ids: list[str] = Field(default_factory=list)


class CustomMultiplierRequest(BaseModel):
    custom_price_multiplier: Decimal | None = Field(None, gt=0)
