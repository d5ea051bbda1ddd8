"""
Database Schemas

MongoDB collection schemas and request/response shapes, defined with
Pydantic models.

Each stored model represents a collection in the database. Model name is
converted to lowercase for the collection name:
- Pizza -> "pizza" collection
- Order -> "order" collection
- User -> "user" collection
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PizzaStatus(str, Enum):
    """Fulfillment state of a single ordered pizza.

    Stored and transmitted as the label. The integer codes are the
    declaration order and only matter for documents written by the
    earlier integer-backed schema.
    """

    ordered = "ordered"
    oven = "oven"
    ready = "ready"
    delivering = "delivering"
    done = "done"

    @property
    def code(self) -> int:
        return list(PizzaStatus).index(self)

    @classmethod
    def from_code(cls, code: int) -> "PizzaStatus":
        return list(cls)[code]

    @classmethod
    def labels(cls) -> List[str]:
        return [s.value for s in cls]


# Pizzas

class PizzaIn(BaseModel):
    name: str = Field(..., min_length=1, description="Pizza name")
    image: str = Field(..., min_length=1, description="Image URI or filename")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Price")


class Pizza(PizzaIn):
    """
    Pizzas collection schema
    Collection name: "pizza"
    """
    id: str = Field(..., description="Pizza ObjectId as hex string")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Orders

class Customer(BaseModel):
    """Embedded customer of an order; has no identity of its own"""
    name: str = Field(..., min_length=1, description="Customer name")
    address: str = Field(..., min_length=1, description="Delivery address")


class PizzaSnapshot(BaseModel):
    """Copy of a menu pizza taken when it was ordered"""
    name: str
    image: str
    price: float

    @classmethod
    def of(cls, pizza: Pizza) -> "PizzaSnapshot":
        return cls(name=pizza.name, image=pizza.image, price=pizza.price)


class OrderedPizza(BaseModel):
    """Embedded schema for line items inside an order"""
    pizza: PizzaSnapshot
    status: PizzaStatus = PizzaStatus.ordered

    @field_validator("status", mode="before")
    @classmethod
    def legacy_status_code(cls, v: Any) -> Any:
        # documents written by the integer-backed schema
        if isinstance(v, int) and not isinstance(v, bool) and 0 <= v < len(PizzaStatus):
            return PizzaStatus.from_code(v)
        return v


class OrderIn(BaseModel):
    customer: Customer
    pizzas: List[str] = Field(..., min_length=1, description="Pizza ids")


class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "order"
    """
    id: str = Field(..., description="Order ObjectId as hex string")
    customer: Customer
    pizzas: List[OrderedPizza] = Field(..., min_length=1, description="Ordered pizzas")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StatusUpdate(BaseModel):
    index: int = Field(..., ge=0, description="Position of the pizza in the order")
    status: PizzaStatus


# Users

class User(BaseModel):
    """
    Users collection schema (public view)
    Collection name: "user"

    password, reset_token and reset_token_expires are stored but never
    part of this model.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str = Field(..., description="Unique email")
    avatar: Optional[str] = Field(None, description="Avatar URI or filename")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserRecord(User):
    """Stored user including write-only fields; never returned to clients"""
    password: str = Field(..., description="BCrypt password hash")
    reset_token: Optional[str] = None
    reset_token_expires: Optional[datetime] = None

    def public(self) -> User:
        return User.model_validate(self.model_dump())


class Credentials(BaseModel):
    email: str
    password: str


class EmailUpdate(BaseModel):
    email: str


class PasswordUpdate(BaseModel):
    password: str
    old_password: str


class PasswordSet(BaseModel):
    password: str


class AvatarUpdate(BaseModel):
    avatar: str


class PasswordResetRequest(BaseModel):
    email: str


class Message(BaseModel):
    message: str
