"""
Services

One class per resource, each wrapping the document store. Failures are
raised as errors from ``errors`` and mapped to HTTP by the error handlers.
"""

import logging
from typing import List, Optional, Sequence

from pymongo.errors import DuplicateKeyError
from starlette.concurrency import run_in_threadpool

from database import collection_name
from errors import BadRequest, Forbidden, NotFound, UnprocessableEntity, format_field_message
from schemas import (
    Customer,
    Message,
    Order,
    OrderedPizza,
    Pizza,
    PizzaIn,
    PizzaSnapshot,
    PizzaStatus,
    User,
    UserRecord,
)
from security import (
    generate_reset_token,
    hash_password,
    is_token_expired,
    reset_token_expiry,
    verify_password,
)
from validators import is_object_id

logger = logging.getLogger(__name__)

# never part of a user read
PRIVATE_USER_FIELDS = {"password": 0, "reset_token": 0, "reset_token_expires": 0}


def require_object_id(value: str, location: str = "params", path: str = "id") -> None:
    if not is_object_id(value):
        raise UnprocessableEntity(format_field_message("Invalid ObjectId", location, path, value))


class PizzaService:
    collection = collection_name(Pizza)

    def __init__(self, store):
        self.store = store

    async def create_pizza(self, pizza: PizzaIn) -> Pizza:
        return Pizza.model_validate(await self.store.create_document(self.collection, pizza))

    async def get_all_pizzas(self) -> List[Pizza]:
        docs = await self.store.get_documents(self.collection)
        if not docs:
            raise NotFound("Pizzas not found")
        return [Pizza.model_validate(d) for d in docs]

    async def find_pizza(self, pizza_id: str) -> Optional[Pizza]:
        doc = await self.store.get_document(self.collection, pizza_id)
        return Pizza.model_validate(doc) if doc else None

    async def get_pizza_by_id(self, pizza_id: str) -> Pizza:
        require_object_id(pizza_id)
        pizza = await self.find_pizza(pizza_id)
        if pizza is None:
            raise NotFound("Pizza not found")
        return pizza

    async def update_pizza_by_id(self, pizza_id: str, pizza: PizzaIn) -> Pizza:
        require_object_id(pizza_id)
        doc = await self.store.update_document(self.collection, pizza_id, pizza.model_dump())
        if doc is None:
            raise NotFound("Pizza not found")
        return Pizza.model_validate(doc)

    async def delete_pizza_by_id(self, pizza_id: str) -> Message:
        require_object_id(pizza_id)
        if await self.store.delete_document(self.collection, pizza_id) is None:
            raise NotFound("Pizza not found")
        return Message(message="Pizza deleted successfully")


class OrderService:
    """Orders hold snapshots of menu pizzas, never live references."""

    collection = collection_name(Order)

    def __init__(self, store, pizzas: PizzaService):
        self.store = store
        self.pizzas = pizzas

    async def resolve_pizzas(self, pizza_ids: Sequence[str]) -> List[OrderedPizza]:
        """Snapshot every pizza that exists; unknown ids are skipped.

        Raises:
            NotFound: if none of the ids resolve
        """
        ordered = []
        for pizza_id in pizza_ids:
            pizza = await self.pizzas.find_pizza(pizza_id)
            if pizza is not None:
                ordered.append(OrderedPizza(pizza=PizzaSnapshot.of(pizza), status=PizzaStatus.ordered))
        if not ordered:
            raise NotFound("Pizzas not found")
        return ordered

    async def create_order(self, customer: Customer, pizza_ids: Sequence[str]) -> Order:
        pizzas = await self.resolve_pizzas(pizza_ids)
        doc = await self.store.create_document(
            self.collection,
            {
                "customer": customer.model_dump(),
                "pizzas": [p.model_dump(mode="json") for p in pizzas],
            },
        )
        return Order.model_validate(doc)

    async def get_all_orders(self) -> List[Order]:
        docs = await self.store.get_documents(self.collection)
        if not docs:
            raise NotFound("Orders not found")
        return [Order.model_validate(d) for d in docs]

    async def get_order_by_id(self, order_id: str) -> Order:
        require_object_id(order_id)
        doc = await self.store.get_document(self.collection, order_id)
        if doc is None:
            raise NotFound("Order not found")
        return Order.model_validate(doc)

    async def update_order_by_id(
        self, order_id: str, customer: Customer, pizza_ids: Sequence[str]
    ) -> Order:
        """Replace customer and pizzas; every line item starts over as ``ordered``."""
        require_object_id(order_id)
        pizzas = await self.resolve_pizzas(pizza_ids)
        doc = await self.store.update_document(
            self.collection,
            order_id,
            {
                "customer": customer.model_dump(),
                "pizzas": [p.model_dump(mode="json") for p in pizzas],
            },
        )
        if doc is None:
            raise NotFound("Order not found")
        return Order.model_validate(doc)

    async def update_ordered_pizza_status_by_id(
        self, order_id: str, index: int, status: PizzaStatus
    ) -> Order:
        """Set ``pizzas[index].status`` and nothing else.

        Any status may follow any other; there is no transition check.
        """
        order = await self.get_order_by_id(order_id)
        if index < 0 or index >= len(order.pizzas):
            raise UnprocessableEntity(
                format_field_message("Index out of range", "body", "index", index)
            )
        doc = await self.store.set_array_item_field(
            self.collection, order_id, "pizzas", index, "status", PizzaStatus(status).value
        )
        if doc is None:
            raise NotFound("Order not found")
        return Order.model_validate(doc)

    async def delete_order_by_id(self, order_id: str) -> Message:
        require_object_id(order_id)
        if await self.store.delete_document(self.collection, order_id) is None:
            raise NotFound("Order not found")
        return Message(message="Order deleted successfully")


class UserService:
    collection = collection_name(User)

    def __init__(self, store, bcrypt_rounds: int = 12):
        self.store = store
        self.bcrypt_rounds = bcrypt_rounds

    async def _hash(self, password: str) -> str:
        return await run_in_threadpool(hash_password, password, self.bcrypt_rounds)

    async def _ensure_email_free(self, email: str, user_id: Optional[str] = None) -> None:
        existing = await self.store.find_document(self.collection, {"email": email}, {"_id": 1})
        if existing and existing["id"] != user_id:
            raise BadRequest("Email is already in use")

    async def _update(self, user_id: str, fields: dict) -> User:
        require_object_id(user_id)
        try:
            doc = await self.store.update_document(
                self.collection, user_id, fields, PRIVATE_USER_FIELDS
            )
        except DuplicateKeyError as e:
            raise BadRequest("Email is already in use") from e
        if doc is None:
            raise NotFound("User not found")
        return User.model_validate(doc)

    async def create_user(self, email: str, password: str) -> User:
        await self._ensure_email_free(email)
        hashed = await self._hash(password)
        try:
            doc = await self.store.create_document(
                self.collection, {"email": email, "password": hashed, "avatar": None}
            )
        except DuplicateKeyError as e:
            raise BadRequest("Email is already in use") from e
        return User.model_validate(doc)

    async def get_all_users(self) -> List[User]:
        docs = await self.store.get_documents(self.collection, projection=PRIVATE_USER_FIELDS)
        if not docs:
            raise NotFound("Users not found")
        return [User.model_validate(d) for d in docs]

    async def get_user_by_id(self, user_id: str) -> User:
        require_object_id(user_id)
        doc = await self.store.get_document(self.collection, user_id, PRIVATE_USER_FIELDS)
        if doc is None:
            raise NotFound("User not found")
        return User.model_validate(doc)

    async def get_user_record_by_id(self, user_id: str) -> Optional[UserRecord]:
        doc = await self.store.get_document(self.collection, user_id)
        return UserRecord.model_validate(doc) if doc else None

    async def get_user_record_by_email(self, email: str) -> Optional[UserRecord]:
        doc = await self.store.find_document(self.collection, {"email": email})
        return UserRecord.model_validate(doc) if doc else None

    async def get_user_record_by_reset_token(self, token: str) -> Optional[UserRecord]:
        doc = await self.store.find_document(self.collection, {"reset_token": token})
        return UserRecord.model_validate(doc) if doc else None

    async def update_user_email(self, user_id: str, email: str) -> User:
        require_object_id(user_id)
        await self._ensure_email_free(email, user_id)
        return await self._update(user_id, {"email": email})

    async def update_user_password(self, user_id: str, password: str) -> User:
        return await self._update(user_id, {"password": await self._hash(password)})

    async def change_password(self, user_id: str, old_password: str, password: str) -> User:
        record = await self.get_user_record_by_id(user_id)
        if record is None:
            raise NotFound("User not found")
        if not await run_in_threadpool(verify_password, old_password, record.password):
            raise BadRequest("Invalid credentials")
        return await self.update_user_password(user_id, password)

    async def update_user_avatar(self, user_id: str, avatar: str) -> User:
        return await self._update(user_id, {"avatar": avatar})

    async def set_reset_token(self, user_id: str, token: str, expires) -> User:
        return await self._update(user_id, {"reset_token": token, "reset_token_expires": expires})

    async def replace_password_and_clear_token(self, user_id: str, password: str) -> User:
        return await self._update(
            user_id,
            {
                "password": await self._hash(password),
                "reset_token": None,
                "reset_token_expires": None,
            },
        )

    async def delete_user_by_id(self, user_id: str) -> Message:
        require_object_id(user_id)
        if await self.store.delete_document(self.collection, user_id) is None:
            raise NotFound("User not found")
        return Message(message="User deleted successfully")


class AuthService:
    def __init__(self, users: UserService, reset_token_ttl_hours: int = 24):
        self.users = users
        self.reset_token_ttl_hours = reset_token_ttl_hours

    async def sign_up(self, email: str, password: str) -> User:
        user = await self.users.create_user(email, password)
        logger.info(f"User {user.id} signed up")
        return user

    async def sign_in(self, email: str, password: str) -> User:
        record = await self.users.get_user_record_by_email(email)
        if record is None or not await run_in_threadpool(verify_password, password, record.password):
            logger.info("Sign-in rejected: invalid credentials")
            raise BadRequest("Invalid credentials")
        return record.public()

    async def request_password_reset(self, email: str) -> str:
        """Issue a reset token for ``email`` and return it.

        Delivering the token (mail) is left to the caller.
        """
        record = await self.users.get_user_record_by_email(email)
        if record is None:
            raise BadRequest("Invalid credentials")
        token = generate_reset_token()
        await self.users.set_reset_token(
            record.id, token, reset_token_expiry(self.reset_token_ttl_hours)
        )
        logger.info(f"Password reset token issued for user {record.id}")
        return token

    async def reset_password(self, token: str, password: str) -> User:
        record = await self.users.get_user_record_by_reset_token(token)
        if record is None or not record.reset_token or record.reset_token_expires is None:
            raise Forbidden("Token invalid")
        if is_token_expired(record.reset_token_expires):
            raise Forbidden("Token invalid")
        user = await self.users.replace_password_and_clear_token(record.id, password)
        logger.info(f"Password reset completed for user {record.id}")
        return user
