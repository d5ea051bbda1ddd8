"""FastAPI dependency providers.

The store and settings live on ``app.state`` (set by ``create_app``); the
services are built per request around them.
"""

from fastapi import Depends, Request

from config import Settings
from services import AuthService, OrderService, PizzaService, UserService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request):
    """Return the process-wide document store connected at startup."""
    return request.app.state.store


def get_pizza_service(store=Depends(get_store)) -> PizzaService:  # noqa: B008
    return PizzaService(store)


def get_order_service(
    store=Depends(get_store),  # noqa: B008
    pizzas: PizzaService = Depends(get_pizza_service),  # noqa: B008
) -> OrderService:
    return OrderService(store, pizzas)


def get_user_service(
    store=Depends(get_store),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> UserService:
    return UserService(store, settings.bcrypt_rounds)


def get_auth_service(
    users: UserService = Depends(get_user_service),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> AuthService:
    return AuthService(users, settings.reset_token_ttl_hours)
