"""API routes for auth, users, pizzas and orders.

Each route authenticates first (where required), then runs its validation
rules, then calls exactly one service operation.
"""

from typing import Any, Dict, List, Optional, Type

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

import rules
from dependencies import get_auth_service, get_order_service, get_pizza_service, get_user_service
from schemas import (
    AvatarUpdate,
    Credentials,
    EmailUpdate,
    Message,
    Order,
    OrderIn,
    PasswordResetRequest,
    PasswordSet,
    PasswordUpdate,
    Pizza,
    PizzaIn,
    StatusUpdate,
    User,
)
from security import SessionUser, current_user, login_session, logout_session, require_user
from services import AuthService, OrderService, PizzaService, UserService
from validators import RequestData, validated


def request_body(model: Type[BaseModel]) -> Dict[str, Any]:
    """Document a JSON body that is read by the validation rules, not by FastAPI."""
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }


# Auth

auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])


@auth_router.post(
    "/sign-up",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    openapi_extra=request_body(Credentials),
)
async def sign_up(
    request: Request,
    req: RequestData = Depends(validated(rules.sign_up)),  # noqa: B008
    auth: AuthService = Depends(get_auth_service),  # noqa: B008
) -> User:
    user = await auth.sign_up(req.body["email"], req.body["password"])
    login_session(request, user)
    return user


@auth_router.post("/sign-in", response_model=User, openapi_extra=request_body(Credentials))
async def sign_in(
    request: Request,
    req: RequestData = Depends(validated(rules.sign_in)),  # noqa: B008
    auth: AuthService = Depends(get_auth_service),  # noqa: B008
) -> User:
    user = await auth.sign_in(req.body["email"], req.body["password"])
    login_session(request, user)
    return user


@auth_router.get("/sign-out")
async def sign_out(request: Request) -> Dict[str, Any]:
    logout_session(request)
    return {}


@auth_router.post(
    "/password-reset", response_model=Message, openapi_extra=request_body(PasswordResetRequest)
)
async def request_password_reset(
    req: RequestData = Depends(validated(rules.request_password_reset)),  # noqa: B008
    auth: AuthService = Depends(get_auth_service),  # noqa: B008
) -> Message:
    # the token is stored on the user; delivering it is left to the operator
    await auth.request_password_reset(req.body["email"])
    return Message(message="Password reset requested")


@auth_router.post(
    "/password-reset/{token}", response_model=Message, openapi_extra=request_body(PasswordSet)
)
async def reset_password(
    req: RequestData = Depends(validated(rules.reset_password)),  # noqa: B008
    auth: AuthService = Depends(get_auth_service),  # noqa: B008
) -> Message:
    await auth.reset_password(req.params["token"], req.body["password"])
    return Message(message="Password updated")


# Users

users_router = APIRouter(prefix="/api/users", tags=["Users"])


@users_router.post(
    "",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    openapi_extra=request_body(Credentials),
)
async def create_user(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.create_user)),  # noqa: B008
    users: UserService = Depends(get_user_service),  # noqa: B008
) -> User:
    return await users.create_user(req.body["email"], req.body["password"])


@users_router.get("", response_model=List[User])
async def get_all_users(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    users: UserService = Depends(get_user_service),  # noqa: B008
) -> List[User]:
    return await users.get_all_users()


@users_router.get("/me", response_model=User)
async def get_current_user(
    user: SessionUser = Depends(require_user),  # noqa: B008
    users: UserService = Depends(get_user_service),  # noqa: B008
) -> User:
    return await users.get_user_by_id(user.id)


@users_router.patch("/me/email", response_model=User, openapi_extra=request_body(EmailUpdate))
async def update_current_user_email(
    request: Request,
    user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.update_current_user_email)),  # noqa: B008
    users: UserService = Depends(get_user_service),  # noqa: B008
) -> User:
    updated = await users.update_user_email(user.id, req.body["email"])
    login_session(request, updated)
    return updated


@users_router.patch(
    "/me/password", response_model=User, openapi_extra=request_body(PasswordUpdate)
)
async def update_current_user_password(
    user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.update_current_user_password)),  # noqa: B008
    users: UserService = Depends(get_user_service),  # noqa: B008
) -> User:
    return await users.change_password(user.id, req.body["old_password"], req.body["password"])


@users_router.get("/{id}", response_model=User)
async def get_user_by_id(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.get_user)),  # noqa: B008
    users: UserService = Depends(get_user_service),  # noqa: B008
) -> User:
    return await users.get_user_by_id(req.params["id"])


@users_router.patch("/{id}/email", response_model=User, openapi_extra=request_body(EmailUpdate))
async def update_user_email_by_id(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.update_user_email)),  # noqa: B008
    users: UserService = Depends(get_user_service),  # noqa: B008
) -> User:
    return await users.update_user_email(req.params["id"], req.body["email"])


@users_router.patch(
    "/{id}/password", response_model=User, openapi_extra=request_body(PasswordSet)
)
async def update_user_password_by_id(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.update_user_password)),  # noqa: B008
    users: UserService = Depends(get_user_service),  # noqa: B008
) -> User:
    return await users.update_user_password(req.params["id"], req.body["password"])


@users_router.patch(
    "/{id}/avatar", response_model=User, openapi_extra=request_body(AvatarUpdate)
)
async def update_user_avatar_by_id(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.update_user_avatar)),  # noqa: B008
    users: UserService = Depends(get_user_service),  # noqa: B008
) -> User:
    return await users.update_user_avatar(req.params["id"], req.body["avatar"])


@users_router.delete("/{id}", response_model=Message)
async def delete_user_by_id(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.delete_user)),  # noqa: B008
    users: UserService = Depends(get_user_service),  # noqa: B008
) -> Message:
    return await users.delete_user_by_id(req.params["id"])


# Pizzas

pizzas_router = APIRouter(prefix="/api/pizzas", tags=["Pizzas"])


@pizzas_router.post(
    "",
    response_model=Pizza,
    status_code=status.HTTP_201_CREATED,
    openapi_extra=request_body(PizzaIn),
)
async def create_pizza(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.create_pizza)),  # noqa: B008
    pizzas: PizzaService = Depends(get_pizza_service),  # noqa: B008
) -> Pizza:
    return await pizzas.create_pizza(PizzaIn.model_validate(req.body))


@pizzas_router.get("", response_model=List[Pizza])
async def get_all_pizzas(
    pizzas: PizzaService = Depends(get_pizza_service),  # noqa: B008
) -> List[Pizza]:
    return await pizzas.get_all_pizzas()


@pizzas_router.get("/{id}", response_model=Pizza)
async def get_pizza_by_id(
    req: RequestData = Depends(validated(rules.get_pizza)),  # noqa: B008
    pizzas: PizzaService = Depends(get_pizza_service),  # noqa: B008
) -> Pizza:
    return await pizzas.get_pizza_by_id(req.params["id"])


@pizzas_router.put("/{id}", response_model=Pizza, openapi_extra=request_body(PizzaIn))
async def update_pizza_by_id(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.update_pizza)),  # noqa: B008
    pizzas: PizzaService = Depends(get_pizza_service),  # noqa: B008
) -> Pizza:
    return await pizzas.update_pizza_by_id(req.params["id"], PizzaIn.model_validate(req.body))


@pizzas_router.delete("/{id}", response_model=Message)
async def delete_pizza_by_id(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.delete_pizza)),  # noqa: B008
    pizzas: PizzaService = Depends(get_pizza_service),  # noqa: B008
) -> Message:
    return await pizzas.delete_pizza_by_id(req.params["id"])


# Orders

orders_router = APIRouter(prefix="/api/orders", tags=["Orders"])


@orders_router.post(
    "",
    response_model=Order,
    status_code=status.HTTP_201_CREATED,
    openapi_extra=request_body(OrderIn),
)
async def create_order(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.create_order)),  # noqa: B008
    orders: OrderService = Depends(get_order_service),  # noqa: B008
) -> Order:
    payload = OrderIn.model_validate(req.body)
    return await orders.create_order(payload.customer, payload.pizzas)


@orders_router.get("", response_model=List[Order])
async def get_all_orders(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    orders: OrderService = Depends(get_order_service),  # noqa: B008
) -> List[Order]:
    return await orders.get_all_orders()


@orders_router.get("/{id}", response_model=Order)
async def get_order_by_id(
    _user: Optional[SessionUser] = Depends(current_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.get_order)),  # noqa: B008
    orders: OrderService = Depends(get_order_service),  # noqa: B008
) -> Order:
    return await orders.get_order_by_id(req.params["id"])


@orders_router.put("/{id}", response_model=Order, openapi_extra=request_body(OrderIn))
async def update_order_by_id(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.update_order)),  # noqa: B008
    orders: OrderService = Depends(get_order_service),  # noqa: B008
) -> Order:
    payload = OrderIn.model_validate(req.body)
    return await orders.update_order_by_id(req.params["id"], payload.customer, payload.pizzas)


@orders_router.patch("/{id}/status", response_model=Order, openapi_extra=request_body(StatusUpdate))
async def update_ordered_pizza_status_by_id(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.update_ordered_pizza_status)),  # noqa: B008
    orders: OrderService = Depends(get_order_service),  # noqa: B008
) -> Order:
    update = StatusUpdate.model_validate(req.body)
    return await orders.update_ordered_pizza_status_by_id(req.params["id"], update.index, update.status)


@orders_router.delete("/{id}", response_model=Message)
async def delete_order_by_id(
    _user: SessionUser = Depends(require_user),  # noqa: B008
    req: RequestData = Depends(validated(rules.delete_order)),  # noqa: B008
    orders: OrderService = Depends(get_order_service),  # noqa: B008
) -> Message:
    return await orders.delete_order_by_id(req.params["id"])


routers = [auth_router, users_router, pizzas_router, orders_router]
