"""
Validation rules per route, in the order they are reported.
"""

from schemas import PizzaStatus
from validators import body, is_object_id, param

INVALID_OBJECT_ID = "Invalid ObjectId"


def object_id(name: str = "id", message: str = INVALID_OBJECT_ID):
    return param(name).exists().is_mongo_id(message=message)


def email():
    return (
        body("email")
        .exists()
        .with_message("Email must be present")
        .is_string()
        .is_email()
        .with_message("Email must be valid")
    )


def new_password(field: str = "password"):
    return [
        body(field)
        .trim()
        .not_empty()
        .with_message("Password must be present")
        .is_string()
        .with_message("Password must be valid"),
        body(field)
        .is_length(max=20)
        .with_message("Password must be at most 20 characters long")
        .is_strong_password()
        .with_message("Password is not strong enough"),
    ]


# Orders

def _order_body():
    return [
        body("customer.name").not_empty().is_string(),
        body("customer.address").not_empty().is_string(),
        body("pizzas").exists().is_array(min=1).each(is_object_id, message=INVALID_OBJECT_ID),
    ]


create_order = _order_body()

get_order = [object_id()]

update_order = [object_id()] + _order_body()

update_ordered_pizza_status = [
    object_id(),
    body("index").exists().is_int(min=0),
    body("status").exists().is_in(PizzaStatus.labels()),
]

delete_order = [object_id()]


# Pizzas

def _pizza_body():
    return [
        body("name").exists().is_string().not_empty(),
        body("image").exists().is_string().not_empty(),
        body("price").exists().is_numeric().is_float(min=0),
    ]


create_pizza = _pizza_body()

get_pizza = [object_id()]

update_pizza = [object_id()] + _pizza_body()

delete_pizza = [object_id()]


# Users

USER_ID_MESSAGE = "Id must be valid"

create_user = [email()] + new_password()

get_user = [object_id(message=USER_ID_MESSAGE)]

update_current_user_email = [email()]

update_user_email = [object_id(message=USER_ID_MESSAGE), email()]

update_current_user_password = new_password() + [
    body("old_password")
    .trim()
    .not_empty()
    .with_message("Old password must be present")
    .is_string()
    .with_message("Old password must be valid"),
]

update_user_password = [object_id(message=USER_ID_MESSAGE)] + new_password()

update_user_avatar = [
    object_id(message=USER_ID_MESSAGE),
    body("avatar").exists().is_string().not_empty(),
]

delete_user = [object_id(message=USER_ID_MESSAGE)]


# Auth

sign_up = [email()] + new_password()

sign_in = [
    email(),
    body("password")
    .is_string()
    .with_message("Password must be present")
    .trim()
    .not_empty()
    .with_message("Password must be present"),
]

request_password_reset = [email()]

reset_password = [
    param("token")
    .exists()
    .is_string()
    .is_alphanumeric()
    .is_length(min=24, max=24)
    .with_message("Token must be valid"),
] + new_password()
