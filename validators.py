"""
Request validation

Routes declare an ordered list of field rules::

    body("customer.name").not_empty().is_string()

Every rule runs against the request; the first failing check (in declaration
order) is the only one reported, as
``"<Message>: [<location> / <field.path>] (<value>)"``. Password values are
never echoed; an absent field renders as ``undefined``.
"""

import copy
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from bson import ObjectId
from email_validator import EmailNotValidError, validate_email
from fastapi import Request

from errors import BadRequest, UnprocessableEntity, format_field_message

DEFAULT_MESSAGE = "Invalid value"
SECRET_FIELDS = {"password", "old_password"}

NUMERIC_RE = re.compile(r"^[+-]?([0-9]*[.])?[0-9]+$")
INT_RE = re.compile(r"^[+-]?[0-9]+$")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


# Predicates

def _as_text(value: Any) -> str:
    if value is MISSING or value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_as_text(v) for v in value)
    return str(value)


def is_numeric_value(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == value and value not in (float("inf"), float("-inf"))
    return isinstance(value, str) and bool(NUMERIC_RE.match(value))


def is_object_id(value: Any) -> bool:
    return isinstance(value, str) and ObjectId.is_valid(value)


def is_email_address(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_strong(value: Any, min_length: int = 8) -> bool:
    if not isinstance(value, str) or len(value) < min_length:
        return False
    return (
        any(c.islower() for c in value)
        and any(c.isupper() for c in value)
        and any(c.isdigit() for c in value)
        and any(not c.isalnum() for c in value)
    )


def _finite_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (OverflowError, TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _in_range(number: float, min_value: Optional[float], max_value: Optional[float]) -> bool:
    if min_value is not None and number < min_value:
        return False
    if max_value is not None and number > max_value:
        return False
    return True


# Rules

@dataclass
class Check:
    test: Callable[[Any], bool]
    message: Optional[str] = None


@dataclass
class Sanitizer:
    apply: Callable[[Any], Any]


@dataclass(frozen=True)
class FieldError:
    location: str
    path: str
    value: Any
    message: str = DEFAULT_MESSAGE

    @property
    def is_secret(self) -> bool:
        return self.path.rsplit(".", 1)[-1] in SECRET_FIELDS

    def __str__(self) -> str:
        if self.is_secret:
            value = ""
        elif self.value is MISSING:
            value = "undefined"
        else:
            value = self.value
        return format_field_message(self.message, self.location, self.path, value)


class FieldRule:
    """Chain of checks bound to one request field."""

    def __init__(self, location: str, path: str):
        self.location = location
        self.path = path
        self.steps: List[Union[Check, Sanitizer]] = []
        self._unlabeled: List[Check] = []

    def __repr__(self) -> str:
        return f"FieldRule({self.location!r}, {self.path!r})"

    def _add(self, test: Callable[[Any], bool], message: Optional[str] = None) -> "FieldRule":
        check = Check(test, message)
        self.steps.append(check)
        if message is None:
            self._unlabeled.append(check)
        return self

    def with_message(self, message: str) -> "FieldRule":
        """Label every check added since the previous label."""
        for check in self._unlabeled:
            check.message = message
        self._unlabeled = []
        return self

    def trim(self) -> "FieldRule":
        self.steps.append(Sanitizer(lambda v: v.strip() if isinstance(v, str) else v))
        return self

    def exists(self, message: Optional[str] = None) -> "FieldRule":
        return self._add(lambda v: v is not MISSING, message)

    def not_empty(self, message: Optional[str] = None) -> "FieldRule":
        return self._add(lambda v: _as_text(v) != "", message)

    def is_string(self, message: Optional[str] = None) -> "FieldRule":
        return self._add(lambda v: isinstance(v, str), message)

    def is_numeric(self, message: Optional[str] = None) -> "FieldRule":
        return self._add(is_numeric_value, message)

    def is_int(
        self, min: Optional[int] = None, max: Optional[int] = None, message: Optional[str] = None
    ) -> "FieldRule":
        def test(v: Any) -> bool:
            if isinstance(v, bool):
                return False
            if isinstance(v, str) and INT_RE.match(v):
                v = int(v)
            return isinstance(v, int) and _in_range(v, min, max)

        return self._add(test, message)

    def is_float(
        self,
        min: Optional[float] = None,
        max: Optional[float] = None,
        message: Optional[str] = None,
    ) -> "FieldRule":
        def test(v: Any) -> bool:
            if not is_numeric_value(v):
                return False
            number = _finite_float(v)
            return number is not None and _in_range(number, min, max)

        return self._add(test, message)

    def is_email(self, message: Optional[str] = None) -> "FieldRule":
        return self._add(is_email_address, message)

    def is_mongo_id(self, message: Optional[str] = None) -> "FieldRule":
        return self._add(is_object_id, message)

    def is_array(self, min: int = 0, message: Optional[str] = None) -> "FieldRule":
        return self._add(lambda v: isinstance(v, list) and len(v) >= min, message)

    def each(self, test: Callable[[Any], bool], message: Optional[str] = None) -> "FieldRule":
        return self._add(lambda v: isinstance(v, list) and all(test(item) for item in v), message)

    def is_in(self, values: Sequence[Any], message: Optional[str] = None) -> "FieldRule":
        allowed = list(values)
        return self._add(lambda v: v is not MISSING and v in allowed, message)

    def is_length(
        self, min: int = 0, max: Optional[int] = None, message: Optional[str] = None
    ) -> "FieldRule":
        return self._add(lambda v: _in_range(len(_as_text(v)), min, max), message)

    def is_alphanumeric(self, message: Optional[str] = None) -> "FieldRule":
        return self._add(lambda v: isinstance(v, str) and v.isascii() and v.isalnum(), message)

    def is_strong_password(self, message: Optional[str] = None) -> "FieldRule":
        return self._add(is_strong, message)

    def custom(self, test: Callable[[Any], bool], message: Optional[str] = None) -> "FieldRule":
        return self._add(test, message)

    def run(self, sources: Dict[str, Any]) -> "RuleOutcome":
        value = resolve(sources.get(self.location, {}), self.path)
        original = value
        for step in self.steps:
            if isinstance(step, Sanitizer):
                if value is not MISSING:
                    value = step.apply(value)
            elif not step.test(value):
                return RuleOutcome(
                    value=value,
                    error=FieldError(self.location, self.path, value, step.message or DEFAULT_MESSAGE),
                )
        return RuleOutcome(value=value, changed=value is not original)


def body(path: str) -> FieldRule:
    return FieldRule("body", path)


def param(path: str) -> FieldRule:
    return FieldRule("params", path)


def query(path: str) -> FieldRule:
    return FieldRule("query", path)


# Evaluation

@dataclass(frozen=True)
class RuleOutcome:
    value: Any
    error: Optional[FieldError] = None
    changed: bool = False


@dataclass(frozen=True)
class ValidationResult:
    errors: List[FieldError] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error(self) -> Optional[FieldError]:
        return self.errors[0] if self.errors else None


@dataclass(frozen=True)
class RequestData:
    """Request sources after validation and sanitizing."""
    body: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)


def resolve(source: Any, path: str) -> Any:
    value = source
    for key in path.split("."):
        if not isinstance(value, dict) or key not in value:
            return MISSING
        value = value[key]
    return value


def assign(target: Dict[str, Any], path: str, value: Any) -> None:
    keys = path.split(".")
    for key in keys[:-1]:
        target = target[key]
    target[keys[-1]] = value


def run_rules(rules: Sequence[FieldRule], sources: Dict[str, Any]) -> ValidationResult:
    """Evaluate every rule in order; sanitized values are written to a copy."""
    data = copy.deepcopy(sources)
    errors: List[FieldError] = []
    for rule in rules:
        outcome = rule.run(data)
        if outcome.error is not None:
            errors.append(outcome.error)
        elif outcome.changed:
            assign(data[rule.location], rule.path, outcome.value)
    return ValidationResult(errors=errors, data=data)


async def read_json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return {}
    try:
        return await request.json()
    except ValueError as e:
        raise BadRequest("Malformed JSON body") from e


def validated(rules: Sequence[FieldRule]) -> Callable:
    """FastAPI dependency running ``rules`` before the route handler."""

    async def dependency(request: Request) -> RequestData:
        payload = await read_json_body(request)
        sources = {
            "body": payload if isinstance(payload, dict) else {},
            "params": dict(request.path_params),
            "query": dict(request.query_params),
        }
        result = run_rules(rules, sources)
        if not result.ok:
            raise UnprocessableEntity(str(result.error))
        return RequestData(
            body=result.data["body"],
            params=result.data["params"],
            query=result.data["query"],
        )

    return dependency
