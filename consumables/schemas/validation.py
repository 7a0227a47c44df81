"""Input checking for catalog and stock mutation payloads.

``validate`` never raises on malformed input. It returns either ``Valid`` with
the normalized payload or ``Invalid`` with a per-field error map that callers
can show next to the matching form input.
"""

import uuid
from dataclasses import dataclass
from typing import Annotated, Any, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, StringConstraints
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from consumables.errors import ValidationError

M = TypeVar("M", bound=BaseModel)

# Key used for errors that do not belong to a single field (e.g. body is not an object)
FORM_ERRORS_KEY = "_form"


@dataclass(frozen=True)
class Valid(Generic[M]):
    data: M

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    errors: dict[str, list[str]]

    @property
    def ok(self) -> bool:
        return False


def field_errors(exc: PydanticValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        key = ".".join(str(part) for part in err["loc"]) or FORM_ERRORS_KEY
        errors.setdefault(key, []).append(err["msg"])
    return errors


def validate(model: type[M], raw: Any) -> Valid[M] | Invalid:
    try:
        return Valid(model.model_validate(raw))
    except PydanticValidationError as exc:
        return Invalid(field_errors(exc))


def require_valid(model: type[M], raw: Any) -> M:
    """Validate ``raw`` and raise the structured :class:`ValidationError` on failure."""
    result = validate(model, raw)
    if not result.ok:
        raise ValidationError(result.errors)
    return result.data


def parse_reference(value: Any) -> str | None:
    """Canonical form of a well-formed entity id, or None."""
    if not isinstance(value, str):
        return None
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError:
        return None


# --- Reusable field types ---

def _reference(label: str):
    def check(value: str) -> str:
        canonical = parse_reference(value)
        if canonical is None:
            raise PydanticCustomError("reference", "Invalid {label} id", {"label": label})
        return canonical

    return AfterValidator(check)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def required(message: str):
    def check(value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            raise PydanticCustomError("required", message)
        return value

    return BeforeValidator(check)


RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]
Quantity = Annotated[int, Field(strict=True, ge=1)]

ProductRef = Annotated[str, _reference("product")]
StockItemRef = Annotated[str, _reference("stock item")]
CategoryRef = Annotated[str, _reference("category")]

PersonName = Annotated[RequiredText, required("Person name is required")]
