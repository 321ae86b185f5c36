"""Structured validation errors and the exceptions rulebook raises."""

import typing
from enum import Enum

import pydantic


class ErrorKind(str, Enum):
    """Closed set of reasons a rule can fail.

    Attributes:
        REQUIRED: Value was absent or null
        TYPE: Value has the wrong JSON kind
        LENGTH: String, array or object has the wrong size
        RANGE: Number is outside its bounds
        FORMAT: String does not match an expected format
        MEMBERSHIP: Value is not in the allowed set, or is in the excluded one
        NOT_UNIQUE: A record with the same value already exists
        LOOKUP_FAILED: The external lookup could not answer
        CUSTOM: Failure reported by a custom rule
    """

    REQUIRED = "required"
    TYPE = "type"
    LENGTH = "length"
    RANGE = "range"
    FORMAT = "format"
    MEMBERSHIP = "membership"
    NOT_UNIQUE = "not_unique"
    LOOKUP_FAILED = "lookup_failed"
    CUSTOM = "custom"


class _ErrorBase(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)

    @property
    def message(self) -> str:
        """Human readable description of the failure."""
        raise NotImplementedError

    def __str__(self) -> str:
        return self.message


class RequiredError(_ErrorBase):
    kind: typing.Literal["required"] = "required"

    @property
    def message(self) -> str:
        return "value is required"


class TypeMismatchError(_ErrorBase):
    kind: typing.Literal["type"] = "type"
    expected: str
    got: str

    @property
    def message(self) -> str:
        return f"expected {self.expected}, got {self.got}"


class LengthError(_ErrorBase):
    kind: typing.Literal["length"] = "length"
    constraint: typing.Literal["exact", "min", "max"]
    expected: int
    actual: int

    @property
    def message(self) -> str:
        wording = {"exact": "exactly", "min": "at least", "max": "at most"}
        return (
            f"length must be {wording[self.constraint]} {self.expected}, "
            f"got {self.actual}"
        )


def _number(value: int | float) -> str:
    # Ints print exactly; formatting a huge int with :g overflows.
    if isinstance(value, int):
        return str(value)
    return f"{value:g}"


class RangeError(_ErrorBase):
    kind: typing.Literal["range"] = "range"
    min: int | float | None = None
    max: int | float | None = None
    actual: int | float

    @property
    def message(self) -> str:
        actual = _number(self.actual)
        if self.min is not None and self.max is not None:
            return (
                f"value must be between {_number(self.min)} and "
                f"{_number(self.max)}, got {actual}"
            )
        if self.min is not None:
            return f"value must be at least {_number(self.min)}, got {actual}"
        return f"value must be at most {_number(self.max)}, got {actual}"


class FormatError(_ErrorBase):
    kind: typing.Literal["format"] = "format"
    format: typing.Literal[
        "email", "url", "ip", "regex", "extension", "numeric", "date", "json"
    ]
    detail: str | None = None

    @property
    def message(self) -> str:
        if self.detail:
            return f"invalid {self.format}: {self.detail}"
        return f"invalid {self.format}"


class MembershipError(_ErrorBase):
    kind: typing.Literal["membership"] = "membership"
    allowed: list[pydantic.JsonValue] | None = None
    excluded: list[pydantic.JsonValue] | None = None

    @property
    def message(self) -> str:
        if self.allowed is not None:
            return f"value must be one of {self.allowed!r}"
        return f"value must not be one of {self.excluded!r}"


class NotUniqueError(_ErrorBase):
    kind: typing.Literal["not_unique"] = "not_unique"
    collection: str
    field: str

    @property
    def message(self) -> str:
        return f"{self.field} already exists in {self.collection}"


class LookupFailedError(_ErrorBase):
    kind: typing.Literal["lookup_failed"] = "lookup_failed"
    reason: str

    @property
    def message(self) -> str:
        return f"lookup failed: {self.reason}"


class CustomError(_ErrorBase):
    kind: typing.Literal["custom"] = "custom"
    message_text: str = pydantic.Field(alias="message")

    model_config = pydantic.ConfigDict(frozen=True, populate_by_name=True)

    @property
    def message(self) -> str:
        return self.message_text


ValidationError = typing.Annotated[
    RequiredError
    | TypeMismatchError
    | LengthError
    | RangeError
    | FormatError
    | MembershipError
    | NotUniqueError
    | LookupFailedError
    | CustomError,
    pydantic.Field(discriminator="kind"),
]
"""Any structured validation failure, tagged by its ``kind``."""

ErrorMap = dict[str, list[ValidationError]]
"""Field path -> ordered errors for that field."""

ERROR_TYPES: tuple[type[_ErrorBase], ...] = typing.get_args(
    typing.get_args(ValidationError)[0]
)

_ERROR_MAP = pydantic.TypeAdapter(ErrorMap)


def is_validation_error(obj: typing.Any) -> bool:
    """Return True if obj is one of the structured error models."""
    return isinstance(obj, ERROR_TYPES)


def dump_errors(errors: ErrorMap) -> dict[str, list[dict[str, typing.Any]]]:
    """Convert an error map into plain JSON-ready data.

    Args:
        errors: Error map from a failed validation

    Returns:
        Dictionary of field path -> list of error dictionaries, each with a
        ``kind`` key and the error's own fields
    """
    return _ERROR_MAP.dump_python(errors, mode="json", by_alias=True)


def dump_errors_json(errors: ErrorMap, indent: int | None = None) -> bytes:
    """Serialize an error map to JSON bytes."""
    return _ERROR_MAP.dump_json(errors, by_alias=True, indent=indent)


def load_errors(data: typing.Any) -> ErrorMap:
    """Rebuild an error map from data produced by ``dump_errors``."""
    return _ERROR_MAP.validate_python(data)


class RuleConfigurationError(ValueError):
    """Raised while building a rule, chain or form with invalid settings."""


class FormValidationError(Exception):
    """Raised when a caller asks for validation failures as exceptions.

    Attributes:
        errors: Field path -> list of errors
    """

    def __init__(self, errors: ErrorMap) -> None:
        self.errors = errors
        fields = ", ".join(errors) or "<none>"
        super().__init__(f"validation failed for: {fields}")
