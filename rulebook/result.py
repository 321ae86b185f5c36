"""Result types for validation operations."""

import typing as _t

from . import errors as _errors
from . import record as _record


class ChainResult(_t.NamedTuple):
    """Result of running a rule chain over one value.

    Attributes:
        value: Value after default substitution (MISSING if absent and no default)
        errors: Errors collected in rule order, empty on success
    """

    value: _t.Any
    errors: tuple[_errors.ValidationError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


class FormResult(_t.NamedTuple):
    """Result of validating a whole document.

    Attributes:
        errors: Field path -> errors if validation failed, None otherwise
        result: Assembled output document if validation succeeded, None otherwise
        value: Original document that was validated
    """

    errors: _errors.ErrorMap | None
    result: dict[str, _t.Any] | list[_t.Any] | None
    value: _record.Document | _record.Json

    @property
    def ok(self) -> bool:
        return self.errors is None
