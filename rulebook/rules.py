"""Validation rules applied to a single value.

Every built-in rule except ``required`` passes when the value is absent or
null, so chains can express "optional, but if present it must ...".
"""

import asyncio
import ipaddress
import logging
import re
import typing

import dateutil.parser  # type: ignore[import-untyped]

from . import context as _context
from . import errors as _errors
from . import value as _value

logger = logging.getLogger(__name__)

Check = typing.Callable[[typing.Any], "_errors.ValidationError | None"]
"""Predicate returning an error, or None when the value passes."""

CustomCheck = typing.Callable[
    [typing.Any], "_errors.ValidationError | str | bool | None"
]
"""User predicate: None/True pass, False or a message fail, or a ready error."""

Number = int | float

_URL_PATTERN = re.compile(
    r"^(?:https?://|www\d{0,3}\.)"
    r"(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,63}\.?|"
    r"localhost|"
    r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})"
    r"(?::\d+)?"
    r"(?:/?|[/?#]\S+)$",
    re.IGNORECASE,
)

_ACCEPTED = ("yes", "on", "1", "true")


class Rule:
    """A single check over one value.

    Rules are built through the factory methods (``Rule.required()``,
    ``Rule.min_length(3)``, ``Rule.custom(func)`` ...) and never change after
    construction, so one instance can be shared by any number of chains.

    Attributes:
        name: Short identifier of the check, e.g. ``min_length``
        params: Configuration the rule was built with
    """

    needs_context: bool = False

    def __init__(
        self,
        name: str,
        check: Check,
        params: dict[str, typing.Any] | None = None,
    ) -> None:
        self.name = name
        self.params = dict(params or {})
        self._check = check

    def evaluate(self, value: typing.Any) -> "_errors.ValidationError | None":
        """Check a value.

        Args:
            value: Value to check; MISSING when absent from the document

        Returns:
            The error if the value fails, None otherwise
        """
        return self._check(value)

    async def evaluate_async(
        self,
        value: typing.Any,
        context: _context.ValidationContext | None = None,
    ) -> "_errors.ValidationError | None":
        """Check a value, consulting external state if the rule needs it."""
        return self.evaluate(value)

    def __repr__(self) -> str:
        args = ", ".join(f"{key}={val!r}" for key, val in self.params.items())
        return f"Rule.{self.name}({args})"

    # Presence

    @classmethod
    def required(cls) -> "Rule":
        """Value must be present and not null."""

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return _errors.RequiredError()
            return None

        return cls("required", check)

    # Types

    @classmethod
    def _of_type(
        cls, name: str, expected: str, matches: typing.Callable[[typing.Any], bool]
    ) -> "Rule":
        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value) or matches(value):
                return None
            return _errors.TypeMismatchError(
                expected=expected, got=_value.type_name(value)
            )

        return cls(name, check)

    @classmethod
    def string(cls) -> "Rule":
        """Value must be a string."""
        return cls._of_type("string", "string", lambda v: isinstance(v, str))

    @classmethod
    def integer(cls) -> "Rule":
        """Value must be an int (bools and floats are rejected)."""
        return cls._of_type(
            "integer",
            "integer",
            lambda v: isinstance(v, int) and not isinstance(v, bool),
        )

    @classmethod
    def float(cls) -> "Rule":
        """Value must be a float; integers are rejected."""
        return cls._of_type("float", "float", lambda v: isinstance(v, float))

    @classmethod
    def boolean(cls) -> "Rule":
        return cls._of_type("boolean", "bool", lambda v: isinstance(v, bool))

    @classmethod
    def array(cls) -> "Rule":
        return cls._of_type("array", "array", lambda v: isinstance(v, (list, tuple)))

    @classmethod
    def object(cls) -> "Rule":
        return cls._of_type("object", "object", lambda v: isinstance(v, dict))

    # Sizes

    @classmethod
    def _sized(
        cls,
        name: str,
        constraint: typing.Literal["exact", "min", "max"],
        expected: int,
    ) -> "Rule":
        if isinstance(expected, bool) or not isinstance(expected, int) or expected < 0:
            raise _errors.RuleConfigurationError(
                f"{name} needs a non-negative integer, got {expected!r}"
            )
        compare = {
            "exact": lambda actual: actual == expected,
            "min": lambda actual: actual >= expected,
            "max": lambda actual: actual <= expected,
        }[constraint]

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if not isinstance(value, (str, list, tuple, dict)):
                return _errors.TypeMismatchError(
                    expected="string, array, or object",
                    got=_value.type_name(value),
                )
            if compare(len(value)):
                return None
            return _errors.LengthError(
                constraint=constraint, expected=expected, actual=len(value)
            )

        return cls(name, check, {"n": expected})

    @classmethod
    def length(cls, n: int) -> "Rule":
        """String, array or object must have exactly ``n`` characters/items."""
        return cls._sized("length", "exact", n)

    @classmethod
    def min_length(cls, n: int) -> "Rule":
        """String, array or object must have at least ``n`` characters/items."""
        return cls._sized("min_length", "min", n)

    @classmethod
    def max_length(cls, n: int) -> "Rule":
        """String, array or object must have at most ``n`` characters/items."""
        return cls._sized("max_length", "max", n)

    # Numbers

    @classmethod
    def _bounded(
        cls, name: str, minimum: typing.Any = None, maximum: typing.Any = None
    ) -> "Rule":
        for bound in (minimum, maximum):
            if bound is not None and not _value.is_number(bound):
                raise _errors.RuleConfigurationError(
                    f"{name} needs a number, got {bound!r}"
                )

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if not _value.is_number(value):
                return _errors.TypeMismatchError(
                    expected="number", got=_value.type_name(value)
                )
            if (minimum is not None and value < minimum) or (
                maximum is not None and value > maximum
            ):
                return _errors.RangeError(min=minimum, max=maximum, actual=value)
            return None

        params = {"min": minimum} if maximum is None else {"max": maximum}
        return cls(name, check, params)

    @classmethod
    def min_value(cls, minimum: Number) -> "Rule":
        """Number must be greater than or equal to ``minimum``."""
        return cls._bounded("min_value", minimum=minimum)

    @classmethod
    def max_value(cls, maximum: Number) -> "Rule":
        """Number must be less than or equal to ``maximum``."""
        return cls._bounded("max_value", maximum=maximum)

    @classmethod
    def numeric(cls) -> "Rule":
        """Value must be a string holding a number, e.g. ``"12.5"``."""

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if not isinstance(value, str):
                return _errors.TypeMismatchError(
                    expected="string", got=_value.type_name(value)
                )
            try:
                float(value)
            except ValueError:
                return _errors.FormatError(format="numeric", detail=value)
            if value != value.strip():
                return _errors.FormatError(format="numeric", detail=value)
            return None

        return cls("numeric", check)

    # Values

    @staticmethod
    def _json_setting(name: str, value: typing.Any) -> typing.Any:
        try:
            return _value.to_json_value(value)
        except ValueError as e:
            raise _errors.RuleConfigurationError(
                f"{name} needs JSON values, got {value!r}"
            ) from e

    @classmethod
    def equal(cls, expected: typing.Any) -> "Rule":
        """Value must equal ``expected`` (JSON equality, so 1 != True)."""
        expected = cls._json_setting("equal", expected)

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value) or _value.values_equal(value, expected):
                return None
            return _errors.MembershipError(allowed=[expected])

        return cls("equal", check, {"value": expected})

    @classmethod
    def in_values(cls, values: typing.Iterable[typing.Any]) -> "Rule":
        """Value must be one of ``values``."""
        allowed = cls._json_setting("in_values", list(values))
        if not allowed:
            raise _errors.RuleConfigurationError("in_values needs at least one value")

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if any(_value.values_equal(value, item) for item in allowed):
                return None
            return _errors.MembershipError(allowed=allowed)

        return cls("in_values", check, {"values": allowed})

    @classmethod
    def not_in_values(cls, values: typing.Iterable[typing.Any]) -> "Rule":
        """Value must not be any of ``values``."""
        excluded = cls._json_setting("not_in_values", list(values))
        if not excluded:
            raise _errors.RuleConfigurationError(
                "not_in_values needs at least one value"
            )

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if any(_value.values_equal(value, item) for item in excluded):
                return _errors.MembershipError(excluded=excluded)
            return None

        return cls("not_in_values", check, {"values": excluded})

    @classmethod
    def accepted(cls) -> "Rule":
        """Value must be an affirmative answer: yes, on, 1 or true."""

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if isinstance(value, bool):
                text = "true" if value else "false"
            elif isinstance(value, str):
                text = value.lower()
            elif _value.is_number(value):
                text = str(value)
            else:
                return _errors.TypeMismatchError(
                    expected="string, bool, or number", got=_value.type_name(value)
                )
            if text in _ACCEPTED:
                return None
            return _errors.MembershipError(allowed=list(_ACCEPTED))

        return cls("accepted", check)

    # Formats

    @staticmethod
    def _strings(name: str, values: typing.Iterable[str]) -> list[str]:
        items = [values] if isinstance(values, str) else list(values)
        if not items:
            raise _errors.RuleConfigurationError(f"{name} needs at least one value")
        if not all(isinstance(item, str) for item in items):
            raise _errors.RuleConfigurationError(f"{name} needs strings, got {items!r}")
        return sorted(set(items))

    @staticmethod
    def _text(value: typing.Any) -> _errors.ValidationError | None:
        if isinstance(value, str):
            return None
        return _errors.TypeMismatchError(
            expected="string", got=_value.type_name(value)
        )

    @classmethod
    def email(cls, allowed_domains: typing.Iterable[str] | None = None) -> "Rule":
        """Value must look like an email address.

        The local part needs at least three characters and the domain at
        least two labels, the second of which is two characters or longer.

        Args:
            allowed_domains: If given, only these domains are accepted
        """
        domains = None
        if allowed_domains is not None:
            domains = cls._strings("email", allowed_domains)

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if (error := cls._text(value)) is not None:
                return error
            parts = value.split("@")
            if len(parts) != 2:
                return _errors.FormatError(format="email", detail=value)
            name, domain = parts
            labels = domain.split(".")
            if len(labels) < 2 or len(labels[1]) < 2:
                return _errors.FormatError(format="email", detail=value)
            if domains is not None and domain not in domains:
                return _errors.MembershipError(allowed=domains)
            if len(name) < 3:
                return _errors.FormatError(format="email", detail=value)
            return None

        return cls("email", check, {"allowed_domains": domains})

    @classmethod
    def url(cls) -> "Rule":
        """Value must be an http(s) or www URL."""

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if (error := cls._text(value)) is not None:
                return error
            if _URL_PATTERN.match(value):
                return None
            return _errors.FormatError(format="url", detail=value)

        return cls("url", check)

    @classmethod
    def ip(cls, version: int | None = None) -> "Rule":
        """Value must be an IP address.

        Args:
            version: 4 or 6 to accept only that family, None for either
        """
        if version not in (None, 4, 6):
            raise _errors.RuleConfigurationError(
                f"ip version must be 4 or 6, got {version!r}"
            )

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if (error := cls._text(value)) is not None:
                return error
            try:
                address = ipaddress.ip_address(value)
            except ValueError:
                return _errors.FormatError(format="ip", detail=value)
            if version is not None and address.version != version:
                return _errors.FormatError(format="ip", detail=f"not IPv{version}")
            return None

        return cls("ip", check, {"version": version})

    @classmethod
    def regex(cls, pattern: str, message: str | None = None) -> "Rule":
        """Value must contain a match for ``pattern``.

        Args:
            pattern: Regular expression, compiled once here
            message: Text reported instead of the offending value

        Raises:
            RuleConfigurationError: If the pattern does not compile
        """
        try:
            compiled = re.compile(pattern)
        except (re.error, TypeError) as e:
            raise _errors.RuleConfigurationError(
                f"invalid regex {pattern!r}: {e}"
            ) from e
        if message is not None and not isinstance(message, str):
            raise _errors.RuleConfigurationError(
                f"regex message must be a string, got {message!r}"
            )

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if (error := cls._text(value)) is not None:
                return error
            if compiled.search(value):
                return None
            return _errors.FormatError(
                format="regex", detail=message if message is not None else value
            )

        return cls("regex", check, {"pattern": pattern})

    @classmethod
    def extensions(cls, allowed: typing.Iterable[str]) -> "Rule":
        """File name must end in one of the ``allowed`` extensions (no dots)."""
        extensions = sorted(
            {ext.lstrip(".") for ext in cls._strings("extensions", allowed)}
        )

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if (error := cls._text(value)) is not None:
                return error
            if value.rsplit(".", 1)[-1] in extensions:
                return None
            return _errors.FormatError(
                format="extension", detail=", ".join(extensions)
            )

        return cls("extensions", check, {"allowed": extensions})

    @classmethod
    def date(cls) -> "Rule":
        """Value must be a string dateutil can parse as a date or datetime."""

        def check(value: typing.Any) -> _errors.ValidationError | None:
            if _value.is_absent(value):
                return None
            if (error := cls._text(value)) is not None:
                return error
            try:
                dateutil.parser.parse(value)
            except (ValueError, OverflowError):
                return _errors.FormatError(format="date", detail=value)
            return None

        return cls("date", check)

    # Extension points

    @classmethod
    def custom(cls, func: CustomCheck, name: str | None = None) -> "Rule":
        """Wrap a user predicate as a rule.

        Args:
            func: Called with the value. Return None or True to pass, False
                or a message to fail, or a ready ValidationError
            name: Identifier shown in reprs (defaults to the function name)

        Raises:
            RuleConfigurationError: If func is not callable
        """
        if not callable(func):
            raise _errors.RuleConfigurationError(
                f"custom rule needs a callable, got {func!r}"
            )
        return CustomRule(func, name or getattr(func, "__name__", "custom"))

    @classmethod
    def unique(
        cls, collection: str, field: str, exclude_id: typing.Any | None = None
    ) -> "Rule":
        """Value must not already exist in ``collection.field``.

        Only meaningful with ``validate_async`` and a context whose lookup
        answers the question.

        Args:
            collection: Collection (table) to search
            field: Field within the collection
            exclude_id: Id of the record being updated, ignored by the check
        """
        return UniqueRule(collection, field, exclude_id)


class CustomRule(Rule):
    """Rule backed by a user-supplied predicate."""

    def __init__(self, func: CustomCheck, name: str) -> None:
        super().__init__(name, self._run, {"func": func})
        self.func = func

    def _run(self, value: typing.Any) -> _errors.ValidationError | None:
        try:
            outcome = self.func(value)
        except Exception as e:
            return _errors.CustomError(message=f"{self.name} failed: {e}")
        if outcome is None or outcome is True:
            return None
        if outcome is False:
            return _errors.CustomError(message=f"{self.name} rejected the value")
        if isinstance(outcome, str):
            return _errors.CustomError(message=outcome)
        if _errors.is_validation_error(outcome):
            return outcome
        return _errors.CustomError(
            message=f"{self.name} returned unsupported {type(outcome).__name__}"
        )


class UniqueRule(Rule):
    """Rule asking an external lookup whether the value is already taken."""

    needs_context = True

    def __init__(
        self, collection: str, field: str, exclude_id: typing.Any | None = None
    ) -> None:
        if not (isinstance(collection, str) and isinstance(field, str)):
            raise _errors.RuleConfigurationError(
                f"unique needs string names, got {collection!r} and {field!r}"
            )
        if not collection or not field:
            raise _errors.RuleConfigurationError(
                "unique needs a collection and a field"
            )
        super().__init__(
            "unique",
            self._sync_check,
            {"collection": collection, "field": field, "exclude_id": exclude_id},
        )
        self.collection = collection
        self.field = field
        self.exclude_id = exclude_id

    def _sync_check(self, value: typing.Any) -> _errors.ValidationError | None:
        if _value.is_absent(value):
            return None
        return _errors.LookupFailedError(reason="asynchronous validation required")

    async def evaluate_async(
        self,
        value: typing.Any,
        context: _context.ValidationContext | None = None,
    ) -> _errors.ValidationError | None:
        if _value.is_absent(value):
            return None
        if not (isinstance(value, str) or _value.is_number(value)):
            return _errors.TypeMismatchError(
                expected="string or number", got=_value.type_name(value)
            )
        if context is None or context.lookup is None:
            return _errors.LookupFailedError(reason="no lookup configured")

        try:
            taken = await asyncio.wait_for(
                context.lookup.exists(
                    self.collection, self.field, value, self.exclude_id
                ),
                timeout=context.lookup_timeout,
            )
        except TimeoutError:
            logger.warning(
                "Lookup for %s.%s timed out after %ss",
                self.collection,
                self.field,
                context.lookup_timeout,
            )
            return _errors.LookupFailedError(reason="timed out")
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            logger.warning("Lookup for %s.%s was cancelled", self.collection, self.field)
            return _errors.LookupFailedError(reason="cancelled")
        except Exception as e:
            logger.warning(
                "Lookup for %s.%s failed: %s", self.collection, self.field, e
            )
            return _errors.LookupFailedError(reason=str(e) or type(e).__name__)

        if taken:
            return _errors.NotUniqueError(collection=self.collection, field=self.field)
        return None
