"""Helpers over the JSON value model documents are made of."""

import copy
import typing

import pydantic


class _Missing:
    """Marker for a value that is absent from the document."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Missing":
        return self

    def __deepcopy__(self, memo: dict[int, typing.Any]) -> "_Missing":
        return self


MISSING: typing.Any = _Missing()
"""Sentinel returned by path resolution when nothing lives at the path."""

JSON_VALUE = pydantic.TypeAdapter(pydantic.JsonValue)
"""Adapter used to parse JSON text into plain Python values."""


def _tuples_to_lists(value: typing.Any) -> typing.Any:
    if isinstance(value, (list, tuple)):
        return [_tuples_to_lists(item) for item in value]
    if isinstance(value, dict):
        return {key: _tuples_to_lists(item) for key, item in value.items()}
    return value


def to_json_value(value: typing.Any) -> typing.Any:
    """Normalize a configured value into the JSON value model.

    Tuples become lists, the same way arrays are treated everywhere else.

    Raises:
        ValueError: If the value (or anything inside it) is not JSON, e.g.
            a Decimal, a set or a non-string object key
    """
    return JSON_VALUE.validate_python(_tuples_to_lists(value))


def is_absent(value: typing.Any) -> bool:
    """Return True for values rules treat as not present (MISSING or None)."""
    return value is MISSING or value is None


def is_number(value: typing.Any) -> bool:
    """Return True for ints and floats, excluding bools."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def type_name(value: typing.Any) -> str:
    """Name the JSON kind of a value, as used in type mismatch errors.

    Args:
        value: Any value

    Returns:
        One of null, bool, integer, float, string, array, object, or the
        Python class name for values outside the JSON model
    """
    if is_absent(value):
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def values_equal(left: typing.Any, right: typing.Any) -> bool:
    """Compare two values with JSON semantics.

    Booleans only equal booleans, so ``1`` and ``True`` differ. Arrays and
    objects are compared element by element with the same rule.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(
            values_equal(a, b) for a, b in zip(left, right)
        )
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(
            values_equal(left[key], right[key]) for key in left
        )
    if is_number(left) and is_number(right):
        return left == right
    return type_name(left) == type_name(right) and left == right


def _as_index(segment: str) -> int | None:
    if segment.isascii() and segment.isdigit():
        return int(segment)
    return None


def split_path(path: str) -> tuple[str, ...]:
    """Split a dot-notation path into its segments.

    Args:
        path: Field path such as ``user.emails.1``

    Returns:
        Tuple of segments

    Raises:
        ValueError: If the path is empty or has an empty segment
    """
    if not isinstance(path, str) or not path:
        raise ValueError("field path must be a non-empty string")
    segments = tuple(path.split("."))
    if any(segment == "" for segment in segments):
        raise ValueError(f"field path {path!r} has an empty segment")
    return segments


def resolve(document: typing.Any, segments: typing.Sequence[str]) -> typing.Any:
    """Look up the value at a path, returning MISSING instead of failing.

    An integer segment indexes into a list; any segment keys into a dict.
    Anything else along the way (None, scalars, out of range indexes) makes
    the whole path absent.

    Args:
        document: Root value to descend through
        segments: Path segments from ``split_path``

    Returns:
        The value found, or MISSING
    """
    current = document
    for segment in segments:
        if isinstance(current, dict):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, (list, tuple)):
            index = _as_index(segment)
            if index is None or index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def _new_container(source: typing.Any) -> dict[str, typing.Any] | list[typing.Any]:
    if isinstance(source, (list, tuple)):
        return []
    return {}


def _set_item(
    container: dict[str, typing.Any] | list[typing.Any],
    segment: str,
    value: typing.Any,
) -> None:
    if isinstance(container, list):
        index = _as_index(segment)
        if index is None:
            raise ValueError(f"cannot index an array with {segment!r}")
        while len(container) <= index:
            container.append(None)
        container[index] = value
    else:
        container[segment] = value


def _get_item(
    container: dict[str, typing.Any] | list[typing.Any], segment: str
) -> typing.Any:
    if isinstance(container, list):
        index = _as_index(segment)
        if index is None or index >= len(container):
            return None
        return container[index]
    return container.get(segment)


def assign(
    output: dict[str, typing.Any] | list[typing.Any],
    segments: typing.Sequence[str],
    value: typing.Any,
    source: typing.Any = None,
) -> None:
    """Write a value into an output document at a path.

    Intermediate containers are created as needed. A new container mirrors
    the kind found at the same place in ``source`` (a list where the input
    had a list, a dict otherwise) so a fully declared document comes back
    with its original shape. Lists are padded with None up to the index.

    Args:
        output: Document being assembled, modified in place
        segments: Path segments from ``split_path``
        value: Value to store; it is deep-copied
        source: Input document the output is built from
    """
    container = output
    for depth, segment in enumerate(segments[:-1]):
        child = _get_item(container, segment)
        if not isinstance(child, (dict, list)):
            child = _new_container(resolve(source, segments[: depth + 1]))
            if isinstance(child, list) and _as_index(segments[depth + 1]) is None:
                child = {}
            _set_item(container, segment, child)
        elif isinstance(child, list) and _as_index(segments[depth + 1]) is None:
            raise ValueError(
                f"path {'.'.join(segments)!r} conflicts with an array at "
                f"{'.'.join(segments[: depth + 1])!r}"
            )
        container = child
    _set_item(container, segments[-1], copy.deepcopy(value))
