"""Validate whole documents against per-field rule chains."""

import asyncio
import logging
import typing
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator

import pydantic

from . import chain as _chain
from . import context as _context
from . import errors as _errors
from . import options as _options
from . import record as _record
from . import result as _result
from . import rules as _rules
from . import value as _value

logger = logging.getLogger(__name__)

DOCUMENT_KEY = "__document__"
"""Error map key for problems with the document itself (e.g. invalid JSON)."""


class _Field(typing.NamedTuple):
    path: str
    segments: tuple[str, ...]
    rules: _chain.Rules


def _as_document(document: typing.Any) -> typing.Any:
    if isinstance(document, pydantic.BaseModel):
        return document.model_dump()
    return document


class FormValidator:
    """Maps dot-notation field paths to rule chains.

    Fields are checked in the order they were added, every field is checked
    even after another one fails, and the error map lists failed fields in
    that same order.

    Example:
        >>> form = (
        ...     FormValidator()
        ...     .add("email", Rules(Rule.required(), Rule.email()))
        ...     .add("age", Rules(Rule.integer()).default(21))
        ... )
        >>> form.validate({"email": "alice@example.com"}).result
        {'email': 'alice@example.com', 'age': 21}

    Attributes:
        stop_on_first_error: Stop after the first field that fails
    """

    def __init__(self, *, stop_on_first_error: bool = False) -> None:
        self.stop_on_first_error = stop_on_first_error
        self._fields: dict[str, _Field] = {}

    def add(self, path: str, rules: _chain.Rules | _rules.Rule) -> "FormValidator":
        """Return a new validator with a chain registered for ``path``.

        Adding a path twice replaces its chain but keeps its position.

        Args:
            path: Dot-notation field path, e.g. ``user.emails.0``
            rules: Rule chain, or a single Rule

        Raises:
            RuleConfigurationError: If the path is malformed or rules is not a
                Rule or Rules
        """
        if isinstance(rules, _rules.Rule):
            rules = _chain.Rules(rules)
        if not isinstance(rules, _chain.Rules):
            raise _errors.RuleConfigurationError(
                f"field {path!r} needs Rules or a Rule, got {rules!r}"
            )
        try:
            segments = _value.split_path(path)
        except ValueError as e:
            raise _errors.RuleConfigurationError(str(e)) from e

        form = FormValidator(stop_on_first_error=self.stop_on_first_error)
        form._fields = dict(self._fields)
        form._fields[path] = _Field(path, segments, rules)
        return form

    @property
    def fields(self) -> dict[str, _chain.Rules]:
        return {path: field.rules for path, field in self._fields.items()}

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FormValidator(fields={list(self._fields)!r})"

    def _assemble(
        self,
        document: typing.Any,
        outcomes: Iterable[tuple[_Field, _result.ChainResult]],
        original: typing.Any,
        raise_errors: bool,
    ) -> _result.FormResult:
        errors: _errors.ErrorMap = {}
        output: dict[str, typing.Any] | list[typing.Any] = (
            [] if isinstance(document, (list, tuple)) else {}
        )
        for field, outcome in outcomes:
            if not outcome.ok:
                errors[field.path] = list(outcome.errors)
                if self.stop_on_first_error:
                    break
                continue
            if outcome.value is _value.MISSING:
                continue
            try:
                _value.assign(output, field.segments, outcome.value, document)
            except ValueError:
                # An array already sits where this path needs an object key.
                errors[field.path] = [
                    _errors.TypeMismatchError(expected="object", got="array")
                ]

        if errors:
            logger.debug(
                "Validation failed for %d of %d fields: %s",
                len(errors),
                len(self._fields),
                ", ".join(errors),
            )
            if raise_errors:
                raise _errors.FormValidationError(errors)
            return _result.FormResult(errors, None, original)
        return _result.FormResult(None, output, original)

    def validate(
        self, document: _record.Document, *, raise_errors: bool = False
    ) -> _result.FormResult:
        """Validate a document synchronously.

        The output mirrors the root of the input, so a list document yields a
        list. A field whose value passed but cannot be placed in that output
        (an object key under an array, including a default for a key path on
        a list document) fails with ``TypeMismatchError(expected="object",
        got="array")``.

        Args:
            document: Dict (or list, or Pydantic model) to validate
            raise_errors: If True, raise FormValidationError instead of
                returning errors in the result

        Returns:
            FormResult with the assembled document (including defaults) on
            success, or the error map on failure

        Raises:
            FormValidationError: If raise_errors is True and validation fails
        """
        data = _as_document(document)

        def outcomes() -> Iterator[tuple[_Field, _result.ChainResult]]:
            for field in self._fields.values():
                value = _value.resolve(data, field.segments)
                yield field, field.rules.validate(value)

        return self._assemble(data, outcomes(), document, raise_errors)

    async def validate_async(
        self,
        document: _record.Document,
        context: _context.ValidationContext | None = None,
        *,
        raise_errors: bool = False,
        max_concurrency: int | None = None,
    ) -> _result.FormResult:
        """Validate a document, awaiting rules that consult external state.

        Rules within a field run in order. Separate fields run concurrently
        (unless ``stop_on_first_error`` is set), but the error map still
        follows field declaration order.

        Args:
            document: Dict (or list, or Pydantic model) to validate
            context: Collaborators such as the uniqueness lookup
            raise_errors: If True, raise FormValidationError on failure
            max_concurrency: Fields validated at once (default from context)

        Returns:
            FormResult, as for ``validate``
        """
        if context is None:
            context = _context.ValidationContext()
        data = _as_document(document)
        fields = list(self._fields.values())

        if self.stop_on_first_error:
            outcomes: list[tuple[_Field, _result.ChainResult]] = []
            for field in fields:
                value = _value.resolve(data, field.segments)
                outcome = await field.rules.validate_async(value, context)
                outcomes.append((field, outcome))
                if not outcome.ok:
                    break
            return self._assemble(data, outcomes, document, raise_errors)

        semaphore = asyncio.Semaphore(max_concurrency or context.max_concurrency)

        async def run(field: _Field) -> tuple[_Field, _result.ChainResult]:
            async with semaphore:
                value = _value.resolve(data, field.segments)
                return field, await field.rules.validate_async(value, context)

        outcomes = list(await asyncio.gather(*(run(field) for field in fields)))
        return self._assemble(data, outcomes, document, raise_errors)

    def validate_json(
        self, json: _record.Json, *, raise_errors: bool = False
    ) -> _result.FormResult:
        """Parse JSON text and validate the resulting document.

        Unparseable input fails with a ``json`` format error under
        ``__document__``.
        """
        try:
            data = _value.JSON_VALUE.validate_json(json)
        except pydantic.ValidationError as e:
            errors: _errors.ErrorMap = {
                DOCUMENT_KEY: [
                    _errors.FormatError(
                        format="json", detail=e.errors()[0].get("msg")
                    )
                ]
            }
            if raise_errors:
                raise _errors.FormValidationError(errors) from e
            return _result.FormResult(errors, None, json)
        outcome = self.validate(data, raise_errors=raise_errors)
        return outcome._replace(value=json)

    def validate_many(
        self,
        documents: Iterable[_record.Document],
        *,
        error_option: _options.ErrorOption = _options.ErrorOption.RETURN,
    ) -> Iterator[_result.FormResult]:
        """Validate documents one by one.

        Args:
            documents: Iterable of documents
            error_option: How to handle failed documents (RETURN, RAISE, SKIP)

        Yields:
            FormResult for each document (failures dropped with SKIP)

        Raises:
            FormValidationError: If error_option is RAISE and a document fails
        """
        for document in documents:
            outcome = self.validate(
                document, raise_errors=error_option == _options.ErrorOption.RAISE
            )
            if outcome.errors and error_option == _options.ErrorOption.SKIP:
                continue
            yield outcome

    async def validate_many_async(
        self,
        documents: AsyncIterable[_record.Document] | Iterable[_record.Document],
        context: _context.ValidationContext | None = None,
        *,
        error_option: _options.ErrorOption = _options.ErrorOption.RETURN,
        max_concurrency: int | None = None,
    ) -> AsyncIterator[_result.FormResult]:
        """Asynchronously validate documents one by one, in input order.

        Args:
            documents: Async or sync iterable of documents
            context: Collaborators such as the uniqueness lookup
            error_option: How to handle failed documents (RETURN, RAISE, SKIP)
            max_concurrency: Fields validated at once within each document

        Yields:
            FormResult for each document (failures dropped with SKIP)

        Raises:
            FormValidationError: If error_option is RAISE and a document fails
        """
        if context is None:
            context = _context.ValidationContext()

        async def iterate() -> AsyncIterator[_record.Document]:
            if isinstance(documents, AsyncIterable):
                async for document in documents:
                    yield document
            else:
                for document in documents:
                    yield document

        async for document in iterate():
            outcome = await self.validate_async(
                document,
                context,
                raise_errors=error_option == _options.ErrorOption.RAISE,
                max_concurrency=max_concurrency,
            )
            if outcome.errors and error_option == _options.ErrorOption.SKIP:
                continue
            yield outcome
