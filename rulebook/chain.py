"""Ordered rule chains applied to one value."""

import copy
import typing

from . import context as _context
from . import errors as _errors
from . import result as _result
from . import rules as _rules
from . import value as _value

# Yields (rule, value to check), receives the rule's outcome, returns the result.
_Steps = typing.Generator[
    tuple[_rules.Rule, typing.Any],
    "_errors.ValidationError | None",
    _result.ChainResult,
]


class Rules:
    """An ordered chain of rules with an optional default value.

    Chains are immutable: ``add`` and ``default`` return a new chain, so a
    chain can be extended from a shared base without affecting it.

    Example:
        >>> password = Rules().add(Rule.required()).add(Rule.min_length(8))
        >>> password.validate("secret").errors[0].kind
        'length'

    Attributes:
        short_circuit: Stop at the first failing rule (default True)
        validate_default: Run the rules on a substituted default as well
    """

    def __init__(
        self,
        *rules: _rules.Rule,
        short_circuit: bool = True,
        validate_default: bool = False,
    ) -> None:
        for rule in rules:
            if not isinstance(rule, _rules.Rule):
                raise _errors.RuleConfigurationError(
                    f"Rules accepts Rule instances, got {rule!r}"
                )
        self._rules: tuple[_rules.Rule, ...] = tuple(rules)
        self._default: typing.Any = _value.MISSING
        self.short_circuit = short_circuit
        self.validate_default = validate_default

    def _copy(self, rules: tuple[_rules.Rule, ...], default: typing.Any) -> "Rules":
        chain = Rules(
            *rules,
            short_circuit=self.short_circuit,
            validate_default=self.validate_default,
        )
        chain._default = default
        return chain

    def add(self, rule: _rules.Rule) -> "Rules":
        """Return a new chain with ``rule`` appended."""
        if not isinstance(rule, _rules.Rule):
            raise _errors.RuleConfigurationError(
                f"Rules accepts Rule instances, got {rule!r}"
            )
        return self._copy(self._rules + (rule,), self._default)

    def default(self, value: typing.Any) -> "Rules":
        """Return a new chain that substitutes ``value`` for absent or null input."""
        if value is _value.MISSING:
            raise _errors.RuleConfigurationError("default value cannot be MISSING")
        return self._copy(self._rules, copy.deepcopy(value))

    @property
    def rules(self) -> tuple[_rules.Rule, ...]:
        return self._rules

    @property
    def has_default(self) -> bool:
        return self._default is not _value.MISSING

    @property
    def default_value(self) -> typing.Any:
        """Configured default, or MISSING."""
        return copy.deepcopy(self._default)

    @property
    def needs_context(self) -> bool:
        """True if any rule consults external state."""
        return any(rule.needs_context for rule in self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        rules = ", ".join(repr(rule) for rule in self._rules)
        return f"Rules({rules})"

    def _steps(self, value: typing.Any) -> _Steps:
        if _value.is_absent(value) and self.has_default:
            value = copy.deepcopy(self._default)
            if not self.validate_default:
                return _result.ChainResult(value)

        errors: list[_errors.ValidationError] = []
        for rule in self._rules:
            error = yield rule, value
            if error is not None:
                errors.append(error)
                if self.short_circuit:
                    break
        return _result.ChainResult(value, tuple(errors))

    def validate(self, value: typing.Any = _value.MISSING) -> _result.ChainResult:
        """Run the chain synchronously.

        Args:
            value: Value to check; MISSING (the default) means absent

        Returns:
            ChainResult with the (possibly defaulted) value and collected errors
        """
        steps = self._steps(value)
        try:
            rule, current = next(steps)
            while True:
                rule, current = steps.send(rule.evaluate(current))
        except StopIteration as stop:
            return stop.value

    async def validate_async(
        self,
        value: typing.Any = _value.MISSING,
        context: _context.ValidationContext | None = None,
    ) -> _result.ChainResult:
        """Run the chain, awaiting each rule in order.

        Args:
            value: Value to check; MISSING (the default) means absent
            context: External collaborators for rules such as ``unique``

        Returns:
            ChainResult with the (possibly defaulted) value and collected errors
        """
        steps = self._steps(value)
        try:
            rule, current = next(steps)
            while True:
                outcome = await rule.evaluate_async(current, context)
                rule, current = steps.send(outcome)
        except StopIteration as stop:
            return stop.value
