"""Aggregate counts over batches of validated documents."""

import json
import typing
from collections import Counter
from dataclasses import dataclass, field

from . import result as _result


@dataclass
class ValidationStats:
    """Running tally of form validation outcomes.

    Feed results one at a time with ``add`` (useful while consuming
    ``validate_many`` lazily) or all at once with ``from_results``.

    Attributes:
        total: Documents seen
        valid_count: Documents without errors
        error_counts: Error kind -> occurrences across all documents
        field_error_counts: Field path -> documents where that field failed
    """

    total: int = 0
    valid_count: int = 0
    error_counts: Counter[str] = field(default_factory=Counter)
    field_error_counts: Counter[str] = field(default_factory=Counter)

    @classmethod
    def from_results(
        cls, results: typing.Iterable[_result.FormResult]
    ) -> "ValidationStats":
        stats = cls()
        for outcome in results:
            stats.add(outcome)
        return stats

    def add(self, outcome: _result.FormResult) -> _result.FormResult:
        """Count one result and hand it back, so it can wrap a generator."""
        self.total += 1
        if outcome.errors is None:
            self.valid_count += 1
            return outcome
        for path, errors in outcome.errors.items():
            self.field_error_counts[path] += 1
            self.error_counts.update(str(error.kind) for error in errors)
        return outcome

    @property
    def invalid_count(self) -> int:
        return self.total - self.valid_count

    @property
    def valid_percentage(self) -> float:
        return self.valid_count / self.total * 100 if self.total else 0.0

    @property
    def invalid_percentage(self) -> float:
        return self.invalid_count / self.total * 100 if self.total else 0.0

    @property
    def total_errors(self) -> int:
        return sum(self.error_counts.values())

    def top_errors(self, n: int = 10) -> list[tuple[str, int]]:
        """Most frequent error kinds, most common first."""
        return self.error_counts.most_common(n)

    def top_field_errors(self, n: int = 10) -> list[tuple[str, int]]:
        """Fields that fail in the most documents, most common first."""
        return self.field_error_counts.most_common(n)

    def to_dict(self) -> dict[str, typing.Any]:
        return {
            "total": self.total,
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
            "valid_percentage": self.valid_percentage,
            "invalid_percentage": self.invalid_percentage,
            "error_counts": dict(self.error_counts),
            "field_error_counts": dict(self.field_error_counts),
            "total_errors": self.total_errors,
        }

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        return (
            f"ValidationStats(total={self.total}, "
            f"valid={self.valid_count} ({self.valid_percentage:.1f}%), "
            f"errors={self.total_errors})"
        )


def get_stats(results: typing.Iterable[_result.FormResult]) -> ValidationStats:
    """Tally a batch of results.

    Example:
        >>> stats = get_stats(form.validate_many(documents))
        >>> stats.top_field_errors(3)
        [('email', 12), ('age', 4)]
    """
    return ValidationStats.from_results(results)
