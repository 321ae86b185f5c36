"""Shared pytest fixtures for rulebook tests."""

import asyncio
import typing

import pytest

from rulebook import FormValidator, Rule, Rules


class FakeLookup:
    """In-memory uniqueness backend.

    Attributes:
        records: collection -> list of records (dicts with an ``_id``)
        delays: field -> seconds to sleep before answering
        fail_with: exception raised by every lookup, if set
        calls: (collection, field, value, exclude_id) for each lookup
    """

    def __init__(
        self,
        records: dict[str, list[dict[str, typing.Any]]] | None = None,
        delays: dict[str, float] | None = None,
        fail_with: Exception | None = None,
    ) -> None:
        self.records = records or {}
        self.delays = delays or {}
        self.fail_with = fail_with
        self.calls: list[tuple[str, str, typing.Any, typing.Any]] = []
        self.completed: list[str] = []

    async def exists(
        self,
        collection: str,
        field: str,
        value: typing.Any,
        exclude_id: typing.Any | None = None,
    ) -> bool:
        self.calls.append((collection, field, value, exclude_id))
        await asyncio.sleep(self.delays.get(field, 0))
        if self.fail_with is not None:
            raise self.fail_with
        self.completed.append(field)
        return any(
            record.get(field) == value and record.get("_id") != exclude_id
            for record in self.records.get(collection, [])
        )


@pytest.fixture
def lookup() -> FakeLookup:
    """Fixture providing a lookup with two existing users."""
    return FakeLookup(
        {
            "users": [
                {"_id": 1, "username": "alice", "email": "alice@example.com"},
                {"_id": 2, "username": "bob", "email": "bob@example.com"},
            ]
        }
    )


@pytest.fixture
def signup_form() -> FormValidator:
    """Fixture providing a typical signup form."""
    return (
        FormValidator()
        .add("username", Rules(Rule.required(), Rule.string(), Rule.min_length(3)))
        .add("email", Rules(Rule.required(), Rule.email()))
        .add("age", Rules(Rule.integer(), Rule.min_value(18)).default(21))
        .add("profile.newsletter", Rules(Rule.boolean()).default(False))
    )


@pytest.fixture
def valid_signup() -> dict[str, typing.Any]:
    """Fixture providing a signup document that passes every rule."""
    return {
        "username": "carol",
        "email": "carol@example.com",
        "age": 30,
        "profile": {"newsletter": True},
    }
