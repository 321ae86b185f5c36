"""Tests for rulebook.form module."""

import asyncio
import copy
import json

import pydantic
import pytest

from rulebook import (
    CustomError,
    ErrorOption,
    FormatError,
    FormValidationError,
    FormValidator,
    LengthError,
    RangeError,
    RequiredError,
    Rule,
    RuleConfigurationError,
    Rules,
    TypeMismatchError,
)


def test_form_validator_success():
    """Test a passing document comes back as validated output."""
    form = (
        FormValidator()
        .add("username", Rules(Rule.required(), Rule.min_length(3)))
        .add("age", Rules(Rule.integer(), Rule.max_value(120)))
    )

    result = form.validate({"username": "testuser", "age": 25})

    assert result.errors is None
    assert result.ok
    assert result.result == {"username": "testuser", "age": 25}


def test_form_validator_with_errors():
    """Test every failing field is reported."""
    form = (
        FormValidator()
        .add("email", Rules(Rule.required(), Rule.email()))
        .add("password", Rules(Rule.required(), Rule.min_length(8)))
    )
    document = {"email": "invalid-email", "password": "short"}

    result = form.validate(document)

    assert result.result is None
    assert result.value is document
    assert list(result.errors) == ["email", "password"]
    assert isinstance(result.errors["email"][0], FormatError)
    assert isinstance(result.errors["password"][0], LengthError)


def test_field_independence():
    """Test that one failing field does not hide another."""
    form = (
        FormValidator()
        .add("username", Rule.min_length(5))
        .add("email", Rule.required())
    )

    errors = form.validate({"username": "ab"}).errors

    assert errors == {
        "username": [LengthError(constraint="min", expected=5, actual=2)],
        "email": [RequiredError()],
    }


def test_error_map_follows_declaration_order():
    """Test error map keys follow the order fields were added."""
    form = (
        FormValidator()
        .add("c", Rule.required())
        .add("a", Rule.required())
        .add("b", Rule.required())
    )
    assert list(form.validate({}).errors) == ["c", "a", "b"]


def test_missing_required_field():
    """Test only the missing field fails."""
    form = (
        FormValidator()
        .add("username", Rules(Rule.required()))
        .add("email", Rules(Rule.required()))
    )

    errors = form.validate({"username": "testuser"}).errors

    assert errors == {"email": [RequiredError()]}


def test_stop_on_first_error():
    """Test the opt-in fail-fast mode across fields."""
    form = (
        FormValidator(stop_on_first_error=True)
        .add("email", Rules(Rule.email()))
        .add("password", Rules(Rule.required(), Rule.min_length(8)))
    )

    errors = form.validate({"email": "invalid-email", "password": "short"}).errors

    assert list(errors) == ["email"]


def test_nested_rules_validation():
    """Test dot-notation paths into nested objects."""
    form = (
        FormValidator()
        .add("user", Rules(Rule.required(), Rule.min_length(3)))
        .add("settings.notifications", Rules(Rule.required()))
    )

    valid = {"user": "testuser", "settings": {"notifications": True}}
    assert form.validate(valid).result == valid

    errors = form.validate({"user": "tu", "settings": {}}).errors
    assert list(errors) == ["user", "settings.notifications"]


def test_array_index_path():
    """Test integer segments index into arrays."""
    form = FormValidator().add("user.emails.1", Rules(Rule.required(), Rule.email()))
    document = {"user": {"emails": ["a@x.com", "bob@x.com"]}}

    result = form.validate(document)

    assert result.ok
    assert result.result == {"user": {"emails": [None, "bob@x.com"]}}


def test_unresolvable_path_is_absent():
    """Test that a path through the wrong kind of value is simply absent."""
    form = (
        FormValidator()
        .add("user.name", Rule.string())
        .add("tags.5", Rule.string())
        .add("count.value", Rule.required())
    )

    result = form.validate({"user": None, "tags": ["a"], "count": 3})

    assert result.errors == {"count.value": [RequiredError()]}


def test_custom_validator_in_form():
    """Test custom predicates inside a form."""

    def has_uppercase(value):
        if isinstance(value, str) and not any(c.isupper() for c in value):
            return "Must contain uppercase"
        return None

    form = FormValidator().add(
        "password",
        Rules(Rule.required(), Rule.min_length(8), Rule.custom(has_uppercase)),
    )

    assert form.validate({"password": "SecurePass123"}).ok
    errors = form.validate({"password": "weakpass123"}).errors
    assert errors == {"password": [CustomError(message="Must contain uppercase")]}


def test_default_validator_in_form():
    """Test defaults appear in the output for absent fields."""
    form = (
        FormValidator()
        .add("name", Rules(Rule.required(), Rule.string()))
        .add("active", Rules(Rule.boolean()).default(False))
    )

    result = form.validate({"name": "Ali"})

    assert result.result == {"name": "Ali", "active": False}


def test_default_skips_rules():
    """Test a default is trusted: an always-failing rule never surfaces."""
    form = FormValidator().add(
        "role", Rules(Rule.custom(lambda v: False)).default("member")
    )
    assert form.validate({}).result == {"role": "member"}


def test_nested_default_creates_objects():
    """Test defaults at nested paths create the intermediate objects."""
    form = (
        FormValidator()
        .add("name", Rule.required())
        .add("settings.theme.color", Rules().default("blue"))
    )

    result = form.validate({"name": "x"})

    assert result.result == {"name": "x", "settings": {"theme": {"color": "blue"}}}


def test_round_trip(signup_form, valid_signup):
    """Test a fully valid document comes back with the same structure."""
    result = signup_form.validate(valid_signup)
    assert result.result == valid_signup


def test_round_trip_with_defaults(signup_form):
    """Test defaults fill only absent fields."""
    document = {"username": "carol", "email": "carol@example.com"}

    result = signup_form.validate(document)

    assert result.result == {
        "username": "carol",
        "email": "carol@example.com",
        "age": 21,
        "profile": {"newsletter": False},
    }
    assert document == {"username": "carol", "email": "carol@example.com"}


def test_absent_optional_field_left_out():
    """Test absent fields without defaults are not added to the output."""
    form = FormValidator().add("a", Rule.required()).add("b", Rule.string())
    assert form.validate({"a": 1}).result == {"a": 1}


def test_explicit_null_kept():
    """Test a present null value is copied to the output."""
    form = FormValidator().add("a", Rule.string())
    assert form.validate({"a": None}).result == {"a": None}


def test_output_does_not_share_input_objects():
    """Test the output is a copy of the input values."""
    form = FormValidator().add("tags", Rule.array())
    document = {"tags": ["a"]}

    output = form.validate(document).result
    output["tags"].append("b")

    assert document == {"tags": ["a"]}


def test_idempotent(signup_form):
    """Test validating twice gives identical results."""
    document = {"username": "ab", "age": 15}
    snapshot = copy.deepcopy(document)

    first = signup_form.validate(document)
    second = signup_form.validate(document)

    assert first == second
    assert document == snapshot


def test_single_rule_is_wrapped():
    """Test add accepts a bare Rule."""
    form = FormValidator().add("name", Rule.required())
    assert isinstance(form.fields["name"], Rules)


def test_add_returns_new_validator():
    """Test builder calls leave the original validator untouched."""
    base = FormValidator().add("a", Rule.required())
    extended = base.add("b", Rule.required())

    assert len(base) == 1
    assert len(extended) == 2


def test_re_adding_path_replaces_in_place():
    """Test re-adding a field keeps its position and uses the new chain."""
    form = (
        FormValidator()
        .add("a", Rule.required())
        .add("b", Rule.required())
        .add("a", Rule.string())
    )

    assert list(form.fields) == ["a", "b"]
    assert form.validate({"a": 1}).errors == {
        "a": [TypeMismatchError(expected="string", got="integer")],
        "b": [RequiredError()],
    }


@pytest.mark.parametrize("path", ["", "a..b", ".a", "a."])
def test_bad_paths(path):
    """Test malformed paths are rejected at build time."""
    with pytest.raises(RuleConfigurationError):
        FormValidator().add(path, Rule.required())


def test_bad_rules_argument():
    """Test add rejects anything but Rule or Rules."""
    with pytest.raises(RuleConfigurationError):
        FormValidator().add("a", "required")


def test_raise_errors():
    """Test raise_errors turns failures into an exception."""
    form = FormValidator().add("email", Rule.required())

    with pytest.raises(FormValidationError) as excinfo:
        form.validate({}, raise_errors=True)

    assert excinfo.value.errors == {"email": [RequiredError()]}


def test_validate_pydantic_model():
    """Test Pydantic models are validated through model_dump."""

    class Person(pydantic.BaseModel):
        name: str
        age: int

    form = FormValidator().add("name", Rule.min_length(3)).add("age", Rule.min_value(18))

    result = form.validate(Person(name="Al", age=30))

    assert list(result.errors) == ["name"]


def test_validate_json():
    """Test validation of JSON text."""
    form = FormValidator().add("id", Rules(Rule.required(), Rule.integer()))

    result = form.validate_json('{"id": 1}')
    assert result.result == {"id": 1}
    assert result.value == '{"id": 1}'

    assert form.validate_json(b'{"id": "1"}').errors["id"][0].kind == "type"


def test_validate_invalid_json():
    """Test unparseable JSON is a document-level format error."""
    form = FormValidator().add("id", Rule.required())

    result = form.validate_json('{"id": 1')

    assert list(result.errors) == ["__document__"]
    assert result.errors["__document__"][0].format == "json"
    with pytest.raises(FormValidationError):
        form.validate_json("nope", raise_errors=True)


def test_root_array_document():
    """Test documents whose root is an array."""
    form = FormValidator().add("0.name", Rule.required()).add("1.name", Rule.required())

    result = form.validate([{"name": "a"}, {"name": "b"}])

    assert result.result == [{"name": "a"}, {"name": "b"}]


def test_default_under_array_is_reported():
    """Test a default that cannot be placed next to an array is an error."""
    form = (
        FormValidator()
        .add("tags.0", Rule.string())
        .add("tags.label", Rules().default("x"))
    )

    result = form.validate({"tags": ["a"]})

    assert result.errors == {
        "tags.label": [TypeMismatchError(expected="object", got="array")]
    }


def test_validate_many():
    """Test batch validation with every error option."""
    form = FormValidator().add("id", Rules(Rule.required(), Rule.integer()))
    documents = [{"id": 1}, {"id": "x"}, {"id": 3}]

    returned = list(form.validate_many(documents))
    assert [r.ok for r in returned] == [True, False, True]

    skipped = list(form.validate_many(documents, error_option=ErrorOption.SKIP))
    assert [r.result for r in skipped] == [{"id": 1}, {"id": 3}]

    with pytest.raises(FormValidationError):
        list(form.validate_many(documents, error_option=ErrorOption.RAISE))


def test_integer_too_large_for_float():
    """Test an out-of-range integer beyond float precision is reported, not raised."""
    form = FormValidator().add("n", Rules(Rule.integer(), Rule.max_value(100)))
    document = json.loads('{"n": 1' + "0" * 400 + "}")

    result = form.validate(document)

    assert result.errors == {"n": [RangeError(max=100, actual=10**400)]}
    assert result.errors["n"][0].message.endswith("got 1" + "0" * 400)
    assert asyncio.run(form.validate_async(document)) == result


def test_key_path_default_on_array_document():
    """Test a default that cannot be placed in an array root is reported."""
    form = FormValidator().add("name", Rules().default("x"))

    result = form.validate([1, 2])

    assert result.errors == {
        "name": [TypeMismatchError(expected="object", got="array")]
    }


def test_index_path_default_on_array_document():
    """Test defaults at index paths fill an array root."""
    form = FormValidator().add("0", Rules(Rule.integer())).add(
        "2", Rules().default(0)
    )
    assert form.validate([7]).result == [7, None, 0]
