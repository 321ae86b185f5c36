"""Declarative validation of JSON-like documents.

Build per-field rule chains, map them to dot-notation paths with a
FormValidator, and validate documents synchronously or asynchronously,
collecting structured errors per field and filling in defaults.
"""

__version__ = "0.1.0"

import logging

from rulebook.chain import Rules
from rulebook.context import UniquenessLookup, ValidationContext
from rulebook.errors import (
    CustomError,
    ErrorKind,
    ErrorMap,
    FormatError,
    FormValidationError,
    LengthError,
    LookupFailedError,
    MembershipError,
    NotUniqueError,
    RangeError,
    RequiredError,
    RuleConfigurationError,
    TypeMismatchError,
    ValidationError,
    dump_errors,
    dump_errors_json,
    load_errors,
)
from rulebook.form import FormValidator
from rulebook.options import ErrorOption
from rulebook.result import ChainResult, FormResult
from rulebook.rules import CustomRule, Rule, UniqueRule
from rulebook.stats import ValidationStats, get_stats
from rulebook.value import MISSING

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Rule",
    "CustomRule",
    "UniqueRule",
    "Rules",
    "FormValidator",
    "ValidationContext",
    "UniquenessLookup",
    "ChainResult",
    "FormResult",
    "ErrorOption",
    "ErrorKind",
    "ErrorMap",
    "ValidationError",
    "RequiredError",
    "TypeMismatchError",
    "LengthError",
    "RangeError",
    "FormatError",
    "MembershipError",
    "NotUniqueError",
    "LookupFailedError",
    "CustomError",
    "RuleConfigurationError",
    "FormValidationError",
    "dump_errors",
    "dump_errors_json",
    "load_errors",
    "ValidationStats",
    "get_stats",
    "MISSING",
]
