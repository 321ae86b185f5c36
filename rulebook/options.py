"""Error handling options for batch validation."""

from enum import Enum


class ErrorOption(str, Enum):
    """Options for how to handle documents that fail validation.

    Attributes:
        RETURN: Yield failed results alongside successful ones
        RAISE: Raise FormValidationError at the first failed document
        SKIP: Drop failed documents silently
    """

    RETURN = "return"
    RAISE = "raise"
    SKIP = "skip"
