"""Exception hierarchy for boundary-level validation errors.

Parsing and canonicalization never raise; these are only produced when a
caller explicitly creates or edits an inventory entry with bad values.
"""


class FreshtrackError(Exception):
    """Base exception for freshtrack."""


class ValidationError(FreshtrackError, ValueError):
    """Raised when user-facing input fails validation."""


class EmptyNameError(ValidationError):
    """Raised when an ingredient name is blank."""

    def __init__(self) -> None:
        super().__init__("Ingredient name must not be empty")


class InvalidQuantityError(ValidationError):
    """Raised when a quantity is not a positive number."""

    def __init__(self, quantity: object) -> None:
        self.quantity = quantity
        super().__init__(f"Quantity must be a positive number, got {quantity!r}")


class InvalidTimestampError(ValidationError):
    """Raised when a date/time value cannot be parsed."""

    def __init__(self, value: object, field: str = "timestamp") -> None:
        self.value = value
        self.field = field
        super().__init__(f"Could not parse {field}: {value!r}")


class SessionClosedError(FreshtrackError):
    """Raised when a receipt import session is used after commit/abandon."""

    def __init__(self) -> None:
        super().__init__("Receipt import session is already closed")
