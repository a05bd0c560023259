"""
Error types for formlogic schema parsing, scheduling and configuration.
"""

from dataclasses import dataclass
from typing import Optional


class FormLogicError(Exception):
    """Base exception for all formlogic errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}: {self.message}"
        return self.message


class SchemaError(FormLogicError):
    """
    Raised when a form schema cannot be accepted.

    Examples:
    - Calculated field depending on a non-existent path
    - Calculated target that is not a declared field
    - Malformed rule tree or unknown operator
    - Two dependencies bound to the same variable name
    """

    pass


class CycleError(FormLogicError):
    """
    Raised when calculated fields depend on each other in a cycle.

    The offending cycle is available as ``cycle``, with the first path
    repeated at the end (``["a", "b", "a"]``).
    """

    def __init__(
        self,
        message: str,
        cycle: list[str],
        context: Optional["ErrorContext"] = None,
    ):
        self.cycle = cycle
        super().__init__(message, context)


class ConfigError(FormLogicError):
    """
    Raised when engine configuration cannot be loaded.

    Examples:
    - Invalid TOML
    - Unknown value for an enumerated option
    """

    pass


@dataclass
class ErrorContext:
    """
    Location of an error inside a schema document.

    Attributes:
        location: Dotted location in the raw schema (e.g. "properties.email.ui.hiddenWhen")
        schema_id: Optional ``meta.id`` of the schema
    """

    location: str
    schema_id: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "order-form: properties.email.ui.hiddenWhen"
        """
        if self.schema_id:
            return f"{self.schema_id}: {self.location}"
        return self.location


def make_schema_error(
    message: str,
    location: str | None = None,
    schema_id: str | None = None,
) -> SchemaError:
    """
    Helper to create a SchemaError with optional context.

    Args:
        message: Error description
        location: Optional location inside the raw schema
        schema_id: Optional schema identifier

    Returns:
        SchemaError with context if a location was provided
    """
    if location:
        return SchemaError(message, ErrorContext(location=location, schema_id=schema_id))
    return SchemaError(message)
