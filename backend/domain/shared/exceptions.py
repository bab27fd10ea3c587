"""
Domain Exceptions.

Custom exceptions for domain-level errors.
Audit findings and rejected lifecycle transitions are reported as data,
so only conditions that abort a whole operation live here.
"""

from typing import Optional, Any, Dict, Sequence


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "DOMAIN_ERROR"
        self.details = details or {}


class ValidationException(DomainException):
    """Raised when validation fails."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field, "value": str(value) if value is not None else None}
        )


class LevelFormatError(ValidationException):
    """Raised when a depth marker cannot be read as a hierarchy level."""

    def __init__(self, value: Any):
        super().__init__(
            message=f"Cannot read level marker {value!r}",
            field="level",
            value=value
        )
        self.code = "INVALID_LEVEL"


class StructuralError(DomainException):
    """
    Raised when a BOM tree cannot be built for the requested scope.

    Carries the row and column that stopped the build. A tree is never
    partially returned when this is raised.
    """

    def __init__(
        self,
        message: str,
        row_index: Optional[int] = None,
        column: Any = None,
        missing_columns: Optional[Sequence[str]] = None
    ):
        super().__init__(
            message=message,
            code="STRUCTURAL_ERROR",
            details={
                "row_index": row_index,
                "column": str(column) if column is not None else None,
                "missing_columns": list(missing_columns or []),
            }
        )
        self.row_index = row_index
        self.column = column
        self.missing_columns = tuple(missing_columns or ())


class DiffError(DomainException):
    """Raised when one side of a comparison could not be built."""

    def __init__(self, side: str, cause: DomainException):
        super().__init__(
            message=f"Cannot compare BOMs: {side} tree could not be built. {cause.message}",
            code="DIFF_ERROR",
            details={"side": side, "cause": cause.code, **cause.details}
        )
        self.side = side
        self.cause = cause
