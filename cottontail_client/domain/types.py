"""
Value types shared by the wire models, the record decoder and the literal encoders.

`Type` mirrors the column types a server declares in result metadata, while
`ValueKind` is the runtime tag attached to every decoded value. The two are
related but not identical: a LONG column may still carry a null value.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Type(str, Enum):
    """Declared column type as reported in result metadata."""

    BOOLEAN = "BOOLEAN"
    BYTE = "BYTE"
    SHORT = "SHORT"
    INTEGER = "INTEGER"
    LONG = "LONG"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    DATE = "DATE"
    STRING = "STRING"
    BYTESTRING = "BYTESTRING"
    COMPLEX32 = "COMPLEX32"
    COMPLEX64 = "COMPLEX64"
    BOOLEAN_VECTOR = "BOOLEAN_VECTOR"
    INTEGER_VECTOR = "INTEGER_VECTOR"
    LONG_VECTOR = "LONG_VECTOR"
    FLOAT_VECTOR = "FLOAT_VECTOR"
    DOUBLE_VECTOR = "DOUBLE_VECTOR"
    COMPLEX32_VECTOR = "COMPLEX32_VECTOR"
    COMPLEX64_VECTOR = "COMPLEX64_VECTOR"
    UNDEFINED = "UNDEFINED"


class ValueKind(str, Enum):
    """
    Runtime tag of a decoded value.

    Scalar members use the wire literal kind as their value; vector members use
    ``"<element kind>_vector"``.
    """

    NULL = "null"
    BOOLEAN = "boolean"
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    DATE = "date"
    STRING = "string"
    BYTE_STRING = "bytes"
    COMPLEX32 = "complex32"
    COMPLEX64 = "complex64"
    BOOLEAN_VECTOR = "boolean_vector"
    INT_VECTOR = "int_vector"
    LONG_VECTOR = "long_vector"
    FLOAT_VECTOR = "float_vector"
    DOUBLE_VECTOR = "double_vector"
    COMPLEX32_VECTOR = "complex32_vector"
    COMPLEX64_VECTOR = "complex64_vector"

    @property
    def is_vector(self) -> bool:
        return self.value.endswith("_vector")

    @property
    def element_kind(self) -> "ValueKind":
        """Scalar kind of a vector's elements (the kind itself for scalars)."""
        if not self.is_vector:
            return self
        return ValueKind(self.value[: -len("_vector")])


@dataclass(frozen=True)
class Complex32:
    """Single precision complex number as transmitted by the server."""

    real: float
    imaginary: float

    def __complex__(self) -> complex:
        return complex(self.real, self.imaginary)

    def __str__(self) -> str:
        return f"{self.real}+{self.imaginary}i"


@dataclass(frozen=True)
class Complex64:
    """Double precision complex number as transmitted by the server."""

    real: float
    imaginary: float

    def __complex__(self) -> complex:
        return complex(self.real, self.imaginary)

    def __str__(self) -> str:
        return f"{self.real}+{self.imaginary}i"


__all__ = ["Type", "ValueKind", "Complex32", "Complex64"]
