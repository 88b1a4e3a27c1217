"""
Scalar kinds understood by the binder and the text-to-value coercion for each.

Plain ``bool``, ``int``, ``float`` and ``str`` annotations map to the boolean,
signed 64-bit, 64-bit float and string kinds. Narrower or unsigned widths are
declared with the ``Annotated`` aliases exported here::

    @dataclass
    class Options:
        port: UInt16 = cli_field("port", default=8080)
        ratio: Float32 = cli_field("ratio")
"""

import math
import re
import struct
import typing
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Optional, Union

from .exceptions import (
    BoolParseError,
    FloatParseError,
    IntParseError,
    UintParseError,
)

Family = Literal["bool", "int", "uint", "float", "string"]


@dataclass(frozen=True)
class ScalarKind:
    """A scalar type tag: value family plus bit width (0 for bool and string)."""

    name: str
    family: Family
    bits: int = 0

    @property
    def zero(self) -> Union[bool, int, float, str]:
        if self.family == "bool":
            return False
        if self.family == "float":
            return 0.0
        if self.family == "string":
            return ""
        return 0

    @property
    def metavar(self) -> str:
        return {
            "bool": "",
            "int": "INT",
            "uint": "UINT",
            "float": "FLOAT",
            "string": "STRING",
        }[self.family]


BOOL = ScalarKind("bool", "bool")
STRING = ScalarKind("string", "string")
INT = ScalarKind("int", "int", 64)
INT8 = ScalarKind("int8", "int", 8)
INT16 = ScalarKind("int16", "int", 16)
INT32 = ScalarKind("int32", "int", 32)
INT64 = ScalarKind("int64", "int", 64)
UINT = ScalarKind("uint", "uint", 64)
UINT8 = ScalarKind("uint8", "uint", 8)
UINT16 = ScalarKind("uint16", "uint", 16)
UINT32 = ScalarKind("uint32", "uint", 32)
UINT64 = ScalarKind("uint64", "uint", 64)
FLOAT32 = ScalarKind("float32", "float", 32)
FLOAT64 = ScalarKind("float64", "float", 64)

Int8 = Annotated[int, INT8]
Int16 = Annotated[int, INT16]
Int32 = Annotated[int, INT32]
Int64 = Annotated[int, INT64]
UInt = Annotated[int, UINT]
UInt8 = Annotated[int, UINT8]
UInt16 = Annotated[int, UINT16]
UInt32 = Annotated[int, UINT32]
UInt64 = Annotated[int, UINT64]
Float32 = Annotated[float, FLOAT32]
Float64 = Annotated[float, FLOAT64]

# bool must be tested before int
_BUILTIN_KINDS = ((bool, BOOL), (int, INT), (float, FLOAT64), (str, STRING))

_TRUE_LITERALS = ("1", "t", "T", "TRUE", "true", "True")
_FALSE_LITERALS = ("0", "f", "F", "FALSE", "false", "False")

_INT_RE = re.compile(r"[+-]?[0-9]+")
_UINT_RE = re.compile(r"[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_FLOAT_SPECIAL_RE = re.compile(r"[+-]?(?:inf|infinity)|nan", re.IGNORECASE)


def kind_of(type_hint: Any) -> Optional[ScalarKind]:
    """
    Return the ScalarKind for a resolved field type hint, or None if the type
    is not a supported scalar.
    """
    if typing.get_origin(type_hint) is Annotated:
        base, *extras = typing.get_args(type_hint)
        for extra in extras:
            if isinstance(extra, ScalarKind):
                return extra
        type_hint = base

    for py_type, kind in _BUILTIN_KINDS:
        if type_hint is py_type:
            return kind
    return None


def _parse_bool(text: str) -> bool:
    if text in _TRUE_LITERALS:
        return True
    if text in _FALSE_LITERALS:
        return False
    raise BoolParseError(text, "invalid syntax")


def _parse_int(text: str, bits: int) -> int:
    if not _INT_RE.fullmatch(text):
        raise IntParseError(text, "invalid syntax")
    value = int(text, 10)
    bound = 1 << (bits - 1)
    if not -bound <= value < bound:
        raise IntParseError(text, "value out of range")
    return value


def _parse_uint(text: str, bits: int) -> int:
    if not _UINT_RE.fullmatch(text):
        raise UintParseError(text, "invalid syntax")
    value = int(text, 10)
    if value >= 1 << bits:
        raise UintParseError(text, "value out of range")
    return value


def _parse_float(text: str, bits: int) -> float:
    special = _FLOAT_SPECIAL_RE.fullmatch(text) is not None
    if not special and not _FLOAT_RE.fullmatch(text):
        raise FloatParseError(text, "invalid syntax")
    value = float(text)
    if math.isinf(value) and not special:
        raise FloatParseError(text, "value out of range")
    if bits == 32:
        try:
            value = struct.unpack("f", struct.pack("f", value))[0]
        except OverflowError as e:
            raise FloatParseError(text, "value out of range") from e
    return value


def coerce(text: str, kind: ScalarKind) -> Union[bool, int, float, str]:
    """
    Convert option text to a value of the given kind.

    Empty text yields ``True`` for booleans (presence of a flag) and the zero
    value for every other kind.

    Raises:
        ScalarParseError: One of BoolParseError, IntParseError, UintParseError
            or FloatParseError when the text is malformed or out of range.
    """
    if kind.family == "string":
        return text
    if text == "":
        return True if kind.family == "bool" else kind.zero

    if kind.family == "bool":
        return _parse_bool(text)
    if kind.family == "int":
        return _parse_int(text, kind.bits)
    if kind.family == "uint":
        return _parse_uint(text, kind.bits)
    return _parse_float(text, kind.bits)
