"""
dataclass_argbinder - binds command-line arguments onto dataclass fields.

Fields opt in with a ``cli`` tag in their metadata (``name[,short=x][,default=y]``)
and are filled from ``-name``/``--name`` options, inline ``=value`` or the next
token, a YAML/JSON configuration file, or the tag default. A small ``App``
dispatcher routes an invocation to async command handlers under a context that
is cancelled by SIGINT/SIGTERM.
"""

from .app import App, Context, get_app_path
from .exceptions import (
    AppError,
    ArgsError,
    BindingError,
    BoolParseError,
    CancelledError,
    ConfigFileError,
    DefaultMustHaveValue,
    DuplicateOptionName,
    DuplicateShortAlias,
    EmptyDefault,
    EmptyOptionName,
    EmptyShortAlias,
    FieldWithoutDefault,
    FloatParseError,
    FrozenDataclassError,
    HandlerNotFoundError,
    IntParseError,
    MissingValue,
    NotADataclassError,
    ScalarParseError,
    SchemaError,
    ShortMustHaveValue,
    UintParseError,
    UnknownOption,
    UnrecognizedBareToken,
    UnsupportedFieldType,
    ValueConversionError,
)
from .kinds import (
    Float32,
    Float64,
    Int8,
    Int16,
    Int32,
    Int64,
    ScalarKind,
    UInt,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
    coerce,
)
from .parser import ArgBinder, bind, parse_args
from .schema import CLI, OptionSchema, OptionSpec, build_schema, cli_field

__version__ = "1.0.0"
__all__ = [
    "App",
    "AppError",
    "ArgBinder",
    "ArgsError",
    "BindingError",
    "BoolParseError",
    "CLI",
    "CancelledError",
    "ConfigFileError",
    "Context",
    "DefaultMustHaveValue",
    "DuplicateOptionName",
    "DuplicateShortAlias",
    "EmptyDefault",
    "EmptyOptionName",
    "EmptyShortAlias",
    "FieldWithoutDefault",
    "Float32",
    "Float64",
    "FloatParseError",
    "FrozenDataclassError",
    "HandlerNotFoundError",
    "Int16",
    "Int32",
    "Int64",
    "Int8",
    "IntParseError",
    "MissingValue",
    "NotADataclassError",
    "OptionSchema",
    "OptionSpec",
    "ScalarKind",
    "ScalarParseError",
    "SchemaError",
    "ShortMustHaveValue",
    "UInt",
    "UInt16",
    "UInt32",
    "UInt64",
    "UInt8",
    "UintParseError",
    "UnknownOption",
    "UnrecognizedBareToken",
    "UnsupportedFieldType",
    "ValueConversionError",
    "bind",
    "build_schema",
    "cli_field",
    "coerce",
    "get_app_path",
    "parse_args",
]
