"""
Exceptions raised by dataclass_argbinder.

Exception Hierarchy
-------------------
- ArgsError (base exception)

  - SchemaError (invalid ``cli`` annotations, raised while building a schema)
    - NotADataclassError
    - FrozenDataclassError
    - FieldWithoutDefault
    - UnsupportedFieldType
    - EmptyOptionName
    - EmptyShortAlias / ShortMustHaveValue
    - EmptyDefault / DefaultMustHaveValue
    - DuplicateOptionName / DuplicateShortAlias

  - BindingError (malformed command line, raised while scanning tokens)
    - UnrecognizedBareToken
    - UnknownOption
    - MissingValue
    - ValueConversionError (wraps a ScalarParseError)
    - ConfigFileError

  - ScalarParseError (also a ValueError)
    - BoolParseError / IntParseError / UintParseError / FloatParseError

  - AppError (command dispatcher outcomes)
    - HandlerNotFoundError
    - CancelledError
"""

from typing import Optional


class ArgsError(Exception):
    """
    Base class for all errors raised by this package.

    Attributes:
        message: Human-readable description of the error.
        original_error: The underlying exception, if this error wraps one.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class SchemaError(ArgsError):
    """A dataclass cannot be turned into an option schema."""


class NotADataclassError(SchemaError):
    def __init__(self, obj: object, expected: str = "a dataclass type or instance"):
        super().__init__(
            f"options parameter must be {expected}, got {type(obj).__name__}"
        )


class FrozenDataclassError(SchemaError):
    def __init__(self, cls: type):
        self.cls = cls
        super().__init__(
            f"dataclass {cls.__name__} is frozen, its tagged fields cannot be set"
        )


class FieldWithoutDefault(SchemaError):
    def __init__(self, cls: type, field_name: str):
        self.cls = cls
        self.field_name = field_name
        super().__init__(
            f'field "{field_name}" of {cls.__name__} has no cli tag and no default, '
            "so the binder cannot create an instance"
        )


class UnsupportedFieldType(SchemaError):
    def __init__(self, field_name: str, field_type: object, tag: str):
        self.field_name = field_name
        self.field_type = field_type
        self.tag = tag
        super().__init__(
            f'field "{field_name}" has an unsupported type {field_type!r}, '
            f'but it has a tag "{tag}"'
        )


class EmptyOptionName(SchemaError):
    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f'field "{field_name}" has a tag with an empty option name')


class _SubOptionError(SchemaError):
    """Shared shape of the ``short=``/``default=`` validation errors."""

    template = ""

    def __init__(self, option: str, field_name: str = ""):
        self.option = option
        self.field_name = field_name
        super().__init__(self.template.format(option=option))


class EmptyShortAlias(_SubOptionError):
    template = '"short" is empty (option "{option}")'


class ShortMustHaveValue(_SubOptionError):
    template = '"short" is bool (option "{option}")'


class EmptyDefault(_SubOptionError):
    template = '"default" is empty (option "{option}")'


class DefaultMustHaveValue(_SubOptionError):
    template = '"default" is bool (option "{option}")'


class DuplicateOptionName(SchemaError):
    def __init__(self, name: str, field_name: str, previous: str):
        self.name = name
        self.field_name = field_name
        self.previous = previous
        super().__init__(
            f'option "{name}" of field "{field_name}" is already declared by "{previous}"'
        )


class DuplicateShortAlias(SchemaError):
    def __init__(self, alias: str, name: str, previous: str):
        self.alias = alias
        self.name = name
        self.previous = previous
        super().__init__(
            f'short alias "{alias}" of option "{name}" clashes with option "{previous}"'
        )


class BindingError(ArgsError):
    """The argument list does not fit the option schema."""


class UnrecognizedBareToken(BindingError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f'unknown option: "{token}"')


class UnknownOption(BindingError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f'unknown option: "{key}"')


class MissingValue(BindingError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'value for the option "{name}" is not set')


class ValueConversionError(BindingError):
    def __init__(self, name: str, text: str, cause: "ScalarParseError"):
        self.name = name
        self.text = text
        super().__init__(f"value setting error: {cause}", original_error=cause)


class ConfigFileError(BindingError):
    """The configuration file is missing, unreadable or does not fit the schema."""


class ScalarParseError(ArgsError, ValueError):
    """Text could not be converted to the requested scalar kind."""

    family = ""

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f'failed to convert "{text}" to {self.family}: {reason}')


class BoolParseError(ScalarParseError):
    family = "bool"


class IntParseError(ScalarParseError):
    family = "int"


class UintParseError(ScalarParseError):
    family = "uint"


class FloatParseError(ScalarParseError):
    family = "float"


class AppError(ArgsError):
    """Outcome of a dispatched command that did not complete normally."""


class HandlerNotFoundError(AppError):
    def __init__(self) -> None:
        super().__init__("handler not found")


class CancelledError(AppError):
    """The execution context was cancelled, by a signal or explicitly."""

    def __init__(self, signum: Optional[int] = None):
        self.signum = signum
        message = "context canceled"
        if signum is not None:
            message = f"{message} (signal {signum})"
        super().__init__(message)
