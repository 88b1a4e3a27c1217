"""
ArgBinder - binds a raw command-line argument list onto a dataclass.

Fields take part in binding when their metadata carries a ``cli`` tag (see
:mod:`dataclass_argbinder.schema`). Options may be spelled ``-name`` or
``--name`` and take their value either inline (``--name=value``) or from the
next token (``--name value``). Boolean options may be given without a value.
Options that never appear on the command line take their value from the
optional configuration file, then from their ``default=`` tag text, and
otherwise keep the value already held by the dataclass instance.
"""

import dataclasses
import json
import logging
import os
import sys
from typing import Any, Generic, Optional, Sequence, Type, TypeVar

import yaml
from result import Err, Ok, Result

from .exceptions import (
    ArgsError,
    ConfigFileError,
    DuplicateOptionName,
    FieldWithoutDefault,
    MissingValue,
    NotADataclassError,
    ScalarParseError,
    UnknownOption,
    UnrecognizedBareToken,
    ValueConversionError,
)
from .kinds import coerce
from .schema import OptionSchema, OptionSpec, build_schema

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _ParseState:
    """Cursor over the raw tokens plus the options still waiting for a value."""

    def __init__(self, args: Sequence[str], names: Sequence[str]) -> None:
        self.remaining: list[str] = list(args)
        self.cursor = 0
        self.pending_defaults: set[str] = set(names)

    def has_next(self) -> bool:
        return self.cursor < len(self.remaining)

    def next(self) -> str:
        token = self.remaining[self.cursor]
        self.cursor += 1
        return token

    def peek(self) -> Optional[str]:
        if self.has_next():
            return self.remaining[self.cursor]
        return None


def _set_value(instance: Any, spec: OptionSpec, text: str) -> None:
    try:
        value = coerce(text, spec.kind)
    except ScalarParseError as e:
        raise ValueConversionError(spec.name, text, e) from e
    setattr(instance, spec.field_name, value)


def _load_config_file(config_path: str) -> dict[str, Any]:
    """
    Load a flat option mapping from a YAML or JSON file.

    Raises:
        ConfigFileError: If the file doesn't exist, has an unsupported
            extension, cannot be decoded, or is not a mapping.
    """
    if not os.path.exists(config_path):
        raise ConfigFileError(f"Configuration file not found: {config_path}")

    file_ext = os.path.splitext(config_path)[1].lower()

    with open(config_path, "r") as f:
        if file_ext in [".yaml", ".yml"]:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigFileError(f"Invalid YAML file: {e}", original_error=e)
        elif file_ext == ".json":
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigFileError(f"Invalid JSON file: {e}", original_error=e)
        else:
            raise ConfigFileError(
                f"Unsupported file format: {file_ext}. "
                "Supported formats are: .yaml, .yml, .json"
            )

    # an empty YAML document loads as None
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError(
            f"Configuration file must contain a mapping, got {type(data).__name__}"
        )
    return data


def _config_texts(data: dict[str, Any], schema: OptionSchema) -> dict[str, str]:
    """Convert loaded config values to option text, keyed by canonical name."""
    texts: dict[str, str] = {}
    for key, value in data.items():
        spec = schema.resolve(str(key))
        if spec is None:
            raise ConfigFileError(f'unknown option in configuration file: "{key}"')
        if value is None:
            continue
        if isinstance(value, bool):
            texts[spec.name] = "true" if value else "false"
        elif isinstance(value, (int, float, str)):
            texts[spec.name] = str(value)
        else:
            raise ConfigFileError(
                f'option "{spec.name}" expects a scalar value in the configuration '
                f"file, got {type(value).__name__}: {value!r}"
            )
    return texts


def _bind(
    schema: OptionSchema,
    args: Sequence[str],
    instance: Any,
    config_flag: Optional[str] = None,
) -> None:
    """
    Scan ``args`` left to right, writing each option into ``instance``, then
    apply config file values and tag defaults to options never given.

    Stops at the first error; fields bound before it keep their values.
    """
    state = _ParseState(args, list(schema.options))
    config_path: Optional[str] = None

    while state.has_next():
        token = state.next()
        if not token.startswith("-"):
            raise UnrecognizedBareToken(token)

        key, sep, value = token.partition("=")
        is_set = bool(sep)
        if not is_set:
            following = state.peek()
            if following is not None and not following.startswith("-"):
                value = state.next()
                is_set = True

        key = key.lstrip("-")

        if config_flag is not None and key == config_flag:
            if not is_set:
                raise MissingValue(key)
            config_path = value
            continue

        key = schema.short_aliases.get(key, key)
        spec = schema.options.get(key)
        if spec is None:
            raise UnknownOption(key)

        if not is_set and spec.kind.family != "bool":
            raise MissingValue(key)

        _set_value(instance, spec, value)
        state.pending_defaults.discard(key)
        logger.debug("Bound option %s to field %s", key, spec.field_name)

    config_values: dict[str, str] = {}
    if config_path is not None:
        config_values = _config_texts(_load_config_file(config_path), schema)

    for name, spec in schema.options.items():
        if name not in state.pending_defaults:
            continue
        if name in config_values:
            logger.debug("Applying configuration file value for option %s", name)
            _set_value(instance, spec, config_values[name])
        elif name in schema.defaults:
            logger.debug("Applying default value for option %s", name)
            _set_value(instance, spec, schema.defaults[name])


def parse_args(args: Sequence[str], options: Any) -> None:
    """
    Bind ``args`` (without the program name) onto an existing dataclass
    instance in place.

    Raises:
        SchemaError: If ``options`` is not a dataclass instance or its ``cli``
            tags are invalid.
        BindingError: On the first malformed, unknown or unconvertible token.
    """
    if isinstance(options, type) or not dataclasses.is_dataclass(options):
        raise NotADataclassError(options, expected="a dataclass instance")
    _bind(build_schema(options), args, options)


class ArgBinder(Generic[T]):
    """
    Binds command-line arguments onto instances of one dataclass type.

    The option schema is built once, at construction, so schema errors surface
    immediately and the binder can be reused for any number of parses.

    Example:
        @dataclass
        class Options:
            name: str = cli_field("name", help="Who to greet")
            debug: bool = cli_field("debug,short=d", default=False)

        binder = ArgBinder(Options)
        options = binder.parse(["--name", "John", "-d"])

        # Or read unset options from a YAML/JSON file:
        # ArgBinder(Options, config_flag="config").parse(["--config", "opts.yaml"])
    """

    def __init__(
        self, dataclass_type: Type[T], config_flag: Optional[str] = None
    ) -> None:
        """
        Args:
            dataclass_type: The dataclass whose ``cli``-tagged fields define the options.
            config_flag: Option name (leading dashes optional) reserved for the
                path of a configuration file. Disabled when None.
        """
        if not isinstance(dataclass_type, type):
            raise NotADataclassError(dataclass_type, expected="a dataclass type")
        self.dataclass_type = dataclass_type
        self.schema: OptionSchema = build_schema(dataclass_type)
        self._required_untagged = self._find_required_untagged()

        self.config_flag: Optional[str] = None
        if config_flag is not None:
            self.config_flag = config_flag.lstrip("-")
            clash = self.schema.resolve(self.config_flag)
            if clash is not None:
                raise DuplicateOptionName(
                    self.config_flag, clash.field_name, "config file flag"
                )

    def _find_required_untagged(self) -> Optional[str]:
        """Name of the first init field outside the schema with no dataclass default."""
        tagged = {spec.field_name for spec in self.schema.options.values()}
        for f in dataclasses.fields(self.dataclass_type):
            if not f.init or f.name in tagged:
                continue
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                return f.name
        return None

    def _new_instance(self) -> T:
        """Instantiate the dataclass, filling tagged fields that lack a default with their zero value."""
        if self._required_untagged is not None:
            raise FieldWithoutDefault(self.dataclass_type, self._required_untagged)
        values = {}
        by_field = {spec.field_name: spec for spec in self.schema.options.values()}
        for f in dataclasses.fields(self.dataclass_type):
            if not f.init or f.name not in by_field:
                continue
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                values[f.name] = by_field[f.name].kind.zero
        return self.dataclass_type(**values)

    def parse(
        self, args: Optional[Sequence[str]] = None, into: Optional[T] = None
    ) -> T:
        """
        Parse command-line arguments into a dataclass instance.

        Args:
            args: Arguments to parse, without the program name. If None, uses sys.argv[1:].
            into: An existing instance to bind onto in place. If None, a new one is created.

        Returns:
            The bound instance (``into`` itself when given).

        Raises:
            BindingError: On the first malformed, unknown or unconvertible
                token, or a bad configuration file.
            FieldWithoutDefault: If ``into`` is None and an untagged field has
                no dataclass default.
        """
        if args is None:
            args = sys.argv[1:]
        if into is None:
            instance = self._new_instance()
        elif isinstance(into, self.dataclass_type):
            instance = into
        else:
            raise TypeError(
                f"expected an instance of {self.dataclass_type.__name__}, "
                f"got {type(into).__name__}"
            )
        _bind(self.schema, args, instance, self.config_flag)
        return instance

    def safe_parse(
        self, args: Optional[Sequence[str]] = None, into: Optional[T] = None
    ) -> Result[T, ArgsError]:
        """
        Like :meth:`parse`, but returns the outcome instead of raising.

        Returns:
            Result[T, ArgsError]:
                - Ok with the bound instance,
                - Err with the first binding error.
        """
        try:
            return Ok(self.parse(args, into))
        except ArgsError as e:
            return Err(e)

    def _format_description(self, description: str, default_value: Optional[str]) -> str:
        """Append default value info to the option description."""
        if default_value is None:
            return description
        default_suffix = f"(default: {default_value})"
        return f"{description} {default_suffix}" if description else default_suffix

    def format_help(self) -> str:
        """Render one line per option: spellings, metavar, help text and default."""
        rows: list[tuple[str, str]] = []
        if self.config_flag is not None:
            rows.append(
                (
                    f"--{self.config_flag} FILE",
                    "Path to configuration file (YAML or JSON format)",
                )
            )
        for spec in self.schema.options.values():
            names = f"--{spec.name}"
            if spec.short is not None and spec.short != spec.name:
                names += f", -{spec.short}"
            if spec.kind.metavar:
                names += f" {spec.kind.metavar}"
            rows.append((names, self._format_description(spec.help, spec.default)))

        width = max((len(names) for names, _ in rows), default=0)
        lines = [f"  {names.ljust(width)}  {description}".rstrip() for names, description in rows]
        return "\n".join(lines)


def bind(
    dataclass_type: Type[T], args: Optional[Sequence[str]] = None
) -> T:
    """Build a binder for ``dataclass_type`` and parse ``args`` with it."""
    return ArgBinder(dataclass_type).parse(args)

