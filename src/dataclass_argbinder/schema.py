"""
Option schema construction from dataclass field annotations.

A field takes part in binding when its metadata carries a ``cli`` tag::

    @dataclass
    class Options:
        debug: bool = field(default=False, metadata={"cli": "debug,short=d"})
        description: str = cli_field("description,default=This is a test")

The tag is ``name[,opt1[,opt2...]]`` where each option is a bare word or a
``key=value`` pair. Recognized options are ``short=<alias>`` and
``default=<text>``. There is no escaping, so values cannot contain commas.
"""

import dataclasses
import logging
import typing
from dataclasses import dataclass, field
from typing import Any, Optional, Type, Union

from .exceptions import (
    DefaultMustHaveValue,
    DuplicateOptionName,
    DuplicateShortAlias,
    EmptyDefault,
    EmptyOptionName,
    EmptyShortAlias,
    FrozenDataclassError,
    NotADataclassError,
    ShortMustHaveValue,
    UnsupportedFieldType,
)
from .kinds import ScalarKind, kind_of

logger = logging.getLogger(__name__)

CLI = "cli"
"""Field metadata key holding the option tag."""

_RECOGNIZED_OPTIONS = ("short", "default")

# returned by TagData.get_option when the option is not present at all
_ABSENT = object()


def cli_field(tag: str, *, help: Optional[str] = None, **kwargs: Any) -> Any:
    """
    Shorthand for ``dataclasses.field`` with the ``cli`` tag (and optional help
    text) placed in the field metadata. Remaining keyword arguments are passed
    through to ``dataclasses.field``.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[CLI] = tag
    if help is not None:
        metadata["help"] = help
    return field(metadata=metadata, **kwargs)


@dataclass(frozen=True)
class TagData:
    name: str
    options: str

    @classmethod
    def parse(cls, tag: str) -> "TagData":
        name, _, options = tag.partition(",")
        return cls(name=name, options=options)

    def items(self) -> list[tuple[str, Optional[str]]]:
        """
        Split the option text into ``(key, value)`` pairs, left to right.
        Bare words have a value of None.
        """
        pairs: list[tuple[str, Optional[str]]] = []
        if not self.options:
            return pairs
        for item in self.options.split(","):
            key, sep, value = item.partition("=")
            pairs.append((key, value if sep else None))
        return pairs

    def get_option(self, key: str) -> Any:
        """
        Look up an option by key. The first occurrence wins.

        Returns:
            ``_ABSENT`` if the option is not present, None if it is present as a
            bare word, otherwise its (possibly empty) value.
        """
        for item_key, value in self.items():
            if item_key == key:
                return value
        return _ABSENT


@dataclass(frozen=True)
class OptionSpec:
    name: str
    kind: ScalarKind
    field_name: str
    short: Optional[str] = None
    default: Optional[str] = None
    help: str = ""


@dataclass
class OptionSchema:
    """
    Lookup tables for one destination dataclass.

    Attributes:
        target: The dataclass type the schema was built from.
        options: Canonical option name to its spec, in field declaration order.
        short_aliases: Short alias to canonical option name.
        defaults: Canonical option name to its ``default=`` text.
    """

    target: Type[Any]
    options: dict[str, OptionSpec] = field(default_factory=dict)
    short_aliases: dict[str, str] = field(default_factory=dict)
    defaults: dict[str, str] = field(default_factory=dict)

    def resolve(self, key: str) -> Optional[OptionSpec]:
        """Return the option for a canonical name or short alias."""
        return self.options.get(self.short_aliases.get(key, key))

    def add(self, spec: OptionSpec) -> None:
        previous = self.options.get(spec.name)
        if previous is not None:
            raise DuplicateOptionName(spec.name, spec.field_name, previous.field_name)
        # an alias must never shadow a canonical name, in either declaration order
        if spec.name in self.short_aliases:
            raise DuplicateShortAlias(
                spec.name, self.short_aliases[spec.name], spec.name
            )
        if spec.short is not None and spec.short != spec.name:
            if spec.short in self.short_aliases:
                raise DuplicateShortAlias(
                    spec.short, spec.name, self.short_aliases[spec.short]
                )
            if spec.short in self.options:
                raise DuplicateShortAlias(spec.short, spec.name, spec.short)
            self.short_aliases[spec.short] = spec.name
        if spec.default is not None:
            self.defaults[spec.name] = spec.default
        self.options[spec.name] = spec


def _sub_option(
    tag: TagData,
    key: str,
    field_name: str,
    empty_error: type,
    bare_error: type,
) -> Optional[str]:
    value = tag.get_option(key)
    if value is _ABSENT:
        return None
    if value is None:
        raise bare_error(tag.name, field_name)
    if value == "":
        raise empty_error(tag.name, field_name)
    return value


def build_option_spec(
    f: dataclasses.Field, type_hint: Any
) -> Optional[OptionSpec]:
    """
    Build the OptionSpec for a single dataclass field, or return None if the
    field carries no ``cli`` tag.
    """
    tag_text = f.metadata.get(CLI, "")
    if not tag_text:
        return None

    kind = kind_of(type_hint)
    if kind is None:
        raise UnsupportedFieldType(f.name, type_hint, CLI)

    tag = TagData.parse(tag_text)
    if not tag.name:
        raise EmptyOptionName(f.name)

    short = _sub_option(tag, "short", f.name, EmptyShortAlias, ShortMustHaveValue)
    default = _sub_option(
        tag, "default", f.name, EmptyDefault, DefaultMustHaveValue
    )

    for key, _ in tag.items():
        if key not in _RECOGNIZED_OPTIONS:
            logger.debug("Ignoring unknown tag option %r on field %s", key, f.name)

    return OptionSpec(
        name=tag.name,
        kind=kind,
        field_name=f.name,
        short=short,
        default=default,
        help=f.metadata.get("help", ""),
    )


def build_schema(options: Union[Type[Any], Any]) -> OptionSchema:
    """
    Build the option schema for a dataclass type or instance.

    Raises:
        SchemaError: If the target is not a dataclass, is frozen while
            declaring options, or any ``cli`` tag is invalid. No partial schema is returned.
    """
    if not dataclasses.is_dataclass(options):
        raise NotADataclassError(options)
    cls = options if isinstance(options, type) else type(options)

    type_hints = typing.get_type_hints(cls, include_extras=True)
    schema = OptionSchema(target=cls)
    for f in dataclasses.fields(cls):
        spec = build_option_spec(f, type_hints.get(f.name, f.type))
        if spec is not None:
            schema.add(spec)

    if schema.options and cls.__dataclass_params__.frozen:
        raise FrozenDataclassError(cls)

    logger.debug("Built option schema for %s with %d options", cls.__name__, len(schema.options))
    return schema
