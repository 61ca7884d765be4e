r"""
Stratum option descriptors.

Overview
- OptionKind: the closed set of value kinds (string, boolean, integer, float, duration,
  path, uri, enum). Each kind owns exactly one parse rule; callers branch on
  Option.is_boolean, never on the descriptor's class.
- Option: immutable, typed, named declaration with a default. Descriptors compare by
  identity: two options called "port" are two different options.
- Factories: string_option, boolean_option, integer_option, float_option,
  duration_option, path_option, uri_option, enum_option.

Names
- Canonical form is lowercase with "_" and "-" turned into spaces and whitespace
  collapsed: "First_Name", "first-name" and "first  name" all become "first name".
  Sources derive their own spellings (--first-name, FIRST_NAME, first.name) from it.

Parse rules
- boolean: "", yes, on, true -> True (case-insensitive); any other text, "1" included, -> False.
- duration: whitespace-separated parts, each either H:MM / H:MM:SS or <n><unit>
  with unit in ns, ms, s, m, h, d, w (7 days), y (365 days) and their long forms;
  parts are summed into a datetime.timedelta (sub-microsecond remainders dropped).
- uri: urllib.parse.urlsplit(); enum: case-insensitive choice name.
- Any failure (including a None input) raises faults.ParseError(raw, name).

Quick example:
    >>> from stratum.options import duration_option
    >>> timeout = duration_option("request-timeout", "1m 30s")
    >>> timeout.name, timeout.default
    ('request timeout', datetime.timedelta(seconds=90))
"""
import pathlib
import re
from datetime import timedelta
from enum import Enum
from urllib.parse import urlsplit

from .faults import ParseError
from .utils import *
from .utils import RecordType


class OptionKind(Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    DURATION = "duration"
    PATH = "path"
    URI = "uri"
    ENUM = "enum"


def normalize(name, /):
    """Return the canonical option name ("First_Name" -> "first name")."""
    if not isinstance(name, str):
        raise TypeError("option name must be a string")
    return " ".join(re.sub(r"[_\-]", " ", name).lower().split())


_TRUTHS = frozenset(("", "yes", "on", "true"))

_NANOS = {
    "ns": 1,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 60 * 60 * 1_000_000_000,
    "d": 24 * 60 * 60 * 1_000_000_000,
    "w": 7 * 24 * 60 * 60 * 1_000_000_000,
    "y": 365 * 24 * 60 * 60 * 1_000_000_000,
}
_NANOS |= {
    "second": _NANOS["s"], "seconds": _NANOS["s"],
    "minute": _NANOS["m"], "minutes": _NANOS["m"],
    "hour": _NANOS["h"], "hours": _NANOS["h"],
    "day": _NANOS["d"], "days": _NANOS["d"],
    "week": _NANOS["w"], "weeks": _NANOS["w"],
    "year": _NANOS["y"], "years": _NANOS["y"],
}
_PART = re.compile(r"([0-9]+)(ns|ms|s|seconds?|m|minutes?|h|hours?|d|days?|w|weeks?|y|years?)")


def _parse_boolean(raw, choices, /):
    # any other text, "1" included, reads as false
    return raw.lower() in _TRUTHS


def _parse_duration(raw, choices, /):
    parts = raw.lower().split()
    if not parts:
        raise ValueError("empty duration")

    nanos = 0
    for part in parts:
        if ":" in part:
            fields = part.split(":")
            if len(fields) not in (2, 3):
                raise ValueError("wrong number of fields in %r" % part)
            hours, minutes, seconds = map(int, fields + ["0"] * (3 - len(fields)))
            nanos += hours * _NANOS["h"] + minutes * _NANOS["m"] + seconds * _NANOS["s"]
        elif match := _PART.fullmatch(part):
            nanos += int(match.group(1)) * _NANOS[match.group(2)]
        else:
            raise ValueError("cannot convert part %r" % part)
    return timedelta(microseconds=nanos // 1000)


def _parse_uri(raw, choices, /):
    uri = urlsplit(raw)
    if not raw or any(character.isspace() for character in raw):
        raise ValueError("not a valid uri")
    return uri


def _parse_enum(raw, choices, /):
    for choice in choices:
        label = choice.name if isinstance(choice, Enum) else choice
        if label.lower() == raw.lower():
            return choice
    raise ValueError("possible values are %s" % ", ".join(
        choice.name if isinstance(choice, Enum) else choice for choice in choices
    ))


_PARSERS = {
    OptionKind.STRING: lambda raw, choices, /: raw,
    OptionKind.BOOLEAN: _parse_boolean,
    OptionKind.INTEGER: lambda raw, choices, /: int(raw),
    OptionKind.FLOAT: lambda raw, choices, /: float(raw),
    OptionKind.DURATION: _parse_duration,
    OptionKind.PATH: lambda raw, choices, /: pathlib.Path(raw),
    OptionKind.URI: _parse_uri,
    OptionKind.ENUM: _parse_enum,
}


class Option(metaclass=RecordType):
    """
    Typed, named option declaration.

    Attributes (read-only)
    - name: canonical name (see module docstring).
    - kind: OptionKind tag selecting the parse rule.
    - default: fallback value (already converted) or None.
    - choices: accepted choices for enum options (tuple, empty otherwise).
    """
    __introspectable__ = ("name", "kind", "default", "choices")
    __displayable__ = ("name", "kind", "default")

    __slots__ = ("_name", "_kind", "_default", "_choices")

    def __init__(self, name, /, kind=OptionKind.STRING, default=None, *, choices=()):
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} 'name' must be a string")
        if not (normalized := normalize(name)):
            raise ValueError(f"{type(self).__typename__} 'name' must not be empty")
        if not isinstance(kind, OptionKind):
            raise TypeError(f"{type(self).__typename__} 'kind' must be an option kind")

        if isinstance(choices, type) and issubclass(choices, Enum):
            choices = tuple(choices)
        elif isinstance(choices, str):
            raise TypeError(f"{type(self).__typename__} 'choices' must be an iterable of strings or an enum")
        else:
            choices = tuple(choices)
            if not all(isinstance(choice, str | Enum) for choice in choices):
                raise TypeError(f"{type(self).__typename__} 'choices' must be an iterable of strings or an enum")

        if kind is OptionKind.ENUM and not choices:
            raise ValueError(f"{type(self).__typename__} 'choices' must not be empty for enum options")
        if kind is not OptionKind.ENUM and choices:
            raise ValueError(f"{type(self).__typename__} 'choices' only apply to enum options")

        self._name = normalized
        self._kind = kind
        self._default = default
        self._choices = choices

    @property
    def is_boolean(self):
        return self._kind is OptionKind.BOOLEAN

    def parse(self, raw, /):
        """
        Convert raw text into a typed value.

        Raises
        - ParseError carrying raw and the option name on malformed (or None) input.
        """
        if not isinstance(raw, str):
            raise ParseError(raw, self._name, "expected text")
        try:
            return _PARSERS[self._kind](raw, self._choices)
        except (ValueError, TypeError) as error:
            raise ParseError(raw, self._name, str(error)) from error


def _converted(option, default, /):
    """Parse a textual default with the option's own rule, pass anything else through."""
    return option.parse(default) if isinstance(default, str) else default


def string_option(name, default=None, /):
    return Option(name, OptionKind.STRING, default)


def boolean_option(name, default=None, /):
    return Option(name, OptionKind.BOOLEAN, default)


def integer_option(name, default=None, /):
    return Option(name, OptionKind.INTEGER, default)


def float_option(name, default=None, /):
    return Option(name, OptionKind.FLOAT, default)


def duration_option(name, default=None, /):
    option = Option(name, OptionKind.DURATION)
    option._default = _converted(option, default)
    return option


def path_option(name, default=None, /):
    option = Option(name, OptionKind.PATH)
    option._default = _converted(option, default)
    return option


def uri_option(name, default=None, /):
    option = Option(name, OptionKind.URI)
    option._default = _converted(option, default)
    return option


def enum_option(name, choices, default=None, /):
    option = Option(name, OptionKind.ENUM, choices=choices)
    option._default = _converted(option, default)
    return option


__all__ = (
    "OptionKind",
    "Option",
    "normalize",
    "string_option",
    "boolean_option",
    "integer_option",
    "float_option",
    "duration_option",
    "path_option",
    "uri_option",
    "enum_option",
)
