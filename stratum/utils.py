"""
Internal helpers shared by the registration records, descriptors and stores.

- Unset: "not provided" marker, so None stays a legitimate value (a default of
  None, a handler returning None).
- coalesce(value, fallback): resolve Unset into a fallback, keep everything else.
- rename(callable, name) / @rename(name): give generated callables (listener adapters,
  synthesized dunders) readable names in tracebacks and log records.
- mirror(name): read-only property over "_name" handing out detached copies of
  containers, so registration and store state cannot be mutated from outside.

Names not listed in __all__ are internal.
"""
import builtins
import re
from collections.abc import Mapping, Sequence, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker (one instance per process, always falsy).
    """
    __slots__ = ()
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init_subclass__(cls, **options):
        raise TypeError("UnsetType cannot be subclassed")

    def __bool__(self):
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return "Unset"

    def __repr__(self):
        return "Unset"


Unset = UnsetType()


def coalesce(value, fallback=None, /):
    """Return fallback when value is Unset, value otherwise (None, 0 and "" included)."""
    if value is Unset:
        return fallback
    return value


def _retitle(callable, name, /):
    if not builtins.callable(callable):
        raise TypeError("rename() target must be callable")
    try:
        callable.__name__ = callable.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError(f"rename() cannot retitle {callable!r}") from None
    return callable


def rename(*parameters):
    """
    rename(callable, name) retitles callable in place and returns it;
    rename(name) returns a decorator doing the same.
    """
    match parameters:
        case (str() as name,):
            return lambda callable: _retitle(callable, name)
        case (callable, str() as name):
            return _retitle(callable, name)
        case _:
            raise TypeError("rename() expects (name) or (callable, name)")


def _detach(value):
    # tuples and strings are immutable already; descriptors and identities are leaves
    if isinstance(value, Mapping):
        return {key: _detach(item) for key, item in value.items()}
    if isinstance(value, Set):
        return {_detach(item) for item in value}
    if isinstance(value, Sequence) and not isinstance(value, str | tuple):
        return [_detach(item) for item in value]
    return value


def mirror(name, /):
    """Read-only property exposing self._<name>."""
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")
    attribute = "_" + name

    def getter(self):
        return _detach(getattr(self, attribute))

    return property(_retitle(getter, name))


def _rich_repr(self):
    for field in coalesce(type(self).__displayable__, type(self).__introspectable__):
        yield field, getattr(self, field)


def _repr(self):
    return "%s(%s)" % (type(self).__typename__, ", ".join("%s=%r" % pair for pair in self.__rich_repr__()))


class RecordType(type):
    """
    Metaclass of read-only records (option descriptors, command configs).

    - every name in __introspectable__ becomes mirror(name);
    - __typename__ is the hyphenated lowercase class name (CommandConfig -> command-config);
    - __repr__/__rich_repr__ list __displayable__ (or all introspectable fields).
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        namespace = dict(namespace, __typename__="-".join(re.findall(r"[A-Z][^A-Z]*", name)).lower() or name.lower())
        namespace.update((field, mirror(field)) for field in namespace.get("__introspectable__", ()))
        namespace.setdefault("__rich_repr__", _rich_repr)
        namespace.setdefault("__repr__", _repr)
        return super().__new__(cls, name, bases, namespace, **options)


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "rename",
    "mirror",
)
