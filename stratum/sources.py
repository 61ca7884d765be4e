"""
Stratum option sources: where raw option values come from.

Protocol
- subscribe(options, consumer): register interest in exactly that descriptor set
  (a second subscribe of the same consumer replaces the first).
- unsubscribe(options, consumer): narrow a registration; an emptied registration
  drops the consumer, an unknown consumer is ignored.
- Each consume pass calls consumer(option, values) once per descriptor that has a
  recognized raw value, values being the parsed list collected during that pass.

Failures
- ParseError and every other CommandException raised while notifying propagate as-is.
- Any other exception raised by a consumer is wrapped in SourceFailure (chained).
- A pass stops at the first failure.

Concrete sources
- DefaultsSource: emits [default] on subscribe for every descriptor with a default.
- ArgumentSource: --name / --name=value tokens, with tail splitting for dispatch.
- EnvironmentSource: PREFIX_OPTION_NAME variables.
- PropertyFileSource: properties files from paths, file objects or resource locators.
- PropertyLineSource: a single "key=value key2=value2" line.

Boolean descriptors are also looked up under "no X", "not X" and "non X" by the
argument, property file and property line sources; the first spelling found wins
and values found under a negated spelling are inverted.
"""
import importlib.resources
import io
import logging
import os
import pathlib
import re
from collections.abc import Mapping

from .faults import CommandException, SourceFailure, UnknownOptionError
from .options import normalize
from .utils import *

logger = logging.getLogger(__name__)

NEGATIONS = ("no", "not", "non")


def _spellings(option, /):
    """Yield (canonical name, negated) pairs an option answers to."""
    yield option.name, False
    if option.is_boolean:
        for negation in NEGATIONS:
            yield negation + " " + option.name, True


def _collect(option, lookup, /):
    """
    Return the parsed values of option using lookup(name) -> raw list | None.

    None means the option was not mentioned at all.
    """
    for name, negated in _spellings(option):
        if (raws := lookup(name)) is not None:
            values = [option.parse(raw) for raw in raws]
            return [not value for value in values] if negated else values
    return None


class OptionSource:
    """
    Base class of every source: consumer bookkeeping and guarded delivery.
    """

    def __init__(self):
        self._listeners = {}

    def subscribe(self, options, consumer, /):
        if not callable(consumer):
            raise TypeError(f"{type(self).__name__}.subscribe() consumer must be callable")
        self._listeners[consumer] = list(options)

    def unsubscribe(self, options, consumer, /):
        if consumer not in self._listeners:
            return
        removed = set(options)
        remaining = [option for option in self._listeners[consumer] if option not in removed]
        if remaining:
            self._listeners[consumer] = remaining
        else:
            del self._listeners[consumer]

    @property
    def listeners(self):
        return dict(self._listeners)

    def _deliver(self, consumer, option, values, /):
        try:
            consumer(option, values)
        except CommandException:
            raise
        except Exception as error:
            raise SourceFailure(
                "consumer failed while receiving option %r from %s" % (option.name, type(self).__name__),
                source=self,
            ) from error

    def _publish(self, consumer, options, lookup, /):
        for option in options:
            if (values := _collect(option, lookup)) is not None:
                self._deliver(consumer, option, values)


class DefaultsSource(OptionSource):
    """Emits every non-null default once, at subscription time."""

    def subscribe(self, options, consumer, /):
        super().subscribe(options, consumer)
        for option in self._listeners[consumer]:
            if option.default is not None:
                self._deliver(consumer, option, [option.default])


class ArgumentSource(OptionSource):
    """
    Command-line tokens of the form --name or --name=value.

    Token rules
    - "--name" carries the value "" (which a boolean option reads as true).
    - names match exactly, with dashes standing for spaces: --first-name matches
      "first name", --First-Name and --first_name do not.
    - a literal "--" met while scanning stops the scan and is dropped.
    - unrecognized tokens form the tail: in full scan they are set aside and scanning
      continues, otherwise the first one ends the scan and the rest is kept verbatim.
    """

    def consume(self, args, /):
        """Full scan of args for every subscribed consumer."""
        for consumer, options in list(self._listeners.items()):
            self._process(consumer, options, args, True)

    def consume_tailed(self, args, /, full_scan=False):
        """
        Scan args for the single subscribed consumer and return the tail.

        Raises ValueError when more than one consumer is subscribed; with none,
        args are only split.
        """
        if len(self._listeners) > 1:
            raise ValueError("a tail can only be computed for a single listener")
        if not self._listeners:
            return self._process(None, (), args, full_scan)
        (consumer, options), = self._listeners.items()
        return self._process(consumer, options, args, full_scan)

    def _process(self, consumer, options, args, full_scan, /):
        known = {name for option in options for name, negated in _spellings(option)}
        gathered = {}
        tail = []
        scanning = True

        for arg in args:
            if not isinstance(arg, str):
                raise TypeError("arguments must be strings")
            if not scanning or (tail and not full_scan):
                tail.append(arg)
            elif arg == "--":
                scanning = False
            elif not arg.startswith("--"):
                tail.append(arg)
            elif (name := arg[2:].partition("=")[0].replace("-", " ")) in known:
                gathered.setdefault(name, []).append(arg[2:].partition("=")[2])
            else:
                tail.append(arg)

        if consumer is not None:
            self._publish(consumer, options, gathered.get)
        return tail


class EnvironmentSource(OptionSource):
    """
    Environment variables named PREFIX<sep>OPTION<sep>NAME (OPTION<sep>NAME without prefix).
    """

    def __init__(self, prefix="", separator="_"):
        super().__init__()
        if not isinstance(prefix, str):
            raise TypeError("EnvironmentSource 'prefix' must be a string")
        if not isinstance(separator, str):
            raise TypeError("EnvironmentSource 'separator' must be a string")
        self._prefix = prefix
        self._separator = separator

    prefix = mirror("prefix")
    separator = mirror("separator")

    def variable(self, option, /):
        name = self._separator.join(option.name.upper().split())
        return self._prefix + self._separator + name if self._prefix else name

    def consume(self, environment=Unset, /):
        environment = coalesce(environment, os.environ)
        for consumer, options in list(self._listeners.items()):
            for option in options:
                if (raw := environment.get(self.variable(option))) is not None:
                    self._deliver(consumer, option, [option.parse(raw)])


def _continued(line, /):
    return (len(line) - len(line.rstrip("\\"))) % 2 == 1


_PROPERTY = re.compile(r"([^\s=:]+)\s*(?:[=:]\s*)?(.*)")


def parse_properties(text, /):
    """
    Parse properties-style text into a dict (last definition of a key wins).

    Supports "#"/"!" comments, "key=value", "key: value", "key value" and
    backslash line continuations.
    """
    properties = {}
    lines = iter(text.splitlines())
    for line in lines:
        line = line.lstrip()
        if not line or line[0] in "#!":
            continue
        while _continued(line):
            line = line[:-1] + next(lines, "").lstrip()
        if match := _PROPERTY.fullmatch(line.rstrip()):
            properties[match.group(1)] = match.group(2)
    return properties


class PropertyFileSource(OptionSource):
    """
    Properties files.

    Accepted sources
    - None: ignored.
    - mapping: already-parsed properties, used as-is.
    - path string or os.PathLike: read when it exists, ignored otherwise.
    - text or binary file object: read as-is (utf-8 for bytes).
    - "file://path": like a path, but a missing file is a SourceFailure.
    - "package://dotted.package/relative/path": a resource shipped inside a package.

    Keys tried per option "first name": FIRST_NAME, first_name, first-name,
    first.name and "first name".
    """

    @staticmethod
    def keys(name, /):
        words = name.split()
        return ("_".join(words).upper(), "_".join(words), "-".join(words), ".".join(words), name)

    def load(self, source, /):
        """Read and parse source into a dict (None when there is nothing to read)."""
        if isinstance(source, Mapping):
            return dict(source)
        if (text := self._read(source)) is None:
            return None
        return parse_properties(text)

    def consume(self, source, /):
        if (properties := self.load(source)) is None:
            return

        def lookup(name):
            for key in self.keys(name):
                if key in properties:
                    return [properties[key]]
            return None

        for consumer, options in list(self._listeners.items()):
            self._publish(consumer, options, lookup)

    def _read(self, source, /):
        if source is None:
            return None
        if isinstance(source, io.IOBase) or hasattr(source, "read"):
            try:
                content = source.read()
            except OSError as error:
                raise SourceFailure("cannot read properties from %r" % (source,), source=self) from error
            return content.decode("utf-8") if isinstance(content, bytes) else content
        if isinstance(source, str) and "://" in source:
            return self._resolve(*source.split("://", 1))
        if not isinstance(source, str | os.PathLike):
            raise TypeError("PropertyFileSource.consume() argument must be a path, a file object or a locator")

        path = pathlib.Path(source)
        if not path.exists():
            logger.debug("properties file %s does not exist, skipping", path)
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as error:
            raise SourceFailure("cannot read properties file %s" % path, source=self) from error

    def _resolve(self, scheme, location, /):
        match scheme:
            case "file":
                try:
                    return pathlib.Path(location).read_text(encoding="utf-8")
                except OSError as error:
                    raise SourceFailure("cannot read resource file://%s" % location, source=self) from error
            case "package":
                package, _, resource = location.partition("/")
                try:
                    return importlib.resources.files(package).joinpath(resource).read_text(encoding="utf-8")
                except (ImportError, OSError, ValueError) as error:
                    raise SourceFailure("cannot read resource package://%s" % location, source=self) from error
            case _:
                raise SourceFailure("unsupported resource scheme %r" % scheme, source=self)


class PropertyLineSource(OptionSource):
    """
    One line of key[=value] items, split on a separator pattern (whitespace by default).

    Every item must name a subscribed option: an unknown key raises UnknownOptionError.
    """

    def __init__(self, separator=r"\s+"):
        super().__init__()
        if not isinstance(separator, str):
            raise TypeError("PropertyLineSource 'separator' must be a string")
        self._separator = re.compile(separator)

    def consume(self, text, /):
        if not isinstance(text, str):
            raise TypeError("PropertyLineSource.consume() argument must be a string")
        items = [item for item in self._separator.split(text) if item]
        for consumer, options in list(self._listeners.items()):
            known = {name for option in options for name, negated in _spellings(option)}
            gathered = {}
            for item in items:
                key, _, value = item.partition("=")
                if (name := normalize(key)) not in known:
                    raise UnknownOptionError(name, hint="known options are %s" % ", ".join(sorted(known)))
                gathered.setdefault(name, []).append(value)
            self._publish(consumer, options, gathered.get)


__all__ = (
    "OptionSource",
    "DefaultsSource",
    "ArgumentSource",
    "EnvironmentSource",
    "PropertyFileSource",
    "PropertyLineSource",
    "parse_properties",
)
