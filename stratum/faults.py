"""
Stratum faults: the error taxonomy of the dispatcher and the option engine.

Scope
- FaultCode: stable numeric identifiers, grouped by domain (registration,
  resolution, sources) so log searches and host remapping stay predictable.
- CommandException: base type carrying a message plus a read-only options mapping
  (title, hint and fault-specific context) that renders itself through rich.
- Concrete faults:
  • SubCommandConflictError: a command attached under two different parents.
  • DuplicateOptionError: two distinct descriptors sharing a canonical name in one store.
  • UnknownOptionError: read/subscribe on a descriptor a store (or chain) never declared.
  • ParseError: raw text that does not satisfy a descriptor's conversion rule.
  • NoHandlerError: the resolved command has no handler anywhere up its ancestry.
  • SourceFailure: I/O or consumer failure surfaced by an option source.
- trigger(): raise a fault, or in shell mode print it and exit with status 1.

Propagation
- Every fault is raised synchronously to the caller of Dispatcher.run(); only
  store listener failures are logged and dropped (see stratum.store).
"""
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .diagnostics import console


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - registration (111xx): SUBCOMMAND_CONFLICT, DUPLICATE_OPTION
    - resolution (121xx): UNKNOWN_OPTION, PARSE_ERROR, NO_HANDLER
    - sources (131xx): SOURCE_FAILURE

    normalize() lets the host application remap codes to its own labels through a
    __codes__ mapping declared in __main__.
    """
    # --- registration errors (11xxx) ---
    SUBCOMMAND_CONFLICT = 11101
    DUPLICATE_OPTION    = 11111

    # --- resolution errors (12xxx) ---
    UNKNOWN_OPTION      = 12101
    PARSE_ERROR         = 12111
    NO_HANDLER          = 12121

    # --- source errors (13xxx) ---
    SOURCE_FAILURE      = 13101

    def normalize(self):
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    Base class of every stratum fault.

    Attributes
    - message: the one-line description (also str(fault)).
    - options: read-only mapping with "title", "hint" and fault-specific context;
      context keys are also readable as attributes (fault.raw, fault.command, ...).
    """
    code = None
    title = "command failure"

    def __init__(self, message, /, **options):
        if not isinstance(message, str):
            raise TypeError(f"{type(self).__name__} message must be a string")
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType({"title": type(self).title, "hint": None} | options)

    def __getattr__(self, name):
        try:
            return self.__dict__["options"][name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}") from None

    def __rich__(self):
        main = __import__("__main__")
        colorful = bool(self.options.get("colorful"))

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # body
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        def text(fragment, style):
            if not fragment:
                return Text("")
            return Text(str(fragment), styles[style] if colorful else "")

        prog = getattr(main, "__prog__", None) or self.options.get("prog") or "stratum"
        header = Text.assemble(
            "[ ",
            text(prog, "prog-name"),
            " — ",
            text(self.code.normalize() if self.code else "-", "code"),
            " | ",
            text(self.options["title"].title(), "error-title"),
            " ]"
        )
        renders = [text(self.message, "error-message")]
        if self.options["hint"]:
            renders.append(Text.assemble(text(" → ", "hint-arrow"), text(self.options["hint"], "hint")))

        if self.options.get("fancy"):
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)


class SubCommandConflictError(CommandException):
    code = FaultCode.SUBCOMMAND_CONFLICT
    title = "sub-command conflict"

    def __init__(self, command, parent, other, /, **options):
        super().__init__(
            "command %r already is a sub-command of %r, cannot add it to %r" % (command, parent, other),
            command=command,
            parent=parent,
            other=other,
            hint="register the command under a single parent",
            **options
        )


class DuplicateOptionError(CommandException):
    code = FaultCode.DUPLICATE_OPTION
    title = "duplicate option"

    def __init__(self, option, /, **options):
        super().__init__(
            "option name %r is declared twice" % option.name,
            option=option,
            hint="declare each option name once per command",
            **options
        )


class UnknownOptionError(CommandException):
    code = FaultCode.UNKNOWN_OPTION
    title = "unknown option"

    def __init__(self, option, /, **options):
        name = getattr(option, "name", option)
        super().__init__(
            "option %r is not known" % name,
            option=option,
            hint=options.pop("hint", "declare the option on the command before reading it, or use find()"),
            **options
        )


class ParseError(CommandException):
    code = FaultCode.PARSE_ERROR
    title = "invalid option value"

    def __init__(self, raw, name, /, reason=None, **options):
        message = "value %r is not acceptable for option %r" % (raw, name)
        super().__init__(
            message + (": %s" % reason if reason else ""),
            raw=raw,
            name=name,
            reason=reason,
            **options
        )


class NoHandlerError(CommandException):
    code = FaultCode.NO_HANDLER
    title = "missing handler"

    def __init__(self, command, /, **options):
        super().__init__(
            "failed to find a handler for %r" % (command,),
            command=command,
            hint="bind a handler on the command or on one of its ancestors",
            **options
        )


class SourceFailure(CommandException):
    code = FaultCode.SOURCE_FAILURE
    title = "option source failure"

    def __init__(self, message, /, source=None, **options):
        super().__init__(message, source=source, **options)


def trigger(fault, /, *, shell=False, fancy=False, colorful=False):
    """
    surface a fault.

    outside shell mode the fault is raised as-is. in shell mode it is rendered on the
    stderr console (honoring fancy/colorful) and the process exits with status 1.
    """
    if not isinstance(fault, CommandException):
        raise TypeError("trigger() argument must be a command exception")
    if not shell:
        raise fault
    rendered = type(fault).__new__(type(fault))
    rendered.__dict__.update(fault.__dict__)
    rendered.options = MappingProxyType(dict(fault.options) | {"fancy": fancy, "colorful": colorful})
    console.print(rendered)
    sys.exit(1)


__all__ = (
    "FaultCode",
    "CommandException",
    "SubCommandConflictError",
    "DuplicateOptionError",
    "UnknownOptionError",
    "ParseError",
    "NoHandlerError",
    "SourceFailure",
    "trigger",
)
