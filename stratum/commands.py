r"""
Stratum command tree and dispatcher.

Quick example:
    from stratum import Dispatcher, integer_option

    port = integer_option("port", 8080)
    app = Dispatcher(environment=os.environ, prefix="APP")

    @app.command(options=[port])
    def serve(command, store, tail):
        print("serving on", store.get(port))

    @app.command(parent="serve")
    def reload(command, store, tail):
        print("reloading the server on", store.find(port))

    app.main()          # e.g. `app --port=9000 serve reload`

Tree
- Every node is a CommandConfig keyed by an interned Identity. A node declares options,
  owns an ordered list of sub-commands, and may carry a handler, before/after hooks, a
  scan mode and a store-customization callback.
- A node has at most one parent. Nodes registered without a parent become the children
  of the GLOBAL root, once, before the first run (unless GLOBAL was given children
  explicitly).

Resolution (Dispatcher.run)
- Starting at the requested node (GLOBAL by default), each level gets an OptionStore fed
  by defaults, the optional properties file, the optional environment and the level's
  arguments; the arguments it does not recognize form the tail.
- Nodes with sub-commands stop at the first unrecognized token; nodes without scan the
  whole vector. CommandConfig.full_scan() overrides either default.
- The first tail token selects a sub-command (exact, case-sensitive match); otherwise
  the current node is the leaf.
- The nearest handler from the leaf upward runs, wrapped in the before-hooks (root to
  leaf) and the after-hooks (leaf to root). Handler and hooks all receive the leaf
  identity, the CommandStore of the run and the leaf's tail.
"""
import logging
import shlex
import sys
import threading
from collections.abc import Iterable

from .chain import CommandStore
from .faults import CommandException, DuplicateOptionError, NoHandlerError, SubCommandConflictError, trigger
from .identity import GLOBAL, Identity, Registry
from .options import Option
from .sources import ArgumentSource, DefaultsSource, EnvironmentSource, PropertyFileSource
from .store import OptionStore
from .utils import *
from .utils import RecordType

logger = logging.getLogger(__name__)


class CommandConfig(metaclass=RecordType):
    """
    Registration record of one command node (obtained from Dispatcher.configure()).

    Read-only fields
    - command: the node's identity.
    - parent: the parent identity, or None.
    - declared: options declared at this level, in declaration order.
    - children: sub-command identities, in registration order.
    - callback: the handler, or None.
    - scan: True (full scan), False (stop at first unknown) or Unset (by shape).

    Every fluent method returns the record itself.
    """
    __introspectable__ = ("command", "parent", "declared", "children", "callback", "scan")
    __displayable__ = ("command", "parent", "declared", "children")

    def __init__(self, command, dispatcher, /):
        self._command = command
        self._dispatcher = dispatcher
        self._parent = None
        self._declared = []
        self._children = []
        self._callback = None
        self._before = []
        self._after = []
        self._scan = Unset
        self._store_config = None

    def add_options(self, *options):
        names = {option.name: option for option in self._declared}
        for option in options:
            if not isinstance(option, Option):
                raise TypeError(f"{type(self).__typename__} options must be option descriptors")
            if names.setdefault(option.name, option) is not option:
                raise DuplicateOptionError(option, command=self._command)
        self._declared.extend(option for option in dict.fromkeys(options) if option not in self._declared)
        return self

    def handler(self, handler, /):
        if not callable(handler):
            raise TypeError(f"{type(self).__typename__} handler must be callable")
        self._callback = handler
        return self

    def before(self, hook, /):
        if not callable(hook):
            raise TypeError(f"{type(self).__typename__} before-hook must be callable")
        self._before.append(hook)
        return self

    def after(self, hook, /):
        if not callable(hook):
            raise TypeError(f"{type(self).__typename__} after-hook must be callable")
        self._after.append(hook)
        return self

    def configure_store(self, callback, /):
        if not callable(callback):
            raise TypeError(f"{type(self).__typename__} store callback must be callable")
        self._store_config = callback
        return self

    def full_scan(self, flag=True, /):
        if not isinstance(flag, bool):
            raise TypeError(f"{type(self).__typename__} full_scan() argument must be a boolean")
        self._scan = flag
        return self

    def _adoptable(self, sub, /):
        """Return False when sub already sits under this node, raise when it cannot be attached."""
        if sub._command is GLOBAL:
            raise ValueError(f"{type(self).__typename__} GLOBAL cannot be a sub-command")
        if sub._parent is not None:
            if sub._parent is self._command:
                return False
            raise SubCommandConflictError(sub._command, sub._parent, self._command)

        ancestor = self
        while ancestor is not None:
            if ancestor is sub:
                raise ValueError(f"{type(self).__typename__} {sub._command} cannot be a sub-command of itself")
            ancestor = self._dispatcher._configs.get(ancestor._parent)
        return True

    def sub_command(self, command, /):
        """
        Attach command under this node.

        Raises SubCommandConflictError (nothing attached) when command already sits
        under another parent; attaching it again under this node is a no-op.
        """
        sub = self._dispatcher.configure(command)
        if self._adoptable(sub):
            sub._parent = self._command
            self._children.append(sub._command)
        return self


class Dispatcher:
    """
    Owner of a command tree: registration and dispatch.

    Parameters
    - registry: Registry used to intern command names (a private one by default).
    - properties: properties file (path, file object, locator or mapping) read at every level;
      file objects are read once, at construction.
    - environment: mapping of environment variables read at every level (e.g. os.environ).
    - prefix, separator: environment variable naming (PREFIX_OPTION_NAME).
    - shell, fancy, colorful: how main() surfaces faults.
    """

    def __init__(
            self,
            registry=Unset,
            /,
            *,
            properties=Unset,
            environment=Unset,
            prefix="",
            separator="_",
            shell=False,
            fancy=False,
            colorful=False,
    ):
        if registry is not Unset and not isinstance(registry, Registry):
            raise TypeError("Dispatcher registry must be a registry")
        if not isinstance(prefix, str) or not isinstance(separator, str):
            raise TypeError("Dispatcher 'prefix' and 'separator' must be strings")
        self._registry = Registry() if registry is Unset else registry
        self._configs = {}
        # file objects can only be read once, every level reuses the parsed mapping
        if properties is not Unset and hasattr(properties, "read"):
            properties = PropertyFileSource().load(properties)
        self._properties = properties
        self._environment = environment
        self._prefix = prefix
        self._separator = separator
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        self._lock = threading.Lock()

    registry = mirror("registry")
    shell = mirror("shell")
    fancy = mirror("fancy")
    colorful = mirror("colorful")

    def _identity(self, command, /):
        if isinstance(command, Identity):
            return command
        if isinstance(command, str):
            return self._registry.get(command)
        raise TypeError("command must be a name or an identity")

    def configure(self, command, /):
        identity = self._identity(command)
        if (config := self._configs.get(identity)) is None:
            config = self._configs[identity] = CommandConfig(identity, self)
        return config

    def register(self, command, /, handler=Unset, configure=Unset):
        config = self.configure(command)
        if handler is not Unset:
            config.handler(handler)
        if configure is not Unset:
            if not callable(configure):
                raise TypeError("register() 'configure' must be callable")
            configure(config)
        return self

    def command(self, name=Unset, /, *, parent=Unset, options=(), full_scan=Unset):
        """
        Decorator registering the decorated function as a command handler.

        The command name defaults to the function name; parent attaches it as a
        sub-command right away.
        """
        @rename("command")
        def wrapper(handler, /):
            if not callable(handler):
                raise TypeError("@command() must be applied to a callable")
            config = self.configure(coalesce(name, getattr(handler, "__name__", Unset)))
            if full_scan is not Unset and not isinstance(full_scan, bool):
                raise TypeError("@command() 'full_scan' must be a boolean")
            # a refused attachment must leave the node as it was
            target = None if parent is Unset else self.configure(parent)
            if target is not None:
                target._adoptable(config)

            config.add_options(*options).handler(handler)
            if full_scan is not Unset:
                config.full_scan(full_scan)
            if target is not None:
                target.sub_command(config.command)
            return handler

        return wrapper

    def run(self, *parameters):
        """
        run(args) or run(command, args): resolve and execute, return the handler's result.

        args is an iterable of strings, or a single string split like a shell would.
        An unregistered starting command returns None without doing anything.
        """
        match len(parameters):
            case 2:
                command, args = parameters
            case 1:
                command, (args,) = GLOBAL, parameters
            case _:
                raise TypeError("run() takes 1 to 2 arguments but %d were given" % len(parameters))

        command = self._identity(command)
        tokens = self._tokens(args)
        self._initialize()

        with CommandStore() as chain:
            return self._resolve(command, chain, tokens)

    def main(self, args=Unset, /):
        """
        Run with sys.argv[1:] (or args); in shell mode faults are printed and exit the process.
        """
        try:
            return self.run(sys.argv[1:] if args is Unset else args)
        except CommandException as fault:
            trigger(fault, shell=self._shell, fancy=self._fancy, colorful=self._colorful)

    @staticmethod
    def _tokens(args, /):
        if isinstance(args, str):
            return shlex.split(args)
        if not isinstance(args, Iterable):
            raise TypeError("run() arguments must be a string or an iterable of strings")
        tokens = list(args)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("run() arguments must be a string or an iterable of strings")
        return tokens

    def _initialize(self):
        with self._lock:
            root = self.configure(GLOBAL)
            if root._children:
                return
            for config in list(self._configs.values()):
                if config._parent is None and config._command is not GLOBAL:
                    root.sub_command(config._command)

    def _resolve(self, command, chain, tail, /):
        while (config := self._configs.get(command)) is not None:
            arguments = ArgumentSource()
            self._store(config, chain, arguments)
            tail = arguments.consume_tailed(tail, coalesce(config._scan, not config._children))
            logger.debug("resolved level %r, tail %r", command, tail)

            token = tail[0] if tail else None
            for child in config._children:
                if child.matches(token):
                    command, tail = child, tail[1:]
                    break
            else:
                return self._execute(command, chain, tail)

        logger.debug("command %r is not registered, nothing to run", command)
        return None

    def _store(self, config, chain, arguments, /):
        store = chain.add_store(config._command, OptionStore(config._declared))
        store.bind(DefaultsSource())

        if self._properties is not Unset:
            properties = PropertyFileSource()
            store.bind(properties)
            properties.consume(self._properties)

        if self._environment is not Unset:
            environment = EnvironmentSource(self._prefix, self._separator)
            store.bind(environment)
            environment.consume(self._environment)

        store.bind(arguments)
        if config._store_config is not None:
            config._store_config(store)
        return store

    def _ancestry(self, command, /):
        """Return the configs from the root down to command, following parent links."""
        ancestry = []
        while command is not None:
            config = self._configs[command]
            ancestry.append(config)
            command = config._parent
        return ancestry[::-1]

    def _execute(self, leaf, chain, tail, /):
        ancestry = self._ancestry(leaf)
        owner = next((config for config in reversed(ancestry) if config._callback is not None), None)
        if owner is None:
            raise NoHandlerError(leaf)
        logger.debug("running %r with the handler of %r", leaf, owner.command)

        chain.set_main(leaf)
        for config in ancestry:
            for hook in config._before:
                hook(leaf, chain, tail)
        result = owner._callback(leaf, chain, tail)
        for config in reversed(ancestry):
            for hook in config._after:
                hook(leaf, chain, tail)
        return result

    def __repr__(self):
        return "dispatcher(commands=%r)" % (list(self._configs),)


__all__ = (
    "CommandConfig",
    "Dispatcher",
)
