"""
Cross-level store: the option stores of every command level visited by one run.

Levels are kept in visiting order (root first). The first level added is the main
one until the dispatcher points main at the resolved leaf, right before hooks and
handler run. find()/find_all() read from the shallowest level declaring a
descriptor, so a running sub-command can read what its ancestors resolved.
"""
import logging

from .faults import UnknownOptionError
from .identity import Identity
from .utils import *

logger = logging.getLogger(__name__)


class CommandStore:

    def __init__(self):
        self._stores = {}
        self._main = None

    def add_store(self, command, store, /):
        if not isinstance(command, Identity):
            raise TypeError("CommandStore.add_store() first argument must be an identity")
        if command in self._stores:
            raise ValueError("command %r already has a store" % (command,))
        self._stores[command] = store
        if self._main is None:
            self._main = command
        return store

    def store(self, command, /):
        try:
            return self._stores[command]
        except KeyError:
            raise ValueError("no store for command %r" % (command,)) from None

    @property
    def main(self):
        return self._main

    def set_main(self, command, /):
        if command not in self._stores:
            raise ValueError("no store for command %r" % (command,))
        self._main = command

    def _target(self, parameters, name, /):
        match len(parameters):
            case 2:
                command, option = parameters
                return self.store(command), option
            case 1:
                option, = parameters
                return self.store(self._main), option
            case _:
                raise TypeError("%s takes 1 to 2 arguments but %d were given" % (name, len(parameters)))

    def get(self, *parameters):
        """get(option) reads the main level, get(command, option) the named one."""
        store, option = self._target(parameters, "get()")
        return store.get(option)

    def get_all(self, *parameters):
        store, option = self._target(parameters, "get_all()")
        return store.get_all(option)

    def _find(self, option, /):
        for store in self._stores.values():
            if store.knows(option):
                return store
        raise UnknownOptionError(option, hint="no command level in this run declares it")

    def find(self, option, /):
        return self._find(option).get(option)

    def find_all(self, option, /):
        return self._find(option).get_all(option)

    def commands(self):
        return list(self._stores)

    def options(self, command=Unset, /):
        if command is not Unset:
            return self._stores[command].options() if command in self._stores else []
        return [option for store in self._stores.values() for option in store.options()]

    def knows(self, option, /):
        return any(store.knows(option) for store in self._stores.values())

    def has(self, option, /):
        return any(store.has(option) for store in self._stores.values())

    def bind(self, source, /):
        self.store(self._main).bind(source)
        return self

    def on_change(self, option, listener, /):
        self._find(option).on_change(option, listener)

    def on_changes(self, option, listener, /):
        self._find(option).on_changes(option, listener)

    def on_value(self, option, listener, /):
        self._find(option).on_value(option, listener)

    def on_values(self, option, listener, /):
        self._find(option).on_values(option, listener)

    def dynamic(self, option, /):
        return self._find(option).dynamic(option)

    def dynamic_value(self, option, /):
        return self._find(option).dynamic_value(option)

    def close(self):
        logger.debug("closing command store for %r", list(self._stores))
        for store in self._stores.values():
            store.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def __repr__(self):
        return "command-store(commands=%r, main=%r)" % (list(self._stores), self._main)


__all__ = (
    "CommandStore",
)
