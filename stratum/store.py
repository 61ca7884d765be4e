"""
Per-level option store.

An OptionStore holds, for one command level, the declared descriptors, the latest
value list assigned to each of them by its bound sources, and the listeners that
want to hear about changes.

Notification
- Listeners run on the store's Notifier (a single worker thread, started lazily),
  one task per listener per assignment, in assignment order.
- Registering a listener while a value is present schedules one immediate call.
- A failing listener is logged with its traceback and dropped; the producing
  source and the sibling listeners carry on.
- close() (or leaving the `with` block) drains pending tasks and joins the worker;
  anything produced afterwards is dropped.
"""
import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor

from .faults import DuplicateOptionError, UnknownOptionError
from .options import Option
from .utils import *

logger = logging.getLogger(__name__)


class Notifier:
    """
    Single-worker task queue owned by one store.

    When an external executor is supplied the notifier only submits to it and
    never shuts it down.
    """

    def __init__(self, executor=Unset, /):
        if executor is not Unset and not isinstance(executor, Executor):
            raise TypeError("Notifier executor must be a concurrent.futures executor")
        self._executor = coalesce(executor, None)
        self._owned = executor is Unset
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self):
        return self._closed

    def submit(self, function, /, *parameters):
        with self._lock:
            if self._closed:
                logger.debug("store closed, dropping notification for %r", function)
                return None
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="stratum-store")
            return self._executor.submit(self._guarded, function, *parameters)

    @staticmethod
    def _guarded(function, /, *parameters):
        try:
            function(*parameters)
        except Exception:
            logger.exception("option listener %r failed", function)

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
            executor = self._executor
        if executor is not None and self._owned:
            executor.shutdown(wait=True)


class DynamicOption:
    """
    Lazy listener registration: on_value(listener) registers on the store when called.
    """
    __slots__ = ("_register",)

    def __init__(self, register, /):
        self._register = register

    def on_value(self, listener, /):
        self._register(listener)


class OptionStore:
    """
    Typed value bag for one command level.

    Constructor
    - OptionStore(options=(), *sources, executor=Unset)
      options: descriptors declared at this level (the same instance may repeat,
      two distinct descriptors sharing a name raise DuplicateOptionError).
      sources: bound in order, as if bind() were called on each.
      executor: optional concurrent.futures executor used for notifications.

    Reads
    - get(option): first value of the latest list, None when nothing was assigned.
    - get_all(option): copy of the latest list, [] when nothing was assigned.
    - reading an undeclared descriptor raises UnknownOptionError.
    """

    def __init__(self, options=(), /, *sources, executor=Unset):
        declared = {}
        names = {}
        for option in options:
            if not isinstance(option, Option):
                raise TypeError("OptionStore options must be option descriptors")
            if names.setdefault(option.name, option) is not option:
                raise DuplicateOptionError(option)
            declared[option] = None

        self._options = list(declared)
        self._values = {}
        self._listeners = {option: {} for option in self._options}
        self._lock = threading.RLock()
        self._notifier = Notifier(executor)

        for source in sources:
            self.bind(source)

    def bind(self, source, /):
        source.subscribe(self._options, self._assign)
        return self

    def _assign(self, option, values, /):
        with self._lock:
            self._assure_known(option)
            values = self._values[option] = list(values)
            # queued under the lock so notifications follow the order of assignments
            for listener in self._listeners[option].values():
                self._notifier.submit(listener, list(values))

    def _assure_known(self, option, /):
        if option not in self._listeners:
            raise UnknownOptionError(option)

    def options(self):
        return list(self._options)

    def knows(self, option, /):
        return option in self._listeners

    def has(self, option, /):
        with self._lock:
            return option in self._values

    def get(self, option, /):
        with self._lock:
            self._assure_known(option)
            return next(iter(self._values.get(option, ())), None)

    def get_all(self, option, /):
        with self._lock:
            self._assure_known(option)
            return list(self._values.get(option, ()))

    def _listen(self, option, key, adapter, /):
        with self._lock:
            self._assure_known(option)
            self._listeners[option].setdefault(key, adapter)
            values = self._values.get(option)
            if values is not None:
                self._notifier.submit(self._listeners[option][key], list(values))

    def on_change(self, option, listener, /):
        """listener(store, option, value) with the first value of each assignment."""
        self._listen(option, ("change", listener), rename(
            lambda values: listener(self, option, next(iter(values), None)), "on_change"
        ))

    def on_changes(self, option, listener, /):
        """listener(store, option, values) with the full list of each assignment."""
        self._listen(option, ("changes", listener), rename(
            lambda values: listener(self, option, values), "on_changes"
        ))

    def on_value(self, option, listener, /):
        self._listen(option, ("value", listener), rename(
            lambda values: listener(next(iter(values), None)), "on_value"
        ))

    def on_values(self, option, listener, /):
        self._listen(option, ("values", listener), rename(
            lambda values: listener(values), "on_values"
        ))

    def dynamic(self, option, /):
        return DynamicOption(lambda listener: self.on_change(option, listener))

    def dynamic_value(self, option, /):
        return DynamicOption(lambda listener: self.on_value(option, listener))

    def close(self):
        logger.debug("closing option store with %d option(s)", len(self._options))
        self._notifier.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def __repr__(self):
        return "option-store(options=%r)" % ([option.name for option in self._options],)


__all__ = (
    "Notifier",
    "DynamicOption",
    "OptionStore",
)
