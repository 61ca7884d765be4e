"""
Command identities: interned tokens naming the nodes of a command tree.

A Registry hands out one Identity object per name, so identities compare (and
hash) by object identity. GLOBAL is the distinguished root token: it belongs
to every registry, has no name and never matches user input.
"""
import threading

from .utils import mirror


class Identity:
    __slots__ = ("_name",)

    name = mirror("name")

    def __init__(self, name, /):
        if name is not None and not isinstance(name, str):
            raise TypeError("Identity name must be a string")
        self._name = name

    def matches(self, token, /):
        """True iff this identity is name-based and token equals its name exactly."""
        return self._name is not None and isinstance(token, str) and token == self._name

    def __repr__(self):
        return "<identity: %s>" % ("GLOBAL" if self._name is None else self._name)

    def __str__(self):
        return "GLOBAL" if self._name is None else self._name


GLOBAL = Identity(None)


class Registry:
    """
    Interning cache of identities.

    get() and create() are aliases: the first call for a name creates the
    identity, every later call (from any thread) returns the same object.
    """

    def __init__(self):
        self._identities = {}
        self._lock = threading.Lock()

    def get(self, name, /):
        if isinstance(name, Identity):
            return name
        if not isinstance(name, str):
            raise TypeError("Registry.get() argument must be a string or an identity")
        with self._lock:
            try:
                return self._identities[name]
            except KeyError:
                identity = self._identities[name] = Identity(name)
                return identity

    create = get

    @staticmethod
    def matches(identity, token, /):
        if not isinstance(identity, Identity):
            raise TypeError("Registry.matches() first argument must be an identity")
        return identity.matches(token)

    def __contains__(self, name):
        with self._lock:
            return name in self._identities

    def __len__(self):
        with self._lock:
            return len(self._identities)


__all__ = (
    "Identity",
    "Registry",
    "GLOBAL",
)
