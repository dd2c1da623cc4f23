# -*- coding: utf-8; -*-
"""Interned symbols, used as condition class tags and as sentinel values.

A condition's class list is an ordered sequence of tags. A tag is a `sym`:
a lightweight, human-readable, process-wide unique marker that can be
compared to another tag by object identity::

    bad = sym("bad-argument")
    assert bad is sym("bad-argument")
    assert bad is not sym("error")

Strings are accepted anywhere a tag is expected; see `as_tag`.

See:
    https://stackoverflow.com/questions/8846628/what-exactly-is-a-symbol-in-lisp-scheme
"""

__all__ = ["sym", "gensym", "as_tag"]

from weakref import WeakValueDictionary
import threading

_registry = WeakValueDictionary()
_registry_lock = threading.Lock()

class sym:
    """An interned (by default) symbol.

    `name`: str, the human-readable name.

    `intern`: bool. Interned symbols map their name to a single instance, so
    `sym("x") is sym("x")`, also across pickling. An uninterned symbol is
    a unique nonce with a label; see `gensym`.
    """
    def __new__(cls, name, intern=True):  # also called on unpickling
        if not isinstance(name, str):
            raise TypeError(f"Symbol name must be str, got {type(name)} with value {repr(name)}")
        if not intern:
            return super().__new__(cls)
        try:  # EAFP; the common case is an existing symbol
            return _registry[name]
        except KeyError:
            with _registry_lock:
                instance = _registry.get(name)
                if instance is None:
                    instance = _registry[name] = super().__new__(cls)
            return instance

    def __init__(self, name, intern=True):
        self.name = name
        self.interned = intern

    def __getnewargs__(self):
        return (self.name, self.interned)

    def __str__(self):
        if self.interned:
            return self.name
        return repr(self)
    def __repr__(self):
        if self.interned:
            return f'sym("{self.name}")'
        return f'<uninterned symbol "{self.name}" at 0x{id(self):x}>'

def gensym(name):
    """Create an uninterned symbol: a unique nonce with a human-readable label.

    Useful for tags that must not collide with anyone else's::

        mine = gensym("retry")
        assert mine is not sym("retry")
    """
    return sym(name, intern=False)

def as_tag(x):
    """Return `x` as a tag. A `str` is interned; a `sym` passes through."""
    if isinstance(x, sym):
        return x
    if isinstance(x, str):
        return sym(x)
    raise TypeError(f"Expected a tag (str or sym), got {type(x)} with value {repr(x)}")
