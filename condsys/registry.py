# -*- coding: utf-8 -*-
"""Class registry: deciding whether a handler applies to a condition.

A handler frame carries an ordered sequence of entries `(tagspec, handler)`,
where `tagspec` is a tag, or a tuple of tags (OR'd, like a tuple of types in
an `except` clause).

**Sharp edge**: within one frame, the *first* entry whose tagspec matches
wins. Declaration order decides, not specificity. So list specific tags
before general ones::

    [("bad-argument", h2), (ERROR, h1)]  # h2 for bad-argument, h1 for other errors
    [(ERROR, h1), ("bad-argument", h2)]  # h1 for everything; h2 is shadowed
"""

__all__ = ["matches", "first_match", "canonize_entries", "call_handler"]

from collections.abc import Mapping
import inspect

from .symbol import sym, as_tag

def matches(tagspec, condition):
    """Return whether `tagspec` appears anywhere in the class list of `condition`.

    `tagspec` is a tag, or a tuple of tags, any of which may match.
    """
    if isinstance(tagspec, tuple):
        return any(as_tag(t) in condition.classes for t in tagspec)
    return as_tag(tagspec) in condition.classes

def first_match(entries, condition):
    """Return the handler of the first entry in `entries` that matches `condition`.

    If no entry matches, return `None`.
    """
    for tagspec, handler in entries:
        if matches(tagspec, condition):
            return handler
    return None

def canonize_entries(entries):
    """Validate handler frame entries, and return them as a tuple of pairs.

    `entries` is an ordered iterable of `(tagspec, handler)` pairs, or a
    mapping `{tagspec: handler}` (dictionaries preserve insertion order).
    Tags given as strings are interned.
    """
    if isinstance(entries, Mapping):
        entries = entries.items()
    out = []
    for entry in entries:
        try:
            tagspec, handler = entry
        except (TypeError, ValueError):
            raise TypeError(f"Each entry must be of the form (tag, callable) or ((t0, ..., tn), callable), got {repr(entry)}") from None
        if isinstance(tagspec, tuple):
            tagspec = tuple(as_tag(t) for t in tagspec)
            if not tagspec:
                raise TypeError("An entry's tuple of tags must not be empty")
        elif isinstance(tagspec, (str, sym)):
            tagspec = as_tag(tagspec)
        else:
            raise TypeError(f"Expected a tag or a tuple of tags, got {type(tagspec)} with value {repr(tagspec)}")
        if not callable(handler):
            raise TypeError(f"Handler for {tagspec} must be callable, got {type(handler)} with value {repr(handler)}")
        out.append((tagspec, handler))
    return tuple(out)

def _accepts_arg(f):
    try:
        inspect.signature(f).bind(None)
    except ValueError:  # pragma: no cover, no signature available for some builtins
        return True  # just assume it
    except TypeError:
        return False
    return True

def call_handler(handler, condition):
    """Call `handler` with `condition`, or with no arguments if it takes none.

    A handler that does not need to look at the condition may be a plain
    thunk, such as `lambda: "default"`.
    """
    if _accepts_arg(handler):
        return handler(condition)
    return handler()
