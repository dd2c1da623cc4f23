# -*- coding: utf-8 -*-
"""The condition model: what a signaled event looks like.

A condition is an immutable record::

    Condition(message, context, classes, payload)

where `classes` is an ordered tuple of tags (see `condsys.symbol`), most
specific first, always ending in the universal tag `CONDITION`. The four
built-in families are `ERROR`, `WARNING`, `MESSAGE` and `INTERRUPT`; a custom
kind of condition prepends its own tags ahead of one of these::

    (sym("bad-argument"), ERROR, CONDITION)

The class list is the whole class hierarchy. There is no inheritance between
Python types here; whether a handler applies to a condition is decided purely
by tag containment (see `condsys.registry`).
"""

__all__ = ["CONDITION", "ERROR", "WARNING", "MESSAGE", "INTERRUPT", "FAMILIES",
           "Condition", "CallSite", "callsite",
           "make_condition", "canonize_condition", "classes_of", "family_of",
           "define_condition", "condition_from_exception"]

from collections import namedtuple
from collections.abc import Iterable, Mapping
from types import MappingProxyType
import sys
import traceback

from .symbol import sym, as_tag

CONDITION = sym("condition")
ERROR = sym("error")
WARNING = sym("warning")
MESSAGE = sym("message")
INTERRUPT = sym("interrupt")
FAMILIES = (INTERRUPT, ERROR, WARNING, MESSAGE)  # in order of default-action severity
_families = frozenset(FAMILIES)

_empty_payload = MappingProxyType({})

class CallSite(namedtuple("CallSite", ["filename", "lineno", "function"])):
    """Where a condition was signaled. Used as the default condition context."""
    __slots__ = ()
    def __str__(self):
        return f"In {self.function} ({self.filename}:{self.lineno})"

def callsite(stacklevel=0):
    """Return the `CallSite` of the caller of our caller, or further out.

    `stacklevel` counts frames above the function that calls `callsite`:
    `0` is that function itself, `1` its caller, and so on.

    Returns `None` if the call stack is not that deep.
    """
    try:
        frame = sys._getframe(stacklevel + 1)
    except ValueError:  # beyond the root level
        return None
    code = frame.f_code
    return CallSite(code.co_filename, frame.f_lineno, code.co_name)

class Condition(namedtuple("Condition", ["message", "context", "classes", "payload"])):
    """A signaled event. Immutable.

    Do not construct directly; use `make_condition`, a constructor made by
    `define_condition`, or `condition_from_exception`. These guarantee that
    `classes` is non-empty and ends with `CONDITION`.

    Payload fields can be read as attributes::

        c = make_condition("bad-argument", "x must be positive", {"value": -1})
        assert c.value == -1

    Two conditions compare equal only if they are the same event (instance).
    """
    __slots__ = ()

    def __getattr__(self, name):  # only called when normal lookup fails
        try:
            return self.payload[name]
        except KeyError:
            raise AttributeError(f"Condition {self.classes[0]} has no payload field '{name}'") from None

    __eq__ = object.__eq__
    __ne__ = object.__ne__
    __hash__ = object.__hash__

    def __str__(self):
        return self.message
    def __repr__(self):
        tags = ", ".join(str(t) for t in self.classes)
        return f"<Condition [{tags}]: {repr(self.message)}>"

def _canonize_tags(tags):
    if isinstance(tags, (str, sym)):
        tags = (tags,)
    elif not isinstance(tags, Iterable):
        raise TypeError(f"Expected a tag or an iterable of tags, got {type(tags)} with value {repr(tags)}")
    out = []
    for t in tags:
        t = as_tag(t)
        if t is not CONDITION and t not in out:
            out.append(t)
    out.append(CONDITION)  # always last, exactly once
    return tuple(out)

def make_condition(tags, message="", payload=None, context=None):
    """Create a `Condition`.

    `tags`: a tag, or an ordered iterable of tags, most specific first. The
            universal tag `CONDITION` is appended if absent, and moved to the
            end if given elsewhere, so the result always satisfies the class
            list invariant. Strings are interned into tags.

    `message`: human-readable description.

    `payload`: optional mapping of extension fields. Stored read-only.

    `context`: optional call-site description. When `None`, `signal` fills in
               the call site of the signaling code.
    """
    if payload is None:
        payload = _empty_payload
    elif isinstance(payload, Mapping):
        payload = MappingProxyType(dict(payload))
    else:
        raise TypeError(f"payload must be a mapping, got {type(payload)} with value {repr(payload)}")
    return Condition(str(message), context, _canonize_tags(tags), payload)

def canonize_condition(condition):
    """Return `condition` with its class list and payload in canonical form.

    A `Condition` built directly (bypassing `make_condition`) may have string
    tags, or lack the universal tag; this fixes both. The payload is made
    read-only. If nothing needed fixing, `condition` itself is returned.
    """
    classes = _canonize_tags(condition.classes)
    payload = condition.payload
    if payload is None:
        payload = _empty_payload
    elif not isinstance(payload, MappingProxyType):
        if not isinstance(payload, Mapping):
            raise TypeError(f"payload must be a mapping, got {type(payload)} with value {repr(payload)}")
        payload = MappingProxyType(dict(payload))
    if classes == condition.classes and payload is condition.payload:
        return condition
    return condition._replace(classes=classes, payload=payload)

def classes_of(condition):
    """Return the ordered class tags of `condition`, most specific first."""
    return condition.classes

def family_of(condition):
    """Return the built-in family tag of `condition`, or `None`.

    This is the first of `ERROR`, `WARNING`, `MESSAGE`, `INTERRUPT` that
    appears in the class list. A condition with only custom tags has no
    family; signaling it has no default action.
    """
    for t in condition.classes:
        if t in _families:
            return t
    return None

def define_condition(name, *parents, doc=None):
    """Define a custom kind of condition. Return its constructor.

    `name`: the most specific tag of the new kind.
    `parents`: family tags, custom tags, or constructors previously made by
               `define_condition`; their class lists are spliced in, in order.

    The constructor takes `(message="", *, context=None, **payload)`::

        BadArgument = define_condition("bad-argument", ERROR)
        c = BadArgument("x must be positive", value=-1)
        assert c.classes == (sym("bad-argument"), ERROR, CONDITION)

        NegativeArgument = define_condition("negative-argument", BadArgument)
        # classes: negative-argument, bad-argument, error, condition

    The constructor has a `classes` attribute, and its `__name__` is derived
    from `name`, to ease debugging.
    """
    tags = [name]
    for p in parents:
        if callable(p) and hasattr(p, "classes"):
            tags.extend(p.classes)
        else:
            tags.append(p)
    classes = _canonize_tags(tags)

    def constructor(message="", *, context=None, **payload):
        return make_condition(classes, message, payload, context)
    constructor.classes = classes
    pyname = str(classes[0]).replace("-", "_")
    constructor.__name__ = constructor.__qualname__ = pyname
    constructor.__doc__ = doc or f"Create a condition of kind [{', '.join(str(t) for t in classes)}]."
    return constructor

def condition_from_exception(exc):
    """Wrap a Python exception as a condition.

    The custom tags are the class names along the exception type's MRO (up to,
    but not including, `BaseException`), followed by a family chosen by kind:
    `KeyboardInterrupt` becomes an `INTERRUPT`, any `Warning` a `WARNING`, and
    anything else an `ERROR`::

        c = condition_from_exception(ValueError("oof"))
        assert c.classes == (sym("ValueError"), sym("Exception"), ERROR, CONDITION)
        assert c.exception.args == ("oof",)

    Like in a `raise` statement, an exception class is instantiated with no args.

    The context is the innermost frame of the exception's traceback, if it has
    one, else `None`.
    """
    if isinstance(exc, type) and issubclass(exc, BaseException):
        exc = exc()
    if not isinstance(exc, BaseException):
        raise TypeError(f"Expected an exception instance or class, got {type(exc)} with value {repr(exc)}")
    tags = [cls.__name__ for cls in type(exc).__mro__
            if cls not in (object, BaseException)]
    if isinstance(exc, KeyboardInterrupt):
        tags.append(INTERRUPT)
    elif isinstance(exc, Warning):
        tags.append(WARNING)
    else:
        tags.append(ERROR)
    context = None
    if exc.__traceback__ is not None:
        innermost = traceback.extract_tb(exc.__traceback__)[-1]
        context = CallSite(innermost.filename, innermost.lineno, innermost.name)
    return make_condition(tags, str(exc), {"exception": exc}, context)
