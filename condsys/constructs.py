# -*- coding: utf-8 -*-
"""The scoped constructs: establishing handlers and restarts around a body.

Every construct takes the body as a thunk (0-argument function), pushes its
frame, calls the body, and pops the frame on every way out. Summary::

    establish_exiting(entries, body)        # like try/except, but resumable inside
    establish_calling(entries, body)        # observe; never overrides body's value
    establish_restart(name, recovery, body) # a named point to resume from
    invoke_restart(name, *args, **kwargs)   # resume there; never returns
    capture_first(body)                     # the first condition signaled, or None
    with_finally(body, cleanup)             # cleanup runs exactly once

`entries` is an ordered sequence of `(tagspec, handler)` pairs, or a mapping.
Within one frame, the first matching entry wins; see `condsys.registry`.
A handler is called with the condition as its only argument, or with no
arguments if it accepts none.

The classic example (cf. Seibel, *Practical Common Lisp*, chapter 19): the
low-level code knows *how* to recover, the high-level code decides *which*
way to recover::

    def parse_entry(text):
        ...
        return establish_restart("use_value", lambda v: v,
                                 lambda: error(MalformedEntry(text=text)))

    def parse_log(lines):
        return [parse_entry(line) for line in lines]

    # Somewhere much higher up:
    with calling_handlers(("malformed-entry", lambda c: use_value(None))):
        entries = parse_log(lines)

Here the handler runs *inside* the `error` call in `parse_entry`, and the
restart resumes from the `establish_restart` in `parse_entry`, so
`parse_log` continues with the next line.
"""

__all__ = ["establish_exiting", "establish_calling", "calling_handlers",
           "establish_restart", "with_restarts",
           "invoke_restart", "try_invoke_restart", "invoker", "use_value",
           "find_restart", "available_restarts", "available_handlers",
           "capture_first", "with_finally",
           "RestartNotFound"]

from contextlib import contextmanager
from functools import partial
from operator import itemgetter

from .dispatch import signal, joined
from .frames import EXITING, CALLING, RestartFrame, current
from .model import CONDITION, ERROR, define_condition, callsite
from .registry import canonize_entries, call_handler
from .unwind import ExitToFrame, RestartJump

RestartNotFound = define_condition("restart-not-found", ERROR,
                                   doc="""Create a `restart-not-found` error condition.

Signaled by `invoke_restart` when no restart with the requested name is in
scope. Payload: `name`, the requested name; `available`, the names that were
in scope.
""")

def establish_exiting(entries, body):
    """Call `body()` with exiting handlers in effect. Known as `tryCatch` in R.

    If a condition signaled during `body` is matched by one of `entries`
    (and no inner handler took control first), the call stack unwinds to here,
    the handler is called with the condition, and its return value becomes the
    return value of `establish_exiting`.

    Otherwise, return the value of `body()`.

    The handler runs after this construct's own frame has been popped, so
    anything it signals goes to the handlers outside this construct.
    """
    entries = canonize_entries(entries)
    with joined() as inv:
        frame = inv.push_handlers(EXITING, entries)
        try:
            return body()
        except ExitToFrame as jump:
            if jump.frame is not frame:
                raise  # meant for someone further out
            pending = jump
        finally:
            inv.pop_handlers(frame)
        return call_handler(pending.handler, pending.condition)

def establish_calling(entries, body):
    """Call `body()` with calling handlers in effect. Known as `withCallingHandlers` in R.

    A matching handler runs inside the `signal` call, without unwinding. To
    take control, it must invoke a restart (see `invoke_restart`). To decline,
    and let the next outer handler have a go, it returns normally; its return
    value is ignored. Any side effects it performed (such as logging) remain.

    While a handler runs, its own frame, and every frame inner to it, are out
    of scope; so a handler can safely signal the same kind of condition again.

    Always returns the value of `body()` (unless something unwinds past us).
    """
    entries = canonize_entries(entries)
    with joined() as inv:
        frame = inv.push_handlers(CALLING, entries)
        try:
            return body()
        finally:
            inv.pop_handlers(frame)

@contextmanager
def calling_handlers(*entries):
    """Context manager form of `establish_calling`. Known as `HANDLER-BIND` in Common Lisp.

    Usage::

        with calling_handlers((WARNING, log_it), (ERROR, lambda c: use_value(0))):
            ...

    Each entry is `(tagspec, handler)`.
    """
    entries = canonize_entries(entries)
    with joined() as inv:
        frame = inv.push_handlers(CALLING, entries)
        try:
            yield
        finally:
            inv.pop_handlers(frame)

def establish_restart(name, recovery, body):
    """Call `body()` with a restart called `name` in scope. Known as `withRestarts` in R.

    If the restart is invoked while `body` runs (see `invoke_restart`), the
    call stack unwinds to here, and `recovery(*args, **kwargs)` is called with
    the arguments given to `invoke_restart`. Its return value becomes the
    return value of `establish_restart`. Execution then continues after this
    call, **not** after the `signal` that led to the restart.

    Otherwise, return the value of `body()`.

    If you just need a jump label for skipping the rest of the body at the
    higher-level code's behest, use `lambda: None` as `recovery`.
    """
    if not isinstance(name, str):
        raise TypeError(f"Restart name must be str, got {type(name)} with value {repr(name)}")
    if not callable(recovery):
        raise TypeError(f"Restart '{name}' recovery must be callable, got {type(recovery)} with value {repr(recovery)}")
    with joined() as inv:
        frame = inv.push_restart(name, recovery)
        try:
            return body()
        except RestartJump as jump:
            if jump.frame is not frame:
                raise
            pending = jump
        finally:
            inv.pop_restart(frame)
        return pending()

def with_restarts(**bindings):
    """Alternate syntax: establish several restarts around a `def`.

    Parametric decorator. Returns a `call_with_restarts` function that calls
    its argument with the given restarts in scope. The def'd name is replaced
    by the result::

        @with_restarts(use_value=(lambda x: x),
                       skip=(lambda: None))
        def result():
            ...
            return 42
        # now `result` is 42, or whatever the invoked restart returned

    The returned function can also be stored and reused for several thunks::

        with_usevalue = with_restarts(use_value=(lambda x: x))
        a = with_usevalue(thunk1)
        b = with_usevalue(thunk2)

    The restarts are established in the order given, the last one innermost.
    """
    bindings = list(bindings.items())
    def call_with_restarts(f):
        """Call `f`, with the restarts stored in this closure in scope."""
        body = f
        for name, recovery in reversed(bindings):
            body = partial(establish_restart, name, recovery, body)
        return body()
    return call_with_restarts

def find_restart(name):
    """Return the innermost restart called `name` that is in scope, or `None`.

    The return value can be passed to `invoke_restart`. This allows optional
    condition handling: check for a restart before committing to invoking it.
    """
    inv = current()
    if inv is None:
        return None
    return inv.find_restart(name)

def invoke_restart(name_or_frame, *args, **kwargs):
    """Invoke a restart currently in scope. Known as `invokeRestart` in R.

    `name_or_frame` is a restart name, or a frame returned by `find_restart`.

    Unwinds to the `establish_restart` that established the restart, and makes
    it return `recovery(*args, **kwargs)`. This function never returns.

    To *handle* a condition, call this from inside a handler.

    If there is no such restart in scope, a `restart-not-found` error is
    signaled (and dispatched normally, so a handler may catch it).
    """
    inv = current()
    if isinstance(name_or_frame, RestartFrame):
        name = name_or_frame.name
        frame = name_or_frame if (inv is not None and inv.is_visible(name_or_frame)) else None
    elif isinstance(name_or_frame, str):
        name = name_or_frame
        frame = inv.find_restart(name) if inv is not None else None
    else:
        raise TypeError(f"Expected a restart name or a return value of find_restart, got {type(name_or_frame)} with value {repr(name_or_frame)}")
    if frame is None:
        available = [n for n, _ in available_restarts()]
        # Unhandled, this aborts, so `signal` never returns here.
        signal(RestartNotFound(f"No such restart: {repr(name)}; available restarts: {available}",
                               context=callsite(1), name=name, available=available))
    # Found it - now we are guaranteed to unwind only up to the matching establish_restart.
    raise RestartJump(frame, args, kwargs)

def try_invoke_restart(name_or_frame, *args, **kwargs):
    """Invoke the restart if it is in scope; else return `None`. Known as `tryInvokeRestart` in R.

    Useful in handlers that should work with several signaling protocols,
    only some of which provide the restart.
    """
    if isinstance(name_or_frame, str):
        name_or_frame = find_restart(name_or_frame)
        if name_or_frame is None:
            return None
    else:
        inv = current()
        if inv is None or not inv.is_visible(name_or_frame):
            return None
    invoke_restart(name_or_frame, *args, **kwargs)

def invoker(restart_name, *args, **kwargs):
    """Create a handler that just invokes the named restart.

    The args and kwargs are frozen into the created handler by closure, and
    passed to the restart when the handler triggers. The handler ignores the
    condition it receives::

        establish_calling([("odd-number", invoker("use_value", 0))], body)

    The returned function is named after the restart, to ease debugging.
    """
    def the_invoker(condition):
        invoke_restart(restart_name, *args, **kwargs)
    the_invoker.__name__ = the_invoker.__qualname__ = restart_name
    the_invoker.__doc__ = f"Invoke the '{restart_name}' restart."
    return the_invoker

use_value = partial(invoke_restart, "use_value")
use_value.__doc__ = """Invoke the 'use_value' restart immediately with the given args.

Shorthand for a very common handler body::

    establish_calling([("bad-value", lambda c: use_value(c.fallback))], body)

Restarts are looked up by name, so one such shorthand serves every site
that establishes a `use_value` restart.
"""

def available_restarts():
    """Return a sorted list `[(name, recovery), ...]` of the restarts in scope.

    Shadowing is respected: for each name, only the innermost restart is listed.
    """
    inv = current()
    if inv is None:
        return []
    out = []
    seen = set()
    for frame in reversed(inv.restarts):
        if frame.name not in seen:
            seen.add(frame.name)
            out.append((frame.name, frame.recovery))
    return sorted(out, key=itemgetter(0))

def available_handlers():
    """Like `available_restarts`, but for handlers: `[(tag, handler), ...]`.

    For each tag, the handler that would be consulted first is listed. A
    handler bound to a tuple of tags is listed once for each tag.
    """
    inv = current()
    if inv is None:
        return []
    out = []
    seen = set()
    for frame in reversed(inv.handlers):
        for tagspec, handler in frame.entries:
            tags = tagspec if isinstance(tagspec, tuple) else (tagspec,)
            for t in tags:
                if t not in seen:
                    seen.add(t)
                    out.append((t, handler))
    return sorted(out, key=lambda x: x[0].name)

def capture_first(body):
    """Call `body()`; return the first condition it signals, or `None`.

    This is an exiting construct matching every condition, so `body` stops
    at its first `signal` (of any kind, including messages and warnings).
    If `body` completes without signaling, its return value is discarded and
    `None` is returned.
    """
    def run():
        body()
        return None
    return establish_exiting(((CONDITION, lambda c: c),), run)

def with_finally(body, cleanup):
    """Call `body()`; then call `cleanup()` exactly once, however `body` exits.

    This covers a normal return, an unwind to an exiting handler passing
    through, a restart invocation passing through, an abort, and a Python
    exception. Return the value of `body()`.

    Known as `UNWIND-PROTECT` in Common Lisp, or `tryCatch(finally=...)` in R.
    """
    try:
        return body()
    finally:
        cleanup()
