# -*- coding: utf-8 -*-
"""The signal dispatcher.

`signal` is the "raise" of the condition system. It does **not** unwind the
call stack by itself. It walks the handler stack from innermost to outermost,
and the kind of the first frame with a matching entry decides what happens:

  - **Exiting** frame: control jumps out to the construct that established the
    frame. Everything in between is unwound (running `finally` guards, and
    popping all handler and restart frames pushed since). Then the handler is
    called, and the construct returns its result.

  - **Calling** frame: the handler is called right here, inside the `signal`
    call, without unwinding anything. If it returns normally, it has declined;
    the search continues outward from the next frame. A calling handler takes
    control only by invoking a restart, or by signaling something that an
    exiting handler catches.

If no handler takes control, the default action of the condition's family
runs (see `Config` and the table in `default_action`).

Default actions that abort (unhandled `error` or `interrupt`) abort the whole
active top-level invocation. A top-level invocation is started explicitly by
`toplevel` or `with invocation()`, or implicitly, by any construct or `signal`
used while no invocation is active.
"""

__all__ = ["signal", "NO_OVERRIDE",
           "default_action",
           "invocation", "toplevel",
           "deferred_warnings", "last_warnings", "report_warnings",
           "Config"]

from contextlib import contextmanager
from functools import partial
import sys
import warnings

from .errors import UnhandledError, Interrupted, ConditionWarning
from .frames import EXITING, Invocation, current, _invocations, _L
from .model import (Condition, CallSite, ERROR, WARNING, MESSAGE, INTERRUPT,
                    make_condition, canonize_condition, family_of,
                    condition_from_exception, callsite)
from .registry import first_match, call_handler
from .symbol import sym
from .unwind import ExitToFrame, Abort

NO_OVERRIDE = sym("no_override")
NO_OVERRIDE.__doc__ = """Return value of `signal` when no handler took control.

The signaling code continues with the statement after the `signal` call.
"""

def report_warnings(deferred, dropped=0):
    """Default `Config.warning_reporter`. Emit deferred warnings via `warnings`.

    `deferred`: list of `(message, context)`. Each is attributed to its
                original call site when the context is a `CallSite`.
    `dropped`: how many more warnings were signaled than fit into the buffer.
    """
    for message, context in deferred:
        if isinstance(context, CallSite):
            warnings.warn_explicit(message, ConditionWarning, context.filename, context.lineno)
        else:
            warnings.warn(message, ConditionWarning, stacklevel=2)
    if dropped:
        warnings.warn(f"{dropped} more warnings were signaled, but only the first {len(deferred)} were kept.",
                      ConditionWarning, stacklevel=2)

class Config:
    """Global settings for the default actions.

    This is just a bunch of constants. Assign new values to the attributes to
    change the settings; they take effect from that point forward.

    `printer`:          str -> None; the default diagnostic sink for
                        unhandled `message` conditions. Default is to `print`
                        to `sys.stderr`. A top-level invocation may override
                        this with its own `sink`.
    `warning_reporter`: (deferred, dropped) -> None; called when a top-level
                        invocation ends with unhandled warnings in its buffer.
                        Default is `report_warnings`.
    `max_deferred`:     int; how many unhandled warnings one invocation keeps.
                        Further warnings are only counted.
    """
    printer = partial(print, file=sys.stderr)
    warning_reporter = staticmethod(report_warnings)
    max_deferred = 50

@contextmanager
def invocation(*, sink=None):
    """Context manager. Start a new, independent top-level invocation.

    The block gets its own, initially empty, handler and restart stacks, and
    its own deferred-warning buffer. Handlers and restarts of any enclosing
    invocation are not visible inside the block.

    When the block exits:

      - Normally, or by a Python exception: any deferred warnings are reported
        via `Config.warning_reporter`, and then the buffer is cleared.
      - By an unhandled `error`: the warnings are reported, and
        `UnhandledError` is raised to the caller.
      - By an unhandled `interrupt`: the warnings are discarded unreported,
        and `Interrupted` is raised to the caller.

    `sink`: str -> None; where unhandled `message` conditions are written.
            Default `None` means `Config.printer`.

    The `as` target, if any, is the `Invocation` object.
    """
    inv = Invocation(sink=sink)
    invocations = _invocations()
    invocations.append(inv)
    aborted = None
    try:
        yield inv
    except Abort as abort:
        aborted = abort
    finally:
        invocations.pop()
        inv.teardown()
        if aborted is not None and aborted.interrupt:
            inv.deferred.clear()
            _L.last_warnings = []
        else:
            _flush(inv)
    if aborted is not None:
        condition = aborted.condition
        exc = condition.payload.get("exception")
        if not isinstance(exc, BaseException):
            exc = None
        if aborted.interrupt:
            raise Interrupted(condition) from exc
        raise UnhandledError(condition) from exc

def toplevel(body, *, sink=None):
    """Call `body()` as a new top-level invocation; return its value.

    Function form of `with invocation()`; see its docstring.
    """
    with invocation(sink=sink):
        return body()

@contextmanager
def joined():
    """Join the active invocation, or start an implicit one if there is none."""
    inv = current()
    if inv is not None:
        yield inv
    else:
        with invocation() as inv:
            yield inv

def _flush(inv):
    deferred, dropped = inv.deferred, inv.dropped
    inv.deferred, inv.dropped = [], 0
    _L.last_warnings = deferred
    if deferred:
        Config.warning_reporter(deferred, dropped)

def deferred_warnings():
    """Return a list of the unhandled warnings so far in the active invocation.

    Each item is `(message, context)`. Outside any invocation, return `[]`.
    """
    inv = current()
    if inv is None:
        return []
    return list(inv.deferred)

def last_warnings():
    """Return the warnings reported when the most recent invocation on this thread ended."""
    return list(getattr(_L, "last_warnings", []))

def _canonize(classes, message, payload, context, stacklevel):
    if isinstance(classes, Condition):
        if message or payload:
            raise TypeError("When signaling a ready-made Condition, do not pass a message or payload")
        condition = canonize_condition(classes)
    elif isinstance(classes, BaseException) or (isinstance(classes, type) and issubclass(classes, BaseException)):
        if message or payload:
            raise TypeError("When signaling an exception, do not pass a message or payload")
        condition = condition_from_exception(classes)
    else:
        condition = make_condition(classes, message, payload, context)
    if condition.context is None:
        condition = condition._replace(context=context if context is not None else callsite(stacklevel))
    return condition

def signal(classes, message="", payload=None, *, context=None, stacklevel=1):
    """Signal a condition. Return `NO_OVERRIDE`, or do not return at all.

    `classes`: the condition to signal. One of:
      - a tag, or an ordered sequence of tags (most specific first); then
        `message` and `payload` are used to build the condition,
      - a ready-made `Condition`,
      - a Python exception instance or class (see `condition_from_exception`).

    `context`: call-site description. Default is the caller of `signal`
               (or further out; see `stacklevel`, which works as in
               `warnings.warn`).

    Handlers run from dynamically innermost to outermost, with the condition
    as their only argument. See the module docstring for what happens then.

    `signal` returns only if no handler took control and the default action of
    the condition's family allows continuing: for `warning`, `message`, and
    plain custom signals that belong to no family.
    """
    condition = _canonize(classes, message, payload, context, stacklevel + 1)
    with joined() as inv:
        _dispatch(inv, condition)
        return default_action(condition, inv)

def _dispatch(inv, condition):
    # Snapshot, since calling handlers swap in a truncated stack while they run.
    for frame in reversed(inv.handlers[:]):
        handler = first_match(frame.entries, condition)
        if handler is None:
            continue
        if frame.kind is EXITING:
            raise ExitToFrame(frame, handler, condition)
        with inv.outside(frame):
            call_handler(handler, condition)
        # Returned normally: declined. Continue with the next outer frame.

def default_action(condition, inv=None):
    """Run the default action for the family of `condition`.

    =========  =============================================================
    family     default action
    =========  =============================================================
    error      abort the active top-level invocation (`UnhandledError`)
    warning    append `(message, context)` to the deferred-warning buffer
    message    write the message to the invocation's sink
    interrupt  abort immediately (`Interrupted`), discarding deferred warnings
    (none)     nothing
    =========  =============================================================

    Returns `NO_OVERRIDE` when the action allows continuing.

    `inv`: the `Invocation` to act in. Default is the active one (starting an
           implicit one if there is none).
    """
    condition = canonize_condition(condition)
    if inv is None:
        with joined() as inv:
            return default_action(condition, inv)
    family = family_of(condition)
    if family is INTERRUPT:
        raise Abort(condition, interrupt=True)
    elif family is ERROR:
        raise Abort(condition)
    elif family is WARNING:
        if len(inv.deferred) < Config.max_deferred:
            inv.deferred.append((condition.message, condition.context))
        else:
            inv.dropped += 1
    elif family is MESSAGE:
        sink = inv.sink if inv.sink is not None else Config.printer
        sink(condition.message)
    return NO_OVERRIDE
