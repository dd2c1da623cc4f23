# -*- coding: utf-8 -*-
"""Standard signaling protocols, and conveniences built on the core constructs.

Each of `error`, `cerror`, `warn`, `inform` and `interrupt` implements its own
protocol on top of `signal`:

  - `error`: signal; if nobody takes control, abort the invocation.
  - `cerror` (correctable error): like `error`, but provide a `proceed`
    restart that makes `cerror` return normally.
  - `warn`: signal a warning inside a `muffle_warning` restart. If nobody
    takes control, the warning is deferred, and reported when the top-level
    invocation ends.
  - `inform`: signal a message inside a `muffle_message` restart. If nobody
    takes control, the message is printed right away.
  - `interrupt`: signal an interrupt; if nobody takes control, abort at once.

**Muffling** is a convention, not a primitive. A calling handler that wants to
stop a warning from propagating further, and from being reported, invokes the
`muffle_warning` restart. That restart was established by `warn` immediately
around its `signal`, so execution continues in the caller of `warn` as if
the default action had been skipped; `warn` then returns `SUPPRESSED`::

    establish_calling([(WARNING, muffle_warning)], body)  # silence all warnings in body

The conveniences at the end of this module (`with_default`,
`suppress_warnings`, `suppress_messages`, `silently`, `sigint_interrupts`)
are composed purely of the core constructs. If these protocols do not cover
your use case, make a custom one the same way.
"""

__all__ = ["error", "cerror", "proceed",
           "warn", "muffle_warning",
           "inform", "muffle_message",
           "interrupt", "SUPPRESSED",
           "with_default", "suppress_warnings", "suppress_messages", "silently",
           "sigint_interrupts"]

from contextlib import contextmanager
import signal as _signals
import threading

from .constructs import (establish_exiting, establish_calling, establish_restart,
                         invoker, try_invoke_restart)
from .dispatch import signal, joined
from .model import (Condition, ERROR, WARNING, MESSAGE, INTERRUPT,
                    make_condition, canonize_condition, condition_from_exception, callsite)
from .symbol import sym
from .unwind import Abort

SUPPRESSED = sym("suppressed")
SUPPRESSED.__doc__ = """Return value of `warn` and `inform` when a handler muffled the condition."""

def _as_condition(family, what, payload, stacklevel):
    """Build the condition for a protocol function. `stacklevel` as in `callsite`."""
    if isinstance(what, Condition):
        if payload:
            raise TypeError("When signaling a ready-made Condition, do not pass a payload")
        what = canonize_condition(what)
        if what.context is None:
            what = what._replace(context=callsite(stacklevel + 1))
        return what
    if isinstance(what, BaseException) or (isinstance(what, type) and issubclass(what, BaseException)):
        if payload:
            raise TypeError("When signaling an exception, do not pass a payload")
        condition = condition_from_exception(what)
        if condition.context is None:
            condition = condition._replace(context=callsite(stacklevel + 1))
        return condition
    return make_condition(family, what, payload, callsite(stacklevel + 1))

def error(what="", **payload):
    """Signal an error. If no handler takes control, abort the top-level invocation.

    `what`: a message (str), a ready-made `Condition`, or a Python exception
            instance or class. A message makes a plain `error` condition
            carrying `payload`.

    The caller of the aborted invocation receives `UnhandledError`. If no
    invocation is active, that is the caller of `error`.

    Even a condition that does not belong to the `error` family aborts when
    passed to `error`. This function never returns normally.
    """
    condition = _as_condition(ERROR, what, payload, stacklevel=1)
    with joined():
        signal(condition)
        raise Abort(condition)

def cerror(what="", **payload):
    """Like `error`, but allow a handler to instruct the caller to ignore the error.

    `cerror` establishes a restart named `proceed`, which can be invoked to
    make `cerror` return normally (with `None`) to its caller. The restart
    function `proceed` does exactly that::

        def check(xs):
            out = []
            for x in xs:
                if x % 2 == 1:
                    cerror(OddNumber(f"{x} is odd", value=x))
                out.append(x)
            return out

        establish_calling([("odd-number", proceed)], lambda: check(range(4)))  # [0, 1, 2, 3]

    (Common Lisp calls this restart `continue`, a reserved word in Python.)
    """
    condition = _as_condition(ERROR, what, payload, stacklevel=1)
    def signal_it():
        with joined():
            signal(condition)
            raise Abort(condition)
    return establish_restart("proceed", lambda: None, signal_it)

def warn(what="", **payload):
    """Signal a warning. Return `NO_OVERRIDE`, or `SUPPRESSED` if muffled.

    `what` as in `error`, but a message makes a plain `warning` condition.

    The signal happens inside a restart named `muffle_warning`. If no handler
    takes control, the warning is appended to the deferred-warning buffer of
    the active invocation, and reported when the invocation ends; execution
    continues normally.
    """
    condition = _as_condition(WARNING, what, payload, stacklevel=1)
    return establish_restart("muffle_warning", lambda: SUPPRESSED,
                             lambda: signal(condition))

def inform(what="", **payload):
    """Signal an informational message. Return `NO_OVERRIDE`, or `SUPPRESSED` if muffled.

    Known as `message` in R. The signal happens inside a restart named
    `muffle_message`. If no handler takes control, the message is written to
    the invocation's sink (by default, `stderr`).
    """
    condition = _as_condition(MESSAGE, what, payload, stacklevel=1)
    return establish_restart("muffle_message", lambda: SUPPRESSED,
                             lambda: signal(condition))

def interrupt(what="interrupted", **payload):
    """Signal an interrupt (cancellation). If no handler takes control, abort at once.

    The caller of the aborted invocation receives `Interrupted`; deferred
    warnings are discarded unreported. This function never returns normally.

    To react to cancellation, establish a handler for `INTERRUPT`, as for any
    other condition.
    """
    condition = _as_condition(INTERRUPT, what, payload, stacklevel=1)
    with joined():
        signal(condition)
        raise Abort(condition, interrupt=True)

# Standard restart functions for the predefined protocols

proceed = invoker("proceed")
proceed.__doc__ = "Invoke the 'proceed' restart. Restart function for use with `cerror`."

muffle_warning = invoker("muffle_warning")
muffle_warning.__doc__ = "Invoke the 'muffle_warning' restart. Restart function for use with `warn`."

muffle_message = invoker("muffle_message")
muffle_message.__doc__ = "Invoke the 'muffle_message' restart. Restart function for use with `inform`."

# Conveniences

def with_default(body, value, tags=ERROR):
    """Call `body()`; if it signals a condition matching `tags`, return `value` instead.

    `tags` is a tag or a tuple of tags; default `ERROR`. This is an exiting
    construct, so `body` does not resume::

        n = with_default(lambda: parse_int(s), 0)
    """
    return establish_exiting([(tags, lambda condition: value)], body)

def _muffler(restart_name):
    def muffle(condition):
        # Only `warn`/`inform` provide the restart; a bare `signal` cannot be muffled.
        try_invoke_restart(restart_name)
    return muffle

def suppress_warnings(body, tags=WARNING):
    """Call `body()`, muffling warnings that match `tags`. Known as `suppressWarnings` in R.

    Execution of `body` continues after each muffled `warn`. Return the value of `body()`.
    """
    return establish_calling([(tags, _muffler("muffle_warning"))], body)

def suppress_messages(body, tags=MESSAGE):
    """Call `body()`, muffling messages that match `tags`. Known as `suppressMessages` in R."""
    return establish_calling([(tags, _muffler("muffle_message"))], body)

def silently(body):
    """Call `body()`, muffling all its warnings and messages. Return the value of `body()`."""
    return establish_calling([(WARNING, _muffler("muffle_warning")),
                              (MESSAGE, _muffler("muffle_message"))],
                             body)

@contextmanager
def sigint_interrupts(what="interrupted"):
    """Context manager. Turn `SIGINT` (Ctrl+C) into an `interrupt` condition.

    Inside the block, a `SIGINT` signals an `INTERRUPT` condition at the point
    where the code was executing when the OS signal arrived, so the dynamic
    scope (handlers, restarts) of that point is in effect. Python runs OS signal
    handlers in the main thread only, so this works only there.

    The previous `SIGINT` handler is restored when the block exits.
    """
    if threading.current_thread() is not threading.main_thread():
        raise RuntimeError("sigint_interrupts can only be used in the main thread")
    def on_sigint(signum, frame):
        interrupt(what)
    previous = _signals.signal(_signals.SIGINT, on_sigint)
    try:
        yield
    finally:
        _signals.signal(_signals.SIGINT, previous)
