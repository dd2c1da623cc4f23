# -*- coding: utf-8; -*-
"""condsys.test.fixtures, a small testing framework built on condsys.

This is an 80% solution. It provides just enough to get rudimentary, nested
test reports, and doubles as a worked example of a consumer of the condition
system: a session is a top-level invocation, a testset reports stray signals
through calling handlers, and each test function runs in its own,
independent top-level invocation.

Test functions are plain functions using `assert`, so the same test modules
can also be run by `pytest`.

**Usage**::

    from condsys.test.fixtures import session, testset, run, raises, signals

    def test_addition():
        assert 2 + 2 == 4

    with session("framework demo"):
        with testset("arithmetic"):
            run(test_addition)
            run(lambda: error("oops"), name="errors out")  # reported as an error

        # Testsets can be nested.
        with testset("outer"):
            with testset("inner"):
                run(test_addition)

        # A stray warning inside a testset (outside `run`) is reported and
        # muffled, and counted as a warning.
        with testset("stray"):
            warn("careful there")

Inside a test function, `raises` and `signals` assert that a block raises a
Python exception, or signals a condition, respectively::

    def test_stuff():
        with raises(UnhandledError):
            error("boom")
        c = signals("bad-argument", lambda: check(-1))
        assert c.value == -1

If you want to customize, look at the `postproc` parameter of `testset`, and
the `TestConfig` bunch of constants.
"""

from contextlib import contextmanager
from functools import partial
from inspect import isfunction
from traceback import format_tb
from threading import Lock
import sys

from ..constructs import calling_handlers, establish_exiting, try_invoke_restart
from ..dispatch import invocation, toplevel
from ..errors import InvocationAborted
from ..model import ERROR, WARNING
from ..symbol import gensym

__all__ = ["session", "testset", "run", "collect_tests",
           "terminate",
           "raises", "signals",
           "TestConfig",
           "tests_run", "tests_failed", "tests_errored", "tests_warned",
           "summarize", "describe_exception"]

class Counter:
    """A global test counter, updated in a thread-safe way.

    `int(counter)` gives the current value.
    """
    def __init__(self, doc):
        self.value = 0
        self.__doc__ = doc
        self._lock = Lock()
    def update(self, delta):
        with self._lock:
            self.value += delta
    def reset(self):
        with self._lock:
            self.value = 0
    def __int__(self):
        return self.value
    def __repr__(self):  # pragma: no cover
        return f"<Counter {self.value}>"

# Global counts (since Python last started), so that the client code can
# easily calculate the percentage of tests passed.
tests_run = Counter("How many tests have run, in total.")
tests_failed = Counter("How many tests have failed, in total.")
tests_errored = Counter("How many tests have errored, in total.")
tests_warned = Counter("""How many stray warnings the testsets received, in total.

Warnings don't count toward the total number of tests run, and are not
considered essential (i.e. the test suite will succeed even with warnings).
""")

class TestConfig:
    """Global settings for the testing utilities.

    This is just a bunch of constants. Assign new values to the attributes at
    any point in your test script; probably the least confusing if done before
    the `with session`.

    `printer`:          str -> None; display the string. Default is to `print`
                        to `sys.stderr`. Also used as the message sink of the
                        session's top-level invocation.
    `postproc`:         Exception -> None; optional. Default None (no postproc).
    `indent_per_level`: How much to indent per nesting level of `testset`.

    The optional `postproc` is a custom callback for examining failures and
    errors. It receives the exception that failed or errored the test
    (`AssertionError` for a failure). It is called after sending the report to
    `printer`, just before resuming with the remaining tests. To abort the
    session at the first failure, use `terminate` as the `postproc`.
    """
    __test__ = False  # not a test class, for pytest
    printer = partial(print, file=sys.stderr)
    postproc = None
    indent_per_level = 2

def describe_exception(exc):
    """Return a human-readable (possibly multi-line) description of exception `exc`.

    The output is as close as possible to how Python itself formats uncaught
    exceptions, including chained exceptions.
    """
    def describe_instance(instance):
        snippets = []
        if instance.__traceback__ is not None:
            snippets.append("\nTraceback (most recent call last):\n" +
                            "".join(format_tb(instance.__traceback__)))
        msg = str(instance)
        if msg:
            snippets.append(f"{type(instance).__name__}: {msg}")
        else:
            snippets.append(type(instance).__name__)
        return snippets

    def describe_recursive(exc):
        snippets = []
        if exc.__cause__ is not None:  # raise ... from ...
            snippets.extend(describe_recursive(exc.__cause__))
            snippets.append("\n\nThe above exception was the direct cause of the following exception:\n")
        elif not exc.__suppress_context__ and exc.__context__ is not None:
            snippets.extend(describe_recursive(exc.__context__))
            snippets.append("\n\nDuring handling of the above exception, another exception occurred:\n")
        snippets.extend(describe_instance(exc))
        return snippets

    return "".join(describe_recursive(exc))

def summarize(runs, fails, errors, warns):
    """Return a human-readable summary.

    How many tests ran, passed, failed, errored, or warned. All arguments are
    nonnegative integers.
    """
    assert all(isinstance(x, int) and x >= 0 for x in (runs, fails, errors, warns))
    passes = runs - fails - errors
    pass_percentage = 100 * passes / runs if runs else 100
    summary = f"Pass {passes}, Fail {fails}, Error {errors}, Total {runs} ({int(pass_percentage)}% pass)"
    if warns > 0:
        summary += f" + {warns} Warn"
    return summary

class TestSessionExit(Exception):
    """Exception, raising which terminates the current test session."""
    __test__ = False
def terminate(exc=None):  # the parameter is ignored
    """Terminate the test session.

    The parameter is ignored. It is provided so that this can be used as a
    `postproc`, if you want a failure in a particular testset to abort the
    session.
    """
    TestConfig.printer("** TERMINATING SESSION")
    raise TestSessionExit

_nesting_level = 0
_postproc_stack = []  # local overrides can be nested

def _indent(level):
    indent = "*" * (TestConfig.indent_per_level * level)
    if indent:
        indent += " "
    return indent

def _postprocess(exc):
    if _postproc_stack:
        p = _postproc_stack[-1]
    else:
        p = TestConfig.postproc
    if p is not None:
        p(exc)

@contextmanager
def session(name=None):
    """Context manager representing a test session.

    The session is a top-level invocation of the condition system, with
    `TestConfig.printer` as its message sink. It provides an exit point for
    terminating the session early (see `terminate`), and an implicit
    top-level testset.
    """
    if _nesting_level > 0:
        raise RuntimeError("A test `session` cannot be nested inside a `testset`.")
    title = "SESSION" if name is None else f"SESSION '{name}'"
    TestConfig.printer(f"{title} BEGIN")
    try:
        with invocation(sink=TestConfig.printer):
            # This top-level testset tallies the grand totals so we don't have to.
            with testset("top level"):
                yield
    except TestSessionExit:
        pass
    TestConfig.printer(f"{title} END")

class _TestsetAbort(Exception):
    def __init__(self, condition):
        super().__init__(condition)
        self.condition = condition

@contextmanager
def testset(name=None, postproc=None):
    """Context manager representing a test set.

    Automatically computes passes, fails, errors, total, and the pass percentage.

    `name`: optional human-readable name, printed in the output.

    `postproc`: like `TestConfig.postproc`, but overriding that for this test
    set (and any testsets contained within this one, unless they specify
    their own).

    A testset reports stray signals it receives from outside `run`:

      - A stray warning is reported, counted, and muffled, so that outer
        testsets do not see it again.
      - A stray error terminates the testset (it is counted as an errored
        test), like an exception raised outside `run` does.
    """
    global _nesting_level
    r1, f1, e1, w1 = (int(c) for c in (tests_run, tests_failed, tests_errored, tests_warned))

    indent = _indent(_nesting_level)
    errmsg_indent = _indent(_nesting_level + 1)
    _nesting_level += 1

    title = f"{indent}Testset" if name is None else f"{indent}Testset '{name}'"
    TestConfig.printer(f"{title} BEGIN")

    def on_warning(condition):
        tests_warned.update(+1)
        TestConfig.printer(f"{errmsg_indent}WARNING: Testset received warning outside run(): {condition.message}")
        try_invoke_restart("muffle_warning")
        # Without the restart (a bare `signal`), just return normally;
        # the default action defers the warning.

    def on_error(condition):
        raise _TestsetAbort(condition)

    if postproc is not None:
        _postproc_stack.append(postproc)
    try:
        with calling_handlers((WARNING, on_warning), (ERROR, on_error)):
            yield
    except TestSessionExit:  # pass through, it belongs to session, not us
        raise
    except _TestsetAbort as err:
        tests_run.update(+1)
        tests_errored.update(+1)
        c = err.condition
        TestConfig.printer(f"{errmsg_indent}ERROR: Testset terminated by error condition outside run(): "
                           f"{c.context}: {c.message}")
    except Exception as err:
        tests_run.update(+1)
        tests_errored.update(+1)
        TestConfig.printer(f"{errmsg_indent}ERROR: Testset terminated by exception outside run(): " +
                           describe_exception(err))
    finally:
        if postproc is not None:
            _postproc_stack.pop()
        _nesting_level -= 1
        assert _nesting_level >= 0

    r2, f2, e2, w2 = (int(c) for c in (tests_run, tests_failed, tests_errored, tests_warned))
    TestConfig.printer(f"{title} END: " + summarize(r2 - r1, f2 - f1, e2 - e1, w2 - w1))
testset.__test__ = False  # not a test function, for pytest

def run(f, name=None):
    """Run the test function `f`, and record the outcome.

    `f` is called with no arguments, in its own, independent top-level
    invocation, so handlers established by the testsets are not visible to it.
    This makes the test behave exactly as when it is run on its own.

    An `AssertionError` counts as a failure. Any other exception, including
    `UnhandledError` and `Interrupted` from an unhandled condition, counts as
    an error. Return `True` if the test passed.
    """
    name = name or getattr(f, "__name__", repr(f))
    errmsg_indent = _indent(_nesting_level)
    tests_run.update(+1)
    try:
        toplevel(f, sink=TestConfig.printer)
    except TestSessionExit:
        raise
    except AssertionError as err:
        tests_failed.update(+1)
        TestConfig.printer(f"{errmsg_indent}FAIL: {name}: " + describe_exception(err))
        _postprocess(err)
        return False
    except Exception as err:  # including InvocationAborted
        tests_errored.update(+1)
        kind = "unhandled condition" if isinstance(err, InvocationAborted) else "unexpected exception"
        TestConfig.printer(f"{errmsg_indent}ERROR: {name}: {kind}: " + describe_exception(err))
        _postprocess(err)
        return False
    return True

@contextmanager
def raises(exctype, message=None):
    """Context manager. Assert that the block raises `exctype` (or a subclass).

    `exctype` is an exception type, or a tuple of them. On failure, raise
    `AssertionError`, with the optional human-readable `message`.
    """
    try:
        yield
    except exctype:
        return
    name = exctype.__name__ if isinstance(exctype, type) else str(tuple(t.__name__ for t in exctype))
    raise AssertionError(f"Expected {name} to be raised" + (f": {message}" if message else ""))

def signals(tagspec, body, message=None):
    """Assert that `body()` signals a condition matching `tagspec`. Return the condition.

    Like `capture_first`, but only conditions matching `tagspec` are caught;
    `body` is exited at the first such signal. If `body` completes without
    signaling one, raise `AssertionError`, with the optional `message`.
    """
    nothing = gensym("nothing")
    def run_body():
        body()
        return nothing
    result = establish_exiting([(tagspec, lambda c: c)], run_body)
    if result is nothing:
        raise AssertionError(f"Expected a signal matching {tagspec}" + (f": {message}" if message else ""))
    return result

def collect_tests(namespace):
    """Return the test functions defined in a module, in definition order.

    `namespace` is the module's `globals()`. A test function is a function
    whose name starts with `test_`, defined in that module (not imported).

    Typical use, at the end of a test module::

        def runtests():
            with testset("my feature"):
                for f in collect_tests(globals()):
                    run(f)

        if __name__ == '__main__':
            with session(__file__):
                runtests()
    """
    modname = namespace["__name__"]
    return [f for name, f in namespace.items()
            if name.startswith("test_") and isfunction(f) and f.__module__ == modname]
