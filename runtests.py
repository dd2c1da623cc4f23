# -*- coding: utf-8 -*-
"""Run all tests for `condsys`.

Each `condsys/tests/test_*.py` module has a `runtests` function, which runs
the module's `test_*` functions, each in its own top-level invocation.
The same modules can also be run with `pytest`, or one at a time with
`python3 -m condsys.tests.test_dispatch` (for example).
"""

import os
import re
import sys
from importlib import import_module

from condsys.test.fixtures import session, testset, tests_errored, tests_failed

def listtestmodules(path):
    testfiles = listtestfiles(path)
    testmodules = [modname(path, fn) for fn in testfiles]
    return list(sorted(testmodules))

def listtestfiles(path, prefix="test_", suffix=".py"):
    return [fn for fn in os.listdir(path) if fn.startswith(prefix) and fn.endswith(suffix)]

def modname(path, filename):  # some/dir/mod.py --> some.dir.mod
    modpath = re.sub(re.escape(os.path.sep), r".", path)
    themod = re.sub(r"\.py$", r"", filename)
    return ".".join([modpath, themod])

def main():
    with session():
        for m in listtestmodules(os.path.join("condsys", "tests")):
            # Wrap each module in its own testset to protect the umbrella testset
            # against ImportError.
            with testset(m):
                mod = import_module(m)
                mod.runtests()
    all_passed = (int(tests_failed) + int(tests_errored)) == 0
    return all_passed

if __name__ == '__main__':
    if not main():
        sys.exit(1)  # pragma: no cover, this only runs when the tests fail.
