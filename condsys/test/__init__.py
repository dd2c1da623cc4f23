"""Testing utilities built on the condition system. See `condsys.test.fixtures`."""
