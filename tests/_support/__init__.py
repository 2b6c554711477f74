"""
Test support utilities for actionbus tests.

Handler classes live in a real module so they can be referenced both as
classes and as ``"_support.handlers:ClassName"`` import strings.
"""
