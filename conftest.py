"""
Root conftest.

Its presence puts the repository root on sys.path, so tests can import the
``src`` namespace package without an install step.
"""
