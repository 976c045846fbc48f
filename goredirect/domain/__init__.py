"""Pure domain logic: path helpers, redirect rules, the route table, errors.

These modules are free of FastAPI/HTTP concerns so they can be unit-tested
and reused by both the server and the smoke runner.
"""
__all__ = ["errors", "paths", "rules", "routes"]
