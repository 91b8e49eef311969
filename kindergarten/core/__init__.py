"""
Core utilities shared across the kindergarten site.

This package hosts configuration, logging setup, input sanitization,
password hashing, CSRF and rate limit helpers. Services and routers depend on
these primitives instead of reading os.environ or request internals directly.
"""
