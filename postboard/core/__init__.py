"""
Core utilities shared across the postboard API.

This package hosts:
- configuration helpers (env vars, storage path, rate limits)
- the error hierarchy raised by repositories and translated by routers
- cross-cutting services such as logging setup and the rate limiter

Repositories and routers should depend on these primitives instead of reading
os.environ or configuring logging by themselves.
"""
