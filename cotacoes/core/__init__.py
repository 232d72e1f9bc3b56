"""
Core utilities shared across the cotacoes API.

This package hosts configuration, the error taxonomy, logging setup, the
Redis cache, credential verification, the authentication gate and the rate
limiter. Routers and services depend on these primitives instead of reading
the environment or talking to Redis directly.
"""
