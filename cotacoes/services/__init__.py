"""
Use cases for the cotacoes API.

Routers call these services instead of touching the record store, the cache
or the session directly.
"""
