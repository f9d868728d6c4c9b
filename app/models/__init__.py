"""
Hookups — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from app.models.hookup import Hookup, HookupEntry

__all__ = [
    "Hookup",
    "HookupEntry",
]
