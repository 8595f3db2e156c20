"""
Persistence adapters.

These modules encapsulate how accounts and posts are stored/retrieved (a
single JSON document today). Routers should depend on the repositories rather
than touching the JSON file.
"""

from .account_repository import AccountRepository
from .json_storage import JsonStorage
from .post_repository import PostRepository

__all__ = ["AccountRepository", "JsonStorage", "PostRepository"]
