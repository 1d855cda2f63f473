# app/routers/__init__.py

from . import auth
from . import loyalty

__all__ = [
    "auth",
    "loyalty",
]
