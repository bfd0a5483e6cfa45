"""Routers package."""

from . import (
    health,
    auth,
    match,
    wishlist,
    admin,
)
