"""Models package."""

from .user import User
from .session import Session
from .match import Match
from .wishlist_item import WishlistItem
