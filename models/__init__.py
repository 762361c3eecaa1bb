"""Database models."""

from models.admin import Admin
from models.match import Match
from models.pair import Pair
from models.user import AuthSession, User

__all__ = [
    "User",
    "AuthSession",
    "Admin",
    "Pair",
    "Match",
]
