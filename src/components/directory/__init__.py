"""
Directory component.

Authoritative in-memory subscriber list.
"""

from src.components.directory.component import Directory, KnownTagSet
from src.components.directory.models import EmptyTagSetError, SubscriptionEntry

__all__ = [
    "Directory",
    "KnownTagSet",
    "SubscriptionEntry",
    "EmptyTagSetError",
]
