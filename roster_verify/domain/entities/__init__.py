"""Domain entities package."""
from .embedding import Embedding, to_embedding
from .group import Group
from .subject import DayVerifications, GlobalVerification, ScopeVerification, Subject, validate_day

__all__ = [
    "DayVerifications",
    "Embedding",
    "GlobalVerification",
    "Group",
    "ScopeVerification",
    "Subject",
    "to_embedding",
    "validate_day",
]
