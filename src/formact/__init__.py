"""formact kernel utilities."""

from .equality import deep_equals, is_transient_key
from .ids import unique_id

__all__ = [
    "deep_equals",
    "is_transient_key",
    "unique_id",
]
