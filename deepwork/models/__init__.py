from deepwork.models.base import Base
from deepwork.models.kv_entry import KVEntry

__all__ = [
    "Base",
    "KVEntry",
]
