"""SST retrieval strategies."""
from .base import SSTRetrievalStrategy
from .login import LoginSSTStrategy
from .simple import SimpleSSTStrategy

__all__ = ["SSTRetrievalStrategy", "LoginSSTStrategy", "SimpleSSTStrategy"]
