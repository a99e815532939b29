"""GoodData HTTP client with transparent SST/TT authentication."""
from .auth import LoginSSTStrategy, SimpleSSTStrategy, SSTRetrievalStrategy
from .client import GoodDataHttpClient
from .config import ClientConfig
from .exceptions import AuthenticationError, GoodDataError
from .http import HttpHost, SessionTransport

__all__ = [
    "GoodDataHttpClient",
    "ClientConfig",
    "HttpHost",
    "SessionTransport",
    "SSTRetrievalStrategy",
    "LoginSSTStrategy",
    "SimpleSSTStrategy",
    "GoodDataError",
    "AuthenticationError",
]
