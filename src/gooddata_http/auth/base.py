"""Base abstraction for SST retrieval strategies."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - import-time guard
    from ..http import HttpHost, Transport


class SSTRetrievalStrategy(ABC):
    """Interface each way of obtaining a super-secure token must implement."""

    @abstractmethod
    def obtain_sst(self, transport: Transport, auth_host: HttpHost) -> str:
        """Return a fresh SST or raise `AuthenticationError`."""
