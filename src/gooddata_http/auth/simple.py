"""Strategy for callers that already hold a super-secure token."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .base import SSTRetrievalStrategy

if TYPE_CHECKING:  # pragma: no cover - import-time guard
    from ..http import HttpHost, Transport


@dataclass(slots=True)
class SimpleSSTStrategy(SSTRetrievalStrategy):
    """Hand out an already issued SST."""

    sst: str

    def __post_init__(self) -> None:
        if not self.sst:
            raise ValueError("SST cannot be empty")

    def obtain_sst(self, transport: Transport, auth_host: HttpHost) -> str:
        return self.sst
