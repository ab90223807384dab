"""Holder for shared infrastructure clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

__all__ = ["Infra"]


@dataclass
class Infra:
    """Shared clients; reading one that was never set raises ``LookupError``."""

    redis_client: Any = None
    mongo_client: Any = None

    def redis(self) -> Any:
        if self.redis_client is None:
            raise LookupError("redis client is not set")
        return self.redis_client

    def mongo(self) -> Any:
        if self.mongo_client is None:
            raise LookupError("mongo client is not set")
        return self.mongo_client