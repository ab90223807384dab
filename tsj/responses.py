"""Response envelopes and pagination request parameters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

__all__ = ["Pagination", "Result", "PaginationReq"]


@dataclass
class Pagination:
    """Total item count for a paginated response."""

    total: int = 0


@dataclass
class Result:
    """The JSON envelope returned by handlers."""

    request_id: str = ""
    data: Any = None
    pagination: Pagination | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.request_id:
            body["requestId"] = self.request_id
        body["data"] = self.data
        if self.pagination is not None:
            body["pagination"] = {"total": self.pagination.total}
        return body


class PaginationReq(BaseModel):
    """Limit and offset query parameters."""

    limit: int = 0
    offset: int = 0