"""
Query payload sent to the /query and /stream endpoints.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from shared_tables.errors import PayloadEncodeError

Binding = Union[str, int, float, bool, None, list[Any], dict[str, Any]]


class QueryPayload(BaseModel):
    """SQL text with positional ``$n`` placeholders and its bindings."""

    model_config = ConfigDict(frozen=True)

    sql: str = Field(min_length=1, description="SQL text")
    bindings: list[Binding] = Field(default_factory=list, description="Placeholder values")

    def to_json(self) -> bytes:
        """Serialize the request body.

        Raises:
            PayloadEncodeError: If a binding is not JSON-serializable
        """
        try:
            return json.dumps(
                {"sql": self.sql, "bindings": self.bindings},
                separators=(",", ":"),
                allow_nan=False,
            ).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise PayloadEncodeError(f"JSON error while packaging payload: {e}", cause=e) from e

    @property
    def digest(self) -> str:
        """Short stable identifier of the SQL text, for logs."""
        return hashlib.sha1(self.sql.encode("utf-8")).hexdigest()[:12]
