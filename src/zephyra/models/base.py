"""Shared result envelope.

Every public component operation returns a model deriving from
``ServiceResult`` instead of raising: failures carry an error kind so a UI
can tell "failed" apart from "loading" and from "zero".
"""

from typing import Optional

from pydantic import BaseModel, Field

from zephyra.errors import ErrorKind, ZephyraError


class ServiceResult(BaseModel):
    """Typed outcome of a component operation."""

    success: bool = Field(..., description="Whether the operation succeeded")
    error_kind: Optional[ErrorKind] = Field(None, description="Error code if failed")
    error: Optional[str] = Field(None, description="Error message if failed")

    @staticmethod
    def error_fields(exc: ZephyraError) -> dict:
        """Keyword arguments describing a failure."""
        return {"success": False, "error_kind": exc.kind, "error": str(exc)}
