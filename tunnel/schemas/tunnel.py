"""Pydantic schemas for the tunnel envelope."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

INTERNAL_FAILURE_CODE = 500


@dataclass(frozen=True)
class FetchRequest:
    """One inbound tunnel call: what to fetch and on whose behalf."""

    target_url: str
    client_id: str


class FetchStatus(BaseModel):
    """Upstream metadata reported alongside the relayed body."""

    url: str = Field(..., description="Target URL exactly as supplied by the caller.")
    content_type: str = Field(
        "", description="Upstream Content-Type header; empty when the fetch failed."
    )
    http_code: int = Field(
        ..., description="Upstream status code, or 500 when the fetch failed internally."
    )


class FetchResult(BaseModel):
    """Envelope returned to the caller for every admitted request."""

    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(
        "",
        alias="contents",
        description="Upstream body decoded as text; empty when the fetch failed.",
    )
    status: FetchStatus

    @classmethod
    def failure(cls, url: str) -> "FetchResult":
        """Build the envelope reported for any internal fetch failure."""
        return cls(content="", status=FetchStatus(url=url, http_code=INTERNAL_FAILURE_CODE))


@dataclass(frozen=True)
class TunnelReply:
    """Body and declared content type handed back to the HTTP layer."""

    body: bytes
    content_type: str
