"""Pydantic models for API request/response."""

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator


class FetchRequest(BaseModel):
    """Outbound request to run through the guarded client.

    At most one of ``json_body``, ``form`` and ``body`` may be set.
    """

    url: str = Field(min_length=1, max_length=2048)
    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"] = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    json_body: Any | None = None
    form: dict[str, str] | None = None
    body: str | None = None

    @model_validator(mode="after")
    def single_body_source(self) -> "FetchRequest":
        provided = [
            name
            for name, value in (
                ("json_body", self.json_body),
                ("form", self.form),
                ("body", self.body),
            )
            if value is not None
        ]
        if len(provided) > 1:
            raise ValueError(f"only one body source allowed, got: {', '.join(provided)}")
        return self


class FetchResult(BaseModel):
    """Upstream response as returned to the API caller."""

    status: int
    headers: list[tuple[str, str]] = Field(default_factory=list)
    body: str = ""


class HealthStatus(BaseModel):
    status: str = "healthy"
    message: str = "API is running successfully"
    timestamp: str
    version: str
