"""Status envelope shared by the consent and mount endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    """Envelope returned to the browser-side integration.

    Errors are reported in the body with HTTP 200 so the client script
    can show ``data.message`` to the user.
    """

    status: Literal["success", "error"]
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def success(cls, **data: Any) -> "StatusResponse":
        return cls(status="success", data=data)

    @classmethod
    def error(cls, message: str, **data: Any) -> "StatusResponse":
        return cls(status="error", data={"message": message, **data})
