"""Mount configuration Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, Field

from spstorage.models.credential import IDENTITY_SCOPE


class MountOptions(BaseModel):
    """Options of a SharePoint document library mount."""

    site_url: str = ""
    library: str = ""
    identity: str = Field("", max_length=64)
    tenant: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    scope_id: int = IDENTITY_SCOPE

    def as_options(self) -> dict[str, Any]:
        """Plain option mapping as handed over by the host."""
        return self.model_dump()
