"""OAuth consent flow Pydantic schemas."""

from pydantic import BaseModel, Field


class OAuthConsentRequest(BaseModel):
    """Request for one step of the two-step consent flow.

    Step 1 returns the authorization URL; step 2 exchanges ``code`` and
    stores the initial credential for ``identity``.
    """

    client_id: str | None = None
    client_secret: str | None = None
    tenant: str | None = None
    redirect: str | None = Field(None, description="Redirect URI registered for the app")
    step: int | None = None
    code: str | None = None
    identity: str | None = Field(None, max_length=64)
