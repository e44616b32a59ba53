from pydantic import BaseModel, Field


class SweepSummary(BaseModel):
    """Result of one pass over all identities with entitlements."""

    identities_scanned: int = Field(0, description="Identities examined")
    identities_updated: int = Field(0, description="Identities with newly expired entitlements")
    entitlements_expired: int = Field(0, description="Entitlements flagged as expired in this run")
    failures: int = Field(0, description="Identities skipped because of an error")
