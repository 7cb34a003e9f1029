"""
Tenant context resolved once when a client connects.

A tenant is a store using the voice assistant. The relay only reads the
tenant's identity, its store credentials and the agent configuration; both are
owned by the dashboard and never modified here.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AgentConfig(BaseModel):
    """Per-tenant assistant configuration."""

    model_config = ConfigDict(frozen=True)

    system_prompt: Optional[str] = None
    greeting_message: Optional[str] = None
    voice_model: Optional[str] = None
    is_enabled: bool = True


class TenantContext(BaseModel):
    """Immutable tenant linkage for a session."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1)
    shop_domain: str = Field(..., min_length=1)
    is_active: bool = True
    access_token: Optional[str] = Field(None, repr=False)
    agent: AgentConfig = Field(default_factory=AgentConfig)

    @property
    def has_store_credentials(self) -> bool:
        return bool(self.access_token)
