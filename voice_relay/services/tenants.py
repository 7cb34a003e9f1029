"""
Tenant directory: resolves the shop domain a client connects with.

The directory is read-only from the relay's point of view. check_tenant()
turns a lookup result into the accept/refuse decision made before the
WebSocket upgrade completes.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.config.settings import RelaySettings
from voice_relay.exceptions import TenantUnavailableError
from voice_relay.models.tenant import AgentConfig, TenantContext
from voice_relay.services.supabase_rest import SupabaseRestClient

logger = logging.getLogger(LOGGER_NAME)

TENANT_LOOKUP_FAILED = "Voice assistant temporarily unavailable"


class TenantDirectory(Protocol):
    async def resolve(self, shop_domain: str) -> Optional[TenantContext]:
        """Return the tenant for shop_domain, or None if it is unknown."""
        ...


class InMemoryTenantDirectory:
    """Tenants held in memory, optionally loaded from a JSON file."""

    def __init__(self, tenants: Iterable[TenantContext] = ()):
        self.tenants: Dict[str, TenantContext] = {}
        for tenant in tenants:
            self.add(tenant)

    def add(self, tenant: TenantContext) -> None:
        self.tenants[tenant.shop_domain.lower()] = tenant

    async def resolve(self, shop_domain: str) -> Optional[TenantContext]:
        return self.tenants.get(shop_domain.lower())

    @classmethod
    def from_file(cls, path: str) -> "InMemoryTenantDirectory":
        """
        Load tenants from a JSON file holding a list of TenantContext objects.

        Example entry:
            {"tenant_id": "1", "shop_domain": "demo.myshopify.com",
             "access_token": "shpat_...", "agent": {"greeting_message": "Hi!"}}
        """
        data = json.loads(Path(path).read_text())
        tenants = [TenantContext.model_validate(item) for item in data]
        logger.info(f"Loaded {len(tenants)} tenant(s) from {path}")
        return cls(tenants)


class SupabaseTenantDirectory:
    """Tenants read from the shops and agent_config tables."""

    def __init__(self, client: SupabaseRestClient):
        self.client = client

    async def resolve(self, shop_domain: str) -> Optional[TenantContext]:
        shops = await self.client.select(
            "shops", {"shop_domain": shop_domain}, columns="id,is_active,shop_domain,access_token"
        )
        if not shops:
            return None
        shop = shops[0]

        configs = await self.client.select(
            "agent_config",
            {"shop_id": shop["id"]},
            columns="system_prompt,greeting_message,voice_model,is_enabled",
        )
        agent = AgentConfig()
        if configs:
            config = configs[0]
            agent = AgentConfig(
                system_prompt=config.get("system_prompt"),
                greeting_message=config.get("greeting_message"),
                voice_model=config.get("voice_model"),
                is_enabled=config.get("is_enabled") is not False,
            )

        return TenantContext(
            tenant_id=str(shop["id"]),
            shop_domain=shop["shop_domain"],
            is_active=bool(shop.get("is_active")),
            access_token=shop.get("access_token"),
            agent=agent,
        )


async def check_tenant(directory: TenantDirectory, shop_domain: Optional[str]) -> TenantContext:
    """
    Resolve the connecting tenant or explain why it must be refused.

    Raises:
        TenantUnavailableError: 400 without a shop domain, 404 for an unknown
            or inactive shop, 403 when the voice assistant is disabled, 503
            when the directory itself cannot be reached
    """
    if not shop_domain:
        raise TenantUnavailableError(400, "Shop domain required")

    try:
        tenant = await directory.resolve(shop_domain)
    except Exception as e:
        logger.error(f"Tenant lookup failed for {shop_domain}: {e}", exc_info=True)
        raise TenantUnavailableError(503, TENANT_LOOKUP_FAILED) from e

    if tenant is None or not tenant.is_active:
        raise TenantUnavailableError(404, "Shop not found or inactive")
    if not tenant.agent.is_enabled:
        raise TenantUnavailableError(403, "Voice assistant is disabled for this shop")
    return tenant


def build_tenant_directory(settings: RelaySettings) -> TenantDirectory:
    if settings.supabase_configured:
        logger.info("Using Supabase tenant directory")
        return SupabaseTenantDirectory(
            SupabaseRestClient(settings.supabase_url, settings.supabase_service_role_key)
        )
    if settings.tenants_file:
        return InMemoryTenantDirectory.from_file(settings.tenants_file)
    logger.warning("No tenant source configured; every connection will be refused")
    return InMemoryTenantDirectory()
