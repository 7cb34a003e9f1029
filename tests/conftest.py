import logging

import pytest

from voice_relay.config.settings import RelaySettings
from voice_relay.models.tenant import AgentConfig, TenantContext
from voice_relay.services.persistence import InMemoryConversationStore
from voice_relay.services.tenants import InMemoryTenantDirectory

from tests.fakes import FakeModelClient, FakeStoreClient, FakeSynthesizer, FakeTranscriber


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture
def settings():
    return RelaySettings(
        openai_api_key="sk-test",
        deepgram_api_key="dg-test",
        elevenlabs_api_key="el-test",
    )


@pytest.fixture
def tenant():
    return TenantContext(
        tenant_id="shop-1",
        shop_domain="demo.myshopify.com",
        access_token="shpat_test",
        agent=AgentConfig(greeting_message="Hi! How can I help?", voice_model="voice-123"),
    )


@pytest.fixture
def tenant_directory(tenant):
    return InMemoryTenantDirectory([
        tenant,
        TenantContext(tenant_id="shop-2", shop_domain="closed.myshopify.com", is_active=False),
        TenantContext(
            tenant_id="shop-3",
            shop_domain="quiet.myshopify.com",
            agent=AgentConfig(is_enabled=False),
        ),
    ])


@pytest.fixture
def conversation_store():
    return InMemoryConversationStore()


@pytest.fixture
def model_client():
    return FakeModelClient()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def store_client():
    return FakeStoreClient()


@pytest.fixture
def transcriber():
    return FakeTranscriber()
