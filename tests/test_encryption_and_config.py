import pytest
from pydantic import ValidationError

from adapters.external.encryption_service import EncryptionServiceAdapter
from config.adapters import (
    ConfigAdapter,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
)
from core.domain.exceptions import TokenEncryptionError


@pytest.mark.asyncio
async def test_encrypted_token_is_opaque_and_decryptable(mock_logger):
    service = EncryptionServiceAdapter("test_encryption_key_32_bytes_long", mock_logger)

    encrypted = await service.encrypt("refresh-token")

    assert encrypted != "refresh-token"
    assert await service.decrypt(encrypted) == "refresh-token"
    assert await service.encrypt("") == ""
    assert await service.decrypt("") == ""


@pytest.mark.asyncio
async def test_decrypt_with_other_key_fails(mock_logger):
    encrypted = await EncryptionServiceAdapter("first_key_is_long_enough", mock_logger).encrypt("x")

    with pytest.raises(TokenEncryptionError):
        await EncryptionServiceAdapter("second_key_is_long_enough", mock_logger).decrypt(encrypted)


def test_testing_config_uses_memory_database(testing_config):
    assert testing_config.get_environment() == "testing"
    assert testing_config.get_database_url() == "sqlite+aiosqlite:///:memory:"
    assert testing_config.get_queue_backend() == "database"
    assert testing_config.get_azure_tenant_id() == "test_tenant_id"


def test_config_validates_values():
    with pytest.raises(ValidationError):
        TestingConfig(encryption_key="short")
    with pytest.raises(ValidationError):
        TestingConfig(log_level="LOUD")
    with pytest.raises(ValidationError):
        TestingConfig(queue_backend="redis")

    assert TestingConfig(log_level="debug").get_log_level() == "DEBUG"


def test_production_rejects_sqlite_and_dev_secrets():
    with pytest.raises(ValidationError):
        ProductionConfig(
            database_url="sqlite+aiosqlite:///./prod.db",
            azure_client_id="client",
            encryption_key="a_real_production_secret_value",
        )
    with pytest.raises(ValidationError):
        ProductionConfig(
            database_url="postgresql+asyncpg://db/sync",
            azure_client_id="client",
            encryption_key="dev_encryption_key_32_bytes_long",
        )


def test_config_adapter_selects_environment(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "testing")
    assert isinstance(ConfigAdapter.create_config(), TestingConfig)

    monkeypatch.setenv("ENVIRONMENT", "development")
    assert isinstance(ConfigAdapter.create_config(), DevelopmentConfig)


def test_testing_config_is_not_collected_by_pytest():
    assert TestingConfig.__test__ is False
    assert "__test__" not in TestingConfig.model_fields
