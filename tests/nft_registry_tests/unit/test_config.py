"""
Tests for environment-driven registry settings.
"""

import pytest

from nft_registry.core.config import ConfigurationError, RegistrySettings

ENV_VARS = [
    "NFT_REGISTRY_NAME",
    "NFT_REGISTRY_SYMBOL",
    "NFT_REGISTRY_BASE_URI",
    "NFT_REGISTRY_MINTER",
    "NFT_REGISTRY_REQUIRE_CHECKSUM",
    "NFT_REGISTRY_LOG_LEVEL",
    "NFT_REGISTRY_LOG_DIR",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


def test_defaults_match_reference_deployment():
    settings = RegistrySettings.from_env()

    assert settings.name == "StylusNFT"
    assert settings.symbol == "SNFT"
    assert settings.base_uri == "https://foobar/"
    assert settings.minter is None
    assert settings.require_checksum is False
    assert settings.log_level == "INFO"
    assert settings.log_dir is None


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("NFT_REGISTRY_NAME", "Kittens")
    monkeypatch.setenv("NFT_REGISTRY_SYMBOL", "KIT")
    monkeypatch.setenv("NFT_REGISTRY_BASE_URI", "ipfs://kittens/")
    monkeypatch.setenv("NFT_REGISTRY_MINTER", "0x" + "ab" * 20)
    monkeypatch.setenv("NFT_REGISTRY_REQUIRE_CHECKSUM", "1")
    monkeypatch.setenv("NFT_REGISTRY_LOG_LEVEL", "debug")
    monkeypatch.setenv("NFT_REGISTRY_LOG_DIR", str(tmp_path))

    settings = RegistrySettings.from_env()

    assert settings.name == "Kittens"
    assert settings.symbol == "KIT"
    assert settings.base_uri == "ipfs://kittens/"
    assert settings.minter == "0x" + "ab" * 20
    assert settings.require_checksum is True
    assert settings.log_level == "DEBUG"
    assert settings.log_dir == str(tmp_path)


def test_invalid_flag_rejected(monkeypatch):
    monkeypatch.setenv("NFT_REGISTRY_REQUIRE_CHECKSUM", "yes")
    with pytest.raises(ConfigurationError):
        RegistrySettings.from_env()


def test_empty_symbol_rejected(monkeypatch):
    monkeypatch.setenv("NFT_REGISTRY_SYMBOL", "  ")
    with pytest.raises(ConfigurationError):
        RegistrySettings.from_env()


def test_invalid_log_level_rejected():
    with pytest.raises(ConfigurationError):
        RegistrySettings(log_level="LOUD")


def test_settings_are_immutable():
    settings = RegistrySettings()
    with pytest.raises(AttributeError):
        settings.name = "Other"
