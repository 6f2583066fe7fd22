"""Unit tests for engine wiring"""
import pytest

from lifescore import config
from lifescore.container import build_engine, build_provider, build_store
from lifescore.db.memory_store import InMemoryStore
from lifescore.exceptions import ConfigurationError
from lifescore.providers import ExternalLLMProvider, LocalDeterministicProvider


def test_build_local_provider():
    assert isinstance(build_provider("local"), LocalDeterministicProvider)


def test_build_openai_provider_requires_key(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", None)

    with pytest.raises(ConfigurationError) as exc_info:
        build_provider("openai")
    assert exc_info.value.context["config_key"] == "OPENAI_API_KEY"


def test_build_openai_provider(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-test")

    assert isinstance(build_provider("openai"), ExternalLLMProvider)


def test_unknown_provider():
    with pytest.raises(ConfigurationError):
        build_provider("carrier-pigeon")


@pytest.mark.asyncio
async def test_build_memory_store_has_default_catalog():
    store, database = await build_store("memory")

    assert isinstance(store, InMemoryStore)
    assert database is None
    assert await store.get_mission("safe-driver-7-day") is not None
    assert await store.get_reward("fuel-discount") is not None


@pytest.mark.asyncio
async def test_unknown_store_backend():
    with pytest.raises(ConfigurationError):
        await build_store("cassandra")


@pytest.mark.asyncio
async def test_build_engine_from_config(monkeypatch, ctx):
    monkeypatch.setattr(config, "STORE_BACKEND", "memory")
    monkeypatch.setattr(config, "TEXT_PROVIDER", "local")

    engine = await build_engine()
    try:
        stats = await engine.orchestrator.create_user(ctx)
        assert stats.user_id == ctx.user_id
        assert engine.database is None
        assert engine.provider.name == "local"
    finally:
        await engine.close()
