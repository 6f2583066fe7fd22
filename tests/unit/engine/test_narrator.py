"""Unit tests for narrative enrichment and its deterministic fallback"""
import asyncio
import pytest
from unittest.mock import AsyncMock

from lifescore.engine.scenario import ScenarioNarrator, normalize_inputs, predict
from lifescore.exceptions import ExternalProviderError
from lifescore.providers.base import TextCompletionProvider
from lifescore.providers.local import LocalDeterministicProvider


class StubProvider(TextCompletionProvider):
    """Provider whose behaviour is set per test"""

    def __init__(self, name="stub", reply="A friendlier summary.", error=None, delay=0.0):
        self.name = name
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = 0

    async def complete(self, prompt, max_tokens, temperature):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def prediction():
    return predict(normalize_inputs({"walk_minutes": 30, "diet_quality": "good", "seatbelt_usage": "always"}))


@pytest.mark.asyncio
async def test_enrich_uses_primary_provider(prediction):
    narrator = ScenarioNarrator(StubProvider(reply="  Nice work on the walks!  "))

    text, source = await narrator.enrich(prediction)

    assert text == "Nice work on the walks!"
    assert source == "stub"


@pytest.mark.asyncio
async def test_enrich_falls_back_to_local_on_provider_error(prediction):
    primary = StubProvider(error=ExternalProviderError(message="503 from upstream", provider="stub"))
    narrator = ScenarioNarrator(primary)

    text, source = await narrator.enrich(prediction)

    assert source == "local"
    assert text == prediction.narrative
    assert primary.calls == 1


@pytest.mark.asyncio
async def test_enrich_times_out_slow_provider(prediction):
    narrator = ScenarioNarrator(StubProvider(delay=1.0), timeout_seconds=0.01)

    text, source = await narrator.enrich(prediction)

    assert source == "local"
    assert text == prediction.narrative


@pytest.mark.asyncio
async def test_enrich_keeps_deterministic_narrative_when_everything_fails(prediction):
    failing_fallback = StubProvider(name="backup", error=RuntimeError("disk on fire"))
    narrator = ScenarioNarrator(StubProvider(error=ValueError("bad")), fallback=failing_fallback)

    text, source = await narrator.enrich(prediction)

    assert (text, source) == (prediction.narrative, "deterministic")
    assert failing_fallback.calls == 1


@pytest.mark.asyncio
async def test_enrich_blank_reply_is_ignored(prediction):
    narrator = ScenarioNarrator(StubProvider(reply="   "))

    text, source = await narrator.enrich(prediction)

    assert (text, source) == (prediction.narrative, "deterministic")


@pytest.mark.asyncio
async def test_enrich_never_changes_the_prediction(prediction):
    before = prediction.model_dump_json()
    narrator = ScenarioNarrator(StubProvider(reply="Totally different numbers: +99"))

    await narrator.enrich(prediction)

    assert prediction.model_dump_json() == before


@pytest.mark.asyncio
async def test_enrich_passes_generation_settings(prediction):
    provider = StubProvider()
    provider.complete = AsyncMock(return_value="ok")
    narrator = ScenarioNarrator(provider, max_tokens=120, temperature=0.2)

    await narrator.enrich(prediction)

    prompt, max_tokens, temperature = provider.complete.call_args.args
    assert (max_tokens, temperature) == (120, 0.2)
    assert prediction.narrative in prompt


@pytest.mark.asyncio
async def test_local_provider_as_primary_is_not_duplicated(prediction):
    local = LocalDeterministicProvider()
    narrator = ScenarioNarrator(local, fallback=local)

    text, source = await narrator.enrich(prediction)

    assert (text, source) == (prediction.narrative, "local")
