"""
Scenario Predictor

Pure, deterministic projection from lifestyle inputs to LifeScore delta, XP
reward, risk level, narrative and suggested missions. No clocks, no
randomness: identical inputs serialize to identical JSON.

Raw inputs go through normalize_inputs() first; every scoring function
takes the fully populated ScenarioInputs only.

Narrative enrichment through a TextCompletionProvider lives in
ScenarioNarrator and never touches the numeric fields.
"""

import asyncio
import logging
import math
from typing import Any, Mapping, Optional

from lifescore.exceptions import ExternalProviderError, ValidationError
from lifescore.models import (
    Difficulty,
    DietQuality,
    MissionCategory,
    RiskLevel,
    ScenarioInputs,
    ScenarioPrediction,
    SeatbeltUsage,
    SuggestedMission,
)
from lifescore.providers.base import BASELINE_MARKER, TextCompletionProvider
from lifescore.providers.local import LocalDeterministicProvider
from lifescore.resilience.fallback import FallbackStrategy, execute_with_fallbacks

logger = logging.getLogger(__name__)

DIET_IMPACT = {
    DietQuality.EXCELLENT: 8,
    DietQuality.GOOD: 5,
    DietQuality.FAIR: 2,
    DietQuality.POOR: -4,
}

SEVERITY_BASE = {
    RiskLevel.HIGH: 8,
    RiskLevel.MEDIUM: 5,
    RiskLevel.LOW: 3,
}

# Fixed projection used for adaptive recommendations
ADAPTIVE_DELTA = 8
ADAPTIVE_XP = 40


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


# ==========================================
# Normalization
# ==========================================

def _number(raw: Mapping[str, Any], field: str) -> float:
    value = raw.get(field)
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ValidationError(message=f"{field} must be a number", field=field, value=value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(message=f"{field} must be a number", field=field, value=value)
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(message=f"{field} must be a finite number", field=field, value=value)
    if number < 0:
        raise ValidationError(message=f"{field} must not be negative", field=field, value=value)
    return number


def _choice(raw: Mapping[str, Any], field: str, enum_cls, default):
    value = raw.get(field)
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            logger.debug(f"Unrecognized {field} {value!r}, using {default.value}")
    return default


def normalize_inputs(raw: Optional[Mapping[str, Any]]) -> ScenarioInputs:
    """
    Build a fully populated ScenarioInputs

    - Missing numbers default to 0
    - Missing or unrecognized diet_quality becomes fair
    - Missing or unrecognized seatbelt_usage becomes often

    Raises:
        ValidationError: negative or non-numeric numbers
    """
    if isinstance(raw, ScenarioInputs):
        return raw
    raw = raw or {}
    return ScenarioInputs(
        walk_minutes=_number(raw, "walk_minutes"),
        diet_quality=_choice(raw, "diet_quality", DietQuality, DietQuality.FAIR),
        commute_distance=_number(raw, "commute_distance"),
        driving_hours=_number(raw, "driving_hours"),
        seatbelt_usage=_choice(raw, "seatbelt_usage", SeatbeltUsage, SeatbeltUsage.OFTEN),
    )


# ==========================================
# Scoring
# ==========================================

def lifescore_delta(inputs: ScenarioInputs) -> int:
    delta = min(10, int(inputs.walk_minutes // 10))
    delta += DIET_IMPACT.get(inputs.diet_quality, 2)
    if inputs.commute_distance > 30 or inputs.driving_hours > 2:
        delta -= 3
    if inputs.seatbelt_usage == SeatbeltUsage.ALWAYS:
        delta += 3
    elif inputs.seatbelt_usage == SeatbeltUsage.RARELY:
        delta -= 4
    return _clamp(delta, 1, 20)


def xp_reward(inputs: ScenarioInputs, delta: int) -> int:
    penalty = 5 if inputs.seatbelt_usage == SeatbeltUsage.RARELY else 0
    return _clamp(20 + delta * 3 - penalty, 10, 100)


def risk_level(inputs: ScenarioInputs) -> RiskLevel:
    risk = 0
    if inputs.commute_distance > 25:
        risk += 1
    if inputs.driving_hours > 2:
        risk += 1
    if inputs.seatbelt_usage != SeatbeltUsage.ALWAYS:
        risk += 1
    if inputs.walk_minutes >= 30 and inputs.diet_quality in (DietQuality.GOOD, DietQuality.EXCELLENT):
        risk -= 1
    if risk <= 0:
        return RiskLevel.LOW
    return RiskLevel.MEDIUM if risk == 1 else RiskLevel.HIGH


def severity_score(risk: RiskLevel, delta: int) -> int:
    bump = 2 if abs(delta) > 20 else 1 if abs(delta) > 10 else 0
    return _clamp(SEVERITY_BASE[risk] + bump, 1, 10)


def build_narrative(inputs: ScenarioInputs, delta: int, risk: RiskLevel) -> str:
    parts = []
    if inputs.walk_minutes >= 30:
        parts.append("Adding daily walking improves cardiovascular health.")
    if inputs.diet_quality in (DietQuality.EXCELLENT, DietQuality.GOOD):
        parts.append("Your diet supports sustained energy and recovery.")
    if inputs.commute_distance > 25 or inputs.driving_hours > 2:
        parts.append("Long commutes increase incident risk; consider route or timing changes.")
    if inputs.seatbelt_usage != SeatbeltUsage.ALWAYS:
        parts.append("Always wearing a seatbelt significantly reduces injury risk.")
    parts.append(f"Overall impact preview: LifeScore +{delta}, Risk {risk.value}.")
    return " ".join(parts)


def suggested_missions(
    inputs: ScenarioInputs,
    delta: int,
    xp: int,
    reason: Optional[str] = None,
) -> list[SuggestedMission]:
    missions = []
    if inputs.walk_minutes < 30:
        missions.append(SuggestedMission(
            id="ai-walk-30",
            title="Walk 30 minutes today",
            category=MissionCategory.HEALTH,
            difficulty=Difficulty.EASY,
            xp_reward=max(20, xp - 10),
            lifescore_impact=max(3, delta // 2),
            reason=reason or "Less than 30 minutes of walking",
        ))
    if inputs.diet_quality != DietQuality.EXCELLENT:
        missions.append(SuggestedMission(
            id="ai-meal-plan",
            title="Plan 3 balanced meals",
            category=MissionCategory.HEALTH,
            difficulty=Difficulty.MEDIUM,
            xp_reward=xp,
            lifescore_impact=max(4, delta // 2),
            reason=reason or "Diet has room to improve",
        ))
    if inputs.seatbelt_usage != SeatbeltUsage.ALWAYS:
        missions.append(SuggestedMission(
            id="ai-seatbelt",
            title="Seatbelt Habit Challenge",
            category=MissionCategory.SAFE_DRIVING,
            difficulty=Difficulty.EASY,
            xp_reward=25,
            lifescore_impact=5,
            reason=reason or "Seatbelt not always worn",
        ))
    if not missions:
        missions.append(SuggestedMission(
            id="ai-checkup",
            title="Schedule a health check",
            category=MissionCategory.HEALTH,
            difficulty=Difficulty.EASY,
            xp_reward=30,
            lifescore_impact=4,
            reason=reason or "Keep up the healthy routine",
        ))
    return missions


def predict(inputs: ScenarioInputs) -> ScenarioPrediction:
    """Deterministic projection for normalized inputs"""
    delta = lifescore_delta(inputs)
    xp = xp_reward(inputs, delta)
    risk = risk_level(inputs)
    return ScenarioPrediction(
        inputs=inputs,
        lifescore_delta=delta,
        xp_reward=xp,
        risk_level=risk,
        severity_score=severity_score(risk, delta),
        narrative=build_narrative(inputs, delta, risk),
        suggested_missions=suggested_missions(inputs, delta, xp),
    )


def recommend_missions(inputs: ScenarioInputs) -> list[SuggestedMission]:
    """Adaptive recommendations from a user's current context"""
    return suggested_missions(inputs, ADAPTIVE_DELTA, ADAPTIVE_XP, reason="Adaptive recommendation")


# ==========================================
# Narrative enrichment
# ==========================================

def build_narrative_prompt(prediction: ScenarioPrediction) -> str:
    inputs = prediction.inputs
    return (
        "Rewrite this LifeScore scenario summary for the user.\n"
        f"Walking: {inputs.walk_minutes:g} minutes/day, diet: {inputs.diet_quality.value}, "
        f"commute: {inputs.commute_distance:g} km, driving: {inputs.driving_hours:g} h/day, "
        f"seatbelt: {inputs.seatbelt_usage.value}.\n"
        f"LifeScore delta: +{prediction.lifescore_delta}, XP: {prediction.xp_reward}, "
        f"risk: {prediction.risk_level.value}.\n"
        f"{BASELINE_MARKER}\n{prediction.narrative}\n"
    )


class ScenarioNarrator:
    """
    Optional friendlier narrative from a text provider

    Strategy order: the configured provider, then the local deterministic
    one. Each provider call is bounded by timeout_seconds. Provider failures
    are logged and absorbed; the prediction itself is never modified.
    """

    def __init__(
        self,
        provider: TextCompletionProvider,
        fallback: Optional[TextCompletionProvider] = None,
        timeout_seconds: float = 5.0,
        max_tokens: int = 300,
        temperature: float = 0.4,
    ):
        self.provider = provider
        self.fallback = fallback or LocalDeterministicProvider()
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _strategy(self, provider: TextCompletionProvider, priority: int, used: list[str]) -> FallbackStrategy:
        async def call(prompt: str) -> str:
            try:
                text = await asyncio.wait_for(
                    provider.complete(prompt, self.max_tokens, self.temperature),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError as e:
                raise ExternalProviderError(
                    message=f"Provider {provider.name} timed out after {self.timeout_seconds}s",
                    provider=provider.name,
                    operation="narrative_enrichment",
                    cause=e,
                )
            used.append(provider.name)
            return text
        return FallbackStrategy(provider.name, call, priority)

    async def enrich(self, prediction: ScenarioPrediction) -> tuple[str, str]:
        """
        Returns:
            (narrative, source) where source is the provider name, or
            "deterministic" when no provider produced text
        """
        used: list[str] = []
        strategies = [self._strategy(self.provider, 1, used)]
        if self.fallback is not self.provider:
            strategies.append(self._strategy(self.fallback, 2, used))

        try:
            text = await execute_with_fallbacks(strategies, build_narrative_prompt(prediction))
        except ExternalProviderError as e:
            logger.warning(f"Narrative enrichment unavailable, keeping deterministic narrative: {e.message}")
            return prediction.narrative, "deterministic"
        except Exception as e:
            # Any provider fault degrades to the deterministic narrative
            logger.warning(f"Narrative enrichment failed ({type(e).__name__}: {e}), keeping deterministic narrative")
            return prediction.narrative, "deterministic"

        if not text or not text.strip():
            return prediction.narrative, "deterministic"
        return text.strip(), used[-1]
