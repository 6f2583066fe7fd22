"""Unit tests for the deterministic scenario predictor"""
import pytest

from lifescore.engine.scenario import (
    build_narrative_prompt,
    lifescore_delta,
    normalize_inputs,
    predict,
    recommend_missions,
    risk_level,
    xp_reward,
)
from lifescore.exceptions import ValidationError
from lifescore.models import DietQuality, RiskLevel, ScenarioInputs, SeatbeltUsage
from lifescore.providers.base import BASELINE_MARKER

HEALTHY_COMMUTER = {
    "walk_minutes": 30,
    "diet_quality": "good",
    "commute_distance": 10,
    "driving_hours": 0,
    "seatbelt_usage": "always",
}


# ============================================================================
# Normalization
# ============================================================================

def test_normalize_fills_defaults():
    inputs = normalize_inputs({})
    assert inputs == ScenarioInputs(
        walk_minutes=0,
        diet_quality=DietQuality.FAIR,
        commute_distance=0,
        driving_hours=0,
        seatbelt_usage=SeatbeltUsage.OFTEN,
    )
    assert normalize_inputs(None) == inputs


def test_normalize_coerces_strings():
    inputs = normalize_inputs({"walk_minutes": "45", "diet_quality": " GOOD ", "seatbelt_usage": "Always"})
    assert inputs.walk_minutes == 45.0
    assert inputs.diet_quality == DietQuality.GOOD
    assert inputs.seatbelt_usage == SeatbeltUsage.ALWAYS


def test_normalize_unrecognized_choices_fall_back():
    inputs = normalize_inputs({"diet_quality": "keto", "seatbelt_usage": "sometimes"})
    assert inputs.diet_quality == DietQuality.FAIR
    assert inputs.seatbelt_usage == SeatbeltUsage.OFTEN


@pytest.mark.parametrize("field,value", [
    ("walk_minutes", -10),
    ("commute_distance", "far"),
    ("driving_hours", True),
    ("walk_minutes", float("nan")),
    ("driving_hours", float("inf")),
])
def test_normalize_rejects_bad_numbers(field, value):
    with pytest.raises(ValidationError) as exc_info:
        normalize_inputs({field: value})
    assert exc_info.value.field == field


def test_normalize_passes_through_validated_inputs():
    inputs = normalize_inputs(HEALTHY_COMMUTER)
    assert normalize_inputs(inputs) is inputs


# ============================================================================
# Scoring
# ============================================================================

def test_healthy_commuter_projection():
    prediction = predict(normalize_inputs(HEALTHY_COMMUTER))

    assert prediction.lifescore_delta == 11
    assert prediction.xp_reward == 53
    assert prediction.risk_level == RiskLevel.LOW
    assert prediction.severity_score == 4
    assert prediction.narrative == (
        "Adding daily walking improves cardiovascular health. "
        "Your diet supports sustained energy and recovery. "
        "Overall impact preview: LifeScore +11, Risk low."
    )
    assert [m.id for m in prediction.suggested_missions] == ["ai-meal-plan"]
    assert prediction.suggested_missions[0].xp_reward == 53
    assert prediction.suggested_missions[0].lifescore_impact == 5


def test_default_inputs_projection():
    prediction = predict(normalize_inputs({}))

    assert prediction.lifescore_delta == 2
    assert prediction.xp_reward == 26
    assert prediction.risk_level == RiskLevel.MEDIUM
    assert prediction.severity_score == 5
    assert prediction.narrative == (
        "Always wearing a seatbelt significantly reduces injury risk. "
        "Overall impact preview: LifeScore +2, Risk medium."
    )
    assert [m.id for m in prediction.suggested_missions] == ["ai-walk-30", "ai-meal-plan", "ai-seatbelt"]


def test_risky_inputs_clamp_to_minimum_delta():
    inputs = normalize_inputs({
        "walk_minutes": 0,
        "diet_quality": "poor",
        "commute_distance": 40,
        "driving_hours": 3,
        "seatbelt_usage": "rarely",
    })
    assert lifescore_delta(inputs) == 1
    assert xp_reward(inputs, 1) == 18
    assert risk_level(inputs) == RiskLevel.HIGH
    assert predict(inputs).severity_score == 8


def test_excellent_inputs_clamp_to_maximum_delta():
    inputs = normalize_inputs({
        "walk_minutes": 120,
        "diet_quality": "excellent",
        "commute_distance": 5,
        "driving_hours": 0.5,
        "seatbelt_usage": "always",
    })
    prediction = predict(inputs)
    assert prediction.lifescore_delta == 20
    assert prediction.xp_reward == 80
    assert prediction.risk_level == RiskLevel.LOW
    assert [m.id for m in prediction.suggested_missions] == ["ai-checkup"]


def test_long_commute_thresholds():
    # commute > 30 costs LifeScore, commute > 25 raises risk
    inputs = normalize_inputs({"commute_distance": 28, "seatbelt_usage": "always"})
    assert lifescore_delta(inputs) == 5
    assert risk_level(inputs) == RiskLevel.MEDIUM


def test_prediction_serializes_identically():
    first = predict(normalize_inputs(HEALTHY_COMMUTER)).model_dump_json()
    second = predict(normalize_inputs(dict(HEALTHY_COMMUTER))).model_dump_json()
    assert first == second


def test_recommend_missions_uses_adaptive_projection():
    missions = recommend_missions(normalize_inputs({}))

    assert [m.id for m in missions] == ["ai-walk-30", "ai-meal-plan", "ai-seatbelt"]
    assert all(m.reason == "Adaptive recommendation" for m in missions)
    assert missions[0].xp_reward == 30
    assert missions[1].xp_reward == 40
    assert all(m.ai_generated for m in missions)


def test_narrative_prompt_embeds_baseline():
    prediction = predict(normalize_inputs(HEALTHY_COMMUTER))
    prompt = build_narrative_prompt(prediction)

    assert BASELINE_MARKER in prompt
    assert prompt.split(BASELINE_MARKER, 1)[1].strip() == prediction.narrative
    assert "Walking: 30 minutes/day" in prompt
