import pytest

from risk_coach.coaching import (
    GUIDANCE,
    coach_result,
    coach_warning,
    risky_bot_transactions,
    safety_label,
    safety_score,
)
from risk_coach.risk_engine.risk_rules import AnalysisResult, RiskLevel, RiskType, RiskWarning


def test_every_risk_type_has_guidance():
    assert set(GUIDANCE) == set(RiskType)


def test_coach_warning_adds_explanation_and_recommendation():
    warning = RiskWarning(type=RiskType.MARTINGALE_PATTERN, level=RiskLevel.CRITICAL, message="m", value=3)

    payload = coach_warning(warning)

    assert payload["type"] == "martingale_pattern"
    assert payload["explanation"] == GUIDANCE[RiskType.MARTINGALE_PATTERN].explanation
    assert payload["recommendation"] == GUIDANCE[RiskType.MARTINGALE_PATTERN].recommendation


@pytest.mark.parametrize(
    "risk_score, label",
    [(0, "Low Risk"), (30, "Low Risk"), (31, "Medium Risk"), (60, "Medium Risk"), (61, "High Risk"), (100, "High Risk")],
)
def test_safety_label_inverts_risk_score(risk_score, label):
    assert safety_label(risk_score) == label


def test_coach_result_keeps_risk_score_direction():
    warning = RiskWarning(type=RiskType.HIGH_LOSS_STREAK, level=RiskLevel.HIGH, message="m", value=5)
    result = AnalysisResult(warnings=[warning], risk_score=30, risk_level=RiskLevel.MEDIUM)

    payload = coach_result(result)

    assert payload["risk_score"] == 30
    assert payload["risk_level"] == "medium"
    assert payload["safety_score"] == safety_score(30) == 70
    assert payload["safety_label"] == "Low Risk"
    assert payload["warnings"][0]["recommendation"]


def test_coach_result_for_empty_history_has_no_level():
    payload = coach_result(AnalysisResult())

    assert "risk_level" not in payload
    assert payload["safety_score"] == 100


def test_risky_bot_transactions_match_strategy_names():
    transactions = [
        {"transaction_id": 1, "longcode": "Win payout if ... using Martingale strategy"},
        {"transaction_id": 2, "longcode": "D'Alembert stake progression"},
        {"transaction_id": 3, "longcode": "Rise/Fall on Volatility 100 Index"},
        {"transaction_id": 4},
        "not-a-mapping",
    ]

    flagged = risky_bot_transactions(transactions)

    assert [item["transaction_id"] for item in flagged] == [1, 2]
