"""Plain-language guidance attached to engine findings for display."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from .risk_engine.risk_rules import AnalysisResult, RiskType, RiskWarning


@dataclass(frozen=True)
class Guidance:
    explanation: str
    recommendation: str


GUIDANCE: Mapping[RiskType, Guidance] = {
    RiskType.OVERTRADING: Guidance(
        "Placing a very large number of trades in one day usually means decisions are driven by impulse "
        "rather than a plan.",
        "Set a daily trade limit and stop once you reach it.",
    ),
    RiskType.HIGH_LOSS_STREAK: Guidance(
        "A long run of consecutive losses often leads to emotional, revenge-driven trading.",
        "Take a break after several losses in a row and review your strategy before continuing.",
    ),
    RiskType.LARGE_POSITION: Guidance(
        "A single position holds a large share of your balance, so one bad outcome can wipe out much of "
        "your account.",
        "Keep each stake to a small, fixed percentage of your balance.",
    ),
    RiskType.RAPID_TRADING: Guidance(
        "Trades are being opened seconds apart, leaving no time to assess the market between them.",
        "Slow down and wait for a clear setup before each trade.",
    ),
    RiskType.MARTINGALE_PATTERN: Guidance(
        "Stakes are repeatedly being raised sharply after losses. This martingale-style recovery can drain "
        "an account quickly during a losing run.",
        "Use a fixed stake size and never increase it to recover losses.",
    ),
    RiskType.BALANCE_DEPLETION: Guidance(
        "Your balance has fallen significantly from where it started.",
        "Pause trading, reassess your risk per trade and consider lowering your stakes.",
    ),
    RiskType.BOT_ACTIVITY: Guidance(
        "Trades are executing at intervals too short for manual trading, which suggests an automated bot.",
        "Review the bot's strategy and limits, and make sure you understand how it sizes stakes.",
    ),
    RiskType.UNUSUAL_HOURS: Guidance(
        "Many trades were placed between midnight and 6 AM, when fatigue impairs judgement.",
        "Trade only during hours when you are rested and alert.",
    ),
}

RISKY_BOT_STRATEGIES = ("martingale", "d'alembert")


def safety_score(risk_score: float) -> float:
    """Return the display-only inverse of ``risk_score`` (higher is safer)."""

    return 100 - risk_score


def safety_label(risk_score: float) -> str:
    safety = safety_score(risk_score)
    if safety >= 70:
        return "Low Risk"
    if safety >= 40:
        return "Medium Risk"
    return "High Risk"


def coach_warning(warning: RiskWarning) -> Dict[str, Any]:
    payload = warning.to_payload()
    guidance = GUIDANCE[warning.type]
    payload["explanation"] = guidance.explanation
    payload["recommendation"] = guidance.recommendation
    return payload


def coach_warnings(warnings: Iterable[RiskWarning]) -> List[Dict[str, Any]]:
    return [coach_warning(warning) for warning in warnings]


def coach_result(result: AnalysisResult) -> Dict[str, Any]:
    """Return ``result`` as a payload enriched with guidance and the safety score."""

    payload = result.to_payload()
    payload["warnings"] = coach_warnings(result.warnings)
    payload["safety_score"] = safety_score(result.risk_score)
    payload["safety_label"] = safety_label(result.risk_score)
    return payload


def risky_bot_transactions(transactions: Sequence[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Return bot statement entries whose contract description names a risky staking strategy."""

    flagged: List[Mapping[str, Any]] = []
    for transaction in transactions:
        if not isinstance(transaction, Mapping):
            continue
        longcode = str(transaction.get("longcode") or "").lower()
        if any(strategy in longcode for strategy in RISKY_BOT_STRATEGIES):
            flagged.append(transaction)
    return flagged


__all__ = [
    "GUIDANCE",
    "Guidance",
    "coach_result",
    "coach_warning",
    "coach_warnings",
    "risky_bot_transactions",
    "safety_label",
    "safety_score",
]
