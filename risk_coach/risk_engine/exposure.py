from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

from .config import ThresholdConfig
from .core import Position
from .risk_rules import RiskLevel, RiskType, RiskWarning

logger = logging.getLogger(__name__)

CRITICAL_POSITION_PERCENT = 25.0


def evaluate_position_exposure(
    positions: Sequence[Position],
    balance: Optional[float],
    thresholds: ThresholdConfig,
) -> List[RiskWarning]:
    """Flag every open position whose stake is too large a share of ``balance``.

    Unlike the history detectors this emits one warning per offending
    position. A missing, non-finite or non-positive balance yields no warnings
    since the share is undefined.
    """

    if balance is None or not math.isfinite(balance) or balance <= 0:
        if positions:
            logger.debug(
                "Skipping exposure check without a positive balance",
                extra={"balance": balance, "positions": len(positions)},
            )
        return []

    warnings: List[RiskWarning] = []
    for position in positions:
        position_percent = position.buy_price / balance * 100
        if position_percent <= thresholds.max_position_percent:
            continue
        level = RiskLevel.CRITICAL if position_percent > CRITICAL_POSITION_PERCENT else RiskLevel.HIGH
        warnings.append(
            RiskWarning(
                type=RiskType.LARGE_POSITION,
                level=level,
                message=f"Large position: {position_percent:.1f}% of balance on contract {position.contract_id}",
                value=position_percent,
                contract_id=position.contract_id,
            )
        )
    return warnings
