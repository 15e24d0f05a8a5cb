"""
service.ensemble

Combinaison pondérée des trois scores et classification en niveau de risque.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from domain.domain import RiskLevel
from service.settings import EnsembleWeights

# Bornes supérieures exclusives : 30 -> medium, 70 -> critical
RISK_THRESHOLDS = (
    (30, RiskLevel.LOW),
    (50, RiskLevel.MEDIUM),
    (70, RiskLevel.HIGH),
)


def _d(value) -> Decimal:
    return Decimal(str(value))


def combine_scores(
    rule_based: int,
    inference_based: int,
    behavior_based: int,
    weights: EnsembleWeights = EnsembleWeights(),
) -> int:
    """
    Score final = round(rule*0.3 + inference*0.4 + behavior*0.3).

    Le calcul est fait en décimal pour que l'arrondi soit exact
    (0.3 * 15 vaut 4.5, pas 4.499999...). Les demis sont arrondis vers le haut.
    """
    total = (
        _d(rule_based) * _d(weights.rule_based)
        + _d(inference_based) * _d(weights.inference_based)
        + _d(behavior_based) * _d(weights.behavior_based)
    )
    score = int(total.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return max(0, min(100, score))


def classify_risk(score: int) -> RiskLevel:
    for upper, level in RISK_THRESHOLDS:
        if score < upper:
            return level
    return RiskLevel.CRITICAL
