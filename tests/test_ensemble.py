import pytest

from domain.domain import RiskLevel
from service.ensemble import classify_risk, combine_scores
from service.settings import EnsembleWeights


@pytest.mark.parametrize(
    "score, level",
    [
        (0, RiskLevel.LOW),
        (29, RiskLevel.LOW),
        (30, RiskLevel.MEDIUM),
        (49, RiskLevel.MEDIUM),
        (50, RiskLevel.HIGH),
        (69, RiskLevel.HIGH),
        (70, RiskLevel.CRITICAL),
        (100, RiskLevel.CRITICAL),
    ],
)
def test_classify_risk_thresholds(score, level):
    assert classify_risk(score) == level


@pytest.mark.parametrize(
    "rule, inference, behavior, expected",
    [
        (70, 80, 30, 62),
        (70, 50, 30, 50),
        (100, 100, 100, 100),
        (0, 0, 0, 0),
        (100, 50, 0, 50),
        # 0.3*15 = 4.5 -> 5 (arrondi au demi supérieur, sans erreur binaire)
        (15, 0, 0, 5),
        # 0.3*5 + 0.4*5 + 0.3*5 = 5
        (5, 5, 5, 5),
        # 0.3*35 + 0.4*0 + 0.3*0 = 10.5 -> 11
        (35, 0, 0, 11),
    ],
)
def test_combine_scores_is_exact(rule, inference, behavior, expected):
    assert combine_scores(rule, inference, behavior) == expected


def test_combine_scores_with_custom_weights():
    weights = EnsembleWeights(rule_based=0.5, inference_based=0.0, behavior_based=0.5)
    assert combine_scores(60, 100, 20, weights) == 40


def test_weights_must_sum_to_one():
    with pytest.raises(ValueError):
        EnsembleWeights(rule_based=0.5, inference_based=0.5, behavior_based=0.5)
