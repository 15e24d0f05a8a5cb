"""
service.risk_models

Les trois modèles de risque indépendants appliqués au même `EmployeeFeature` :

- RuleBasedModel      : règles additives déterministes, plafonnées à 100
- InferenceBasedModel : score demandé au service d'inférence (prompt structuré)
- BehaviorBasedModel  : signaux comportementaux additifs, plafonnés à 100

Chaque modèle renvoie un `ModelScore` dont le score est dans [0, 100].
"""
from __future__ import annotations

import json
import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List

from domain.domain import EmployeeFeature, InferenceFallbackPolicy, ModelScore
from domain.errors import InferenceUnavailableError
from service.inference_client import InferenceClient, Message
from service.settings import DEFAULT_MODEL

logger = logging.getLogger("turnover.inference")

MAX_SCORE = 100
FALLBACK_SCORE = 50

# (condition, points, libellé du facteur)
RISK_RULES = (
    (lambda f: f.performance_trend < -10, 20, "绩效持续下降"),
    (lambda f: f.attendance_rate < 85, 15, "出勤率偏低"),
    (lambda f: f.performance_variance > 20, 10, "绩效波动较大"),
    (lambda f: f.stress_level > 70, 15, "工作压力大"),
    (lambda f: f.satisfaction_score < 60, 20, "满意度偏低"),
    (lambda f: f.interview_count > 3, 25, "频繁参与面试"),
)

BEHAVIOR_RULES = (
    (lambda f: f.interview_count >= 3, 30, "面试参与频繁"),
    (lambda f: f.training_completion_rate < 50, 20, "培训完成率低"),
    (lambda f: f.overtime_hours > 20, 15, "加班时间过长"),
)

_DECODER = json.JSONDecoder()


def _apply_rules(features: EmployeeFeature, rules) -> ModelScore:
    score = 0
    factors: List[str] = []
    for condition, points, label in rules:
        if condition(features):
            score += points
            factors.append(label)
    return ModelScore(score=min(MAX_SCORE, score), factors=factors)


class RuleBasedModel:
    name = "rule_based"

    def score(self, features: EmployeeFeature) -> ModelScore:
        return _apply_rules(features, RISK_RULES)


class BehaviorBasedModel:
    name = "behavior_based"

    def score(self, features: EmployeeFeature) -> ModelScore:
        return _apply_rules(features, BEHAVIOR_RULES)


def _trend_label(trend: float) -> str:
    if trend > 0:
        return "上升"
    if trend < 0:
        return "下降"
    return "稳定"


def build_prompt(features: EmployeeFeature) -> List[Message]:
    """Construit la paire de messages (system, user) envoyée au service d'inférence."""
    system_prompt = f"""你是一名HR分析专家，擅长预测员工离职风险。

基于以下员工特征，预测离职风险分数（0-100）：
- 在职时长：{features.tenure_months}个月
- 平均绩效：{features.avg_performance_score:g}分
- 绩效趋势：{_trend_label(features.performance_trend)}
- 出勤率：{features.attendance_rate}%
- 敬业度：{features.engagement_score}分
- 压力水平：{features.stress_level}分
- 满意度：{features.satisfaction_score}分

返回格式（JSON）：
{{
  "riskScore": 65,
  "reasoning": "风险分析说明"
}}"""
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": "请预测该员工的离职风险分数。"},
    ]


def parse_risk_score(text: str) -> int:
    """
    Extrait `riskScore` du premier objet JSON présent dans `text`.

    Un score numérique hors [0, 100] est ramené dans l'intervalle ;
    un score arrondi à .5 l'est vers le haut.

    Raises
    ------
    ValueError
        Pas d'objet JSON, JSON invalide, ou `riskScore` absent / non numérique.
    """
    text = text or ""
    start = text.find("{")
    if start < 0:
        raise ValueError("no JSON object in inference response")

    # décode uniquement le premier objet ; le texte qui suit est ignoré
    payload: Any = _DECODER.raw_decode(text, start)[0]
    if not isinstance(payload, dict):
        raise ValueError("inference response JSON is not an object")

    raw = payload.get("riskScore")
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"riskScore is not a number: {raw!r}")
    try:
        value = float(raw)
    except OverflowError as e:
        raise ValueError("riskScore is out of numeric range") from e
    if not math.isfinite(value):
        raise ValueError(f"riskScore is not finite: {raw!r}")

    bounded = max(0.0, min(float(MAX_SCORE), value))
    return int(Decimal(str(bounded)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


class InferenceBasedModel:
    """
    Modèle "ML" délégué au service d'inférence.

    En cas d'échec (transport, timeout, réponse non JSON ou mal formée) :
    - NEUTRAL / FLAG : score de repli 50, `available=False`
    - STRICT         : `InferenceUnavailableError` est levée
    """
    name = "inference_based"

    def __init__(
        self,
        client: InferenceClient,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.5,
        policy: InferenceFallbackPolicy = InferenceFallbackPolicy.NEUTRAL,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.policy = policy

    def score(self, features: EmployeeFeature) -> ModelScore:
        try:
            text = self.client.complete(
                build_prompt(features),
                model=self.model,
                temperature=self.temperature,
            )
            return ModelScore(score=parse_risk_score(text))
        except (InferenceUnavailableError, ValueError, OSError) as e:
            if self.policy is InferenceFallbackPolicy.STRICT:
                if isinstance(e, InferenceUnavailableError):
                    raise
                raise InferenceUnavailableError(f"Unusable inference response: {e}") from e
            logger.warning(
                "Inference scoring failed for employee %s, using fallback score %d: %s",
                features.employee_id,
                FALLBACK_SCORE,
                e,
            )
            return ModelScore(score=FALLBACK_SCORE, available=False)
