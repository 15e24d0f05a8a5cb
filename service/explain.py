"""
service.explain

Facteurs clés, raisons probables de départ, recommandations et date d'alerte.

Les facteurs et raisons sont recalculés directement depuis les features,
indépendamment du sous-modèle qui a contribué au score : l'explication reste
lisible par un RH même si l'ensemble évolue.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from domain.domain import EmployeeFeature, KeyFactor, RiskLevel

INFERENCE_UNAVAILABLE_FACTOR = "推理服务不可用"
INFERENCE_UNAVAILABLE_REASON = "推理服务不可用，结果仅基于规则与行为模型"
DEFAULT_REASON = "综合因素"

# (condition, facteur, impact, poids)
KEY_FACTOR_RULES = (
    (lambda f: f.performance_trend < -10, "绩效下降趋势", "negative", 20),
    (lambda f: f.attendance_rate < 85, "出勤率偏低", "negative", 15),
    (lambda f: f.stress_level > 70, "工作压力大", "negative", 15),
    (lambda f: f.satisfaction_score < 60, "满意度偏低", "negative", 20),
    (lambda f: f.interview_count > 3, "频繁参与面试", "negative", 25),
    (lambda f: f.avg_performance_score > 80, "优秀绩效", "positive", -15),
    (lambda f: f.engagement_score > 80, "高敬业度", "positive", -10),
)

REASON_RULES = (
    (lambda f: f.stress_level > 70, "工作压力过大"),
    (lambda f: f.satisfaction_score < 60, "工作满意度低"),
    (lambda f: f.performance_trend < -10, "绩效下滑导致挫败感"),
    (lambda f: f.attendance_rate < 85, "工作积极性下降"),
    (lambda f: f.interview_count > 3, "正在寻找新机会"),
    (lambda f: f.overtime_hours > 20, "长期加班导致职业倦怠"),
)

RECOMMENDATIONS: Dict[RiskLevel, List[str]] = {
    RiskLevel.CRITICAL: [
        "立即安排一对一谈话了解情况",
        "提供压力疏导和心理支持",
        "考虑调整工作负荷或岗位职责",
        "制定个性化的留人方案",
    ],
    RiskLevel.HIGH: [
        "安排部门主管进行沟通",
        "提供职业发展机会",
        "改善工作环境和条件",
        "关注员工情绪变化",
    ],
    RiskLevel.MEDIUM: [
        "定期跟进员工状态",
        "提供必要的培训和支持",
        "建立良好的沟通机制",
    ],
    RiskLevel.LOW: [
        "保持正常的关注和支持",
    ],
}

WARNING_HORIZONS = {
    RiskLevel.CRITICAL: timedelta(days=30),
    RiskLevel.HIGH: timedelta(days=90),
}


def identify_key_factors(features: EmployeeFeature) -> List[KeyFactor]:
    return [
        KeyFactor(factor=label, impact=impact, weight=weight)
        for condition, label, impact, weight in KEY_FACTOR_RULES
        if condition(features)
    ]


def identify_top_reasons(features: EmployeeFeature) -> List[str]:
    reasons: List[str] = []
    for condition, reason in REASON_RULES:
        if condition(features) and reason not in reasons:
            reasons.append(reason)
    return reasons or [DEFAULT_REASON]


def generate_recommendations(level: RiskLevel) -> List[str]:
    return list(RECOMMENDATIONS[level])


def estimate_departure_time(level: RiskLevel, now: datetime) -> Optional[datetime]:
    horizon = WARNING_HORIZONS.get(level)
    return now + horizon if horizon else None
