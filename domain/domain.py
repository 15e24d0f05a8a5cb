"""
Schémas Pydantic partagés (service + API) du moteur de risque de départ.

Ce module définit les objets qui circulent dans le pipeline de prédiction :
- `EmployeeFeature` : instantané normalisé de l'historique RH d'un employé,
- `ModelScore` : score d'un des trois modèles (règles, inférence, comportement),
- `TurnoverRisk` : résultat final renvoyé à l'appelant (API, rapport, ...).

Conventions
- Les attributs Python sont en snake_case.
- La sérialisation JSON utilise des alias camelCase (`riskScore`, `keyFactors`, ...)
  pour rester compatible avec les consommateurs existants (dashboard RH).
- Les objets sont immuables (`frozen=True`) : une prédiction est recalculée,
  jamais modifiée en place.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RiskLevel(str, Enum):
    """Niveau de risque discret dérivé du score final."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class InferenceFallbackPolicy(str, Enum):
    """
    Comportement du moteur lorsque le service d'inférence ne répond pas
    ou renvoie une réponse inexploitable.

    - NEUTRAL : score neutre (50) mélangé à l'ensemble, sans autre signal.
    - FLAG    : score neutre (50) + facteur et raison "推理服务不可用" visibles.
    - STRICT  : l'erreur est propagée (`InferenceUnavailableError`).
    """
    NEUTRAL = "neutral"
    FLAG = "flag"
    STRICT = "strict"


class _Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        protected_namespaces=(),
    )


class FeatureAvailability(_Schema):
    """
    Indique, pour les features susceptibles d'être des valeurs par défaut,
    si la valeur provient de données réelles.

    `False` signifie "non mesuré" (valeur neutre ou placeholder),
    ce qui est différent d'un zéro confirmé.
    """
    performance_history: bool = False
    attendance_history: bool = False
    overtime_hours: bool = False
    training_completion_rate: bool = False


class EmployeeFeature(_Schema):
    """
    Features d'un employé, calculées à la demande par `FeatureExtractor`.

    Champs
    ------
    tenure_months : int
        Ancienneté en mois (tranches de 30 jours).
    position_level : int
        Niveau hiérarchique 1..4 déduit de l'intitulé de poste.
    avg_performance_score, performance_trend, performance_variance, recent_performance_score
        Agrégats de l'historique de performance (0 si aucun historique).
    attendance_rate : int
        Pourcentage de pointages `present` (100 si aucun pointage).
    engagement_score, stress_level, satisfaction_score : int
        Scores composites 0..100.
    availability : FeatureAvailability
        Provenance des valeurs qui peuvent être des placeholders.
    """
    employee_id: str

    tenure_months: int = Field(ge=0)
    age: int = 30
    position_level: int = Field(default=1, ge=1, le=4)
    department: str = ""

    avg_performance_score: float = Field(default=0, ge=0, le=100)
    performance_trend: float = 0
    performance_variance: float = Field(default=0, ge=0)
    recent_performance_score: float = 0

    attendance_rate: int = Field(default=100, ge=0, le=100)
    late_count: int = Field(default=0, ge=0)
    early_leave_count: int = Field(default=0, ge=0)
    leave_count: int = Field(default=0, ge=0)
    overtime_hours: float = Field(default=0, ge=0)

    interview_count: int = Field(default=0, ge=0)
    training_completion_rate: float = Field(default=80, ge=0, le=100)

    engagement_score: int = Field(default=0, ge=0, le=100)
    stress_level: int = Field(default=0, ge=0, le=100)
    satisfaction_score: int = Field(default=0, ge=0, le=100)

    availability: FeatureAvailability = FeatureAvailability()


class ModelScore(_Schema):
    """Sortie d'un modèle de risque : score borné, facteurs déclenchés, disponibilité."""
    score: int = Field(ge=0, le=100)
    factors: List[str] = []
    available: bool = True


class ModelScores(_Schema):
    rule_based: int
    inference_based: int
    behavior_based: int


class KeyFactor(_Schema):
    factor: str
    impact: Literal["positive", "negative"]
    weight: int


class TurnoverRisk(_Schema):
    """
    Résultat de prédiction pour un employé.

    Le résultat n'est pas persisté par le moteur : l'appelant peut le mettre
    en cache ou l'archiver s'il le souhaite.

    Exemple (JSON)
    --------------
    {
      "employeeId": "e-42",
      "employeeName": "张伟",
      "riskScore": 72,
      "probability": 0.72,
      "riskLevel": "critical",
      "keyFactors": [{"factor": "工作压力大", "impact": "negative", "weight": 15}],
      "topReasons": ["工作压力过大"],
      "recommendations": ["立即安排一对一谈话了解情况", "..."],
      "warningTime": "2026-11-18T09:00:00+00:00"
    }
    """
    employee_id: str
    employee_name: str = ""
    department: str = ""
    position: str = ""

    risk_score: int = Field(ge=0, le=100)
    probability: float = Field(ge=0, le=1)
    risk_level: RiskLevel

    key_factors: List[KeyFactor] = []
    top_reasons: List[str] = []
    recommendations: List[str] = []
    warning_time: Optional[datetime] = None

    model_scores: Optional[ModelScores] = None
    inference_available: bool = True
