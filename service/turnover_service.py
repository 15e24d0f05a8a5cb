"""
service.turnover_service

Service central de prédiction du risque de départ (turnover).

Ce module assemble le pipeline complet :
- extraction des features d'un employé (`FeatureExtractor`),
- scoring par trois modèles indépendants (règles, inférence, comportement),
- combinaison pondérée et classification en niveau de risque,
- facteurs clés, raisons probables, recommandations et date d'alerte.

Injection de dépendances
------------------------
Le service ne crée ni session de base ni client d'inférence : il les reçoit
au constructeur. L'API lui passe un `SqlAlchemyHRDataStore` lié à la session
de la requête ; les tests lui passent des doubles.

Opérations exposées
-------------------
- predict(employee_id, organization_id)      -> TurnoverRisk
- batch_predict(organization_id)             -> list[TurnoverRisk]
- detect_early_warnings(organization_id)     -> list[TurnoverRisk]
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from domain.domain import (
    EmployeeFeature,
    InferenceFallbackPolicy,
    KeyFactor,
    ModelScores,
    RiskLevel,
    TurnoverRisk,
)
from domain.errors import NotFoundError
from service.data_store import EmployeeRecord, HRDataStore
from service.ensemble import classify_risk, combine_scores
from service.explain import (
    DEFAULT_REASON,
    INFERENCE_UNAVAILABLE_FACTOR,
    INFERENCE_UNAVAILABLE_REASON,
    estimate_departure_time,
    generate_recommendations,
    identify_key_factors,
    identify_top_reasons,
)
from service.features import FeatureExtractor
from service.inference_client import InferenceClient
from service.risk_models import BehaviorBasedModel, InferenceBasedModel, RuleBasedModel
from service.settings import PredictionSettings

logger = logging.getLogger("turnover.service")

EARLY_WARNING_LEVELS = (RiskLevel.HIGH, RiskLevel.CRITICAL)


def sort_by_risk(risks: List[TurnoverRisk]) -> List[TurnoverRisk]:
    """Tri par score décroissant ; à score égal, par employee_id croissant."""
    return sorted(risks, key=lambda r: (-r.risk_score, r.employee_id))


class TurnoverPredictionService:
    """
    Moteur de prédiction du risque de départ.

    Parameters
    ----------
    store : HRDataStore
        Lecture des données RH.
    inference_client : InferenceClient
        Client du service d'inférence utilisé par le modèle "ML".
    settings : PredictionSettings | None
        Paramètres (pondérations, politique de repli, parallélisme...).
    now : Callable[[], datetime] | None
        Horloge injectable (UTC).
    """

    def __init__(
        self,
        store: HRDataStore,
        inference_client: InferenceClient,
        settings: Optional[PredictionSettings] = None,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.settings = settings or PredictionSettings()
        self.now = now or (lambda: datetime.now(timezone.utc))

        self.extractor = FeatureExtractor(store, now=self.now)
        self.rule_model = RuleBasedModel()
        self.behavior_model = BehaviorBasedModel()
        self.inference_model = InferenceBasedModel(
            inference_client,
            model=self.settings.inference_model,
            temperature=self.settings.inference_temperature,
            policy=self.settings.fallback_policy,
        )

    def predict(self, employee_id: str, organization_id: str) -> TurnoverRisk:
        """
        Prédit le risque de départ d'un employé.

        Raises
        ------
        NotFoundError
            Si l'employé n'appartient pas à l'organisation.
        InferenceUnavailableError
            Uniquement avec la politique `strict`.
        """
        employee = self.store.get_employee(employee_id, organization_id)
        if employee is None:
            raise NotFoundError(employee_id, organization_id)

        features = self.extractor.extract_for(employee)
        return self.score_features(features, employee)

    def score_features(
        self,
        features: EmployeeFeature,
        employee: Optional[EmployeeRecord] = None,
    ) -> TurnoverRisk:
        """
        Applique les trois modèles, l'ensemble et les explications à des features déjà extraites.
        """
        rule = self.rule_model.score(features)
        inference = self.inference_model.score(features)
        behavior = self.behavior_model.score(features)

        risk_score = combine_scores(rule.score, inference.score, behavior.score, self.settings.weights)
        level = classify_risk(risk_score)

        key_factors = identify_key_factors(features)
        top_reasons = identify_top_reasons(features)
        if not inference.available and self.settings.fallback_policy is InferenceFallbackPolicy.FLAG:
            key_factors.append(KeyFactor(factor=INFERENCE_UNAVAILABLE_FACTOR, impact="negative", weight=0))
            if top_reasons == [DEFAULT_REASON]:
                top_reasons = []
            top_reasons.append(INFERENCE_UNAVAILABLE_REASON)

        return TurnoverRisk(
            employee_id=features.employee_id,
            employee_name=employee.name if employee else "",
            department=(employee.department if employee else None) or features.department,
            position=(employee.position if employee else None) or "",
            risk_score=risk_score,
            probability=risk_score / 100,
            risk_level=level,
            key_factors=key_factors,
            top_reasons=top_reasons,
            recommendations=generate_recommendations(level),
            warning_time=estimate_departure_time(level, self.now()),
            model_scores=ModelScores(
                rule_based=rule.score,
                inference_based=inference.score,
                behavior_based=behavior.score,
            ),
            inference_available=inference.available,
        )

    def batch_predict(self, organization_id: str) -> List[TurnoverRisk]:
        """
        Prédit le risque de tous les employés actifs d'une organisation.

        Fonctionnement :
        1) extraction séquentielle des features (le store peut être lié à une
           session SQLAlchemy, qui n'est pas thread-safe),
        2) scoring en parallèle, borné par `batch_max_workers` pour ne pas
           saturer le service d'inférence,
        3) tri par score décroissant une fois tous les résultats collectés.

        L'échec d'un employé est journalisé puis ignoré : le lot ne s'interrompt jamais.
        """
        employees = self.store.list_active_employees(organization_id)

        pending: List[Tuple[EmployeeRecord, EmployeeFeature]] = []
        for employee in employees:
            try:
                pending.append((employee, self.extractor.extract_for(employee)))
            except Exception:
                logger.exception("Feature extraction failed for employee %s, skipped", employee.id)

        results: List[TurnoverRisk] = []
        if pending:
            workers = min(self.settings.batch_max_workers, len(pending))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="turnover") as pool:
                futures = {
                    pool.submit(self.score_features, features, employee): employee
                    for employee, features in pending
                }
                for future in as_completed(futures):
                    employee = futures[future]
                    try:
                        results.append(future.result())
                    except Exception:
                        logger.exception("Risk scoring failed for employee %s, skipped", employee.id)

        skipped = len(employees) - len(results)
        logger.info(
            "Batch prediction for organization %s: %d scored, %d skipped",
            organization_id,
            len(results),
            skipped,
        )
        return sort_by_risk(results)

    def detect_early_warnings(self, organization_id: str) -> List[TurnoverRisk]:
        """Sous-ensemble de `batch_predict` aux niveaux high / critical, même ordre."""
        return [r for r in self.batch_predict(organization_id) if r.risk_level in EARLY_WARNING_LEVELS]
