"""
service.features

Extraction des features d'un employé à partir des données RH brutes.

Pipeline
--------
1) identité / ancienneté / âge / niveau de poste
2) agrégats de performance (moyenne, variance, tendance, dernier score)
3) agrégats de présence (taux de présence, retards, départs anticipés, congés)
4) signaux comportementaux (entretiens menés, formation, heures sup.)
5) scores composites (engagement, stress, satisfaction)

Règle générale : l'absence de données donne une valeur neutre, jamais une
pénalité ("pas de données" n'est pas "mauvaises données").
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Sequence

import numpy as np

from domain.domain import EmployeeFeature, FeatureAvailability
from domain.errors import NotFoundError
from service.data_store import EmployeeRecord, HRDataStore

logger = logging.getLogger("turnover.features")

DEFAULT_AGE = 30
DEFAULT_TRAINING_COMPLETION_RATE = 80
OVERTIME_WINDOW = timedelta(days=30)
TENURE_MONTH = timedelta(days=30)

# Mots-clés d'intitulé de poste -> niveau hiérarchique (du plus haut au plus bas)
POSITION_LEVEL_KEYWORDS = (
    (4, ("总监", "vp", "director")),
    (3, ("经理", "manager")),
    (2, ("主管", "组长", "supervisor", "lead")),
)


def round_half_up(value: float) -> int:
    """Arrondi à l'entier le plus proche, .5 arrondi vers le haut."""
    return int(math.floor(value + 0.5))


def _as_utc(value: datetime) -> datetime:
    # SQLite renvoie des datetimes naïfs, stockés en UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class PerformanceStats:
    avg_score: int = 0
    trend: float = 0.0
    variance: float = 0.0
    recent_score: float = 0.0


@dataclass(frozen=True)
class AttendanceStats:
    rate: int = 100
    late_count: int = 0
    early_leave_count: int = 0
    leave_count: int = 0


def tenure_months(hire_date: Optional[datetime], now: datetime) -> int:
    if hire_date is None:
        return 0
    return max(0, (now - _as_utc(hire_date)) // TENURE_MONTH)


def age_from_birth_date(birth_date: Optional[datetime], now: datetime) -> int:
    if birth_date is None:
        return DEFAULT_AGE
    return now.year - birth_date.year


def position_level(position: Optional[str]) -> int:
    """
    Déduit le niveau hiérarchique (1..4) de l'intitulé du poste.

    >>> position_level("研发总监")
    4
    >>> position_level("Engineering Manager")
    3
    >>> position_level(None)
    1
    """
    if not position:
        return 1
    title = position.lower()
    for level, keywords in POSITION_LEVEL_KEYWORDS:
        if any(k in title for k in keywords):
            return level
    return 1


def aggregate_performance(scores: Sequence[float]) -> PerformanceStats:
    """
    Agrège l'historique de performance (ordre chronologique).

    - moyenne arrondie,
    - variance de population (division par n),
    - tendance = dernier - premier (0 si moins de 2 évaluations).
    """
    if not scores:
        return PerformanceStats()

    values = np.asarray(scores, dtype=float)
    return PerformanceStats(
        avg_score=round_half_up(float(values.mean())),
        trend=float(values[-1] - values[0]) if len(values) > 1 else 0.0,
        variance=float(values.var()),
        recent_score=float(values[-1]),
    )


def aggregate_attendance(statuses: Iterable[str]) -> AttendanceStats:
    statuses = list(statuses)
    if not statuses:
        return AttendanceStats()

    present = statuses.count("present")
    return AttendanceStats(
        rate=round_half_up(present / len(statuses) * 100),
        late_count=statuses.count("late"),
        early_leave_count=statuses.count("early_leave"),
        leave_count=statuses.count("leave"),
    )


def engagement_score(performance: PerformanceStats, attendance: AttendanceStats) -> int:
    return round_half_up(performance.avg_score * 0.6 + attendance.rate * 0.4)


def stress_level(performance: PerformanceStats, attendance: AttendanceStats) -> int:
    stress = (
        (100 - performance.avg_score) * 0.3
        + performance.variance * 0.2
        + (100 - attendance.rate) * 0.3
        + attendance.late_count * 5
        + attendance.leave_count * 3
    )
    return min(100, round_half_up(stress))


def satisfaction_score(performance: PerformanceStats, training_completion_rate: float) -> int:
    return round_half_up(performance.avg_score * 0.7 + training_completion_rate * 0.3)


class FeatureExtractor:
    """
    Construit un `EmployeeFeature` à partir du `HRDataStore`.

    Parameters
    ----------
    store : HRDataStore
        Source des données RH.
    now : Callable[[], datetime] | None
        Horloge injectable (UTC) ; utile pour tester l'ancienneté.
    """

    def __init__(self, store: HRDataStore, now: Optional[Callable[[], datetime]] = None) -> None:
        self.store = store
        self.now = now or (lambda: datetime.now(timezone.utc))

    def extract(self, employee_id: str, organization_id: str) -> EmployeeFeature:
        """
        Raises
        ------
        NotFoundError
            Si l'employé n'appartient pas à l'organisation.
        """
        employee = self.store.get_employee(employee_id, organization_id)
        if employee is None:
            raise NotFoundError(employee_id, organization_id)
        return self.extract_for(employee)

    def extract_for(self, employee: EmployeeRecord) -> EmployeeFeature:
        now = self.now()

        scores = self.store.list_performance_scores(employee.id)
        statuses = self.store.list_attendance_statuses(employee.id)
        performance = aggregate_performance(scores)
        attendance = aggregate_attendance(statuses)

        interview_count = self.store.count_interviews_as_interviewer(employee.id)

        overtime_minutes = self.store.sum_overtime_minutes(employee.id, now - OVERTIME_WINDOW)
        overtime_hours = overtime_minutes / 60 if overtime_minutes is not None else 0.0

        training = self.store.training_completion(employee.id)
        if training is not None:
            completed, countable = training
            training_rate = round_half_up(completed / countable * 100)
        else:
            training_rate = DEFAULT_TRAINING_COMPLETION_RATE

        availability = FeatureAvailability(
            performance_history=bool(scores),
            attendance_history=bool(statuses),
            overtime_hours=overtime_minutes is not None,
            training_completion_rate=training is not None,
        )
        if not (availability.overtime_hours and availability.training_completion_rate):
            logger.debug(
                "Employee %s: placeholder behavioral data (overtime=%s, training=%s)",
                employee.id,
                availability.overtime_hours,
                availability.training_completion_rate,
            )

        return EmployeeFeature(
            employee_id=employee.id,
            tenure_months=tenure_months(employee.hire_date, now),
            age=age_from_birth_date(employee.birth_date, now),
            position_level=position_level(employee.position),
            department=employee.department or "",
            avg_performance_score=performance.avg_score,
            performance_trend=performance.trend,
            performance_variance=performance.variance,
            recent_performance_score=performance.recent_score,
            attendance_rate=attendance.rate,
            late_count=attendance.late_count,
            early_leave_count=attendance.early_leave_count,
            leave_count=attendance.leave_count,
            overtime_hours=overtime_hours,
            interview_count=interview_count,
            training_completion_rate=training_rate,
            engagement_score=engagement_score(performance, attendance),
            stress_level=stress_level(performance, attendance),
            satisfaction_score=satisfaction_score(performance, training_rate),
            availability=availability,
        )
