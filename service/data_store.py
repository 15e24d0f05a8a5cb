"""
service.data_store

Interface de lecture des données RH consommée par le moteur.

Le moteur ne dépend que du protocole `HRDataStore` : en production il reçoit
un `SqlAlchemyHRDataStore` (session SQLAlchemy), en tests n'importe quel
objet qui expose les mêmes méthodes.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models import (
    AttendanceRecord,
    Employee,
    Interview,
    OvertimeRequest,
    PerformanceRecord,
    TrainingRecord,
)


@dataclass(frozen=True)
class EmployeeRecord:
    """Identité et données démographiques d'un employé, telles que stockées."""
    id: str
    organization_id: str
    name: str
    department: Optional[str] = None
    position: Optional[str] = None
    hire_date: Optional[datetime] = None
    birth_date: Optional[datetime] = None
    employment_status: str = "active"


class HRDataStore(Protocol):
    def get_employee(self, employee_id: str, organization_id: str) -> Optional[EmployeeRecord]: ...

    def list_active_employees(self, organization_id: str) -> List[EmployeeRecord]: ...

    def list_performance_scores(self, employee_id: str) -> List[float]: ...

    def list_attendance_statuses(self, employee_id: str) -> List[str]: ...

    def count_interviews_as_interviewer(self, employee_id: str) -> int: ...

    def sum_overtime_minutes(self, employee_id: str, since: datetime) -> Optional[int]: ...

    def training_completion(self, employee_id: str) -> Optional[Tuple[int, int]]: ...


def _to_record(row: Employee) -> EmployeeRecord:
    return EmployeeRecord(
        id=row.id,
        organization_id=row.organization_id,
        name=row.name,
        department=row.department,
        position=row.position,
        hire_date=row.hire_date,
        birth_date=row.birth_date,
        employment_status=row.employment_status,
    )


class SqlAlchemyHRDataStore:
    """
    Implémentation de `HRDataStore` sur les tables `hr.*`.

    Une instance est liée à une session : elle ne doit pas être partagée
    entre threads (les sessions SQLAlchemy ne sont pas thread-safe).
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_employee(self, employee_id: str, organization_id: str) -> Optional[EmployeeRecord]:
        row = self.db.execute(
            select(Employee).where(
                Employee.id == employee_id,
                Employee.organization_id == organization_id,
            )
        ).scalar_one_or_none()
        return _to_record(row) if row else None

    def list_active_employees(self, organization_id: str) -> List[EmployeeRecord]:
        rows = self.db.execute(
            select(Employee)
            .where(
                Employee.organization_id == organization_id,
                Employee.employment_status == "active",
            )
            .order_by(Employee.id)
        ).scalars().all()
        return [_to_record(r) for r in rows]

    def list_performance_scores(self, employee_id: str) -> List[float]:
        """Scores finaux en ordre chronologique ; les évaluations sans score sont ignorées."""
        scores = self.db.execute(
            select(PerformanceRecord.final_score)
            .where(
                PerformanceRecord.employee_id == employee_id,
                PerformanceRecord.final_score.is_not(None),
            )
            .order_by(PerformanceRecord.created_at, PerformanceRecord.id)
        ).scalars().all()
        return [float(s) for s in scores]

    def list_attendance_statuses(self, employee_id: str) -> List[str]:
        return list(
            self.db.execute(
                select(AttendanceRecord.status).where(AttendanceRecord.employee_id == employee_id)
            ).scalars().all()
        )

    def count_interviews_as_interviewer(self, employee_id: str) -> int:
        count = self.db.execute(
            select(func.count(Interview.id)).where(Interview.interviewer_id == employee_id)
        ).scalar_one()
        return int(count or 0)

    def sum_overtime_minutes(self, employee_id: str, since: datetime) -> Optional[int]:
        """
        Total des minutes d'heures supplémentaires approuvées depuis `since`.

        Retourne None si l'employé n'a aucune demande d'heures supplémentaires
        enregistrée : la donnée est alors considérée comme indisponible.
        """
        has_requests = self.db.execute(
            select(func.count(OvertimeRequest.id)).where(OvertimeRequest.employee_id == employee_id)
        ).scalar_one()
        if not has_requests:
            return None

        total = self.db.execute(
            select(func.coalesce(func.sum(OvertimeRequest.duration_minutes), 0)).where(
                OvertimeRequest.employee_id == employee_id,
                OvertimeRequest.status == "approved",
                OvertimeRequest.overtime_date >= since,
            )
        ).scalar_one()
        return int(total)

    def training_completion(self, employee_id: str) -> Optional[Tuple[int, int]]:
        """
        Retourne (formations terminées, formations comptabilisées), ou None
        si aucune formation (hors annulées) n'est enregistrée.
        """
        statuses = self.db.execute(
            select(TrainingRecord.status).where(
                TrainingRecord.employee_id == employee_id,
                TrainingRecord.status != "cancelled",
            )
        ).scalars().all()
        if not statuses:
            return None
        completed = sum(1 for s in statuses if s == "completed")
        return completed, len(statuses)
