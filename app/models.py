"""
Modèles ORM SQLAlchemy des données RH lues par le moteur de risque de départ.

Toutes les tables vivent dans le schéma `hr` :

- organizations       : entreprises (multi-tenant)
- employees           : identité, poste, statut d'emploi
- performance_records : évaluations de performance (score final)
- attendance_records  : pointages (present / late / early_leave / leave)
- interviews          : entretiens de recrutement (l'employé peut être recruteur)
- overtime_requests   : demandes d'heures supplémentaires
- training_records    : inscriptions et suivis de formation

Le moteur ne fait que LIRE ces tables (voir `service.data_store`).
Les prédictions ne sont pas persistées.

Compatibilité SQLite / PostgreSQL
- En production : PostgreSQL, schéma `hr`.
- En tests : SQLite, le schéma est retiré via `schema_translate_map={"hr": None}`.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

HR_SCHEMA = "hr"


def utcnow() -> datetime:
    """
    Retourne l'heure actuelle en UTC.

    Sert de valeur par défaut pour les colonnes `created_at`, afin que toutes
    les dates stockées soient cohérentes quel que soit le serveur.
    """
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Classe de base SQLAlchemy pour tous les modèles ORM."""
    pass


class Organization(Base):
    __tablename__ = "organizations"
    __table_args__ = ({"schema": HR_SCHEMA},)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    employees: Mapped[list["Employee"]] = relationship(back_populates="organization")


class Employee(Base):
    """
    Table `hr.employees`.

    Champs utilisés par le moteur
    -----------------------------
    organization_id : str
        Une prédiction n'est possible que dans l'organisation de l'employé.
    position : str | None
        Intitulé du poste ; sert à déduire le niveau hiérarchique (1..4).
    hire_date, birth_date : datetime | None
        Ancienneté et âge. Une date absente donne une valeur neutre.
    employment_status : str
        active, probation, resigned, terminated. Seuls les `active`
        sont inclus dans les prédictions en lot.
    """
    __tablename__ = "employees"
    __table_args__ = (
        Index("ix_employees_organization_id_status", "organization_id", "employment_status"),
        {"schema": HR_SCHEMA},
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey(f"{HR_SCHEMA}.organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(120))
    position: Mapped[Optional[str]] = mapped_column(String(120))

    hire_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    birth_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    employment_status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    organization: Mapped["Organization"] = relationship(back_populates="employees")


class PerformanceRecord(Base):
    """
    Table `hr.performance_records`.

    L'ordre chronologique (created_at, puis id) détermine la tendance :
    dernier score - premier score.
    """
    __tablename__ = "performance_records"
    __table_args__ = (
        Index("ix_performance_records_employee_id_created_at", "employee_id", "created_at"),
        {"schema": HR_SCHEMA},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey(f"{HR_SCHEMA}.employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    cycle: Mapped[Optional[str]] = mapped_column(String(50))
    final_score: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"
    __table_args__ = (
        Index("ix_attendance_records_employee_id_record_date", "employee_id", "record_date"),
        {"schema": HR_SCHEMA},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey(f"{HR_SCHEMA}.employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    record_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    # present, late, early_leave, leave
    status: Mapped[str] = mapped_column(String(20), default="present", nullable=False)


class Interview(Base):
    """
    Table `hr.interviews`.

    Le moteur compte les entretiens où l'employé est `interviewer_id`.
    """
    __tablename__ = "interviews"
    __table_args__ = (
        Index("ix_interviews_interviewer_id", "interviewer_id"),
        {"schema": HR_SCHEMA},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey(f"{HR_SCHEMA}.organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    interviewer_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey(f"{HR_SCHEMA}.employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    candidate_name: Mapped[Optional[str]] = mapped_column(String(128))
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="scheduled", nullable=False)


class OvertimeRequest(Base):
    """
    Table `hr.overtime_requests`.

    Seules les demandes `approved` comptent dans les heures supplémentaires.
    `duration_minutes` est exprimé en minutes.
    """
    __tablename__ = "overtime_requests"
    __table_args__ = (
        Index("ix_overtime_requests_employee_id_date", "employee_id", "overtime_date"),
        {"schema": HR_SCHEMA},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey(f"{HR_SCHEMA}.employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    overtime_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    # pending, approved, rejected, cancelled
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)


class TrainingRecord(Base):
    __tablename__ = "training_records"
    __table_args__ = (
        Index("ix_training_records_employee_id", "employee_id"),
        {"schema": HR_SCHEMA},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey(f"{HR_SCHEMA}.employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_title: Mapped[str] = mapped_column(String(255), nullable=False)
    # enrolled, in_progress, completed, dropped, cancelled
    status: Mapped[str] = mapped_column(String(20), default="enrolled", nullable=False)
    enrollment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
