import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api import app, get_inference_client
from app.database import get_db
from app.models import (
    AttendanceRecord,
    Base,
    Employee,
    Interview,
    Organization,
    PerformanceRecord,
)
from app.security import verify_api_key
from domain.errors import InferenceUnavailableError
from service.data_store import EmployeeRecord

# valeur par défaut de API_KEY pour les tests de sécurité
os.environ.setdefault("API_KEY", "ci-test-key")

TEST_DB_URL = "sqlite+pysqlite:///:memory:"

# horloge figée partagée par les tests du moteur
FIXED_NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def fixed_now():
    return FIXED_NOW


# Faux client d'inférence : renvoie toujours la même réponse (ou lève l'erreur donnée)
class FakeInferenceClient:
    def __init__(self, reply: str = '{"riskScore": 60, "reasoning": "ok"}', error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    def complete(self, messages, *, model, temperature):
        self.calls.append({"messages": messages, "model": model, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.reply

    def close(self):
        pass


class DownInferenceClient(FakeInferenceClient):
    def __init__(self):
        super().__init__(error=InferenceUnavailableError("connection refused"))


# Store RH en mémoire, avec possibilité de faire échouer certains employés
class InMemoryHRDataStore:
    def __init__(self):
        self.employees: Dict[str, EmployeeRecord] = {}
        self.scores: Dict[str, List[float]] = {}
        self.statuses: Dict[str, List[str]] = {}
        self.interviews: Dict[str, int] = {}
        self.overtime: Dict[str, int] = {}
        self.training: Dict[str, Tuple[int, int]] = {}
        self.failing: set = set()

    def add(self, employee_id, organization_id="org-1", *, scores=(), statuses=(), interviews=0,
            status="active", **fields):
        self.employees[employee_id] = EmployeeRecord(
            id=employee_id,
            organization_id=organization_id,
            name=fields.pop("name", f"员工{employee_id}"),
            employment_status=status,
            **fields,
        )
        self.scores[employee_id] = list(scores)
        self.statuses[employee_id] = list(statuses)
        self.interviews[employee_id] = interviews

    def get_employee(self, employee_id, organization_id):
        e = self.employees.get(employee_id)
        return e if e and e.organization_id == organization_id else None

    def list_active_employees(self, organization_id):
        return [
            e for e in self.employees.values()
            if e.organization_id == organization_id and e.employment_status == "active"
        ]

    def list_performance_scores(self, employee_id):
        if employee_id in self.failing:
            raise RuntimeError(f"performance table unavailable for {employee_id}")
        return list(self.scores.get(employee_id, []))

    def list_attendance_statuses(self, employee_id):
        return list(self.statuses.get(employee_id, []))

    def count_interviews_as_interviewer(self, employee_id):
        return self.interviews.get(employee_id, 0)

    def sum_overtime_minutes(self, employee_id, since):
        return self.overtime.get(employee_id)

    def training_completion(self, employee_id):
        return self.training.get(employee_id)


@pytest.fixture()
def engine():
    eng = (
        create_engine(
            TEST_DB_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        .execution_options(schema_translate_map={"hr": None})
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def db(engine):
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def memory_store():
    return InMemoryHRDataStore()


# Fabrique d'employés en base : organisation + historique de performance / présence / entretiens
@pytest.fixture()
def add_employee(db):
    def _add(employee_id, organization_id="org-1", *, scores=(), statuses=(), interviews=0, **fields):
        if db.get(Organization, organization_id) is None:
            db.add(Organization(id=organization_id, name=organization_id))
        fields.setdefault("name", f"员工{employee_id}")
        db.add(Employee(id=employee_id, organization_id=organization_id, **fields))
        db.flush()

        # created_at croissant pour fixer l'ordre chronologique
        for i, score in enumerate(scores):
            db.add(
                PerformanceRecord(
                    employee_id=employee_id,
                    final_score=score,
                    created_at=datetime(2025, 1 + i, 1, tzinfo=timezone.utc),
                )
            )
        for status in statuses:
            db.add(AttendanceRecord(employee_id=employee_id, status=status))
        for _ in range(interviews):
            db.add(Interview(organization_id=organization_id, interviewer_id=employee_id))
        db.commit()

    return _add


def _override_db(db):
    def override_get_db():
        yield db
    return override_get_db


@pytest.fixture()
def inference_client():
    return FakeInferenceClient('{"riskScore": 80, "reasoning": "压力较大"}')


@pytest.fixture()
def client(db, inference_client):
    # Sécurité OFF pour les tests de routes
    app.dependency_overrides[verify_api_key] = lambda: None
    app.dependency_overrides[get_db] = _override_db(db)
    app.dependency_overrides[get_inference_client] = lambda: inference_client

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def secure_client(db):
    # Sécurité ON pour les tests de sécurité
    app.dependency_overrides.pop(verify_api_key, None)
    app.dependency_overrides[get_db] = _override_db(db)

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
