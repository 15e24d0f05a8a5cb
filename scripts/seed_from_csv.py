from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import pandas as pd
from dotenv import find_dotenv, load_dotenv
from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session

from app.database import init_db
from app.models import (
    AttendanceRecord,
    Employee,
    Interview,
    Organization,
    PerformanceRecord,
)

load_dotenv(find_dotenv())

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger("turnover.seed")

# Fichiers attendus dans data/ (interviews.csv est optionnel)
CSV_FILES = {
    "employees": "employees.csv",
    "performance": "performance.csv",
    "attendance": "attendance.csv",
    "interviews": "interviews.csv",
}
REQUIRED_COLUMNS = {
    "employees": {"employee_id", "name"},
    "performance": {"employee_id", "final_score"},
    "attendance": {"employee_id", "status"},
    "interviews": {"interviewer_id"},
}
ATTENDANCE_STATUSES = {"present", "late", "early_leave", "leave"}


# Normalisation basique des colonnes (trim, minuscules)
def norm_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [c.strip().lower() for c in df.columns]
    # "" -> NaN, puis NaN -> None
    df = df.replace(r"^\s*$", np.nan, regex=True)
    return df.astype(object).where(pd.notnull(df), None)


def to_datetime(value) -> Optional[datetime]:
    if value is None:
        return None
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    return None if pd.isna(ts) else ts.to_pydatetime()


def load_frames(data_dir: Path) -> Dict[str, pd.DataFrame]:
    """Lit les CSV de `data_dir` et vérifie les colonnes obligatoires."""
    frames: Dict[str, pd.DataFrame] = {}
    for key, filename in CSV_FILES.items():
        path = data_dir / filename
        if not path.exists():
            if key == "interviews":
                continue
            raise RuntimeError(f"Fichier introuvable: {path}")
        frames[key] = norm_cols(pd.read_csv(path))

    for key, df in frames.items():
        missing = REQUIRED_COLUMNS[key] - set(df.columns)
        if missing:
            raise RuntimeError(f"{CSV_FILES[key]}: colonnes manquantes {sorted(missing)}")
    return frames


def seed(session: Session, organization_id: str, frames: Dict[str, pd.DataFrame], refresh: bool = False) -> Dict[str, int]:
    """
    Insère les données d'une organisation.

    - employés : upsert par `employee_id` (merge ORM)
    - performance / présence / entretiens : ajoutés (purgés d'abord si `refresh`)

    Les lignes de présence au statut inconnu sont ignorées.
    """
    if session.get(Organization, organization_id) is None:
        session.add(Organization(id=organization_id, name=organization_id))

    employees = frames["employees"].to_dict(orient="records")
    employee_ids = [str(r["employee_id"]) for r in employees]

    if refresh:
        logger.info("Mode --refresh: purge performance / présence / entretiens de %s", organization_id)
        session.execute(delete(PerformanceRecord).where(PerformanceRecord.employee_id.in_(employee_ids)))
        session.execute(delete(AttendanceRecord).where(AttendanceRecord.employee_id.in_(employee_ids)))
        session.execute(delete(Interview).where(Interview.organization_id == organization_id))

    for r in employees:
        session.merge(
            Employee(
                id=str(r["employee_id"]),
                organization_id=organization_id,
                name=r["name"],
                department=r.get("department"),
                position=r.get("position"),
                hire_date=to_datetime(r.get("hire_date")),
                birth_date=to_datetime(r.get("birth_date")),
                employment_status=r.get("employment_status") or "active",
            )
        )
    session.flush()

    known = set(
        session.execute(select(Employee.id).where(Employee.organization_id == organization_id)).scalars()
    )
    counts = {"employees": len(employees), "performance": 0, "attendance": 0, "interviews": 0}

    for r in frames["performance"].to_dict(orient="records"):
        employee_id = str(r["employee_id"])
        if employee_id not in known or r.get("final_score") is None:
            continue
        record = PerformanceRecord(
            employee_id=employee_id,
            cycle=r.get("cycle"),
            final_score=int(float(r["final_score"])),
        )
        recorded_at = to_datetime(r.get("recorded_at"))
        if recorded_at is not None:
            record.created_at = recorded_at
        session.add(record)
        counts["performance"] += 1

    for r in frames["attendance"].to_dict(orient="records"):
        employee_id = str(r["employee_id"])
        status = str(r.get("status") or "").strip().lower()
        if employee_id not in known or status not in ATTENDANCE_STATUSES:
            continue
        record = AttendanceRecord(employee_id=employee_id, status=status)
        record_date = to_datetime(r.get("record_date"))
        if record_date is not None:
            record.record_date = record_date
        session.add(record)
        counts["attendance"] += 1

    if "interviews" in frames:
        for r in frames["interviews"].to_dict(orient="records"):
            interviewer_id = str(r["interviewer_id"])
            if interviewer_id not in known:
                continue
            session.add(
                Interview(
                    organization_id=organization_id,
                    interviewer_id=interviewer_id,
                    candidate_name=r.get("candidate_name"),
                    status=r.get("status") or "scheduled",
                )
            )
            counts["interviews"] += 1

    session.commit()
    return counts


# Point d'entrée du script
def main(organization_id: Optional[str] = None, data_dir: str = "data"):
    refresh = "--refresh" in sys.argv
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    organization_id = organization_id or (args[0] if args else None)
    if not organization_id:
        raise RuntimeError("Usage: python -m scripts.seed_from_csv <organization_id> [--refresh]")

    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise RuntimeError("DATABASE_URL manquant dans .env")

    engine = create_engine(db_url, pool_pre_ping=True)
    if db_url.startswith("sqlite"):
        engine = engine.execution_options(schema_translate_map={"hr": None})
    init_db(engine)

    base = Path(__file__).resolve().parents[1]
    frames = load_frames((base / data_dir).resolve())

    with Session(engine) as session:
        counts = seed(session, organization_id, frames, refresh=refresh)

    logger.info("Seed terminé pour %s", organization_id)
    for key, n in counts.items():
        logger.info("   %s: %d", key, n)


if __name__ == "__main__":
    main()
