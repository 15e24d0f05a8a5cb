"""
Rapport ponctuel des alertes précoces d'une organisation.

Usage
-----
python -m scripts.early_warning_report <organization_id> [--all] [--out rapport.csv]

- sans `--all` : uniquement les employés high / critical
- avec `--all` : tous les employés actifs scorés
Le rapport est affiché et, si `--out` est donné, exporté en CSV (UTF-8 BOM, lisible par Excel).
"""
from __future__ import annotations

import argparse
import logging
from typing import List

import pandas as pd
from sqlalchemy.orm import Session

from app.database import SessionLocal
from domain.domain import TurnoverRisk
from service.data_store import SqlAlchemyHRDataStore
from service.inference_client import build_inference_client
from service.settings import PredictionSettings
from service.turnover_service import TurnoverPredictionService

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger("turnover.report")

REPORT_COLUMNS = [
    "employee_id",
    "employee_name",
    "department",
    "position",
    "risk_score",
    "risk_level",
    "warning_time",
    "top_reasons",
    "key_factors",
    "inference_available",
]


def risks_to_frame(risks: List[TurnoverRisk]) -> pd.DataFrame:
    """Aplatit une liste de `TurnoverRisk` en DataFrame (une ligne par employé, ordre conservé)."""
    rows = [
        {
            "employee_id": r.employee_id,
            "employee_name": r.employee_name,
            "department": r.department,
            "position": r.position,
            "risk_score": r.risk_score,
            "risk_level": r.risk_level.value,
            "warning_time": r.warning_time.date().isoformat() if r.warning_time else None,
            "top_reasons": "；".join(r.top_reasons),
            "key_factors": "；".join(f.factor for f in r.key_factors),
            "inference_available": r.inference_available,
        }
        for r in risks
    ]
    # dtype objet : les cellules vides restent None quelle que soit la version de pandas
    return pd.DataFrame(rows, columns=REPORT_COLUMNS, dtype=object)


def run(session: Session, organization_id: str, include_all: bool = False) -> pd.DataFrame:
    settings = PredictionSettings.from_env()
    client = build_inference_client(settings)
    try:
        service = TurnoverPredictionService(SqlAlchemyHRDataStore(session), client, settings)
        if include_all:
            risks = service.batch_predict(organization_id)
        else:
            risks = service.detect_early_warnings(organization_id)
    finally:
        client.close()
    return risks_to_frame(risks)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Rapport des risques de départ d'une organisation")
    parser.add_argument("organization_id")
    parser.add_argument("--all", action="store_true", help="inclure tous les niveaux de risque")
    parser.add_argument("--out", help="chemin du CSV à écrire")
    args = parser.parse_args(argv)

    with SessionLocal() as session:
        report = run(session, args.organization_id, include_all=args.all)

    logger.info("%d employé(s) dans le rapport", len(report))
    if not report.empty:
        print(report.to_string(index=False))
    if args.out:
        report.to_csv(args.out, index=False, encoding="utf-8-sig")
        logger.info("Rapport écrit dans %s", args.out)


if __name__ == "__main__":
    main()
