"""
API FastAPI du moteur de risque de départ (turnover).

L'API permet :
- de prédire le risque de départ d'un employé,
- de scorer tous les employés actifs d'une organisation,
- de lister les alertes précoces (niveaux high / critical),
- de consulter l'état du service (health / ready).

Principes d'architecture
- Les paramètres et le client d'inférence sont créés une seule fois au démarrage
  (lifespan) et rangés dans `app.state`.
- Le service de prédiction est construit par requête, avec le store lié à la
  session de la requête : aucune instance globale, tout est injecté via `Depends`
  (et donc remplaçable en tests via `app.dependency_overrides`).
- Les prédictions ne sont pas persistées.

Sécurité
Tous les endpoints (sauf la racine `/`) sont protégés par une API Key via le header :
`X-API-Key: <API_KEY>`
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.security import verify_api_key
from domain.domain import TurnoverRisk
from domain.errors import InferenceUnavailableError, NotFoundError
from service.data_store import SqlAlchemyHRDataStore
from service.inference_client import InferenceClient, build_inference_client
from service.settings import PredictionSettings
from service.turnover_service import TurnoverPredictionService

from .database import get_db
from .models import Employee

logger = logging.getLogger("turnover.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Au démarrage : lit la configuration et crée le client d'inférence (pool HTTP).
    À l'arrêt : ferme le client.
    """
    settings = PredictionSettings.from_env()
    client = build_inference_client(settings)
    app.state.settings = settings
    app.state.inference_client = client
    yield
    client.close()


app = FastAPI(title="Turnover Risk API", lifespan=lifespan)


def get_settings(request: Request) -> PredictionSettings:
    return request.app.state.settings


def get_inference_client(request: Request) -> InferenceClient:
    return request.app.state.inference_client


def get_service(
    db: Session = Depends(get_db),
    inference_client: InferenceClient = Depends(get_inference_client),
    settings: PredictionSettings = Depends(get_settings),
) -> TurnoverPredictionService:
    return TurnoverPredictionService(
        store=SqlAlchemyHRDataStore(db),
        inference_client=inference_client,
        settings=settings,
    )


@app.get("/", include_in_schema=False)
def root():
    """Redirige vers la documentation interactive (`/docs`)."""
    return RedirectResponse(url="/docs")


@app.get("/health", dependencies=[Depends(verify_api_key)])
def health():
    return {"status": "ok"}


@app.get("/ready", dependencies=[Depends(verify_api_key)])
def ready(
    db: Session = Depends(get_db),
    settings: PredictionSettings = Depends(get_settings),
):
    """
    Vérifie que la base répond et que la table `hr.employees` est requêtable.

    Un service d'inférence non configuré ne bloque pas la readiness : le modèle
    d'inférence retombe alors sur son score de repli.

    Raises
    ------
    fastapi.HTTPException
        503 si la base ou la table employés n'est pas disponible.
    """
    try:
        db.execute(select(1))
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"DB not ready: {e}") from e
    try:
        db.execute(select(Employee.id).limit(1))
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Employees table not ready: {e}") from e

    return {
        "status": "ready",
        "inference_model": settings.inference_model,
        "inference_configured": bool(settings.inference_url),
        "fallback_policy": settings.fallback_policy.value,
    }


@app.get(
    "/organizations/{organization_id}/employees/{employee_id}/turnover-risk",
    response_model=TurnoverRisk,
    dependencies=[Depends(verify_api_key)],
)
def predict_employee(
    organization_id: str,
    employee_id: str,
    service: TurnoverPredictionService = Depends(get_service),
) -> TurnoverRisk:
    """
    Risque de départ d'un employé.

    Raises
    ------
    fastapi.HTTPException
        - 404 si l'employé n'appartient pas à l'organisation
        - 503 si le service d'inférence est indisponible (politique `strict`)
        - 500 pour toute autre erreur
    """
    try:
        return service.predict(employee_id=employee_id, organization_id=organization_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InferenceUnavailableError as e:
        logger.warning("Inference unavailable for employee %s: %s", employee_id, e)
        raise HTTPException(status_code=503, detail=str(e)) from e
    except Exception as e:
        logger.exception("Prediction failed for employee %s", employee_id)
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get(
    "/organizations/{organization_id}/turnover-risks",
    response_model=List[TurnoverRisk],
    dependencies=[Depends(verify_api_key)],
)
def batch_predict(
    organization_id: str,
    service: TurnoverPredictionService = Depends(get_service),
) -> List[TurnoverRisk]:
    """Tous les employés actifs, triés par score décroissant."""
    try:
        return service.batch_predict(organization_id)
    except Exception as e:
        logger.exception("Batch prediction failed for organization %s", organization_id)
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get(
    "/organizations/{organization_id}/early-warnings",
    response_model=List[TurnoverRisk],
    dependencies=[Depends(verify_api_key)],
)
def early_warnings(
    organization_id: str,
    service: TurnoverPredictionService = Depends(get_service),
) -> List[TurnoverRisk]:
    """Employés à risque high / critical, triés par score décroissant."""
    try:
        return service.detect_early_warnings(organization_id)
    except Exception as e:
        logger.exception("Early-warning detection failed for organization %s", organization_id)
        raise HTTPException(status_code=500, detail=str(e)) from e
