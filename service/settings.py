"""
Configuration du moteur de prédiction, lue depuis l'environnement.

Comme pour `app.database`, le fichier `.env` est chargé sauf pendant les tests
(pytest définit `PYTEST_CURRENT_TEST`) : les tests fournissent leurs propres valeurs.

Variables d'environnement
-------------------------
INFERENCE_URL             : endpoint chat-completions du service d'inférence
INFERENCE_API_KEY         : jeton Bearer du service d'inférence
INFERENCE_MODEL           : identifiant du modèle (défaut doubao-seed-1-8-251228)
INFERENCE_TEMPERATURE     : température de génération (défaut 0.5)
INFERENCE_TIMEOUT         : timeout HTTP en secondes (défaut 10)
INFERENCE_FALLBACK_POLICY : neutral | flag | strict (défaut neutral)
BATCH_MAX_WORKERS         : parallélisme des prédictions en lot, 1..20 (défaut 8)
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from domain.domain import InferenceFallbackPolicy

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(find_dotenv())

DEFAULT_MODEL = "doubao-seed-1-8-251228"
MAX_BATCH_WORKERS = 20


@dataclass(frozen=True)
class EnsembleWeights:
    rule_based: float = 0.3
    inference_based: float = 0.4
    behavior_based: float = 0.3

    def __post_init__(self) -> None:
        total = round(self.rule_based + self.inference_based + self.behavior_based, 6)
        if total != 1:
            raise ValueError(f"Ensemble weights must sum to 1, got {total}")
        if min(self.rule_based, self.inference_based, self.behavior_based) < 0:
            raise ValueError("Ensemble weights must be non-negative")


@dataclass(frozen=True)
class PredictionSettings:
    """
    Paramètres du moteur.

    Les valeurs par défaut reproduisent le comportement historique :
    score neutre de 50 en cas d'échec de l'inférence, pondération 0.3 / 0.4 / 0.3.
    """
    inference_url: Optional[str] = None
    inference_api_key: Optional[str] = None
    inference_model: str = DEFAULT_MODEL
    inference_temperature: float = 0.5
    inference_timeout: float = 10.0
    fallback_policy: InferenceFallbackPolicy = InferenceFallbackPolicy.NEUTRAL
    batch_max_workers: int = 8
    weights: EnsembleWeights = field(default_factory=EnsembleWeights)

    def __post_init__(self) -> None:
        if not 1 <= self.batch_max_workers <= MAX_BATCH_WORKERS:
            raise ValueError(
                f"batch_max_workers must be between 1 and {MAX_BATCH_WORKERS}, got {self.batch_max_workers}"
            )
        if self.inference_timeout <= 0:
            raise ValueError("inference_timeout must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PredictionSettings":
        """
        Construit les paramètres à partir des variables d'environnement.

        Parameters
        ----------
        environ : Mapping[str, str] | None
            Source des variables (par défaut `os.environ`).

        Raises
        ------
        ValueError
            Si une valeur est invalide (nombre mal formé, politique inconnue, ...).
        """
        env = os.environ if environ is None else environ
        return cls(
            inference_url=env.get("INFERENCE_URL") or None,
            inference_api_key=env.get("INFERENCE_API_KEY") or None,
            inference_model=env.get("INFERENCE_MODEL", DEFAULT_MODEL),
            inference_temperature=float(env.get("INFERENCE_TEMPERATURE", "0.5")),
            inference_timeout=float(env.get("INFERENCE_TIMEOUT", "10")),
            fallback_policy=InferenceFallbackPolicy(
                env.get("INFERENCE_FALLBACK_POLICY", InferenceFallbackPolicy.NEUTRAL.value).lower()
            ),
            batch_max_workers=int(env.get("BATCH_MAX_WORKERS", "8")),
        )
