"""
service.inference_client

Client HTTP minimal vers le service d'inférence (API de type chat-completions).

Le moteur ne dépend que du protocole `InferenceClient` :
`complete(messages, model=..., temperature=...) -> str`.
Toute erreur de transport ou de format est convertie en
`InferenceUnavailableError` ; c'est le modèle d'inférence qui décide
ensuite (selon la politique configurée) de la suite à donner.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

import requests

from domain.errors import InferenceUnavailableError
from service.settings import PredictionSettings

logger = logging.getLogger("turnover.inference")

Message = Dict[str, str]


class InferenceClient(Protocol):
    def complete(self, messages: List[Message], *, model: str, temperature: float) -> str: ...


class HttpInferenceClient:
    """
    Appelle un endpoint compatible chat-completions via `requests`.

    Parameters
    ----------
    url : str
        URL complète de l'endpoint (ex: https://llm.internal/v1/chat/completions).
    api_key : str | None
        Jeton envoyé dans `Authorization: Bearer ...`.
    timeout : float
        Timeout HTTP en secondes, appliqué à chaque appel.
    session : requests.Session | None
        Session réutilisée entre les appels (pool de connexions).
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: PredictionSettings) -> "HttpInferenceClient":
        if not settings.inference_url:
            raise ValueError("INFERENCE_URL is not configured")
        return cls(
            url=settings.inference_url,
            api_key=settings.inference_api_key,
            timeout=settings.inference_timeout,
        )

    def complete(self, messages: List[Message], *, model: str, temperature: float) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {"model": model, "temperature": temperature, "messages": messages}

        try:
            response = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            raise InferenceUnavailableError(f"Inference request failed: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise InferenceUnavailableError(f"Unexpected inference response shape: {e}") from e

        if not isinstance(content, str):
            raise InferenceUnavailableError("Inference response content is not text")
        return content

    def close(self) -> None:
        self.session.close()


class UnconfiguredInferenceClient:
    """Client utilisé quand INFERENCE_URL est absent : chaque appel échoue."""

    def complete(self, messages: List[Message], *, model: str, temperature: float) -> str:
        raise InferenceUnavailableError("Inference service is not configured")

    def close(self) -> None:
        pass


def build_inference_client(settings: PredictionSettings):
    if settings.inference_url:
        return HttpInferenceClient.from_settings(settings)
    logger.warning("INFERENCE_URL not set: inference-based model will always fall back")
    return UnconfiguredInferenceClient()
