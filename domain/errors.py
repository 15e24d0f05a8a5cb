"""Exceptions du moteur de risque de départ."""


class TurnoverEngineError(Exception):
    """Erreur de base du moteur."""


class NotFoundError(TurnoverEngineError, LookupError):
    """L'employé n'existe pas ou n'appartient pas à l'organisation demandée."""

    def __init__(self, employee_id: str, organization_id: str) -> None:
        super().__init__(
            f"Employee {employee_id!r} not found in organization {organization_id!r}"
        )
        self.employee_id = employee_id
        self.organization_id = organization_id


class InferenceUnavailableError(TurnoverEngineError):
    """Le service d'inférence est injoignable ou sa réponse est inexploitable."""
