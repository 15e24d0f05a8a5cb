"""
Protection de l'API de prédiction par clé (header `X-API-Key`).

La clé attendue est lue à chaque requête dans la variable d'environnement
`API_KEY` : une rotation de clé ne nécessite pas de redémarrage.

- clé non configurée côté serveur -> 500
- clé absente ou différente       -> 401
"""
import os
import secrets

from fastapi import Header, HTTPException, status


def verify_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    """
    Dépendance FastAPI (`Depends(verify_api_key)`) des endpoints protégés.

    Raises
    ------
    fastapi.HTTPException
        500 si `API_KEY` n'est pas défini, 401 si la clé fournie est invalide.
    """
    expected = os.getenv("API_KEY")

    if not expected:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API_KEY not configured on server",
        )

    # comparaison à temps constant
    if x_api_key is None or not secrets.compare_digest(x_api_key.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
