"""
teste la protection par clé API avec la sécurité activée.

TEST 1 : Accès REFUSÉ sans clé API ou avec une mauvaise clé
TEST 2 : Accès AUTORISÉ avec une clé API valide
TEST 3 : Erreur serveur si API_KEY n'est pas configurée

"""
import os


# on teste que l'accès à l'endpoint de santé nécessite une clé API valide.
def test_health_requires_api_key(secure_client):
    r = secure_client.get("/health")
    assert r.status_code == 401, r.text


def test_wrong_api_key_is_rejected(secure_client):
    r = secure_client.get("/health", headers={"X-API-Key": "wrong-key"})
    assert r.status_code == 401, r.text


# on teste que l'accès à l'endpoint de santé avec une clé API valide est autorisé.
def test_health_with_valid_api_key_is_ok(secure_client):
    api_key = os.getenv("API_KEY", "ci-test-key")
    r = secure_client.get("/health", headers={"X-API-Key": api_key})
    assert r.status_code == 200, r.text


# les endpoints de prédiction sont aussi protégés
def test_prediction_endpoints_require_api_key(secure_client):
    assert secure_client.get("/organizations/org-1/turnover-risks").status_code == 401
    assert secure_client.get("/organizations/org-1/early-warnings").status_code == 401
    assert secure_client.get("/organizations/org-1/employees/e-1/turnover-risk").status_code == 401


# la racine reste publique (redirection vers /docs)
def test_root_is_public(secure_client):
    r = secure_client.get("/", follow_redirects=False)
    assert r.status_code in (302, 307)


def test_missing_server_key_returns_500(secure_client, monkeypatch):
    monkeypatch.delenv("API_KEY", raising=False)
    r = secure_client.get("/health", headers={"X-API-Key": "ci-test-key"})
    assert r.status_code == 500, r.text
