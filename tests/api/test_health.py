import main
from ethshot.core.config import Settings


class TestHealthAPI:
    """Test cases for the /health endpoint"""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestDocsAuth:
    """API docs are behind HTTP basic auth and hidden when no password is set"""

    def test_docs_hidden_without_password(self, client, monkeypatch):
        monkeypatch.setattr(main, "settings", Settings(DOC_PASSWORD=None))

        response = client.get("/docs", auth=("admin", "anything"))

        assert response.status_code == 404

    def test_docs_wrong_password(self, client, monkeypatch):
        monkeypatch.setattr(main, "settings", Settings(DOC_PASSWORD="s3cret"))

        response = client.get("/openapi.json", auth=("admin", "wrong"))

        assert response.status_code == 401

    def test_openapi_with_password(self, client, monkeypatch):
        monkeypatch.setattr(main, "settings", Settings(DOC_PASSWORD="s3cret"))

        response = client.get("/openapi.json", auth=("admin", "s3cret"))

        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/auth" in paths
        assert "/api/profile" in paths
