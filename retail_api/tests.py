"""
Tests de la aplicación: helper de URLs, endpoints raíz, middleware y
traducción de errores no controlados
"""

import pytest
from fastapi.testclient import TestClient

from retail_api.core.api_config import api_url, client_protocol, get_api_base_url
from retail_api.core.config import settings
from retail_api.main import app
from retail_api.modules.transactions.service import TransactionService


class TestApiUrl:
    """Tests para get_api_base_url / api_url"""

    def test_relative_for_http_clients(self):
        assert get_api_base_url("https:") == ""
        assert api_url("/transactions", "http") == "/transactions"
        assert api_url("transactions") == "/transactions"

    def test_absolute_for_file_clients(self, monkeypatch):
        monkeypatch.setattr(settings, "PUBLIC_API_URL", "https://pos.example.com/")

        assert get_api_base_url("file:") == "https://pos.example.com"
        assert api_url("/transactions", "file:") == "https://pos.example.com/transactions"
        assert api_url("distributions", "FILE") == "https://pos.example.com/distributions"

    def test_client_protocol_comes_from_origin(self):
        assert client_protocol("file://", "http") == "file"
        assert client_protocol("https://pos.example.com", "http") == "https"
        assert client_protocol(None, "http") == "http"
        assert client_protocol("null", "https") == "https"


class TestAppEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "environment": "test"}

    def test_root_lists_relative_endpoints(self, client):
        body = client.get("/").json()
        assert body["endpoints"] == {"transactions": "/transactions", "distributions": "/distributions"}

    def test_root_lists_absolute_endpoints_for_file_clients(self, client, monkeypatch):
        monkeypatch.setattr(settings, "PUBLIC_API_URL", "https://pos.example.com/")

        body = client.get("/", headers={"Origin": "file://"}).json()

        assert body["endpoints"] == {
            "transactions": "https://pos.example.com/transactions",
            "distributions": "https://pos.example.com/distributions",
        }

    def test_security_and_timing_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "X-Response-Time" in response.headers


class TestUnhandledErrors:

    def test_unexpected_error_is_generic_500(self, monkeypatch):
        def boom(self, **kwargs):
            raise RuntimeError("secret internals")

        monkeypatch.setattr(TransactionService, "get_transactions", boom)

        response = TestClient(app, raise_server_exceptions=False).get("/transactions")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}
