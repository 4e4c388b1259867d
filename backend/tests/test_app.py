# tests for the health check and app configuration
# basic app-level tests

import pytest
from unittest.mock import patch, AsyncMock

from protagame.services.db import Database


class TestHealthCheck:
    """app health and config"""

    async def test_health_check(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["service"] == "protagame-api"

    async def test_openapi_schema(self, client):
        resp = await client.get("/openapi.json")
        assert resp.status_code == 200
        schema = resp.json()
        assert schema["info"]["title"] == "ProtagaMe API"
        assert "/api/journal" in schema["paths"]

    async def test_docs_available(self, client):
        resp = await client.get("/docs")
        assert resp.status_code == 200

    async def test_health_reports_storage_backend(self, client):
        resp = await client.get("/health")
        assert resp.json()["storage"] in ("mongo", "file")


class TestDatabase:
    """motor connection manager"""

    def test_collection_requires_connection(self):
        with pytest.raises(RuntimeError):
            Database().journal_entries

    async def test_connect_once_and_close(self):
        with patch("protagame.services.db.AsyncIOMotorClient") as mock_client_cls:
            mock_client_cls.return_value.admin.command = AsyncMock(return_value={"ok": 1})
            database = Database(uri="mongodb://test", name="protagame_test")

            await database.connect()
            await database.connect()
            assert database.is_connected
            mock_client_cls.assert_called_once_with("mongodb://test", maxIdleTimeMS=5000)
            mock_client_cls.return_value.__getitem__.assert_called_with("protagame_test")

            await database.close()
            assert not database.is_connected
            mock_client_cls.return_value.close.assert_called_once()
