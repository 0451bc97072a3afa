# tests/test_catalog_api.py
import os
import time
from unittest import mock

from app.routes import catalog as catalog_routes


class TestCatalogRead:

    def test_get_catalog_document(self, test_client, catalog_documents):
        """Test that each topic returns its JSON document unchanged."""
        for topic, document in catalog_documents.items():
            response = test_client.get(f"/api/{topic}")
            assert response.status_code == 200
            assert response.json() == document

    def test_unknown_topic(self, test_client, catalog_documents):
        """Test that a topic outside the catalog is a 404."""
        response = test_client.get("/api/pricing")
        assert response.status_code == 404

        data = response.json()
        assert data["success"] is False
        assert "tours" in data["available"]

    def test_missing_document(self, test_client, catalog_documents):
        """Test that a known topic without a file is a 404."""
        response = test_client.get("/api/gallery")
        assert response.status_code == 404

    def test_unreadable_document(self, test_client, test_settings):
        """Test that a document that is not JSON is reported as a server error."""
        with open(os.path.join(test_settings.CATALOG_DIR, "team.json"), "w", encoding="utf-8") as f:
            f.write("[{")

        response = test_client.get("/api/team")
        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_shipped_catalog_covers_every_topic(self):
        """Test that the packaged catalog has a document for every topic."""
        catalog_dir = os.path.join(os.path.dirname(catalog_routes.__file__), "..", "data", "catalog")
        for topic in catalog_routes.CATALOG_TOPICS:
            assert catalog_routes.read_catalog(topic, catalog_dir)


class TestCatalogCache:

    def test_repeated_reads_hit_the_cache(self, test_client, catalog_documents):
        """Test that an unchanged file is served from the cache."""
        test_client.get("/api/tours")
        test_client.get("/api/tours")

        stats = test_client.get("/api/catalog/cache-stats").json()
        assert stats["miss_count"] == 1
        assert stats["hit_count"] == 1
        assert stats["hit_rate_percentage"] == 50

    def test_cache_stats_are_read_under_the_lock(self, test_client, catalog_documents):
        """Test that the statistics are a consistent snapshot of the cache."""
        test_client.get("/api/tours")

        with mock.patch.object(catalog_routes._cache, "_lock") as lock:
            stats = catalog_routes.get_cache_stats()

        lock.__enter__.assert_called_once()
        assert stats["documents"] == 1
        assert stats["miss_count"] == 1

    def test_changed_file_is_reloaded(self, test_client, test_settings, catalog_documents):
        """Test that a newer modification time invalidates the cached document."""
        path = os.path.join(test_settings.CATALOG_DIR, "tours.json")
        test_client.get("/api/tours")

        with open(path, "w", encoding="utf-8") as f:
            f.write('[{"id": 2, "title": "Khiva Desert Escape"}]')
        later = time.time() + 10
        os.utime(path, (later, later))

        response = test_client.get("/api/tours")
        assert response.json() == [{"id": 2, "title": "Khiva Desert Escape"}]


def test_visa_question(test_client):
    """Test that a visa question is acknowledged."""
    response = test_client.post("/api/visa-question", json={
        "fromCountry": "Germany",
        "toCountry": "Uzbekistan",
        "nationality": "German",
        "purpose": "tourism",
        "duration": 14
    })

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Visa question received. We'll process it soon."
    }


def test_root(test_client):
    response = test_client.get("/")
    assert response.status_code == 200
    assert response.json()["documentation"] == "/docs"
