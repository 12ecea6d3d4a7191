"""
Unit tests for the Comment Control service API.
"""

import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient

from shared.errors import ConfigurationError
from service_comment_control.app.main import CommentControlService, create_app
from service_comment_control.app.rules.defaults import DefaultRuleProvider
from service_comment_control.app.rules.models import MatchingMode
from service_comment_control.app.settings.store import InMemorySettingsStore


def iso_days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


class TestCommentControlService:
    """Test cases for CommentControlService."""

    @pytest.fixture
    def service(self):
        """Create CommentControlService with an in-memory store."""
        return CommentControlService(store=InMemorySettingsStore())

    @pytest.fixture
    def client(self, service):
        """Create test client."""
        return TestClient(service.app)

    @pytest.fixture
    def old_post_request(self):
        """Check request for a post older than six months."""
        return {
            "content": {"type": "post", "created_at": iso_days_ago(240), "comment_count": 0},
            "actor": {"is_authenticated": False, "roles": []},
        }

    def test_root_endpoint(self, client):
        """Test root endpoint."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "comment_control"
        assert data["matching_mode"] == "strict"

    def test_health_check(self, client):
        """Test health check reports the settings store."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["dependencies"] == {"settings_store": "ok"}

    def test_check_old_post_closed_by_default_rules(self, client, old_post_request):
        """Test the default age rule closes an old post for visitors."""
        response = client.post("/comments/check", json=old_post_request)

        assert response.status_code == 200
        data = response.json()
        assert data["open"] is False
        assert data["phase"] == "post"
        assert data["rule_index"] == 0

    def test_check_administrator_open_on_old_post(self, client, old_post_request):
        """Test the default administrator rule keeps comments open."""
        old_post_request["actor"] = {"is_authenticated": True, "roles": ["administrator"]}

        data = client.post("/comments/check", json=old_post_request).json()

        assert data["open"] is True
        assert data["phase"] == "role"

    def test_check_unruled_type_is_open(self, client):
        request = {"content": {"type": "product", "created_at": iso_days_ago(3000)}}

        data = client.post("/comments/check", json=request).json()

        assert data["open"] is True
        assert data["phase"] == "default"

    def test_check_open_by_default_false(self, client):
        request = {"content": {"type": "product", "created_at": iso_days_ago(1)}, "open_by_default": False}

        assert client.post("/comments/check", json=request).json()["open"] is False

    def test_check_rejects_negative_comment_count(self, client):
        request = {"content": {"type": "post", "created_at": iso_days_ago(1), "comment_count": -1}}

        assert client.post("/comments/check", json=request).status_code == 422

    def test_get_rules_defaults(self, client):
        data = client.get("/comments/rules").json()

        assert data["customized"] is False
        assert len(data["role_rules"]) == 2
        assert data["post_rules"][0]["unit"] == "month"

    def test_update_rules(self, client, old_post_request):
        """Test saved rules change subsequent checks."""
        response = client.put("/comments/rules", json={"post_rules": []})

        assert response.status_code == 200
        assert response.json()["customized"] is True
        assert client.post("/comments/check", json=old_post_request).json()["open"] is True

    def test_update_rules_rejects_invalid_entry(self, client):
        """Test malformed rules are rejected with a configuration error."""
        response = client.put("/comments/rules", json={
            "post_rules": [{"post_type": "post", "type": "age", "time": 2, "unit": "fortnight"}]
        })

        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "CONFIGURATION_ERROR"
        assert data["details"]["field"] == "unit"
        assert data["details"]["index"] == 0
        assert client.get("/comments/rules").json()["customized"] is False

    def test_update_rules_requires_a_list(self, client):
        assert client.put("/comments/rules", json={}).status_code == 400

    def test_reset_rules(self, client):
        client.put("/comments/rules", json={"role_rules": []})

        response = client.delete("/comments/rules")

        assert response.json() == {"success": True, "removed": True}
        assert len(client.get("/comments/rules").json()["role_rules"]) == 2

    def test_default_rules_endpoint_applies_filters(self):
        defaults = DefaultRuleProvider()

        def no_roles(document):
            document["role_rules"] = []
            return document

        defaults.register_filter(no_roles)
        client = TestClient(CommentControlService(store=InMemorySettingsStore(), defaults=defaults).app)

        data = client.get("/comments/rules/defaults").json()

        assert data["role_rules"] == []
        assert len(data["post_rules"]) == 1

    def test_metrics_endpoint(self, client, old_post_request):
        client.post("/comments/check", json=old_post_request)

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "comment_checks_total" in response.text

    def test_legacy_mode_from_config(self):
        """Test matching mode is taken from configuration."""
        service = CommentControlService(store=InMemorySettingsStore(), matching_mode="legacy")

        assert service.rule_engine.mode == MatchingMode.LEGACY

    def test_unknown_matching_mode(self):
        with pytest.raises(ConfigurationError):
            CommentControlService(store=InMemorySettingsStore(), matching_mode="loose")

    def test_create_app(self):
        app = create_app()

        assert app.title == "Comment Control Service"
