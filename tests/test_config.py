"""
Tests for configuration module.
"""

import pytest


class TestFeatureFlags:
    """Feature flags tests."""

    def test_default_features_enabled(self):
        """Test all features are enabled by default."""
        from fusion_portal.config import FeatureFlags

        flags = FeatureFlags()
        assert flags.verify is True
        assert flags.billing is True
        assert flags.api_keys is True
        assert flags.activity is True
        assert flags.account is True

    def test_to_dict(self):
        """Test feature flags to dict."""
        from fusion_portal.config import FeatureFlags

        result = FeatureFlags().to_dict()

        assert isinstance(result, dict)
        assert len(result) == 5
        assert result["verify"] is True

    def test_env_override(self, monkeypatch):
        """Test FEATURE_* environment variables disable modules."""
        from fusion_portal.config import FeatureFlags

        monkeypatch.setenv("FEATURE_BILLING", "false")
        assert FeatureFlags().billing is False


class TestSettings:
    """Settings defaults tests."""

    def test_backend_defaults(self):
        from fusion_portal.config import BackendSettings

        backend = BackendSettings()
        assert backend.functions_path == "/.netlify/functions"
        assert backend.verify_timeout_seconds > backend.timeout_seconds

    def test_session_defaults(self):
        from fusion_portal.config import SessionSettings

        session = SessionSettings()
        assert session.key_prefix == "fusion_"
        assert session.ttl_hours == 24
        assert session.remember_ttl_hours == 720

    def test_queue_defaults(self):
        from fusion_portal.config import QueueSettings

        queue = QueueSettings()
        assert queue.max_concurrency == 1
        assert queue.max_file_size_bytes == 100 * 1024 * 1024
        assert ".flac" in queue.allowed_extensions

    def test_queue_concurrency_is_bounded(self):
        from pydantic import ValidationError

        from fusion_portal.config import QueueSettings

        with pytest.raises(ValidationError):
            QueueSettings(max_concurrency=0)
        with pytest.raises(ValidationError):
            QueueSettings(max_concurrency=5)

    def test_is_production(self, monkeypatch):
        from fusion_portal.config import Settings

        monkeypatch.setenv("APP_ENV", "production")
        assert Settings().is_production is True


class TestExceptions:
    """Exception tests."""

    def test_unauthorized_exception(self):
        from fusion_portal.exceptions import UnauthorizedException

        exc = UnauthorizedException()
        assert exc.status_code == 401
        assert exc.code == "UNAUTHORIZED"
        assert exc.details["redirect_to"] == "/client/login"

    def test_not_found_exception(self):
        from fusion_portal.exceptions import NotFoundException

        exc = NotFoundException("queued file", "123")
        assert exc.status_code == 404
        assert exc.code == "NOT_FOUND"
        assert "queued file" in exc.message

    def test_feature_disabled_exception(self):
        from fusion_portal.exceptions import FeatureDisabledException

        exc = FeatureDisabledException("billing")
        assert exc.status_code == 503
        assert exc.code == "FEATURE_DISABLED"
        assert "billing" in exc.message

    def test_conflict_exception(self):
        from fusion_portal.exceptions import ConflictException

        exc = ConflictException(
            "Cannot move a.mp3",
            current_state="completed",
            target_state="queued",
        )
        assert exc.status_code == 409
        assert exc.code == "CONFLICT"
        assert exc.details["current_state"] == "completed"

    def test_forbidden_exception(self):
        from fusion_portal.exceptions import ForbiddenException

        exc = ForbiddenException(required_role="owner")
        assert exc.status_code == 403
        assert exc.details == {"required_role": "owner"}

    @pytest.mark.parametrize("upstream,expected", [(400, 400), (402, 402), (500, 502), (503, 502)])
    def test_backend_exception_status(self, upstream, expected):
        from fusion_portal.exceptions import BackendException

        exc = BackendException("client-login", "nope", upstream_status=upstream)
        assert exc.status_code == expected
        assert exc.details["upstream_status"] == upstream
