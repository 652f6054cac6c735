"""
Tests for settings, errors and observability helpers.
"""

import pytest
import structlog
from pydantic import ValidationError

from voicebridge.config import Settings
from voicebridge.errors import AuthError, NetworkError, RequestTimeoutError, ServerError
from voicebridge.models.api_models import ApiResponse
from voicebridge.observability import DispatchMetrics, configure_logging


class TestSettings:
    """Test cases for Settings."""

    def test_defaults(self, monkeypatch):
        """Test the offline defaults."""
        monkeypatch.delenv("VOICEBRIDGE_API_BASE_URL", raising=False)

        config = Settings(_env_file=None)

        assert config.api_base_url is None
        assert config.is_offline_mode is True
        assert config.request_timeout == 30.0
        assert config.simulated_latency_scale == 1.0

    @pytest.mark.parametrize("value", ["", "   ", "\t"])
    def test_blank_base_url_means_offline(self, value):
        """Test that whitespace-only URLs are treated as unset."""
        config = Settings(api_base_url=value, _env_file=None)

        assert config.api_base_url is None
        assert config.is_offline_mode is True

    def test_base_url_is_normalized(self):
        """Test that surrounding whitespace and a trailing slash are dropped."""
        config = Settings(api_base_url="  https://api.example.com/ ", _env_file=None)

        assert config.api_base_url == "https://api.example.com"
        assert config.is_offline_mode is False

    def test_reads_prefixed_environment(self, monkeypatch):
        """Test loading from VOICEBRIDGE_* variables."""
        monkeypatch.setenv("VOICEBRIDGE_API_BASE_URL", "https://env.example.com")
        monkeypatch.setenv("VOICEBRIDGE_REQUEST_TIMEOUT", "12.5")

        config = Settings(_env_file=None)

        assert config.api_base_url == "https://env.example.com"
        assert config.request_timeout == 12.5

    @pytest.mark.parametrize("timeout", [0, -1])
    def test_invalid_request_timeout(self, timeout):
        """Test that the request timeout must be positive."""
        with pytest.raises(ValidationError, match="REQUEST_TIMEOUT"):
            Settings(request_timeout=timeout, _env_file=None)

    def test_negative_latency_scale(self):
        """Test that the latency multiplier cannot be negative."""
        with pytest.raises(ValidationError, match="SIMULATED_LATENCY_SCALE"):
            Settings(simulated_latency_scale=-0.5, _env_file=None)


class TestErrors:
    """Test cases for the error taxonomy."""

    def test_default_messages(self):
        """Test the messages shown to the caller."""
        assert NetworkError().message == "Network error occurred"
        assert RequestTimeoutError().message == "Request timed out"
        assert AuthError().message == "Authentication failed"
        assert ServerError().message == "An error occurred"

    def test_timeout_is_a_network_error(self):
        """Test the hierarchy."""
        assert isinstance(RequestTimeoutError(), NetworkError)

    def test_server_error_keeps_status(self):
        """Test that the status code is carried."""
        error = ServerError("Username already taken", status_code=400)

        assert error.message == "Username already taken"
        assert error.status_code == 400


class TestApiResponse:
    """Test cases for the response envelope."""

    def test_success(self):
        """Test a data response."""
        response = ApiResponse.success({"id": "1"})

        assert response.ok
        assert response.data == {"id": "1"}
        assert response.error is None

    def test_failure(self):
        """Test an error response."""
        response = ApiResponse.failure("Network error occurred")

        assert not response.ok
        assert response.data is None
        assert response.error == "Network error occurred"

    def test_empty_error_is_rejected(self):
        """Test that an error message must carry text."""
        with pytest.raises(ValidationError):
            ApiResponse(error="  ")


class TestDispatchMetrics:
    """Test cases for DispatchMetrics."""

    def test_empty(self):
        """Test metrics before any dispatch."""
        metrics = DispatchMetrics().get_metrics()

        assert metrics["total_requests"] == 0
        assert metrics["error_rate"] == 0
        assert metrics["avg_processing_time_ms"] == 0

    def test_record(self):
        """Test counting successes and failures."""
        metrics = DispatchMetrics()
        metrics.record("login", True, 0.2)
        metrics.record("login", False, 0.4)
        metrics.record("list_history", True, 0.3)

        result = metrics.get_metrics({"mode": "offline"})

        assert result["total_requests"] == 3
        assert result["error_count"] == 1
        assert result["avg_processing_time_ms"] == 300.0
        assert result["operations"] == {"login": 2, "list_history": 1}
        assert result["mode"] == "offline"


class TestConfigureLogging:
    """Test cases for configure_logging."""

    def test_configures_structlog(self):
        """Test that structlog is configured and bound context is rendered."""
        try:
            configure_logging("DEBUG", json_output=False)

            assert structlog.is_configured()
            processors = structlog.get_config()["processors"]
            assert structlog.contextvars.merge_contextvars in processors
            assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        finally:
            structlog.reset_defaults()
