from sign_transcriber import health
from sign_transcriber.config import SignTranscriberConfig
from sign_transcriber.health import HealthCheckResult, has_critical_failures


class TestHealthChecks:
    def test_jpeg_encoder_check_passes(self):
        result = health._check_jpeg_encoder(SignTranscriberConfig())
        assert result.passed
        assert "quality=80" in result.detail

    def test_missing_api_key_fails(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        result = health._check_api_keys(SignTranscriberConfig(vision_engine="openai"))
        assert not result.passed
        assert "OPENAI_API_KEY" in result.detail

    def test_present_api_key_passes(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        result = health._check_api_keys(SignTranscriberConfig(vision_engine="anthropic"))
        assert result.passed

    def test_camera_failure_is_not_critical(self):
        results = [
            HealthCheckResult(name="camera", passed=False, detail="no camera"),
            HealthCheckResult(name="jpeg_encoder", passed=True, detail="ok"),
            HealthCheckResult(name="api_keys", passed=True, detail="ok"),
        ]
        assert not has_critical_failures(results)

    def test_api_key_failure_is_critical(self):
        results = [HealthCheckResult(name="api_keys", passed=False, detail="missing")]
        assert has_critical_failures(results)
