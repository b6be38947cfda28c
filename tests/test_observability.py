"""Tests for observability metrics module."""

from fusion_portal.observability.metrics import MetricsStore


class TestFunctionMetrics:
    """Tests for backend function metrics."""

    def test_record_latency(self):
        store = MetricsStore()
        store.record_function_latency("client-verify-audio", 50.0)
        store.record_function_latency("client-verify-audio", 100.0)
        store.record_function_latency("client-verify-audio", 150.0)

        summary = store.get_summary()
        fn = summary["functions"]["client-verify-audio"]

        assert fn["call_count"] == 3
        assert fn["p50_ms"] == 100.0
        assert fn["max_ms"] == 150.0

    def test_record_function_error(self):
        store = MetricsStore()
        store.record_function_error("get-api-keys", "BACKEND_ERROR")
        store.record_function_error("get-api-keys", "BACKEND_ERROR")
        store.record_function_error("get-api-keys", "SESSION_EXPIRED")

        summary = store.get_summary()
        errors = summary["functions"]["get-api-keys"]["errors"]

        assert errors["BACKEND_ERROR"] == 2
        assert errors["SESSION_EXPIRED"] == 1
        assert summary["global_errors"]["BACKEND_ERROR"] == 2

    def test_latencies_are_bounded(self):
        store = MetricsStore()
        for i in range(1100):
            store.record_function_latency("get-environments", float(i))

        fn = store.get_summary()["functions"]["get-environments"]
        assert fn["call_count"] == 1100
        assert fn["max_ms"] == 1099.0

    def test_global_errors(self):
        store = MetricsStore()
        store.record_error("VALIDATION_ERROR")
        store.record_error("VALIDATION_ERROR")
        store.record_error("INTERNAL_ERROR")

        summary = store.get_summary()
        assert summary["global_errors"]["VALIDATION_ERROR"] == 2
        assert summary["global_errors"]["INTERNAL_ERROR"] == 1


class TestVerificationMetrics:
    """Tests for queue outcome counts."""

    def test_record_outcomes(self):
        store = MetricsStore()
        store.record_verification("authentic")
        store.record_verification("tampered")
        store.record_verification("authentic")
        store.record_verification("cancelled")

        assert store.get_summary()["verifications"] == {"authentic": 2, "tampered": 1, "cancelled": 1}

    def test_reset(self):
        store = MetricsStore()
        store.record_verification("error")
        store.record_function_latency("client-login", 10.0)

        store.reset()

        summary = store.get_summary()
        assert summary["verifications"] == {}
        assert summary["functions"] == {}
