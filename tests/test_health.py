def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["service"] == "shopcrm"


def test_liveness(client):
    assert client.get("/health/live").json() == {"status": "alive"}


def test_readiness_reports_database(client):
    resp = client.get("/health/ready")
    assert resp.json()["checks"]["database:connectivity"]["status"] == "pass"


def test_responses_carry_request_id(client):
    resp = client.get("/", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_info(client):
    assert client.get("/info").json()["endpoints"]["ready"] == "/health/ready"


def test_metrics_counts_readiness_runs(client):
    client.get("/health/ready")
    body = client.get("/metrics").json()
    assert body["readiness_checks"] >= 1
    assert body["uptime_seconds"] >= 0


def test_startup_without_alembic_table_still_started(client):
    body = client.get("/health/startup").json()
    assert body["status"] == "started"
    assert body["checks"]["database:migrations"]["status"] == "warn"


def test_overall_status_prefers_failures():
    from shopcrm.core.health import HealthStatus, overall

    checks = {"a": {"status": "warn"}, "b": {"status": "fail"}, "c": {"status": "pass"}}
    assert overall(checks) is HealthStatus.FAIL
    assert overall({"a": {"status": "warn"}}) is HealthStatus.WARN
