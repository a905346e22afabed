from datetime import datetime, timedelta
from decimal import Decimal

from starlette.requests import Request

from shopcrm.domain.models import AuditLog, utcnow
from shopcrm.infrastructure.audit import Actor, AuditAction, AuditLogWriter, client_ip


def make_request(headers=None, client=("10.0.0.9", 1234)):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw, "client": client})


def test_client_ip_prefers_forwarded_for():
    assert client_ip(make_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1"})) == "203.0.113.5"
    assert client_ip(make_request({"X-Real-IP": "198.51.100.7"})) == "198.51.100.7"
    assert client_ip(make_request()) == "10.0.0.9"
    assert client_ip(None) == "unknown"


def test_record_stores_json_safe_data(db, session_factory):
    writer = AuditLogWriter(session_factory)
    writer.record(
        Actor(user_id=3),
        AuditAction.UPDATE,
        entity="product",
        entity_id=12,
        old_data={"price": Decimal("10.50")},
        new_data={"price": Decimal("12.00"), "when": datetime(2026, 1, 2, 3, 4, 5)},
        request=make_request({"User-Agent": "pytest"}),
    )

    log = db.query(AuditLog).one()
    assert log.action == "UPDATE"
    assert log.entity_id == "12"
    assert log.old_data == {"price": "10.50"}
    assert log.new_data["when"] == "2026-01-02 03:04:05"
    assert log.user_agent == "pytest"
    assert log.ip_address == "10.0.0.9"


def test_record_swallows_failures(caplog):
    def broken_factory():
        raise RuntimeError("no database")

    AuditLogWriter(broken_factory).record(Actor(user_id=1), AuditAction.DELETE, entity="product", entity_id=1)

    assert "Failed to write audit log" in caplog.text


def test_audit_log_listing_filters(client, db, owner_headers, operator_headers):
    now = utcnow()
    db.add_all([
        AuditLog(user_id=1, action="CREATE", entity="product", entity_id="1", created_at=now),
        AuditLog(user_id=2, action="DELETE", entity="product", entity_id="1", created_at=now),
        AuditLog(user_id=1, action="CREATE", entity="customer", entity_id="5", created_at=now - timedelta(days=10)),
    ])
    db.commit()

    assert client.get("/audit-logs/", headers=owner_headers).json()["total"] == 3
    assert client.get("/audit-logs/?action=create", headers=owner_headers).json()["total"] == 2
    assert client.get("/audit-logs/?user_id=2", headers=owner_headers).json()["total"] == 1
    assert client.get("/audit-logs/?entity=customer", headers=owner_headers).json()["total"] == 1
    start = (now - timedelta(days=1)).date().isoformat()
    assert client.get(f"/audit-logs/?start={start}", headers=owner_headers).json()["total"] == 2

    assert client.get("/audit-logs/", headers=operator_headers).status_code == 403
