import importlib
from typing import List, Tuple, get_type_hints

from fastapi.routing import APIRoute

from shopcrm.domain.models import Order


def test_application_imports_with_all_routes():
    main = importlib.import_module("shopcrm.main")
    paths = {route.path for route in main.app.routes if isinstance(route, APIRoute)}
    for path in (
        "/auth/token",
        "/customers/",
        "/customers/{customer_id}/tags",
        "/customers/{customer_id}/courses/{enrollment_id}",
        "/tags/",
        "/courses/",
        "/products/",
        "/cart/",
        "/orders/",
        "/orders/{order_id}/status",
        "/email-templates/",
        "/emails/bulk-send",
        "/emails/preview-recipients",
        "/admins/",
        "/audit-logs/",
        "/health",
    ):
        assert path in paths, path


def test_service_annotations_resolve():
    from shopcrm.application.order_service import OrderService

    hints = get_type_hints(OrderService.list)
    assert hints["return"] == Tuple[List[Order], int]


def test_root_and_info(client):
    assert client.get("/").json()["service"] == "shopcrm"
    assert client.get("/info").json()["endpoints"]["health"] == "/health"
