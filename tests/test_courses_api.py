from shopcrm.domain.models import Enrollment


def _course(client, headers, **overrides):
    payload = {"name": "Python Basics", "price": "30000", "duration": "3 months"}
    payload.update(overrides)
    return client.post("/courses/", json=payload, headers=headers)


def test_course_crud(client, owner_headers):
    resp = _course(client, owner_headers)
    assert resp.status_code == 201
    course = resp.json()
    assert course["price"] == 30000
    assert course["is_active"] is True
    assert course["enrollment_count"] == 0

    resp = client.put(f"/courses/{course['id']}", json={"is_active": False}, headers=owner_headers)
    assert resp.json()["is_active"] is False
    assert resp.json()["name"] == "Python Basics"

    assert len(client.get("/courses/", headers=owner_headers).json()) == 1
    assert client.get("/courses/?include_inactive=false", headers=owner_headers).json() == []

    assert client.delete(f"/courses/{course['id']}", headers=owner_headers).status_code == 204
    assert client.get(f"/courses/{course['id']}", headers=owner_headers).status_code == 404


def test_negative_price_is_rejected(client, owner_headers):
    assert _course(client, owner_headers, price="-1").status_code == 422


def test_operator_can_view_but_not_create_courses(client, operator_headers):
    assert client.get("/courses/", headers=operator_headers).status_code == 200
    assert _course(client, operator_headers).status_code == 403


def test_enroll_and_unenroll(client, db, customer, owner_headers, operator_headers):
    course = _course(client, owner_headers).json()

    resp = client.post(f"/customers/{customer.id}/courses", json={"course_id": course["id"]}, headers=operator_headers)
    assert resp.status_code == 201
    enrollment = resp.json()
    assert enrollment["status"] == "ENROLLED"

    again = client.post(f"/customers/{customer.id}/courses", json={"course_id": course["id"]}, headers=operator_headers)
    assert again.status_code == 400

    # a course with enrollments cannot be deleted
    assert client.delete(f"/courses/{course['id']}", headers=owner_headers).status_code == 400
    assert client.get(f"/courses/{course['id']}", headers=owner_headers).json()["enrollment_count"] == 1

    listed = client.get(f"/customers/{customer.id}/courses", headers=operator_headers).json()
    assert [item["id"] for item in listed] == [enrollment["id"]]

    url = f"/customers/{customer.id}/courses/{enrollment['id']}"
    assert client.delete(url, headers=operator_headers).status_code == 204
    assert client.delete(url, headers=operator_headers).status_code == 404
    assert db.query(Enrollment).count() == 0


def test_cannot_enroll_in_inactive_course(client, customer, owner_headers):
    course = _course(client, owner_headers, is_active=False).json()
    resp = client.post(f"/customers/{customer.id}/courses", json={"course_id": course["id"]}, headers=owner_headers)
    assert resp.status_code == 400


def test_enrollment_belongs_to_the_customer_in_the_path(client, make_customer, owner_headers):
    first = make_customer("First Person")
    second = make_customer("Second Person")
    course = _course(client, owner_headers).json()
    enrollment = client.post(f"/customers/{first.id}/courses", json={"course_id": course["id"]},
                             headers=owner_headers).json()
    assert client.delete(f"/customers/{second.id}/courses/{enrollment['id']}", headers=owner_headers).status_code == 404
