def test_add_merges_quantities(client, customer_headers, make_product):
    product = make_product(stock=5)

    first = client.post("/cart/", json={"product_id": product.id, "quantity": 2}, headers=customer_headers)
    second = client.post("/cart/", json={"product_id": product.id, "quantity": 1}, headers=customer_headers)

    assert first.status_code == 201
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["quantity"] == 3


def test_add_over_stock_is_rejected(client, customer_headers, make_product):
    product = make_product(stock=2)
    client.post("/cart/", json={"product_id": product.id, "quantity": 2}, headers=customer_headers)

    resp = client.post("/cart/", json={"product_id": product.id, "quantity": 1}, headers=customer_headers)

    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


def test_inactive_or_unknown_product_is_404(client, customer_headers, make_product):
    hidden = make_product(is_active=False)
    assert client.post("/cart/", json={"product_id": hidden.id, "quantity": 1}, headers=customer_headers).status_code == 404
    assert client.post("/cart/", json={"product_id": 999, "quantity": 1}, headers=customer_headers).status_code == 404


def test_zero_quantity_is_422(client, customer_headers, make_product):
    product = make_product()
    assert client.post("/cart/", json={"product_id": product.id, "quantity": 0}, headers=customer_headers).status_code == 422


def test_cart_summary_includes_shipping(client, customer, customer_headers, make_product, make_rate, fill_cart):
    make_rate("500", threshold="5000")
    fill_cart(customer, make_product("Widget", price="1000", stock=5), 2)
    fill_cart(customer, make_product("Hidden", price="700", stock=5, is_active=False), 1)

    body = client.get("/cart/", headers=customer_headers).json()

    assert [item["product"]["name"] for item in body["items"]] == ["Widget"]
    assert body["item_count"] == 2
    assert body["subtotal_amount"] == 2000
    assert body["shipping"]["shipping_fee"] == 500
    assert body["shipping"]["total_amount"] == 2500
    assert body["shipping"]["free_shipping_applied"] is False


def test_update_and_remove_items(client, customer, customer_headers, make_product, fill_cart):
    item = fill_cart(customer, make_product(stock=5), 1)

    resp = client.put(f"/cart/{item.id}", json={"quantity": 4}, headers=customer_headers)
    assert resp.json()["quantity"] == 4
    assert client.put(f"/cart/{item.id}", json={"quantity": 6}, headers=customer_headers).status_code == 400

    assert client.delete(f"/cart/{item.id}", headers=customer_headers).status_code == 204
    assert client.get("/cart/", headers=customer_headers).json()["items"] == []


def test_other_customers_items_are_hidden(client, customer, make_customer, make_product, fill_cart, auth):
    item = fill_cart(customer, make_product(stock=5), 1)
    other = auth(make_customer("Other Person").id)

    assert client.put(f"/cart/{item.id}", json={"quantity": 2}, headers=other).status_code == 404
    assert client.delete(f"/cart/{item.id}", headers=other).status_code == 404


def test_cart_is_customer_only(client, owner_headers):
    assert client.get("/cart/", headers=owner_headers).status_code == 403
