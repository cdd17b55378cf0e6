from tests.conftest import BLOUSE, TSHIRT

NEWBORN_SET = "65a1f0c2e4b0a1a2b3c4d510"


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Fashion Storefront running"}


def test_status_endpoint(client):
    body = client.get("/test").json()
    assert body["data_source"] == "memory"
    assert body["session"] == "❌ Signed out"


def test_view_all_defaults(client):
    body = client.get("/view-all").json()
    assert body["item_count"] == 10
    assert body["layout"] == "3x3"
    assert body["columns"] == 3
    assert body["filters"]["sort"] == "newest"
    assert body["products"][0]["id"] == NEWBORN_SET


def test_view_all_price_and_sort(client):
    body = client.get("/view-all", params={"min_price": 30, "max_price": 90, "sort": "price-asc"}).json()
    prices = [p["price"] for p in body["products"]]
    assert prices == sorted(prices)
    assert all(30 <= p <= 90 for p in prices)


def test_man_page_category_group(client):
    body = client.get("/man", params={"category": "clothing"}).json()
    assert body["item_count"] == 2
    assert {p["category"] for p in body["products"]} == {"MAN"}
    assert body["columns"] == 5


def test_layout_outside_page_family_is_rejected(client):
    assert client.get("/man", params={"layout": "6x6"}).status_code == 422
    assert client.get("/kids", params={"layout": "3x3"}).status_code == 422


def test_kids_page_uses_dense_grid(client):
    body = client.get("/kids").json()
    assert body["columns"] == 10
    assert body["density"] == "thumbnail"
    assert body["item_count"] == 6
    assert body["filters"]["price_range"] == [0, 500]

    body = client.get("/kids", params={"category": "girl", "layout": "6x6"}).json()
    assert [p["name"] for p in body["products"]] == ["Girl's Party Dress"]
    assert body["density"] == "compact"


def test_woman_page_scope(client):
    body = client.get("/woman").json()
    assert body["item_count"] == 5
    assert not {p["category"] for p in body["products"]} & {"MAN", "girl", "boy", "newborn"}


def test_unknown_product_is_404(client):
    response = client.get("/products/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Product not found"


def test_cart_flow(client):
    body = client.post("/cart", json={"productId": TSHIRT, "quantity": 2}).json()
    assert body["count"] == 2
    assert body["total"] == 59.98

    body = client.put("/cart", json={"productId": TSHIRT, "quantity": 0}).json()
    assert body["count"] == 1

    line_id = body["items"][0]["id"]
    body = client.post("/cart", json={"productId": BLOUSE}).json()
    assert body["count"] == 2

    body = client.delete(f"/cart/{line_id}").json()
    assert [i["product"]["id"] for i in body["items"]] == [BLOUSE]

    body = client.delete("/cart/clear").json()
    assert body["items"] == []
    assert body["state"]["clearing_cart"] is False


def test_cart_failure_reports_message(client):
    response = client.post("/cart", json={"productId": "missing"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Product not found"


def test_wishlist_toggle_feeds_favorites_page(client):
    assert client.post(f"/wishlist/{BLOUSE}/toggle").json() == {"productId": BLOUSE, "isFavorite": True}
    assert client.get(f"/products/{BLOUSE}").json()["isFavorite"] is True

    body = client.get("/favorites").json()
    assert [p["id"] for p in body["products"]] == [BLOUSE]

    assert client.post(f"/wishlist/{BLOUSE}/toggle").json()["isFavorite"] is False
    assert client.get("/favorites").json()["item_count"] == 0


def test_login_with_bad_email_is_rejected_locally(client):
    response = client.post("/auth/login", json={"email": "nope", "password": "secret1"})
    assert response.status_code == 400
    assert response.json()["field_errors"] == {"email": "Invalid email format"}


def test_profile_tabs_for_regular_user(client):
    body = client.get("/profile").json()
    assert body["user"]["firstName"] == "John"
    assert [t["id"] for t in body["tabs"]] == ["profile", "orders", "settings"]
    assert client.get("/profile/users").status_code == 403


def test_profile_update_validation(client):
    response = client.put("/profile", json={"firstName": "J0hn", "lastName": "Doe", "email": "john@example.com"})
    assert response.status_code == 422
    assert response.json()["field_errors"] == {"firstName": "First name can only contain letters"}


def test_orders(client):
    orders = client.get("/orders").json()
    assert len(orders) == 1
    assert orders[0]["status"] == "delivered"

    response = client.post("/orders", json={
        "products": [{"productId": TSHIRT, "quantity": 1, "price": 29.99}],
        "shippingAddress": {
            "street": "1 Main St", "city": "Austin", "state": "TX", "postalCode": "73301", "country": "USA",
        },
    })
    assert response.status_code == 200
    assert len(client.get("/orders").json()) == 2
