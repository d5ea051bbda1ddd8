"""API tests for the /api/orders endpoints."""

import pytest

from tests.conftest import MISSING_ID


class TestCreateOrder:
    def test_create_order_snapshots_pizza(self, create_pizza, create_order):
        pizza = create_pizza(name="Salami", image="salami.png", price=6.99)

        order = create_order([pizza["id"]], name="customer", address="address")

        assert order["customer"] == {"name": "customer", "address": "address"}
        assert order["pizzas"] == [
            {"pizza": {"name": "Salami", "image": "salami.png", "price": 6.99}, "status": "ordered"}
        ]
        assert order["id"]
        assert order["created_at"]

    def test_unknown_pizza_ids_are_dropped(self, create_pizza, create_order):
        pizza = create_pizza()

        order = create_order([MISSING_ID, pizza["id"]])

        assert len(order["pizzas"]) == 1
        assert order["pizzas"][0]["pizza"]["name"] == pizza["name"]

    def test_duplicate_pizza_ids_make_separate_line_items(self, create_pizza, create_order):
        pizza = create_pizza()

        order = create_order([pizza["id"], pizza["id"]])

        assert len(order["pizzas"]) == 2

    def test_no_resolvable_pizza_is_404_and_nothing_persisted(self, auth_client, store):
        response = auth_client.post(
            "/api/orders",
            json={"customer": {"name": "a", "address": "b"}, "pizzas": [MISSING_ID]},
        )

        assert response.status_code == 404
        assert response.json() == {"statusCode": 404, "message": "Pizzas not found"}
        assert store.collections.get("order", {}) == {}

    def test_first_declared_rule_is_reported(self, auth_client):
        response = auth_client.post("/api/orders", json={"customer": {"address": "address"}})

        assert response.status_code == 422
        message = response.json()["message"]
        assert message == "Invalid value: [body / customer.name] (undefined)"
        assert "pizzas" not in message

    def test_empty_pizza_list_is_rejected(self, auth_client):
        response = auth_client.post(
            "/api/orders", json={"customer": {"name": "a", "address": "b"}, "pizzas": []}
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Invalid value: [body / pizzas] ()"

    def test_malformed_pizza_id_is_rejected(self, auth_client):
        response = auth_client.post(
            "/api/orders", json={"customer": {"name": "a", "address": "b"}, "pizzas": ["nope"]}
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Invalid ObjectId: [body / pizzas] (nope)"

    def test_requires_session(self, client):
        response = client.post(
            "/api/orders", json={"customer": {"name": "a", "address": "b"}, "pizzas": [MISSING_ID]}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Unauthorized"


class TestReadOrders:
    def test_empty_collection_is_404(self, auth_client):
        response = auth_client.get("/api/orders")

        assert response.status_code == 404
        assert response.json()["message"] == "Orders not found"

    def test_list_is_newest_first(self, auth_client, create_order):
        first = create_order(name="first")
        second = create_order(name="second")

        response = auth_client.get("/api/orders")

        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [second["id"], first["id"]]

    def test_get_by_id_without_session(self, client, create_order):
        order = create_order()
        client.get("/api/auth/sign-out")

        response = client.get(f"/api/orders/{order['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == order["id"]

    def test_get_unknown_id_is_404(self, client):
        response = client.get(f"/api/orders/{MISSING_ID}")

        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"

    @pytest.mark.parametrize("bad_id", ["123", "zzzzzzzzzzzzzzzzzzzzzzzz", MISSING_ID[:-1]])
    def test_malformed_id_is_422_not_404(self, client, bad_id):
        response = client.get(f"/api/orders/{bad_id}")

        assert response.status_code == 422
        assert response.json()["message"] == f"Invalid ObjectId: [params / id] ({bad_id})"


class TestUpdateOrder:
    def test_replace_resets_statuses(self, auth_client, create_pizza, create_order):
        order = create_order()
        auth_client.patch(f"/api/orders/{order['id']}/status", json={"index": 0, "status": "done"})
        other = create_pizza(name="Funghi", image="funghi.png", price=9)

        response = auth_client.put(
            f"/api/orders/{order['id']}",
            json={"customer": {"name": "Bob", "address": "2 Side St"}, "pizzas": [other["id"]]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["customer"] == {"name": "Bob", "address": "2 Side St"}
        assert body["pizzas"] == [
            {"pizza": {"name": "Funghi", "image": "funghi.png", "price": 9.0}, "status": "ordered"}
        ]

    def test_replace_with_unknown_pizzas_leaves_order_untouched(self, auth_client, create_order):
        order = create_order()

        response = auth_client.put(
            f"/api/orders/{order['id']}",
            json={"customer": {"name": "Bob", "address": "x"}, "pizzas": [MISSING_ID]},
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Pizzas not found"
        assert auth_client.get(f"/api/orders/{order['id']}").json() == order

    def test_replace_unknown_order_is_404(self, auth_client, create_pizza):
        pizza = create_pizza()

        response = auth_client.put(
            f"/api/orders/{MISSING_ID}",
            json={"customer": {"name": "Bob", "address": "x"}, "pizzas": [pizza["id"]]},
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"

    def test_snapshot_survives_pizza_changes(self, auth_client, create_pizza, create_order):
        pizza = create_pizza(name="Salami", image="salami.png", price=6.99)
        order = create_order([pizza["id"]])

        auth_client.put(
            f"/api/pizzas/{pizza['id']}", json={"name": "Renamed", "image": "r.png", "price": 1}
        )
        auth_client.delete(f"/api/pizzas/{pizza['id']}")

        stored = auth_client.get(f"/api/orders/{order['id']}").json()
        assert stored["pizzas"][0]["pizza"] == {"name": "Salami", "image": "salami.png", "price": 6.99}


class TestUpdateOrderedPizzaStatus:
    def test_sets_only_the_addressed_status(self, auth_client, create_pizza, create_order):
        first = create_pizza(name="One")
        second = create_pizza(name="Two")
        order = create_order([first["id"], second["id"]], name="customer", address="address")

        response = auth_client.patch(
            f"/api/orders/{order['id']}/status", json={"index": 1, "status": "oven"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["pizzas"][1]["status"] == "oven"
        assert body["pizzas"][0] == order["pizzas"][0]
        assert body["customer"] == order["customer"]
        assert body["created_at"] == order["created_at"]

    def test_any_transition_is_allowed(self, auth_client, create_order):
        order = create_order()
        url = f"/api/orders/{order['id']}/status"

        assert auth_client.patch(url, json={"index": 0, "status": "done"}).status_code == 200
        response = auth_client.patch(url, json={"index": 0, "status": "ordered"})

        assert response.status_code == 200
        assert response.json()["pizzas"][0]["status"] == "ordered"

    def test_index_out_of_range(self, auth_client, create_order):
        order = create_order()

        response = auth_client.patch(
            f"/api/orders/{order['id']}/status", json={"index": 3, "status": "oven"}
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Index out of range: [body / index] (3)"

    def test_negative_index_is_invalid(self, auth_client, create_order):
        order = create_order()

        response = auth_client.patch(
            f"/api/orders/{order['id']}/status", json={"index": -1, "status": "oven"}
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Invalid value: [body / index] (-1)"

    def test_unknown_status_is_invalid(self, auth_client, create_order):
        order = create_order()

        response = auth_client.patch(
            f"/api/orders/{order['id']}/status", json={"index": 0, "status": "burnt"}
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Invalid value: [body / status] (burnt)"

    def test_unknown_order_is_404(self, auth_client):
        response = auth_client.patch(
            f"/api/orders/{MISSING_ID}/status", json={"index": 0, "status": "oven"}
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"


class TestDeleteOrder:
    def test_delete(self, auth_client, create_order):
        order = create_order()

        response = auth_client.delete(f"/api/orders/{order['id']}")

        assert response.status_code == 200
        assert response.json() == {"message": "Order deleted successfully"}
        assert auth_client.get(f"/api/orders/{order['id']}").status_code == 404

    def test_delete_unknown_is_404(self, auth_client):
        response = auth_client.delete(f"/api/orders/{MISSING_ID}")

        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"

    def test_requires_session(self, client):
        assert client.delete(f"/api/orders/{MISSING_ID}").status_code == 401
