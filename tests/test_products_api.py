from bson import ObjectId

from config import get_settings
from main import app


def test_create_and_fetch_product(client, make_product):
    product = make_product(images=["https://cdn.example.com/a.jpg", "https://cdn.example.com/b.jpg"])
    assert product["isActive"] is True
    assert product["createdBy"] == "admin"
    assert product["sku"].startswith("T-S-CLASSI-")

    resp = client.get(f"/products/{product['id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Classic Tee"


def test_image_defaults_to_first_of_images(client, admin_headers):
    resp = client.post("/products", headers=admin_headers, json={
        "name": "Zip Sweatshirt", "price": 55, "category": "sweatshirts",
        "images": ["https://cdn.example.com/h1.jpg", "https://cdn.example.com/h2.jpg"],
    })
    assert resp.status_code == 201
    assert resp.json()["data"]["image"] == "https://cdn.example.com/h1.jpg"


def test_create_requires_admin(client):
    resp = client.post("/products", json={"name": "Tee"})
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Access denied. Admin token required."}

    resp = client.post("/products", json={"name": "Tee"}, headers={"Authorization": "Bearer junk"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid admin token format."


def test_create_validation_errors(client, admin_headers):
    resp = client.post("/products", headers=admin_headers, json={"name": "T", "price": 20000})
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Validation failed"
    assert "category is required" in body["errors"]
    assert "Price must be less than $10,000" in body["errors"]


def test_unknown_and_malformed_ids_are_not_found(client):
    assert client.get(f"/products/{ObjectId()}").status_code == 404
    resp = client.get("/products/not-an-id")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Product not found"


def test_update_product(client, admin_headers, make_product):
    product = make_product()
    resp = client.put(f"/products/{product['id']}", headers=admin_headers, json={"price": 30, "soldOut": True})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["price"] == 30
    assert data["soldOut"] is True
    assert data["updatedBy"] == "admin"

    assert client.put(f"/products/{product['id']}", headers=admin_headers, json={"price": -1}).status_code == 400
    assert client.put(f"/products/{ObjectId()}", headers=admin_headers, json={"price": 5}).status_code == 404


def test_delete_product(client, admin_headers, make_product):
    product = make_product()
    assert client.delete(f"/products/{product['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/products/{product['id']}").status_code == 404
    assert client.delete(f"/products/{product['id']}", headers=admin_headers).status_code == 404


def test_list_filters_and_paginates(client, make_product):
    make_product(name="Alpha Tee")
    make_product(name="Bravo Tee")
    make_product(name="Cargo Pants", category="pants")

    resp = client.get("/products", params={"category": "t-shirts"})
    body = resp.json()
    assert [p["name"] for p in body["data"]] == ["Alpha Tee", "Bravo Tee"]
    assert body["pagination"]["total"] == 2

    resp = client.get("/products", params={"pageSize": 100, "page": 0})
    pagination = resp.json()["pagination"]
    assert (pagination["page"], pagination["pageSize"]) == (1, 50)

    resp = client.get("/products", params={"sortBy": "price", "order": "desc", "search": "Car"})
    assert [p["name"] for p in resp.json()["data"]] == ["Cargo Pants"]


def test_list_rejects_bad_options_in_strict_mode(client):
    strict = get_settings().model_copy(update={"strict_query_options": True})
    app.dependency_overrides[get_settings] = lambda: strict
    resp = client.get("/products", params={"sortBy": "secret"})
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid sortBy")


def test_categories_list(client, make_product):
    make_product()
    make_product(category="pants")
    make_product(category="pants")
    assert client.get("/products/categories/list").json()["data"] == ["pants", "t-shirts"]
