import uuid

import pytest

from conftest import auth_headers


@pytest.fixture
async def vendor(create_profile):
    return await create_profile("vendor")


@pytest.fixture
async def supplier(create_profile):
    return await create_profile("supplier", name="Spice Hub")


async def test_cart_is_created_on_first_access(client, vendor):
    response = await client.get("/cart", headers=auth_headers(vendor))

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == str(vendor.id)
    assert data["items"] == []
    assert data["total_items"] == 0
    assert data["total_amount"] == 0


async def test_add_item_and_merge_same_material(client, vendor, supplier, create_material):
    material = await create_material(supplier, price=40.5, quantity=20)
    headers = auth_headers(vendor)

    await client.post("/cart/add", json={"material_id": str(material.id), "quantity": 3}, headers=headers)
    response = await client.post("/cart/add", json={"material_id": str(material.id), "quantity": 2}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert len(data["items"]) == 1
    assert data["items"][0]["quantity"] == 5
    assert data["items"][0]["total_price"] == 202.5
    assert data["total_items"] == 5
    assert data["total_amount"] == 202.5


async def test_totals_cover_every_line(client, vendor, supplier, create_profile, create_material):
    other_supplier = await create_profile("supplier", name="Veggie Mart")
    turmeric = await create_material(supplier, price=120.0)
    onions = await create_material(other_supplier, name="Onions", category="Vegetables", price=30.0)
    headers = auth_headers(vendor)

    await client.post("/cart/add", json={"material_id": str(turmeric.id), "quantity": 2}, headers=headers)
    response = await client.post("/cart/add", json={"material_id": str(onions.id), "quantity": 10}, headers=headers)

    data = response.json()
    assert data["total_items"] == 12
    assert data["total_amount"] == sum(item["total_price"] for item in data["items"]) == 540.0

    summary = {s["supplier_id"]: s for s in data["suppliers"]}
    assert summary[str(supplier.id)]["amount"] == 240.0
    assert summary[str(other_supplier.id)]["item_count"] == 1


async def test_add_more_than_stock_is_rejected(client, vendor, supplier, create_material):
    material = await create_material(supplier, quantity=5)

    response = await client.post(
        "/cart/add",
        json={"material_id": str(material.id), "quantity": 6},
        headers=auth_headers(vendor)
    )

    assert response.status_code == 400
    assert response.json()["detail"]["available_quantity"] == 5


async def test_merge_beyond_stock_reports_cart_quantity(client, vendor, supplier, create_material):
    material = await create_material(supplier, quantity=5)
    headers = auth_headers(vendor)

    await client.post("/cart/add", json={"material_id": str(material.id), "quantity": 4}, headers=headers)
    response = await client.post("/cart/add", json={"material_id": str(material.id), "quantity": 2}, headers=headers)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["current_cart_quantity"] == 4
    assert detail["available_quantity"] == 5

    cart = (await client.get("/cart", headers=headers)).json()
    assert cart["items"][0]["quantity"] == 4


async def test_add_unavailable_material(client, vendor, supplier, create_material):
    material = await create_material(supplier, is_available=False)

    response = await client.post(
        "/cart/add",
        json={"material_id": str(material.id), "quantity": 1},
        headers=auth_headers(vendor)
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Material is not available"


async def test_add_unknown_material(client, vendor):
    response = await client.post(
        "/cart/add",
        json={"material_id": str(uuid.uuid4()), "quantity": 1},
        headers=auth_headers(vendor)
    )

    assert response.status_code == 404


async def test_add_zero_quantity_is_invalid(client, vendor, supplier, create_material):
    material = await create_material(supplier)

    response = await client.post(
        "/cart/add",
        json={"material_id": str(material.id), "quantity": 0},
        headers=auth_headers(vendor)
    )

    assert response.status_code == 422


async def test_update_quantity_and_remove_with_zero(client, vendor, supplier, create_material):
    material = await create_material(supplier, price=10.0, quantity=50)
    headers = auth_headers(vendor)
    cart = (await client.post("/cart/add", json={"material_id": str(material.id), "quantity": 1}, headers=headers)).json()
    item_id = cart["items"][0]["id"]

    response = await client.put(f"/cart/{item_id}", json={"quantity": 7}, headers=headers)
    assert response.status_code == 200
    assert response.json()["total_amount"] == 70.0

    response = await client.put(f"/cart/{item_id}", json={"quantity": 51}, headers=headers)
    assert response.status_code == 400

    response = await client.put(f"/cart/{item_id}", json={"quantity": 0}, headers=headers)
    assert response.status_code == 200
    assert response.json()["items"] == []
    assert response.json()["total_items"] == 0


async def test_remove_item(client, vendor, supplier, create_material):
    material = await create_material(supplier)
    headers = auth_headers(vendor)
    cart = (await client.post("/cart/add", json={"material_id": str(material.id), "quantity": 2}, headers=headers)).json()

    response = await client.delete(f"/cart/{cart['items'][0]['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["items"] == []

    response = await client.delete(f"/cart/{uuid.uuid4()}", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Item in cart not found"


async def test_clear_cart(client, vendor, supplier, create_material):
    material = await create_material(supplier)
    headers = auth_headers(vendor)
    await client.post("/cart/add", json={"material_id": str(material.id), "quantity": 2}, headers=headers)

    response = await client.delete("/cart", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["items"] == []
    assert data["total_items"] == 0
    assert data["total_amount"] == 0


async def test_suppliers_have_no_cart(client, supplier):
    response = await client.get("/cart", headers=auth_headers(supplier))

    assert response.status_code == 403
