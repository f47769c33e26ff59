import uuid

import pytest

from conftest import auth_headers

NEW_MATERIAL = {
    "name": "Red Chilli Powder",
    "description": "Kashmiri, medium heat",
    "category": "Spices",
    "price": 180.456,
    "quantity": 40,
    "unit": "kg",
    "tags": [" Chilli ", "RED", ""],
}


@pytest.fixture
async def supplier(create_profile):
    return await create_profile("supplier", name="Spice Hub")


async def test_supplier_creates_material_at_own_location(client, supplier):
    response = await client.post("/materials", json=NEW_MATERIAL, headers=auth_headers(supplier))

    assert response.status_code == 201
    data = response.json()
    assert data["supplier_id"] == str(supplier.id)
    assert data["supplier_name"] == "Spice Hub"
    assert data["price"] == 180.46
    assert data["tags"] == ["chilli", "red"]
    assert data["location"]["city"] == "Mumbai"
    assert data["is_low_stock"] is False


async def test_supplier_without_location_must_send_one(client, create_profile):
    supplier = await create_profile("supplier", latitude=None, longitude=None)

    response = await client.post("/materials", json=NEW_MATERIAL, headers=auth_headers(supplier))

    assert response.status_code == 400


async def test_vendor_cannot_create_material(client, create_profile):
    vendor = await create_profile("vendor")

    response = await client.post("/materials", json=NEW_MATERIAL, headers=auth_headers(vendor))

    assert response.status_code == 403


async def test_unknown_category_is_rejected(client, supplier):
    response = await client.post(
        "/materials",
        json={**NEW_MATERIAL, "category": "Gadgets"},
        headers=auth_headers(supplier)
    )

    assert response.status_code == 422


async def test_anonymous_cannot_create_material(client):
    response = await client.post("/materials", json=NEW_MATERIAL)

    assert response.status_code in (401, 403)


async def test_list_filters_and_sorts(client, supplier, create_material):
    await create_material(supplier, name="Cumin", price=300.0)
    await create_material(supplier, name="Rice", category="Rice & Grains", price=60.0)
    await create_material(supplier, name="Hidden", price=90.0, is_available=False)

    response = await client.get("/materials", params={"sort_by": "price", "sort_order": "desc"})
    prices = [m["price"] for m in response.json()["materials"]]
    assert prices == sorted(prices, reverse=True)

    response = await client.get("/materials", params={"category": "Spices", "available_only": True})
    assert [m["name"] for m in response.json()["materials"]] == ["Cumin"]

    response = await client.get("/materials", params={"min_price": 80, "max_price": 100})
    assert [m["name"] for m in response.json()["materials"]] == ["Hidden"]


async def test_list_paginates(client, supplier, create_material):
    for i in range(5):
        await create_material(supplier, name=f"Item {i}", price=10.0 + i)

    data = (await client.get("/materials", params={"page": 2, "limit": 2, "sort_by": "price"})).json()

    assert data["total"] == 5
    assert data["pages"] == 3
    assert [m["price"] for m in data["materials"]] == [12.0, 13.0]


async def test_invalid_sort_field(client):
    response = await client.get("/materials", params={"sort_by": "password"})

    assert response.status_code == 400


async def test_categories(client):
    categories = (await client.get("/materials/categories")).json()

    assert "Spices" in categories
    assert "Rice & Grains" in categories


async def test_search(client, supplier, create_material):
    await create_material(supplier, name="Garam Masala", description="Whole spice blend")
    await create_material(supplier, name="Basmati Rice", category="Rice & Grains")

    data = (await client.get("/materials/search", params={"q": "masala"})).json()
    assert data["count"] == 1
    assert data["materials"][0]["name"] == "Garam Masala"

    assert (await client.get("/materials/search", params={"q": "m"})).status_code == 400


async def test_by_category_and_supplier(client, supplier, create_profile, create_material):
    await create_material(supplier, name="Cumin")
    await create_material(supplier, name="Tomato", category="Vegetables")

    by_category = (await client.get("/materials/category/Vegetables")).json()
    assert [m["name"] for m in by_category["materials"]] == ["Tomato"]

    by_supplier = (await client.get(f"/materials/supplier/{supplier.id}")).json()
    assert by_supplier["count"] == 2

    vendor = await create_profile("vendor")
    assert (await client.get(f"/materials/supplier/{vendor.id}")).status_code == 404


async def test_compare_prices_cheapest_first(client, supplier, create_profile, create_material):
    other = await create_profile("supplier", name="Budget Spices")
    await create_material(supplier, name="Turmeric Powder", price=140.0)
    await create_material(other, name="Turmeric Powder", price=110.0)

    data = (await client.get("/materials/compare/turmeric")).json()

    offers = data["comparisons"]["turmeric powder"]
    assert [o["price"] for o in offers] == [110.0, 140.0]
    assert offers[0]["supplier_name"] == "Budget Spices"

    assert (await client.get("/materials/compare/saffron")).status_code == 404


async def test_get_material(client, supplier, create_material):
    material = await create_material(supplier, quantity=4)

    data = (await client.get(f"/materials/{material.id}")).json()
    assert data["id"] == str(material.id)
    assert data["is_low_stock"] is True

    assert (await client.get(f"/materials/{uuid.uuid4()}")).status_code == 404


async def test_owner_updates_material(client, supplier, create_material):
    material = await create_material(supplier)

    response = await client.put(
        f"/materials/{material.id}",
        json={"price": 99.999, "quantity": 5, "unit": "g"},
        headers=auth_headers(supplier)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["price"] == 100.0
    assert data["quantity"] == 5
    assert data["unit"] == "g"
    assert data["name"] == material.name


async def test_other_supplier_cannot_touch_material(client, supplier, create_profile, create_material):
    material = await create_material(supplier)
    other = await create_profile("supplier", name="Rival Traders")

    response = await client.put(f"/materials/{material.id}", json={"price": 1}, headers=auth_headers(other))
    assert response.status_code == 403

    response = await client.delete(f"/materials/{material.id}", headers=auth_headers(other))
    assert response.status_code == 403


async def test_owner_deletes_material(client, supplier, create_material, get_material):
    material = await create_material(supplier)

    response = await client.delete(f"/materials/{material.id}", headers=auth_headers(supplier))

    assert response.status_code == 200
    assert response.json() == {"message": "Material deleted successfully"}
    assert await get_material(material.id) is None
