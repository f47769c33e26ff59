import re
import uuid

import pytest

from conftest import auth_headers

DELIVERY_ADDRESS = {
    "latitude": 19.07,
    "longitude": 72.87,
    "address": "Stall 4, Juhu Beach",
    "city": "Mumbai",
    "state": "Maharashtra",
    "pincode": "400049",
}


@pytest.fixture(autouse=True)
def sent_notifications(monkeypatch):
    sent = {"email": [], "sms": []}
    monkeypatch.setattr("routers.orders.orders.send_email", lambda to, subject, body: sent["email"].append((to, subject)))
    monkeypatch.setattr("routers.orders.orders.send_sms", lambda to, body: sent["sms"].append((to, body)))
    return sent


@pytest.fixture
async def vendor(create_profile):
    return await create_profile("vendor", name="Ravi Chaatwala", phone="+919800000001")


@pytest.fixture
async def supplier(create_profile):
    return await create_profile("supplier", name="Spice Hub")


@pytest.fixture
async def material(supplier, create_material):
    return await create_material(supplier, price=120.0, quantity=100)


async def place_order(client, vendor, material, quantity=20, **extra):
    payload = {
        "materials": [{"material_id": str(material.id), "quantity": quantity}],
        "delivery_address": DELIVERY_ADDRESS,
        **extra,
    }
    return await client.post("/orders", json=payload, headers=auth_headers(vendor))


async def set_status(client, supplier, order_id, new_status, **extra):
    return await client.put(
        f"/orders/{order_id}/status",
        json={"status": new_status, **extra},
        headers=auth_headers(supplier)
    )


async def test_create_order_reserves_stock(client, vendor, material, get_material):
    response = await place_order(client, vendor, material, quantity=20)

    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "pending"
    assert re.fullmatch(r"IBP\d{10}", order["order_number"])
    assert order["subtotal"] == 2400.0
    assert order["delivery_fee"] == 50.0
    assert order["total_amount"] == 2450.0
    assert order["payment_method"] == "cod"
    assert order["total_items"] == 20
    assert order["items"][0]["material_name"] == material.name
    assert [t["status"] for t in order["tracking"]] == ["pending"]

    assert (await get_material(material.id)).quantity == 80


async def test_order_numbers_are_sequential(client, vendor, material):
    first = (await place_order(client, vendor, material, quantity=1)).json()["order_number"]
    second = (await place_order(client, vendor, material, quantity=1)).json()["order_number"]

    assert first[:9] == second[:9]
    assert int(second[-4:]) == int(first[-4:]) + 1


async def test_plain_text_address_is_expanded(client, vendor, material):
    response = await place_order(client, vendor, material, quantity=1, delivery_address="Stall 4, Juhu Beach")

    assert response.status_code == 201
    address = response.json()["delivery_address"]
    assert address["address"] == "Stall 4, Juhu Beach"
    assert address["city"] == "Mumbai"


async def test_insufficient_stock_changes_nothing(client, vendor, material, get_material):
    response = await place_order(client, vendor, material, quantity=101)

    assert response.status_code == 400
    assert response.json()["detail"]["available_quantity"] == 100
    assert (await get_material(material.id)).quantity == 100

    orders = (await client.get("/orders", headers=auth_headers(vendor))).json()
    assert orders["total"] == 0


async def test_one_bad_line_rolls_back_the_whole_order(client, vendor, supplier, material, create_material, get_material):
    scarce = await create_material(supplier, name="Saffron", quantity=1)

    response = await client.post("/orders", json={
        "materials": [
            {"material_id": str(material.id), "quantity": 10},
            {"material_id": str(scarce.id), "quantity": 2},
        ],
        "delivery_address": DELIVERY_ADDRESS,
    }, headers=auth_headers(vendor))

    assert response.status_code == 400
    assert (await get_material(material.id)).quantity == 100
    assert (await get_material(scarce.id)).quantity == 1


async def test_unknown_material_is_not_found(client, vendor):
    response = await client.post("/orders", json={
        "materials": [{"material_id": str(uuid.uuid4()), "quantity": 1}],
        "delivery_address": DELIVERY_ADDRESS,
    }, headers=auth_headers(vendor))

    assert response.status_code == 404


async def test_empty_order_is_invalid(client, vendor):
    response = await client.post("/orders", json={
        "materials": [],
        "delivery_address": DELIVERY_ADDRESS,
    }, headers=auth_headers(vendor))

    assert response.status_code == 422


async def test_suppliers_cannot_place_orders(client, supplier, material):
    response = await place_order(client, supplier, material)

    assert response.status_code == 403


async def test_new_order_notifies_supplier(client, vendor, supplier, material, sent_notifications):
    await place_order(client, vendor, material)

    assert [to for to, _ in sent_notifications["email"]] == [supplier.email]


async def test_clear_cart_after_order(client, vendor, material):
    headers = auth_headers(vendor)
    await client.post("/cart/add", json={"material_id": str(material.id), "quantity": 3}, headers=headers)

    response = await place_order(client, vendor, material, quantity=3, clear_cart=True)

    assert response.status_code == 201
    cart = (await client.get("/cart", headers=headers)).json()
    assert cart["items"] == []
    assert cart["total_amount"] == 0


async def test_vendor_cancel_restores_stock(client, vendor, material, get_material):
    order = (await place_order(client, vendor, material, quantity=20)).json()

    response = await client.put(
        f"/orders/{order['id']}/cancel",
        json={"reason": "Changed my mind"},
        headers=auth_headers(vendor)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["cancellation_reason"] == "Changed my mind"
    assert data["cancelled_by"] == str(vendor.id)
    assert data["tracking"][-1]["status"] == "cancelled"
    assert (await get_material(material.id)).quantity == 100


async def test_double_cancel_restores_stock_once(client, vendor, material, get_material):
    order = (await place_order(client, vendor, material, quantity=20)).json()
    headers = auth_headers(vendor)

    await client.put(f"/orders/{order['id']}/cancel", headers=headers)
    response = await client.put(f"/orders/{order['id']}/cancel", headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"]["current_status"] == "cancelled"
    assert (await get_material(material.id)).quantity == 100


async def test_cannot_cancel_shipped_order(client, vendor, supplier, material, get_material):
    order = (await place_order(client, vendor, material, quantity=20)).json()
    await set_status(client, supplier, order["id"], "shipped")

    response = await client.put(f"/orders/{order['id']}/cancel", headers=auth_headers(vendor))

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "Cannot cancel order that has been shipped or delivered"
    assert (await get_material(material.id)).quantity == 80


@pytest.mark.parametrize("reached_status", ["confirmed", "processing"])
async def test_cancel_before_shipping_restores_stock(client, vendor, supplier, material, get_material, reached_status):
    order = (await place_order(client, vendor, material, quantity=20)).json()
    assert (await set_status(client, supplier, order["id"], reached_status)).status_code == 200

    response = await client.put(f"/orders/{order['id']}/cancel", headers=auth_headers(vendor))

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert (await get_material(material.id)).quantity == 100

    again = await client.put(f"/orders/{order['id']}/cancel", headers=auth_headers(vendor))
    assert again.status_code == 400
    assert (await get_material(material.id)).quantity == 100


@pytest.mark.parametrize("reached_status", ["shipped", "delivered"])
async def test_cancel_after_dispatch_is_rejected(client, vendor, supplier, material, get_material, reached_status):
    order = (await place_order(client, vendor, material, quantity=20)).json()
    assert (await set_status(client, supplier, order["id"], reached_status)).status_code == 200

    response = await client.put(f"/orders/{order['id']}/cancel", headers=auth_headers(vendor))

    assert response.status_code == 400
    assert response.json()["detail"]["current_status"] == reached_status
    assert (await get_material(material.id)).quantity == 80

    data = (await client.get(f"/orders/{order['id']}", headers=auth_headers(vendor))).json()
    assert data["status"] == reached_status


async def test_supplier_cancel_through_status_update(client, vendor, supplier, material, get_material):
    order = (await place_order(client, vendor, material, quantity=20)).json()

    response = await set_status(client, supplier, order["id"], "cancelled", notes="Out of stock at warehouse")

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert (await get_material(material.id)).quantity == 100


async def test_status_updates_append_tracking(client, vendor, supplier, material, sent_notifications):
    order = (await place_order(client, vendor, material)).json()

    await set_status(client, supplier, order["id"], "confirmed")
    response = await set_status(
        client, supplier, order["id"], "shipped",
        tracking_number="TRK123", location="Mumbai hub"
    )

    data = response.json()
    assert data["status"] == "shipped"
    assert data["tracking_number"] == "TRK123"
    assert [t["status"] for t in data["tracking"]] == ["pending", "confirmed", "shipped"]
    assert data["tracking"][-1]["location"] == "Mumbai hub"
    assert data["tracking"][-1]["updated_by"] == str(supplier.id)
    assert len(sent_notifications["sms"]) == 2


async def test_delivered_stamps_actual_delivery(client, vendor, supplier, material):
    order = (await place_order(client, vendor, material)).json()
    assert order["actual_delivery"] is None

    response = await set_status(client, supplier, order["id"], "delivered")

    assert response.status_code == 200
    assert response.json()["actual_delivery"] is not None


async def test_delivered_order_is_final(client, vendor, supplier, material):
    order = (await place_order(client, vendor, material)).json()
    await set_status(client, supplier, order["id"], "delivered")

    response = await set_status(client, supplier, order["id"], "processing")

    assert response.status_code == 400
    assert response.json()["detail"]["current_status"] == "delivered"


async def test_invalid_status_lists_valid_ones(client, vendor, supplier, material):
    order = (await place_order(client, vendor, material)).json()

    response = await set_status(client, supplier, order["id"], "teleported")

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "Invalid status"
    assert "shipped" in detail["valid_statuses"]


async def test_unrelated_supplier_cannot_update(client, vendor, material, create_profile):
    order = (await place_order(client, vendor, material)).json()
    stranger = await create_profile("supplier", name="Other Supplier")

    response = await set_status(client, stranger, order["id"], "confirmed")

    assert response.status_code == 403


async def test_vendor_cannot_update_status(client, vendor, material):
    order = (await place_order(client, vendor, material)).json()

    response = await client.put(
        f"/orders/{order['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers(vendor)
    )

    assert response.status_code == 403


async def test_order_visibility(client, vendor, supplier, material, create_profile):
    order = (await place_order(client, vendor, material)).json()
    other_vendor = await create_profile("vendor", name="Someone Else")

    assert (await client.get(f"/orders/{order['id']}", headers=auth_headers(vendor))).status_code == 200
    assert (await client.get(f"/orders/{order['id']}", headers=auth_headers(supplier))).status_code == 200
    assert (await client.get(f"/orders/{order['id']}", headers=auth_headers(other_vendor))).status_code == 403
    assert (await client.get(f"/orders/{uuid.uuid4()}", headers=auth_headers(vendor))).status_code == 404


async def test_role_scoped_order_lists(client, vendor, supplier, material):
    await place_order(client, vendor, material, quantity=1)
    await place_order(client, vendor, material, quantity=2)

    vendor_orders = (await client.get("/orders/vendor/my-orders", headers=auth_headers(vendor))).json()
    supplier_orders = (await client.get("/orders/supplier/my-orders", headers=auth_headers(supplier))).json()

    assert vendor_orders["total"] == 2
    assert supplier_orders["total"] == 2
    assert (await client.get("/orders/supplier/my-orders", headers=auth_headers(vendor))).status_code == 403


async def test_list_orders_filters_by_status(client, vendor, supplier, material):
    first = (await place_order(client, vendor, material, quantity=1)).json()
    await place_order(client, vendor, material, quantity=1)
    await set_status(client, supplier, first["id"], "confirmed")

    response = await client.get("/orders", params={"status": "confirmed"}, headers=auth_headers(vendor))

    data = response.json()
    assert data["total"] == 1
    assert data["orders"][0]["id"] == first["id"]


async def test_order_stats(client, vendor, supplier, material):
    first = (await place_order(client, vendor, material, quantity=10)).json()
    second = (await place_order(client, vendor, material, quantity=5)).json()
    await client.put(f"/orders/{second['id']}/cancel", headers=auth_headers(vendor))

    vendor_stats = (await client.get("/orders/stats", headers=auth_headers(vendor))).json()
    supplier_stats = (await client.get("/orders/stats", headers=auth_headers(supplier))).json()

    assert vendor_stats["total_orders"] == 2
    assert vendor_stats["by_status"] == {"pending": 1, "cancelled": 1}
    assert vendor_stats["total_amount"] == first["total_amount"]
    # Suppliers earn their line totals, without delivery
    assert supplier_stats["total_amount"] == 1200.0
