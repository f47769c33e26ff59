import pytest

from utils.notifications import (
    normalize_phone_number,
    get_new_order_email,
    get_order_status_email,
    get_order_status_sms,
    send_sms,
)

ORDER = {
    "order_number": "IBP2610180001",
    "vendor_name": "Ravi Chaatwala",
    "payment_method": "cod",
    "delivery_city": "Mumbai",
    "total_amount": 2450.0,
}


@pytest.mark.parametrize("raw, expected", [
    ("9876543210", "+919876543210"),
    ("98765 43210", "+919876543210"),
    ("+91 98765-43210", "+919876543210"),
    ("919876543210", "+919876543210"),
    ("+14155550123", "+14155550123"),
    ("12345", None),
    ("", None),
    (None, None),
])
def test_normalize_phone_number(raw, expected):
    assert normalize_phone_number(raw) == expected


def test_new_order_email_lists_only_given_items():
    items = [{"material_name": "Turmeric Powder", "quantity": 20, "unit": "kg", "price": 120.0, "total_price": 2400.0}]

    subject, body = get_new_order_email(ORDER, "Spice Hub", items)

    assert subject == "New Order Received - IBP2610180001"
    assert "Hello Spice Hub" in body
    assert "Turmeric Powder: 20 kg" in body
    assert "COD" in body


def test_status_email_includes_note():
    subject, body = get_order_status_email(ORDER, "out_for_delivery", note="Rider on the way")

    assert subject == "Order IBP2610180001 - Out For Delivery"
    assert "Rider on the way" in body


def test_status_sms():
    assert get_order_status_sms(ORDER, "shipped").startswith("Order IBP2610180001 is now shipped")


def test_send_sms_without_twilio_config(monkeypatch):
    monkeypatch.setattr("utils.notifications.TWILIO_ACCOUNT_SID", None)

    assert send_sms("9876543210", "hello") is False
