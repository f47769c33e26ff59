import os
import re
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from twilio.rest import Client
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

# --- Email Configuration ---
SMTP_SERVER = os.getenv("SMTP_SERVER")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
EMAIL_SENDER = os.getenv("EMAIL_SENDER")

# --- Twilio Configuration ---
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")

SIGNATURE = "Indian Bazaar Team"

INDIA_COUNTRY_CODE = "+91"
TAG_PATTERN = re.compile(r"<[^>]+>")


def normalize_phone_number(phone: str) -> Optional[str]:
    """
    E.164 form of a stored phone number; bare 10-digit numbers are Indian mobiles
    Returns None when the number cannot be dialled
    """
    digits = re.sub(r"\D", "", phone or "")
    if phone and phone.strip().startswith("+") and len(digits) >= 10:
        return f"+{digits}"
    if len(digits) == 10 and digits[0] in "6789":
        return f"{INDIA_COUNTRY_CODE}{digits}"
    if len(digits) == 12 and digits.startswith("91"):
        return f"+{digits}"
    return None


def send_email(to_email: str, subject: str, body_html: str):
    """Send an HTML email with a plain-text alternative over SMTP"""
    if not all([SMTP_SERVER, SMTP_PORT, SMTP_USER, SMTP_PASSWORD, EMAIL_SENDER]):
        logger.error("SMTP settings are not fully configured. Cannot send email.")
        return False

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = f"{SIGNATURE} <{EMAIL_SENDER}>"
    message["To"] = to_email
    plain_text = "\n".join(
        line.strip() for line in TAG_PATTERN.sub("", body_html).splitlines() if line.strip()
    )
    message.attach(MIMEText(plain_text, "plain"))
    message.attach(MIMEText(body_html, "html"))

    try:
        with smtplib.SMTP(SMTP_SERVER, SMTP_PORT) as server:
            server.starttls()
            server.login(SMTP_USER, SMTP_PASSWORD)
            server.sendmail(EMAIL_SENDER, to_email, message.as_string())
        logger.info(f"Email '{subject}' sent to {to_email}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def send_sms(to_phone_number: str, body: str):
    """Send an SMS through Twilio to a vendor or supplier phone"""
    if not all([TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER]):
        logger.error("Twilio settings are not fully configured. Cannot send SMS.")
        return False

    recipient = normalize_phone_number(to_phone_number)
    if recipient is None:
        logger.warning(f"Skipping SMS to undiallable number {to_phone_number!r}")
        return False

    try:
        client = Client(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN)
        message = client.messages.create(body=body, from_=TWILIO_PHONE_NUMBER, to=recipient)
        logger.info(f"SMS sent to {recipient}, SID: {message.sid}")
        return True
    except Exception as e:
        logger.error(f"Failed to send SMS to {recipient}: {e}")
        return False


# Email Templates
def get_new_order_email(order_data: dict, supplier_name: str, items: List[dict]) -> tuple[str, str]:
    """New order notification for a supplier, listing only that supplier's lines"""
    subject = f"New Order Received - {order_data['order_number']}"

    body = f"""
    <html>
    <body>
        <h2>New Order Received!</h2>
        <p>Hello {supplier_name},</p>
        <p>{order_data['vendor_name']} has placed an order that includes your materials.</p>

        <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px;">
            <h3>Order Details:</h3>
            <p><strong>Order Number:</strong> {order_data['order_number']}</p>
            <p><strong>Payment Method:</strong> {order_data['payment_method'].upper()}</p>
            <p><strong>Deliver To:</strong> {order_data['delivery_city']}</p>
        </div>

        <h3>Your Items:</h3>
        <div style="background-color: #e8f4fd; padding: 15px; border-radius: 5px;">
        """

    for item in items:
        body += f"""
            <p>{item['material_name']}: {item['quantity']} {item['unit']} x ₹{item['price']} = ₹{item['total_price']}</p>
        """

    body += f"""
        </div>
        <p>Please confirm the order from your dashboard.</p>
        <p>Best regards,<br>{SIGNATURE}</p>
    </body>
    </html>
    """

    return subject, body


def get_order_status_email(order_data: dict, new_status: str, note: str = None) -> tuple[str, str]:
    """Order status change notification for the vendor"""
    status_label = new_status.replace('_', ' ').title()
    subject = f"Order {order_data['order_number']} - {status_label}"

    body = f"""
    <html>
    <body>
        <h2>Your order is now {status_label}</h2>
        <p>Hello {order_data['vendor_name']},</p>

        <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px;">
            <p><strong>Order Number:</strong> {order_data['order_number']}</p>
            <p><strong>Total Amount:</strong> ₹{order_data['total_amount']}</p>
            <p><strong>Status:</strong> {status_label}</p>
            {f"<p><strong>Note:</strong> {note}</p>" if note else ""}
        </div>

        <p>Thank you for shopping with us!</p>
        <p>Best regards,<br>{SIGNATURE}</p>
    </body>
    </html>
    """

    return subject, body


# SMS Templates
def get_new_order_sms(order_data: dict, item_count: int) -> str:
    return f"New order {order_data['order_number']} from {order_data['vendor_name']}: {item_count} item(s) to fulfil. - Indian Bazaar"


def get_order_status_sms(order_data: dict, new_status: str) -> str:
    status_label = new_status.replace('_', ' ')
    return f"Order {order_data['order_number']} is now {status_label}. Total: ₹{order_data['total_amount']}. - Indian Bazaar"
