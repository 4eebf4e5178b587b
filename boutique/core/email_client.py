# boutique/core/email_client.py
"""
Email client utilities for the boutique backend.

Responsibilities:
  - Read SMTP configuration from Settings (.env).
  - Provide a single send_email(...) function for services to use.
  - Support both TLS (STARTTLS) and SSL connections.
  - Render the order confirmation mail.

Typical .env configuration:

    SMTP_HOST=smtp.example.com
    SMTP_PORT=465
    SMTP_USERNAME=boutique@example.com
    SMTP_PASSWORD=...
    SMTP_FROM_EMAIL=boutique@example.com
    SMTP_FROM_NAME=La Boutique
    SMTP_USE_TLS=false
    SMTP_USE_SSL=true
"""

import smtplib
from email.message import EmailMessage

from boutique.core.config import Settings, get_settings
from boutique.models.order import Order, OrderItem


def _create_smtp_client(settings: Settings) -> smtplib.SMTP:
    """
    Create and return an SMTP client configured for TLS or SSL.

    Priority:
      - If SMTP_USE_SSL is True → use smtplib.SMTP_SSL (commonly port 465).
      - Else → use smtplib.SMTP + optional STARTTLS if SMTP_USE_TLS is True.
    """
    if not settings.SMTP_HOST:
        raise RuntimeError("SMTP_HOST is not configured. Please set it in .env.")

    timeout = settings.HTTP_TIMEOUT_SECONDS
    if settings.SMTP_USE_SSL:
        server: smtplib.SMTP = smtplib.SMTP_SSL(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout
        )
    else:
        server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout)
        if settings.SMTP_USE_TLS:
            server.starttls()

    return server


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
    settings: Settings | None = None,
) -> None:
    """
    Send an email to a single recipient.

    Raises
    ------
    RuntimeError:
        If required SMTP configuration is missing.
    smtplib.SMTPException:
        If the underlying SMTP connection or send fails.
    """
    settings = settings or get_settings()
    if not settings.smtp_configured:
        raise RuntimeError(
            "SMTP is not configured correctly. "
            "Please set SMTP_HOST, SMTP_USERNAME, and SMTP_PASSWORD in .env."
        )

    msg = EmailMessage()

    from_email = settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME
    msg["From"] = f"{settings.SMTP_FROM_NAME} <{from_email}>"
    msg["To"] = to_email
    msg["Subject"] = subject

    # Always add a plain-text part
    msg.set_content(text_body)

    if html_body:
        msg.add_alternative(html_body, subtype="html")

    server = _create_smtp_client(settings)
    try:
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            # Connection is being torn down anyway.
            pass


def render_order_confirmation(order: Order, items: list[OrderItem]) -> tuple[str, str]:
    """
    Subject and plain-text body of the order confirmation mail.
    """
    subject = f"Confirmation de votre commande {order.order_number}"

    lines = [
        "Bonjour,",
        "",
        f"Nous avons bien reçu votre commande {order.order_number}.",
        "",
    ]
    for it in items:
        lines.append(f"- {it.product_name} x{it.quantity} : {it.price * it.quantity:.2f} €")
    lines += [
        "",
        f"Livraison : {order.shipping_cost:.2f} €",
    ]
    if order.insurance_cost:
        lines.append(f"Assurance : {order.insurance_cost:.2f} €")
    if order.discount_amount:
        lines.append(f"Réduction : -{order.discount_amount:.2f} €")
    lines += [
        f"Total TTC : {order.total_amount:.2f} € (dont TVA {order.tax_amount:.2f} €)",
        "",
        "Paiement par virement bancaire : les coordonnées vous seront communiquées",
        "avec votre facture.",
        "",
        "Merci pour votre confiance !",
    ]
    return subject, "\n".join(lines)
