"""Customer email notifications sent through Amazon SES.

Message composition lives here; SES is only the transport. Send failures
(including timeouts) are raised as ``NotificationError`` so callers can
treat them as best-effort with ``send_best_effort``.
"""

import html
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from functools import lru_cache
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from booking_core.config import Settings, get_settings
from booking_core.models.enums import NotificationOutcome, PaymentType
from booking_core.models.errors import ErrorCode, TransientExternalError

from .money import format_amount

logger = logging.getLogger(__name__)


class NotificationError(TransientExternalError):
    """Raised when an email could not be handed to SES."""

    default_code = ErrorCode.NOTIFICATION_FAILED


@dataclass
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass
class EmailMessage:
    """A composed email ready for sending."""

    to: str
    subject: str
    text: str
    html: str
    attachments: list[Attachment] = field(default_factory=list)


def format_date(value: date) -> str:
    """Czech date format, e.g. ``15. 6. 2026``."""
    return f"{value.day}. {value.month}. {value.year}"


def _paragraphs(*lines: str) -> str:
    body = "".join(f"<p>{line}</p>" for line in lines if line)
    return f'<html><body style="font-family: Arial, sans-serif;">{body}</body></html>'


def send_best_effort(description: str, send: Callable[[], Any]) -> NotificationOutcome:
    """Run a send and report the outcome instead of raising.

    Args:
        description: What is being sent, for the log line
        send: Zero-argument callable performing the send

    Returns:
        SENT on success, FAILED if the send raised
    """
    try:
        send()
    except NotificationError as e:
        logger.warning("Best-effort notification failed: %s (%s)", description, e)
        return NotificationOutcome.FAILED
    except Exception:
        logger.exception("Best-effort notification crashed: %s", description)
        return NotificationOutcome.FAILED
    return NotificationOutcome.SENT


class NotificationService:
    """Composes and sends customer emails.

    Usage:
        notifier = get_notification_service()
        notifier.send_payment_receipt(
            to="jana@example.com",
            invoice_number="PP-INV-2026-001",
            amount=135000,
            payment_type=PaymentType.DEPOSIT,
        )
    """

    def __init__(self, settings: Settings | None = None, client: Any | None = None) -> None:
        self._settings = settings or get_settings()
        self._client = client or boto3.client(
            "ses",
            region_name=self._settings.aws_region,
            config=Config(
                connect_timeout=self._settings.email_timeout_seconds,
                read_timeout=self._settings.email_timeout_seconds,
                retries={"max_attempts": 2},
            ),
        )

    def _amount(self, amount: int) -> str:
        return format_amount(amount, self._settings.currency)

    def send(self, message: EmailMessage) -> str:
        """Send a composed message.

        Returns:
            SES message ID

        Raises:
            NotificationError: If SES rejects the message or the call times out.
        """
        try:
            if message.attachments:
                response = self._client.send_raw_email(
                    Source=self._settings.email_sender,
                    Destinations=[message.to],
                    RawMessage={"Data": self._build_raw(message).as_bytes()},
                )
            else:
                response = self._client.send_email(
                    Source=self._settings.email_sender,
                    Destination={"ToAddresses": [message.to]},
                    Message={
                        "Subject": {"Data": message.subject, "Charset": "UTF-8"},
                        "Body": {
                            "Text": {"Data": message.text, "Charset": "UTF-8"},
                            "Html": {"Data": message.html, "Charset": "UTF-8"},
                        },
                    },
                )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to send email '%s': %s", message.subject, e)
            raise NotificationError(details={"subject": message.subject}) from e

        message_id: str = response["MessageId"]
        logger.info("Sent email '%s' (message_id=%s)", message.subject, message_id)
        return message_id

    def _build_raw(self, message: EmailMessage) -> MIMEMultipart:
        raw = MIMEMultipart("mixed")
        raw["Subject"] = message.subject
        raw["From"] = self._settings.email_sender
        raw["To"] = message.to

        body = MIMEMultipart("alternative")
        body.attach(MIMEText(message.text, "plain", "utf-8"))
        body.attach(MIMEText(message.html, "html", "utf-8"))
        raw.attach(body)

        for attachment in message.attachments:
            _, subtype = attachment.content_type.split("/", 1)
            part = MIMEApplication(attachment.content, _subtype=subtype)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            raw.attach(part)
        return raw

    # Customer emails

    def send_booking_confirmation(
        self,
        *,
        to: str,
        parent_name: str,
        child_name: str,
        party_date: date,
        party_time: str,
        venue: str,
        package_name: str,
        deposit_amount: int,
        order_number: str,
    ) -> str:
        """Confirm a new booking and ask for the deposit."""
        details = (
            f"Datum: {format_date(party_date)} v {party_time}",
            f"Místo: {venue}",
            f"Program: {package_name}",
            f"Číslo objednávky: {order_number}",
            f"Záloha k úhradě: {self._amount(deposit_amount)}",
        )
        greeting = f"Dobrý den, {parent_name}!"
        intro = f"Děkujeme za Vaši rezervaci! Těšíme se na oslavu {child_name}."
        return self.send(
            EmailMessage(
                to=to,
                subject=f"Potvrzení rezervace - Oslava {child_name}",
                text="\n".join((greeting, intro, *details)),
                html=_paragraphs(*(html.escape(line) for line in (greeting, intro, *details))),
            )
        )

    def send_admin_booking_notification(
        self,
        *,
        to: str,
        order_number: str,
        parent_name: str,
        parent_email: str,
        parent_phone: str,
        party_date: date,
        party_time: str,
        venue: str,
        guest_count: int,
        package_name: str,
        total: int,
    ) -> str:
        """Tell the office about a new booking."""
        lines = (
            f"Nová rezervace #{order_number}",
            f"Zákazník: {parent_name} ({parent_email}, {parent_phone})",
            f"Datum: {format_date(party_date)} v {party_time}",
            f"Místo: {venue}",
            f"Počet hostů: {guest_count}",
            f"Program: {package_name}",
            f"Celkem: {self._amount(total)}",
        )
        return self.send(
            EmailMessage(
                to=to,
                subject=f"Nová rezervace #{order_number} - {format_date(party_date)}",
                text="\n".join(lines),
                html=_paragraphs(*(html.escape(line) for line in lines)),
            )
        )

    def send_payment_receipt(
        self,
        *,
        to: str,
        invoice_number: str,
        amount: int,
        payment_type: PaymentType,
        parent_name: str | None = None,
        party_date: date | None = None,
        pdf_bytes: bytes | None = None,
    ) -> str:
        """Send a payment receipt, attaching the invoice PDF when available."""
        type_text = "Záloha" if payment_type == PaymentType.DEPOSIT else "Doplatek"
        lines = [
            f"Dobrý den, {parent_name}!" if parent_name else "Dobrý den,",
            "Děkujeme za Vaši platbu!",
            f"Číslo faktury: {invoice_number}",
            f"Typ platby: {type_text}",
            f"Částka: {self._amount(amount)}",
        ]
        if party_date:
            lines.append(f"Datum oslavy: {format_date(party_date)}")
        if payment_type == PaymentType.DEPOSIT:
            lines.append("Před oslavou Vás budeme kontaktovat a připomeneme doplatek.")
        else:
            lines.append("Vše je připraveno! Těšíme se na Vás na oslavě.")

        attachments = []
        if pdf_bytes:
            attachments.append(Attachment(f"faktura-{invoice_number}.pdf", pdf_bytes))

        return self.send(
            EmailMessage(
                to=to,
                subject=f"Faktura {invoice_number} - {type_text} přijata",
                text="\n".join(lines),
                html=_paragraphs(*(html.escape(line) for line in lines)),
                attachments=attachments,
            )
        )

    def send_party_reminder(
        self,
        *,
        to: str,
        parent_name: str,
        child_name: str,
        party_date: date,
        party_time: str,
        venue: str,
        allergies: list[str],
        emergency_contact: tuple[str, str] | None = None,
    ) -> str:
        """Remind the parent the day before the party."""
        lines = [
            f"Dobrý den, {parent_name}!",
            f"Zítra je velký den! Oslava {child_name} je už za rohem.",
            f"Datum: {format_date(party_date)}",
            f"Čas: {party_time}",
            f"Místo: {venue}",
        ]
        if allergies:
            lines.append(f"Alergie a dietetika: {', '.join(allergies)}")
        if emergency_contact:
            name, phone = emergency_contact
            lines.append(f"Nouzový kontakt: {name}: {phone}")
        lines.append("Náš tým dorazí 30 minut před začátkem.")

        return self.send(
            EmailMessage(
                to=to,
                subject=f"Připomenutí: Oslava {child_name} - ZÍTRA",
                text="\n".join(lines),
                html=_paragraphs(*(html.escape(line) for line in lines)),
            )
        )

    def send_feedback_request(
        self,
        *,
        to: str,
        parent_name: str,
        child_name: str,
        feedback_url: str,
    ) -> str:
        """Ask for feedback the day after the party."""
        lines = [
            f"Dobrý den, {parent_name}!",
            f"Děkujeme, že jste oslavu {child_name} slavili s námi.",
            f"Budeme rádi za Vaše hodnocení: {feedback_url}",
        ]
        return self.send(
            EmailMessage(
                to=to,
                subject=f"Jak se líbila oslava {child_name}?",
                text="\n".join(lines),
                html=_paragraphs(*(html.escape(line) for line in lines)),
            )
        )

    def send_payment_due_reminder(
        self,
        *,
        to: str,
        contact_name: str,
        order_number: str,
        amount: int,
        due_date: date,
        payment_type: PaymentType,
    ) -> str:
        """Remind the customer of an upcoming payment."""
        type_text = "zálohy" if payment_type == PaymentType.DEPOSIT else "doplatku"
        lines = [
            f"Dobrý den, {contact_name}!",
            f"Připomínáme splatnost {type_text} k objednávce {order_number}.",
            f"Částka: {self._amount(amount)}",
            f"Splatnost: {format_date(due_date)}",
        ]
        return self.send(
            EmailMessage(
                to=to,
                subject=f"Připomenutí platby - objednávka {order_number}",
                text="\n".join(lines),
                html=_paragraphs(*(html.escape(line) for line in lines)),
            )
        )


@lru_cache(maxsize=1)
def get_notification_service() -> NotificationService:
    """Get the shared NotificationService instance."""
    return NotificationService()
