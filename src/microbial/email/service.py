"""Transactional email for campaigns using SendGrid dynamic templates."""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any
from urllib.parse import urlsplit

import httpx

from microbial.logging_config import get_logger
from microbial.settings import settings
from microbial.storage.models import Campaign, Contact

logger = get_logger(__name__)


def referral_link(referral_url: str | None, code: str) -> str:
    """Append ``code=<code>`` to a campaign's referral URL."""
    if not referral_url:
        return ""
    separator = "&" if urlsplit(referral_url).query else "?"
    return f"{referral_url}{separator}code={code}"


class EmailService:
    """Fire-and-forget email dispatch through SendGrid.

    ``send`` hands the HTTP call to a small thread pool and returns at once.
    The outcome of a delivery is only logged; it never reaches the caller.
    """

    SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        max_workers: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize email service.

        Args:
            api_key: SendGrid API key (defaults to settings)
            from_email: Sender address (defaults to settings)
            from_name: Sender display name (defaults to settings)
            max_workers: Size of the delivery thread pool
            transport: Optional httpx transport, used by tests
        """
        self.api_key = api_key if api_key is not None else settings.sendgrid_api_key
        self.from_email = from_email or settings.sendgrid_from_email
        self.from_name = from_name or settings.sendgrid_from_name
        self.enabled = bool(self.api_key)
        self._transport = transport
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.mail_workers,
            thread_name_prefix="mail",
        )

        if not self.enabled:
            logger.warning("email_service_disabled", reason="SENDGRID_API_KEY not set")

    def _deliver(self, template_id: str, recipient: str, data: dict[str, Any]) -> int:
        """POST one templated message to SendGrid and return the status code."""
        payload = {
            "template_id": template_id,
            "personalizations": [
                {
                    "to": [{"email": recipient}],
                    "dynamic_template_data": data,
                }
            ],
            "from": {
                "email": self.from_email,
                "name": self.from_name,
            },
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        with httpx.Client(transport=self._transport, timeout=30.0) as client:
            response = client.post(self.SENDGRID_API_URL, json=payload, headers=headers)

        if response.status_code not in (200, 201, 202):
            raise httpx.HTTPStatusError(
                f"SendGrid returned {response.status_code}: {response.text[:200]}",
                request=response.request,
                response=response,
            )
        return response.status_code

    def send(
        self,
        template_id: str | None,
        recipient: str,
        data: dict[str, Any],
        kind: str = "email",
    ) -> Future | None:
        """Dispatch a templated email without waiting for delivery.

        Args:
            template_id: SendGrid dynamic template id
            recipient: Recipient email address
            data: Template data bag
            kind: Label used in log events (signup, nudge, ...)

        Returns:
            The pending delivery, or None if nothing was dispatched
        """
        if not self.enabled:
            logger.warning("email_not_sent", reason="service_disabled", kind=kind, to=recipient)
            return None

        if not template_id:
            logger.warning("email_not_sent", reason="no_template", kind=kind, to=recipient)
            return None

        future = self._executor.submit(self._deliver, template_id, recipient, data)

        def _observe(done: Future) -> None:
            error = done.exception()
            if error is not None:
                logger.error("email_send_failed", kind=kind, to=recipient, error=str(error))
            else:
                logger.info("email_sent", kind=kind, to=recipient, status=done.result())

        future.add_done_callback(_observe)
        return future

    def send_signup_mail(self, campaign: Campaign, contact: Contact) -> Future | None:
        """Confirm a signup and hand the contact their own referral link."""
        return self.send(
            campaign.signup_template_id,
            contact.email,
            {
                "referral_link": referral_link(campaign.referral_url, contact.referral_code),
                "name": contact.name or "",
                "email": contact.email,
                "referral_code": contact.referral_code,
            },
            kind="signup",
        )

    def send_nudge(self, campaign: Campaign, referrer: Contact, contact: Contact) -> Future | None:
        """Tell a referrer that someone signed up with their code."""
        return self.send(
            campaign.nudge_template_id,
            referrer.email,
            {
                "referral_link": referral_link(campaign.referral_url, referrer.referral_code),
                "referrers_count": len(referrer.referred_contacts or []),
                "name": referrer.name or "",
                "email": referrer.email,
                "referral_code": referrer.referral_code,
                "microbe_name": contact.name or "",
                "microbe_email": contact.email,
                "microbe_referral_code": contact.referral_code,
            },
            kind="nudge",
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting deliveries; optionally wait for pending ones."""
        self._executor.shutdown(wait=wait)


# Singleton instance
email_service = EmailService()
