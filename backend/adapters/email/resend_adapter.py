"""
Resend email service adapter.
"""

import logging
from html import escape

import resend

from core.utils.numbers import format_currency
from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


class ResendEmailService:
    """Email service using Resend API."""

    def __init__(self):
        if settings.resend_api_key:
            resend.api_key = settings.resend_api_key
        self._from_email = settings.resend_from_email
        self._support_email = settings.support_email
        self._frontend_url = settings.frontend_url

    @property
    def is_configured(self) -> bool:
        return bool(settings.resend_api_key)

    def status(self) -> dict:
        """Non-secret configuration summary for the contact status endpoint."""
        return {
            "provider": "resend",
            "configured": self.is_configured,
            "from_email": self._from_email,
        }

    def _send(self, kind: str, to_email: str, subject: str, html: str, **extra) -> bool:
        if not self.is_configured:
            logger.info("[DEV] %s email for %s: %s", kind, to_email, subject)
            return True

        params = {
            "from": self._from_email,
            "to": to_email,
            "subject": subject,
            "html": html,
        }
        params.update(extra)
        try:
            resend.Emails.send(params)
            return True
        except Exception as e:
            logger.error("Failed to send %s email to %s: %s", kind, to_email, e)
            return False

    async def send_booking_confirmation_email(
        self,
        to_email: str,
        customer_name: str,
        booking_number: str,
        hospital_name: str,
        package_name: str,
        start_date: str,
        price: float,
    ) -> bool:
        """
        Send a booking confirmation to the customer.

        Returns:
            True if sent successfully, False otherwise
        """
        return self._send(
            "booking confirmation",
            to_email,
            f"Booking confirmed: {booking_number}",
            self._get_booking_confirmation_html(
                customer_name, booking_number, hospital_name, package_name, start_date, price
            ),
        )

    async def send_booking_reminder_email(
        self,
        to_email: str,
        customer_name: str,
        booking_number: str,
        hospital_name: str,
        start_date: str,
    ) -> bool:
        """Remind the customer of an appointment starting tomorrow."""
        return self._send(
            "booking reminder",
            to_email,
            f"Reminder: your appointment at {hospital_name} is tomorrow",
            self._get_booking_reminder_html(customer_name, booking_number, hospital_name, start_date),
        )

    async def send_newsletter_welcome_email(
        self,
        to_email: str,
        unsubscribe_token: str,
        returning: bool = False,
    ) -> bool:
        """
        Send the newsletter welcome (or welcome-back) email.

        Args:
            to_email: Subscriber address
            unsubscribe_token: Token embedded in the unsubscribe link
            returning: True when a previously unsubscribed address resubscribes
        """
        subject = "Welcome back to the MediBook newsletter" if returning else "Welcome to the MediBook newsletter"
        return self._send(
            "newsletter welcome",
            to_email,
            subject,
            self._get_newsletter_welcome_html(unsubscribe_token, returning),
        )

    async def send_contact_email(self, name: str, email: str, message: str) -> bool:
        """Forward a contact-form submission to the support inbox."""
        return self._send(
            "contact",
            self._support_email,
            f"Contact form: {name}",
            self._get_contact_html(name, email, message),
            reply_to=email,
        )

    def _layout(self, title: str, body: str) -> str:
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background-color: #F4F8FB; padding: 40px 20px;">
            <div style="max-width: 560px; margin: 0 auto; background: white; border-radius: 16px; padding: 40px; box-shadow: 0 2px 8px rgba(0,0,0,0.05);">
                <div style="text-align: center; margin-bottom: 32px;">
                    <h1 style="color: #0B3C5D; font-size: 24px; margin: 16px 0 0;">MediBook</h1>
                </div>
                <h2 style="color: #0B3C5D; font-size: 20px; margin-bottom: 16px;">{title}</h2>
                {body}
                <hr style="border: none; border-top: 1px solid #EEF2F5; margin: 32px 0;">
                <p style="color: #8B95A7; font-size: 12px; text-align: center;">
                    Need help? Reply to this email or visit our help center.
                </p>
            </div>
        </body>
        </html>
        """

    def _get_booking_confirmation_html(
        self,
        customer_name: str,
        booking_number: str,
        hospital_name: str,
        package_name: str,
        start_date: str,
        price: float,
    ) -> str:
        body = f"""
                <p style="color: #4A5568; line-height: 1.6; margin-bottom: 24px;">
                    Hi {escape(customer_name)},<br><br>
                    Thank you for your booking. Here are your details:
                </p>
                <div style="background: #F8F9FA; border-radius: 12px; padding: 24px; margin-bottom: 24px;">
                    <p style="margin: 0 0 8px;"><strong>Booking number:</strong> {escape(booking_number)}</p>
                    <p style="margin: 0 0 8px;"><strong>Hospital:</strong> {escape(hospital_name)}</p>
                    <p style="margin: 0 0 8px;"><strong>Package:</strong> {escape(package_name)}</p>
                    <p style="margin: 0 0 8px;"><strong>Start date:</strong> {escape(start_date)}</p>
                    <p style="margin: 0;"><strong>Total:</strong> {format_currency(price)}</p>
                </div>
                <div style="text-align: center; margin: 32px 0;">
                    <a href="{self._frontend_url}/dashboard/bookings" style="display: inline-block; background: #1A73E8; color: white; text-decoration: none; padding: 14px 32px; border-radius: 12px; font-weight: 500;">
                        View my bookings
                    </a>
                </div>
        """
        return self._layout("Your booking is received", body)

    def _get_booking_reminder_html(
        self, customer_name: str, booking_number: str, hospital_name: str, start_date: str
    ) -> str:
        body = f"""
                <p style="color: #4A5568; line-height: 1.6; margin-bottom: 24px;">
                    Hi {escape(customer_name)},<br><br>
                    This is a reminder that your booking <strong>{escape(booking_number)}</strong>
                    at {escape(hospital_name)} starts on {escape(start_date)}.
                </p>
        """
        return self._layout("See you tomorrow", body)

    def _get_newsletter_welcome_html(self, unsubscribe_token: str, returning: bool) -> str:
        unsubscribe_url = f"{self._frontend_url}/newsletter/unsubscribe?token={unsubscribe_token}"
        intro = (
            "Good to have you back! Your subscription is active again."
            if returning
            else "Thanks for subscribing. You'll get health tips, hospital news and exclusive promotions."
        )
        body = f"""
                <p style="color: #4A5568; line-height: 1.6; margin-bottom: 24px;">{intro}</p>
                <p style="color: #8B95A7; font-size: 12px; text-align: center;">
                    Don't want these emails? <a href="{unsubscribe_url}">Unsubscribe</a>.
                </p>
        """
        return self._layout("Newsletter", body)

    def _get_contact_html(self, name: str, email: str, message: str) -> str:
        safe_message = escape(message).replace("\n", "<br>")
        body = f"""
                <p><strong>From:</strong> {escape(name)} &lt;{escape(email)}&gt;</p>
                <div style="background: #F8F9FA; border-radius: 12px; padding: 24px;">{safe_message}</div>
        """
        return self._layout("New contact form message", body)


email_service = ResendEmailService()
