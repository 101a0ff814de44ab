"""HTML email templates keyed by lifecycle event."""

from html import escape
from typing import Callable, Optional

from consultations.services.availability import format_clock

THEME = {
    "primary": "#4A90E2",
    "danger": "#dc3545",
    "success": "#28a745",
    "panel": "#f8f9fa",
    "text": "#333333",
}


def _base(title: str, body: str, signature: str, accent: str = THEME["primary"]) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: {THEME['text']};">
      <h2 style="color: {accent};">{escape(title)}</h2>
      {body}
      <p>Best regards,<br>{escape(signature)}</p>
    </div>
    """


def _details(appointment) -> str:
    start = appointment.scheduled_start
    return f"""
      <div style="background: {THEME['panel']}; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <p><strong>Date:</strong> {start.strftime('%A, %d %B %Y')}</p>
        <p><strong>Time:</strong> {format_clock(start.time())}</p>
        <p><strong>Duration:</strong> {appointment.duration} minutes</p>
        <p><strong>Consultation Type:</strong> {escape(appointment.consultation_type.title())}</p>
        <p><strong>Package:</strong> {escape(appointment.package.title())}</p>
        <p><strong>Amount:</strong> &#8377;{appointment.amount}</p>
      </div>
    """


def appointment_booked_template(appointment, user, extra: dict, signature: str) -> tuple[str, str]:
    questions = "".join(
        f"<li><strong>{escape(str(item.get('question', '')))}</strong> {escape(str(item.get('answer', '')))}</li>"
        for item in appointment.client_questions or []
    )
    body = f"""
      <p>A new consultation has been booked by {escape(user.full_name)} ({escape(user.email)}).</p>
      {_details(appointment)}
      {f'<p><strong>Client questions:</strong></p><ul>{questions}</ul>' if questions else ''}
    """
    subject = f"New Appointment - {appointment.scheduled_start.strftime('%d %b %Y')} at {appointment.appointment_time}"
    return subject, _base("New Appointment Booked", body, signature)


def payment_confirmation_template(appointment, user, extra: dict, signature: str) -> tuple[str, str]:
    body = f"""
      <p>Dear {escape(user.first_name)},</p>
      <p>We have received your payment. Your consultation is confirmed.</p>
      {_details(appointment)}
      <p><strong>Payment ID:</strong> {escape(appointment.payment_id or '')}</p>
      <p><strong>Cancellation Policy:</strong> You can cancel up to 2 hours before your appointment for a full refund.</p>
    """
    return f"Payment Received - ₹{appointment.amount}", _base("Appointment Confirmed!", body, signature, THEME["success"])


def appointment_cancelled_template(appointment, user, extra: dict, signature: str) -> tuple[str, str]:
    cancelled_by = extra.get("cancelled_by", "client")
    refund = ""
    if appointment.payment_status == "refunded" and appointment.paid_at:
        refund = f"""
      <div style="background: #d4edda; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <p>Your refund of &#8377;{appointment.amount} will be processed within 5-7 business days.</p>
      </div>
        """
    body = f"""
      <p>Dear {escape(user.first_name)},</p>
      <p>Your appointment scheduled for <strong>{appointment.scheduled_start.strftime('%d %B %Y')} at
      {format_clock(appointment.scheduled_start.time())}</strong> has been cancelled.</p>
      <p><strong>Cancelled by:</strong> {'You' if cancelled_by == 'client' else 'Admin'}</p>
      {refund}
      <p>You can book a new appointment anytime through our website.</p>
    """
    subject = f"Appointment Cancelled - {appointment.scheduled_start.strftime('%d %b %Y')}"
    return subject, _base("Appointment Cancelled", body, signature, THEME["danger"])


def welcome_template(appointment, user, extra: dict, signature: str) -> tuple[str, str]:
    login_url: Optional[str] = extra.get("login_url")
    link = f'<p><a href="{escape(login_url)}">Sign in to book your first consultation</a></p>' if login_url else ""
    body = f"""
      <p>Dear {escape(user.first_name)},</p>
      <p>Welcome! Your account has been created.</p>
      {link}
    """
    return "Welcome to your consultation account", _base("Welcome", body, signature)


TEMPLATES: dict[str, Callable[..., tuple[str, str]]] = {
    "appointment_booked": appointment_booked_template,
    "payment_confirmation": payment_confirmation_template,
    "appointment_cancelled": appointment_cancelled_template,
    "welcome": welcome_template,
}

OPERATOR_TEMPLATES = frozenset({"appointment_booked"})
