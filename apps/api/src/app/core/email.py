"""
Email Service using Resend

Transactional emails for hour verification, waitlist and classroom events.
"""

import asyncio
import logging
from html import escape

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Resend with API key
resend.api_key = settings.resend_api_key

EMAIL_FROM = settings.email_from
FRONTEND_URL = settings.frontend_url


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if the email was sent (or logged when no API key is set)
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def _render(heading: str, body_html: str, button_label: str, button_path: str) -> str:
    """Wrap already-escaped body HTML in the shared layout."""
    url = f"{FRONTEND_URL}{button_path}"
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: #166534; margin-bottom: 24px; }}
            .button {{ display: inline-block; background-color: #166534; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{heading}</h1>
            <p>{body_html}</p>
            <a href="{url}" class="button">{button_label}</a>
            <div class="footer">
                <p>You can turn off email notifications in your GoodHours settings.</p>
                <p>GoodHours - Community Service Tracking</p>
            </div>
        </div>
    </body>
    </html>
    """


def _plural_hours(hours: float) -> str:
    return f"{hours:g} hour" if hours == 1 else f"{hours:g} hours"


async def send_hours_approved(
    to_email: str,
    organization_name: str,
    hours: float,
    opportunity_title: str,
) -> bool:
    """Tell a student their hours were approved."""
    body = (
        f"<strong>{escape(organization_name)}</strong> has approved your "
        f"<strong>{_plural_hours(hours)}</strong> for <em>{escape(opportunity_title)}</em>. "
        "They've been added to your verified hours total."
    )
    return await send_email(
        to_email=to_email,
        subject="Your volunteer hours have been approved",
        html_content=_render("Hours approved!", body, "View Dashboard", "/dashboard"),
    )


async def send_hours_removed(
    to_email: str,
    hours: float,
    opportunity_title: str,
    reason: str,
) -> bool:
    """Tell a student that school staff removed previously credited hours."""
    body = (
        f"Your school has removed <strong>{_plural_hours(hours)}</strong> previously "
        f"credited for <em>{escape(opportunity_title)}</em>.<br><br>"
        f"Reason: {escape(reason)}<br><br>"
        "If you have questions, please contact your classroom teacher."
    )
    return await send_email(
        to_email=to_email,
        subject="Your volunteer hours have been removed",
        html_content=_render("Hours removed", body, "View Dashboard", "/dashboard"),
    )


async def send_spot_available(to_email: str, opportunity_title: str) -> bool:
    """Tell a waitlisted student they have been promoted to a confirmed spot."""
    body = (
        f"A spot opened up for <strong>{escape(opportunity_title)}</strong> "
        "and you've been moved off the waitlist. You're now confirmed!"
    )
    return await send_email(
        to_email=to_email,
        subject=f"You're confirmed for {opportunity_title}",
        html_content=_render("A spot opened up", body, "View Event", "/dashboard"),
    )


async def send_opportunity_cancelled(to_email: str, opportunity_title: str) -> bool:
    """Tell a signed-up student that the organization cancelled the event."""
    body = (
        f"<strong>{escape(opportunity_title)}</strong> has been cancelled by the organizer. "
        "Browse other opportunities to keep earning hours."
    )
    return await send_email(
        to_email=to_email,
        subject=f"Cancelled: {opportunity_title}",
        html_content=_render("Opportunity cancelled", body, "Browse Opportunities", "/browse"),
    )


async def send_student_left_classroom(
    to_email: str,
    student_name: str,
    classroom_name: str,
) -> bool:
    """Tell a teacher that a student left their classroom."""
    body = (
        f"<strong>{escape(student_name)}</strong> has left <strong>{escape(classroom_name)}</strong>. "
        "Their verified hours remain on record."
    )
    return await send_email(
        to_email=to_email,
        subject=f"{student_name} has left your classroom",
        html_content=_render("Student left classroom", body, "View Classroom", "/groups"),
    )


async def send_organization_approved(to_email: str, school_name: str) -> bool:
    """Tell organization admins that a school approved them."""
    body = (
        f"<strong>{escape(school_name)}</strong> has approved your organization. "
        "Its students will now see your opportunities first."
    )
    return await send_email(
        to_email=to_email,
        subject=f"{school_name} approved your organization",
        html_content=_render("You're approved!", body, "View Dashboard", "/dashboard"),
    )


async def send_event_reminder(
    to_email: str,
    opportunity_title: str,
    event_time: str,
    location: str,
) -> bool:
    """Remind a confirmed student about an upcoming event."""
    body = (
        f"Don't forget, you're signed up for <strong>{escape(opportunity_title)}</strong>.<br><br>"
        f"When: {escape(event_time)}<br>"
        f"Where: {escape(location)}"
    )
    return await send_email(
        to_email=to_email,
        subject=f"Reminder: {opportunity_title} is coming up",
        html_content=_render("Upcoming volunteer event", body, "View Event", "/dashboard"),
    )
