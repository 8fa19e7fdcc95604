"""Notification emails sent through FastAPI-Mail."""

import logging
from html import escape

from fastapi import BackgroundTasks
from fastapi_mail import FastMail, MessageSchema

from .core import get_mail_config, get_settings

logger = logging.getLogger(__name__)


def send_email(background_tasks: BackgroundTasks, to: str, subject: str, html: str):
    """Schedule sending of a notification email."""
    background_tasks.add_task(send_email_task, to, subject, html)


async def send_email_task(to: str, subject: str, html: str) -> bool:
    """
    Send an email asynchronously.

    Delivery is best-effort: failures are logged and reported through the
    return value, never raised.

    Args:
        to (str): Recipient email address.
        subject (str): Message subject.
        html (str): HTML body.

    Returns:
        bool: ``True`` when the message was handed to the SMTP server.
    """
    settings = get_settings()
    if not settings.MAIL_ENABLED:
        logger.info("Mail disabled, skipping %r to %s", subject, to)
        return False
    message = MessageSchema(
        subject=subject,
        recipients=[to],
        body=html,
        subtype="html",
    )
    fm = FastMail(get_mail_config(settings))
    try:
        await fm.send_message(message)
    except Exception:
        logger.exception("Could not send email to %s", to)
        return False
    logger.info("Email sent to %s", to)
    return True


def notify_new_request(background_tasks: BackgroundTasks, request) -> None:
    """Tell the shelter that someone asked to adopt one of its animals."""
    animal = request.animal
    animal_name = escape(animal.name)
    send_email(
        background_tasks,
        animal.shelter.email,
        f"New adoption request for {animal.name}",
        f"""
        <html>
          <body>
            <h2>New adoption request</h2>
            <p>{escape(request.user.full_name)} ({escape(request.user.email)}) wants to adopt
            <strong>{animal_name}</strong>.</p>
            <blockquote>{escape(request.message)}</blockquote>
          </body>
        </html>
        """,
    )


def notify_status_change(background_tasks: BackgroundTasks, request) -> None:
    """Tell the requester that their request changed status."""
    animal_name = escape(request.animal.name)
    send_email(
        background_tasks,
        request.user.email,
        f"Your adoption request for {request.animal.name} is now {request.status}",
        f"""
        <html>
          <body>
            <h2>Adoption request update</h2>
            <p>Your request to adopt <strong>{animal_name}</strong>
            is now <strong>{request.status}</strong>.</p>
          </body>
        </html>
        """,
    )


def notify_admin_added(background_tasks: BackgroundTasks, user, shelter) -> None:
    """Welcome a user who was made administrator of a shelter."""
    settings = get_settings()
    shelter_name = escape(shelter.name)
    send_email(
        background_tasks,
        user.email,
        f"You are now an administrator of {shelter.name}",
        f"""
        <html>
          <body>
            <h2>Welcome to {shelter_name}</h2>
            <p>You can now manage animals and adoption requests.</p>
            <a href="{settings.BASE_URL}">Open Little Refugees</a>
          </body>
        </html>
        """,
    )
