"""
Opportunity Background Jobs

1. Remind confirmed volunteers of events starting in the next 24 to 48 hours
2. Complete active opportunities more than a day past their date

Both run hourly and are idempotent: a reminded opportunity carries
``reminder_sent_at`` and a completed one is no longer ACTIVE. Each job
opens its own database session. One failing opportunity does not stop
the rest.
"""

import logging
from datetime import timedelta
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from app.core.database import async_session_maker
from app.core.email import send_event_reminder
from app.core.scheduler import register_job
from app.core.side_effects import run_best_effort
from app.modules.opportunities import repository
from app.modules.opportunities.models import Opportunity, OpportunityStatus
from app.modules.shared import utcnow
from app.modules.signups import repository as signup_repository
from app.modules.signups.models import SignupStatus

logger = logging.getLogger(__name__)

REMINDER_WINDOW_START_HOURS = 24
REMINDER_WINDOW_END_HOURS = 48
COMPLETE_AFTER = timedelta(days=1)

JOB_ID_SEND_REMINDERS = "opportunities_send_reminders"
JOB_ID_COMPLETE_PAST = "opportunities_complete_past"


def _event_time(opportunity: Opportunity) -> str:
    when = opportunity.date.strftime("%A, %B %d, %Y")
    if opportunity.start_time:
        when = f"{when} at {opportunity.start_time}"
    return when


async def _remind_volunteers(opportunity: Opportunity, emails: list[str]) -> int:
    sent = 0
    for to_email in emails:
        if await run_best_effort(
            f"event reminder for {opportunity.id}",
            send_event_reminder,
            to_email,
            opportunity.title,
            _event_time(opportunity),
            opportunity.location or opportunity.address or "See event details",
        ):
            sent += 1
    return sent


async def send_event_reminders() -> dict[str, Any]:
    """Email confirmed volunteers of events 24 to 48 hours away, once per event."""
    now = utcnow()
    window_start = now + timedelta(hours=REMINDER_WINDOW_START_HOURS)
    window_end = now + timedelta(hours=REMINDER_WINDOW_END_HOURS)

    processed = 0
    emails_sent = 0
    failed = 0

    async with async_session_maker() as db:
        opportunities = await repository.list_needing_reminder(db, window_start, window_end)
        logger.info(f"Found {len(opportunities)} opportunities needing reminders")

        for opportunity in opportunities:
            try:
                signups = await signup_repository.list_by_status(
                    db, opportunity.id, [SignupStatus.CONFIRMED]
                )
                emails = [
                    s.user.email for s in signups if s.user is not None and s.user.email_notifications
                ]
                # Marked first so a crash mid-send never repeats the reminder
                opportunity.reminder_sent_at = now
                await db.commit()

                emails_sent += await _remind_volunteers(opportunity, emails)
                processed += 1
            except Exception as e:
                await db.rollback()
                failed += 1
                logger.error(
                    f"Failed to send reminders for opportunity {opportunity.id}: {e}",
                    exc_info=True,
                )

    logger.info(
        f"Event reminders complete: {processed} opportunities, {emails_sent} emails, {failed} failed"
    )
    return {"processed": processed, "emails_sent": emails_sent, "failed": failed}


async def complete_past_opportunities() -> dict[str, Any]:
    """Mark ACTIVE opportunities dated more than a day ago as COMPLETED."""
    cutoff = utcnow() - COMPLETE_AFTER

    async with async_session_maker() as db:
        opportunities = await repository.list_active_before(db, cutoff)
        for opportunity in opportunities:
            opportunity.status = OpportunityStatus.COMPLETED
        await db.commit()

    if opportunities:
        logger.info(f"Completed {len(opportunities)} past opportunities")
    return {"completed": len(opportunities)}


def register_opportunity_jobs() -> None:
    """Register the opportunity jobs to run hourly."""
    register_job(JOB_ID_SEND_REMINDERS, send_event_reminders, IntervalTrigger(hours=1))
    register_job(JOB_ID_COMPLETE_PAST, complete_past_opportunities, IntervalTrigger(hours=1))
    logger.info("Registered opportunity background jobs")
