"""
Unit tests for the opportunity background jobs.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.modules.opportunities.jobs import (
    JOB_ID_COMPLETE_PAST,
    JOB_ID_SEND_REMINDERS,
    complete_past_opportunities,
    register_opportunity_jobs,
    send_event_reminders,
)
from app.modules.opportunities.models import OpportunityStatus
from app.modules.signups.models import SignupStatus
from tests.factories import NOW, make_opportunity, make_signup, make_student

JOBS = "app.modules.opportunities.jobs"


def _session_maker(db):
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=db)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=context)


class TestSendEventReminders:
    @pytest.mark.asyncio
    async def test_reminds_opted_in_volunteers_once(self, mock_db):
        opportunity = make_opportunity(date=NOW + timedelta(hours=30), start_time="9:00 AM")
        signups = [
            make_signup(opportunity=opportunity),
            make_signup(opportunity=opportunity, student=make_student(email_notifications=False)),
        ]

        with (
            patch(f"{JOBS}.async_session_maker", _session_maker(mock_db)),
            patch(f"{JOBS}.repository") as mock_repo,
            patch(f"{JOBS}.signup_repository") as mock_signups,
            patch(f"{JOBS}.send_event_reminder", new_callable=AsyncMock) as mock_send,
            patch(f"{JOBS}.utcnow", return_value=NOW),
        ):
            mock_repo.list_needing_reminder = AsyncMock(return_value=[opportunity])
            mock_signups.list_by_status = AsyncMock(return_value=signups)
            mock_send.return_value = True

            result = await send_event_reminders()

        assert result == {"processed": 1, "emails_sent": 1, "failed": 0}
        mock_repo.list_needing_reminder.assert_awaited_once_with(
            mock_db, NOW + timedelta(hours=24), NOW + timedelta(hours=48)
        )
        mock_signups.list_by_status.assert_awaited_once_with(
            mock_db, opportunity.id, [SignupStatus.CONFIRMED]
        )
        assert opportunity.reminder_sent_at == NOW
        assert mock_send.await_args.args[2].endswith("at 9:00 AM")

    @pytest.mark.asyncio
    async def test_failed_email_still_marks_reminder(self, mock_db):
        opportunity = make_opportunity(date=NOW + timedelta(hours=30))

        with (
            patch(f"{JOBS}.async_session_maker", _session_maker(mock_db)),
            patch(f"{JOBS}.repository") as mock_repo,
            patch(f"{JOBS}.signup_repository") as mock_signups,
            patch(f"{JOBS}.send_event_reminder", new_callable=AsyncMock) as mock_send,
            patch(f"{JOBS}.utcnow", return_value=NOW),
        ):
            mock_repo.list_needing_reminder = AsyncMock(return_value=[opportunity])
            mock_signups.list_by_status = AsyncMock(
                return_value=[make_signup(opportunity=opportunity)]
            )
            mock_send.side_effect = RuntimeError("provider down")

            result = await send_event_reminders()

        assert result == {"processed": 1, "emails_sent": 0, "failed": 0}
        assert opportunity.reminder_sent_at == NOW

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_rest(self, mock_db):
        broken = make_opportunity()
        healthy = make_opportunity()

        async def list_by_status(db, opportunity_id, statuses):
            if opportunity_id == broken.id:
                raise RuntimeError("query failed")
            return []

        with (
            patch(f"{JOBS}.async_session_maker", _session_maker(mock_db)),
            patch(f"{JOBS}.repository") as mock_repo,
            patch(f"{JOBS}.signup_repository") as mock_signups,
            patch(f"{JOBS}.utcnow", return_value=NOW),
        ):
            mock_repo.list_needing_reminder = AsyncMock(return_value=[broken, healthy])
            mock_signups.list_by_status = AsyncMock(side_effect=list_by_status)

            result = await send_event_reminders()

        assert result == {"processed": 1, "emails_sent": 0, "failed": 1}
        mock_db.rollback.assert_awaited_once()
        assert broken.reminder_sent_at is None
        assert healthy.reminder_sent_at == NOW


class TestCompletePastOpportunities:
    @pytest.mark.asyncio
    async def test_completes_active_opportunities_past_cutoff(self, mock_db):
        past = [make_opportunity(date=NOW - timedelta(days=3)) for _ in range(2)]

        with (
            patch(f"{JOBS}.async_session_maker", _session_maker(mock_db)),
            patch(f"{JOBS}.repository") as mock_repo,
            patch(f"{JOBS}.utcnow", return_value=NOW),
        ):
            mock_repo.list_active_before = AsyncMock(return_value=past)

            result = await complete_past_opportunities()

        assert result == {"completed": 2}
        mock_repo.list_active_before.assert_awaited_once_with(mock_db, NOW - timedelta(days=1))
        assert all(o.status == OpportunityStatus.COMPLETED for o in past)
        mock_db.commit.assert_awaited_once()


class TestRegisterOpportunityJobs:
    def test_registers_both_jobs(self):
        with patch(f"{JOBS}.register_job") as mock_register:
            register_opportunity_jobs()

        registered = [call.args[0] for call in mock_register.call_args_list]
        assert registered == [JOB_ID_SEND_REMINDERS, JOB_ID_COMPLETE_PAST]
