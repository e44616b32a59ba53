"""Tests for expiry notice templates."""

from datetime import UTC, datetime
from uuid import uuid4

from coursegate.core.modules.notification.models import ExpiryNotice, NoticeUrgency, NotificationType
from coursegate.core.modules.notification.rendering import notification_type, render_notice


def make_notice(urgency: NoticeUrgency = NoticeUrgency.MEDIUM, days_remaining: int = 5, name: str = "Ada") -> ExpiryNotice:
    return ExpiryNotice(
        identity_id=uuid4(),
        identity_contact="ada@example.com",
        name=name,
        course_id=uuid4(),
        expires_at=datetime(2025, 6, 1, tzinfo=UTC),
        days_remaining=days_remaining,
        urgency=urgency,
    )


class TestRenderNotice:
    def test_warning(self):
        notice = make_notice()
        title, message = render_notice(notice)
        assert title == "Course access expiring soon"
        assert message == (
            f"Hi Ada, your access to course {notice.course_id} will expire in 5 days. Renew now to continue learning!"
        )

    def test_warning_singular_day(self):
        _, message = render_notice(make_notice(days_remaining=1))
        assert "will expire in 1 day." in message

    def test_urgent(self):
        notice = make_notice(urgency=NoticeUrgency.HIGH, days_remaining=1)
        title, message = render_notice(notice)
        assert title == "URGENT: Course access expires tomorrow"
        assert message.startswith("Hi Ada, your access to course")
        assert "Contact support to extend access." in message

    def test_missing_name_falls_back(self):
        _, message = render_notice(make_notice(name=""))
        assert message.startswith("Hi there,")


class TestNotificationType:
    def test_mapping(self):
        assert notification_type(make_notice(NoticeUrgency.MEDIUM)) == NotificationType.COURSE_EXPIRY_WARNING
        assert notification_type(make_notice(NoticeUrgency.HIGH)) == NotificationType.COURSE_EXPIRY_URGENT
