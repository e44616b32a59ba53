"""Liquid templates for expiry notices."""

import structlog
from liquid import Environment

from coursegate.core.modules.notification.models import ExpiryNotice, NoticeUrgency, NotificationType

logger = structlog.get_logger(__name__)

WARNING_TITLE_TEMPLATE = "Course access expiring soon"
WARNING_MESSAGE_TEMPLATE = (
    "Hi {{ name | default: 'there' }}, your access to course {{ course_id }} will expire in "
    "{{ days_remaining }} day{% if days_remaining != 1 %}s{% endif %}. Renew now to continue learning!"
)

URGENT_TITLE_TEMPLATE = "URGENT: Course access expires tomorrow"
URGENT_MESSAGE_TEMPLATE = (
    "Hi {{ name | default: 'there' }}, your access to course {{ course_id }} expires tomorrow. "
    "Contact support to extend access."
)

_env = Environment()


def notification_type(notice: ExpiryNotice) -> NotificationType:
    if notice.urgency == NoticeUrgency.HIGH:
        return NotificationType.COURSE_EXPIRY_URGENT
    return NotificationType.COURSE_EXPIRY_WARNING


def render_notice(notice: ExpiryNotice) -> tuple[str, str]:
    """Render (title, message) for a notice.

    Raises:
        ValueError: If template rendering fails
    """
    if notice.urgency == NoticeUrgency.HIGH:
        title_template, message_template = URGENT_TITLE_TEMPLATE, URGENT_MESSAGE_TEMPLATE
    else:
        title_template, message_template = WARNING_TITLE_TEMPLATE, WARNING_MESSAGE_TEMPLATE

    context = notice.model_dump(mode="json")
    try:
        title = _env.from_string(title_template).render(**context)
        message = _env.from_string(message_template).render(**context)
    except Exception as e:
        logger.exception("notice_render_failed", error=str(e), urgency=notice.urgency)
        raise ValueError(f"Failed to render notice: {e}") from e
    return title, message
