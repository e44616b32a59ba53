"""Tests for request authentication and course-access checks."""

from uuid import uuid4

import pytest

from coursegate.core.modules.access.models import AuthContext
from coursegate.core.modules.token.jwt import create_access_token
from coursegate.errors import (
    AccessDeniedError,
    AuthenticationError,
    EntitlementExpiredError,
    SessionInvalidError,
)


@pytest.fixture
def token_for(config):
    def factory(identity_id):
        return create_access_token(identity_id, config.secret_key, config.jwt_algorithm, 60)

    return factory


class TestEnsureAuthenticated:
    async def test_valid_session(self, services, student, laptop, token_for):
        await services.session.establish(student.id, laptop)
        identity = await services.access.ensure_authenticated(AuthContext(token=token_for(student.id), device=laptop))
        assert identity.id == student.id

    async def test_token_without_session(self, services, student, laptop, token_for):
        """Test that a valid token alone does not authenticate after logout."""
        with pytest.raises(SessionInvalidError) as exc_info:
            await services.access.ensure_authenticated(AuthContext(token=token_for(student.id), device=laptop))
        assert exc_info.value.code == "NO_SESSION"

    async def test_other_device(self, services, student, laptop, phone, token_for):
        await services.session.establish(student.id, laptop)
        with pytest.raises(SessionInvalidError) as exc_info:
            await services.access.ensure_authenticated(AuthContext(token=token_for(student.id), device=phone))
        assert exc_info.value.code == "DEVICE_MISMATCH"

    async def test_timeout(self, services, student, laptop, token_for, clock):
        await services.session.establish(student.id, laptop)
        clock.advance(minutes=31)
        with pytest.raises(SessionInvalidError) as exc_info:
            await services.access.ensure_authenticated(AuthContext(token=token_for(student.id), device=laptop))
        assert exc_info.value.code == "TIMEOUT"
        assert "inactivity" in str(exc_info.value)

    async def test_unknown_identity(self, services, laptop, token_for):
        with pytest.raises(AuthenticationError):
            await services.access.ensure_authenticated(AuthContext(token=token_for(uuid4()), device=laptop))

    async def test_blocked_identity(self, services, student, laptop, token_for):
        await services.session.establish(student.id, laptop)
        await services.identity.toggle_status(student.id)
        with pytest.raises(AccessDeniedError):
            await services.access.ensure_authenticated(AuthContext(token=token_for(student.id), device=laptop))

    async def test_non_admin(self, services, student, laptop, token_for):
        await services.session.establish(student.id, laptop)
        with pytest.raises(AccessDeniedError, match="Admin privileges required"):
            await services.access.ensure_admin(AuthContext(token=token_for(student.id), device=laptop))


class TestEnsureCourseAccess:
    async def test_live_access(self, services, student):
        course_id = uuid4()
        await services.entitlement.grant(student.id, course_id)
        access = await services.access.ensure_course_access(student, course_id)
        assert not access.expired

    async def test_not_enrolled(self, services, student):
        with pytest.raises(EntitlementExpiredError, match="not enrolled") as exc_info:
            await services.access.ensure_course_access(student, uuid4())
        assert exc_info.value.granted_at is None

    async def test_expired_carries_dates(self, services, student, clock):
        course_id = uuid4()
        await services.entitlement.grant(student.id, course_id)
        granted_at = clock.current
        clock.advance(days=181)

        with pytest.raises(EntitlementExpiredError, match="expired") as exc_info:
            await services.access.ensure_course_access(student, course_id)
        assert exc_info.value.granted_at == granted_at
        assert exc_info.value.expires_at > granted_at
