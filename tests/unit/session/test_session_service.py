"""Tests for SessionService against the in-memory identity store."""

import asyncio
from datetime import timedelta
from uuid import uuid4

from coursegate.core.modules.device.fingerprint import fingerprint
from coursegate.core.modules.entitlement.models import Entitlement
from coursegate.core.modules.session.models import Location, SessionCheck


class TestEstablish:
    async def test_establish_stores_session(self, services, student, laptop, clock):
        secret = await services.session.establish(student.id, laptop, "10.0.0.1", Location(country="Germany", city="Berlin"))

        identity = await services.identity.get_identity(student.id)
        assert identity.is_online
        assert identity.last_login_at == clock.current
        session = identity.active_session
        assert session is not None
        assert session.device_fingerprint == fingerprint(laptop)
        assert session.device_description == "Chrome on Windows (desktop)"
        assert session.login_at == session.last_activity_at == clock.current
        assert session.source_address == "10.0.0.1"
        assert session.location.city == "Berlin"
        assert session.session_secret == secret
        assert len(secret) == 64

    async def test_establish_replaces_previous_session(self, services, student, laptop, phone):
        first = await services.session.establish(student.id, laptop)
        second = await services.session.establish(student.id, phone)

        identity = await services.identity.get_identity(student.id)
        assert first != second
        assert identity.active_session.device_fingerprint == fingerprint(phone)

    async def test_establish_resets_login_attempts(self, services, student, laptop):
        await services.identity.record_failed_login(student.id)
        await services.session.establish(student.id, laptop)

        identity = await services.identity.get_identity(student.id)
        assert identity.login_attempts.count == 0


class TestValidate:
    async def test_ok_touches_activity(self, services, student, laptop, clock):
        await services.session.establish(student.id, laptop)
        clock.advance(minutes=10)

        result, identity = await services.session.validate(student.id, fingerprint(laptop))

        assert result == SessionCheck.OK
        assert identity.active_session.last_activity_at == clock.current
        stored = await services.identity.get_identity(student.id)
        assert stored.active_session.last_activity_at == clock.current

    async def test_activity_keeps_session_alive(self, services, student, laptop, clock):
        """Test that requests every 20 minutes never time out."""
        await services.session.establish(student.id, laptop)
        for _ in range(5):
            clock.advance(minutes=20)
            result, _ = await services.session.validate(student.id, fingerprint(laptop))
            assert result == SessionCheck.OK

    async def test_no_session_before_login(self, services, student, laptop):
        result, _ = await services.session.validate(student.id, fingerprint(laptop))
        assert result == SessionCheck.NO_SESSION

    async def test_timeout_clears_session(self, services, student, laptop, clock):
        await services.session.establish(student.id, laptop)
        clock.advance(minutes=31)

        result, identity = await services.session.validate(student.id, fingerprint(laptop))

        assert result == SessionCheck.TIMEOUT
        assert not identity.is_online
        stored = await services.identity.get_identity(student.id)
        assert not stored.is_online
        assert stored.active_session is None

        result, _ = await services.session.validate(student.id, fingerprint(laptop))
        assert result == SessionCheck.NO_SESSION

    async def test_idle_29_minutes_is_ok(self, services, student, laptop, clock):
        await services.session.establish(student.id, laptop)
        clock.advance(minutes=29)
        result, _ = await services.session.validate(student.id, fingerprint(laptop))
        assert result == SessionCheck.OK

    async def test_device_switch_invalidates_old_device(self, services, student, laptop, phone, clock):
        """Laptop session, forced login from the phone, then the laptop's next request."""
        await services.session.establish(student.id, laptop)
        clock.advance(minutes=5)

        conflict = await services.session.get_login_conflict(student.id, fingerprint(phone))
        assert conflict is not None
        assert conflict.active_device_description == "Chrome on Windows (desktop)"

        assert await services.session.force_logout(student.id)
        await services.session.establish(student.id, phone)
        clock.advance(minutes=1)

        result, _ = await services.session.validate(student.id, fingerprint(laptop))
        assert result == SessionCheck.DEVICE_MISMATCH
        stored = await services.identity.get_identity(student.id)
        assert not stored.is_online
        assert stored.active_session is None

    async def test_validate_flags_lapsed_entitlements(self, services, core, student, laptop, clock):
        """Test that the session touch also persists expiry flags for lapsed entitlements."""
        course_id = uuid4()
        lapsed = Entitlement(
            course_id=course_id,
            granted_at=clock.current - timedelta(days=200),
            expires_at=clock.current - timedelta(days=20),
        )
        await core.database.get_collection("identities").update_one(
            {"_id": student.id}, {"$set": {"entitlements": [lapsed.model_dump()]}}
        )
        await services.session.establish(student.id, laptop)

        result, identity = await services.session.validate(student.id, fingerprint(laptop))

        assert result == SessionCheck.OK
        assert identity.entitlements[0].expired
        stored = await services.identity.get_identity(student.id)
        assert stored.entitlements[0].expired

    async def test_concurrent_validations(self, services, student, laptop, clock):
        await services.session.establish(student.id, laptop)
        clock.advance(minutes=1)

        results = await asyncio.gather(*(services.session.validate(student.id, fingerprint(laptop)) for _ in range(10)))

        assert all(result == SessionCheck.OK for result, _ in results)


class TestLogout:
    async def test_force_logout_reports_previous_state(self, services, student, laptop):
        assert not await services.session.force_logout(student.id)
        await services.session.establish(student.id, laptop)
        assert await services.session.force_logout(student.id)
        assert not await services.session.force_logout(student.id)

    async def test_logout_clears_session(self, services, student, laptop):
        await services.session.establish(student.id, laptop)
        await services.session.logout(student.id)

        stored = await services.identity.get_identity(student.id)
        assert not stored.is_online
        assert stored.active_session is None


class TestCleanupInactiveSessions:
    async def test_clears_only_idle_sessions(self, services, student, laptop, phone, clock):
        other = await services.identity.register("Bob Student", "bob@example.com", "secret-pass")
        await services.session.establish(student.id, laptop)
        clock.advance(minutes=45)
        await services.session.establish(other.id, phone)
        clock.advance(minutes=20)

        cleared = await services.session.cleanup_inactive_sessions()

        assert cleared == 1
        assert not (await services.identity.get_identity(student.id)).is_online
        assert (await services.identity.get_identity(other.id)).is_online

    async def test_nothing_to_clear(self, services, student, laptop, clock):
        await services.session.establish(student.id, laptop)
        clock.advance(minutes=59)
        assert await services.session.cleanup_inactive_sessions() == 0


class TestSessionInspector:
    async def test_lists_online_identities_most_recent_first(self, services, student, laptop, phone, clock):
        other = await services.identity.register("Bob Student", "bob@example.com", "secret-pass")
        await services.session.establish(student.id, laptop, "10.0.0.1")
        clock.advance(minutes=2)
        await services.session.establish(other.id, phone, "10.0.0.2")

        sessions = await services.inspector.list_active_sessions()

        assert [s.identity_id for s in sessions] == [other.id, student.id]
        assert sessions[0].device_description == "Safari on Ios (mobile)"
        assert sessions[1].source_address == "10.0.0.1"

    async def test_empty_when_nobody_online(self, services, student):
        assert await services.inspector.list_active_sessions() == []
