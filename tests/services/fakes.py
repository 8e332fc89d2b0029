"""Test doubles shared by service and route tests."""

from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

T0 = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class RecordingNotifier:
    """Notifier fake that records every message; fail=True simulates an outage."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to_email: str, subject: str, body: str) -> bool:
        if self.fail:
            return False
        self.sent.append({"to": to_email, "subject": subject, "body": body})
        return True

    def to(self, email: str) -> list[dict]:
        return [m for m in self.sent if m["to"] == email]


class FakeClock:
    """Controllable clock for workflows that take `clock=`."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def auth(user) -> dict:
    return {"X-User-Id": str(user.id)}


class FailFirstCommit:
    """The first commit across every patched session raises a transient OperationalError."""

    def __init__(self):
        self.failed = False

    def patch(self, session):
        real_commit = session.commit

        async def commit():
            if not self.failed:
                self.failed = True
                raise OperationalError("COMMIT", {}, Exception("database is locked"))
            await real_commit()

        session.commit = commit
        return session
