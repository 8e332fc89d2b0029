"""Verification Code Store — tests for issue, single-use verify and expiry."""

from datetime import datetime, timedelta, timezone

from trustlend.core.verification_codes import VerificationCodeStore


class _Clock:
    def __init__(self):
        self.now = datetime(2026, 4, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def _store():
    clock = _Clock()
    return VerificationCodeStore(ttl=timedelta(minutes=10), clock=clock), clock


def test_issue_returns_six_digits():
    store, _ = _store()
    code = store.issue("a@example.com", "signup")
    assert len(code) == 6 and code.isdigit()


def test_verify_succeeds_once():
    store, _ = _store()
    code = store.issue("a@example.com", "signup")
    assert store.verify("a@example.com", "signup", code)
    assert not store.verify("a@example.com", "signup", code)


def test_wrong_code_keeps_entry():
    store, _ = _store()
    code = store.issue("a@example.com", "signup")
    wrong = "000000" if code != "000000" else "111111"
    assert not store.verify("a@example.com", "signup", wrong)
    assert store.verify("a@example.com", "signup", code)


def test_email_is_case_insensitive():
    store, _ = _store()
    code = store.issue("A@Example.com", "signup")
    assert store.verify("a@example.com", "signup", code)


def test_purposes_are_separate():
    store, _ = _store()
    code = store.issue("a@example.com", "signup")
    assert not store.verify("a@example.com", "password_reset", code)


def test_reissue_replaces_previous_code():
    store, _ = _store()
    first = store.issue("a@example.com", "signup")
    second = store.issue("a@example.com", "signup")
    assert len(store) == 1
    if first != second:
        assert not store.verify("a@example.com", "signup", first)
    assert store.verify("a@example.com", "signup", second)


def test_expired_code_rejected_and_deleted():
    store, clock = _store()
    code = store.issue("a@example.com", "signup")
    clock.now += timedelta(minutes=10)
    assert not store.verify("a@example.com", "signup", code)
    assert len(store) == 0


def test_purge_expired():
    store, clock = _store()
    store.issue("a@example.com", "signup")
    clock.now += timedelta(minutes=5)
    store.issue("b@example.com", "signup")
    clock.now += timedelta(minutes=6)
    assert store.purge_expired() == 1
    assert len(store) == 1
