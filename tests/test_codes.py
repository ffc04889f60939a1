"""
tests/test_codes.py -- OneTimeCodeStore expiry, attempt budget and keying.
"""
from app.auth.codes import OneTimeCodeStore


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _store(ttl=60, max_attempts=3):
    clock = FakeClock()
    return OneTimeCodeStore(ttl_seconds=ttl, max_attempts=max_attempts, clock=clock), clock


def _wrong(code):
    return "0000" if code != "0000" else "1111"


class TestOneTimeCodeStore:

    def test_issue_returns_four_digits(self):
        store, _ = _store()
        code = store.issue("a@example.com")
        assert len(code) == 4
        assert code.isdigit()
        assert 1000 <= int(code) <= 9999

    def test_verify_marks_entry(self):
        store, _ = _store()
        code = store.issue("a@example.com")
        assert not store.is_verified("a@example.com")
        assert store.verify("a@example.com", code)
        assert store.is_verified("a@example.com")

    def test_email_key_is_case_insensitive(self):
        store, _ = _store()
        code = store.issue("  Alice@Example.com ")
        assert store.verify("alice@example.com", code)

    def test_code_expires(self):
        store, clock = _store(ttl=60)
        code = store.issue("a@example.com")
        clock.now += 61
        assert not store.verify("a@example.com", code)

    def test_verified_state_expires_too(self):
        store, clock = _store(ttl=60)
        store.verify("a@example.com", store.issue("a@example.com"))
        clock.now += 60
        assert not store.is_verified("a@example.com")

    def test_attempt_budget(self):
        store, _ = _store(max_attempts=3)
        code = store.issue("a@example.com")
        for _ in range(3):
            assert not store.verify("a@example.com", _wrong(code))
        # Exhausted: even the right code is refused now
        assert not store.verify("a@example.com", code)

    def test_reissue_replaces_code(self):
        store, _ = _store()
        first = store.issue("a@example.com")
        second = store.issue("a@example.com")
        if first != second:
            assert not store.verify("a@example.com", first)
        assert store.verify("a@example.com", second)

    def test_consume(self):
        store, _ = _store()
        code = store.issue("a@example.com")
        store.verify("a@example.com", code)
        store.consume("a@example.com")
        assert not store.is_verified("a@example.com")
        assert not store.verify("a@example.com", code)

    def test_unknown_email(self):
        store, _ = _store()
        assert not store.verify("nobody@example.com", "1234")
        store.consume("nobody@example.com")

    def test_purge_expired(self):
        store, clock = _store(ttl=60)
        store.issue("old@example.com")
        clock.now += 30
        store.issue("new@example.com")
        clock.now += 31
        assert store.purge_expired() == 1
        assert store.purge_expired() == 0
