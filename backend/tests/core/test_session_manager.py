"""Tests for issuing, reading, and revoking cookie sessions."""
from typing import Any

import pytest

from core.roles import Role
from core.session import EXPIRED_AT, CookieAttributes, SessionManager
from core.token_codec import SessionClaims, TokenCodec
from tests.conftest import FakeClock

COOKIE = "ps_session"


class RecordingChannel:
    """Credential channel that records every outbound instruction."""

    def __init__(self, inbound: dict[str, str] | None = None) -> None:
        self.inbound = dict(inbound or {})
        self.outbound: dict[str, str] = {}
        self.writes: list[tuple[str, str, CookieAttributes]] = []
        self.clears: list[tuple[str, CookieAttributes]] = []

    def read_credential(self, name: str) -> str | None:
        if name in self.outbound:
            return self.outbound[name] or None
        return self.inbound.get(name) or None

    def write_credential(self, name: str, value: str, attributes: CookieAttributes) -> None:
        self.outbound[name] = value
        self.writes.append((name, value, attributes))

    def clear_credential(self, name: str, attributes: CookieAttributes) -> None:
        self.outbound[name] = ""
        self.clears.append((name, attributes))


@pytest.fixture
def claims() -> SessionClaims:
    """Regular user claims."""
    return SessionClaims(id="u1", email="bo@example.com", name="Bo", role=Role.USER)


def _manager(codec: TokenCodec, channel: RecordingChannel, **kwargs: Any) -> SessionManager:
    return SessionManager(codec, channel, cookie_name=COOKIE, **kwargs)


def test_issue_sets_http_only_lax_cookie(codec: TokenCodec, claims: SessionClaims) -> None:
    """Issued cookies are HttpOnly, SameSite=Lax, path / and live for the token TTL."""
    channel = RecordingChannel()
    token = _manager(codec, channel).issue(claims)

    name, value, attributes = channel.writes[-1]
    assert (name, value) == (COOKIE, token)
    assert attributes.http_only is True
    assert attributes.same_site == "lax"
    assert attributes.path == "/"
    assert attributes.secure is False
    assert attributes.max_age == 7 * 24 * 3600


def test_issue_marks_cookie_secure_in_production(codec: TokenCodec, claims: SessionClaims) -> None:
    """The Secure attribute follows the manager's configuration."""
    channel = RecordingChannel()
    _manager(codec, channel, secure=True).issue(claims)
    assert channel.writes[-1][2].secure is True


def test_current_returns_claims_of_valid_cookie(codec: TokenCodec, claims: SessionClaims) -> None:
    """A valid inbound cookie yields its claims."""
    channel = RecordingChannel({COOKIE: codec.encode(claims)})
    assert _manager(codec, channel).current() == claims


def test_current_sees_session_issued_in_same_request(
    codec: TokenCodec, claims: SessionClaims,
) -> None:
    """A session issued earlier in the request is visible to current()."""
    channel = RecordingChannel()
    manager = _manager(codec, channel)
    manager.issue(claims)
    assert manager.current() == claims


@pytest.mark.parametrize("value", [None, "", "garbage", "a.b", "x.y.z"])
def test_current_returns_none_for_missing_or_invalid(codec: TokenCodec, value: str | None) -> None:
    """Absent and malformed cookies are indistinguishable from no session."""
    channel = RecordingChannel({COOKIE: value} if value is not None else {})
    assert _manager(codec, channel).current() is None


def test_current_returns_none_for_expired(
    codec: TokenCodec, clock: FakeClock, claims: SessionClaims,
) -> None:
    """An expired cookie is treated as no session."""
    token = codec.encode(claims)
    clock.advance(codec.ttl_seconds * 1000)
    channel = RecordingChannel({COOKIE: token})
    assert _manager(codec, channel).current() is None


def test_current_returns_none_for_foreign_signature(
    claims: SessionClaims, clock: FakeClock,
) -> None:
    """A cookie signed with another secret is treated as no session."""
    foreign = TokenCodec("someone-elses-secret", clock=clock)
    ours = TokenCodec("our-secret", clock=clock)
    channel = RecordingChannel({COOKIE: foreign.encode(claims)})
    assert _manager(ours, channel).current() is None


def test_revoke_clears_every_path_every_way(codec: TokenCodec, claims: SessionClaims) -> None:
    """Each configured path gets a delete, a max-age 0 write, and an epoch-expiry write."""
    channel = RecordingChannel({COOKIE: codec.encode(claims)})
    paths = ["/", "/api", "/auth"]
    _manager(codec, channel, clear_paths=paths).revoke()

    assert [a.path for _, a in channel.clears] == paths
    for path in paths:
        writes = [(v, a) for n, v, a in channel.writes if n == COOKIE and a.path == path]
        assert all(v == "" and a.max_age == 0 for v, a in writes)
        assert any(a.expires == EXPIRED_AT for _, a in writes)
        assert any(a.expires is None for _, a in writes)


def test_current_after_revoke_returns_none(codec: TokenCodec, claims: SessionClaims) -> None:
    """After revoke(), the same request no longer sees a session."""
    channel = RecordingChannel({COOKIE: codec.encode(claims)})
    manager = _manager(codec, channel)
    assert manager.current() == claims
    manager.revoke()
    assert manager.current() is None


def test_revoke_without_session_is_harmless(codec: TokenCodec) -> None:
    """Revoking when there is no session still emits clearing instructions."""
    channel = RecordingChannel()
    _manager(codec, channel).revoke()
    assert channel.clears
    assert _manager(codec, channel).current() is None
