from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import patch

from pos_api.config import settings
from pos_api.dependencies import get_client_ip
from pos_api.models import UserRole
from pos_api.security.rate_limit import RateLimiter
from pos_api.security.sessions import issue_token, should_renew_token, verify_token


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class RateLimiterTests(unittest.TestCase):
    def test_limit_applies_per_key_within_window(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)
        self.assertTrue(limiter.hit('a'))
        self.assertTrue(limiter.hit('a'))
        self.assertFalse(limiter.hit('a'))
        self.assertTrue(limiter.hit('b'))

        clock.now += 61
        self.assertTrue(limiter.hit('a'))

    def test_idle_clients_are_forgotten(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
        for index in range(100):
            limiter.hit(f'10.0.0.{index}')
        self.assertEqual(limiter.tracked_keys, 100)

        clock.now += 61
        limiter.hit('10.0.1.1')
        self.assertEqual(limiter.tracked_keys, 1)


def fake_request(forwarded_for: str | None, host: str | None = '172.18.0.2') -> SimpleNamespace:
    headers = {'x-forwarded-for': forwarded_for} if forwarded_for is not None else {}
    return SimpleNamespace(headers=headers, client=SimpleNamespace(host=host) if host else None)


class ClientIpTests(unittest.TestCase):
    def test_address_appended_by_trusted_proxy_wins(self) -> None:
        self.assertEqual(get_client_ip(fake_request('10.0.0.1, 203.0.113.9')), '203.0.113.9')
        self.assertEqual(get_client_ip(fake_request('203.0.113.9')), '203.0.113.9')

    def test_without_forwarding_header_the_socket_address_is_used(self) -> None:
        self.assertEqual(get_client_ip(fake_request(None)), '172.18.0.2')
        self.assertIsNone(get_client_ip(fake_request(None, host=None)))

    def test_hop_count_is_configurable(self) -> None:
        with patch.object(settings, 'trusted_proxy_hops', 0):
            self.assertEqual(get_client_ip(fake_request('203.0.113.9')), '172.18.0.2')
        with patch.object(settings, 'trusted_proxy_hops', 2):
            self.assertEqual(get_client_ip(fake_request('10.0.0.1, 203.0.113.9, 172.18.0.9')), '203.0.113.9')


class SessionTokenTests(unittest.TestCase):
    def setUp(self) -> None:
        self.user = SimpleNamespace(id=7, email='staff@example.com', role=UserRole.ADMIN)

    def test_token_round_trip_carries_identity(self) -> None:
        payload = verify_token(issue_token(self.user))
        self.assertEqual(payload['sub'], '7')
        self.assertEqual(payload['role'], 'ADMIN')
        self.assertEqual(payload['exp'] - payload['iat'], 30 * 24 * 60 * 60)

    def test_expired_or_garbage_tokens_are_rejected(self) -> None:
        old = datetime.now(tz=timezone.utc) - timedelta(days=31)
        self.assertIsNone(verify_token(issue_token(self.user, now=old)))
        self.assertIsNone(verify_token('garbage'))
        self.assertIsNone(verify_token(None))

    def test_renewal_only_in_last_week(self) -> None:
        now = datetime.now(tz=timezone.utc)
        fresh = verify_token(issue_token(self.user, now=now))
        self.assertFalse(should_renew_token(fresh, now=now))
        self.assertTrue(should_renew_token(fresh, now=now + timedelta(days=24)))


if __name__ == '__main__':
    unittest.main()
