from __future__ import annotations

import logging
import unittest
from unittest.mock import patch

from pos_api.config import settings
from pos_api.error_tracking import init_error_tracking, scrub_event
from pos_api.logging_config import JsonFormatter


class ScrubEventTests(unittest.TestCase):
    def test_credentials_and_bodies_are_removed(self) -> None:
        event = {
            'request': {
                'headers': {'X-Api-Key': 'secret', 'Cookie': 'auth_token=abc', 'User-Agent': 'kiosk'},
                'cookies': {'auth_token': 'abc'},
                'data': {'customerPhone': '600123456'},
                'query_string': 'apiKey=secret',
            },
            'user': {'id': 1, 'email': 'staff@example.com', 'ip_address': '1.2.3.4'},
        }
        scrubbed = scrub_event(event)
        self.assertEqual(scrubbed['request']['headers'], {'User-Agent': 'kiosk'})
        self.assertEqual(scrubbed['request']['cookies'], '[Redacted Cookies]')
        self.assertEqual(scrubbed['request']['data'], '[Redacted Body]')
        self.assertEqual(scrubbed['request']['query_string'], '[Redacted Query]')
        self.assertEqual(scrubbed['user'], {})

    def test_event_without_request_is_untouched(self) -> None:
        event = {'message': 'boom'}
        self.assertEqual(scrub_event(event), {'message': 'boom'})


class InitErrorTrackingTests(unittest.TestCase):
    def test_disabled_without_dsn(self) -> None:
        with patch.object(settings, 'sentry_dsn', None), patch('pos_api.error_tracking.sentry_sdk.init') as init:
            self.assertFalse(init_error_tracking())
        init.assert_not_called()

    def test_enabled_with_dsn(self) -> None:
        with patch.object(settings, 'sentry_dsn', 'https://key@example.invalid/1'), patch(
            'pos_api.error_tracking.sentry_sdk.init'
        ) as init:
            self.assertTrue(init_error_tracking())
        self.assertIs(init.call_args.kwargs['before_send'], scrub_event)
        self.assertFalse(init.call_args.kwargs['send_default_pii'])


class JsonFormatterTests(unittest.TestCase):
    def test_record_is_json(self) -> None:
        record = logging.LogRecord('pos_api.test', logging.INFO, __file__, 1, 'Order %s created', (7,), None)
        self.assertIn('"message": "Order 7 created"', JsonFormatter().format(record))


if __name__ == '__main__':
    unittest.main()
