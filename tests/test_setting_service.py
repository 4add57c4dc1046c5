from __future__ import annotations

import unittest

from pos_api.services.setting_service import decode_value, encode_value


class SettingCodecTests(unittest.TestCase):
    def test_types_are_inferred(self) -> None:
        self.assertEqual(encode_value(True), ('true', 'boolean'))
        self.assertEqual(encode_value(False), ('false', 'boolean'))
        self.assertEqual(encode_value(15), ('15', 'number'))
        self.assertEqual(encode_value(2.5), ('2.5', 'number'))
        self.assertEqual(encode_value('Guantanamera'), ('Guantanamera', 'string'))
        self.assertEqual(encode_value([{'day': 0}]), ('[{"day": 0}]', 'json'))

    def test_values_are_decoded_by_type(self) -> None:
        self.assertIs(decode_value('true', 'boolean'), True)
        self.assertIs(decode_value('yes', 'boolean'), False)
        self.assertEqual(decode_value('15', 'number'), 15)
        self.assertIsInstance(decode_value('15', 'number'), int)
        self.assertEqual(decode_value('2.5', 'number'), 2.5)
        self.assertEqual(decode_value('{"a": 1}', 'json'), {'a': 1})
        self.assertEqual(decode_value('plain', 'string'), 'plain')

    def test_broken_values_fall_back_to_raw(self) -> None:
        self.assertEqual(decode_value('{oops', 'json'), '{oops')
        self.assertEqual(decode_value('abc', 'number'), 'abc')


if __name__ == '__main__':
    unittest.main()
