#!/usr/bin/env python3
"""
Unit tests for single group decoding
"""

import unittest
import base64
import random
import sys
import os
from concurrent.futures import ThreadPoolExecutor

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from base64_group import GroupResult, MalformedReason, decode_group


class TestDecodeGroup(unittest.TestCase):
    """Test decode_group on valid groups"""

    def test_no_padding(self):
        """Test a full group decodes to three bytes"""
        self.assertEqual(decode_group('QUJD'), GroupResult(b'ABC'))

    def test_one_padding(self):
        """Test one trailing pad yields two bytes"""
        self.assertEqual(decode_group('QUI='), GroupResult(b'AB'))

    def test_two_padding(self):
        """Test two trailing pads yield one byte"""
        result = decode_group('QQ==')
        self.assertTrue(result.ok)
        self.assertEqual(result.data, b'A')
        self.assertEqual(result.data[0], 0x41)

    def test_zero_bytes_are_kept(self):
        """Test zero bytes are real output, not trimmed"""
        self.assertEqual(decode_group('AAAA').data, b'\x00\x00\x00')
        self.assertEqual(decode_group('AAA=').data, b'\x00\x00')
        self.assertEqual(decode_group('AA==').data, b'\x00')
        self.assertEqual(decode_group('QQAA').data, b'A\x00\x00')

    def test_accepts_bytes_and_sequences(self):
        """Test str, bytes and list inputs give the same result"""
        expected = GroupResult(b'AB')
        self.assertEqual(decode_group(b'QUI='), expected)
        self.assertEqual(decode_group(bytearray(b'QUI=')), expected)
        self.assertEqual(decode_group(['Q', 'U', 'I', '=']), expected)
        self.assertEqual(decode_group([81, 85, 73, 61]), expected)

    def test_round_trip_with_reference_encoder(self):
        """Test unpadded groups recover the original three bytes"""
        rng = random.Random(1234)
        samples = [b'\x00\x00\x00', b'\xff\xff\xff', b'\xfb\xef\xbe', b'\x00\x10\x83']
        samples += [bytes(rng.getrandbits(8) for _ in range(3)) for _ in range(500)]

        for original in samples:
            encoded = base64.b64encode(original)
            result = decode_group(encoded)
            self.assertTrue(result.ok, encoded)
            self.assertEqual(result.data, original)

    def test_matches_reference_for_padded_groups(self):
        """Test padded groups match the reference decoder"""
        for original in [b'\x00', b'\xff', b'M', b'\x00\x00', b'Ma', b'\xff\xfe']:
            encoded = base64.b64encode(original)
            self.assertEqual(decode_group(encoded).data, original)


class TestMalformedGroups(unittest.TestCase):
    """Test malformed group detection"""

    def assertMalformed(self, group, reason):
        result = decode_group(group)
        self.assertFalse(result.ok)
        self.assertEqual(result.error, reason)
        self.assertEqual(result.data, b'')

    def test_padding_in_position_zero(self):
        self.assertMalformed('====', MalformedReason.INVALID_PADDING)
        self.assertMalformed('=AAA', MalformedReason.INVALID_PADDING)

    def test_padding_in_position_one(self):
        self.assertMalformed('A===', MalformedReason.INVALID_PADDING)
        self.assertMalformed('A=AA', MalformedReason.INVALID_PADDING)

    def test_early_padding_wins_over_bad_characters(self):
        """Test padding in position 0 or 1 is malformed regardless of the rest"""
        self.assertMalformed('=-!!', MalformedReason.INVALID_PADDING)
        self.assertMalformed('-=AA', MalformedReason.INVALID_PADDING)

    def test_data_after_padding(self):
        self.assertMalformed('QU=D', MalformedReason.INVALID_PADDING)

    def test_invalid_character_any_position(self):
        """Test a non-alphabet symbol anywhere discards the whole group"""
        for group in ['-UJD', 'Q_JD', 'QU D', 'QUJ\n', 'QU\x00=', 'QUJ\xe9']:
            self.assertMalformed(group, MalformedReason.INVALID_CHARACTER)

    def test_incomplete_group(self):
        """Test only groups of exactly four symbols are decoded"""
        for group in ['', 'Q', 'QQ', 'QQ=', b'QUJ', 'QUJDQ']:
            self.assertMalformed(group, MalformedReason.INCOMPLETE_GROUP)

    def test_non_sequence_input(self):
        """Test values that are not a sequence of symbols never raise"""
        for group in [None, 5, 4.0, iter('QUJD'), (c for c in 'QUJD'), {'Q', 'U', 'J', 'D'}]:
            self.assertMalformed(group, MalformedReason.INCOMPLETE_GROUP)


class TestDecodeProperties(unittest.TestCase):
    """Test purity and thread safety"""

    GROUPS = ['QUJD', 'QUI=', 'QQ==', 'A===', 'QU-D', 'QU=D', 'AAAA', '/+/+', 'Zm9v', 'YmFy']

    def test_idempotent(self):
        """Test repeated calls give identical results"""
        for group in self.GROUPS:
            first = decode_group(group)
            for _ in range(3):
                self.assertEqual(decode_group(group), first)

    def test_parallel_matches_sequential(self):
        """Test concurrent decoding gives the sequential results"""
        groups = self.GROUPS * 200
        sequential = [decode_group(group) for group in groups]

        with ThreadPoolExecutor(max_workers=8) as pool:
            parallel = list(pool.map(decode_group, groups))

        self.assertEqual(parallel, sequential)


if __name__ == '__main__':
    unittest.main()
