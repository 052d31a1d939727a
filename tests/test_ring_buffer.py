import threading
import unittest

import numpy as np

from pitch_accent.audio.ring_buffer import RingBuffer, buffer_for_duration
from pitch_accent.core.errors import ConfigurationError


class TestRingBuffer(unittest.TestCase):
    def test_empty_buffer(self):
        buffer = RingBuffer(8)
        self.assertEqual(buffer.size, 0)
        self.assertFalse(buffer.has_data)
        self.assertEqual(len(buffer.last_samples(4)), 0)
        np.testing.assert_array_equal(buffer.last_samples(4, zero_pad=True), np.zeros(4))

    def test_push_and_read_in_order(self):
        buffer = RingBuffer(8)
        buffer.push(np.arange(1, 6))
        np.testing.assert_array_equal(buffer.last_samples(3), [3, 4, 5])
        np.testing.assert_array_equal(buffer.last_samples(8), [1, 2, 3, 4, 5])
        self.assertAlmostEqual(buffer.fill_ratio, 5 / 8)

    def test_wraparound_returns_newest_samples(self):
        buffer = RingBuffer(5)
        buffer.push(np.arange(1, 4))
        buffer.push(np.arange(4, 9))
        self.assertTrue(buffer.is_full)
        np.testing.assert_array_equal(buffer.last_samples(5), [4, 5, 6, 7, 8])
        np.testing.assert_array_equal(buffer.last_samples(2), [7, 8])

    def test_push_larger_than_capacity(self):
        buffer = RingBuffer(4)
        buffer.push(np.arange(10))
        np.testing.assert_array_equal(buffer.last_samples(4), [6, 7, 8, 9])
        self.assertEqual(buffer.total_written, 10)

    def test_requests_clamp_to_capacity(self):
        buffer = RingBuffer(4)
        buffer.push(np.arange(6))
        np.testing.assert_array_equal(buffer.last_samples(100), [2, 3, 4, 5])
        np.testing.assert_array_equal(buffer.last_samples(0), [2, 3, 4, 5])
        np.testing.assert_array_equal(buffer.last_samples(-3), [2, 3, 4, 5])

    def test_last_seconds(self):
        buffer = RingBuffer(100)
        buffer.push(np.arange(50))
        np.testing.assert_array_equal(buffer.last_seconds(0.1, 100), np.arange(40, 50))
        padded = buffer.last_seconds(0.8, 100, zero_pad=True)
        self.assertEqual(len(padded), 80)
        np.testing.assert_array_equal(padded[:30], np.zeros(30))
        np.testing.assert_array_equal(padded[30:], np.arange(50))

    def test_exactly_two_capacities_written(self):
        sample_rate = 100
        capacity = 100
        for chunk in (capacity, 30, 1):
            buffer = RingBuffer(capacity)
            data = np.arange(2 * capacity, dtype=np.float32)
            for start in range(0, len(data), chunk):
                buffer.push(data[start:start + chunk])
            self.assertEqual(buffer.total_written, 2 * capacity)
            np.testing.assert_array_equal(
                buffer.last_seconds(capacity / sample_rate, sample_rate), data[capacity:]
            )
            np.testing.assert_array_equal(buffer.last_samples(10), data[-10:])

    def test_copy_last_right_aligns_with_zero_prefix(self):
        buffer = RingBuffer(6)
        buffer.push(np.ones(3))
        out = np.full(5, 9.0, dtype=np.float32)
        copied = buffer.copy_last(out)
        self.assertEqual(copied, 3)
        np.testing.assert_array_equal(out, [0, 0, 1, 1, 1])

    def test_copy_last_across_wrap(self):
        buffer = RingBuffer(4)
        buffer.push(np.array([1, 2, 3]))
        buffer.push(np.array([4, 5]))
        out = np.zeros(4, dtype=np.float32)
        self.assertEqual(buffer.copy_last(out), 4)
        np.testing.assert_array_equal(out, [2, 3, 4, 5])

    def test_clear_keeps_capacity(self):
        buffer = RingBuffer(4)
        buffer.push(np.arange(4))
        buffer.clear()
        self.assertEqual(buffer.capacity, 4)
        self.assertEqual(buffer.size, 0)
        self.assertEqual(len(buffer.last_samples(4)), 0)
        buffer.push(np.array([7]))
        np.testing.assert_array_equal(buffer.last_samples(4), [7])

    def test_invalid_capacity(self):
        with self.assertRaises(ConfigurationError):
            RingBuffer(0)
        with self.assertRaises(ConfigurationError):
            RingBuffer(-5)

    def test_buffer_for_duration(self):
        self.assertEqual(buffer_for_duration(0.5, 44100).capacity, 22050)

    def test_concurrent_writer_and_reader(self):
        buffer = RingBuffer(1000)
        errors = []

        def writer():
            for i in range(200):
                buffer.push(np.full(37, i, dtype=np.float32))

        def reader():
            for _ in range(200):
                data = buffer.last_samples(500)
                # Values only ever increase in chronological order
                if len(data) and np.any(np.diff(data) < 0):
                    errors.append(data)

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(errors, [])
        self.assertEqual(buffer.total_written, 200 * 37)


if __name__ == "__main__":
    unittest.main()
