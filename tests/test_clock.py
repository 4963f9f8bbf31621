"""Tests for calibench.clock — clock selection, memory probe and Timer."""

from __future__ import annotations

import time
import tracemalloc
import unittest

from bench_test_helpers import FakeTime, make_clock

from calibench.clock import (
    FALLBACK_CLOCK,
    MemoryProbe,
    Timer,
    build_clock,
    select_clock,
)


# ---------------------------------------------------------------------------
# Clock selection
# ---------------------------------------------------------------------------


class TestSelectClock(unittest.TestCase):
    def test_default_selection_is_high_resolution(self) -> None:
        clock = select_clock()
        self.assertTrue(clock.high_resolution)
        self.assertGreater(clock.resolution, 0)
        self.assertEqual(clock.name, "perf_counter_ns")

    def test_skips_unavailable_candidates(self) -> None:
        clock = select_clock(("no_such_timer", "monotonic"))
        self.assertEqual(clock.name, "monotonic")
        self.assertTrue(clock.high_resolution)

    def test_falls_back_to_coarse_clock(self) -> None:
        clock = select_clock(("no_such_timer", "another_missing_timer"))
        self.assertEqual(clock.name, FALLBACK_CLOCK)
        self.assertFalse(clock.high_resolution)

    def test_build_clock_unknown_returns_none(self) -> None:
        self.assertIsNone(build_clock("no_such_timer"))

    def test_ns_clock_reads_seconds(self) -> None:
        clock = build_clock("perf_counter_ns")
        assert clock is not None
        self.assertAlmostEqual(clock.now(), time.perf_counter(), delta=1.0)
        self.assertGreaterEqual(clock.resolution, 1e-9)

    def test_readings_are_monotonic(self) -> None:
        clock = select_clock()
        first = clock.now()
        second = clock.now()
        self.assertGreaterEqual(second, first)


class TestClockProperties(unittest.TestCase):
    def test_precision_from_resolution(self) -> None:
        self.assertEqual(make_clock(resolution=1e-9).precision, 9)
        self.assertEqual(make_clock(resolution=1e-6).precision, 6)
        self.assertEqual(make_clock(resolution=0.01).precision, 2)

    def test_min_time_scales_resolution(self) -> None:
        clock = make_clock(resolution=1e-6)
        self.assertAlmostEqual(clock.min_time(5), 5e-6)


class TestCoarseClockWarning(unittest.TestCase):
    def test_coarse_clock_warns_once(self) -> None:
        clock = make_clock(resolution=0.01, high_resolution=False)
        with self.assertLogs("calibench", level="WARNING") as cm:
            clock.warn_if_coarse()
            clock.warn_if_coarse()
            clock.warn_if_coarse()
        self.assertEqual(len(cm.output), 1)
        self.assertIn("fake", cm.output[0])

    def test_high_resolution_clock_never_warns(self) -> None:
        clock = make_clock()
        with self.assertNoLogs("calibench", level="WARNING"):
            clock.warn_if_coarse()


# ---------------------------------------------------------------------------
# Memory probe
# ---------------------------------------------------------------------------


class TestMemoryProbe(unittest.TestCase):
    def setUp(self) -> None:
        self.was_tracing = tracemalloc.is_tracing()

    def test_measures_allocation_in_kilobytes(self) -> None:
        probe = MemoryProbe()
        used = probe.measure(lambda: bytearray(1024 * 1024))
        self.assertGreater(used, 900)
        self.assertLess(used, 2048)

    def test_no_allocation_is_non_negative(self) -> None:
        probe = MemoryProbe()
        self.assertGreaterEqual(probe.measure(lambda: None), 0.0)

    def test_tracing_restored_after_measure(self) -> None:
        MemoryProbe().measure(lambda: [0] * 100)
        self.assertEqual(tracemalloc.is_tracing(), self.was_tracing)

    def test_session_keeps_tracing_on(self) -> None:
        probe = MemoryProbe()
        with probe.session():
            self.assertTrue(tracemalloc.is_tracing())
            probe.measure(lambda: None)
            self.assertTrue(tracemalloc.is_tracing())
        self.assertEqual(tracemalloc.is_tracing(), self.was_tracing)

    def test_session_stops_tracing_on_error(self) -> None:
        probe = MemoryProbe()
        with self.assertRaises(RuntimeError):
            with probe.session():
                raise RuntimeError("boom")
        self.assertEqual(tracemalloc.is_tracing(), self.was_tracing)


# ---------------------------------------------------------------------------
# Timer
# ---------------------------------------------------------------------------


class TestTimer(unittest.TestCase):
    def setUp(self) -> None:
        self.fake = FakeTime()
        self.timer = Timer(make_clock(self.fake))

    def test_single_section(self) -> None:
        self.timer.start()
        self.fake.advance(0.5)
        self.assertEqual(self.timer.stop(), 0.5)
        self.assertEqual(self.timer.elapsed(), 0.5)

    def test_accumulates_sections(self) -> None:
        for seconds in (0.25, 0.5):
            self.timer.start()
            self.fake.advance(seconds)
            self.timer.stop()
            self.fake.advance(10.0)  # untimed gap
        self.assertEqual(self.timer.elapsed(), 0.75)

    def test_running_flag(self) -> None:
        self.assertFalse(self.timer.running)
        self.timer.start()
        self.assertTrue(self.timer.running)
        self.timer.stop()
        self.assertFalse(self.timer.running)

    def test_reset(self) -> None:
        self.timer.start()
        self.fake.advance(1.0)
        self.timer.stop()
        self.timer.reset()
        self.assertEqual(self.timer.elapsed(), 0.0)

    def test_start_twice_raises(self) -> None:
        self.timer.start()
        with self.assertRaisesRegex(RuntimeError, "already running"):
            self.timer.start()

    def test_stop_without_start_raises(self) -> None:
        with self.assertRaisesRegex(RuntimeError, "without start"):
            self.timer.stop()

    def test_elapsed_while_running_raises(self) -> None:
        self.timer.start()
        with self.assertRaisesRegex(RuntimeError, "still running"):
            self.timer.elapsed()

    def test_default_clock(self) -> None:
        timer = Timer()
        timer.start()
        self.assertGreaterEqual(timer.stop(), 0.0)


if __name__ == "__main__":
    unittest.main()
