#!/usr/bin/env python3

import os
import sys
import unittest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from reellib.core.models import JobPhase
from reellib.core.progress import PHASE_WINDOWS, ProgressTracker

#============================================

class ProgressTrackerTest(unittest.TestCase):
	#============================================
	def test_values_never_decrease(self) -> None:
		seen = []
		tracker = ProgressTracker(seen.append)
		for value in (0, 10, 5, 30, 30, 29, 60):
			tracker.report(value)
		self.assertEqual(seen, [0, 10, 30, 60])
		self.assertEqual(tracker.history, seen)

	#============================================
	def test_values_are_clamped(self) -> None:
		tracker = ProgressTracker()
		tracker.report(-5)
		self.assertEqual(tracker.value, 0)
		tracker.report(250)
		self.assertEqual(tracker.value, 100)

	#============================================
	def test_advance_stays_below_window_top(self) -> None:
		"""Ensure a phase cannot claim completion through a fraction."""
		tracker = ProgressTracker()
		tracker.start(JobPhase.ENCODING)
		self.assertEqual(tracker.value, 70)
		tracker.advance(JobPhase.ENCODING, 0.5)
		self.assertEqual(tracker.value, 82)
		tracker.advance(JobPhase.ENCODING, 1.7)
		self.assertEqual(tracker.value, 94)
		tracker.complete(JobPhase.ENCODING)
		self.assertEqual(tracker.value, 95)

	#============================================
	def test_advance_ignores_missing_fraction(self) -> None:
		tracker = ProgressTracker()
		tracker.report(40)
		self.assertEqual(tracker.advance(JobPhase.ENCODING, None), 40)

	#============================================
	def test_windows_do_not_overlap(self) -> None:
		windows = sorted(PHASE_WINDOWS.values())
		for (low, high), (next_low, _) in zip(windows, windows[1:]):
			self.assertLess(low, high)
			self.assertLessEqual(high, next_low)
		self.assertEqual(windows[-1][1], 100)

#============================================

def main() -> None:
	"""Run the unit tests."""
	unittest.main()

#============================================

if __name__ == "__main__":
	main()
