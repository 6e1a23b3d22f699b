#!/usr/bin/env python3

from reellib.core.models import JobPhase

# fixed, non-overlapping percent windows per phase
PHASE_WINDOWS = {
	JobPhase.LOADING_BACKEND: (0, 10),
	JobPhase.STAGING_INPUTS: (10, 30),
	JobPhase.PREPARING_AUDIO: (30, 50),
	JobPhase.BUILDING_FILTER_GRAPH: (50, 60),
	JobPhase.ENCODING: (70, 95),
	JobPhase.VALIDATING_OUTPUT: (95, 100),
}

#============================================

class ProgressTracker():
	"""
	Folds progress from every phase into one non-decreasing percentage.

	Values only ever move forward; a phase can report a fraction of its
	window but never reaches the window's upper bound until the phase is
	marked complete.
	"""
	def __init__(self, callback=None):
		self.callback = callback
		self.percent = None
		self.history = []

	#============================
	@property
	def value(self) -> int:
		if self.percent is None:
			return 0
		return self.percent

	#============================
	def report(self, percent) -> int:
		percent = int(percent)
		percent = max(0, min(100, percent))
		if self.percent is not None and percent <= self.percent:
			return self.percent
		self.percent = percent
		self.history.append(percent)
		if self.callback is not None:
			self.callback(percent)
		return percent

	#============================
	def start(self, phase: JobPhase) -> int:
		low, _ = PHASE_WINDOWS[phase]
		return self.report(low)

	#============================
	def advance(self, phase: JobPhase, fraction: float) -> int:
		low, high = PHASE_WINDOWS[phase]
		if fraction is None:
			return self.value
		fraction = max(0.0, min(1.0, float(fraction)))
		percent = low + int(fraction * (high - low))
		if percent >= high:
			percent = high - 1
		return self.report(percent)

	#============================
	def complete(self, phase: JobPhase) -> int:
		_, high = PHASE_WINDOWS[phase]
		return self.report(high)
