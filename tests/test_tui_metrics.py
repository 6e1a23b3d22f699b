#!/usr/bin/env python3

"""
Unit tests for reel_tui metrics helpers.
"""

# Standard Library
import os
import sys
import types

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from reel_tui import BAR_WIDTH, ReelTuiApp
from reellib.core.models import JobPhase

#============================================

def _make_app_stub(percent: int = 0) -> types.SimpleNamespace:
	"""
	Create a stub object for metrics helpers.
	"""
	stub = types.SimpleNamespace()
	stub.percent = percent
	return stub

#============================================

def test_format_duration_boundaries() -> None:
	"""
	Ensure duration formatting switches at minute/hour boundaries.
	"""
	stub = _make_app_stub()
	assert ReelTuiApp._format_duration(stub, 12.4) == "12.4s"
	assert ReelTuiApp._format_duration(stub, 60.0) == "1m 00.0s"
	assert ReelTuiApp._format_duration(stub, 3661.2) == "1h 01m 01.2s"

#============================================

def test_estimate_remaining_seconds() -> None:
	"""
	Ensure the estimate scales elapsed time by the remaining percentage.
	"""
	stub = _make_app_stub(percent=25)
	eta = ReelTuiApp._estimate_remaining_seconds(stub, 10.0)
	assert pytest.approx(eta, rel=1e-6) == 30.0

#============================================

@pytest.mark.parametrize("percent", [0, 100])
def test_estimate_unknown_at_edges(percent: int) -> None:
	stub = _make_app_stub(percent=percent)
	assert ReelTuiApp._estimate_remaining_seconds(stub, 10.0) is None

#============================================

def test_progress_bar_width() -> None:
	stub = _make_app_stub()
	assert ReelTuiApp._progress_bar(stub, 0) == "-" * BAR_WIDTH
	assert ReelTuiApp._progress_bar(stub, 100) == "#" * BAR_WIDTH
	half = ReelTuiApp._progress_bar(stub, 50)
	assert len(half) == BAR_WIDTH
	assert half.count("#") == BAR_WIDTH // 2

#============================================

def test_phase_label_follows_last_job() -> None:
	stub = _make_app_stub()
	stub.project = None
	assert ReelTuiApp._phase_label(stub) == "idle"
	job = types.SimpleNamespace(phase=JobPhase.ENCODING)
	orchestrator = types.SimpleNamespace(last_job=job)
	stub.project = types.SimpleNamespace(orchestrator=orchestrator)
	assert ReelTuiApp._phase_label(stub) == "encoding"
