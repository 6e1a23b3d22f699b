#!/usr/bin/env python3

"""
Pytest coverage for the local ffmpeg backend.
"""

# Standard Library
import os
import sys
import shutil

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from reellib.core import utils
from reellib.core.errors import BackendExecError, BackendLoadError
from reellib.media.backend import FfmpegBackend

FFMPEG = shutil.which("ffmpeg")

#============================================

@pytest.fixture(autouse=True)
def quiet_logging():
	utils.set_quiet_mode(True)
	yield
	utils.set_quiet_mode(False)

#============================================

def test_missing_binary_fails_to_load(tmp_path) -> None:
	backend = FfmpegBackend(ffmpeg_bin=str(tmp_path / "no-such-ffmpeg"))
	with pytest.raises(BackendLoadError):
		backend.load()
	assert backend.loaded is False

#============================================

def test_unloaded_backend_refuses_files() -> None:
	backend = FfmpegBackend()
	with pytest.raises(RuntimeError):
		backend.write_file("item_0.png", b"data")
	with pytest.raises(RuntimeError):
		backend.list_files()

#============================================

@pytest.mark.skipif(FFMPEG is None, reason="ffmpeg not available")
def test_file_namespace_round_trip(tmp_path) -> None:
	"""
	Ensure files live in a private directory that terminate removes.
	"""
	backend = FfmpegBackend(cache_dir=str(tmp_path))
	backend.load()
	backend.load()
	work_dir = backend.work_dir
	assert os.path.dirname(work_dir) == str(tmp_path)
	backend.write_file("item_0.png", b"abc")
	entries = backend.list_files()
	assert [(entry.name, entry.size) for entry in entries] == [("item_0.png", 3)]
	assert backend.read_file("item_0.png") == b"abc"
	backend.delete_file("item_0.png")
	assert backend.list_files() == []
	with pytest.raises(ValueError):
		backend.write_file("../escape.png", b"abc")
	backend.terminate()
	assert backend.loaded is False
	assert not os.path.exists(work_dir)
	backend.load()
	assert backend.loaded is True
	assert backend.work_dir != work_dir
	backend.terminate()

#============================================

@pytest.mark.skipif(FFMPEG is None, reason="ffmpeg not available")
def test_failed_command_raises_with_tail(tmp_path) -> None:
	backend = FfmpegBackend(cache_dir=str(tmp_path))
	backend.load()
	logs = []
	backend.on('log', logs.append)
	try:
		with pytest.raises(BackendExecError) as info:
			backend.exec(["-i", "missing_input.png", "output.mp4"])
		assert info.value.returncode != 0
		assert "missing_input.png" in info.value.output_tail
		assert len(logs) > 0
	finally:
		backend.terminate()

#============================================

@pytest.mark.skipif(FFMPEG is None, reason="ffmpeg not available")
def test_exec_reports_progress(tmp_path) -> None:
	backend = FfmpegBackend(cache_dir=str(tmp_path))
	backend.load()
	events = []
	backend.on('progress', events.append)
	try:
		backend.exec(["-f", "lavfi", "-i", "color=c=black:s=64x48:d=1",
			"-c:v", "mpeg4", "output.mp4"])
		names = [entry.name for entry in backend.list_files()]
		assert names == ["output.mp4"]
	finally:
		backend.terminate()
	times = [event['time'] for event in events if 'time' in event]
	assert len(times) > 0
	assert any(event.get('done') for event in events)

#============================================

def test_unknown_event_rejected() -> None:
	backend = FfmpegBackend()
	with pytest.raises(ValueError):
		backend.on('finished', print)
