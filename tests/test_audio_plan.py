#!/usr/bin/env python3

"""
Pytest coverage for audio track planning and its ffmpeg commands.
"""

# Standard Library
import os
import sys
from decimal import Decimal

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from reellib.core.audio import (EXTRACTED_AUDIO_NAME, ExtractStep, LoopStep,
	TrimStep, build_audio_plan)
from reellib.core.errors import InvalidInput
from reellib.core.models import AudioAsset, AudioKind
from reellib.media.ffmpeg_audio import build_audio_commands

#============================================

def _song(duration, kind=AudioKind.AUDIO, name="song.mp3") -> AudioAsset:
	return AudioAsset(b"fake-audio", duration, kind=kind, name=name)

#============================================

def test_no_audio_means_no_plan() -> None:
	assert build_audio_plan(None, 25, True) is None

#============================================

def test_short_track_loops_then_trims() -> None:
	"""
	Ensure a 10s track covering 25s plays three times and is cut to 25s.
	"""
	plan = build_audio_plan(_song(10), Decimal(25), False)
	assert plan.loop_count == 2
	assert plan.trim.duration_seconds == Decimal(25)
	assert plan.fades == ()
	assert [type(step) for step in plan.steps] == [LoopStep, TrimStep]

#============================================

def test_exact_multiple_loops_without_remainder() -> None:
	plan = build_audio_plan(_song(5), Decimal(15), False)
	assert plan.loop_count == 2

#============================================

def test_long_track_only_trims() -> None:
	plan = build_audio_plan(_song(30), Decimal(25), False)
	assert plan.loop is None
	assert plan.loop_count == 0
	assert plan.trim.duration_seconds == Decimal(25)

#============================================

def test_fades_at_both_ends() -> None:
	plan = build_audio_plan(_song(30), Decimal(25), True)
	fades = plan.fades
	assert [fade.direction for fade in fades] == ['in', 'out']
	assert fades[0].start_seconds == Decimal(0)
	assert fades[1].start_seconds == Decimal(24)
	assert fades[1].duration_seconds == Decimal(1)

#============================================

def test_fade_out_fits_short_target() -> None:
	plan = build_audio_plan(_song(30), Decimal("0.6"), True)
	closing = plan.fades[1]
	assert closing.start_seconds == Decimal(0)
	assert closing.duration_seconds == Decimal("0.6")

#============================================

def test_video_soundtrack_extracted_first() -> None:
	"""
	Ensure extraction precedes every shaping step for a video source.
	"""
	song = _song(8, kind=AudioKind.VIDEO_WITH_AUDIO, name="concert.mp4")
	plan = build_audio_plan(song, Decimal(20), True)
	assert isinstance(plan.steps[0], ExtractStep)
	assert plan.extract.output_name == EXTRACTED_AUDIO_NAME
	assert plan.loop_count == 2
	commands = build_audio_commands(plan)
	assert [command.label for command in commands] == ['extract', 'loop']
	assert commands[0].argv[-1] == EXTRACTED_AUDIO_NAME
	assert "-vn" in commands[0].argv
	shaping = list(commands[1].argv)
	assert shaping[shaping.index("-i") + 1] == EXTRACTED_AUDIO_NAME

#============================================

def test_shaping_command_arguments() -> None:
	plan = build_audio_plan(_song(10), Decimal(25), True, source_name="input_audio.mp3")
	commands = build_audio_commands(plan)
	assert len(commands) == 1
	argv = list(commands[0].argv)
	assert argv[:4] == ["-stream_loop", "2", "-i", "input_audio.mp3"]
	assert argv[argv.index("-t") + 1] == "25"
	assert argv[argv.index("-af") + 1] == "afade=t=in:st=0:d=1,afade=t=out:st=24:d=1"
	assert argv[argv.index("-c:a") + 1] == "aac"
	assert argv[-1] == "audio.m4a"
	assert commands[0].output_name == "audio.m4a"

#============================================

def test_trim_command_has_no_loop() -> None:
	plan = build_audio_plan(_song(30), Decimal("12.5"), False)
	commands = build_audio_commands(plan)
	argv = list(commands[0].argv)
	assert commands[0].label == 'trim'
	assert "-stream_loop" not in argv
	assert "-af" not in argv
	assert argv[argv.index("-t") + 1] == "12.5"

#============================================

@pytest.mark.parametrize("duration", [None, 0, -3, "NaN", "Infinity"])
def test_missing_audio_duration_rejected(duration) -> None:
	with pytest.raises(InvalidInput):
		build_audio_plan(_song(duration), Decimal(10), True)

#============================================

def test_non_positive_target_rejected() -> None:
	with pytest.raises(InvalidInput):
		build_audio_plan(_song(10), 0, True)
	with pytest.raises(InvalidInput):
		build_audio_plan(_song(10), Decimal("NaN"), True)
