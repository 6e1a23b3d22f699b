#!/usr/bin/env python3

from dataclasses import dataclass
from reellib.core import utils
from reellib.core.audio import AudioFadeStep, AudioPlan
from reellib.core.models import OutputProfile

#============================================

@dataclass(frozen=True)
class AudioCommand:
	label: str
	argv: tuple
	output_name: str

#============================================

def afade_filter(fade: AudioFadeStep) -> str:
	start = utils.format_seconds(fade.start_seconds)
	duration = utils.format_seconds(fade.duration_seconds)
	return f"afade=t={fade.direction}:st={start}:d={duration}"

#============================================

def build_audio_commands(plan: AudioPlan, profile: OutputProfile = None) -> list:
	"""
	Translate an AudioPlan into the ffmpeg invocations that realise it.

	Extraction, when planned, is its own invocation; loop, trim and fades
	are folded into a single shaping pass that writes the prepared track.
	"""
	if profile is None:
		profile = OutputProfile()
	commands = []
	current = plan.source_name
	extract = plan.extract
	if extract is not None:
		argv = (
			"-i", current,
			"-vn", "-sn",
			"-acodec", extract.codec,
			"-ar", str(extract.sample_rate),
			"-ac", str(extract.channels),
			extract.output_name,
		)
		commands.append(AudioCommand('extract', argv, extract.output_name))
		current = extract.output_name
	argv = []
	if plan.loop_count > 0:
		argv += ["-stream_loop", str(plan.loop_count)]
	argv += ["-i", current]
	argv += ["-t", utils.format_seconds(plan.trim.duration_seconds)]
	fades = plan.fades
	if len(fades) > 0:
		argv += ["-af", ",".join(afade_filter(fade) for fade in fades)]
	argv += [
		"-vn", "-sn",
		"-ar", str(profile.sample_rate),
		"-ac", str(profile.channels),
		"-c:a", profile.audio_codec,
		"-b:a", profile.audio_bitrate,
		plan.output_name,
	]
	label = 'loop' if plan.loop_count > 0 else 'trim'
	commands.append(AudioCommand(label, tuple(argv), plan.output_name))
	return commands
