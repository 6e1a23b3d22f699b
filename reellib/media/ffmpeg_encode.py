#!/usr/bin/env python3

import os
from reellib.core import utils
from reellib.core.graph import GraphPlan
from reellib.core.models import MediaItem, MediaKind, OutputProfile, Timeline
from reellib.media.ffmpeg_filters import OUTPUT_LABEL, build_filter_complex

DEFAULT_EXTENSIONS = {
	MediaKind.IMAGE: ".jpg",
	MediaKind.VIDEO: ".mp4",
}

#============================================

def staged_input_name(index: int, item: MediaItem) -> str:
	ext = ""
	if item.name:
		ext = os.path.splitext(item.name)[1].lower()
	if ext == "":
		ext = DEFAULT_EXTENSIONS[item.kind]
	return f"item_{index}{ext}"

#============================================

def staged_audio_name(name: str) -> str:
	ext = ""
	if name:
		ext = os.path.splitext(name)[1].lower()
	if ext == "":
		ext = ".bin"
	return f"input_audio{ext}"

#============================================

def build_input_args(timeline: Timeline, staged_names: list) -> list:
	if len(staged_names) != len(timeline):
		raise ValueError("staged input count does not match the timeline")
	args = []
	for entry, name in zip(timeline, staged_names):
		duration = utils.format_seconds(entry.on_screen_duration_seconds)
		if entry.item.kind == MediaKind.IMAGE:
			args += ["-loop", "1", "-t", duration, "-i", name]
		else:
			args += ["-t", duration, "-i", name]
	return args

#============================================

def build_encode_command(timeline: Timeline, staged_names: list,
	graph_plan: GraphPlan, audio_name: str = None,
	profile: OutputProfile = None) -> list:
	"""
	Assemble the single ffmpeg invocation that renders the reel.
	"""
	if profile is None:
		profile = OutputProfile()
	args = build_input_args(timeline, staged_names)
	if audio_name is not None:
		args += ["-i", audio_name]
	args += ["-filter_complex", build_filter_complex(graph_plan)]
	args += ["-map", f"[{OUTPUT_LABEL}]"]
	if audio_name is not None:
		args += ["-map", f"{len(staged_names)}:a"]
		args += ["-c:a", profile.audio_codec, "-b:a", profile.audio_bitrate]
	else:
		args += ["-an"]
	args += [
		"-c:v", profile.video_codec,
		"-preset", profile.preset,
		"-crf", str(profile.crf),
		"-pix_fmt", profile.pixel_format,
		"-r", str(profile.fps),
		"-movflags", "+faststart",
		"-shortest",
		profile.output_name,
	]
	return args
