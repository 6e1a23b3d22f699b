#!/usr/bin/env python3

from reellib.core import utils
from reellib.core.graph import FadeStep, GraphPlan, NormalizeStep

OUTPUT_LABEL = "outv"

#============================================

def normalize_filter(step: NormalizeStep) -> str:
	parts = []
	parts.append(
		f"scale={step.width}:{step.height}:force_original_aspect_ratio=decrease"
	)
	parts.append(
		f"pad={step.width}:{step.height}:(ow-iw)/2:(oh-ih)/2:{step.pad_color}"
	)
	if step.reset_timestamps:
		parts.append("setpts=PTS-STARTPTS")
	parts.append(f"fps={step.fps}")
	parts.append(f"setsar={step.sample_aspect_ratio}")
	return ",".join(parts)

#============================================

def fade_filter(fade: FadeStep) -> str:
	start = utils.format_seconds(fade.start_seconds)
	duration = utils.format_seconds(fade.duration_seconds)
	return f"fade=t={fade.direction}:st={start}:d={duration}"

#============================================

def build_filter_complex(plan: GraphPlan) -> str:
	"""
	Translate a GraphPlan into an ffmpeg -filter_complex string.

	Each segment reads input [N:v] and produces [vN]; the segments are
	joined with concat in plan order and the result is labelled [outv].
	"""
	chains = []
	for segment in plan.segments:
		filters = [normalize_filter(segment.normalize)]
		for fade in segment.fades:
			filters.append(fade_filter(fade))
		chains.append(f"[{segment.input_index}:v]{','.join(filters)}[v{segment.input_index}]")
	labels = "".join(f"[v{index}]" for index in plan.concat_order)
	count = len(plan.concat_order)
	tail = ""
	if len(plan.program_fades) > 0:
		tail = "," + ",".join(fade_filter(fade) for fade in plan.program_fades)
	chains.append(f"{labels}concat=n={count}:v=1:a=0{tail}[{OUTPUT_LABEL}]")
	return ";".join(chains)
