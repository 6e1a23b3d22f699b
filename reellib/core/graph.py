#!/usr/bin/env python3

"""
Declarative filter graph planning for a reel.

The plan says what happens to each segment (normalize to the output
frame, optional fades) and in which order the segments are joined. It
knows nothing about ffmpeg syntax; see reellib.media.ffmpeg_filters for
the translation.
"""

from dataclasses import dataclass
from decimal import Decimal
from reellib.core.errors import InvalidInput
from reellib.core.models import FadePlacement, OutputProfile, Settings, Timeline

FADE_DURATION_SECONDS = Decimal("0.5")

#============================================

@dataclass(frozen=True)
class NormalizeStep:
	width: int
	height: int
	fps: int
	pad_color: str = "black"
	sample_aspect_ratio: int = 1
	reset_timestamps: bool = True

#============================================

@dataclass(frozen=True)
class FadeStep:
	direction: str
	start_seconds: Decimal
	duration_seconds: Decimal = FADE_DURATION_SECONDS

	#============================
	@property
	def end_seconds(self) -> Decimal:
		return self.start_seconds + self.duration_seconds

#============================================

@dataclass(frozen=True)
class SegmentPlan:
	input_index: int
	item_id: str
	duration_seconds: Decimal
	normalize: NormalizeStep
	fades: tuple = ()

#============================================

@dataclass(frozen=True)
class GraphPlan:
	segments: tuple
	concat_order: tuple
	program_fades: tuple
	total_duration_seconds: Decimal

	#============================
	@property
	def faded_segment_count(self) -> int:
		return sum(1 for segment in self.segments if len(segment.fades) > 0)

	#============================
	def to_dict(self) -> dict:
		return {
			'total_seconds': float(self.total_duration_seconds),
			'concat_order': list(self.concat_order),
			'segments': [
				{
					'input': segment.input_index,
					'id': segment.item_id,
					'duration': float(segment.duration_seconds),
					'fades': [_fade_to_dict(fade) for fade in segment.fades],
				}
				for segment in self.segments
			],
			'program_fades': [_fade_to_dict(fade) for fade in self.program_fades],
		}

#============================================

def _fade_to_dict(fade: FadeStep) -> dict:
	return {
		'direction': fade.direction,
		'start': float(fade.start_seconds),
		'duration': float(fade.duration_seconds),
	}

#============================================

def fade_in() -> FadeStep:
	return FadeStep('in', Decimal(0))

#============================================

def fade_out_ending_at(end_seconds: Decimal) -> FadeStep:
	start = end_seconds - FADE_DURATION_SECONDS
	if start < 0:
		start = Decimal(0)
	return FadeStep('out', start)

#============================================

class FilterGraphBuilder():
	def __init__(self, settings: Settings, profile: OutputProfile = None):
		self.settings = settings
		self.profile = profile if profile is not None else OutputProfile()

	#============================
	def build(self, timeline: Timeline) -> GraphPlan:
		if timeline is None or len(timeline) == 0:
			raise InvalidInput("cannot build a filter graph for an empty timeline",
				stage='buildingFilterGraph')
		normalize = NormalizeStep(self.profile.width, self.profile.height,
			self.profile.fps)
		count = len(timeline)
		per_segment_fades = [() for _ in range(count)]
		program_fades = ()
		if self.settings.fade_enabled:
			edges_only = self.settings.fade_placement == FadePlacement.PROGRAM_EDGES
			if edges_only and count > 1:
				per_segment_fades[0] = (fade_in(),)
				program_fades = (fade_out_ending_at(timeline.total_duration_seconds),)
			else:
				for index, entry in enumerate(timeline):
					per_segment_fades[index] = (
						fade_in(),
						fade_out_ending_at(entry.on_screen_duration_seconds),
					)
		segments = []
		for index, entry in enumerate(timeline):
			segments.append(SegmentPlan(index, entry.item.id,
				entry.on_screen_duration_seconds, normalize, per_segment_fades[index]))
		return GraphPlan(tuple(segments), tuple(range(count)), program_fades,
			timeline.total_duration_seconds)

#============================================

def build_graph(timeline: Timeline, settings: Settings,
	profile: OutputProfile = None) -> GraphPlan:
	return FilterGraphBuilder(settings, profile).build(timeline)
