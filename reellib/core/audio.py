#!/usr/bin/env python3

import math
from dataclasses import dataclass
from decimal import Decimal
from reellib.core.errors import InvalidInput
from reellib.core.models import AudioAsset, AudioKind, OutputProfile

AUDIO_FADE_SECONDS = Decimal(1)
EXTRACTED_AUDIO_NAME = "audio_extracted.wav"
PREPARED_AUDIO_NAME = "audio.m4a"

#============================================

@dataclass(frozen=True)
class ExtractStep:
	output_name: str
	sample_rate: int
	channels: int
	codec: str = "pcm_s16le"

#============================================

@dataclass(frozen=True)
class LoopStep:
	extra_loops: int

#============================================

@dataclass(frozen=True)
class TrimStep:
	duration_seconds: Decimal

#============================================

@dataclass(frozen=True)
class AudioFadeStep:
	direction: str
	start_seconds: Decimal
	duration_seconds: Decimal = AUDIO_FADE_SECONDS

#============================================

@dataclass(frozen=True)
class AudioPlan:
	source_name: str
	target_duration_seconds: Decimal
	steps: tuple
	output_name: str = PREPARED_AUDIO_NAME

	#============================
	@property
	def extract(self):
		return self._first(ExtractStep)

	#============================
	@property
	def loop(self):
		return self._first(LoopStep)

	#============================
	@property
	def trim(self):
		return self._first(TrimStep)

	#============================
	@property
	def fades(self) -> tuple:
		return tuple(step for step in self.steps if isinstance(step, AudioFadeStep))

	#============================
	@property
	def loop_count(self) -> int:
		loop = self.loop
		if loop is None:
			return 0
		return loop.extra_loops

	#============================
	def _first(self, step_type):
		for step in self.steps:
			if isinstance(step, step_type):
				return step
		return None

	#============================
	def to_dict(self) -> dict:
		steps = []
		for step in self.steps:
			if isinstance(step, ExtractStep):
				steps.append({'extract': step.output_name,
					'sample_rate': step.sample_rate, 'channels': step.channels})
			elif isinstance(step, LoopStep):
				steps.append({'loop': step.extra_loops})
			elif isinstance(step, TrimStep):
				steps.append({'trim': float(step.duration_seconds)})
			elif isinstance(step, AudioFadeStep):
				steps.append({'fade': step.direction,
					'start': float(step.start_seconds),
					'duration': float(step.duration_seconds)})
		return {
			'source': self.source_name,
			'target_seconds': float(self.target_duration_seconds),
			'output': self.output_name,
			'steps': steps,
		}

#============================================

class AudioTrackBuilder():
	def __init__(self, profile: OutputProfile = None):
		self.profile = profile if profile is not None else OutputProfile()

	#============================
	def build(self, audio: AudioAsset, target_duration_seconds,
		audio_fade_enabled: bool, source_name: str = "input_audio") -> AudioPlan:
		if audio is None:
			return None
		target = Decimal(str(target_duration_seconds))
		if not target.is_finite() or target <= 0:
			raise InvalidInput("audio target duration must be positive",
				stage='preparingAudio')
		native = audio.native_duration_seconds
		if native is None or not native.is_finite() or native <= 0:
			raise InvalidInput("audio track is missing its duration",
				stage='preparingAudio')
		steps = []
		if audio.kind == AudioKind.VIDEO_WITH_AUDIO:
			steps.append(ExtractStep(EXTRACTED_AUDIO_NAME, self.profile.sample_rate,
				self.profile.channels))
		if native < target:
			repeats = math.ceil(target / native)
			steps.append(LoopStep(repeats - 1))
		steps.append(TrimStep(target))
		if audio_fade_enabled:
			steps.append(AudioFadeStep('in', Decimal(0)))
			fade_start = target - AUDIO_FADE_SECONDS
			if fade_start < 0:
				fade_start = Decimal(0)
			steps.append(AudioFadeStep('out', fade_start, target - fade_start))
		return AudioPlan(source_name, target, tuple(steps))

#============================================

def build_audio_plan(audio: AudioAsset, target_duration_seconds,
	audio_fade_enabled: bool, profile: OutputProfile = None,
	source_name: str = "input_audio") -> AudioPlan:
	return AudioTrackBuilder(profile).build(audio, target_duration_seconds,
		audio_fade_enabled, source_name=source_name)
