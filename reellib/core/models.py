#!/usr/bin/env python3

import enum
import os
import uuid
from dataclasses import dataclass, field
from decimal import Decimal

from reellib.core.errors import InvalidInput

MIN_IMAGE_DURATION = Decimal(1)
MAX_IMAGE_DURATION = Decimal(10)
MP4_MIME_TYPE = "video/mp4"

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".gif", ".tiff", ".tif", ".webp"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".m4v", ".mkv", ".webm", ".avi"}
AUDIO_EXTENSIONS = {".mp3", ".m4a", ".wav", ".flac", ".aac", ".ogg", ".opus"}

#============================================

class MediaKind(str, enum.Enum):
	IMAGE = 'image'
	VIDEO = 'video'

#============================================

class AudioKind(str, enum.Enum):
	AUDIO = 'audio'
	VIDEO_WITH_AUDIO = 'video-with-audio'

#============================================

class FadePlacement(str, enum.Enum):
	EVERY_TRANSITION = 'every_transition'
	PROGRAM_EDGES = 'program_edges'

#============================================

class JobPhase(str, enum.Enum):
	IDLE = 'idle'
	LOADING_BACKEND = 'loadingBackend'
	STAGING_INPUTS = 'stagingInputs'
	PREPARING_AUDIO = 'preparingAudio'
	BUILDING_FILTER_GRAPH = 'buildingFilterGraph'
	ENCODING = 'encoding'
	VALIDATING_OUTPUT = 'validatingOutput'
	DONE = 'done'
	FAILED = 'failed'

#============================================

def kind_from_name(name: str):
	"""
	Guess the media kind from a file name extension, None if unknown.
	"""
	if not name:
		return None
	ext = os.path.splitext(name)[1].lower()
	if ext in IMAGE_EXTENSIONS:
		return MediaKind.IMAGE
	if ext in VIDEO_EXTENSIONS:
		return MediaKind.VIDEO
	return None

#============================================

@dataclass(eq=False)
class MediaItem:
	kind: MediaKind
	source_bytes: bytes
	native_duration_seconds: Decimal = None
	name: str = None
	width: int = None
	height: int = None
	id: str = field(default_factory=lambda: uuid.uuid4().hex)

	def __post_init__(self):
		self.kind = MediaKind(self.kind)
		if self.native_duration_seconds is not None:
			self.native_duration_seconds = Decimal(str(self.native_duration_seconds))
		if self.kind == MediaKind.IMAGE:
			self.native_duration_seconds = None

	#============================
	@property
	def is_video(self) -> bool:
		return self.kind == MediaKind.VIDEO

	#============================
	def release(self) -> None:
		self.source_bytes = b""

#============================================

@dataclass(eq=False)
class AudioAsset:
	source_bytes: bytes
	native_duration_seconds: Decimal
	kind: AudioKind = AudioKind.AUDIO
	name: str = None

	def __post_init__(self):
		self.kind = AudioKind(self.kind)
		if self.native_duration_seconds is not None:
			self.native_duration_seconds = Decimal(str(self.native_duration_seconds))

	#============================
	def release(self) -> None:
		self.source_bytes = b""

#============================================

@dataclass(frozen=True)
class Settings:
	per_image_duration_seconds: Decimal = Decimal("2.5")
	fade_enabled: bool = True
	fade_placement: FadePlacement = FadePlacement.EVERY_TRANSITION
	audio_fade_enabled: bool = True
	apply_image_duration_to_videos: bool = False
	# recorded only; the output carries at most the one supplied audio track
	keep_clip_audio: bool = True

	def __post_init__(self):
		duration = self.per_image_duration_seconds
		if isinstance(duration, (int, float)) and not isinstance(duration, bool):
			object.__setattr__(self, 'per_image_duration_seconds', Decimal(str(duration)))
		if isinstance(self.fade_placement, str):
			try:
				object.__setattr__(self, 'fade_placement', FadePlacement(self.fade_placement))
			except ValueError:
				raise InvalidInput(f"unknown fade placement {self.fade_placement!r}") from None

	#============================
	def validate(self) -> None:
		duration = self.per_image_duration_seconds
		if not isinstance(duration, Decimal):
			raise InvalidInput("per-image duration must be a number")
		if not duration.is_finite():
			raise InvalidInput(f"per-image duration {duration} is not a finite number")
		if duration < MIN_IMAGE_DURATION or duration > MAX_IMAGE_DURATION:
			raise InvalidInput(
				f"per-image duration {duration} is outside "
				f"[{MIN_IMAGE_DURATION}, {MAX_IMAGE_DURATION}] seconds"
			)
		if not isinstance(self.fade_placement, FadePlacement):
			raise InvalidInput("fade placement must be a FadePlacement")

#============================================

@dataclass(frozen=True)
class OutputProfile:
	width: int = 1920
	height: int = 1080
	fps: int = 30
	video_codec: str = "libx264"
	crf: int = 28
	preset: str = "ultrafast"
	pixel_format: str = "yuv420p"
	audio_codec: str = "aac"
	audio_bitrate: str = "128k"
	sample_rate: int = 44100
	channels: int = 2
	output_name: str = "output.mp4"

#============================================

@dataclass(frozen=True)
class TimelineEntry:
	item: MediaItem
	start_offset_seconds: Decimal
	on_screen_duration_seconds: Decimal

	#============================
	@property
	def end_offset_seconds(self) -> Decimal:
		return self.start_offset_seconds + self.on_screen_duration_seconds

#============================================

@dataclass(frozen=True)
class Timeline:
	entries: tuple
	total_duration_seconds: Decimal

	def __len__(self) -> int:
		return len(self.entries)

	def __iter__(self):
		return iter(self.entries)

	def __getitem__(self, index: int) -> TimelineEntry:
		return self.entries[index]

	#============================
	def to_dict(self) -> dict:
		return {
			'total_seconds': float(self.total_duration_seconds),
			'entries': [
				{
					'id': entry.item.id,
					'kind': entry.item.kind.value,
					'name': entry.item.name,
					'start': float(entry.start_offset_seconds),
					'duration': float(entry.on_screen_duration_seconds),
				}
				for entry in self.entries
			],
		}

#============================================

@dataclass(frozen=True)
class VideoAsset:
	data: bytes
	duration_seconds: Decimal
	has_audio: bool = False
	mime_type: str = MP4_MIME_TYPE

	#============================
	@property
	def size(self) -> int:
		return len(self.data)

	#============================
	def save(self, path: str) -> str:
		with open(path, "wb") as handle:
			handle.write(self.data)
		return path
