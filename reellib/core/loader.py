#!/usr/bin/env python3

import os
import yaml
from decimal import Decimal, InvalidOperation
from reellib import medialib
from reellib.core import utils
from reellib.core.errors import InvalidInput
from reellib.core.models import (AUDIO_EXTENSIONS, VIDEO_EXTENSIONS, AudioAsset,
	AudioKind, FadePlacement, MediaItem, MediaKind, OutputProfile, Settings,
	kind_from_name)

MAX_YAML_BYTES = 10 ** 7

SETTING_KEYS = {
	'image_duration': 'per_image_duration_seconds',
	'fade': 'fade_enabled',
	'fade_placement': 'fade_placement',
	'audio_fade': 'audio_fade_enabled',
	'apply_image_duration_to_videos': 'apply_image_duration_to_videos',
	'keep_clip_audio': 'keep_clip_audio',
}

OUTPUT_KEYS = ('crf', 'preset', 'video_codec', 'pixel_format', 'audio_codec',
	'audio_bitrate')

#============================================

class ProjectData():
	def __init__(self):
		self.yaml_file = None
		self.base_dir = None
		self.output_override = None
		self.dry_run = False
		self.keep_temp = False
		self.cache_dir = None
		self.data = {}
		self.settings = None
		self.profile = None
		self.items = []
		self.audio = None
		self.output = {}

#============================================

class ProjectLoader():
	def __init__(self, yaml_file: str, output_override: str = None,
		dry_run: bool = False, keep_temp: bool = False, cache_dir: str = None):
		self.yaml_file = yaml_file
		self.output_override = output_override
		self.dry_run = dry_run
		self.keep_temp = keep_temp
		self.cache_dir = cache_dir

	#============================
	def load(self) -> ProjectData:
		project = ProjectData()
		project.yaml_file = self.yaml_file
		project.base_dir = os.path.dirname(os.path.abspath(self.yaml_file))
		project.output_override = self.output_override
		project.dry_run = self.dry_run
		project.keep_temp = self.keep_temp
		project.cache_dir = self.cache_dir
		project.data = self._load_yaml()
		self._validate_required_keys(project.data)
		project.settings = self._parse_settings(project.data.get('settings') or {})
		project.settings.validate()
		project.profile = self._parse_profile(project.data.get('profile') or {},
			project.data.get('output') or {})
		project.items = self._parse_media(project, project.data.get('media'))
		project.audio = self._parse_audio(project, project.data.get('audio'))
		project.output = self._parse_output(project, project.data.get('output') or {})
		return project

	#============================
	def _load_yaml(self) -> dict:
		if not os.path.exists(self.yaml_file):
			raise InvalidInput(f"project file not found: {self.yaml_file}")
		file_size = os.path.getsize(self.yaml_file)
		if file_size > MAX_YAML_BYTES:
			raise InvalidInput("yaml file is larger than 10MB")
		with open(self.yaml_file, 'r') as data_file:
			try:
				data = yaml.safe_load(data_file)
			except yaml.YAMLError as exc:
				raise InvalidInput(f"cannot parse {self.yaml_file}: {exc}") from exc
		if not isinstance(data, dict):
			raise InvalidInput("project yaml must be a mapping at the top level")
		return data

	#============================
	def _validate_required_keys(self, data: dict) -> None:
		if data.get('reel') != 1:
			raise InvalidInput("reel must be set to 1")
		media = data.get('media')
		if not isinstance(media, list) or len(media) == 0:
			raise InvalidInput("media must be a non-empty list")
		for key in ('settings', 'profile', 'output'):
			if data.get(key) is not None and not isinstance(data.get(key), dict):
				raise InvalidInput(f"{key} must be a mapping")

	#============================
	def _parse_settings(self, raw: dict) -> Settings:
		values = {}
		for key, value in raw.items():
			field_name = SETTING_KEYS.get(key)
			if field_name is None:
				raise InvalidInput(f"unknown setting: {key}")
			values[field_name] = value
		if 'per_image_duration_seconds' in values:
			values['per_image_duration_seconds'] = self._parse_duration(
				values['per_image_duration_seconds'], 'settings.image_duration')
		placement = values.get('fade_placement')
		if placement is not None:
			try:
				values['fade_placement'] = FadePlacement(str(placement))
			except ValueError:
				raise InvalidInput(
					"settings.fade_placement must be every_transition or program_edges"
				) from None
		for key in ('fade_enabled', 'audio_fade_enabled',
			'apply_image_duration_to_videos', 'keep_clip_audio'):
			if key in values and not isinstance(values[key], bool):
				raise InvalidInput(f"setting {key} must be true or false")
		return Settings(**values)

	#============================
	def _parse_profile(self, profile: dict, output: dict) -> OutputProfile:
		values = {}
		resolution = profile.get('resolution')
		if resolution is not None:
			if not isinstance(resolution, (list, tuple)) or len(resolution) != 2:
				raise InvalidInput("profile.resolution must be [width, height]")
			values['width'] = int(resolution[0])
			values['height'] = int(resolution[1])
		if profile.get('fps') is not None:
			values['fps'] = int(profile.get('fps'))
		audio = profile.get('audio') or {}
		if audio.get('sample_rate') is not None:
			values['sample_rate'] = int(audio.get('sample_rate'))
		if audio.get('channels') is not None:
			channels = str(audio.get('channels')).lower()
			if channels in ('mono', '1'):
				values['channels'] = 1
			elif channels in ('stereo', '2'):
				values['channels'] = 2
			else:
				raise InvalidInput("profile.audio.channels must be mono or stereo")
		for key in OUTPUT_KEYS:
			if output.get(key) is not None:
				values[key] = output.get(key)
		if 'crf' in values:
			values['crf'] = int(values['crf'])
		return OutputProfile(**values)

	#============================
	def _resolve_path(self, project: ProjectData, filepath: str) -> str:
		if filepath is None:
			raise InvalidInput("media entries require a file")
		filepath = os.path.expanduser(str(filepath))
		if not os.path.isabs(filepath):
			filepath = os.path.join(project.base_dir, filepath)
		if not os.path.isfile(filepath):
			raise InvalidInput(f"file not found: {filepath}")
		return filepath

	#============================
	def _read_bytes(self, filepath: str) -> bytes:
		with open(filepath, 'rb') as handle:
			return handle.read()

	#============================
	def _parse_duration(self, raw_value, label: str) -> Decimal:
		try:
			value = utils.parse_seconds(raw_value)
		except (ValueError, InvalidOperation) as exc:
			raise InvalidInput(f"{label}: {exc}") from exc
		if not value.is_finite():
			raise InvalidInput(f"{label}: {raw_value} is not a finite number")
		return value

	#============================
	def _parse_media(self, project: ProjectData, media: list) -> list:
		items = []
		for index, entry in enumerate(media):
			if isinstance(entry, str):
				entry = {'file': entry}
			if not isinstance(entry, dict):
				raise InvalidInput(f"media[{index}] must be a file path or mapping")
			filepath = self._resolve_path(project, entry.get('file'))
			kind = entry.get('kind')
			if kind is None:
				kind = kind_from_name(filepath)
			if kind is None:
				raise InvalidInput(f"media[{index}]: cannot tell image from video "
					f"for {os.path.basename(filepath)}; set kind")
			try:
				kind = MediaKind(kind)
			except ValueError:
				raise InvalidInput(f"media[{index}].kind must be image or video") from None
			data = self._read_bytes(filepath)
			item = MediaItem(kind, data, name=os.path.basename(filepath))
			if entry.get('id') is not None:
				item.id = str(entry.get('id'))
			if kind == MediaKind.IMAGE:
				self._fill_image_dimensions(item)
			else:
				item.native_duration_seconds = self._media_duration(entry, filepath,
					f"media[{index}].duration")
				self._fill_video_dimensions(item, filepath)
			items.append(item)
		return items

	#============================
	def _fill_image_dimensions(self, item: MediaItem) -> None:
		try:
			(item.width, item.height) = medialib.getImageDimensions(item.source_bytes)
		except OSError:
			# left for staging to report against the item
			item.width = None
			item.height = None

	#============================
	def _fill_video_dimensions(self, item: MediaItem, filepath: str) -> None:
		try:
			dimensions = medialib.getVideoDimensions(filepath)
		except RuntimeError as exc:
			utils.log(f"warning: no dimensions for {item.name}: {exc}")
			return
		if dimensions is not None:
			(item.width, item.height) = dimensions

	#============================
	def _media_duration(self, entry: dict, filepath: str, label: str) -> Decimal:
		if entry.get('duration') is not None:
			return self._parse_duration(entry.get('duration'), label)
		try:
			return medialib.getDuration(filepath)
		except (RuntimeError, OSError, ValueError) as exc:
			raise InvalidInput(f"{label}: cannot probe {filepath}: {exc}") from exc

	#============================
	def _parse_audio(self, project: ProjectData, audio):
		if audio is None:
			return None
		if isinstance(audio, str):
			audio = {'file': audio}
		if not isinstance(audio, dict):
			raise InvalidInput("audio must be a file path or mapping")
		filepath = self._resolve_path(project, audio.get('file'))
		kind = audio.get('kind')
		if kind is None:
			ext = os.path.splitext(filepath)[1].lower()
			if ext in VIDEO_EXTENSIONS:
				kind = AudioKind.VIDEO_WITH_AUDIO
			elif ext in AUDIO_EXTENSIONS:
				kind = AudioKind.AUDIO
			else:
				raise InvalidInput(f"unknown audio file type {ext}; set audio.kind")
		try:
			kind = AudioKind(kind)
		except ValueError:
			raise InvalidInput("audio.kind must be audio or video-with-audio") from None
		duration = self._media_duration(audio, filepath, "audio.duration")
		return AudioAsset(self._read_bytes(filepath), duration, kind,
			name=os.path.basename(filepath))

	#============================
	def _parse_output(self, project: ProjectData, output: dict) -> dict:
		output_file = output.get('file')
		if project.output_override is not None:
			output_file = project.output_override
		if output_file is None:
			output_file = "reel.mp4"
		output_file = os.path.expanduser(str(output_file))
		if not os.path.isabs(output_file) and project.output_override is None:
			output_file = os.path.join(project.base_dir, output_file)
		return {
			'file': output_file,
		}
