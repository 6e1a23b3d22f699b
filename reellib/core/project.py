#!/usr/bin/env python3

from reellib.core import utils
from reellib.core.audio import build_audio_plan
from reellib.core.graph import build_graph
from reellib.core.loader import ProjectLoader
from reellib.core.orchestrator import EncodeOrchestrator
from reellib.core.timeline import plan_timeline
from reellib.media.backend import FfmpegBackend
from reellib.media.ffmpeg_encode import staged_audio_name

#============================================

class ReelProject():
	def __init__(self, yaml_file: str, output_override: str = None,
		dry_run: bool = False, keep_temp: bool = False, cache_dir: str = None,
		backend=None, timeout: float = None):
		loader = ProjectLoader(yaml_file, output_override=output_override,
			dry_run=dry_run, keep_temp=keep_temp, cache_dir=cache_dir)
		self._project = loader.load()
		if backend is None:
			backend = FfmpegBackend(cache_dir=cache_dir, keep_temp=keep_temp,
				timeout=timeout)
		self._orchestrator = EncodeOrchestrator(backend, self._project.profile)
		self._sync_public_fields()

	#============================
	def _sync_public_fields(self) -> None:
		self.yaml_file = self._project.yaml_file
		self.output_override = self._project.output_override
		self.dry_run = self._project.dry_run
		self.keep_temp = self._project.keep_temp
		self.cache_dir = self._project.cache_dir
		self.settings = self._project.settings
		self.profile = self._project.profile
		self.items = self._project.items
		self.audio = self._project.audio
		self.output = self._project.output

	#============================
	@property
	def orchestrator(self) -> EncodeOrchestrator:
		return self._orchestrator

	#============================
	def plan(self) -> dict:
		timeline = plan_timeline(self.items, self.settings)
		graph_plan = build_graph(timeline, self.settings, self.profile)
		audio_plan = None
		if self.audio is not None:
			audio_plan = build_audio_plan(self.audio, timeline.total_duration_seconds,
				self.settings.audio_fade_enabled, self.profile,
				source_name=staged_audio_name(self.audio.name))
		return {
			'timeline': timeline.to_dict(),
			'graph': graph_plan.to_dict(),
			'audio': audio_plan.to_dict() if audio_plan is not None else None,
		}

	#============================
	def validate(self) -> None:
		plan_timeline(self.items, self.settings)

	#============================
	def count_commands(self) -> int:
		return self._orchestrator.count_commands(self.items, self.audio, self.settings)

	#============================
	def run(self, on_progress=None):
		self.validate()
		if self.dry_run:
			utils.log("dry run: validation complete")
			return None
		asset = self._orchestrator.run(self.items, self.audio, self.settings,
			on_progress=on_progress)
		asset.save(self.output['file'])
		utils.log(f"wrote {self.output['file']} ({asset.size} bytes)")
		return asset

	#============================
	def release(self) -> None:
		for item in self.items:
			item.release()
		if self.audio is not None:
			self.audio.release()
