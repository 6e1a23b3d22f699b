#!/usr/bin/env python3

import io
import threading
import time
import PIL.Image
from reellib.core import utils
from reellib.core.audio import build_audio_plan
from reellib.core.errors import (AudioProcessingError, BackendBusyError,
	BackendExecError, BackendLoadError, EmptyOutputError, EncodeError,
	ReelError, StagingError)
from reellib.core.graph import build_graph
from reellib.core.models import (AudioAsset, JobPhase, MediaKind, OutputProfile,
	Settings, VideoAsset)
from reellib.core.progress import ProgressTracker
from reellib.core.timeline import plan_timeline
from reellib.media.ffmpeg_audio import build_audio_commands
from reellib.media.ffmpeg_encode import (build_encode_command, staged_audio_name,
	staged_input_name)

TERMINAL_PHASES = (JobPhase.DONE, JobPhase.FAILED)

#============================================

class EncodeJob():
	"""
	State of a single run. Once done or failed it cannot move again.
	"""
	def __init__(self, on_progress=None):
		self.phase = JobPhase.IDLE
		self.phases = [JobPhase.IDLE]
		self.progress = ProgressTracker(on_progress)
		self.result = None
		self.error = None
		self.started_at = time.time()
		self.finished_at = None

	#============================
	@property
	def progress_percent(self) -> int:
		return self.progress.value

	#============================
	@property
	def terminal(self) -> bool:
		return self.phase in TERMINAL_PHASES

	#============================
	def transition(self, phase: JobPhase) -> None:
		if self.terminal:
			raise RuntimeError(f"job already {self.phase.value}, cannot enter {phase.value}")
		self.phase = phase
		self.phases.append(phase)
		utils.log(f"phase: {phase.value}")

	#============================
	def finish(self, asset: VideoAsset) -> None:
		self.transition(JobPhase.DONE)
		self.result = asset
		self.finished_at = time.time()
		self.progress.report(100)

	#============================
	def fail(self, error: Exception) -> None:
		if self.terminal:
			return
		self.phase = JobPhase.FAILED
		self.phases.append(JobPhase.FAILED)
		self.error = error
		self.finished_at = time.time()

#============================================

class EncodeOrchestrator():
	def __init__(self, backend, profile: OutputProfile = None, core_paths=None):
		self.backend = backend
		self.profile = profile if profile is not None else OutputProfile()
		self.core_paths = core_paths
		self.last_job = None
		self._run_lock = threading.Lock()

	#============================
	def run(self, items: list, audio: AudioAsset, settings: Settings,
		on_progress=None) -> VideoAsset:
		if not self._run_lock.acquire(blocking=False):
			raise BackendBusyError("an encode is already running on this backend")
		try:
			job = EncodeJob(on_progress)
			self.last_job = job
			return self._run_job(job, items, audio, settings)
		finally:
			self._run_lock.release()

	#============================
	def count_commands(self, items: list, audio: AudioAsset,
		settings: Settings) -> int:
		timeline = plan_timeline(items, settings)
		audio_plan = build_audio_plan(audio, timeline.total_duration_seconds,
			settings.audio_fade_enabled, self.profile)
		total = 1
		if audio_plan is not None:
			total += len(build_audio_commands(audio_plan, self.profile))
		return total

	#============================
	def _run_job(self, job: EncodeJob, items: list, audio: AudioAsset,
		settings: Settings) -> VideoAsset:
		try:
			timeline = plan_timeline(items, settings)
			audio_plan = None
			if audio is not None:
				audio_plan = build_audio_plan(audio, timeline.total_duration_seconds,
					settings.audio_fade_enabled, self.profile,
					source_name=staged_audio_name(audio.name))
		except ReelError as exc:
			job.fail(exc)
			raise
		job.progress.report(0)
		utils.log(f"timeline: {len(timeline)} items, "
			f"{utils.format_seconds(timeline.total_duration_seconds)} seconds")

		def _on_backend_progress(payload: dict) -> None:
			if job.phase != JobPhase.ENCODING:
				return
			seconds = payload.get('time')
			total = float(timeline.total_duration_seconds)
			if seconds is None or total <= 0:
				return
			job.progress.advance(JobPhase.ENCODING, seconds / total)

		self.backend.on('progress', _on_backend_progress)
		try:
			self._load_backend(job)
			staged_names = self._stage_inputs(job, timeline)
			audio_name = None
			if audio_plan is not None:
				audio_name = self._prepare_audio(job, audio, audio_plan)
			graph_plan = self._build_graph(job, timeline, settings)
			self._encode(job, timeline, staged_names, graph_plan, audio_name)
			data = self._validate_output(job)
			asset = VideoAsset(data, timeline.total_duration_seconds,
				has_audio=audio_name is not None)
			job.finish(asset)
			utils.log(f"encoded {len(data)} bytes in "
				f"{job.finished_at - job.started_at:.1f} seconds")
			return asset
		except Exception as exc:
			job.fail(exc)
			raise
		finally:
			self.backend.off('progress', _on_backend_progress)
			self._terminate_backend()

	#============================
	def _load_backend(self, job: EncodeJob) -> None:
		job.transition(JobPhase.LOADING_BACKEND)
		try:
			self.backend.load(self.core_paths)
		except BackendLoadError:
			raise
		except (OSError, RuntimeError) as exc:
			raise BackendLoadError(f"encoding backend failed to load: {exc}") from exc
		job.progress.complete(JobPhase.LOADING_BACKEND)

	#============================
	def _stage_inputs(self, job: EncodeJob, timeline) -> list:
		job.transition(JobPhase.STAGING_INPUTS)
		staged_names = []
		count = len(timeline)
		for index, entry in enumerate(timeline):
			item = entry.item
			name = staged_input_name(index, item)
			data = item.source_bytes
			if data is None or len(data) == 0:
				raise StagingError("source has no content", item_id=item.id)
			if item.kind == MediaKind.IMAGE:
				self._verify_image(item, data)
			try:
				self.backend.write_file(name, data)
			except (OSError, ValueError, RuntimeError) as exc:
				raise StagingError(f"cannot stage {name}: {exc}", item_id=item.id) from exc
			staged_names.append(name)
			job.progress.advance(JobPhase.STAGING_INPUTS, (index + 1) / count)
		job.progress.complete(JobPhase.STAGING_INPUTS)
		return staged_names

	#============================
	def _verify_image(self, item, data: bytes) -> None:
		try:
			with PIL.Image.open(io.BytesIO(data)) as image:
				image.verify()
		except (PIL.UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
			raise StagingError(f"image cannot be decoded: {exc}", item_id=item.id) from exc

	#============================
	def _prepare_audio(self, job: EncodeJob, audio: AudioAsset, audio_plan) -> str:
		job.transition(JobPhase.PREPARING_AUDIO)
		if audio.source_bytes is None or len(audio.source_bytes) == 0:
			raise AudioProcessingError("audio source has no content")
		try:
			self.backend.write_file(audio_plan.source_name, audio.source_bytes)
		except (OSError, ValueError, RuntimeError) as exc:
			raise AudioProcessingError(f"cannot stage audio: {exc}") from exc
		superseded = [audio_plan.source_name]
		commands = build_audio_commands(audio_plan, self.profile)
		for index, command in enumerate(commands):
			try:
				self.backend.exec(list(command.argv))
			except BackendExecError as exc:
				raise AudioProcessingError(f"audio {command.label} failed: {exc}") from exc
			self._require_artifact(command.output_name, AudioProcessingError,
				f"audio {command.label} produced no output")
			if index < len(commands) - 1:
				superseded.append(command.output_name)
			job.progress.advance(JobPhase.PREPARING_AUDIO, (index + 1) / len(commands))
		for name in superseded:
			try:
				self.backend.delete_file(name)
			except (OSError, ValueError, RuntimeError) as exc:
				raise AudioProcessingError(f"cannot remove {name}: {exc}") from exc
		job.progress.complete(JobPhase.PREPARING_AUDIO)
		return audio_plan.output_name

	#============================
	def _build_graph(self, job: EncodeJob, timeline, settings: Settings):
		job.transition(JobPhase.BUILDING_FILTER_GRAPH)
		graph_plan = build_graph(timeline, settings, self.profile)
		job.progress.complete(JobPhase.BUILDING_FILTER_GRAPH)
		return graph_plan

	#============================
	def _encode(self, job: EncodeJob, timeline, staged_names: list, graph_plan,
		audio_name: str) -> None:
		job.transition(JobPhase.ENCODING)
		job.progress.start(JobPhase.ENCODING)
		argv = build_encode_command(timeline, staged_names, graph_plan,
			audio_name=audio_name, profile=self.profile)
		try:
			self.backend.exec(argv)
		except BackendExecError as exc:
			raise EncodeError(f"encode failed: {exc}") from exc
		job.progress.complete(JobPhase.ENCODING)

	#============================
	def _validate_output(self, job: EncodeJob) -> bytes:
		job.transition(JobPhase.VALIDATING_OUTPUT)
		output_name = self.profile.output_name
		self._require_artifact(output_name, EmptyOutputError,
			f"{output_name} was not created")
		try:
			data = self.backend.read_file(output_name)
		except (OSError, ValueError, RuntimeError) as exc:
			raise EmptyOutputError(f"cannot read {output_name}: {exc}") from exc
		if data is None or len(data) == 0:
			raise EmptyOutputError(f"{output_name} is empty")
		return data

	#============================
	def _require_artifact(self, name: str, error_class, message: str) -> None:
		try:
			entries = self.backend.list_files()
		except (OSError, RuntimeError) as exc:
			raise error_class(f"{message}: {exc}") from exc
		for entry in entries:
			if entry.name == name and entry.size > 0:
				return
		raise error_class(message)

	#============================
	def _terminate_backend(self) -> None:
		try:
			self.backend.terminate()
		except OSError as exc:
			utils.log(f"warning: backend terminate failed: {exc}")
