#!/usr/bin/env python3

"""
Encoding backends.

A backend owns a private working directory (its file namespace) and runs
command/argument driven encodes inside it. The orchestrator only talks to
the EncodingBackend interface, so any engine that can load, take files,
run an argv and hand files back can stand in for the local ffmpeg.
"""

import os
import re
import shutil
import subprocess
import tempfile
import threading
import time
from dataclasses import dataclass
from reellib.core import utils
from reellib.core.errors import BackendExecError, BackendLoadError

EVENTS = ('log', 'progress')
PROGRESS_KEY_RE = re.compile(r"^[a-z_0-9]+=\S*$")
TAIL_LINES = 200

#============================================

@dataclass(frozen=True)
class FileEntry:
	name: str
	size: int

#============================================

class EncodingBackend():
	def __init__(self):
		self._listeners = {event: [] for event in EVENTS}

	#============================
	def on(self, event: str, callback) -> None:
		if event not in self._listeners:
			raise ValueError(f"unknown backend event {event}")
		self._listeners[event].append(callback)

	#============================
	def off(self, event: str, callback) -> None:
		listeners = self._listeners.get(event, [])
		if callback in listeners:
			listeners.remove(callback)

	#============================
	def _emit(self, event: str, payload: dict) -> None:
		for callback in list(self._listeners.get(event, [])):
			callback(payload)

	#============================
	@property
	def loaded(self) -> bool:
		raise NotImplementedError

	#============================
	def load(self, core_paths=None) -> None:
		raise NotImplementedError

	#============================
	def write_file(self, name: str, data: bytes) -> None:
		raise NotImplementedError

	#============================
	def read_file(self, name: str) -> bytes:
		raise NotImplementedError

	#============================
	def delete_file(self, name: str) -> None:
		raise NotImplementedError

	#============================
	def list_files(self) -> list:
		raise NotImplementedError

	#============================
	def exec(self, argv: list) -> None:
		raise NotImplementedError

	#============================
	def terminate(self) -> None:
		raise NotImplementedError

#============================================

class FfmpegBackend(EncodingBackend):
	"""
	Runs a local ffmpeg binary inside a private temporary directory.

	The binary is resolved once; terminate() drops the working directory
	and any live process, and the next load() only recreates the directory.
	"""
	def __init__(self, ffmpeg_bin: str = None, cache_dir: str = None,
		keep_temp: bool = False, timeout: float = None):
		super().__init__()
		self.ffmpeg_bin = ffmpeg_bin
		self.cache_dir = cache_dir
		self.keep_temp = keep_temp
		self.timeout = timeout
		self.work_dir = None
		self._resolved_bin = None
		self._process = None
		self._process_lock = threading.Lock()

	#============================
	@property
	def loaded(self) -> bool:
		return self._resolved_bin is not None and self.work_dir is not None

	#============================
	def load(self, core_paths=None) -> None:
		if self.loaded:
			return
		if self._resolved_bin is None:
			self._resolved_bin = self._resolve_binary(core_paths)
		if self.cache_dir is not None and not os.path.exists(self.cache_dir):
			os.makedirs(self.cache_dir)
		try:
			self.work_dir = tempfile.mkdtemp(prefix="reel-run-", dir=self.cache_dir)
		except OSError as exc:
			raise BackendLoadError(f"cannot create working directory: {exc}") from exc

	#============================
	def _resolve_binary(self, core_paths) -> str:
		candidate = self.ffmpeg_bin
		if isinstance(core_paths, dict):
			candidate = core_paths.get('ffmpeg', candidate)
		elif isinstance(core_paths, str):
			candidate = core_paths
		if candidate is None:
			candidate = shutil.which("ffmpeg")
		if candidate is None:
			raise BackendLoadError("ffmpeg not found on PATH")
		argv = [candidate, "-hide_banner", "-version"]
		try:
			proc = subprocess.run(argv, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
		except OSError as exc:
			raise BackendLoadError(f"cannot start {candidate}: {exc}") from exc
		if proc.returncode != 0:
			raise BackendLoadError(f"{candidate} -version exited with {proc.returncode}")
		first_line = proc.stdout.decode("utf-8", errors="replace").split("\n")[0]
		utils.log(f"backend: {first_line}")
		return candidate

	#============================
	def _path(self, name: str) -> str:
		if not self.loaded:
			raise RuntimeError("backend is not loaded")
		if name in ("", ".", "..") or os.path.basename(name) != name:
			raise ValueError(f"invalid backend file name {name!r}")
		return os.path.join(self.work_dir, name)

	#============================
	def write_file(self, name: str, data: bytes) -> None:
		with open(self._path(name), "wb") as handle:
			handle.write(data)

	#============================
	def read_file(self, name: str) -> bytes:
		with open(self._path(name), "rb") as handle:
			return handle.read()

	#============================
	def delete_file(self, name: str) -> None:
		path = self._path(name)
		if os.path.exists(path):
			os.remove(path)

	#============================
	def list_files(self) -> list:
		if not self.loaded:
			raise RuntimeError("backend is not loaded")
		entries = []
		with os.scandir(self.work_dir) as scan:
			for entry in scan:
				if entry.is_file():
					entries.append(FileEntry(entry.name, entry.stat().st_size))
		entries.sort(key=lambda entry: entry.name)
		return entries

	#============================
	def exec(self, argv: list) -> None:
		if not self.loaded:
			raise RuntimeError("backend is not loaded")
		full_argv = [self._resolved_bin, "-hide_banner", "-nostdin", "-y",
			"-progress", "pipe:1", "-nostats"]
		full_argv += [str(part) for part in argv]
		utils.report_command_start(full_argv)
		t0 = time.time()
		try:
			process = subprocess.Popen(full_argv, cwd=self.work_dir,
				stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
				text=True, bufsize=1, errors="replace")
		except OSError as exc:
			utils.report_command_end(full_argv, -1, time.time() - t0)
			raise BackendExecError(f"cannot start ffmpeg: {exc}") from exc
		with self._process_lock:
			self._process = process
		timed_out = threading.Event()
		timer = None
		if self.timeout is not None:
			def _kill_on_timeout() -> None:
				timed_out.set()
				process.kill()
			timer = threading.Timer(self.timeout, _kill_on_timeout)
			timer.daemon = True
			timer.start()
		tail = []
		try:
			for raw_line in process.stdout:
				line = raw_line.strip()
				if line == "":
					continue
				self._handle_output_line(line, tail)
			process.wait()
		finally:
			if timer is not None:
				timer.cancel()
			with self._process_lock:
				self._process = None
		utils.report_command_end(full_argv, process.returncode, time.time() - t0)
		tail_text = "\n".join(tail[-20:])
		if timed_out.is_set():
			raise BackendExecError(f"ffmpeg timed out after {self.timeout}s",
				returncode=process.returncode, output_tail=tail_text)
		if process.returncode != 0:
			raise BackendExecError(f"ffmpeg exited with {process.returncode}: {tail_text}",
				returncode=process.returncode, output_tail=tail_text)

	#============================
	def _handle_output_line(self, line: str, tail: list) -> None:
		if line.startswith("out_time_us=") or line.startswith("out_time_ms="):
			# both keys carry microseconds
			value = line.split("=", 1)[1]
			if value.lstrip("-").isdigit():
				self._emit('progress', {'time': int(value) / 1000000.0})
			return
		if line == "progress=end":
			self._emit('progress', {'done': True})
			return
		if PROGRESS_KEY_RE.match(line):
			return
		tail.append(line)
		if len(tail) > TAIL_LINES:
			del tail[:-TAIL_LINES]
		self._emit('log', {'message': line})

	#============================
	def terminate(self) -> None:
		with self._process_lock:
			process = self._process
		if process is not None and process.poll() is None:
			process.kill()
		if self.work_dir is not None:
			if not self.keep_temp:
				shutil.rmtree(self.work_dir, ignore_errors=True)
			else:
				utils.log(f"kept backend files in {self.work_dir}")
			self.work_dir = None
