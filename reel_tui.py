#!/usr/bin/env python3

"""
Textual TUI wrapper for reel renders.
"""

# Standard Library
import argparse
import os
import sys
import threading
import time
import traceback

script_dir = os.path.dirname(os.path.abspath(__file__))
if script_dir not in sys.path:
	sys.path.insert(0, script_dir)

# PIP3 modules
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import RichLog, Static
from rich.text import Text

# local repo modules
from reellib.core.project import ReelProject
from reellib.core import utils

#============================================

NORD_COLORS = {
	'dim': "#4C566A",
	'foreground': "#D8DEE9",
	'header': "#88C0D0",
	'command': "#81A1C1",
	'numbers': "#B48EAD",
	'paths': "#A3BE8C",
	'error': "#BF616A",
}

BAR_WIDTH = 30

#============================================

def parse_args():
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="reel TUI wrapper")
	parser.add_argument('-y', '--yaml', dest='yamlfile', required=True,
		help='project yaml listing the photos, clips, audio and settings')
	parser.add_argument('-o', '--output', dest='output_file',
		help='override output file from yaml')
	parser.add_argument('-c', '--cache-dir', dest='cache_dir',
		help='directory for temporary render files')
	parser.add_argument('-k', '--keep-temp', dest='keep_temp',
		help='keep temporary render files', action='store_true')
	parser.add_argument('-t', '--timeout', dest='timeout', type=float,
		help='seconds before a single ffmpeg invocation is killed')
	parser.set_defaults(keep_temp=False)
	args = parser.parse_args()
	return args

#============================================

class ReelTuiApp(App):
	BINDINGS = [
		("q", "quit", "Quit"),
	]

	CSS = """
	#top_row {
		height: 9;
	}

	#dashboard, #project_info {
		width: 50%;
		border: solid gray;
	}

	#log {
		height: 1fr;
		border: solid gray;
	}
	"""

	def __init__(self, yaml_file: str, output_override: str = None,
		keep_temp: bool = False, cache_dir: str = None, timeout: float = None):
		super().__init__()
		self.yaml_file = yaml_file
		self.output_override = output_override
		self.keep_temp = keep_temp
		self.cache_dir = cache_dir
		self.timeout = timeout
		self.project = None
		self.plan = None
		self.percent = 0
		self.command_total = None
		self.start_time = None
		self.elapsed_final = None
		self.error_text = None
		self.dashboard_widget = None
		self.project_widget = None
		self.log_widget = None

	#============================
	def compose(self) -> ComposeResult:
		with Vertical():
			with Horizontal(id="top_row"):
				yield Static("", id="dashboard")
				yield Static("", id="project_info")
			yield RichLog(id="log", wrap=True, highlight=False)

	#============================
	def on_mount(self) -> None:
		self.dashboard_widget = self.query_one("#dashboard", Static)
		self.project_widget = self.query_one("#project_info", Static)
		self.log_widget = self.query_one(RichLog)
		self.start_time = time.time()
		thread = threading.Thread(target=self._run_project, daemon=True)
		thread.start()
		self.set_interval(0.5, self._update_dashboard)

	#============================
	def _run_project(self) -> None:
		utils.set_quiet_mode(True)
		utils.set_command_reporter(self._report_command)
		try:
			self.project = ReelProject(self.yaml_file,
				output_override=self.output_override,
				keep_temp=self.keep_temp,
				cache_dir=self.cache_dir,
				timeout=self.timeout)
			self.plan = self.project.plan()
			self.command_total = self.project.count_commands()
			utils.set_command_total(self.command_total)
			self.call_from_thread(self._update_project_info)
			self.project.run(on_progress=self._report_progress)
		except Exception as exc:
			self.call_from_thread(self._set_error, str(exc), traceback.format_exc())
		finally:
			utils.set_command_total(None)
			utils.clear_command_reporter()
			utils.set_quiet_mode(False)
			self.call_from_thread(self._finish)

	#============================
	def _report_progress(self, percent: int) -> None:
		self.call_from_thread(self._handle_progress, percent)

	#============================
	def _handle_progress(self, percent: int) -> None:
		self.percent = percent
		self._update_dashboard()

	#============================
	def _report_command(self, event: dict) -> None:
		self.call_from_thread(self._handle_command_event, event)

	#============================
	def _handle_command_event(self, event: dict) -> None:
		if self.log_widget is None:
			return
		prefix = utils.command_prefix(event.get('index'), event.get('total'))
		if event.get('event') == 'start':
			line = Text(f"{prefix} ", style=f"bold {NORD_COLORS['header']}")
			line.append(event.get('command', ''), style=NORD_COLORS['command'])
			self.log_widget.write(line)
		elif event.get('returncode', 0) != 0:
			self.log_widget.write(Text(f"{prefix} exited with {event['returncode']}",
				style=f"bold {NORD_COLORS['error']}"))

	#============================
	def _set_error(self, text: str, trace_text: str = None) -> None:
		self.error_text = text
		if self.log_widget is None:
			return
		self.log_widget.write(Text(f"error: {text}", style=f"bold {NORD_COLORS['error']}"))
		if trace_text:
			self.log_widget.write(Text(trace_text, style=NORD_COLORS['dim']))

	#============================
	def _finish(self) -> None:
		if self.start_time is not None:
			self.elapsed_final = time.time() - self.start_time
		if self.log_widget is not None and self.error_text is None:
			output_file = self.project.output['file'] if self.project else "N/A"
			self.log_widget.write(Text(f"wrote {output_file}", style=NORD_COLORS['paths']))
		self._update_dashboard()

	#============================
	def _phase_label(self) -> str:
		if self.project is None or self.project.orchestrator.last_job is None:
			return "idle"
		return self.project.orchestrator.last_job.phase.value

	#============================
	def _update_dashboard(self) -> None:
		if self.dashboard_widget is None:
			return
		if self.elapsed_final is not None:
			elapsed = self.elapsed_final
		elif self.start_time is not None:
			elapsed = time.time() - self.start_time
		else:
			elapsed = 0.0
		phase = self._phase_label()
		phase_style = NORD_COLORS['foreground']
		if self.error_text is not None:
			phase_style = NORD_COLORS['error']
		elif phase == 'done':
			phase_style = NORD_COLORS['paths']
		text = Text()
		text.append("Phase: ", style=NORD_COLORS['dim'])
		text.append(phase, style=phase_style)
		text.append("\n")
		text.append(self._progress_bar(self.percent), style=NORD_COLORS['header'])
		text.append(f" {self.percent:3d}%\n", style=NORD_COLORS['numbers'])
		text.append("Elapsed: ", style=NORD_COLORS['dim'])
		text.append(self._format_duration(elapsed), style=NORD_COLORS['numbers'])
		text.append(" | ETA: ", style=NORD_COLORS['dim'])
		eta_seconds = self._estimate_remaining_seconds(elapsed)
		if eta_seconds is None or self.elapsed_final is not None:
			text.append("N/A", style=NORD_COLORS['dim'])
		else:
			text.append(self._format_duration(eta_seconds), style=NORD_COLORS['numbers'])
		self.dashboard_widget.update(text)

	#============================
	def _update_project_info(self) -> None:
		if self.project_widget is None or self.plan is None:
			return
		timeline = self.plan['timeline']
		audio = self.plan['audio']
		text = Text()
		text.append("Items: ", style=NORD_COLORS['dim'])
		text.append(str(len(timeline['entries'])), style=NORD_COLORS['numbers'])
		text.append(" | Length: ", style=NORD_COLORS['dim'])
		text.append(self._format_duration(timeline['total_seconds']),
			style=NORD_COLORS['numbers'])
		text.append("\nAudio: ", style=NORD_COLORS['dim'])
		if audio is None:
			text.append("none", style=NORD_COLORS['dim'])
		else:
			loops = sum(step.get('loop', 0) for step in audio['steps'])
			text.append(f"{self.project.audio.name} (+{loops} loops)",
				style=NORD_COLORS['paths'])
		text.append("\nCommands: ", style=NORD_COLORS['dim'])
		text.append(str(self.command_total), style=NORD_COLORS['numbers'])
		text.append("\nOutput: ", style=NORD_COLORS['dim'])
		text.append(self.project.output['file'], style=NORD_COLORS['paths'])
		self.project_widget.update(text)

	#============================
	def _progress_bar(self, percent: int) -> str:
		filled = int(round(BAR_WIDTH * max(0, min(100, percent)) / 100.0))
		return "#" * filled + "-" * (BAR_WIDTH - filled)

	#============================
	def _estimate_remaining_seconds(self, elapsed: float):
		if self.percent <= 0 or self.percent >= 100:
			return None
		return elapsed * (100 - self.percent) / self.percent

	#============================
	def _format_duration(self, seconds: float) -> str:
		if seconds < 60:
			return f"{seconds:.1f}s"
		minutes = int(seconds // 60)
		seconds_text = f"{seconds - minutes * 60:04.1f}"
		if minutes < 60:
			return f"{minutes}m {seconds_text}s"
		hours = minutes // 60
		return f"{hours}h {minutes - hours * 60:02d}m {seconds_text}s"

#============================================

def main():
	args = parse_args()
	app = ReelTuiApp(args.yamlfile,
		output_override=args.output_file,
		keep_temp=args.keep_temp,
		cache_dir=args.cache_dir,
		timeout=args.timeout)
	app.run()

#============================================

if __name__ == '__main__':
	main()
