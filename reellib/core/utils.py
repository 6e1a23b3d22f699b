#!/usr/bin/env python3

import shlex
import subprocess
import time
from decimal import Decimal

_QUIET_MODE = False
_COMMAND_REPORTER = None
_COMMAND_TOTAL = None
_COMMAND_COUNT = 0

#============================================

def set_quiet_mode(quiet: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(quiet)

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def log(message: str) -> None:
	if not _QUIET_MODE:
		print(message)

#============================================

def set_command_reporter(reporter) -> None:
	"""
	Register a callable that receives command start/end event dicts.
	"""
	global _COMMAND_REPORTER, _COMMAND_COUNT
	_COMMAND_REPORTER = reporter
	_COMMAND_COUNT = 0

#============================================

def clear_command_reporter() -> None:
	global _COMMAND_REPORTER
	_COMMAND_REPORTER = None

#============================================

def set_command_total(total) -> None:
	global _COMMAND_TOTAL, _COMMAND_COUNT
	_COMMAND_TOTAL = total
	_COMMAND_COUNT = 0

#============================================

def command_prefix(index: int, total) -> str:
	if index is None or index <= 0:
		return ""
	if total is None or total <= 0:
		return f"[{index}]"
	return f"[{index}/{total}]"

#============================================

def format_command(argv: list) -> str:
	return " ".join(shlex.quote(str(part)) for part in argv)

#============================================

def report_command_start(argv: list) -> int:
	global _COMMAND_COUNT
	_COMMAND_COUNT += 1
	showcmd = format_command(argv)
	if _COMMAND_REPORTER is not None:
		_COMMAND_REPORTER({
			'event': 'start',
			'command': showcmd,
			'index': _COMMAND_COUNT,
			'total': _COMMAND_TOTAL,
		})
	else:
		log(f"CMD: '{showcmd}'")
	return _COMMAND_COUNT

#============================================

def report_command_end(argv: list, returncode: int, seconds: float) -> None:
	if _COMMAND_REPORTER is None:
		return
	_COMMAND_REPORTER({
		'event': 'end',
		'command': format_command(argv),
		'index': _COMMAND_COUNT,
		'total': _COMMAND_TOTAL,
		'returncode': returncode,
		'seconds': seconds,
	})

#============================================

def run_command(argv: list) -> str:
	"""
	Run an external command and return its stdout, raising on failure.
	"""
	report_command_start(argv)
	t0 = time.time()
	proc = subprocess.run(argv, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
	report_command_end(argv, proc.returncode, time.time() - t0)
	if proc.returncode != 0:
		raise subprocess.CalledProcessError(proc.returncode, argv,
			output=proc.stdout, stderr=proc.stderr)
	return proc.stdout.decode("utf-8", errors="replace")

#============================================

def parse_seconds(raw_time) -> Decimal:
	if raw_time is None:
		raise ValueError("time value is required")
	if isinstance(raw_time, bool):
		raise ValueError("time values must be int, float, or timecode string")
	if isinstance(raw_time, Decimal):
		return raw_time
	if isinstance(raw_time, int):
		return Decimal(raw_time)
	if isinstance(raw_time, float):
		return Decimal(str(raw_time))
	if isinstance(raw_time, str):
		value = raw_time.strip()
		if ':' not in value:
			return Decimal(value)
		parts = value.split(':')
		seconds = Decimal(parts.pop())
		minutes = Decimal(parts.pop())
		hours = Decimal(0)
		if len(parts) > 0:
			hours = Decimal(parts.pop())
		return hours * Decimal(3600) + minutes * Decimal(60) + seconds
	raise ValueError("time values must be int, float, or timecode string")

#============================================

def format_seconds(value) -> str:
	"""
	Format a duration for ffmpeg arguments without exponent notation.
	"""
	number = Decimal(str(value)).quantize(Decimal("0.001"))
	text = format(number.normalize(), "f")
	return text
