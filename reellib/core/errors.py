#!/usr/bin/env python3

#============================================

class ReelError(RuntimeError):
	"""
	Base class for every failure a reel run can end with.

	Carries the stage the run was in and, when one item is to blame,
	that item's id so the caller can point at it.
	"""
	default_stage = None

	def __init__(self, message: str, stage: str = None, item_id: str = None):
		self.stage = stage if stage is not None else self.default_stage
		self.item_id = item_id
		self.message = message
		super().__init__(self._compose(message))

	#============================
	def _compose(self, message: str) -> str:
		parts = []
		if self.stage is not None:
			parts.append(f"[{self.stage}]")
		if self.item_id is not None:
			parts.append(f"item {self.item_id}:")
		parts.append(message)
		return " ".join(parts)

#============================================

class InvalidInput(ReelError):
	default_stage = 'idle'

#============================================

class BackendLoadError(ReelError):
	default_stage = 'loadingBackend'

#============================================

class StagingError(ReelError):
	default_stage = 'stagingInputs'

#============================================

class AudioProcessingError(ReelError):
	default_stage = 'preparingAudio'

#============================================

class EncodeError(ReelError):
	default_stage = 'encoding'

#============================================

class EmptyOutputError(ReelError):
	default_stage = 'validatingOutput'

#============================================

class BackendBusyError(ReelError):
	pass

#============================================

class BackendExecError(ReelError):
	"""
	Raised by a backend when a command exits non-zero or hits its deadline.
	"""
	def __init__(self, message: str, returncode: int = None, output_tail: str = ""):
		self.returncode = returncode
		self.output_tail = output_tail
		super().__init__(message)
