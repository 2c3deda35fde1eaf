class RequirementError(Exception):
	pass


class InputError(Exception):
	"""
	Raised when the operator gave an empty, mismatched or otherwise invalid answer.
	"""


class AbortedByUser(Exception):
	pass


class PreconditionError(Exception):
	"""
	Raised before any destructive action when the target can not be used
	as requested (no partition table, not enough free space, no root partition).
	"""


class DiskError(Exception):
	pass


class InstallError(Exception):
	pass


class SysCallError(Exception):
	def __init__(self, message: str, exit_code: int | None = None, worker_log: bytes = b'') -> None:
		super().__init__(message)
		self.message = message
		self.exit_code = exit_code
		self.worker_log = worker_log


class PhaseError(Exception):
	def __init__(self, phase: str, cause: Exception) -> None:
		super().__init__(f'Phase "{phase}" failed: {cause}')
		self.phase = phase
		self.cause = cause


class DownloadError(Exception):
	pass
