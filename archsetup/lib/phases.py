from collections.abc import Callable
from dataclasses import dataclass

from .exceptions import InputError, PhaseError
from .output import debug, error, info, warn


@dataclass
class Phase:
	name: str
	action: Callable[[], None]
	# undoes the side effects of the phase if a later one fails
	rollback: Callable[[], None] | None = None
	# runs even when resuming behind it, e.g. re-mounting the target
	always: bool = False


class PhaseRunner:
	"""
	Runs phases strictly one after the other. The first failing phase
	stops the run, the rollbacks of the phases that ran so far are
	executed in reverse order and a PhaseError names the resume point.
	A KeyboardInterrupt or SystemExit is rolled back the same way and
	propagates unchanged.
	"""

	def __init__(self, phases: list[Phase], resume_from: str | None = None) -> None:
		self._phases = phases
		self._resume_from = resume_from
		self._completed: list[str] = []

		if resume_from is not None and resume_from not in self.names:
			raise InputError(f'Unknown phase "{resume_from}", valid phases are: {", ".join(self.names)}')

	@property
	def names(self) -> list[str]:
		return [phase.name for phase in self._phases]

	@property
	def completed(self) -> list[str]:
		return list(self._completed)

	def run(self) -> None:
		skipping = self._resume_from is not None
		rollbacks: list[tuple[str, Callable[[], None]]] = []

		for phase in self._phases:
			if skipping and phase.name == self._resume_from:
				skipping = False

			if skipping and not phase.always:
				info(f'Skipping phase {phase.name}')
				continue

			info(f'==> Phase: {phase.name}')

			# a failing phase may have done part of its work, roll it back as well
			if phase.rollback:
				rollbacks.append((phase.name, phase.rollback))

			try:
				phase.action()
			except Exception as err:
				error(f'Phase "{phase.name}" failed: {err}')
				self._rollback(rollbacks)
				raise PhaseError(phase.name, err) from err
			except BaseException:
				# Ctrl-C or an exit() inside the phase, unmount before leaving
				warn(f'Phase "{phase.name}" was interrupted')
				self._rollback(rollbacks)
				raise

			self._completed.append(phase.name)
			debug(f'Phase {phase.name} completed')

	def _rollback(self, rollbacks: list[tuple[str, Callable[[], None]]]) -> None:
		for name, rollback in reversed(rollbacks):
			info(f'Rolling back phase {name}')

			try:
				rollback()
			except Exception as err:
				# keep going, the original failure is what gets reported
				warn(f'Rollback of phase {name} failed: {err}')
