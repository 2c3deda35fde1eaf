import time
from collections.abc import Callable
from pathlib import Path

from .. import terminal
from ..exceptions import InputError, RequirementError
from ..general import SysCommand
from ..output import error, info, warn
from .config import PacmanConfig


class Pacman:
	def __init__(self, target: Path | None = None, silent: bool = False):
		self.synced = False
		self.silent = silent
		self.target = target

	@staticmethod
	def run(args: str | list[str], default_cmd: str = 'pacman', peek_output: bool = False) -> SysCommand:
		"""
		A centralized function to call `pacman` from.
		It also protects us from colliding with other running pacman sessions (if used locally).
		The grace period is set to 10 minutes before exiting hard if another pacman instance is running.
		"""
		pacman_db_lock = Path('/var/lib/pacman/db.lck')

		if pacman_db_lock.exists():
			warn('Pacman is already running, waiting maximum 10 minutes for it to terminate.')

		started = time.time()
		while pacman_db_lock.exists():
			time.sleep(0.25)

			if time.time() - started > (60 * 10):
				error('Pre-existing pacman lock never exited. Please clean up any existing pacman sessions before using archsetup.')
				exit(1)

		if isinstance(args, str):
			args = args.split()

		return SysCommand([default_cmd, *args], peek_output=peek_output)

	def ask(self, error_message: str, bail_message: str, func: Callable, *args, **kwargs) -> None:  # type: ignore[no-untyped-def, type-arg]
		while True:
			try:
				func(*args, **kwargs)
				break
			except Exception as err:
				error(f'{error_message}: {err}')

				if not self.silent:
					try:
						answer = terminal.read_line('Would you like to re-try this download? (Y/n): ')
					except InputError:
						answer = 'n'

					if answer.lower().strip() in ('', 'y', 'yes'):
						continue

				raise RequirementError(f'{bail_message}: {err}')

	def sync(self) -> None:
		if self.synced:
			return
		self.ask(
			'Could not sync a new package database',
			'Could not sync mirrors',
			self.run,
			'-Syy',
			default_cmd='pacman',
		)
		self.synced = True

	def install(self, packages: str | list[str]) -> None:
		"""
		Installs packages on the running system, already installed ones are kept.
		"""
		if isinstance(packages, str):
			packages = [packages]

		info(f'Installing packages: {packages}')

		self.ask(
			'Could not install packages',
			'Package installation failed. See /var/log/archsetup/install.log or above message for error details',
			self.run,
			['-S', '--needed', '--noconfirm', *packages],
			peek_output=True,
		)

	def upgrade(self) -> None:
		info('Upgrading the system')
		self.run(['-Syu', '--noconfirm'], peek_output=True)
		self.synced = True

	def strap(self, packages: str | list[str]) -> None:
		if self.target is None:
			raise RequirementError('pacstrap needs an installation target')

		self.sync()
		if isinstance(packages, str):
			packages = [packages]

		info(f'Installing packages: {packages}')

		self.ask(
			'Could not strap in packages',
			'Pacstrap failed. See /var/log/archsetup/install.log or above message for error details',
			SysCommand,
			['pacstrap', '-K', str(self.target), *packages, '--noconfirm'],
			peek_output=True,
		)


__all__ = [
	'Pacman',
	'PacmanConfig',
]
