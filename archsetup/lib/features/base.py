from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import override

from ..general import SysCommand
from ..output import info
from ..pacman import Pacman, PacmanConfig


@dataclass
class PostInstallContext:
	"""
	Everything a feature needs to know about the installed system
	it configures. Commands run as root, `username` is the account
	the script was started from via sudo.
	"""

	username: str
	home: Path
	pacman: Pacman = field(default_factory=Pacman)
	root: Path = Path('/')
	auto_yes: bool = False

	@property
	def pacman_config(self) -> PacmanConfig:
		return PacmanConfig(None if self.root == Path('/') else self.root)

	def run(self, cmd: list[str], peek_output: bool = False) -> SysCommand:
		return SysCommand(cmd, peek_output=peek_output)

	def run_as_user(self, cmd: list[str], working_directory: Path | None = None, peek_output: bool = False) -> SysCommand:
		return SysCommand(
			['sudo', '-H', '-u', self.username, *cmd],
			working_directory=working_directory,
			peek_output=peek_output,
		)

	def systemctl(self, *args: str) -> SysCommand:
		return self.run(['systemctl', *args])


class Feature(ABC):
	name: str = ''
	# None means the feature always runs
	prompt: str | None = None

	@abstractmethod
	def install(self, ctx: PostInstallContext) -> None: ...

	def prepare(self, ctx: PostInstallContext) -> None:
		"""
		Asks the follow-up questions of a selected feature before anything is installed
		"""

	def apply(self, ctx: PostInstallContext) -> None:
		info(f'==> {self.name}')
		self.install(ctx)


class PackageFeature(Feature):
	"""
	A feature that only installs packages
	"""

	packages: list[str] = []

	@override
	def install(self, ctx: PostInstallContext) -> None:
		ctx.pacman.install(self.packages)
