import json
import os
import stat
from pathlib import Path

from .args import InstallConfig
from .general import JSON, UNSAFE_JSON
from .output import debug, info, logger


class ConfigurationOutput:
	def __init__(self, config: InstallConfig, path: Path | None = None):
		"""
		Serialises the installation configuration into the one-shot
		config file a later (non-interactive or resumed) run consumes.
		The file carries the password hashes, so it's only readable by
		root and removed as soon as the installation succeeded.

		:param config: Installation configuration object
		:type config: InstallConfig
		"""
		self._config = config
		self._path = path

	@property
	def path(self) -> Path:
		return self._path or logger.directory / 'archsetup_config.json'

	def user_config_to_json(self) -> str:
		return json.dumps(self._config.safe_json(), indent=4, sort_keys=True, cls=JSON)

	def one_shot_to_json(self) -> str:
		out = self._config.safe_json()
		out.update(self._config.unsafe_json())
		return json.dumps(out, indent=4, sort_keys=True, cls=UNSAFE_JSON)

	def write_debug(self) -> None:
		debug(' -- Chosen configuration --')
		debug(self.user_config_to_json())

	def save(self) -> Path:
		target = self.path
		target.parent.mkdir(parents=True, exist_ok=True)

		# create it with restrictive permissions right away instead of chmod'ing after the write
		fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, stat.S_IRUSR | stat.S_IWUSR)
		with os.fdopen(fd, 'w') as fp:
			fp.write(self.one_shot_to_json())

		target.chmod(stat.S_IRUSR | stat.S_IWUSR)

		debug(f'Saved one-shot configuration to {target}')
		return target

	def delete(self) -> None:
		if self.path.exists():
			self.path.unlink()
			info(f'Removed one-shot configuration {self.path}')
