import re
from pathlib import Path

from ..output import debug, info
from ..utils.files import ensure_block, set_option


class PacmanConfig:
	def __init__(self, target: Path | None = None):
		self._config_path = (target or Path('/')) / 'etc' / 'pacman.conf'

	@property
	def path(self) -> Path:
		return self._config_path

	def has_repository(self, name: str) -> bool:
		content = self._config_path.read_text()
		return re.search(rf'^\[{re.escape(name)}\]', content, re.MULTILINE) is not None

	def enable_repository(self, name: str) -> bool:
		"""
		Uncomments a repository that pacman.conf ships commented out, e.g. multilib
		"""
		content = self._config_path.read_text().splitlines(keepends=True)
		changed = False

		for row, line in enumerate(content):
			# Check if this is a commented repository section that needs to be enabled
			match = re.match(r'^#\s*\[(.*)\]', line)

			if match and match.group(1) == name:
				# uncomment the repository section line, properly removing # and any spaces
				content[row] = re.sub(r'^#\s*', '', line)

				# also uncomment the next line (Include statement) if it exists and is commented
				if row + 1 < len(content) and content[row + 1].lstrip().startswith('#'):
					content[row + 1] = re.sub(r'^#\s*', '', content[row + 1])

				changed = True

		if changed:
			info(f'Enabling repository [{name}] in {self._config_path}')
			with open(self._config_path, 'w') as f:
				f.writelines(content)

		return changed

	def add_repository(self, name: str, include: str) -> bool:
		if self.has_repository(name):
			debug(f'Repository [{name}] is already configured')
			return False

		info(f'Adding repository [{name}] to {self._config_path}')
		return ensure_block(self._config_path, f'[{name}]', [f'Include = {include}'])

	def set_parallel_downloads(self, count: int) -> bool:
		return set_option(self._config_path, 'ParallelDownloads', str(count))
