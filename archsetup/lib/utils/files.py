import re
from pathlib import Path

from ..output import debug


def _read(path: Path) -> str:
	if not path.exists():
		return ''
	return path.read_text()


def append_once(path: Path, line: str) -> bool:
	"""
	Appends a line unless the file already contains it verbatim.
	Returns True if the file was changed.
	"""
	content = _read(path)

	if line in content.splitlines():
		debug(f'{path} already contains: {line}')
		return False

	if content and not content.endswith('\n'):
		content += '\n'

	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(f'{content}{line}\n')
	return True


def ensure_block(path: Path, header: str, body: list[str]) -> bool:
	"""
	Adds an ini style section (e.g. a pacman repository) once.
	The header line identifies the block, a second call is a no-op
	even if the body changed in the meantime.
	"""
	content = _read(path)

	if header in (line.strip() for line in content.splitlines()):
		debug(f'{path} already contains section {header}')
		return False

	if content and not content.endswith('\n'):
		content += '\n'

	block = '\n'.join([header, *body])
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(f'{content}\n{block}\n')
	return True


def set_option(path: Path, key: str, value: str, separator: str = ' = ') -> bool:
	"""
	Sets `key<separator>value`, uncommenting an existing commented
	out option instead of adding a second one.
	"""
	content = _read(path)
	pattern = re.compile(rf'^#?\s*{re.escape(key)}\b.*$', re.MULTILINE)
	wanted = f'{key}{separator}{value}'

	if re.search(rf'^{re.escape(wanted)}$', content, re.MULTILINE):
		return False

	if pattern.search(content):
		content = pattern.sub(wanted, content, count=1)
	else:
		if content and not content.endswith('\n'):
			content += '\n'
		content += f'{wanted}\n'

	path.write_text(content)
	return True


def write_dropin(path: Path, content: str) -> bool:
	"""
	Writes a templated drop-in file; rewriting identical content is skipped.
	"""
	if _read(path) == content:
		return False

	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(content)
	return True
