import logging
import os
import sys
from dataclasses import asdict, is_dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from .storage import storage


class FormattedOutput:
	@classmethod
	def _get_values(cls, o: Any) -> dict[str, Any]:
		if hasattr(o, 'table_data'):
			return o.table_data()
		elif hasattr(o, 'json'):
			return o.json()
		elif is_dataclass(o) and not isinstance(o, type):
			return asdict(o)

		return o.__dict__

	@classmethod
	def as_table(cls, obj: list[Any]) -> str:
		"""
		Formats a list of objects as a table, one record per line,
		so the result can be handed to a print statement directly.
		Keys starting with a bang (!) are masked.
		"""
		raw_data = [cls._get_values(o) for o in obj]

		column_width: dict[str, int] = {}
		for o in raw_data:
			for k, v in o.items():
				column_width.setdefault(k, 0)
				column_width[k] = max([column_width[k], len(str(v)), len(k)])

		columns = list(column_width.keys())

		output = ''
		key_list = []
		for key in columns:
			width = column_width[key]
			key = key.replace('!', '').replace('_', ' ')

			key_list.append(key.ljust(width))

		output += ' | '.join(key_list) + '\n'
		output += '-' * len(output) + '\n'

		for record in raw_data:
			obj_data = []
			for key in columns:
				width = column_width[key]
				value = record.get(key, '')

				if '!' in key:
					value = '*' * len(str(value))

				if isinstance(value, int | float):
					obj_data.append(str(value).rjust(width))
				else:
					obj_data.append(str(value).ljust(width))

			output += ' | '.join(obj_data) + '\n'

		return output


class Journald:
	@staticmethod
	def log(message: str, level: int = logging.DEBUG) -> None:
		try:
			import systemd.journal  # type: ignore[import-not-found]
		except ModuleNotFoundError:
			return None

		log_adapter = logging.getLogger('archsetup')
		if not log_adapter.handlers:
			log_ch = systemd.journal.JournalHandler()
			log_ch.setFormatter(logging.Formatter('[%(levelname)s]: %(message)s'))
			log_adapter.addHandler(log_ch)
			log_adapter.setLevel(logging.DEBUG)

		log_adapter.log(level, message)


class Logger:
	def __init__(self, path: Path | None = None) -> None:
		self._path = path

	@property
	def directory(self) -> Path:
		return self._path or storage['LOG_PATH']

	@property
	def path(self) -> Path:
		return self.directory / 'install.log'

	def _check_permissions(self) -> None:
		log_file = self.path

		try:
			self.directory.mkdir(exist_ok=True, parents=True)
			log_file.touch(exist_ok=True)
		except PermissionError:
			# Fallback to creating the log file in the current folder
			self._path = Path('./').absolute()
			storage['LOG_PATH'] = self._path

			warn(f'Not enough permission to place log file at {log_file}, creating it in {self.path} instead')

	def log(self, level: int, content: str) -> None:
		self._check_permissions()

		with self.path.open('a') as f:
			f.write(f'[{_timestamp()}] - {logging.getLevelName(level)} - {content}\n')


logger = Logger()


def _supports_color() -> bool:
	supported_platform = sys.platform != 'win32' or 'ANSICON' in os.environ

	# isatty is not always implemented
	is_a_tty = hasattr(sys.stdout, 'isatty') and sys.stdout.isatty()
	return supported_platform and is_a_tty


class Font(Enum):
	bold = '1'
	italic = '3'
	underscore = '4'


_COLORS = {
	'black': '0',
	'red': '1',
	'green': '2',
	'yellow': '3',
	'blue': '4',
	'magenta': '5',
	'cyan': '6',
	'white': '7',
	'gray': '8;5;246',
}


def _stylize_output(text: str, fg: str, bg: str | None, font: list[Font] = []) -> str:
	code_list = [f'3{_COLORS[fg]}']

	if bg:
		code_list.append(f'4{_COLORS[bg]}')

	for o in font:
		code_list.append(o.value)

	ansi = ';'.join(code_list)

	return f'\033[{ansi}m{text}\033[0m'


def _timestamp() -> str:
	now = datetime.now(tz=UTC)
	return now.strftime('%Y-%m-%d %H:%M:%S')


def info(*msgs: str, level: int = logging.INFO, fg: str = 'white', bg: str | None = None, font: list[Font] = []) -> None:
	log(*msgs, level=level, fg=fg, bg=bg, font=font)


def debug(*msgs: str, level: int = logging.DEBUG, fg: str = 'white', bg: str | None = None, font: list[Font] = []) -> None:
	log(*msgs, level=level, fg=fg, bg=bg, font=font)


def error(*msgs: str, level: int = logging.ERROR, fg: str = 'red', bg: str | None = None, font: list[Font] = []) -> None:
	log(*msgs, level=level, fg=fg, bg=bg, font=font)


def warn(*msgs: str, level: int = logging.WARNING, fg: str = 'yellow', bg: str | None = None, font: list[Font] = []) -> None:
	log(*msgs, level=level, fg=fg, bg=bg, font=font)


def log(
	*msgs: str,
	level: int = logging.INFO,
	fg: str = 'white',
	bg: str | None = None,
	font: list[Font] = [],
) -> None:
	text = ' '.join([str(x) for x in msgs])

	logger.log(level, text)

	if _supports_color():
		text = _stylize_output(text, fg, bg, font)

	Journald.log(text, level=level)

	if level != logging.DEBUG or storage.get('DEBUG', False):
		print(text, file=sys.stdout, flush=True)
