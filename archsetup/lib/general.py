from __future__ import annotations

import json
import os
import shlex
import stat
import subprocess
import sys
import time
from enum import Enum
from pathlib import Path
from shutil import which
from typing import Any, override

from .exceptions import RequirementError, SysCallError
from .output import debug
from .storage import storage


def locate_binary(name: str) -> str:
	if path := which(name):
		return path
	raise RequirementError(f'Binary {name} does not exist.')


def has_binary(name: str) -> bool:
	return which(name) is not None


def jsonify(obj: Any, safe: bool = True) -> Any:
	"""
	Converts objects into json.dumps() compatible nested dictionaries.
	Setting safe to True skips dictionary keys starting with a bang (!)
	"""
	compatible_types = str, int, float, bool
	if isinstance(obj, dict):
		return {
			key: jsonify(value, safe)
			for key, value in obj.items()
			if isinstance(key, compatible_types)
			and not (isinstance(key, str) and key.startswith('!') and safe)
		}
	if isinstance(obj, Enum):
		return obj.value
	if hasattr(obj, 'json'):
		# json() is a friendly name for json-helper, it should return
		# a dictionary representation of the object
		return jsonify(obj.json(), safe)
	if isinstance(obj, list | set | tuple):
		return [jsonify(item, safe) for item in obj]
	if isinstance(obj, Path):
		return str(obj)

	return obj


class JSON(json.JSONEncoder, json.JSONDecoder):
	"""
	A safe JSON encoder that will omit private information in dicts (starting with !)
	"""

	@override
	def encode(self, o: Any) -> str:
		return super().encode(jsonify(o))


class UNSAFE_JSON(json.JSONEncoder, json.JSONDecoder):
	"""
	UNSAFE_JSON will call/encode and keep private information in dicts (starting with !)
	"""

	@override
	def encode(self, o: Any) -> str:
		return super().encode(jsonify(o, safe=False))


class SysCommand:
	"""
	Runs a command to completion and keeps its combined stdout/stderr.
	A non-zero exit code raises SysCallError, a missing binary RequirementError.
	With peek_output the output is streamed to the console while it's collected.
	"""

	def __init__(
		self,
		cmd: str | list[str],
		peek_output: bool = False,
		environment_vars: dict[str, str] | None = None,
		working_directory: str | Path | None = None,
		input_data: bytes | None = None,
	):
		if isinstance(cmd, str):
			cmd = shlex.split(cmd)
		else:
			cmd = list(cmd)

		if cmd and not cmd[0].startswith(('/', './')):
			cmd[0] = locate_binary(cmd[0])

		self.cmd = cmd
		self.peek_output = peek_output
		# define the standard locale for command outputs. For now the C ascii one. Can be overridden
		self.environment_vars = {'LC_ALL': 'C'}
		if environment_vars:
			self.environment_vars.update(environment_vars)

		self.working_directory = working_directory
		self.input_data = input_data

		self.exit_code: int | None = None
		self._trace_log = b''

		self._execute()

	@override
	def __repr__(self) -> str:
		return self.decode('UTF-8', errors='backslashreplace') or ''

	def _execute(self) -> None:
		_log_cmd(self.cmd)

		proc = subprocess.Popen(
			self.cmd,
			stdin=subprocess.PIPE if self.input_data is not None else subprocess.DEVNULL,
			stdout=subprocess.PIPE,
			stderr=subprocess.STDOUT,
			env={**os.environ, **self.environment_vars},
			cwd=self.working_directory,
		)

		if self.input_data is not None and proc.stdin:
			proc.stdin.write(self.input_data)
			proc.stdin.close()

		assert proc.stdout is not None

		for chunk in iter(lambda: proc.stdout.read1(8192), b''):  # type: ignore[union-attr]
			self._trace_log += chunk

			if self.peek_output:
				sys.stdout.write(chunk.decode('UTF-8', errors='replace'))
				sys.stdout.flush()

		self.exit_code = proc.wait()

		if self.exit_code != 0:
			raise SysCallError(
				f'{self.cmd} exited with abnormal exit code [{self.exit_code}]: {self.decode()[-500:]}',
				self.exit_code,
				worker_log=self._trace_log,
			)

	def decode(self, encoding: str = 'utf-8', errors: str = 'backslashreplace', strip: bool = True) -> str:
		val = self._trace_log.decode(encoding, errors=errors)

		if strip:
			return val.strip()
		return val

	def output(self, remove_cr: bool = True) -> bytes:
		if remove_cr:
			return self._trace_log.replace(b'\r\n', b'\n')

		return self._trace_log


def run_interactive(cmd: list[str]) -> None:
	"""
	Hands the terminal over to a command (partition editor, makepkg prompts)
	and waits for it to exit.
	"""
	_log_cmd(cmd)

	try:
		subprocess.run(cmd, check=True)
	except FileNotFoundError:
		raise RequirementError(f'Binary {cmd[0]} does not exist.')
	except subprocess.CalledProcessError as err:
		raise SysCallError(f'{cmd} exited with abnormal exit code [{err.returncode}]', err.returncode)


def capture_interactive(cmd: list[str], input_data: str | None = None) -> str | None:
	"""
	Runs a full screen selection tool and returns what it printed on stdout.
	Without input_data the tool reads the keyboard from the controlling terminal.
	Returns None when the tool exited non-zero (cancelled).
	"""
	_log_cmd(cmd)

	try:
		if input_data is None:
			with open('/dev/tty') as tty:
				proc = subprocess.run(cmd, stdin=tty, stdout=subprocess.PIPE, text=True)
		else:
			proc = subprocess.run(cmd, input=input_data, stdout=subprocess.PIPE, text=True)
	except FileNotFoundError:
		raise RequirementError(f'Binary {cmd[0]} does not exist.')
	except OSError as err:
		raise RequirementError(f'No terminal available for {cmd[0]}: {err}')

	if proc.returncode != 0:
		debug(f'{cmd[0]} exited with code {proc.returncode}, treating it as cancelled')
		return None

	return proc.stdout.strip()


def _log_cmd(cmd: list[str]) -> None:
	history_logfile = storage['LOG_PATH'] / 'cmd_history.txt'

	change_perm = False
	if history_logfile.exists() is False:
		change_perm = True

	try:
		with history_logfile.open('a') as cmd_log:
			cmd_log.write(f'{time.time()} {cmd}\n')

		if change_perm:
			history_logfile.chmod(stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP)
	except (PermissionError, FileNotFoundError):
		# If history_logfile does not exist, ignore the error
		pass

	debug(f'Executing: {shlex.join(cmd)}')
