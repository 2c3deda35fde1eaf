import json
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from pytest import MonkeyPatch

from archsetup.lib.exceptions import InputError, SysCallError
from archsetup.lib.models.device import LsblkInfo, PartedDisk
from archsetup.lib.storage import storage

_DATA = Path(__file__).parent / 'data'

# every module that runs external commands through SysCommand
_COMMAND_MODULES = [
	'archsetup.lib.disk.device_handler',
	'archsetup.lib.disk.utils',
	'archsetup.lib.features.base',
	'archsetup.lib.installer',
	'archsetup.lib.mirrors',
	'archsetup.lib.pacman',
]


@pytest.fixture(autouse=True)
def log_dir(tmp_path: Path, monkeypatch: MonkeyPatch) -> Iterator[Path]:
	log_path = tmp_path / 'log'
	monkeypatch.setitem(storage, 'LOG_PATH', log_path)

	yield log_path

	storage.pop('active_target', None)


@pytest.fixture(scope='session')
def config_fixture() -> Path:
	return _DATA / 'test_config.json'


@pytest.fixture(scope='session')
def parted_output() -> Callable[[str], str]:
	def _read(name: str) -> str:
		return (_DATA / f'parted_{name}.txt').read_text()

	return _read


@pytest.fixture(scope='session')
def parted_disk(parted_output: Callable[[str], str]) -> Callable[[str], PartedDisk]:
	def _parse(name: str) -> PartedDisk:
		return PartedDisk.from_machine_output(parted_output(name))

	return _parse


@pytest.fixture(scope='session')
def lsblk_devices() -> Callable[[str], list[LsblkInfo]]:
	def _load(name: str) -> list[LsblkInfo]:
		data = json.loads((_DATA / f'lsblk_{name}.json').read_text())
		return [LsblkInfo.model_validate(dev) for dev in data['blockdevices']]

	return _load


class FakeCommand:
	def __init__(self, cmd: list[str], output: str = '') -> None:
		self.cmd = cmd
		self.exit_code = 0
		self._output = output.encode()

	def decode(self, *args: Any, **kwargs: Any) -> str:
		return self._output.decode().strip()

	def output(self, remove_cr: bool = True) -> bytes:
		return self._output


class CommandRecorder:
	"""
	Stands in for SysCommand: records every command line and answers
	with canned output. Commands whose line contains one of the
	`failing` fragments raise SysCallError.
	"""

	def __init__(self) -> None:
		self.calls: list[list[str]] = []
		self.kwargs: list[dict[str, Any]] = []
		self.outputs: dict[str, str] = {}
		self.failing: dict[str, str] = {}

	def __call__(self, cmd: str | list[str], *args: Any, **kwargs: Any) -> FakeCommand:
		if isinstance(cmd, str):
			cmd = cmd.split()

		cmd = [str(c) for c in cmd]
		self.calls.append(cmd)
		self.kwargs.append(kwargs)

		line = ' '.join(cmd)

		for fragment, message in self.failing.items():
			if fragment in line:
				raise SysCallError(f'{cmd} failed', 1, worker_log=message.encode())

		for fragment, output in self.outputs.items():
			if fragment in line:
				return FakeCommand(cmd, output)

		return FakeCommand(cmd)

	def lines(self) -> list[str]:
		return [' '.join(c) for c in self.calls]

	def find(self, fragment: str) -> list[str]:
		return [line for line in self.lines() if fragment in line]


@pytest.fixture
def commands(monkeypatch: MonkeyPatch) -> CommandRecorder:
	recorder = CommandRecorder()

	for module in _COMMAND_MODULES:
		monkeypatch.setattr(f'{module}.SysCommand', recorder)

	return recorder


class ScriptedTerminal:
	"""
	Replaces the controlling terminal: answers prompts from a
	prepared list and collects everything written to it.
	"""

	def __init__(self) -> None:
		self.answers: list[str] = []
		self.prompts: list[str] = []
		self.hidden: list[bool] = []
		self.output = ''

	def read_line(self, prompt: str, hidden: bool = False) -> str:
		self.prompts.append(prompt)
		self.hidden.append(hidden)

		if not self.answers:
			raise InputError('Input stream closed')

		return self.answers.pop(0)

	def write(self, text: str) -> None:
		self.output += text


@pytest.fixture
def tty(monkeypatch: MonkeyPatch) -> ScriptedTerminal:
	terminal = ScriptedTerminal()
	monkeypatch.setattr('archsetup.lib.terminal.read_line', terminal.read_line)
	monkeypatch.setattr('archsetup.lib.terminal.write', terminal.write)
	return terminal


@pytest.fixture
def pacman_conf(tmp_path: Path) -> Path:
	"""
	A stock pacman.conf below a fake root
	"""
	path = tmp_path / 'root' / 'etc' / 'pacman.conf'
	path.parent.mkdir(parents=True)
	path.write_text((_DATA / 'pacman.conf').read_text())
	return path
