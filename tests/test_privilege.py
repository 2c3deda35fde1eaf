import os
import signal
import stat
import subprocess
import sys
from pathlib import Path

import pytest
from pytest import MonkeyPatch

from archsetup.lib.exceptions import RequirementError
from archsetup.lib.privilege import GRANT_FILE_NAME, invoking_user, temporary_sudo_grant


def test_grant_removed_after_block(tmp_path: Path) -> None:
	with temporary_sudo_grant('alex', sudoers_dir=tmp_path) as grant:
		assert grant == tmp_path / GRANT_FILE_NAME
		assert grant.read_text() == 'alex ALL=(ALL) NOPASSWD: ALL\n'
		assert stat.S_IMODE(grant.stat().st_mode) == 0o440

	assert not (tmp_path / GRANT_FILE_NAME).exists()


def test_grant_removed_on_error(tmp_path: Path) -> None:
	with pytest.raises(RuntimeError):
		with temporary_sudo_grant('alex', sudoers_dir=tmp_path):
			raise RuntimeError('makepkg failed')

	assert not (tmp_path / GRANT_FILE_NAME).exists()


@pytest.mark.parametrize('signum', [signal.SIGTERM, signal.SIGHUP, signal.SIGINT])
def test_grant_removed_on_signal(tmp_path: Path, signum: signal.Signals) -> None:
	previous = signal.getsignal(signum)

	with pytest.raises(SystemExit) as exc:
		with temporary_sudo_grant('alex', sudoers_dir=tmp_path):
			os.kill(os.getpid(), signum)

	assert exc.value.code == 128 + signum
	assert not (tmp_path / GRANT_FILE_NAME).exists()
	# the previous handler is back in place
	assert signal.getsignal(signum) == previous


_GRANT_HOLDER = """
import sys
import time
from pathlib import Path

from archsetup.lib.privilege import temporary_sudo_grant
from archsetup.lib.storage import storage

storage['LOG_PATH'] = Path(sys.argv[2])

with temporary_sudo_grant('alex', sudoers_dir=Path(sys.argv[1])):
	print('granted', flush=True)
	time.sleep(60)
"""


@pytest.mark.parametrize('signum', [signal.SIGHUP, signal.SIGTERM])
def test_grant_removed_when_session_dies(tmp_path: Path, signum: signal.Signals) -> None:
	sudoers_dir = tmp_path / 'sudoers.d'
	repo_root = Path(__file__).parent.parent

	proc = subprocess.Popen(
		[sys.executable, '-c', _GRANT_HOLDER, str(sudoers_dir), str(tmp_path / 'log')],
		stdout=subprocess.PIPE,
		text=True,
		cwd=repo_root,
		env={**os.environ, 'PYTHONPATH': str(repo_root)},
	)

	try:
		assert proc.stdout is not None
		for line in proc.stdout:
			if line.strip() == 'granted':
				break

		assert (sudoers_dir / GRANT_FILE_NAME).exists()

		proc.send_signal(signum)
		assert proc.wait(timeout=30) == 128 + signum
	finally:
		if proc.poll() is None:
			proc.kill()
			proc.wait()

	assert not (sudoers_dir / GRANT_FILE_NAME).exists()


def test_invoking_user_from_sudo(monkeypatch: MonkeyPatch) -> None:
	monkeypatch.setenv('SUDO_USER', 'alex')

	assert invoking_user() == 'alex'


def test_invoking_user_root_only(monkeypatch: MonkeyPatch) -> None:
	monkeypatch.setenv('SUDO_USER', 'root')
	monkeypatch.setattr('archsetup.lib.privilege.os.getlogin', lambda: 'root')

	with pytest.raises(RequirementError):
		invoking_user()
