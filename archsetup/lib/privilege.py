import os
import pwd
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import FrameType

from .exceptions import RequirementError
from .output import debug, info

SUDOERS_DIR = Path('/etc/sudoers.d')
GRANT_FILE_NAME = '99-archsetup-nopasswd'
# signals that remove the rule before the process exits
REVOKE_SIGNALS = (signal.SIGTERM, signal.SIGHUP, signal.SIGINT)


def invoking_user() -> str:
	"""
	The non-root user that started the script with sudo,
	makepkg refuses to run as root.
	"""
	if (user := os.environ.get('SUDO_USER')) and user != 'root':
		return user

	try:
		user = os.getlogin()
	except OSError:
		user = pwd.getpwuid(os.getuid()).pw_name

	if user == 'root':
		raise RequirementError('Could not determine the non-root user, run the script with sudo from a user account')

	return user


def user_home(username: str) -> Path:
	return Path(pwd.getpwnam(username).pw_dir)


@contextmanager
def temporary_sudo_grant(username: str, sudoers_dir: Path = SUDOERS_DIR) -> Iterator[Path]:
	"""
	Lets `username` run sudo without a password for the duration of the
	block, e.g. for `makepkg -si`. The rule file is removed when the block
	exits for any reason, including SIGTERM, SIGHUP and SIGINT.
	"""
	grant = sudoers_dir / GRANT_FILE_NAME

	def _revoke() -> None:
		if grant.exists():
			grant.unlink()
			debug(f'Removed temporary sudo rule {grant}')

	def _on_signal(signum: int, frame: FrameType | None) -> None:
		_revoke()
		raise SystemExit(128 + signum)

	previous_handlers = {signum: signal.getsignal(signum) for signum in REVOKE_SIGNALS}

	for signum in REVOKE_SIGNALS:
		signal.signal(signum, _on_signal)

	try:
		sudoers_dir.mkdir(parents=True, exist_ok=True)

		fd = os.open(grant, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o440)
		with os.fdopen(fd, 'w') as fp:
			fp.write(f'{username} ALL=(ALL) NOPASSWD: ALL\n')

		grant.chmod(0o440)
		info(f'Granted temporary passwordless sudo to {username}')

		yield grant
	finally:
		_revoke()
		for signum, handler in previous_handlers.items():
			# None means the handler was not installed from Python
			signal.signal(signum, signal.SIG_DFL if handler is None else handler)
