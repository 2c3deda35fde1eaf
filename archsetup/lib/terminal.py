import termios
from pathlib import Path
from typing import TextIO, cast

from .exceptions import InputError

# reading the controlling terminal keeps prompts working when stdin is a pipe,
# e.g. `curl -L <url> | python -m archsetup`
TTY_PATH = Path('/dev/tty')


def _read_hidden(tty: TextIO) -> str:
	fd = tty.fileno()
	old_term = termios.tcgetattr(fd)
	new_term = termios.tcgetattr(fd)
	new_term[3] = cast(int, new_term[3]) & ~termios.ECHO

	termios.tcsetattr(fd, termios.TCSAFLUSH, new_term)

	try:
		return tty.readline()
	finally:
		termios.tcsetattr(fd, termios.TCSAFLUSH, old_term)
		# the newline typed by the operator wasn't echoed
		tty.write('\n')


def read_line(prompt: str, hidden: bool = False) -> str:
	"""
	Prompts on the controlling terminal and returns the answer without
	the trailing newline. Hidden answers are not echoed.
	"""
	try:
		with TTY_PATH.open('r+') as tty:
			tty.write(prompt)
			tty.flush()
			answer = _read_hidden(tty) if hidden else tty.readline()
	except (OSError, termios.error) as err:
		raise InputError(f'No terminal available to ask for input: {err}')

	if not answer:
		raise InputError('Input stream closed')

	return answer.rstrip('\n')


def write(text: str) -> None:
	try:
		with TTY_PATH.open('w') as tty:
			tty.write(text)
	except OSError:
		print(text, end='')
