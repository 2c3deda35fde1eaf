from abc import ABC, abstractmethod
from typing import override

from . import terminal
from .exceptions import RequirementError
from .general import capture_interactive, has_binary
from .output import debug, warn


class Selector(ABC):
	name = 'selector'

	@abstractmethod
	def select(self, title: str, options: list[str]) -> str | None:
		"""
		Lets the operator pick one of the options,
		returns None if the selection was cancelled.
		"""

	@override
	def __repr__(self) -> str:
		return f'{type(self).__name__}()'


class FzfSelector(Selector):
	name = 'fzf'

	@override
	def select(self, title: str, options: list[str]) -> str | None:
		cmd = ['fzf', '--prompt', f'{title}> ', '--height', '40%', '--reverse', '--no-multi']
		choice = capture_interactive(cmd, input_data='\n'.join(options) + '\n')

		if choice in options:
			return choice
		return None


class DialogSelector(Selector):
	name = 'dialog'

	@override
	def select(self, title: str, options: list[str]) -> str | None:
		cmd = ['dialog', '--stdout', '--title', title, '--menu', title, '0', '0', '0']

		for index, option in enumerate(options, start=1):
			cmd += [str(index), option]

		tag = capture_interactive(cmd)

		if tag and tag.isdigit() and 0 < int(tag) <= len(options):
			return options[int(tag) - 1]
		return None


class NumberedSelector(Selector):
	"""
	Plain numbered list on the controlling terminal, always available
	"""

	name = 'numbered'

	@override
	def select(self, title: str, options: list[str]) -> str | None:
		listing = '\n'.join(f'  {index}) {option}' for index, option in enumerate(options, start=1))
		terminal.write(f'\n{title}\n{listing}\n')

		while True:
			answer = terminal.read_line(f'Enter a number [1-{len(options)}] (empty to cancel): ').strip()

			if not answer:
				return None

			if answer.isdigit() and 0 < int(answer) <= len(options):
				return options[int(answer) - 1]

			warn(f'Invalid choice: {answer}')


def _probes() -> list[tuple[str, type[Selector]]]:
	return [
		('fzf', FzfSelector),
		('dialog', DialogSelector),
	]


def resolve_selector() -> Selector:
	"""
	Picks the best available selection UI once, the result is
	passed around for the rest of the run.
	"""
	for binary, selector_cls in _probes():
		if has_binary(binary):
			debug(f'Using {binary} for selections')
			return selector_cls()

		warn(f'{binary} is not installed, falling back to a simpler selection menu')

	return NumberedSelector()


def select_with_fallback(selector: Selector, title: str, options: list[str]) -> str | None:
	"""
	Like Selector.select() but degrades to the numbered list if the
	chosen tool broke mid-run (e.g. no terminal for dialog).
	"""
	try:
		return selector.select(title, options)
	except RequirementError as err:
		warn(f'{selector.name} failed ({err}), using the numbered list instead')
		return NumberedSelector().select(title, options)
