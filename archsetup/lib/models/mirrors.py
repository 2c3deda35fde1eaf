import re
from dataclasses import dataclass, field
from typing import TypedDict

from ..output import warn

_COUNTRY_CODE_RE = re.compile(r'^[A-Z]{2}$')


class _MirrorConfigurationSerialization(TypedDict):
	countries: list[str]


@dataclass(frozen=True)
class MirrorConfiguration:
	# ISO-3166 alpha-2 codes, an empty list means worldwide
	countries: tuple[str, ...] = field(default_factory=tuple)

	@classmethod
	def from_text(cls, text: str) -> 'MirrorConfiguration':
		countries: list[str] = []

		for token in text.replace(' ', ',').split(','):
			code = token.strip().upper()

			if not code:
				continue

			if not _COUNTRY_CODE_RE.match(code):
				warn(f'Ignoring invalid country code: {token.strip()}')
				continue

			if code not in countries:
				countries.append(code)

		return MirrorConfiguration(tuple(countries))

	def reflector_args(self) -> list[str]:
		args = ['--latest', '10', '--sort', 'rate', '--protocol', 'https']

		if self.countries:
			args[:0] = ['--country', ','.join(self.countries)]

		return args

	def mirrorlist_params(self) -> list[tuple[str, str]]:
		params = [('country', c) for c in self.countries] or [('country', 'all')]
		params += [('protocol', 'https'), ('use_mirror_status', 'on')]
		return params

	def json(self) -> _MirrorConfigurationSerialization:
		return {'countries': list(self.countries)}

	@classmethod
	def parse_arg(cls, arg: _MirrorConfigurationSerialization) -> 'MirrorConfiguration':
		return MirrorConfiguration(tuple(arg.get('countries', [])))
