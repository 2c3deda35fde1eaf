from pathlib import Path
from typing import override

from .output import debug
from .utils.files import write_dropin

GRUB_BTRFSD_EXEC = '/usr/bin/grub-btrfsd --syslog --timeshift-auto'
REFLECTOR_EXEC = '/usr/bin/reflector --latest 10 --sort rate --fastest 5 --save /etc/pacman.d/mirrorlist'


class Ini:
	def __init__(self, **kwargs: dict[str, str | list[str]]):
		"""
		Limited INI handler for now.
		Supports multiple keywords through dictionary list items.
		"""
		self.kwargs = kwargs

	@override
	def __str__(self) -> str:
		result = ''
		first_row_done = False
		for top_level in self.kwargs:
			if first_row_done:
				result += f'\n[{top_level}]\n'
			else:
				result += f'[{top_level}]\n'
				first_row_done = True

			for key, val in self.kwargs[top_level].items():
				if isinstance(val, list):
					for item in val:
						result += f'{key}={item}\n'
				else:
					result += f'{key}={val}\n'

		return result


def exec_start_override(command: str) -> Ini:
	# the empty assignment resets the ExecStart of the vendor unit
	return Ini(Service={'ExecStart': ['', command]})


def write_override(root: Path, unit: str, ini: Ini) -> Path:
	"""
	Writes <root>/etc/systemd/system/<unit>.d/override.conf,
	the vendor unit file itself is never touched.
	"""
	override_conf = root / 'etc/systemd/system' / f'{unit}.d' / 'override.conf'

	if write_dropin(override_conf, str(ini)):
		debug(f'Wrote {override_conf}')

	override_conf.chmod(0o644)
	return override_conf

