import re
from pathlib import Path

from .exceptions import DownloadError, RequirementError, SysCallError
from .general import SysCommand
from .models.mirrors import MirrorConfiguration
from .networking import fetch_data_from_url
from .output import debug, info, warn

MIRRORLIST_URL = 'https://archlinux.org/mirrorlist/'

_COMMENTED_SERVER_RE = re.compile(r'^#\s*(Server\s*=)', re.MULTILINE)


def mirrorlist_path(root: Path = Path('/')) -> Path:
	return root / 'etc' / 'pacman.d' / 'mirrorlist'


def rank_with_reflector(mirror_config: MirrorConfiguration, mirrorlist: Path) -> None:
	cmd = ['reflector', *mirror_config.reflector_args(), '--save', str(mirrorlist)]
	info(f'Ranking mirrors with reflector: {", ".join(mirror_config.countries) or "worldwide"}')
	SysCommand(cmd, peek_output=True)


def uncomment_servers(mirrorlist: str) -> str:
	"""
	The pre-generated list from archlinux.org has every server commented out
	"""
	return _COMMENTED_SERVER_RE.sub(r'\1', mirrorlist)


def download_mirrorlist(mirror_config: MirrorConfiguration, mirrorlist: Path) -> None:
	data = fetch_data_from_url(MIRRORLIST_URL, mirror_config.mirrorlist_params())
	content = uncomment_servers(data)

	if not re.search(r'^Server\s*=', content, re.MULTILINE):
		raise DownloadError('The downloaded mirror list does not contain any servers')

	debug(f'Mirrorlist:\n{content}')
	mirrorlist.write_text(content)


def update_mirrors(mirror_config: MirrorConfiguration, root: Path = Path('/')) -> bool:
	"""
	Ranks the mirrors with reflector and falls back to the list
	generated by archlinux.org. Returns False when both failed and
	the current mirror list was kept.
	"""
	mirrorlist = mirrorlist_path(root)

	try:
		rank_with_reflector(mirror_config, mirrorlist)
		return True
	except (SysCallError, RequirementError) as err:
		warn(f'reflector failed, downloading the mirror list instead: {err}')

	try:
		download_mirrorlist(mirror_config, mirrorlist)
		info(f'Mirror list downloaded from {MIRRORLIST_URL}')
		return True
	except (DownloadError, OSError) as err:
		warn(f'Could not update the mirror list, keeping the current one: {err}')

	return False
