import re
from pathlib import Path

from .. import terminal
from ..exceptions import InputError
from ..hardware import GfxDriver
from ..models.mirrors import MirrorConfiguration
from ..models.profile import DesktopProfile
from ..output import warn
from ..selection import Selector, select_with_fallback

ZONEINFO_DIR = Path('/usr/share/zoneinfo')

_HOSTNAME_RE = re.compile(r'^[a-z0-9-]{1,63}$')
_LOCALE_RE = re.compile(r'^[A-Za-z]{2,3}(_[A-Za-z]{2,3})?(\.[A-Za-z0-9-]+)?(@\w+)?$')
_KEYMAP_RE = re.compile(r'^[A-Za-z0-9_.-]+$')


def _ask_with_default(prompt: str, default: str) -> str:
	answer = terminal.read_line(f'{prompt} [{default}]: ').strip()
	return answer or default


def ask_yes_no(prompt: str) -> bool:
	while True:
		answer = terminal.read_line(f'{prompt} [y/n]: ').strip().lower()

		match answer:
			case 'y' | 'yes':
				return True
			case 'n' | 'no':
				return False
			case _:
				warn('Please enter y or n.')


def ask_hostname(preset: str = 'archlinux') -> str:
	hostname = _ask_with_default('Hostname', preset)

	if not _HOSTNAME_RE.match(hostname):
		raise InputError(f'Invalid hostname: {hostname}')

	return hostname


def ask_for_a_timezone(preset: str = 'UTC', zoneinfo: Path = ZONEINFO_DIR) -> str:
	zone = _ask_with_default('Timezone (e.g. Europe/Berlin)', preset)

	if '..' in zone or not (zoneinfo / zone).is_file():
		raise InputError(f'Unknown time zone: {zone}')

	return zone


def ask_locale(preset: str = 'en_US.UTF-8') -> str:
	locale = _ask_with_default('Locale', preset)

	if not _LOCALE_RE.match(locale):
		raise InputError(f'Invalid locale: {locale}')

	return locale


def ask_keymap(preset: str = 'us') -> str:
	keymap = _ask_with_default('Console keymap', preset)

	if not _KEYMAP_RE.match(keymap):
		raise InputError(f'Invalid keymap: {keymap}')

	return keymap


def ask_mirror_countries() -> MirrorConfiguration:
	text = terminal.read_line('Mirror countries, comma separated ISO codes (empty for worldwide): ')
	return MirrorConfiguration.from_text(text)


def select_gfx_driver(selector: Selector) -> GfxDriver:
	options = [driver.display_msg() for driver in GfxDriver]
	choice = select_with_fallback(selector, 'Graphics driver', options)
	return GfxDriver.from_choice(choice)


def select_desktop(selector: Selector) -> DesktopProfile:
	options = [profile.display_msg() for profile in DesktopProfile]
	choice = select_with_fallback(selector, 'Desktop environment', options)
	return DesktopProfile.from_choice(choice)
