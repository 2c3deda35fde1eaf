from .disk_conf import confirm_destructive, select_disk, select_partitioning_mode
from .general_conf import (
	ask_for_a_timezone,
	ask_hostname,
	ask_keymap,
	ask_locale,
	ask_mirror_countries,
	ask_yes_no,
	select_desktop,
	select_gfx_driver,
)
from .manage_users_conf import ask_password, ask_user, ask_username

__all__ = [
	'ask_for_a_timezone',
	'ask_hostname',
	'ask_keymap',
	'ask_locale',
	'ask_mirror_countries',
	'ask_password',
	'ask_user',
	'ask_username',
	'ask_yes_no',
	'confirm_destructive',
	'select_desktop',
	'select_disk',
	'select_gfx_driver',
	'select_partitioning_mode',
]
