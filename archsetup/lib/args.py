import argparse
import json
from argparse import ArgumentParser
from dataclasses import dataclass, field
from importlib.metadata import version
from pathlib import Path
from typing import Any

from pydantic.dataclasses import dataclass as p_dataclass

from .exceptions import InputError
from .hardware import GfxDriver
from .models.device import DiskPlan, PartitioningMode, SubvolumeLayout
from .models.mirrors import MirrorConfiguration
from .models.profile import DesktopProfile
from .models.users import Password, User, is_valid_username
from .output import error, logger, warn
from .storage import storage

SCRIPTS = ('guided', 'turbo', 'post_install')


@p_dataclass
class Arguments:
	config: Path | None = None
	script: str | None = None
	mountpoint: Path = Path('/mnt')
	silent: bool = False
	dry_run: bool = False
	yes: bool = False
	resume_from: str | None = None
	debug: bool = False


@dataclass
class InstallConfig:
	version: str | None = None
	script: str | None = None
	hostname: str = 'archlinux'
	timezone: str = 'UTC'
	locale: str = 'en_US.UTF-8'
	keymap: str = 'us'
	user: User | None = None
	# None locks the root account
	root_password: Password | None = None
	disk_device: Path | None = None
	partitioning_mode: PartitioningMode = PartitioningMode.EntireDisk
	subvolume_layout: SubvolumeLayout = SubvolumeLayout.Full
	disk_plan: DiskPlan | None = None
	gfx_driver: GfxDriver = GfxDriver.Generic
	desktop: DesktopProfile = DesktopProfile.Minimal
	mirror_config: MirrorConfiguration = field(default_factory=MirrorConfiguration)
	kernels: list[str] = field(default_factory=lambda: ['linux'])
	extra_packages: list[str] = field(default_factory=list)
	parallel_downloads: int = 5
	multilib: bool = False
	grub_btrfs: bool = True

	def validate(self) -> None:
		"""
		Checks the fields a non-interactive run can not ask for.
		"""
		if self.user is None:
			raise InputError('No user configured')

		if not is_valid_username(self.user.username):
			raise InputError(f'Invalid username: {self.user.username}')

		if self.disk_device is None:
			raise InputError('No target disk configured')

	def unsafe_json(self) -> dict[str, Any]:
		config: dict[str, Any] = {}

		if self.user:
			config['user'] = self.user.json()

		if self.root_password:
			config['root_enc_password'] = self.root_password.enc_password

		return config

	def safe_json(self) -> dict[str, Any]:
		config: dict[str, Any] = {
			'version': self.version,
			'script': self.script,
			'hostname': self.hostname,
			'timezone': self.timezone,
			'locale': self.locale,
			'keymap': self.keymap,
			'disk_device': str(self.disk_device) if self.disk_device else None,
			'partitioning_mode': self.partitioning_mode.value,
			'subvolume_layout': self.subvolume_layout.value,
			'gfx_driver': self.gfx_driver.value,
			'desktop': self.desktop.value,
			'mirror_config': self.mirror_config.json(),
			'kernels': self.kernels,
			'extra_packages': self.extra_packages,
			'parallel_downloads': self.parallel_downloads,
			'multilib': self.multilib,
			'grub_btrfs': self.grub_btrfs,
		}

		if self.disk_plan:
			config['disk_plan'] = self.disk_plan.json()

		return config

	@classmethod
	def from_config(cls, args_config: dict[str, Any]) -> 'InstallConfig':
		config = InstallConfig()

		for key in ('script', 'hostname', 'timezone', 'locale', 'keymap'):
			if value := args_config.get(key, None):
				setattr(config, key, value)

		if disk_device := args_config.get('disk_device', None):
			config.disk_device = Path(disk_device)

		if mode := args_config.get('partitioning_mode', None):
			config.partitioning_mode = PartitioningMode(mode)

		if layout := args_config.get('subvolume_layout', None):
			config.subvolume_layout = SubvolumeLayout(layout)

		if disk_plan := args_config.get('disk_plan', None):
			config.disk_plan = DiskPlan.parse_arg(disk_plan)

		config.gfx_driver = GfxDriver.from_choice(args_config.get('gfx_driver', None))
		config.desktop = DesktopProfile.from_choice(args_config.get('desktop', None))

		if mirror_config := args_config.get('mirror_config', None):
			config.mirror_config = MirrorConfiguration.parse_arg(mirror_config)

		if kernels := args_config.get('kernels', []):
			config.kernels = kernels

		config.extra_packages = args_config.get('extra_packages', [])
		config.parallel_downloads = int(args_config.get('parallel_downloads', config.parallel_downloads))
		config.multilib = bool(args_config.get('multilib', False))
		config.grub_btrfs = bool(args_config.get('grub_btrfs', True))

		if user := args_config.get('user', None):
			config.user = User.parse_arg(user)

		if root_enc_password := args_config.get('root_enc_password', None):
			config.root_password = Password(enc_password=root_enc_password)

		return config


class ArchSetupConfigHandler:
	def __init__(self, argv: list[str] | None = None) -> None:
		self._parser: ArgumentParser = self._define_arguments()
		self._args = self._parse_args(argv)

		try:
			self._config = InstallConfig.from_config(self._parse_config())
		except (ValueError, KeyError) as err:
			error(f'Invalid configuration file {self._args.config}: {err}')
			exit(1)

		self._config.version = self._get_version()

	@property
	def config(self) -> InstallConfig:
		return self._config

	@property
	def args(self) -> Arguments:
		return self._args

	def get_script(self) -> str:
		if script := self.args.script:
			return script

		if script := self.config.script:
			return script

		return 'guided'

	def print_help(self) -> None:
		self._parser.print_help()

	def _get_version(self) -> str:
		try:
			return version('archsetup')
		except Exception:
			return 'archsetup version not found'

	def _define_arguments(self) -> ArgumentParser:
		parser = ArgumentParser(prog='archsetup', formatter_class=argparse.ArgumentDefaultsHelpFormatter)
		parser.add_argument(
			'-v',
			'--version',
			action='version',
			version='%(prog)s ' + self._get_version(),
		)
		parser.add_argument(
			'--config',
			type=Path,
			default=None,
			help='One-shot JSON configuration file written by a previous run',
		)
		parser.add_argument(
			'--script',
			type=str,
			choices=SCRIPTS,
			default=None,
			help='Script to run',
		)
		parser.add_argument(
			'--mountpoint',
			type=Path,
			default=Path('/mnt'),
			help='Mount point of the installation target',
		)
		parser.add_argument(
			'--silent',
			action='store_true',
			default=False,
			help='WARNING: Disables all prompts for input and confirmation. If no configuration is provided, this is ignored',
		)
		parser.add_argument(
			'--dry-run',
			action='store_true',
			default=False,
			help='Generates a configuration file and then exits instead of performing an installation',
		)
		parser.add_argument(
			'--yes',
			action='store_true',
			default=False,
			help='Answer yes to every optional feature of the post-install script',
		)
		parser.add_argument(
			'--resume-from',
			type=str,
			default=None,
			help='Skip all phases before the given one (requires --config)',
		)
		parser.add_argument(
			'--debug',
			action='store_true',
			default=False,
			help='Prints debug output to the console',
		)

		return parser

	def _parse_args(self, argv: list[str] | None) -> Arguments:
		argparse_args = vars(self._parser.parse_args(argv))
		args = Arguments(**argparse_args)

		# Installation can't be silent if config is not passed
		if args.config is None:
			args.silent = False

		# the post-install script has no one-shot config to resume with
		if args.resume_from and args.config is None and args.script != 'post_install':
			warn('--resume-from requires --config, starting from the first phase')
			args.resume_from = None

		if args.debug:
			storage['DEBUG'] = True
			warn(f'Warning: --debug mode will write debug information to {logger.path}')

		return args

	def _parse_config(self) -> dict[str, Any]:
		if self._args.config is None:
			return {}

		if not self._args.config.exists():
			error(f'Could not find file {self._args.config}')
			exit(1)

		return self._cleanup_config(json.loads(self._args.config.read_text()))

	def _cleanup_config(self, config: dict[str, Any]) -> dict[str, Any]:
		clean_args = {}
		for key, val in config.items():
			if isinstance(val, dict):
				val = self._cleanup_config(val)

			if val is not None:
				clean_args[key] = val

		return clean_args
