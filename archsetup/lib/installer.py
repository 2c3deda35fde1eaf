import re
import time
from pathlib import Path
from types import TracebackType

from .args import InstallConfig
from .exceptions import InstallError, RequirementError, SysCallError
from .general import SysCommand
from .hardware import SysInfo
from .models.device import DiskPlan
from .models.users import ADMIN_GROUP, Password, User
from .output import debug, error, info, log, logger
from .pacman import Pacman, PacmanConfig
from .systemd import GRUB_BTRFSD_EXEC, exec_start_override, write_override
from .utils.files import write_dropin

BASE_PACKAGES = [
	'base',
	'linux',
	'linux-firmware',
	'btrfs-progs',
	'grub',
	'efibootmgr',
	'networkmanager',
	'sudo',
	'nano',
	'git',
]


def installation_packages(config: InstallConfig) -> list[str]:
	"""
	Base set, kernels, microcode, graphics driver, desktop profile and
	the extra packages in that order, without duplicates.
	"""
	packages = list(BASE_PACKAGES)
	packages += config.kernels

	if vendor := SysInfo.cpu_vendor():
		if ucode := vendor.get_ucode_package():
			packages.append(ucode)

	packages += config.gfx_driver.package_names()

	# the proprietary module is built per kernel
	if config.gfx_driver.is_nvidia():
		packages += [f'{kernel}-headers' for kernel in config.kernels]

	packages += config.desktop.packages
	packages += config.extra_packages

	return list(dict.fromkeys(packages))


class Installer:
	def __init__(
		self,
		target: Path,
		disk_plan: DiskPlan,
		silent: bool = False,
	):
		"""
		`Installer()` wraps the steps that install and configure the
		system below `target`, everything after pacstrap runs through arch-chroot.
		"""
		self.target: Path = target
		self._disk_plan = disk_plan
		self.init_time = time.strftime('%Y-%m-%d_%H-%M-%S')

		self._modules: list[str] = []
		self._binaries: list[str] = []
		self._hooks: list[str] = [
			'base',
			'udev',
			'autodetect',
			'microcode',
			'modconf',
			'kms',
			'keyboard',
			'keymap',
			'consolefont',
			'block',
			'filesystems',
			'fsck',
		]

		for part in disk_plan.partitions:
			if (module := part.fs_type.installation_module) is not None:
				self.append_mod(module)
			if (binary := part.fs_type.installation_binary) is not None and binary not in self._binaries:
				self._binaries.append(binary)
			if (hook := part.fs_type.installation_hooks) is not None and hook not in self._hooks:
				self._hooks.insert(self._hooks.index('filesystems'), hook)

		self.pacman = Pacman(self.target, silent)

	@property
	def disk_plan(self) -> DiskPlan:
		return self._disk_plan

	def update_disk_plan(self, disk_plan: DiskPlan) -> None:
		"""
		Takes over the plan with the device nodes that were found
		after partitioning, the bootloader setup depends on them.
		"""
		self._disk_plan = disk_plan

	def __enter__(self) -> 'Installer':
		return self

	def __exit__(self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None) -> bool | None:
		if exc_type is not None:
			error(str(exc_value))
			log(f'[!] A log file has been created here: {logger.path}', fg='red')

			# Return None to propagate the exception
			return None

		self.sync()
		return None

	@property
	def modules(self) -> list[str]:
		return list(self._modules)

	@property
	def hooks(self) -> list[str]:
		return list(self._hooks)

	def sync(self) -> None:
		info('Syncing the system...')
		SysCommand('sync')

	def append_mod(self, mod: str) -> None:
		if mod not in self._modules:
			self._modules.append(mod)

	def arch_chroot(
		self,
		cmd: list[str],
		input_data: bytes | None = None,
		peek_output: bool = False,
	) -> SysCommand:
		try:
			return SysCommand(['arch-chroot', str(self.target), *cmd], input_data=input_data, peek_output=peek_output)
		except SysCallError as err:
			raise InstallError(f'Command failed inside the installation: {" ".join(cmd)}\n{err.message}') from err

	def pacstrap(self, packages: list[str]) -> None:
		self.pacman.strap(packages)

	def configure_pacman(self, parallel_downloads: int, multilib: bool) -> None:
		pacman_config = PacmanConfig(self.target)
		pacman_config.set_parallel_downloads(parallel_downloads)

		if multilib:
			pacman_config.enable_repository('multilib')

	def genfstab(self, flags: str = '-U') -> None:
		fstab_path = self.target / 'etc' / 'fstab'
		info(f'Updating {fstab_path}')

		try:
			gen_fstab = SysCommand(['genfstab', flags, str(self.target)]).output()
		except SysCallError as err:
			raise RequirementError(f'Could not generate fstab, strapping in packages most likely failed (disk out of space?)\n Error: {err}')

		with open(fstab_path, 'ab') as fp:
			fp.write(gen_fstab)

		if not fstab_path.is_file():
			raise RequirementError('Could not create fstab file')

	def set_timezone(self, zone: str) -> None:
		if not (Path('/usr') / 'share' / 'zoneinfo' / zone).exists():
			raise InstallError(f'Time zone {zone} does not exist')

		info(f'Setting time zone to {zone}')
		self.arch_chroot(['ln', '-sf', f'/usr/share/zoneinfo/{zone}', '/etc/localtime'])
		self.arch_chroot(['hwclock', '--systohc'])

	def set_locale(self, locale: str) -> None:
		lang, _, encoding = locale.partition('.')
		encoding = encoding or 'UTF-8'

		locale_gen = self.target / 'etc/locale.gen'
		locale_gen_lines = locale_gen.read_text().splitlines(True)

		# A locale entry in /etc/locale.gen may or may not contain the encoding
		# in the first column of the entry; check for both cases.
		entry_re = re.compile(rf'#?{re.escape(lang)}(\.{re.escape(encoding)})? {re.escape(encoding)}')

		lang_value = None
		for index, line in enumerate(locale_gen_lines):
			if entry_re.match(line):
				uncommented_line = line.removeprefix('#')
				locale_gen_lines[index] = uncommented_line
				locale_gen.write_text(''.join(locale_gen_lines))
				lang_value = uncommented_line.split()[0]
				break

		if lang_value is None:
			raise InstallError(f"Invalid locale: language '{lang}', encoding '{encoding}'")

		info(f'Setting locale to {lang_value}')
		self.arch_chroot(['locale-gen'])
		(self.target / 'etc/locale.conf').write_text(f'LANG={lang_value}\n')

	def set_keyboard_language(self, keymap: str) -> None:
		info(f'Setting keyboard language to {keymap}')
		(self.target / 'etc/vconsole.conf').write_text(f'KEYMAP={keymap}\n')

	def set_hostname(self, hostname: str) -> None:
		(self.target / 'etc/hostname').write_text(hostname + '\n')

		hosts = self.target / 'etc/hosts'
		content = hosts.read_text() if hosts.exists() else ''

		if hostname not in content.split():
			with hosts.open('a') as fp:
				fp.write(f'127.0.0.1\tlocalhost\n::1\t\tlocalhost\n127.0.1.1\t{hostname}.localdomain\t{hostname}\n')

	def create_user(self, user: User) -> None:
		info(f'Creating user {user.username}')

		cmd = ['useradd', '-m']

		if user.groups:
			cmd += ['-G', ','.join(user.groups)]

		cmd.append(user.username)

		self.arch_chroot(cmd)
		self.set_user_password(user.username, user.password)

		if user.is_admin:
			self.enable_sudo(ADMIN_GROUP)

	def set_user_password(self, username: str, password: Password) -> None:
		info(f'Setting password for {username}')

		input_data = f'{username}:{password.enc_password}'.encode()
		self.arch_chroot(['chpasswd', '--encrypted'], input_data=input_data)

	def set_root_password(self, password: Password | None) -> None:
		if password is None:
			info('No root password given, locking the root account')
			self.arch_chroot(['passwd', '-l', 'root'])
			return

		self.set_user_password('root', password)

	def enable_sudo(self, group: str) -> None:
		info(f'Enabling sudo permissions for %{group}')

		rule_file = self.target / 'etc/sudoers.d' / f'10-{group}'

		if write_dropin(rule_file, f'%{group} ALL=(ALL:ALL) ALL\n'):
			debug(f'Wrote sudoers rule {rule_file}')

		# Guarantees sudoer conf file recommended perms
		rule_file.chmod(0o440)

	def mkinitcpio(self, flags: list[str] = ['-P']) -> None:
		with open(f'{self.target}/etc/mkinitcpio.conf', 'r+') as mkinit:
			content = mkinit.read()
			content = re.sub('\nMODULES=(.*)', f'\nMODULES=({" ".join(self._modules)})', content)
			content = re.sub('\nBINARIES=(.*)', f'\nBINARIES=({" ".join(self._binaries)})', content)
			content = re.sub('\nHOOKS=(.*)', f'\nHOOKS=({" ".join(self._hooks)})', content)
			mkinit.seek(0)
			mkinit.write(content)
			mkinit.truncate()

		self.arch_chroot(['mkinitcpio', *flags], peek_output=True)

	def _uses_efi(self) -> bool:
		esp = self._disk_plan.efi_partition
		return esp is not None and esp.dev_path.exists()

	def add_grub_bootloader(self) -> None:
		debug('Installing grub bootloader')

		command = ['grub-install', '--debug']

		if self._uses_efi():
			esp = self._disk_plan.efi_partition
			assert esp is not None and esp.mountpoint is not None

			info(f'GRUB EFI partition: {esp.dev_path}')

			command += [
				f'--target={SysInfo.machine()}-efi',
				f'--efi-directory={esp.mountpoint}',
				'--bootloader-id=GRUB',
			]
		else:
			info(f'No EFI system partition available, installing GRUB for BIOS on {self._disk_plan.device}')

			command += [
				'--target=i386-pc',
				'--recheck',
				str(self._disk_plan.device),
			]

		self.arch_chroot(command, peek_output=True)
		self.arch_chroot(['grub-mkconfig', '-o', '/boot/grub/grub.cfg'])

	def setup_grub_btrfs(self) -> None:
		info('Installing grub-btrfs')
		self.pacstrap(['grub-btrfs', 'inotify-tools'])

		# See https://github.com/Antynea/grub-btrfs?tab=readme-ov-file#-using-timeshift-with-systemd
		write_override(self.target, 'grub-btrfsd.service', exec_start_override(GRUB_BTRFSD_EXEC))
		self.enable_service('grub-btrfsd')

	def enable_service(self, services: str | list[str]) -> None:
		if isinstance(services, str):
			services = [services]

		for service in services:
			info(f'Enabling service {service}')
			self.arch_chroot(['systemctl', 'enable', service])
