from pathlib import Path

from archsetup.lib.args import ArchSetupConfigHandler, InstallConfig
from archsetup.lib.configuration import ConfigurationOutput
from archsetup.lib.disk import DiskExecutor, get_lsblk_info, plan_entire_disk, plan_free_space, plan_manual, probe_partitions
from archsetup.lib.exceptions import InputError, PhaseError
from archsetup.lib.general import run_interactive
from archsetup.lib.installer import Installer, installation_packages
from archsetup.lib.interactions import (
	ask_for_a_timezone,
	ask_hostname,
	ask_keymap,
	ask_locale,
	ask_mirror_countries,
	ask_password,
	ask_user,
	ask_yes_no,
	confirm_destructive,
	select_desktop,
	select_disk,
	select_gfx_driver,
	select_partitioning_mode,
)
from archsetup.lib.mirrors import update_mirrors
from archsetup.lib.models.device import DiskPlan, PartitioningMode, SubvolumeLayout
from archsetup.lib.output import error, info, log
from archsetup.lib.pacman import PacmanConfig
from archsetup.lib.phases import Phase, PhaseRunner
from archsetup.lib.selection import Selector, resolve_selector

# phases that modify the disk, resuming at or before them needs a confirmation
_DESTRUCTIVE_PHASES = ('mirrors', 'partition')


def ask_user_questions(config: InstallConfig, selector: Selector, all_questions: bool = True) -> None:
	"""
	First, we'll ask the user for a bunch of user input.
	Not until we're satisfied with what we want to install
	will we continue with the actual installation steps.
	"""
	config.user = ask_user()
	config.root_password = ask_password('Root password (empty locks the root account)', allow_empty=True)

	if all_questions:
		config.hostname = ask_hostname(config.hostname)
		config.timezone = ask_for_a_timezone(config.timezone)
		config.locale = ask_locale(config.locale)
		config.keymap = ask_keymap(config.keymap)
		config.mirror_config = ask_mirror_countries()

	config.disk_device = select_disk(selector)
	config.partitioning_mode = select_partitioning_mode(selector)
	config.gfx_driver = select_gfx_driver(selector)
	config.desktop = select_desktop(selector)

	if all_questions:
		config.multilib = ask_yes_no('Enable the multilib repository?')
		config.grub_btrfs = ask_yes_no('Install grub-btrfs to boot into snapshots?')

		if ask_yes_no('Install the kernel headers?'):
			config.extra_packages += [f'{kernel}-headers' for kernel in config.kernels]


def plan_disk(config: InstallConfig) -> DiskPlan:
	device = config.disk_device

	if device is None:
		raise InputError('No target disk configured')

	match config.partitioning_mode:
		case PartitioningMode.EntireDisk:
			return plan_entire_disk(device, config.subvolume_layout)
		case PartitioningMode.FreeSpace:
			return plan_free_space(probe_partitions(device), config.subvolume_layout)
		case PartitioningMode.Manual:
			info(f'Starting cfdisk on {device}, create an EFI system partition and a root partition')
			run_interactive(['cfdisk', str(device)])
			DiskExecutor.partprobe(device)
			return plan_manual(device, get_lsblk_info(device), config.subvolume_layout)


def configure_system(installer: Installer, config: InstallConfig) -> None:
	assert config.user is not None

	installer.set_timezone(config.timezone)
	installer.set_locale(config.locale)
	installer.set_keyboard_language(config.keymap)
	installer.set_hostname(config.hostname)
	installer.create_user(config.user)
	installer.set_root_password(config.root_password)
	installer.configure_pacman(config.parallel_downloads, config.multilib)


def install_bootloader(installer: Installer, config: InstallConfig) -> None:
	installer.mkinitcpio(['-P'])

	if config.grub_btrfs:
		installer.setup_grub_btrfs()

	installer.add_grub_bootloader()


def enable_services(installer: Installer, config: InstallConfig) -> None:
	services = ['NetworkManager']

	if display_manager := config.desktop.display_manager:
		services.append(display_manager)

	installer.enable_service(services)


def strap_packages(installer: Installer, config: InstallConfig) -> None:
	PacmanConfig().set_parallel_downloads(config.parallel_downloads)
	installer.pacstrap(installation_packages(config))


def installation_phases(
	config: InstallConfig,
	executor: DiskExecutor,
	installer: Installer,
) -> list[Phase]:
	def _prepare_disk() -> None:
		executor.partition()
		executor.verify()
		executor.format()
		executor.create_subvolumes()

	def _mount() -> None:
		executor.verify()
		executor.mount_all()
		installer.update_disk_plan(executor.plan)

	return [
		Phase('mirrors', lambda: update_mirrors(config.mirror_config)),
		Phase('partition', _prepare_disk),
		Phase('mount', _mount, rollback=executor.rollback, always=True),
		Phase('pacstrap', lambda: strap_packages(installer, config)),
		Phase('fstab', installer.genfstab),
		Phase('configure', lambda: configure_system(installer, config)),
		Phase('bootloader', lambda: install_bootloader(installer, config)),
		Phase('services', lambda: enable_services(installer, config)),
		Phase('finish', executor.release),
	]


def perform_installation(
	handler: ArchSetupConfigHandler,
	layout: SubvolumeLayout,
	all_questions: bool = True,
) -> int:
	args = handler.args
	config = handler.config
	config.script = handler.get_script()

	if args.config is None:
		selector = resolve_selector()
		config.subvolume_layout = layout
		ask_user_questions(config, selector, all_questions)
	else:
		config.validate()

	if config.disk_plan is None:
		config.disk_plan = plan_disk(config)

	plan = config.disk_plan
	mountpoint: Path = args.mountpoint

	if not args.silent and not args.dry_run and (args.resume_from is None or args.resume_from in _DESTRUCTIVE_PHASES):
		confirm_destructive(plan)

	config_output = ConfigurationOutput(config)
	config_output.write_debug()
	config_path = config_output.save()

	if args.dry_run:
		info(f'Dry run, the configuration was saved to {config_path}')
		return 0

	executor = DiskExecutor(plan, mountpoint)

	with Installer(mountpoint, plan, silent=args.silent) as installer:
		runner = PhaseRunner(installation_phases(config, executor, installer), resume_from=args.resume_from)

		try:
			runner.run()
		except PhaseError as err:
			error(str(err))
			info(f'The configuration was kept at {config_path}')
			info(f'Fix the problem and continue with: archsetup --script {config.script} --config {config_path} --resume-from {err.phase}')
			return 1

	config_output.delete()
	log('Installation completed without any errors. You may reboot when ready.', fg='green')
	return 0


def run(handler: ArchSetupConfigHandler) -> int:
	return perform_installation(handler, SubvolumeLayout.Full)
