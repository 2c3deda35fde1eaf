from pathlib import Path

from .. import terminal
from ..disk.utils import list_disks
from ..exceptions import AbortedByUser, InputError
from ..models.device import DiskPlan, LsblkInfo, PartitioningMode
from ..output import FormattedOutput, info
from ..selection import Selector, select_with_fallback


def _disk_label(disk: LsblkInfo) -> str:
	parts = [str(disk.path), disk.size.format_highest()]

	if disk.tran:
		parts.append(disk.tran)
	if disk.model:
		parts.append(disk.model)

	return '  '.join(parts)


def select_disk(selector: Selector, disks: list[LsblkInfo] | None = None) -> Path:
	if disks is None:
		disks = list_disks()

	if not disks:
		raise InputError('No suitable disks found')

	options = {_disk_label(disk): disk.path for disk in disks}
	choice = select_with_fallback(selector, 'Installation disk', list(options))

	if choice is None:
		raise AbortedByUser('No disk selected')

	return options[choice]


def select_partitioning_mode(selector: Selector) -> PartitioningMode:
	options = [mode.display_msg() for mode in PartitioningMode]
	choice = select_with_fallback(selector, 'Partitioning', options)

	if choice is None or (mode := PartitioningMode.from_display_msg(choice)) is None:
		raise AbortedByUser('No partitioning mode selected')

	return mode


def confirm_destructive(plan: DiskPlan) -> None:
	"""
	Shows what is about to happen to the disk and only returns
	if the operator typed the literal word "yes".
	"""
	info(f'Disk {plan.device} ({plan.mode.display_msg()}):')

	if plan.wipe:
		info(f'ALL DATA ON {plan.device} WILL BE LOST', fg='red')

	info(FormattedOutput.as_table(list(plan.partitions)))
	info('Subvolumes: ' + ', '.join(f'{sv.name} -> {sv.mountpoint}' for sv in plan.subvolumes))

	answer = terminal.read_line('Type "yes" to continue: ')

	if answer != 'yes':
		raise AbortedByUser('Installation aborted, the disk was not modified')
