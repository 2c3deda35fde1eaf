import re
from pathlib import Path

from ..exceptions import DiskError, PreconditionError
from ..models.device import (
	ESP_SIZE,
	FIRST_PARTITION_START,
	MIN_ROOT_FREE_SPACE,
	DiskPlan,
	FilesystemType,
	LsblkInfo,
	PartedDisk,
	PartitionFlag,
	PartitioningMode,
	PartitionModification,
	PartitionRole,
	PartitionTable,
	Size,
	SubvolumeLayout,
	Unit,
	partition_path,
)
from ..output import debug, info

_PARTITION_NUMBER_RE = re.compile(r'(\d+)$')


def _new_esp(device: Path, number: int, start: Size) -> PartitionModification:
	return PartitionModification(
		number=number,
		role=PartitionRole.Esp,
		dev_path=partition_path(device, number),
		fs_type=FilesystemType.Fat32,
		start=start,
		end=start + ESP_SIZE,
		flags=(PartitionFlag.Boot, PartitionFlag.Esp),
	)


def _new_root(device: Path, number: int, start: Size) -> PartitionModification:
	return PartitionModification(
		number=number,
		role=PartitionRole.Root,
		dev_path=partition_path(device, number),
		fs_type=FilesystemType.Btrfs,
		start=start,
		end=None,
	)


def plan_entire_disk(device: Path, layout: SubvolumeLayout = SubvolumeLayout.Full) -> DiskPlan:
	"""
	Wipes the disk and lays out a fresh GPT label:
	a 512MiB ESP from 1MiB followed by the btrfs root up to the end of the disk.
	"""
	esp = _new_esp(device, 1, FIRST_PARTITION_START)
	root = _new_root(device, 2, FIRST_PARTITION_START + ESP_SIZE)

	return DiskPlan(
		device=device,
		mode=PartitioningMode.EntireDisk,
		partitions=(esp, root),
		subvolume_layout=layout,
		partition_table=PartitionTable.GPT,
		wipe=True,
	)


def plan_free_space(disk: PartedDisk, layout: SubvolumeLayout = SubvolumeLayout.Full) -> DiskPlan:
	"""
	Installs into the unallocated space behind the last partition,
	existing partitions are never touched. An existing ESP is shared
	with the other systems on the disk.
	"""
	if disk.table is None:
		raise PreconditionError(f'{disk.path} has no partition table, use the entire disk or partition it manually')

	available = disk.free_space

	if available < MIN_ROOT_FREE_SPACE:
		raise PreconditionError(
			f'Only {available.format_highest()} of free space left on {disk.path}, '
			f'at least {MIN_ROOT_FREE_SPACE.format_highest()} are required'
		)

	# parted rounds the printed end, start on the next full MiB
	start = Size(disk.last_partition_end.mib_ceil(), Unit.MiB)

	if existing_esp := disk.esp():
		info(f'Reusing the existing EFI system partition {partition_path(disk.path, existing_esp.number)}')

		esp = PartitionModification(
			number=existing_esp.number,
			role=PartitionRole.Esp,
			dev_path=partition_path(disk.path, existing_esp.number),
			fs_type=FilesystemType.Fat32,
			create=False,
			format=False,
		)
		[root_number] = disk.unused_numbers(1)
		root = _new_root(disk.path, root_number, start)
	else:
		esp_number, root_number = disk.unused_numbers(2)
		esp = _new_esp(disk.path, esp_number, start)
		root = _new_root(disk.path, root_number, start + ESP_SIZE)

	debug(f'Free space plan for {disk.path}: {available.format_highest()} available from {start.format_highest()}')

	return DiskPlan(
		device=disk.path,
		mode=PartitioningMode.FreeSpace,
		partitions=(esp, root),
		subvolume_layout=layout,
		partition_table=disk.table,
		wipe=False,
	)


def _partition_number(part: LsblkInfo) -> int:
	if part.partn is not None:
		return part.partn

	if match := _PARTITION_NUMBER_RE.search(part.name):
		return int(match.group(1))

	raise DiskError(f'Unable to determine the partition number of {part.path}')


def _find_esp(partitions: list[LsblkInfo]) -> LsblkInfo | None:
	for part in partitions:
		if part.is_esp_type():
			return part

	# MBR labels or tools that don't report the type GUID
	for part in partitions:
		if part.fstype == 'vfat':
			return part

	return None


def plan_manual(
	device: Path,
	device_info: LsblkInfo,
	layout: SubvolumeLayout = SubvolumeLayout.Full,
) -> DiskPlan:
	"""
	Derives the plan from a layout the operator created with cfdisk.
	The root is the largest partition that isn't the ESP.
	"""
	partitions = [child for child in device_info.children if child.type == 'part']

	esp_info = _find_esp(partitions)
	candidates = [p for p in partitions if esp_info is None or p.path != esp_info.path]

	if not candidates:
		raise PreconditionError(f'Could not identify a root partition on {device}')

	root_info = max(candidates, key=lambda p: p.size)

	planned = []

	if esp_info:
		planned.append(
			PartitionModification(
				number=_partition_number(esp_info),
				role=PartitionRole.Esp,
				dev_path=esp_info.path,
				fs_type=FilesystemType.Fat32,
				create=False,
				# an ESP with a filesystem may already hold other boot loaders
				format=esp_info.fstype is None,
			)
		)
	else:
		info(f'No EFI system partition found on {device}, installing for BIOS boot')

	planned.append(
		PartitionModification(
			number=_partition_number(root_info),
			role=PartitionRole.Root,
			dev_path=root_info.path,
			fs_type=FilesystemType.Btrfs,
			create=False,
			format=True,
		)
	)

	return DiskPlan(
		device=device,
		mode=PartitioningMode.Manual,
		partitions=tuple(planned),
		subvolume_layout=layout,
		wipe=False,
	)


def resolve_partition_paths(plan: DiskPlan, device_info: LsblkInfo) -> DiskPlan:
	"""
	Matches the planned partitions against the device nodes the kernel
	actually created and fails before anything gets formatted if one is missing.
	"""
	existing = {child.path: child for child in device_info.children}
	by_number = {}

	for child in device_info.children:
		try:
			by_number[_partition_number(child)] = child
		except DiskError:
			continue

	resolved = []

	for part in plan.partitions:
		if part.dev_path in existing:
			resolved.append(part)
			continue

		if (child := by_number.get(part.number)) is not None:
			debug(f'Partition {part.number} appeared as {child.path} instead of {part.dev_path}')
			resolved.append(part.with_dev_path(child.path))
			continue

		raise DiskError(f'Partition {part.dev_path} does not exist on {plan.device}')

	return plan.with_partitions(resolved)
