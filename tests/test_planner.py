from collections.abc import Callable
from pathlib import Path

import pytest

from archsetup.lib.disk.planner import plan_entire_disk, plan_free_space, plan_manual, resolve_partition_paths
from archsetup.lib.exceptions import DiskError, PreconditionError
from archsetup.lib.models.device import (
	DiskPlan,
	FilesystemType,
	LsblkInfo,
	PartedDisk,
	PartitionFlag,
	PartitioningMode,
	PartitionRole,
	PartitionTable,
	Size,
	SubvolumeLayout,
	Unit,
)


def _lsblk(path: str, children: list[dict[str, object]]) -> LsblkInfo:
	return LsblkInfo.model_validate(
		{
			'name': path,
			'path': path,
			'size': 64 * 1024**3,
			'type': 'disk',
			'children': children,
		}
	)


def _part(path: str, size_mib: int, partn: int | None = None, fstype: str | None = None, parttype: str | None = None) -> dict[str, object]:
	return {
		'name': path,
		'path': path,
		'size': size_mib * 1024**2,
		'type': 'part',
		'partn': partn,
		'fstype': fstype,
		'parttype': parttype,
	}


@pytest.mark.parametrize('device', ['/dev/sda', '/dev/vdb', '/dev/nvme0n1'])
def test_entire_disk_layout(device: str) -> None:
	plan = plan_entire_disk(Path(device))

	assert plan.mode == PartitioningMode.EntireDisk
	assert plan.wipe is True
	assert plan.partition_table == PartitionTable.GPT
	assert len(plan.partitions) == 2

	esp, root = plan.partitions

	assert esp.role == PartitionRole.Esp
	assert esp.number == 1
	assert esp.fs_type == FilesystemType.Fat32
	assert esp.start == Size(1, Unit.MiB)
	assert esp.end == Size(513, Unit.MiB)
	assert esp.flags == (PartitionFlag.Boot, PartitionFlag.Esp)

	assert root.role == PartitionRole.Root
	assert root.number == 2
	assert root.fs_type == FilesystemType.Btrfs
	assert root.start == Size(513, Unit.MiB)
	# spans the rest of the disk
	assert root.end is None


def test_entire_disk_sda_example() -> None:
	plan = plan_entire_disk(Path('/dev/sda'))

	assert plan.efi_partition is not None
	assert plan.efi_partition.dev_path == Path('/dev/sda1')
	assert plan.root_partition.dev_path == Path('/dev/sda2')
	assert plan.efi_partition.mountpoint == Path('/boot/efi')


def test_entire_disk_turbo_subvolumes() -> None:
	plan = plan_entire_disk(Path('/dev/sda'), SubvolumeLayout.Turbo)

	assert [sv.name for sv in plan.subvolumes] == ['@', '@home', '@snapshots']


def test_free_space_reuses_existing_esp(parted_disk: Callable[[str], PartedDisk]) -> None:
	plan = plan_free_space(parted_disk('gpt_esp'))

	assert plan.mode == PartitioningMode.FreeSpace
	assert plan.wipe is False

	new_partitions = [p for p in plan.partitions if p.create]
	assert len(new_partitions) == 1

	root = plan.root_partition
	assert root.number == 4
	assert root.dev_path == Path('/dev/sda4')
	assert root.start == Size(10753, Unit.MiB)
	assert root.end is None

	esp = plan.efi_partition
	assert esp is not None
	assert esp.number == 1
	assert esp.create is False
	assert esp.format is False


def test_free_space_carves_esp(parted_disk: Callable[[str], PartedDisk]) -> None:
	plan = plan_free_space(parted_disk('gpt_no_esp'))

	esp = plan.efi_partition
	assert esp is not None
	assert esp.create is True
	assert esp.format is True
	assert esp.number == 2
	assert esp.start == Size(10241, Unit.MiB)
	assert esp.end == Size(10241 + 512, Unit.MiB)

	root = plan.root_partition
	assert root.number == 3
	assert root.start == Size(10241 + 512, Unit.MiB)


def test_free_space_uses_lowest_unused_number(parted_disk: Callable[[str], PartedDisk]) -> None:
	plan = plan_free_space(parted_disk('gpt_gap'))

	assert plan.root_partition.number == 2
	assert plan.root_partition.dev_path == Path('/dev/sdb2')


def test_free_space_keeps_msdos_label(parted_disk: Callable[[str], PartedDisk]) -> None:
	plan = plan_free_space(parted_disk('msdos_boot'))

	assert plan.partition_table == PartitionTable.MBR


def test_free_space_too_small(parted_disk: Callable[[str], PartedDisk]) -> None:
	with pytest.raises(PreconditionError):
		plan_free_space(parted_disk('gpt_full'))


def test_free_space_needs_partition_table(parted_disk: Callable[[str], PartedDisk]) -> None:
	with pytest.raises(PreconditionError):
		plan_free_space(parted_disk('no_label'))


def test_free_space_floor_is_inclusive() -> None:
	disk = PartedDisk(Path('/dev/sda'), Size(1 + 2048, Unit.MiB), PartitionTable.GPT, [])

	plan = plan_free_space(disk)

	assert plan.root_partition.create is True


def test_manual_layout(lsblk_devices: Callable[[str], list[LsblkInfo]]) -> None:
	[device] = lsblk_devices('manual')

	plan = plan_manual(device.path, device)

	assert plan.mode == PartitioningMode.Manual
	assert all(p.create is False for p in plan.partitions)

	esp = plan.efi_partition
	assert esp is not None
	assert esp.dev_path == Path('/dev/nvme0n1p1')
	# already carries a filesystem
	assert esp.format is False

	# the largest of the remaining partitions
	root = plan.root_partition
	assert root.dev_path == Path('/dev/nvme0n1p3')
	assert root.number == 3
	assert root.format is True


def test_manual_esp_falls_back_to_vfat() -> None:
	device = _lsblk(
		'/dev/sda',
		[
			_part('/dev/sda1', 40960, partn=1, fstype='vfat'),
			_part('/dev/sda2', 20480, partn=2),
		],
	)

	plan = plan_manual(Path('/dev/sda'), device)

	assert plan.efi_partition is not None
	assert plan.efi_partition.dev_path == Path('/dev/sda1')
	# the ESP is never the root even if it is the largest partition
	assert plan.root_partition.dev_path == Path('/dev/sda2')


def test_manual_unformatted_esp_gets_formatted() -> None:
	device = _lsblk(
		'/dev/sda',
		[
			_part('/dev/sda1', 512, partn=1, parttype='C12A7328-F81F-11D2-BA4B-00A0C93EC93B'),
			_part('/dev/sda2', 20480, partn=2),
		],
	)

	plan = plan_manual(Path('/dev/sda'), device)

	assert plan.efi_partition is not None
	assert plan.efi_partition.format is True


def test_manual_without_esp_is_bios() -> None:
	device = _lsblk('/dev/sda', [_part('/dev/sda1', 20480)])

	plan = plan_manual(Path('/dev/sda'), device)

	assert plan.efi_partition is None
	# number parsed from the device name when lsblk has no PARTN
	assert plan.root_partition.number == 1


def test_manual_without_root() -> None:
	device = _lsblk(
		'/dev/sda',
		[_part('/dev/sda1', 512, partn=1, fstype='vfat')],
	)

	with pytest.raises(PreconditionError):
		plan_manual(Path('/dev/sda'), device)


def test_manual_without_partitions() -> None:
	with pytest.raises(PreconditionError):
		plan_manual(Path('/dev/sda'), _lsblk('/dev/sda', []))


def test_resolve_partition_paths_keeps_existing_nodes() -> None:
	plan = plan_entire_disk(Path('/dev/sda'))
	device = _lsblk(
		'/dev/sda',
		[_part('/dev/sda1', 512, partn=1), _part('/dev/sda2', 20480, partn=2)],
	)

	assert resolve_partition_paths(plan, device) == plan


def test_resolve_partition_paths_by_number() -> None:
	# e.g. a disk that was planned by a name without the kernel's p infix
	plan = plan_entire_disk(Path('/dev/loop0'))
	plan = plan.with_partitions([p.with_dev_path(Path(f'/dev/loop0{p.number}')) for p in plan.partitions])

	device = _lsblk(
		'/dev/loop0',
		[_part('/dev/loop0p1', 512, partn=1), _part('/dev/loop0p2', 20480, partn=2)],
	)

	resolved = resolve_partition_paths(plan, device)

	assert [p.dev_path for p in resolved.partitions] == [Path('/dev/loop0p1'), Path('/dev/loop0p2')]


def test_resolve_partition_paths_missing_node() -> None:
	plan = plan_entire_disk(Path('/dev/sda'))
	device = _lsblk('/dev/sda', [_part('/dev/sda1', 512, partn=1)])

	with pytest.raises(DiskError):
		resolve_partition_paths(plan, device)


def test_plan_serialization(parted_disk: Callable[[str], PartedDisk]) -> None:
	plan = plan_free_space(parted_disk('gpt_esp'), SubvolumeLayout.Turbo)

	assert DiskPlan.parse_arg(plan.json()) == plan
