from .device_handler import DiskExecutor
from .planner import (
	plan_entire_disk,
	plan_free_space,
	plan_manual,
	resolve_partition_paths,
)
from .utils import (
	disk_layouts,
	filter_whole_disks,
	get_all_lsblk_info,
	get_lsblk_info,
	is_whole_disk_name,
	list_disks,
	probe_partitions,
	umount,
)

__all__ = [
	'DiskExecutor',
	'disk_layouts',
	'filter_whole_disks',
	'get_all_lsblk_info',
	'get_lsblk_info',
	'is_whole_disk_name',
	'list_disks',
	'plan_entire_disk',
	'plan_free_space',
	'plan_manual',
	'probe_partitions',
	'resolve_partition_paths',
	'umount',
]
