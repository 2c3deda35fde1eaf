from .device import (
	DiskPlan,
	FilesystemType,
	LsblkInfo,
	PartedDisk,
	PartedPartition,
	PartitionFlag,
	PartitioningMode,
	PartitionModification,
	PartitionRole,
	PartitionTable,
	Size,
	SubvolumeLayout,
	SubvolumeModification,
	Unit,
	partition_path,
)
from .mirrors import MirrorConfiguration
from .profile import DesktopProfile
from .users import Password, User

__all__ = [
	'DesktopProfile',
	'DiskPlan',
	'FilesystemType',
	'LsblkInfo',
	'MirrorConfiguration',
	'PartedDisk',
	'PartedPartition',
	'PartitionFlag',
	'PartitionModification',
	'PartitionRole',
	'PartitionTable',
	'PartitioningMode',
	'Password',
	'Size',
	'SubvolumeLayout',
	'SubvolumeModification',
	'Unit',
	'User',
	'partition_path',
]
