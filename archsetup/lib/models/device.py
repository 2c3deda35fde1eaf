from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import NotRequired, TypedDict, override

from pydantic import BaseModel, field_validator

from ..output import debug

ESP_PARTTYPE_GUID = 'c12a7328-f81f-11d2-ba4b-00a0c93ec93b'
DEFAULT_MOUNT_OPTIONS = ('noatime', 'compress=zstd')


class PartitioningMode(Enum):
	EntireDisk = 'entire_disk'
	FreeSpace = 'free_space'
	Manual = 'manual'

	def display_msg(self) -> str:
		match self:
			case PartitioningMode.EntireDisk:
				return 'Use entire disk'
			case PartitioningMode.FreeSpace:
				return 'Use remaining free space'
			case PartitioningMode.Manual:
				return 'Manual partitioning (cfdisk)'

	@classmethod
	def from_display_msg(cls, msg: str) -> PartitioningMode | None:
		for mode in cls:
			if mode.display_msg() == msg:
				return mode
		return None


class PartitionTable(Enum):
	GPT = 'gpt'
	MBR = 'msdos'


class Unit(Enum):
	B = 1  # byte
	KiB = 1024**1  # kibibyte
	MiB = 1024**2  # mebibyte
	GiB = 1024**3  # gibibyte
	TiB = 1024**4  # tebibyte


class _SizeSerialization(TypedDict):
	value: int
	unit: str


@dataclass(frozen=True)
class Size:
	value: int
	unit: Unit

	def json(self) -> _SizeSerialization:
		return {
			'value': self.value,
			'unit': self.unit.name,
		}

	@classmethod
	def parse_args(cls, size_arg: _SizeSerialization) -> Size:
		return Size(size_arg['value'], Unit[size_arg['unit']])

	@classmethod
	def from_parted(cls, value: str) -> Size:
		"""
		Parses values printed by `parted -m unit MiB print`, e.g. '1.00MiB' or '20480MiB'
		"""
		number = float(value.strip().removesuffix('MiB'))
		return Size(round(number * Unit.MiB.value), Unit.B)

	def mib_ceil(self) -> int:
		return math.ceil(self._normalize() / Unit.MiB.value)

	def format_highest(self, include_unit: bool = True) -> str:
		size = float(self._normalize())
		unit = Unit.B

		for binary_unit in list(Unit)[1:]:
			if size < 1024:
				break
			size /= 1024
			unit = binary_unit

		formatted_size = f'{size:.1f}'

		if formatted_size.endswith('.0'):
			formatted_size = formatted_size[:-2]

		if not include_unit:
			return formatted_size

		return f'{formatted_size} {unit.name}'

	def _normalize(self) -> int:
		"""
		will normalize the value of the unit to Byte
		"""
		return int(self.value * self.unit.value)

	def __sub__(self, other: Size) -> Size:
		return Size(abs(self._normalize() - other._normalize()), Unit.B)

	def __add__(self, other: Size) -> Size:
		return Size(self._normalize() + other._normalize(), Unit.B)

	def __lt__(self, other: Size) -> bool:
		return self._normalize() < other._normalize()

	def __le__(self, other: Size) -> bool:
		return self._normalize() <= other._normalize()

	@override
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, Size):
			return NotImplemented

		return self._normalize() == other._normalize()

	@override
	def __hash__(self) -> int:
		return hash(self._normalize())

	def __gt__(self, other: Size) -> bool:
		return self._normalize() > other._normalize()

	def __ge__(self, other: Size) -> bool:
		return self._normalize() >= other._normalize()


ESP_SIZE = Size(512, Unit.MiB)
MIN_ROOT_FREE_SPACE = Size(2048, Unit.MiB)
# first usable offset for an aligned partition on a fresh label
FIRST_PARTITION_START = Size(1, Unit.MiB)


class FilesystemType(Enum):
	Btrfs = 'btrfs'
	Fat32 = 'fat32'

	@property
	def fs_type_mount(self) -> str:
		match self:
			case FilesystemType.Fat32:
				return 'vfat'
			case _:
				return self.value

	@property
	def installation_module(self) -> str | None:
		match self:
			case FilesystemType.Btrfs:
				return 'btrfs'
			case _:
				return None

	@property
	def installation_binary(self) -> str | None:
		match self:
			case FilesystemType.Btrfs:
				return '/usr/bin/btrfs'
			case _:
				return None

	@property
	def installation_hooks(self) -> str | None:
		match self:
			case FilesystemType.Btrfs:
				return 'btrfs'
			case _:
				return None


class PartitionRole(Enum):
	Esp = 'esp'
	Root = 'root'


class PartitionFlag(Enum):
	Boot = 'boot'
	Esp = 'esp'


def partition_path(disk: Path | str, number: int) -> Path:
	"""
	The kernel separates the partition number with a 'p' whenever the
	disk name itself ends with a digit: nvme0n1 -> nvme0n1p1, sda -> sda1
	"""
	disk = str(disk)

	if disk[-1].isdigit():
		return Path(f'{disk}p{number}')
	return Path(f'{disk}{number}')


class _PartitionModificationSerialization(TypedDict):
	number: int
	role: str
	dev_path: str
	fs_type: str
	start: NotRequired[_SizeSerialization | None]
	end: NotRequired[_SizeSerialization | None]
	flags: list[str]
	create: bool
	format: bool


@dataclass(frozen=True)
class PartitionModification:
	number: int
	role: PartitionRole
	dev_path: Path
	fs_type: FilesystemType
	# start/end are only relevant for partitions that will be created,
	# an end of None spans the partition up to the end of the disk
	start: Size | None = None
	end: Size | None = None
	flags: tuple[PartitionFlag, ...] = ()
	create: bool = True
	format: bool = True

	@property
	def mountpoint(self) -> Path | None:
		if self.role == PartitionRole.Esp:
			return Path('/boot/efi')
		return None

	def is_esp(self) -> bool:
		return self.role == PartitionRole.Esp

	def is_root(self) -> bool:
		return self.role == PartitionRole.Root

	def with_dev_path(self, dev_path: Path) -> PartitionModification:
		return replace(self, dev_path=dev_path)

	def table_data(self) -> dict[str, str | int]:
		if self.start is None:
			size = 'existing'
		elif self.end is None:
			size = 'remainder'
		else:
			size = (self.end - self.start).format_highest()

		return {
			'number': self.number,
			'device': str(self.dev_path),
			'role': self.role.value,
			'filesystem': self.fs_type.value,
			'size': size,
			'action': ', '.join(
				a for a in [
					'create' if self.create else 'reuse',
					'format' if self.format else '',
				] if a
			),
		}

	def json(self) -> _PartitionModificationSerialization:
		return {
			'number': self.number,
			'role': self.role.value,
			'dev_path': str(self.dev_path),
			'fs_type': self.fs_type.value,
			'start': self.start.json() if self.start else None,
			'end': self.end.json() if self.end else None,
			'flags': [f.value for f in self.flags],
			'create': self.create,
			'format': self.format,
		}

	@classmethod
	def parse_arg(cls, arg: _PartitionModificationSerialization) -> PartitionModification:
		start = arg.get('start')
		end = arg.get('end')

		return PartitionModification(
			number=arg['number'],
			role=PartitionRole(arg['role']),
			dev_path=Path(arg['dev_path']),
			fs_type=FilesystemType(arg['fs_type']),
			start=Size.parse_args(start) if start else None,
			end=Size.parse_args(end) if end else None,
			flags=tuple(PartitionFlag(f) for f in arg.get('flags', [])),
			create=arg.get('create', True),
			format=arg.get('format', True),
		)


@dataclass(frozen=True)
class SubvolumeModification:
	name: str
	mountpoint: Path

	@property
	def relative_mountpoint(self) -> Path:
		"""
		Will return the relative path based on the anchor
		e.g. Path('/home') -> Path('home')
		"""
		return self.mountpoint.relative_to(self.mountpoint.anchor)

	def is_root(self) -> bool:
		return self.mountpoint == Path('/')

	def json(self) -> dict[str, str]:
		return {'name': self.name, 'mountpoint': str(self.mountpoint)}


class SubvolumeLayout(Enum):
	Full = 'full'
	Turbo = 'turbo'

	def subvolumes(self) -> tuple[SubvolumeModification, ...]:
		match self:
			case SubvolumeLayout.Full:
				return (
					SubvolumeModification('@', Path('/')),
					SubvolumeModification('@home', Path('/home')),
					SubvolumeModification('@var', Path('/var')),
					SubvolumeModification('@tmp', Path('/tmp')),
					SubvolumeModification('@snapshots', Path('/.snapshots')),
				)
			case SubvolumeLayout.Turbo:
				return (
					SubvolumeModification('@', Path('/')),
					SubvolumeModification('@home', Path('/home')),
					SubvolumeModification('@snapshots', Path('/.snapshots')),
				)


class _DiskPlanSerialization(TypedDict):
	device: str
	mode: str
	partition_table: NotRequired[str]
	wipe: bool
	subvolume_layout: str
	mount_options: list[str]
	partitions: list[_PartitionModificationSerialization]


@dataclass(frozen=True)
class DiskPlan:
	device: Path
	mode: PartitioningMode
	partitions: tuple[PartitionModification, ...]
	subvolume_layout: SubvolumeLayout = SubvolumeLayout.Full
	partition_table: PartitionTable = PartitionTable.GPT
	wipe: bool = False
	mount_options: tuple[str, ...] = DEFAULT_MOUNT_OPTIONS

	@property
	def subvolumes(self) -> tuple[SubvolumeModification, ...]:
		return self.subvolume_layout.subvolumes()

	@property
	def efi_partition(self) -> PartitionModification | None:
		for part in self.partitions:
			if part.is_esp():
				return part
		return None

	@property
	def root_partition(self) -> PartitionModification:
		for part in self.partitions:
			if part.is_root():
				return part
		raise ValueError(f'Disk plan for {self.device} has no root partition')

	def with_partitions(self, partitions: list[PartitionModification]) -> DiskPlan:
		return replace(self, partitions=tuple(partitions))

	def json(self) -> _DiskPlanSerialization:
		return {
			'device': str(self.device),
			'mode': self.mode.value,
			'partition_table': self.partition_table.value,
			'wipe': self.wipe,
			'subvolume_layout': self.subvolume_layout.value,
			'mount_options': list(self.mount_options),
			'partitions': [p.json() for p in self.partitions],
		}

	@classmethod
	def parse_arg(cls, arg: _DiskPlanSerialization) -> DiskPlan:
		return DiskPlan(
			device=Path(arg['device']),
			mode=PartitioningMode(arg['mode']),
			partitions=tuple(PartitionModification.parse_arg(p) for p in arg['partitions']),
			subvolume_layout=SubvolumeLayout(arg.get('subvolume_layout', SubvolumeLayout.Full.value)),
			partition_table=PartitionTable(arg.get('partition_table', PartitionTable.GPT.value)),
			wipe=arg.get('wipe', False),
			mount_options=tuple(arg.get('mount_options', DEFAULT_MOUNT_OPTIONS)),
		)


@dataclass(frozen=True)
class PartedPartition:
	number: int
	start: Size
	end: Size
	fs_type: str | None
	name: str = ''
	flags: tuple[str, ...] = ()

	def is_esp(self) -> bool:
		if 'esp' in self.flags:
			return True
		# msdos labels only know the boot flag
		return 'boot' in self.flags and (self.fs_type or '').startswith('fat')


@dataclass(frozen=True)
class PartedDisk:
	path: Path
	size: Size
	table: PartitionTable | None
	partitions: list[PartedPartition] = field(default_factory=list)

	@property
	def last_partition_end(self) -> Size:
		if not self.partitions:
			return FIRST_PARTITION_START
		return max(p.end for p in self.partitions)

	@property
	def free_space(self) -> Size:
		return self.size - self.last_partition_end

	def esp(self) -> PartedPartition | None:
		for part in self.partitions:
			if part.is_esp():
				return part
		return None

	def unused_numbers(self, count: int) -> list[int]:
		used = {p.number for p in self.partitions}
		numbers: list[int] = []
		candidate = 1

		while len(numbers) < count:
			if candidate not in used:
				numbers.append(candidate)
			candidate += 1

		return numbers

	@classmethod
	def from_machine_output(cls, output: str) -> PartedDisk:
		"""
		Parses `parted -s -m <dev> unit MiB print`:

			BYT;
			/dev/sda:20480MiB:scsi:512:512:gpt:ATA VBOX HARDDISK:;
			1:1.00MiB:513MiB:512MiB:fat32:EFI:boot, esp;
		"""
		lines = [line.strip().removesuffix(';') for line in output.splitlines()]
		lines = [line for line in lines if line and line not in ('BYT', 'CHS', 'CYL')]

		disk_line = next((line for line in lines if line.startswith('/')), None)
		if disk_line is None:
			raise ValueError(f'No disk information found in parted output: {output!r}')

		disk_fields = disk_line.split(':')
		path = Path(disk_fields[0])
		size = Size.from_parted(disk_fields[1])

		try:
			table: PartitionTable | None = PartitionTable(disk_fields[5])
		except (ValueError, IndexError):
			# 'unknown' or 'loop' (a filesystem directly on the disk)
			table = None

		partitions = []
		for line in lines:
			if line.startswith('/') or not line[0].isdigit():
				continue

			part_fields = line.split(':')
			if len(part_fields) < 5 or part_fields[4] == 'free':
				continue

			flags = tuple(f.strip() for f in part_fields[6].split(',') if f.strip()) if len(part_fields) > 6 else ()

			partitions.append(
				PartedPartition(
					number=int(part_fields[0]),
					start=Size.from_parted(part_fields[1]),
					end=Size.from_parted(part_fields[2]),
					fs_type=part_fields[4] or None,
					name=part_fields[5] if len(part_fields) > 5 else '',
					flags=flags,
				)
			)

		debug(f'Parsed parted output for {path}: table={table}, partitions={[p.number for p in partitions]}')

		return PartedDisk(path, size, table, partitions)


class LsblkInfo(BaseModel):
	name: str
	path: Path
	pkname: str | None = None
	size: Size
	type: str | None = None
	tran: str | None = None
	model: str | None = None
	fstype: str | None = None
	parttype: str | None = None
	partn: int | None = None
	mountpoints: list[Path] = []
	children: list[LsblkInfo] = []

	@field_validator('size', mode='before')
	@classmethod
	def convert_size(cls, v: int | str | Size) -> Size:
		if isinstance(v, Size):
			return v
		return Size(int(v), Unit.B)

	@field_validator('mountpoints', mode='before')
	@classmethod
	def remove_none(cls, v: list[Path | None] | None) -> list[Path]:
		if v is None:
			return []
		return [item for item in v if item is not None]

	@field_validator('model', mode='before')
	@classmethod
	def strip_model(cls, v: str | None) -> str | None:
		return v.strip() if v else v

	def is_esp_type(self) -> bool:
		return (self.parttype or '').lower() == ESP_PARTTYPE_GUID

	@classmethod
	def fields(cls) -> list[str]:
		return [name for name in cls.model_fields if name != 'children']
