import logging
from pathlib import Path

from ..exceptions import DiskError, SysCallError
from ..general import SysCommand
from ..models.device import (
	DiskPlan,
	FilesystemType,
	PartitioningMode,
	PartitionModification,
	PartitionRole,
	PartitionTable,
	SubvolumeModification,
)
from ..output import debug, error, info, log, warn
from ..storage import storage
from .planner import resolve_partition_paths
from .utils import get_lsblk_info, umount


class DiskExecutor:
	"""
	Turns a DiskPlan into partitions, filesystems, subvolumes and mounts
	below the installation target. Every step only runs after the
	previous one finished, nothing is formatted before the device nodes
	of the plan are confirmed to exist.
	"""

	_TMP_BTRFS_MOUNT = Path('/run/archsetup/btrfs')

	def __init__(self, plan: DiskPlan, target: Path, scratch_mount: Path | None = None) -> None:
		self._plan = plan
		self._target = target
		self._scratch_mount = scratch_mount or self._TMP_BTRFS_MOUNT
		self._mounted: list[Path] = []

	@property
	def plan(self) -> DiskPlan:
		return self._plan

	@property
	def target(self) -> Path:
		return self._target

	@property
	def mounted(self) -> list[Path]:
		return list(self._mounted)

	def execute(self) -> DiskPlan:
		self.partition()
		self.verify()
		self.format()
		self.create_subvolumes()
		self.mount_all()
		return self._plan

	def partition(self) -> None:
		plan = self._plan

		if plan.mode == PartitioningMode.Manual:
			debug(f'Partitions of {plan.device} were created manually, nothing to create')
			return

		# WARNING: the entire device will be wiped and all data lost
		if plan.wipe:
			info(f'Wiping partitions and metadata: {plan.device}')
			self._run(['wipefs', '--all', '--force', str(plan.device)], 'wipe')
			self._parted(['mklabel', plan.partition_table.value])
		else:
			info(f'Use existing device: {plan.device}')

		info(f'Creating partitions: {plan.device}')

		for part in plan.partitions:
			if not part.create:
				continue

			self._create_partition(part)

		self.partprobe(plan.device)
		self.udev_sync()

	def _create_partition(self, part: PartitionModification) -> None:
		if part.start is None:
			raise ValueError(f'Partition {part.number} has no start offset')

		start = f'{part.start.mib_ceil()}MiB'
		end = f'{part.end.mib_ceil()}MiB' if part.end else '100%'

		if self._plan.partition_table == PartitionTable.GPT:
			name = 'EFI' if part.role == PartitionRole.Esp else 'root'
		else:
			name = 'primary'

		debug(f'Creating partition {part.number} ({part.role.value}) from {start} to {end}')
		self._parted(['mkpart', name, part.fs_type.value, start, end])

		for flag in part.flags:
			self._parted(['set', str(part.number), flag.value, 'on'])

	def _parted(self, args: list[str]) -> None:
		cmd = ['parted', '--script', '--align', 'optimal', str(self._plan.device), 'unit', 'MiB', *args]
		self._run(cmd, 'partition')

	def _run(self, cmd: list[str], action: str) -> None:
		try:
			SysCommand(cmd)
		except SysCallError as err:
			msg = f'Could not {action} {self._plan.device}: {err.message}'
			error(msg)
			raise DiskError(msg) from err

	def verify(self) -> None:
		"""
		Re-reads the disk and replaces the planned device paths with
		the nodes the kernel created for the partition numbers.
		"""
		device_info = get_lsblk_info(self._plan.device)
		self._plan = resolve_partition_paths(self._plan, device_info)

		for part in self._plan.partitions:
			debug(f'Verified partition {part.number}: {part.dev_path}')

	def format(self) -> None:
		for part in self._plan.partitions:
			if not part.format:
				info(f'Keeping existing filesystem on {part.dev_path}')
				continue

			self.format_partition(part.fs_type, part.dev_path)

	@staticmethod
	def format_partition(fs_type: FilesystemType, path: Path) -> None:
		match fs_type:
			case FilesystemType.Fat32:
				cmd = ['mkfs.fat', '-F', '32', str(path)]
			case FilesystemType.Btrfs:
				# Force overwrite
				cmd = ['mkfs.btrfs', '-f', str(path)]

		info(f'Formatting {path} -> {fs_type.value}')
		debug('Formatting filesystem:', ' '.join(cmd))

		try:
			SysCommand(cmd)
		except SysCallError as err:
			msg = f'Could not format {path} with {fs_type.value}: {err.message}'
			error(msg)
			raise DiskError(msg) from err

	def create_subvolumes(self) -> None:
		root = self._plan.root_partition
		info(f'Creating subvolumes: {root.dev_path}')

		self.mount(root.dev_path, self._scratch_mount)

		try:
			for sub_vol in self._plan.subvolumes:
				debug(f'Creating subvolume: {sub_vol.name}')

				subvol_path = self._scratch_mount / sub_vol.name

				try:
					SysCommand(['btrfs', 'subvolume', 'create', str(subvol_path)])
				except SysCallError as err:
					raise DiskError(f'Could not create subvolume {sub_vol.name}: {err.message}') from err
		finally:
			self.unmount(self._scratch_mount)

	def _subvolume_options(self, sub_vol: SubvolumeModification) -> list[str]:
		return [*self._plan.mount_options, f'subvol={sub_vol.name}']

	def mount_all(self) -> None:
		root = self._plan.root_partition
		subvolumes = self._plan.subvolumes

		top_level = next(sv for sv in subvolumes if sv.is_root())
		self.mount(root.dev_path, self._target, self._subvolume_options(top_level))

		storage['active_target'] = self._target

		children = [sv for sv in subvolumes if not sv.is_root()]

		# the top level subvolume has to be mounted first, otherwise
		# the directories would be created on the live system
		for sub_vol in children:
			self.make_mountpoint(self._target / sub_vol.relative_mountpoint)

		for sub_vol in children:
			self.mount(
				root.dev_path,
				self._target / sub_vol.relative_mountpoint,
				self._subvolume_options(sub_vol),
			)

		if (esp := self._plan.efi_partition) and esp.mountpoint:
			esp_target = self._target / esp.mountpoint.relative_to(esp.mountpoint.anchor)
			self.make_mountpoint(esp_target)
			self.mount(esp.dev_path, esp_target, mount_fs=esp.fs_type.fs_type_mount)

	def make_mountpoint(self, path: Path) -> None:
		debug(f'Creating mountpoint: {path}')
		path.mkdir(parents=True, exist_ok=True)

	def mount(
		self,
		dev_path: Path,
		target_mountpoint: Path,
		options: list[str] = [],
		mount_fs: str | None = None,
	) -> None:
		if not target_mountpoint.exists():
			target_mountpoint.mkdir(parents=True, exist_ok=True)

		cmd = ['mount']

		if len(options):
			cmd.extend(('-o', ','.join(options)))
		if mount_fs:
			cmd.extend(('-t', mount_fs))

		cmd.extend((str(dev_path), str(target_mountpoint)))

		debug(f'Mounting {dev_path}: {" ".join(cmd)}')

		try:
			SysCommand(cmd)
		except SysCallError as err:
			raise DiskError(f'Could not mount {dev_path}: {" ".join(cmd)}\n{err.message}') from err

		self._mounted.append(target_mountpoint)

	def unmount(self, mountpoint: Path) -> None:
		try:
			umount(mountpoint)
		except SysCallError as err:
			raise DiskError(f'Could not unmount {mountpoint}: {err.message}') from err

		if mountpoint in self._mounted:
			self._mounted.remove(mountpoint)

	def rollback(self) -> None:
		"""
		Unmounts everything below the target so a failed run leaves
		no half mounted installation behind.
		"""
		self.release()

	def release(self) -> None:
		if not self._mounted:
			debug('Nothing mounted, no rollback needed')
			return

		info(f'Unmounting everything below {self._target}')

		try:
			umount(self._target, recursive=True)
		except SysCallError as err:
			warn(f'Could not unmount {self._target}: {err.message}')
			return

		self._mounted.clear()
		storage.pop('active_target', None)

	@staticmethod
	def partprobe(path: Path | None = None) -> None:
		command = ['partprobe']

		if path is not None:
			command.append(str(path))

		try:
			debug(f'Calling partprobe: {command}')
			SysCommand(command)
		except SysCallError as err:
			if 'have been written, but we have been unable to inform the kernel of the change' in str(err):
				log(f'Partprobe was not able to inform the kernel of the new disk state (ignoring error): {err}', fg='gray', level=logging.INFO)
			else:
				error(f'"{command}" failed to run (continuing anyway): {err}')

	@staticmethod
	def udev_sync() -> None:
		try:
			SysCommand('udevadm settle')
		except SysCallError as err:
			debug(f'Failed to synchronize with udev: {err}')
