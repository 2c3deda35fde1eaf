import re
from pathlib import Path

from pydantic import BaseModel

from ..exceptions import DiskError, SysCallError
from ..general import SysCommand
from ..models.device import LsblkInfo, PartedDisk
from ..output import debug, warn

# whole disks only: SATA/SCSI, virtio and NVMe namespaces
_WHOLE_DISK_RE = re.compile(r'^(sd[a-z]+|vd[a-z]+|nvme\d+n\d+)$')


class LsblkOutput(BaseModel):
	blockdevices: list[LsblkInfo]


def _fetch_lsblk_info(dev_path: Path | str | None = None) -> LsblkOutput:
	cmd = ['lsblk', '--json', '--bytes', '--paths', '--output', ','.join(LsblkInfo.fields())]

	if dev_path:
		cmd.append(str(dev_path))

	try:
		worker = SysCommand(cmd)
	except SysCallError as err:
		# Get the output minus the message/info from lsblk if it returns a non-zero exit code.
		if err.worker_log:
			debug(f'Error calling lsblk: {err.worker_log.decode()}')

		if dev_path:
			raise DiskError(f'Failed to read disk "{dev_path}" with lsblk')

		raise err

	return LsblkOutput.model_validate_json(worker.output(remove_cr=False))


def get_lsblk_info(dev_path: Path | str) -> LsblkInfo:
	infos = _fetch_lsblk_info(dev_path)

	if infos.blockdevices:
		return infos.blockdevices[0]

	raise DiskError(f'lsblk failed to retrieve information for "{dev_path}"')


def get_all_lsblk_info() -> list[LsblkInfo]:
	return _fetch_lsblk_info().blockdevices


def is_whole_disk_name(name: str) -> bool:
	return _WHOLE_DISK_RE.match(name) is not None


def filter_whole_disks(infos: list[LsblkInfo]) -> list[LsblkInfo]:
	return [
		info for info in infos
		if info.type == 'disk' and is_whole_disk_name(info.path.name)
	]


def list_disks() -> list[LsblkInfo]:
	return filter_whole_disks(get_all_lsblk_info())


def probe_partitions(dev_path: Path) -> PartedDisk:
	"""
	Reads the partition table of a disk with `parted -m`; parted exits non-zero
	for disks without a label, that case is returned as a disk without table.
	"""
	cmd = ['parted', '--script', '--machine', str(dev_path), 'unit', 'MiB', 'print']

	try:
		output = SysCommand(cmd).decode()
	except SysCallError as err:
		output = err.worker_log.decode('utf-8', errors='replace')

		if 'unrecognised disk label' not in output:
			raise DiskError(f'Could not read the partition table of {dev_path}: {err.message}')

		debug(f'No partition table on {dev_path}')

	try:
		return PartedDisk.from_machine_output(output)
	except ValueError as err:
		raise DiskError(f'Could not parse the partition table of {dev_path}: {err}')


def disk_layouts() -> str:
	try:
		lsblk_output = _fetch_lsblk_info()
	except SysCallError as err:
		warn(f'Could not return disk layouts: {err}')
		return ''

	return lsblk_output.model_dump_json(indent=4)


def umount(mountpoint: Path, recursive: bool = False) -> None:
	cmd = ['umount']

	if recursive:
		cmd.append('-R')

	debug(f'Unmounting mountpoint: {mountpoint}')
	SysCommand(cmd + [str(mountpoint)])
