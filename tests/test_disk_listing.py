import json
from collections.abc import Callable
from pathlib import Path

import pytest

from archsetup.lib.disk.utils import filter_whole_disks, get_lsblk_info, is_whole_disk_name, list_disks
from archsetup.lib.exceptions import DiskError
from archsetup.lib.models.device import LsblkInfo

from .conftest import CommandRecorder

_DATA = Path(__file__).parent / 'data'


@pytest.mark.parametrize(
	'name, expected',
	[
		('sda', True),
		('sdab', True),
		('vda', True),
		('nvme0n1', True),
		('nvme1n2', True),
		('sda1', False),
		('nvme0n1p1', False),
		('loop0', False),
		('sr0', False),
		('zram0', False),
		('mmcblk0', False),
	],
)
def test_whole_disk_names(name: str, expected: bool) -> None:
	assert is_whole_disk_name(name) is expected


def test_filter_whole_disks(lsblk_devices: Callable[[str], list[LsblkInfo]]) -> None:
	disks = filter_whole_disks(lsblk_devices('disks'))

	assert [d.path for d in disks] == [Path('/dev/sda'), Path('/dev/nvme0n1'), Path('/dev/vda')]


def test_list_disks_calls_lsblk(commands: CommandRecorder) -> None:
	commands.outputs['lsblk'] = (_DATA / 'lsblk_disks.json').read_text()

	disks = list_disks()

	assert len(disks) == 3
	assert commands.calls[0][:5] == ['lsblk', '--json', '--bytes', '--paths', '--output']
	assert disks[1].tran == 'nvme'
	# lsblk pads the model name
	assert disks[0].model == 'VBOX HARDDISK'


def test_get_lsblk_info_failure(commands: CommandRecorder) -> None:
	commands.failing['lsblk'] = 'lsblk: /dev/sdz: not a block device'

	with pytest.raises(DiskError):
		get_lsblk_info('/dev/sdz')


def test_get_lsblk_info_empty(commands: CommandRecorder) -> None:
	commands.outputs['lsblk'] = json.dumps({'blockdevices': []})

	with pytest.raises(DiskError):
		get_lsblk_info('/dev/sda')
