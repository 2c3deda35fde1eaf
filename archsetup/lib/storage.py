# Keeping this in a dict ensures that values are shared across imports,
# e.g. the mountpoint of the active installation for the rollback handler.
from pathlib import Path
from typing import NotRequired, TypedDict


class _StorageDict(TypedDict):
	LOG_PATH: Path
	DEBUG: NotRequired[bool]
	active_target: NotRequired[Path]


storage: _StorageDict = {
	'LOG_PATH': Path('/var/log/archsetup'),
}
