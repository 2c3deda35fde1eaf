"""Arch Linux installer - guided, turbo and post-install scripts"""

import importlib
import os
import traceback

from .lib.args import ArchSetupConfigHandler
from .lib.disk.utils import disk_layouts
from .lib.exceptions import AbortedByUser, DiskError, InputError, PreconditionError, RequirementError
from .lib.hardware import SysInfo
from .lib.output import FormattedOutput, debug, error, info, log, logger, warn


def _log_sys_info() -> None:
	# Log various information about hardware before starting the installation. This might assist in troubleshooting
	debug(f'Machine: {SysInfo.machine()}; kernel: {SysInfo.kernel_release()}; UEFI mode: {SysInfo.has_uefi()}')
	debug(f'Processor vendor detected: {SysInfo.cpu_vendor()}')

	# For support reasons, we'll log the disk layout pre installation to match against post-installation layout
	debug(f'Disk states before installing:\n{disk_layouts()}')


def main(argv: list[str] | None = None) -> int:
	"""
	This can either be run as the installed application: archsetup
	OR straight as a module: python -m archsetup
	In any case we will be attempting to load the provided script to be run from the scripts/ folder
	"""
	handler = ArchSetupConfigHandler(argv)

	if os.getuid() != 0:
		print('archsetup requires root privileges to run. See --help for more.')
		return 1

	script = handler.get_script()

	if script != 'post_install':
		_log_sys_info()

	mod_name = f'archsetup.scripts.{script}'
	module = importlib.import_module(mod_name)

	return module.run(handler)


def run_as_a_module() -> None:
	rc = 0
	exc = None

	try:
		rc = main()
	except (InputError, AbortedByUser, PreconditionError, RequirementError, DiskError) as e:
		error(str(e))
		rc = 1
	except KeyboardInterrupt:
		error('Aborted by user')
		rc = 1
	except Exception as e:
		exc = e
	finally:
		if exc:
			err = ''.join(traceback.format_exception(exc))
			error(err)

			text = (
				'archsetup experienced the above error. The full log can be found at\n'
				f'"{logger.path}".'
			)

			warn(text)
			rc = 1

	exit(rc)


__all__ = [
	'FormattedOutput',
	'SysInfo',
	'debug',
	'disk_layouts',
	'error',
	'info',
	'log',
	'main',
	'run_as_a_module',
	'warn',
]
