from typing import override

from ..hardware import SysInfo
from ..output import warn
from .base import Feature, PostInstallContext

_HEADERS_BY_SUFFIX = [
	('arch', 'linux-headers'),
	('lts', 'linux-lts-headers'),
	('zen', 'linux-zen-headers'),
	('hardened', 'linux-hardened-headers'),
]


def headers_package(kernel_release: str) -> str | None:
	"""
	Maps `uname -r` to the matching headers package:
	6.9.7-arch1-1 -> linux-headers, 6.6.36-1-lts -> linux-lts-headers
	"""
	_, _, suffix = kernel_release.partition('-')

	for marker, package in _HEADERS_BY_SUFFIX:
		if marker in suffix:
			return package

	return None


class SystemUpdate(Feature):
	name = 'system_update'

	@override
	def install(self, ctx: PostInstallContext) -> None:
		ctx.pacman.upgrade()


class KernelHeaders(Feature):
	name = 'kernel_headers'
	prompt = 'Do you want to install kernel headers? (Needed for building kernel modules like VirtualBox, NVIDIA drivers, ZFS, etc.)'

	@override
	def install(self, ctx: PostInstallContext) -> None:
		release = SysInfo.kernel_release()

		if package := headers_package(release):
			ctx.pacman.install(package)
		else:
			warn(f'Could not automatically determine headers for kernel: {release}')
			warn('You may need to install them manually (e.g. linux-headers, linux-lts-headers).')
