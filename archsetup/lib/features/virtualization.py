from typing import override

from .. import terminal
from ..output import warn
from .base import Feature, PostInstallContext

QEMU_VARIANTS = {
	'full': 'qemu-full',
	'desktop': 'qemu-desktop',
}


def ask_qemu_variant() -> str:
	while True:
		answer = terminal.read_line("Do you want 'qemu-full' or 'qemu-desktop'? [full/desktop]: ").strip().lower()

		if package := QEMU_VARIANTS.get(answer):
			return package

		warn("Please enter 'full' or 'desktop'.")


class Virtualization(Feature):
	name = 'virtualization'
	prompt = 'Do you want to install virtualization support (libvirt, virt-manager, QEMU)?'

	def __init__(self, qemu_package: str | None = None) -> None:
		self.qemu_package = qemu_package

	@override
	def prepare(self, ctx: PostInstallContext) -> None:
		if self.qemu_package is None:
			self.qemu_package = QEMU_VARIANTS['desktop'] if ctx.auto_yes else ask_qemu_variant()

	@override
	def install(self, ctx: PostInstallContext) -> None:
		self.prepare(ctx)
		assert self.qemu_package is not None

		ctx.pacman.install(['libvirt', 'virt-manager', self.qemu_package, 'dnsmasq', 'dmidecode'])

		ctx.systemctl('enable', '--now', 'libvirtd.service', 'virtlogd.service')
		ctx.run(['usermod', '-aG', 'libvirt', ctx.username])
		ctx.run(['virsh', 'net-autostart', 'default'])
