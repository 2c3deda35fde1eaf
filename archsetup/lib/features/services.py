from typing import override

from ..systemd import GRUB_BTRFSD_EXEC, REFLECTOR_EXEC, exec_start_override, write_override
from .base import Feature, PostInstallContext


class GrubBtrfs(Feature):
	name = 'grub_btrfs'
	prompt = 'Do you want to install grub-btrfs (boot into Timeshift snapshots)?'

	@override
	def install(self, ctx: PostInstallContext) -> None:
		ctx.pacman.install(['grub-btrfs', 'inotify-tools'])

		# See https://github.com/Antynea/grub-btrfs?tab=readme-ov-file#-using-timeshift-with-systemd
		write_override(ctx.root, 'grub-btrfsd.service', exec_start_override(GRUB_BTRFSD_EXEC))

		ctx.systemctl('daemon-reload')
		ctx.systemctl('enable', '--now', 'grub-btrfsd.service')
		ctx.run(['grub-mkconfig', '-o', '/boot/grub/grub.cfg'])


class Reflector(Feature):
	name = 'reflector'
	prompt = 'Do you want to keep the mirror list ranked with reflector?'

	@override
	def install(self, ctx: PostInstallContext) -> None:
		ctx.pacman.install(['reflector', 'curl'])

		write_override(ctx.root, 'reflector.service', exec_start_override(REFLECTOR_EXEC))

		ctx.systemctl('daemon-reload')
		ctx.systemctl('enable', '--now', 'reflector.timer')
		ctx.systemctl('enable', '--now', 'reflector.service')
