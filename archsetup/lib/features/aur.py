import shutil
import tempfile
from pathlib import Path
from typing import override

from ..general import has_binary
from ..output import info
from ..privilege import temporary_sudo_grant
from .base import Feature, PostInstallContext

YAY_BIN_REPO = 'https://aur.archlinux.org/yay-bin.git'


class AurHelper(Feature):
	name = 'aur_helper'
	prompt = 'Do you want to install the yay AUR helper?'

	@override
	def install(self, ctx: PostInstallContext) -> None:
		if has_binary('yay'):
			info('yay is already installed')
			return

		ctx.pacman.install(['git', 'base-devel'])

		with tempfile.TemporaryDirectory(prefix='archsetup-aur-') as tmp:
			build_root = Path(tmp)
			# makepkg refuses to run as root, the build dir has to belong to the user
			shutil.chown(build_root, user=ctx.username)

			ctx.run_as_user(['git', 'clone', YAY_BIN_REPO], working_directory=build_root)

			with temporary_sudo_grant(ctx.username):
				ctx.run_as_user(
					['makepkg', '-si', '--noconfirm'],
					working_directory=build_root / 'yay-bin',
					peek_output=True,
				)
