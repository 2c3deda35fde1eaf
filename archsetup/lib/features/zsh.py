import grp
import pwd
import shutil
import tempfile
from pathlib import Path
from typing import override

from ..networking import fetch_data_from_url
from ..output import info
from ..utils.files import append_once
from .base import Feature, PostInstallContext

OH_MY_ZSH_INSTALLER = 'https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh'

# the lines of the oh-my-zsh template, an existing .zshrc is kept and would miss them
OH_MY_ZSH_LINES = [
	'export ZSH="$HOME/.oh-my-zsh"',
	'source $ZSH/oh-my-zsh.sh',
]

ZSHRC_LINES = [
	*OH_MY_ZSH_LINES,
	'eval "$(starship init zsh)"',
	'source /usr/share/zsh/plugins/zsh-syntax-highlighting/zsh-syntax-highlighting.zsh',
	'alias removeall=\'f() { sudo pacman -Rns $(pacman -Qq | grep "^$1"); }; f\'',
]


class Zsh(Feature):
	name = 'zsh'
	prompt = 'Do you want to install Zsh with Oh-My-Zsh, Starship, and syntax highlighting?'

	@override
	def install(self, ctx: PostInstallContext) -> None:
		ctx.pacman.install(['zsh', 'starship', 'zsh-syntax-highlighting', 'curl'])

		if not (ctx.home / '.oh-my-zsh').exists():
			self._install_oh_my_zsh(ctx)

		zshrc = ctx.home / '.zshrc'

		for line in ZSHRC_LINES:
			append_once(zshrc, line)

		group = grp.getgrgid(pwd.getpwnam(ctx.username).pw_gid).gr_name
		shutil.chown(zshrc, user=ctx.username, group=group)

		ctx.run(['chsh', '-s', '/bin/zsh', ctx.username])

	def _install_oh_my_zsh(self, ctx: PostInstallContext) -> None:
		info('Installing oh-my-zsh')
		script = fetch_data_from_url(OH_MY_ZSH_INSTALLER)

		with tempfile.TemporaryDirectory(prefix='archsetup-zsh-') as tmp:
			installer = Path(tmp) / 'install.sh'
			installer.write_text(script)
			shutil.chown(tmp, user=ctx.username)
			shutil.chown(installer, user=ctx.username)

			# --keep-zshrc leaves an existing .zshrc alone, ZSHRC_LINES are appended to it afterwards
			ctx.run_as_user(['sh', str(installer), '--unattended', '--keep-zshrc'], working_directory=ctx.home)
