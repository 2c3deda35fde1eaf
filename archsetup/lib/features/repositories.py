from dataclasses import dataclass
from typing import override

from ..output import info
from .base import Feature, PostInstallContext

KEYSERVER = 'keyserver.ubuntu.com'


@dataclass(frozen=True)
class ThirdPartyRepository:
	name: str
	key_id: str
	keyring_url: str
	mirrorlist_url: str
	mirrorlist: str


CHAOTIC_AUR = ThirdPartyRepository(
	name='chaotic-aur',
	key_id='3056513887B78AEB',
	keyring_url='https://cdn-mirror.chaotic.cx/chaotic-aur/chaotic-keyring.pkg.tar.zst',
	mirrorlist_url='https://cdn-mirror.chaotic.cx/chaotic-aur/chaotic-mirrorlist.pkg.tar.zst',
	mirrorlist='/etc/pacman.d/chaotic-mirrorlist',
)

CACHYOS = ThirdPartyRepository(
	name='cachyos',
	key_id='FBA220DFC880C036',
	keyring_url='https://mirror.cachyos.org/cachyos/cachyos-keyring.pkg.tar.zst',
	mirrorlist_url='https://mirror.cachyos.org/cachyos/cachyos-mirrorlist.pkg.tar.zst',
	mirrorlist='/etc/pacman.d/cachyos-mirrorlist',
)


def add_repository(ctx: PostInstallContext, repo: ThirdPartyRepository) -> None:
	"""
	Imports and locally signs the repository key, installs its keyring
	and mirror list and adds the section to pacman.conf. A configured
	repository is left alone.
	"""
	pacman_config = ctx.pacman_config

	if pacman_config.has_repository(repo.name):
		info(f'Repository [{repo.name}] is already configured')
		return

	info(f'Adding repository [{repo.name}]')

	ctx.run(['pacman-key', '--recv-key', repo.key_id, '--keyserver', KEYSERVER])
	ctx.run(['pacman-key', '--lsign-key', repo.key_id])
	ctx.pacman.run(['-U', '--noconfirm', repo.keyring_url, repo.mirrorlist_url], peek_output=True)

	pacman_config.add_repository(repo.name, repo.mirrorlist)

	info('Refreshing repositories...')
	ctx.pacman.run(['-Sy'])


class ChaoticAur(Feature):
	name = 'chaotic_aur'
	prompt = 'Do you want to add the Chaotic AUR repository?'

	@override
	def install(self, ctx: PostInstallContext) -> None:
		add_repository(ctx, CHAOTIC_AUR)


class Gaming(Feature):
	name = 'gaming'
	prompt = 'Do you want the gaming setup (CachyOS kernel, gaming meta packages, Proton-GE)?'

	@override
	def install(self, ctx: PostInstallContext) -> None:
		add_repository(ctx, CACHYOS)

		info('Installing CachyOS kernel and gaming packages...')
		ctx.pacman.install(['linux-cachyos', 'linux-cachyos-headers', 'cachyos-settings', 'cachyos-gaming-meta'])

		# Proton-GE is only packaged in the Chaotic AUR
		add_repository(ctx, CHAOTIC_AUR)
		ctx.pacman.install('proton-ge-custom-bin')
