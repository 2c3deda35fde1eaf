import getpass
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import pytest
from pytest import MonkeyPatch

from archsetup.lib.features import (
	AurHelper,
	ChaoticAur,
	Gaming,
	GrubBtrfs,
	KernelHeaders,
	PostInstallContext,
	Reflector,
	Virtualization,
	Vlc,
	Zsh,
	all_features,
	feature_names,
	headers_package,
)
from archsetup.lib.features.zsh import OH_MY_ZSH_LINES, ZSHRC_LINES
from archsetup.lib.pacman import Pacman

from .conftest import CommandRecorder, ScriptedTerminal


@pytest.fixture
def ctx(tmp_path: Path, pacman_conf: Path, commands: CommandRecorder) -> PostInstallContext:
	home = tmp_path / 'home'
	home.mkdir()

	return PostInstallContext(
		username=getpass.getuser(),
		home=home,
		pacman=Pacman(),
		root=pacman_conf.parent.parent,
	)


@pytest.mark.parametrize(
	'release, expected',
	[
		('6.9.7-arch1-1', 'linux-headers'),
		('6.6.36-1-lts', 'linux-lts-headers'),
		('6.9.7-zen1-1-zen', 'linux-zen-headers'),
		('6.9.7-hardened1-1-hardened', 'linux-hardened-headers'),
		('6.10.0-1-cachyos', None),
	],
)
def test_headers_package(release: str, expected: str | None) -> None:
	assert headers_package(release) == expected


def test_feature_order() -> None:
	names = feature_names()

	assert names[0] == 'system_update'
	assert names.index('chaotic_aur') < names.index('aur_helper')
	assert len(set(names)) == len(names)
	# everything but the system update is optional
	assert [f.name for f in all_features() if f.prompt is None] == ['system_update']


def test_kernel_headers(ctx: PostInstallContext, commands: CommandRecorder, monkeypatch: MonkeyPatch) -> None:
	monkeypatch.setattr('archsetup.lib.features.system.SysInfo.kernel_release', staticmethod(lambda: '6.6.36-1-lts'))

	KernelHeaders().apply(ctx)

	assert commands.lines() == ['pacman -S --needed --noconfirm linux-lts-headers']


def test_kernel_headers_unknown_kernel(ctx: PostInstallContext, commands: CommandRecorder, monkeypatch: MonkeyPatch) -> None:
	monkeypatch.setattr('archsetup.lib.features.system.SysInfo.kernel_release', staticmethod(lambda: '6.10.0-1-custom'))

	KernelHeaders().apply(ctx)

	assert commands.calls == []


def test_package_feature(ctx: PostInstallContext, commands: CommandRecorder) -> None:
	Vlc().apply(ctx)

	assert commands.lines() == ['pacman -S --needed --noconfirm vlc']


def test_grub_btrfs(ctx: PostInstallContext, commands: CommandRecorder) -> None:
	GrubBtrfs().apply(ctx)

	override = ctx.root / 'etc/systemd/system/grub-btrfsd.service.d/override.conf'

	assert override.read_text() == (
		'[Service]\n'
		'ExecStart=\n'
		'ExecStart=/usr/bin/grub-btrfsd --syslog --timeshift-auto\n'
	)
	assert commands.lines() == [
		'pacman -S --needed --noconfirm grub-btrfs inotify-tools',
		'systemctl daemon-reload',
		'systemctl enable --now grub-btrfsd.service',
		'grub-mkconfig -o /boot/grub/grub.cfg',
	]


def test_reflector(ctx: PostInstallContext, commands: CommandRecorder) -> None:
	Reflector().apply(ctx)
	Reflector().apply(ctx)

	override = ctx.root / 'etc/systemd/system/reflector.service.d/override.conf'

	assert override.read_text().count('ExecStart=/usr/bin/reflector') == 1
	assert commands.find('enable --now reflector.timer')


def test_chaotic_aur(ctx: PostInstallContext, commands: CommandRecorder, pacman_conf: Path) -> None:
	ChaoticAur().apply(ctx)

	assert commands.lines()[:2] == [
		'pacman-key --recv-key 3056513887B78AEB --keyserver keyserver.ubuntu.com',
		'pacman-key --lsign-key 3056513887B78AEB',
	]
	assert commands.find('pacman -U --noconfirm https://cdn-mirror.chaotic.cx/chaotic-aur/chaotic-keyring.pkg.tar.zst')
	assert commands.lines()[-1] == 'pacman -Sy'
	assert '[chaotic-aur]\nInclude = /etc/pacman.d/chaotic-mirrorlist\n' in pacman_conf.read_text()


def test_configured_repository_is_skipped(ctx: PostInstallContext, commands: CommandRecorder, pacman_conf: Path) -> None:
	ChaoticAur().apply(ctx)
	commands.calls.clear()

	ChaoticAur().apply(ctx)

	assert commands.calls == []
	assert pacman_conf.read_text().count('[chaotic-aur]') == 1


def test_gaming(ctx: PostInstallContext, commands: CommandRecorder, pacman_conf: Path) -> None:
	Gaming().apply(ctx)

	content = pacman_conf.read_text()
	assert '[cachyos]' in content
	assert '[chaotic-aur]' in content

	lines = commands.lines()
	assert lines.index('pacman -S --needed --noconfirm linux-cachyos linux-cachyos-headers cachyos-settings cachyos-gaming-meta') < lines.index(
		'pacman -S --needed --noconfirm proton-ge-custom-bin'
	)


def test_virtualization_asks_variant(ctx: PostInstallContext, commands: CommandRecorder, tty: ScriptedTerminal) -> None:
	tty.answers = ['both', 'FULL']
	feature = Virtualization()

	feature.prepare(ctx)
	feature.apply(ctx)

	assert feature.qemu_package == 'qemu-full'
	assert len(tty.prompts) == 2
	assert commands.lines() == [
		'pacman -S --needed --noconfirm libvirt virt-manager qemu-full dnsmasq dmidecode',
		'systemctl enable --now libvirtd.service virtlogd.service',
		f'usermod -aG libvirt {ctx.username}',
		'virsh net-autostart default',
	]


def test_virtualization_auto_yes(ctx: PostInstallContext, commands: CommandRecorder, tty: ScriptedTerminal) -> None:
	ctx.auto_yes = True
	feature = Virtualization()

	feature.apply(ctx)

	assert feature.qemu_package == 'qemu-desktop'
	assert tty.prompts == []


def test_zsh(ctx: PostInstallContext, commands: CommandRecorder, monkeypatch: MonkeyPatch) -> None:
	monkeypatch.setattr('archsetup.lib.features.zsh.fetch_data_from_url', lambda url: '#!/bin/sh\necho oh-my-zsh\n')
	zshrc = ctx.home / '.zshrc'
	zshrc.write_text('export EDITOR=vim\n')

	Zsh().apply(ctx)
	Zsh().apply(ctx)

	content = zshrc.read_text().splitlines()

	assert content[0] == 'export EDITOR=vim'
	for line in ZSHRC_LINES:
		assert content.count(line) == 1
	assert content.index('export ZSH="$HOME/.oh-my-zsh"') < content.index('source $ZSH/oh-my-zsh.sh')

	installer_runs = commands.find('--unattended --keep-zshrc')
	assert installer_runs
	assert all(run.startswith(f'sudo -H -u {ctx.username} sh ') for run in installer_runs)
	assert commands.lines()[-1] == f'chsh -s /bin/zsh {ctx.username}'


def test_zsh_keeps_existing_oh_my_zsh(ctx: PostInstallContext, commands: CommandRecorder, monkeypatch: MonkeyPatch) -> None:
	def _no_download(url: str) -> str:
		raise AssertionError('oh-my-zsh must not be downloaded again')

	monkeypatch.setattr('archsetup.lib.features.zsh.fetch_data_from_url', _no_download)
	(ctx.home / '.oh-my-zsh').mkdir()

	Zsh().apply(ctx)

	assert commands.find('--unattended') == []


def test_zsh_template_lines_not_repeated(ctx: PostInstallContext, commands: CommandRecorder) -> None:
	(ctx.home / '.oh-my-zsh').mkdir()
	zshrc = ctx.home / '.zshrc'
	zshrc.write_text('export ZSH="$HOME/.oh-my-zsh"\nZSH_THEME="robbyrussell"\nsource $ZSH/oh-my-zsh.sh\n')

	Zsh().apply(ctx)

	content = zshrc.read_text().splitlines()

	assert content[:3] == ['export ZSH="$HOME/.oh-my-zsh"', 'ZSH_THEME="robbyrussell"', 'source $ZSH/oh-my-zsh.sh']
	for line in OH_MY_ZSH_LINES:
		assert content.count(line) == 1


def test_aur_helper(ctx: PostInstallContext, commands: CommandRecorder, monkeypatch: MonkeyPatch) -> None:
	grants: list[str] = []

	@contextmanager
	def _grant(username: str) -> Iterator[Path]:
		grants.append(username)
		yield Path('/etc/sudoers.d/99-archsetup-nopasswd')
		grants.append('revoked')

	monkeypatch.setattr('archsetup.lib.features.aur.has_binary', lambda name: False)
	monkeypatch.setattr('archsetup.lib.features.aur.temporary_sudo_grant', _grant)

	AurHelper().apply(ctx)

	lines = commands.lines()
	assert lines[0] == 'pacman -S --needed --noconfirm git base-devel'
	assert lines[1] == f'sudo -H -u {ctx.username} git clone https://aur.archlinux.org/yay-bin.git'
	assert lines[2] == f'sudo -H -u {ctx.username} makepkg -si --noconfirm'
	assert commands.kwargs[2]['working_directory'].name == 'yay-bin'
	assert grants == [ctx.username, 'revoked']


def test_aur_helper_already_installed(ctx: PostInstallContext, commands: CommandRecorder, monkeypatch: MonkeyPatch) -> None:
	monkeypatch.setattr('archsetup.lib.features.aur.has_binary', lambda name: name == 'yay')

	AurHelper().apply(ctx)

	assert commands.calls == []
