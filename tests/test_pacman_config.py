from pathlib import Path

from archsetup.lib.pacman.config import PacmanConfig


def test_path_below_target(pacman_conf: Path) -> None:
	config = PacmanConfig(pacman_conf.parent.parent)

	assert config.path == pacman_conf


def test_enable_multilib(pacman_conf: Path) -> None:
	config = PacmanConfig(pacman_conf.parent.parent)

	assert config.has_repository('multilib') is False
	assert config.enable_repository('multilib') is True
	assert config.has_repository('multilib') is True

	content = pacman_conf.read_text()
	assert '[multilib]\nInclude = /etc/pacman.d/mirrorlist\n' in content
	# the testing repositories stay disabled
	assert '#[multilib-testing]' in content

	assert config.enable_repository('multilib') is False


def test_add_repository_once(pacman_conf: Path) -> None:
	config = PacmanConfig(pacman_conf.parent.parent)

	assert config.add_repository('chaotic-aur', '/etc/pacman.d/chaotic-mirrorlist') is True
	assert config.add_repository('chaotic-aur', '/etc/pacman.d/chaotic-mirrorlist') is False

	assert pacman_conf.read_text().count('[chaotic-aur]') == 1


def test_existing_repository_is_not_added(pacman_conf: Path) -> None:
	config = PacmanConfig(pacman_conf.parent.parent)

	assert config.add_repository('extra', '/etc/pacman.d/mirrorlist') is False


def test_parallel_downloads(pacman_conf: Path) -> None:
	config = PacmanConfig(pacman_conf.parent.parent)

	assert config.set_parallel_downloads(8) is True

	content = pacman_conf.read_text()
	assert '\nParallelDownloads = 8\n' in content
	assert '#ParallelDownloads' not in content
