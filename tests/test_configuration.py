import json
import stat
from pathlib import Path

from archsetup.lib.args import ArchSetupConfigHandler, InstallConfig
from archsetup.lib.configuration import ConfigurationOutput
from archsetup.lib.models.users import Password, User


def test_user_config_roundtrip(config_fixture: Path, tmp_path: Path) -> None:
	handler = ArchSetupConfigHandler(['--config', str(config_fixture)])
	output = ConfigurationOutput(handler.config, tmp_path / 'archsetup_config.json')

	saved = output.save()
	result = json.loads(saved.read_text())
	expected = json.loads(config_fixture.read_text())

	# version is filled in from the installed package
	result.pop('version')
	expected.pop('version')
	# nulls are dropped when the file is read
	expected.pop('root_enc_password')

	assert result == expected


def test_saved_config_is_private(tmp_path: Path) -> None:
	config = InstallConfig(user=User('alex', Password(enc_password='$y$hash')), disk_device=Path('/dev/sda'))
	output = ConfigurationOutput(config, tmp_path / 'config' / 'archsetup_config.json')

	saved = output.save()

	assert saved.exists()
	assert stat.S_IMODE(saved.stat().st_mode) == 0o600


def test_resave_keeps_permissions(tmp_path: Path) -> None:
	target = tmp_path / 'archsetup_config.json'
	target.write_text('{}')
	target.chmod(0o644)

	ConfigurationOutput(InstallConfig(), target).save()

	assert stat.S_IMODE(target.stat().st_mode) == 0o600


def test_default_path_follows_log_dir(log_dir: Path) -> None:
	output = ConfigurationOutput(InstallConfig())

	assert output.path == log_dir / 'archsetup_config.json'


def test_delete(tmp_path: Path) -> None:
	output = ConfigurationOutput(InstallConfig(), tmp_path / 'archsetup_config.json')
	output.save()

	output.delete()
	assert not output.path.exists()

	# nothing left to delete is fine as well
	output.delete()


def test_debug_output_hides_secrets() -> None:
	config = InstallConfig(
		user=User('alex', Password(enc_password='$y$secret')),
		root_password=Password(enc_password='$y$rootsecret'),
	)

	user_json = ConfigurationOutput(config).user_config_to_json()
	one_shot = ConfigurationOutput(config).one_shot_to_json()

	assert 'secret' not in user_json
	assert '$y$secret' in one_shot
	assert '$y$rootsecret' in one_shot
