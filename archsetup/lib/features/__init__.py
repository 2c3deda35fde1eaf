from .aur import AurHelper
from .base import Feature, PackageFeature, PostInstallContext
from .packages import Fonts, KdeConnect, RemovableMedia, Vlc
from .repositories import ChaoticAur, Gaming
from .services import GrubBtrfs, Reflector
from .system import KernelHeaders, SystemUpdate, headers_package
from .virtualization import Virtualization
from .zsh import Zsh


def all_features() -> list[Feature]:
	"""
	Features in the order they are applied, the system update comes first
	and the AUR helper needs the repositories above it.
	"""
	return [
		SystemUpdate(),
		GrubBtrfs(),
		Reflector(),
		ChaoticAur(),
		AurHelper(),
		Zsh(),
		Virtualization(),
		KernelHeaders(),
		Gaming(),
		Fonts(),
		RemovableMedia(),
		Vlc(),
		KdeConnect(),
	]


def feature_names() -> list[str]:
	return [feature.name for feature in all_features()]


__all__ = [
	'AurHelper',
	'ChaoticAur',
	'Feature',
	'Fonts',
	'Gaming',
	'GrubBtrfs',
	'KdeConnect',
	'KernelHeaders',
	'PackageFeature',
	'PostInstallContext',
	'Reflector',
	'RemovableMedia',
	'SystemUpdate',
	'Virtualization',
	'Vlc',
	'Zsh',
	'all_features',
	'feature_names',
	'headers_package',
]
