from enum import Enum

from ..output import debug


class DesktopProfile(Enum):
	Minimal = 'minimal'
	Kde = 'kde'
	Gnome = 'gnome'
	Xfce = 'xfce'
	Hyprland = 'hyprland'

	def display_msg(self) -> str:
		match self:
			case DesktopProfile.Minimal:
				return 'Minimal (no desktop)'
			case DesktopProfile.Kde:
				return 'KDE Plasma'
			case DesktopProfile.Gnome:
				return 'GNOME'
			case DesktopProfile.Xfce:
				return 'Xfce'
			case DesktopProfile.Hyprland:
				return 'Hyprland'

	@classmethod
	def from_choice(cls, choice: str | None) -> 'DesktopProfile':
		for profile in cls:
			if choice in (profile.value, profile.display_msg()):
				return profile

		debug(f'Unknown desktop profile {choice!r}, using {cls.Minimal.value}')
		return cls.Minimal

	@property
	def packages(self) -> list[str]:
		match self:
			case DesktopProfile.Minimal:
				return []
			case DesktopProfile.Kde:
				return [
					'plasma-meta',
					'konsole',
					'dolphin',
					'sddm',
					'pipewire',
					'pipewire-pulse',
					'wireplumber',
				]
			case DesktopProfile.Gnome:
				return [
					'gnome',
					'gnome-tweaks',
					'gdm',
					'pipewire',
					'pipewire-pulse',
					'wireplumber',
				]
			case DesktopProfile.Xfce:
				return [
					'xfce4',
					'xfce4-goodies',
					'lightdm',
					'lightdm-gtk-greeter',
					'pipewire',
					'pipewire-pulse',
					'wireplumber',
				]
			case DesktopProfile.Hyprland:
				return [
					'hyprland',
					'kitty',
					'wofi',
					'xdg-desktop-portal-hyprland',
					'sddm',
					'pipewire',
					'pipewire-pulse',
					'wireplumber',
				]

	@property
	def display_manager(self) -> str | None:
		match self:
			case DesktopProfile.Kde | DesktopProfile.Hyprland:
				return 'sddm'
			case DesktopProfile.Gnome:
				return 'gdm'
			case DesktopProfile.Xfce:
				return 'lightdm'
			case DesktopProfile.Minimal:
				return None
