from .base import PackageFeature


class Fonts(PackageFeature):
	name = 'fonts'
	prompt = 'Do you want to install the Noto and Nerd fonts?'
	packages = ['noto-fonts', 'noto-fonts-cjk', 'noto-fonts-emoji', 'ttf-jetbrains-mono-nerd', 'ttf-firacode-nerd']


class RemovableMedia(PackageFeature):
	name = 'removable_media'
	prompt = 'Do you want automounting and filesystem support for removable media?'
	packages = ['udisks2', 'udiskie', 'ntfs-3g', 'exfatprogs', 'dosfstools']


class Vlc(PackageFeature):
	name = 'vlc'
	prompt = 'Do you want to install VLC media player?'
	packages = ['vlc']


class KdeConnect(PackageFeature):
	name = 'kdeconnect'
	prompt = 'Do you want to install KDE Connect?'
	packages = ['kdeconnect']
