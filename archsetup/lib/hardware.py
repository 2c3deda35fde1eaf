import os
import platform
from enum import Enum
from functools import cached_property
from pathlib import Path

from .output import debug


class CpuVendor(Enum):
	AuthenticAMD = 'amd'
	GenuineIntel = 'intel'
	_Unknown = 'unknown'

	@classmethod
	def get_vendor(cls, name: str) -> 'CpuVendor':
		if vendor := getattr(cls, name, None):
			return vendor
		else:
			debug(f"Unknown CPU vendor '{name}' detected.")
			return cls._Unknown

	def get_ucode_package(self) -> str | None:
		match self:
			case CpuVendor.AuthenticAMD | CpuVendor.GenuineIntel:
				return f'{self.value}-ucode'
			case _:
				return None


class GfxPackage(Enum):
	IntelMediaDriver = 'intel-media-driver'
	LibvaMesaDriver = 'libva-mesa-driver'
	Mesa = 'mesa'
	NvidiaDKMS = 'nvidia-dkms'
	NvidiaOpen = 'nvidia-open'
	NvidiaSettings = 'nvidia-settings'
	NvidiaUtils = 'nvidia-utils'
	VulkanIntel = 'vulkan-intel'
	VulkanRadeon = 'vulkan-radeon'
	Xf86VideoAmdgpu = 'xf86-video-amdgpu'
	Xf86VideoVesa = 'xf86-video-vesa'


class GfxDriver(Enum):
	Intel = 'intel'
	Amd = 'amd'
	NvidiaNew = 'nvidia'
	NvidiaLegacy = 'nvidia-legacy'
	Generic = 'generic'

	def display_msg(self) -> str:
		match self:
			case GfxDriver.Intel:
				return 'Intel (open-source)'
			case GfxDriver.Amd:
				return 'AMD / ATI (open-source)'
			case GfxDriver.NvidiaNew:
				return 'Nvidia (open kernel module, Turing and newer)'
			case GfxDriver.NvidiaLegacy:
				return 'Nvidia (proprietary DKMS, older cards)'
			case GfxDriver.Generic:
				return 'Generic (mesa / vesa)'

	@classmethod
	def from_choice(cls, choice: str | None) -> 'GfxDriver':
		"""
		Maps a menu entry or a config value to a driver,
		anything unknown falls back to the generic open driver
		"""
		for driver in cls:
			if choice in (driver.value, driver.display_msg()):
				return driver

		debug(f'Unknown graphics driver choice {choice!r}, using {cls.Generic.value}')
		return cls.Generic

	def is_nvidia(self) -> bool:
		return self in (GfxDriver.NvidiaNew, GfxDriver.NvidiaLegacy)

	def packages(self) -> list[GfxPackage]:
		match self:
			case GfxDriver.Intel:
				return [
					GfxPackage.Mesa,
					GfxPackage.IntelMediaDriver,
					GfxPackage.VulkanIntel,
				]
			case GfxDriver.Amd:
				return [
					GfxPackage.Mesa,
					GfxPackage.Xf86VideoAmdgpu,
					GfxPackage.LibvaMesaDriver,
					GfxPackage.VulkanRadeon,
				]
			case GfxDriver.NvidiaNew:
				return [
					GfxPackage.NvidiaOpen,
					GfxPackage.NvidiaUtils,
					GfxPackage.NvidiaSettings,
				]
			case GfxDriver.NvidiaLegacy:
				return [
					GfxPackage.NvidiaDKMS,
					GfxPackage.NvidiaUtils,
					GfxPackage.NvidiaSettings,
				]
			case GfxDriver.Generic:
				return [
					GfxPackage.Mesa,
					GfxPackage.Xf86VideoVesa,
				]

	def package_names(self) -> list[str]:
		return [pkg.value for pkg in self.packages()]


class _SysInfo:
	@cached_property
	def cpu_info(self) -> dict[str, str]:
		"""
		Returns system cpu information
		"""
		cpu_info_path = Path('/proc/cpuinfo')
		cpu: dict[str, str] = {}

		with cpu_info_path.open() as file:
			for line in file:
				if line := line.strip():
					key, value = line.split(':', maxsplit=1)
					cpu[key.strip()] = value.strip()

		return cpu


_sys_info = _SysInfo()


class SysInfo:
	@staticmethod
	def has_uefi() -> bool:
		return os.path.isdir('/sys/firmware/efi')

	@staticmethod
	def cpu_vendor() -> CpuVendor | None:
		if vendor := _sys_info.cpu_info.get('vendor_id'):
			return CpuVendor.get_vendor(vendor)
		return None

	@staticmethod
	def kernel_release() -> str:
		return platform.release()

	@staticmethod
	def machine() -> str:
		return platform.machine()
