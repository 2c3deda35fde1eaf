from archsetup.lib.args import ArchSetupConfigHandler
from archsetup.lib.models.device import SubvolumeLayout

from .guided import perform_installation


def run(handler: ArchSetupConfigHandler) -> int:
	"""
	The guided installation with the reduced subvolume set (@, @home,
	@snapshots) that only asks for the user, the disk and the hardware.
	"""
	return perform_installation(handler, SubvolumeLayout.Turbo, all_questions=False)
