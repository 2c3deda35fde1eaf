from functools import partial

from archsetup.lib.args import ArchSetupConfigHandler
from archsetup.lib.exceptions import InputError, PhaseError
from archsetup.lib.features import Feature, PostInstallContext, all_features, feature_names
from archsetup.lib.interactions import ask_yes_no
from archsetup.lib.output import error, info, log
from archsetup.lib.pacman import Pacman
from archsetup.lib.phases import Phase, PhaseRunner
from archsetup.lib.privilege import invoking_user, user_home


def select_features(ctx: PostInstallContext, resume_from: str | None = None) -> list[Feature]:
	"""
	Asks for every optional feature up front so the installation
	itself runs without interruptions. Features before the resume
	point are not offered again.
	"""
	if resume_from is not None and resume_from not in feature_names():
		raise InputError(f'Unknown feature "{resume_from}", valid features are: {", ".join(feature_names())}')

	selected: list[Feature] = []
	skipping = resume_from is not None

	for feature in all_features():
		if skipping and feature.name == resume_from:
			skipping = False

		if skipping:
			continue

		if feature.prompt is None or ctx.auto_yes or ask_yes_no(feature.prompt):
			feature.prepare(ctx)
			selected.append(feature)

	return selected


def run(handler: ArchSetupConfigHandler) -> int:
	args = handler.args

	username = invoking_user()
	ctx = PostInstallContext(
		username=username,
		home=user_home(username),
		pacman=Pacman(silent=args.silent),
		auto_yes=args.yes,
	)

	info(f'Configuring the system for {username}')

	features = select_features(ctx, args.resume_from)
	runner = PhaseRunner([Phase(feature.name, partial(feature.apply, ctx)) for feature in features])

	try:
		runner.run()
	except PhaseError as err:
		error(str(err))
		info(f'Fix the problem and continue with: archsetup --script post_install --resume-from {err.phase}')
		return 1

	log('All tasks completed successfully! Please reboot to apply all changes.', fg='green')
	return 0
