from .. import terminal
from ..exceptions import InputError
from ..models.users import Password, User, is_valid_username


def ask_username() -> str:
	username = terminal.read_line('Username: ').strip()

	if not username:
		raise InputError('The username can not be empty')

	if not is_valid_username(username):
		raise InputError(f'Invalid username: {username}')

	return username


def ask_password(label: str, confirm: bool = True, allow_empty: bool = False) -> Password | None:
	"""
	Returns None for an empty answer if allow_empty is set,
	which the caller treats as "no password" (e.g. a locked root account).
	"""
	plaintext = terminal.read_line(f'{label}: ', hidden=True)

	if not plaintext:
		if allow_empty:
			return None
		raise InputError(f'{label} can not be empty')

	if confirm:
		confirmation = terminal.read_line(f'{label} (repeat): ', hidden=True)

		if confirmation != plaintext:
			raise InputError('The passwords did not match')

	return Password(plaintext=plaintext)


def ask_user() -> User:
	username = ask_username()
	password = ask_password(f'Password for {username}')
	assert password is not None
	return User(username, password)
