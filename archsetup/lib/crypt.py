import ctypes
import ctypes.util
from functools import cache
from pathlib import Path

from .exceptions import RequirementError
from .output import debug

LOGIN_DEFS = Path('/etc/login.defs')


@cache
def _libcrypt() -> ctypes.CDLL:
	name = ctypes.util.find_library('crypt')
	if name is None:
		raise RequirementError('libcrypt could not be found, it is required to hash passwords')

	lib = ctypes.CDLL(name)

	lib.crypt.argtypes = [ctypes.c_char_p, ctypes.c_char_p]
	lib.crypt.restype = ctypes.c_char_p

	lib.crypt_gensalt.argtypes = [ctypes.c_char_p, ctypes.c_ulong, ctypes.c_char_p, ctypes.c_int]
	lib.crypt_gensalt.restype = ctypes.c_char_p

	return lib


def _search_login_defs(key: str) -> str | None:
	if not LOGIN_DEFS.exists():
		return None

	for line in LOGIN_DEFS.read_text().split('\n'):
		line = line.strip()

		if line.startswith('#'):
			continue

		if line.startswith(key):
			return line.split()[1]

	return None


def crypt_gen_salt(prefix: str | bytes, rounds: int) -> bytes:
	if isinstance(prefix, str):
		prefix = prefix.encode('utf-8')

	setting = _libcrypt().crypt_gensalt(prefix, rounds, None, 0)

	if setting is None:
		raise ValueError(f'crypt_gensalt() returned NULL for prefix {prefix!r} and rounds {rounds}')

	return setting


def crypt_yescrypt(plaintext: str) -> str:
	"""
	chpasswd in Arch hashes with yescrypt through PAM; the cost factor is read
	from YESCRYPT_COST_FACTOR in /etc/login.defs and defaults to 5.
	"""
	value = _search_login_defs('YESCRYPT_COST_FACTOR')
	if value is not None:
		rounds = min(max(int(value), 3), 11)
	else:
		rounds = 5

	debug(f'Creating yescrypt hash with rounds {rounds}')

	salt = crypt_gen_salt('$y$', rounds)
	crypt_hash = _libcrypt().crypt(plaintext.encode('utf-8'), salt)

	if crypt_hash is None:
		raise ValueError('crypt() returned NULL')

	return crypt_hash.decode('utf-8')
