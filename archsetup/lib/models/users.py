import re
from dataclasses import dataclass, field
from typing import NotRequired, TypedDict, override

from ..crypt import crypt_yescrypt

_USERNAME_RE = re.compile(r'^[a-z_][a-z0-9_-]{0,30}[$]?$')

ADMIN_GROUP = 'wheel'


def is_valid_username(username: str) -> bool:
	return _USERNAME_RE.match(username) is not None


class Password:
	def __init__(
		self,
		plaintext: str = '',
		enc_password: str | None = None,
	):
		if not plaintext and not enc_password:
			raise ValueError('Either plaintext or enc_password must be provided')

		self._plaintext = plaintext
		self._enc_password = enc_password

	@property
	def plaintext(self) -> str:
		return self._plaintext

	@property
	def enc_password(self) -> str:
		# hashing is deferred until the hash is needed for the first time
		if self._enc_password is None:
			self._enc_password = crypt_yescrypt(self._plaintext)
		return self._enc_password

	@override
	def __eq__(self, other: object) -> bool:
		if not isinstance(other, Password):
			return NotImplemented

		if self._plaintext and other._plaintext:
			return self._plaintext == other._plaintext

		return self.enc_password == other.enc_password

	@override
	def __repr__(self) -> str:
		return f'Password({self.hidden()})'

	def hidden(self) -> str:
		if self._plaintext:
			return '*' * len(self._plaintext)
		return '*' * 8


class UserSerialization(TypedDict):
	username: str
	enc_password: str
	groups: list[str]
	shell: NotRequired[str]


@dataclass
class User:
	username: str
	password: Password
	groups: list[str] = field(default_factory=lambda: [ADMIN_GROUP])

	@override
	def __str__(self) -> str:
		# safety overwrite to make sure password is not leaked
		return f'User({self.username=}, {self.groups=})'

	@property
	def is_admin(self) -> bool:
		return ADMIN_GROUP in self.groups

	def table_data(self) -> dict[str, str]:
		return {
			'username': self.username,
			'password': self.password.hidden(),
			'groups': ','.join(self.groups),
		}

	def json(self) -> UserSerialization:
		return {
			'username': self.username,
			'enc_password': self.password.enc_password,
			'groups': self.groups,
		}

	@classmethod
	def parse_arg(cls, arg: UserSerialization) -> 'User':
		return User(
			username=arg['username'],
			password=Password(enc_password=arg['enc_password']),
			groups=arg.get('groups', [ADMIN_GROUP]),
		)
