import ssl
from urllib.error import URLError
from urllib.parse import urlencode
from urllib.request import urlopen

from .exceptions import DownloadError
from .output import debug


def fetch_data_from_url(url: str, params: list[tuple[str, str]] | dict[str, str] | None = None, timeout: int = 30) -> str:
	ssl_context = ssl.create_default_context()

	if params:
		full_url = f'{url}?{urlencode(params)}'
	else:
		full_url = url

	debug(f'Fetching {full_url}')

	try:
		with urlopen(full_url, context=ssl_context, timeout=timeout) as response:
			return response.read().decode('UTF-8')
	except (URLError, TimeoutError) as e:
		raise DownloadError(f'Unable to fetch data from url: {url}\n{e}')
	except UnicodeDecodeError as e:
		raise DownloadError(f'Unexpected error when parsing response: {e}')
