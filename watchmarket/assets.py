"""Client of the repository of coin and token descriptions."""

from collections.abc import Mapping

import requests

from watchmarket.models import Info, NotFoundError


def asset_path(handle: str, token: str) -> str:
    """Directory of a coin (``<handle>/info``) or of one of its tokens."""
    if not token:
        return f"{handle}/info"
    return f"{handle}/assets/{token}"


class AssetsClient:
    """Fetch ``info.json`` descriptions of coins and tokens.

    ``coins`` maps coin numbers to the directory handles used by the repository.
    """

    def __init__(
        self,
        base_url: str,
        coins: Mapping[int, str],
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url
        self.coins = dict(coins)
        self._session = session or requests.Session()
        self._timeout = timeout

    def get_coin_info(self, coin_id: int, token: str = "") -> Info:
        handle = self.coins.get(coin_id)
        if handle is None:
            raise NotFoundError("coin not found")
        url = f"{self.base_url.rstrip('/')}/{asset_path(handle, token)}/info.json"
        response = self._session.get(url, timeout=self._timeout)
        response.raise_for_status()
        return Info.from_dict(response.json())