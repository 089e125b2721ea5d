from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetResponse:
    status_code: int
    payload: Any = None
    malformed: bool = False

    @property
    def ok(self) -> bool:
        return self.status_code == 200 and not self.malformed


class AssetClient:
    """Reads asset identities and details from the car service.

    Transport failures (``httpx.HTTPError``) are not translated here.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, client: httpx.Client | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)

    def get_asset_ids(self) -> AssetResponse:
        return self._get("/cars")

    def get_asset(self, vin: str) -> AssetResponse:
        return self._get(f"/cars/{vin}")

    def close(self) -> None:
        self._client.close()

    def _get(self, path: str) -> AssetResponse:
        response = self._client.get(path)
        if response.status_code != 200:
            logger.info("Car service answered %s for %s", response.status_code, path)
            return AssetResponse(response.status_code)
        try:
            payload = response.json()
        except ValueError:
            logger.warning("Car service sent a body that is not JSON for %s", path)
            return AssetResponse(response.status_code, malformed=True)
        return AssetResponse(response.status_code, payload)
