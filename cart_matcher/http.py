from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests


@dataclass(frozen=True)
class HttpClient:
    base_url: str
    token: str
    timeout_s: float = 30.0

    def _url(self, path: str) -> str:
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/json",
        }

    def get(self, path: str, *, params: dict | None = None) -> requests.Response:
        return requests.get(
            self._url(path),
            params=params,
            headers=self._headers(),
            timeout=self.timeout_s,
        )

    def post(self, path: str, *, json: Any = None) -> requests.Response:
        return requests.post(
            self._url(path),
            json=json,
            headers=self._headers(),
            timeout=self.timeout_s,
        )
