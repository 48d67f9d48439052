from __future__ import annotations

import json
from typing import Any, Dict, Optional

import click
import requests
from requests import Response

from .config import ClientSettings


class APIClient:
    """Thin wrapper over requests to talk to the stock price API."""

    def __init__(self, settings: ClientSettings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    @property
    def headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    def request(self, method: str, path: str, params: Optional[Any] = None) -> Any:
        url = f"{self.settings.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=self.headers, params=params, timeout=self.settings.timeout
            )
        except requests.RequestException as exc:
            raise click.ClickException(f"{method} {url} failed: {exc}") from exc
        return self._handle_response(response)

    def get(self, path: str, params: Optional[Any] = None) -> Any:
        return self.request("GET", path, params=params)

    def delete(self, path: str, params: Optional[Any] = None) -> Any:
        return self.request("DELETE", path, params=params)

    def _handle_response(self, response: Response) -> Any:
        if not response.ok:
            self._raise_for_status(response)
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise click.ClickException("Response was not valid JSON") from exc

    def _raise_for_status(self, response: Response) -> None:
        try:
            payload = response.json()
            message = payload.get("detail") or payload
        except ValueError:
            message = response.text
        raise click.ClickException(
            f"Request failed with status {response.status_code}: {message}"
        )
