from __future__ import annotations

import re
from typing import Any, Dict, Optional, Tuple
from urllib.parse import unquote

import httpx
import typer

from cli.config import CLIConfig

_DISPOSITION_FILENAME = re.compile(r'filename="?([^";]+)"?')
_DISPOSITION_FILENAME_UTF8 = re.compile(r"filename\*=UTF-8''([^;\s]+)", re.IGNORECASE)


def filename_from_disposition(disposition: str) -> Optional[str]:
    match = _DISPOSITION_FILENAME_UTF8.search(disposition)
    if match:
        return unquote(match.group(1))
    match = _DISPOSITION_FILENAME.search(disposition)
    return match.group(1) if match else None


class ApiClient:
    """Minimal HTTP client for the BioDash service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        headers = {"X-Owner-Id": config.owner_id} if config.owner_id else {}
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout, headers=headers)

    def close(self) -> None:
        self._client.close()

    def get_dashboard(self) -> Dict[str, Any]:
        return self._get_json("/dashboard")

    def get_report(self) -> Dict[str, Any]:
        return self._get_json("/reports")

    def export_report(self, export_format: str, filename: str) -> Tuple[str, bytes]:
        try:
            response = self._client.get(
                f"/reports/export/{export_format}",
                params={"filename": filename},
            )
            if response.status_code == 404:
                raise typer.BadParameter(f"Export format {export_format!r} is not supported.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        saved_name = filename_from_disposition(response.headers.get("content-disposition", ""))
        saved_name = saved_name or f"{filename}.{export_format}"
        return saved_name, response.content

    def _get_json(self, path: str) -> Dict[str, Any]:
        try:
            response = self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        if isinstance(detail, dict):
            detail = f"{detail.get('title')}: {detail.get('description')}"
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
