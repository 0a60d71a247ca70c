from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the monitoring service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        headers = {"X-Owner-Id": config.owner_id} if config.owner_id else {}
        self._client = httpx.Client(
            base_url=config.base_url, timeout=config.timeout, headers=headers
        )

    def close(self) -> None:
        self._client.close()

    def get_summary(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("GET", "/summary", params=_clean(filters)).json()

    def get_readings(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("GET", "/readings", params=_clean(filters)).json()

    def export(self, fmt: str, filters: Dict[str, Any]) -> Tuple[str, str]:
        """Return ``(suggested_filename, body)`` for an export download."""
        params = _clean({**filters, "format": fmt})
        response = self._request("GET", "/export", params=params)
        disposition = response.headers.get("content-disposition", "")
        filename = f"agrilink_data.{fmt}"
        if "filename=" in disposition:
            filename = disposition.split("filename=", 1)[1].strip('"; ')
        return filename, response.text

    def get_alerts(self, view: str = "all") -> Dict[str, Any]:
        return self._request("GET", "/alerts", params={"view": view}).json()

    def mark_read(self, alert_id: str) -> Dict[str, Any]:
        response = self._request("PUT", f"/alerts/{alert_id}/read", missing=f"Alert {alert_id} was not found.")
        return response.json()

    def seed_alerts(self) -> List[Dict[str, Any]]:
        return self._request("POST", "/alerts/test").json()

    def import_file(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise typer.BadParameter(f"File {path} does not exist.")
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")

        with path.open("rb") as handle:
            response = self._request(
                "POST",
                "/readings/import",
                files={"file": (path.name, handle, "text/csv")},
            )
        return response.json()

    def get_thresholds(self) -> Dict[str, Any]:
        return self._request("GET", "/thresholds").json()

    def set_thresholds(self, thresholds: Dict[str, Dict[str, float]]) -> Dict[str, Any]:
        return self._request("PUT", "/thresholds", json={"thresholds": thresholds}).json()

    def _request(
        self,
        method: str,
        url: str,
        missing: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
            if missing is not None and response.status_code == 404:
                raise typer.BadParameter(missing)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _clean(params: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}
