from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the dashboard service."""

    def __init__(self, config: CLIConfig, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url, timeout=config.timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def get_snapshot(self) -> Dict[str, Any]:
        return self._request("GET", "/api/dashboard/data")

    def get_status(self) -> Dict[str, Any]:
        return self._request("GET", "/api/real-data/status")

    def load_real(self, data_type: str, path: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"data_type": data_type}
        if path:
            body["path"] = path
        return self._request("POST", "/api/real-data/load", json=body)

    def toggle(self) -> Dict[str, Any]:
        return self._request("POST", "/api/real-data/toggle")

    def ask(self, message: str, include_context: bool = True) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/api/ai/chat",
            json={"message": message, "include_context": include_context},
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        payload = response.json()
        if not isinstance(payload, dict) or not payload.get("success"):
            typer.secho(
                f"Request failed: {payload.get('error') if isinstance(payload, dict) else payload}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        data = payload.get("data")
        return data if isinstance(data, dict) else {"items": data}

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error") or data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
