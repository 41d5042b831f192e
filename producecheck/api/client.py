from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict

import requests


@dataclass
class ProduceCheckClient:
    """Thin HTTP client for the ProduceCheck API."""

    base_url: str
    timeout: float = 20.0
    session: requests.Session = field(default_factory=requests.Session)

    def classify(
        self, image_bytes: bytes, location: Dict[str, Any] | None = None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"image_base64": _encode(image_bytes)}
        if location is not None:
            payload["location"] = location
        return self._request("POST", "/v1/classify", json=payload)

    def check_quality(self, image_bytes: bytes) -> Dict[str, Any]:
        return self._request(
            "POST", "/v1/quality-check", json={"image_base64": _encode(image_bytes)}
        )

    def set_confidence_threshold(self, threshold: float) -> float:
        data = self._request(
            "PUT", "/v1/confidence-threshold", json={"threshold": threshold}
        )
        return float(data["confidence_threshold"])

    def history(self) -> list[Dict[str, Any]]:
        return list(self._request("GET", "/v1/history").get("entries", []))

    def remove(self, entry_id: str) -> None:
        self._request("DELETE", f"/v1/history/{entry_id}")

    def clear(self) -> None:
        self._request("DELETE", "/v1/history")

    def toggle_favorite(self, entry_id: str) -> bool:
        data = self._request("POST", f"/v1/history/{entry_id}/favorite")
        return bool(data["is_favorite"])

    def update_settings(self, **changes: Any) -> Dict[str, Any]:
        return self._request("PATCH", "/v1/settings", json=changes)

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.base_url.rstrip('/')}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.Timeout as exc:  # pragma: no cover - network conditions
            raise RuntimeError(f"Timed out waiting for {method} {path}") from exc
        except requests.RequestException as exc:
            raise RuntimeError(f"Failed to call ProduceCheck API: {exc}") from exc


def _encode(image_bytes: bytes) -> str:
    return base64.b64encode(image_bytes).decode("ascii")


__all__ = ["ProduceCheckClient"]
