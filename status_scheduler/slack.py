"""Slack Web API client for the user's status and do-not-disturb state."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

import requests

from .errors import RemoteError
from .reconcile import RemoteStatus

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://slack.com/api"
DEFAULT_TIMEOUT = 10.0


class SlackClient:
    """Thin wrapper over the handful of Slack methods the scheduler uses.

    Every call raises `RemoteError` on transport failures, HTTP errors,
    unreadable bodies and API-level errors (`error` field or `ok: false`).
    """

    def __init__(
        self,
        token: str,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json; charset=utf-8",
        })

    def _call(self, method: str, body: Optional[Dict[str, Any]] = None,
              params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET `method`, or POST it when a body or params are given."""
        url = f"{self.api_base}/{method}"
        http_method = "POST" if body is not None or params is not None else "GET"
        try:
            resp = self.session.request(http_method, url, json=body, params=params, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise RemoteError(f"request failed: {exc}", method) from exc
        except ValueError as exc:
            raise RemoteError(f"response is not JSON: {exc}", method) from exc
        if not isinstance(data, dict):
            raise RemoteError("unexpected response shape", method)
        if data.get("error"):
            raise RemoteError(str(data["error"]), method)
        if data.get("ok") is False:
            raise RemoteError("request was not ok", method)
        return data

    def fetch_current(self) -> RemoteStatus:
        """Load the profile status and DnD state (two independent reads)."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            profile_future = pool.submit(self._call, "users.profile.get")
            dnd_future = pool.submit(self._call, "dnd.info")
            profile = profile_future.result().get("profile") or {}
            dnd = dnd_future.result()
        return RemoteStatus(
            message=profile.get("status_text") or "",
            icon=profile.get("status_emoji") or "",
            do_not_disturb=bool(dnd.get("snooze_enabled")),
        )

    def publish(self, icon: str, message: str, expiration: int) -> None:
        """Set the profile status; `expiration` is a Unix timestamp or 0."""
        self._call("users.profile.set", {
            "profile": {
                "status_emoji": icon,
                "status_text": message,
                "status_expiration": expiration,
            }
        })

    def set_do_not_disturb(self, minutes: int) -> None:
        self._call("dnd.setSnooze", params={"num_minutes": int(minutes)})
        logger.info("Slack DnD was set successfully")

    def clear_do_not_disturb(self) -> None:
        self._call("dnd.endSnooze", {})
        logger.info("Slack DnD was disabled successfully")
