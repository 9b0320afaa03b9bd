"""IPAM REST API client for SimpleIPAM."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from simpleipam.config import Config
from simpleipam.models import AddressRecord, Subnet
from simpleipam.session import SessionManager

logger = logging.getLogger(__name__)


class IPAMError(Exception):
    """IPAM API error.  ``status`` is None when no response was received."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class IPAMClient:
    """Client for the IPAM backend REST API.

    Every call asks the :class:`SessionManager` for authorization headers
    right before it goes out; if the session cannot supply a token the
    request is not sent and :class:`SessionExpiredError` propagates.

    Endpoints (relative to ``api.base_url``)::

        GET    /subnets
        POST   /subnets
        GET    /subnets/{id}
        DELETE /subnets/{id}
        GET    /subnets/{id}/ips
        POST   /subnets/{id}/ips
        PATCH  /subnets/{id}/ips/{record_id}
        DELETE /subnets/{id}/ips/{record_id}
    """

    def __init__(self, config: Config, session: Optional[SessionManager] = None):
        self.config = config
        self.base_url = config.api.base_url.rstrip("/")
        self.session = session or SessionManager()
        self._timeout = config.api.timeout
        self._verify_ssl = config.api.verify_ssl
        self._http = requests.Session()
        self._http.verify = self._verify_ssl

        if not self._verify_ssl:
            import urllib3
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        headers.update(self.session.authorization_headers())
        return headers

    def _request(self, method: str, endpoint: str, payload: dict | None = None) -> Any:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = self._headers()
        logger.debug("%s %s", method, url)
        try:
            resp = self._http.request(
                method, url, headers=headers, json=payload, timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise IPAMError(f"request failed ({method} {endpoint}): {e}")

        if not resp.ok:
            message = _error_message(resp)
            logger.warning("%s %s -> %s: %s", method, url, resp.status_code, message)
            raise IPAMError(message, status=resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            raise IPAMError(
                f"invalid JSON in response ({method} {endpoint})", status=resp.status_code,
            )

    def _get(self, endpoint: str) -> Any:
        return self._request("GET", endpoint)

    def _post(self, endpoint: str, payload: dict) -> Any:
        return self._request("POST", endpoint, payload)

    def _patch(self, endpoint: str, payload: dict) -> Any:
        return self._request("PATCH", endpoint, payload)

    def _delete(self, endpoint: str) -> None:
        self._request("DELETE", endpoint)

    # ------------------------------------------------------------------
    # Subnets
    # ------------------------------------------------------------------

    def list_subnets(self) -> list[Subnet]:
        data = self._get("/subnets")
        return [Subnet.from_dict(s) for s in (data if isinstance(data, list) else [])]

    def get_subnet(self, subnet_id: int) -> Subnet:
        data = self._get(f"/subnets/{subnet_id}")
        if not isinstance(data, dict):
            raise IPAMError(f"unexpected response for subnet {subnet_id}")
        return Subnet.from_dict(data)

    def create_subnet(self, cidr: str, description: str = "") -> Subnet:
        data = self._post("/subnets", {"cidr": cidr, "description": description})
        if not isinstance(data, dict):
            raise IPAMError("unexpected response when creating subnet")
        return Subnet.from_dict(data)

    def delete_subnet(self, subnet_id: int) -> None:
        """Delete a subnet and, on the backend, all its address records."""
        self._delete(f"/subnets/{subnet_id}")

    # ------------------------------------------------------------------
    # Address records
    # ------------------------------------------------------------------

    def list_addresses(self, subnet_id: int) -> list[AddressRecord]:
        data = self._get(f"/subnets/{subnet_id}/ips")
        return [AddressRecord.from_dict(a) for a in (data if isinstance(data, list) else [])]

    def create_address(self, subnet_id: int, ip: str, hostname: str) -> AddressRecord:
        data = self._post(f"/subnets/{subnet_id}/ips", {"ip": ip, "hostname": hostname})
        if not isinstance(data, dict):
            raise IPAMError(f"unexpected response when creating {ip}")
        return AddressRecord.from_dict(data)

    def update_address(self, subnet_id: int, record_id: str, hostname: str) -> AddressRecord:
        data = self._patch(f"/subnets/{subnet_id}/ips/{record_id}", {"hostname": hostname})
        if not isinstance(data, dict):
            raise IPAMError(f"unexpected response when updating record {record_id}")
        return AddressRecord.from_dict(data)

    def delete_address(self, subnet_id: int, record_id: str) -> None:
        self._delete(f"/subnets/{subnet_id}/ips/{record_id}")

    # ------------------------------------------------------------------
    # Health / readiness
    # ------------------------------------------------------------------

    @property
    def health_url(self) -> str:
        """``/healthz`` at the server root, outside the API prefix."""
        parts = urlsplit(self.base_url)
        return urlunsplit((parts.scheme, parts.netloc, "/healthz", "", ""))

    def check_health(self) -> bool:
        """Check if the backend is reachable and responding."""
        try:
            resp = self._http.get(self.health_url, timeout=self._timeout)
        except requests.RequestException as e:
            logger.warning("Health check failed: %s", e)
            return False
        return resp.ok


def _error_message(resp: requests.Response) -> str:
    """The body text is the error; JSON ``{"error": ...}`` is unwrapped."""
    text = (resp.text or "").strip()
    if not text:
        return f"request failed: {resp.status_code}"
    try:
        body = resp.json()
    except ValueError:
        return text
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return text
