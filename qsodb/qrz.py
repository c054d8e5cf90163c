"""Client for the QRZ.com XML callsign lookup service.

Only the two calls needed to fill in the callsign table are supported: login
(username/password in exchange for a session key) and a single-callsign
lookup. Responses are flat XML documents; a `Session/Error` element signals
failure for either call. The service's namespace is not stable, so every
element name is stripped of its namespace before lookup.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

import requests
import xmltodict

from .errors import AuthenticationError, QRZLookupError
from .models import CallsignInfo, normalize_call

BASE_URL = "https://xmldata.qrz.com/xml/current/"
URL_ENV_VAR = "QSODB_QRZ_URL"
USER_ENV_VAR = "QSODB_QRZ_USER"

logger = logging.getLogger(__name__)

# QRZ element name -> CallsignInfo field
FIELD_MAP_IN = {
    "call": "call",
    "fname": "first_name",
    "name": "name",
    "addr1": "address_line1",
    "addr2": "address_line2",
    "state": "state",
    "zip": "postal_code",
    "country": "country",
    "lat": "latitude",
    "lon": "longitude",
    "grid": "grid_square",
    "email": "email",
    "class": "license_class",
}

_NS_SEP = "|"


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


def _strip_namespace(path, key: str, value: Any):
    """xmltodict postprocessor dropping namespace URIs and prefixes from names."""
    prefix = "@" if key.startswith("@") else ""
    local = key.lstrip("@").rsplit(_NS_SEP, 1)[-1].rsplit(":", 1)[-1]
    return prefix + local, value


def parse_response(text: str | bytes) -> Dict[str, Any]:
    """Parse a QRZ XML body into nested dicts keyed by bare element names."""
    return xmltodict.parse(
        text,
        process_namespaces=True,
        namespace_separator=_NS_SEP,
        postprocessor=_strip_namespace,
    )


def _find(node: Any, name: str) -> Any:
    """Depth-first search for the first element called `name` (like `//name`)."""
    if isinstance(node, dict):
        if name in node:
            return node[name]
        for key, value in node.items():
            if key.startswith(("@", "#")):
                continue
            found = _find(value, name)
            if found is not None:
                return found
    elif isinstance(node, list):
        for item in node:
            found = _find(item, name)
            if found is not None:
                return found
    return None


def _text(value: Any) -> Optional[str]:
    """Return the stripped text of a leaf element, or None when empty."""
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("#text")
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def session_error(doc: Dict[str, Any]) -> Optional[str]:
    """Return the text of `Session/Error`, if the response carries one."""
    session = _find(doc, "Session")
    if not isinstance(session, dict):
        return None
    return _text(session.get("Error"))


def parse_callsign(doc: Dict[str, Any]) -> CallsignInfo:
    """Build a CallsignInfo from a parsed lookup response.

    Raises QRZLookupError when there is no `Callsign` block or no `call` in it.
    Every other leaf is optional and maps to None when absent or empty.
    """
    block = _find(doc, "Callsign")
    if isinstance(block, list):
        block = block[0] if block else None
    if not isinstance(block, dict):
        raise QRZLookupError("QRZ response contains no callsign data")
    data = {field: _text(block.get(tag)) for tag, field in FIELD_MAP_IN.items()}
    if not data["call"]:
        raise QRZLookupError("QRZ response contains no call")
    return CallsignInfo(**data)


class QRZClient:
    """Session-holding QRZ XML client.

    The password lives only on this object for the life of the process. A
    failed lookup keeps the current session; a fresh login must be requested
    explicitly with `login()`.
    """

    def __init__(
        self,
        username: str,
        password: str,
        *,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.username = username.strip().upper()
        self._password = password
        self.base_url = base_url or os.getenv(URL_ENV_VAR) or BASE_URL
        self.timeout = timeout
        self._http = session
        self.session_key: Optional[str] = None
        self.state = SessionState.UNAUTHENTICATED

    def __repr__(self) -> str:
        return f"QRZClient(username={self.username!r}, state={self.state.value})"

    @property
    def http(self) -> requests.Session:
        if self._http is None:
            self._http = requests.Session()
        return self._http

    def _get(self, params: Dict[str, str]) -> Dict[str, Any]:
        resp = self.http.get(self.base_url, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return parse_response(resp.content)

    def login(self) -> str:
        """Exchange username/password for a session key.

        Raises AuthenticationError with the remote message if QRZ refuses.
        """
        self.state = SessionState.AUTHENTICATING
        self.session_key = None
        logger.debug("Logging in to QRZ as %s", self.username)
        try:
            doc = self._get({"username": self.username, "password": self._password})
        except Exception:
            self.state = SessionState.FAILED
            raise

        error = session_error(doc)
        key = _text(_find(_find(doc, "Session"), "Key"))
        if error or not key:
            self.state = SessionState.FAILED
            raise AuthenticationError(f"QRZ login error: {error or 'no session key returned'}")

        self.session_key = key
        self.state = SessionState.AUTHENTICATED
        logger.info("Logged in to QRZ as %s", self.username)
        return key

    def fetch_callsign(self, call: str) -> CallsignInfo:
        """Look up one callsign, logging in first if there is no session yet.

        Raises QRZLookupError with the remote message when the query is
        rejected; the session state is left as it was.
        """
        call = normalize_call(call)
        if not call:
            raise ValueError("callsign must not be empty")
        if self.state is not SessionState.AUTHENTICATED:
            self.login()

        logger.debug("Looking up %s on QRZ", call)
        doc = self._get({"s": self.session_key, "callsign": call})
        error = session_error(doc)
        if error:
            raise QRZLookupError(f"QRZ lookup error for {call}: {error}")
        info = parse_callsign(doc)
        logger.info("Fetched QRZ data for %s", info.call)
        return info
