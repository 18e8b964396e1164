#!/usr/bin/env -S uv run --script
# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "requests>=2.32.0",
#     "tabulate>=0.9.0",
#     "pyyaml>=6.0.1",
# ]
# ///
"""QuickBooks Online CLI.

Queries, CRUD and report operations for core QuickBooks Online accounting
entities using the v3 REST API. Expired access tokens are refreshed once,
transparently, when the API answers 401.

Usage examples:
    ./scripts/qb_cli.py config set --client-id <id> --client-secret <secret> --realm-id <realm>
    ./scripts/qb_cli.py customers list --search Acme
    ./scripts/qb_cli.py --format json invoices get 123
    ./scripts/qb_cli.py reports profit-loss --start-date 2024-01-01 --end-date 2024-12-31
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import os
import re
import signal
import sys
import tempfile
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

import requests
from tabulate import tabulate

# Prevent BrokenPipeError when piping output
if hasattr(signal, "SIGPIPE"):
    signal.signal(signal.SIGPIPE, signal.SIG_DFL)

logger = logging.getLogger("qb_cli")

PROD_BASE_URL = "https://quickbooks.api.intuit.com/v3/company"
SANDBOX_BASE_URL = "https://sandbox-quickbooks.api.intuit.com/v3/company"
TOKEN_ENDPOINT = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
MINOR_VERSION = 70
DEFAULT_ENV_FILE = Path.home() / ".config" / "quickbooks-cli" / "credentials.env"
DEFAULT_TIMEOUT = 30.0
QUERY_PAGE_MAX = 1000
MAX_CELL_WIDTH = 40

# Store/environment key for each Credentials field
CREDENTIAL_KEYS = {
    "client_id": "QB_CLIENT_ID",
    "client_secret": "QB_CLIENT_SECRET",
    "realm_id": "QB_REALM_ID",
    "access_token": "QB_ACCESS_TOKEN",
    "refresh_token": "QB_REFRESH_TOKEN",
    "token_expiry": "QB_TOKEN_EXPIRY",
    "sandbox": "QB_SANDBOX",
}
FILE_ONLY_FIELDS = {"token_expiry"}

T = TypeVar("T")


# Errors


class QuickBooksError(Exception):
    """Base class for every failure the CLI reports to the user."""


class ConfigurationError(QuickBooksError):
    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__("Missing required configuration: " + ", ".join(missing))


class UnauthenticatedError(QuickBooksError):
    pass


class AuthenticationError(QuickBooksError):
    pass


class RefreshFailedError(QuickBooksError):
    pass


class ApiError(QuickBooksError):
    def __init__(self, message: str, *, status_code: int, errors: List["FaultEntry"]):
        self.message = message
        self.status_code = status_code
        self.errors = errors
        super().__init__(message)


class TransportError(QuickBooksError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, retryable: bool = False):
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


# Data model


@dataclass
class Credentials:
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    realm_id: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expiry: Optional[float] = None  # epoch seconds, advisory only
    sandbox: bool = False

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.token_expiry is None:
            return False
        return (time.time() if now is None else now) >= self.token_expiry

    @property
    def base_url(self) -> str:
        root = SANDBOX_BASE_URL if self.sandbox else PROD_BASE_URL
        return f"{root}/{self.realm_id}"


@dataclass
class FaultEntry:
    message: str
    detail: Optional[str] = None
    code: Optional[str] = None


@dataclass
class TokenResponse:
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TokenResponse":
        return cls(
            access_token=payload["access_token"],
            expires_in=int(payload.get("expires_in", 0)),
            refresh_token=payload.get("refresh_token") or None,
        )


@dataclass
class AppConfig:
    env_file: Path = DEFAULT_ENV_FILE
    output_format: str = "plain"
    debug: bool = False
    request_timeout: float = DEFAULT_TIMEOUT


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def load_env_file(path: Path) -> Dict[str, str]:
    env: Dict[str, str] = {}
    if not path.exists():
        return env
    for line in path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        env[key.strip()] = value.strip()
    return env


# Credential store


class CredentialStore:
    """Auth state persisted in a KEY=VALUE file, overlaid by the environment.

    Environment variables use the same key names as the file and win over
    stored values for every field except the token expiry, which only the
    file carries. Nothing read from the environment is ever written back.
    """

    def __init__(self, path: Path, environ: Optional[Mapping[str, str]] = None):
        self.path = Path(path)
        self.environ = os.environ if environ is None else environ

    def _stored(self) -> Dict[str, str]:
        return load_env_file(self.path)

    def read(self) -> Credentials:
        stored = self._stored()

        def pick(name: str) -> Optional[str]:
            key = CREDENTIAL_KEYS[name]
            if name not in FILE_ONLY_FIELDS:
                env_value = self.environ.get(key)
                if env_value:
                    return env_value
            return stored.get(key) or None

        expiry_raw = pick("token_expiry")
        try:
            token_expiry = float(expiry_raw) if expiry_raw else None
        except ValueError:
            logger.warning("Ignoring unparseable %s=%r in %s", CREDENTIAL_KEYS["token_expiry"], expiry_raw, self.path)
            token_expiry = None
        sandbox_raw = pick("sandbox")
        return Credentials(
            client_id=pick("client_id"),
            client_secret=pick("client_secret"),
            realm_id=pick("realm_id"),
            access_token=pick("access_token"),
            refresh_token=pick("refresh_token"),
            token_expiry=token_expiry,
            sandbox=_parse_bool(sandbox_raw) if sandbox_raw else False,
        )

    def write(self, **fields: Any) -> None:
        unknown = set(fields) - set(CREDENTIAL_KEYS)
        if unknown:
            raise ValueError(f"Unknown credential fields: {', '.join(sorted(unknown))}")
        updates = {
            CREDENTIAL_KEYS[name]: (str(value).lower() if isinstance(value, bool) else str(value))
            for name, value in fields.items()
            if value is not None and value != ""
        }
        if not updates:
            return
        data = self._stored()
        data.update(updates)
        self._replace_file(data)
        logger.debug("Saved %s to %s", ", ".join(sorted(updates)), self.path)

    def _replace_file(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lines = [f"{k}={v}" for k, v in sorted(data.items())]
        fd, tmp_name = tempfile.mkstemp(prefix=".credentials-", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w") as fh:
                fh.write("\n".join(lines) + "\n")
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def require_configured(self) -> Credentials:
        credentials = self.read()
        missing = [
            f"{name} (--{flag} or {CREDENTIAL_KEYS[attr]})"
            for name, flag, attr in (
                ("clientId", "client-id", "client_id"),
                ("clientSecret", "client-secret", "client_secret"),
                ("realmId", "realm-id", "realm_id"),
            )
            if not getattr(credentials, attr)
        ]
        if missing:
            raise ConfigurationError(missing)
        return credentials

    def require_authenticated(self) -> Credentials:
        credentials = self.require_configured()
        if not credentials.access_token:
            raise UnauthenticatedError(
                f"No access token found. Set {CREDENTIAL_KEYS['access_token']} or run: quickbooks auth login"
            )
        return credentials

    def describe(self) -> Dict[str, Any]:
        credentials = self.read()

        def mask(value: Optional[str], keep: int) -> str:
            return value[:keep] + "..." if value else "(not set)"

        return {
            "clientId": mask(credentials.client_id, 8),
            "clientSecret": "***" if credentials.client_secret else "(not set)",
            "realmId": credentials.realm_id or "(not set)",
            "accessToken": mask(credentials.access_token, 16),
            "refreshToken": mask(credentials.refresh_token, 16),
            "sandbox": credentials.sandbox,
        }


# Request engine


class RefreshGuard:
    """Single-flight wrapper: one refresh runs at a time, late callers share it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None
        self._waiters = 0

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._inflight is not None

    @property
    def waiters(self) -> int:
        with self._lock:
            return self._waiters

    def run(self, fn: Callable[[], T]) -> T:
        with self._lock:
            future = self._inflight
            leader = future is None
            if leader:
                future = self._inflight = Future()
            else:
                self._waiters += 1
        if not leader:
            try:
                return future.result()
            finally:
                with self._lock:
                    self._waiters -= 1
        try:
            result = fn()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._inflight = None


def parse_fault(resp: requests.Response) -> Optional[List[FaultEntry]]:
    """Extract fault entries from an error body, or None when it has none."""
    try:
        payload = resp.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    fault = payload.get("Fault") or payload.get("fault")
    if not isinstance(fault, dict):
        return None
    raw_errors = fault.get("Error") or fault.get("error") or []
    if isinstance(raw_errors, dict):
        raw_errors = [raw_errors]
    entries = []
    for raw in raw_errors:
        if not isinstance(raw, dict):
            continue
        detail = raw.get("Detail") or raw.get("detail")
        message = raw.get("Message") or raw.get("message") or detail or ""
        code = raw.get("code") or raw.get("Code")
        entries.append(FaultEntry(message=message, detail=detail, code=code))
    return entries


def _entity_from_sql(sql: str) -> Optional[str]:
    match = re.search(r"\bFROM\s+(\w+)", sql, flags=re.IGNORECASE)
    return match.group(1) if match else None


class QuickBooksClient:
    """Authenticated access to the QuickBooks Online accounting API.

    Every operation reads the current credentials from the store, sends the
    request and, on a 401 with a refresh token available, refreshes the
    access token once and resends. A second 401 is final.
    """

    def __init__(
        self,
        store: CredentialStore,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.store = store
        self.timeout = timeout
        self.session = session or requests.Session()
        self.refresh_guard = RefreshGuard()

    # Public operations

    def run_query(self, sql: str, entity: Optional[str] = None) -> List[Dict[str, Any]]:
        """Run a query statement and return the matching entities.

        The statement is sent verbatim. Literals interpolated into it must
        already be quoted by the caller (see ``sql_literal``).
        """
        payload = self._request("GET", "/query", params={"query": sql})
        query_response = payload.get("QueryResponse") or {}
        key = entity or _entity_from_sql(sql)
        if key:
            # Entity names are case-insensitive in queries but not in the response
            match = next((k for k in query_response if k.lower() == key.lower()), None)
            return list(query_response.get(match) or []) if match else []
        for value in query_response.values():
            if isinstance(value, list):
                return value
        return []

    def fetch_entity(self, kind: str, entity_id: str) -> Dict[str, Any]:
        payload = self._request("GET", f"/{kind.lower()}/{entity_id}")
        return payload.get(kind) or {}

    def create_entity(self, kind: str, data: Dict[str, Any]) -> Dict[str, Any]:
        payload = self._request("POST", f"/{kind.lower()}", json_body=data)
        return payload.get(kind) or {}

    def update_entity(self, kind: str, data: Dict[str, Any]) -> Dict[str, Any]:
        payload = self._request("POST", f"/{kind.lower()}", params={"operation": "update"}, json_body=data)
        return payload.get(kind) or {}

    def delete_entity(self, kind: str, data: Dict[str, Any]) -> Dict[str, Any]:
        payload = self._request("POST", f"/{kind.lower()}", params={"operation": "delete"}, json_body=data)
        return payload.get(kind) or {}

    def fetch_report(self, name: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._request("GET", f"/reports/{name}", params=dict(params or {}))

    def refresh_tokens(self) -> Credentials:
        """Exchange the stored refresh token for a new access token.

        The new access token, the refresh token (rotated or retained) and
        the expiry are saved in a single store write.
        """
        credentials = self.store.require_configured()
        if not credentials.refresh_token:
            raise RefreshFailedError("No refresh token available. Please re-authenticate.")

        auth_basic = base64.b64encode(f"{credentials.client_id}:{credentials.client_secret}".encode()).decode()
        headers = {
            "Authorization": f"Basic {auth_basic}",
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        payload = {"grant_type": "refresh_token", "refresh_token": credentials.refresh_token}
        logger.info("Refreshing access token")
        try:
            resp = self.session.post(TOKEN_ENDPOINT, data=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Token refresh request failed: %s", exc)
            raise RefreshFailedError(f"Token refresh request failed: {exc}") from exc

        if not resp.ok:
            detail = f"status {resp.status_code}"
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("error"):
                detail += f": {body['error']}"
                if body.get("error_description"):
                    detail += f" ({body['error_description']})"
            logger.warning("Token endpoint rejected refresh: %s", detail)
            raise RefreshFailedError(f"Token refresh failed, {detail}")

        try:
            token = TokenResponse.from_payload(resp.json())
        except (ValueError, KeyError, TypeError) as exc:
            raise RefreshFailedError(f"Malformed token response: {exc}") from exc

        refreshed = replace(
            credentials,
            access_token=token.access_token,
            refresh_token=token.refresh_token or credentials.refresh_token,
            token_expiry=time.time() + token.expires_in,
        )
        try:
            self.store.write(
                access_token=refreshed.access_token,
                refresh_token=refreshed.refresh_token,
                token_expiry=refreshed.token_expiry,
            )
        except OSError as exc:
            logger.warning("Refreshed tokens could not be saved to %s: %s", self.store.path, exc)
            raise RefreshFailedError(f"Could not save refreshed tokens to {self.store.path}: {exc}") from exc
        logger.info("Access token refreshed; expires in %ss", token.expires_in)
        return refreshed

    # Request lifecycle

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Dict[str, Any]:
        credentials = self.store.require_authenticated()
        resp = self._send(method, path, credentials, params=params, json_body=json_body)

        if resp.status_code == 401:
            if not credentials.refresh_token:
                raise AuthenticationError(
                    "Access token rejected and no refresh token is available. "
                    "Please re-authenticate with: quickbooks auth login"
                )
            try:
                credentials = self._refresh_after_unauthorized(credentials.access_token)
            except RefreshFailedError as exc:
                raise AuthenticationError(
                    f"Authentication failed ({exc}). Please re-authenticate with: quickbooks auth login"
                ) from exc
            resp = self._send(method, path, credentials, params=params, json_body=json_body)
            if resp.status_code == 401:
                raise AuthenticationError(
                    "Access token rejected after refresh. Please re-authenticate with: quickbooks auth login"
                )

        return self._decode(resp)

    def _refresh_after_unauthorized(self, rejected_token: Optional[str]) -> Credentials:
        def refresh() -> Credentials:
            current = self.store.read()
            if current.access_token and current.access_token != rejected_token:
                logger.info("Access token already refreshed by another caller")
                return current
            return self.refresh_tokens()

        return self.refresh_guard.run(refresh)

    def _send(
        self,
        method: str,
        path: str,
        credentials: Credentials,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> requests.Response:
        url = f"{credentials.base_url}/{path.lstrip('/')}"
        req_params = {**(params or {}), "minorversion": MINOR_VERSION}
        headers = {
            "Authorization": f"Bearer {credentials.access_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        logger.debug(
            "HTTP %s %s params=%s json_body_present=%s timeout=%s",
            method,
            url,
            req_params,
            json_body is not None,
            self.timeout,
        )
        try:
            resp = self.session.request(
                method,
                url,
                params=req_params,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise TransportError(f"Request timed out after {self.timeout}s: {method} {path}", retryable=True) from exc
        except requests.ConnectionError as exc:
            raise TransportError(f"Network error: {exc}", retryable=True) from exc
        except requests.RequestException as exc:
            raise TransportError(f"Request failed: {exc}") from exc
        logger.debug("HTTP %s %s -> %s", method, url, resp.status_code)
        return resp

    def _decode(self, resp: requests.Response) -> Dict[str, Any]:
        if 200 <= resp.status_code < 300:
            try:
                payload = resp.json()
            except ValueError as exc:
                raise TransportError(
                    f"Malformed JSON response (status {resp.status_code})", status_code=resp.status_code
                ) from exc
            return payload if isinstance(payload, dict) else {}

        errors = parse_fault(resp)
        if errors is not None:
            message = ", ".join(e.message for e in errors) or "Unknown API error"
            raise ApiError(message, status_code=resp.status_code, errors=errors)
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise TransportError(str(exc), status_code=resp.status_code) from exc
        raise TransportError(f"Unexpected status {resp.status_code}", status_code=resp.status_code)


def paginate_query(
    client: QuickBooksClient,
    sql: str,
    *,
    entity: Optional[str] = None,
    page_size: int = QUERY_PAGE_MAX,
    max_pages: Optional[int] = None,
) -> Iterable[Dict[str, Any]]:
    page_size = max(1, min(page_size, QUERY_PAGE_MAX))
    start = 1
    page = 1
    while True:
        items = client.run_query(f"{sql} STARTPOSITION {start} MAXRESULTS {page_size}", entity=entity)
        for item in items:
            yield item
        if len(items) < page_size:
            break
        if max_pages is not None and page >= max_pages:
            break
        start += page_size
        page += 1


def sql_literal(value: str) -> str:
    """Quote a value as a query string literal."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def build_select(
    entity: str,
    conditions: Iterable[str],
    *,
    order_by: str,
    limit: int,
) -> str:
    limit = max(1, min(int(limit), QUERY_PAGE_MAX))
    where = [c for c in conditions if c]
    sql = f"SELECT * FROM {entity}"
    if where:
        sql += " WHERE " + " AND ".join(where)
    return f"{sql} ORDERBY {order_by} MAXRESULTS {limit}"


# Output


def _get_path(row: Dict[str, Any], path: str) -> Any:
    current: Any = row
    for key in path.split("."):
        if not isinstance(current, dict):
            return ""
        current = current.get(key)
        if current is None:
            return ""
    return current


def _truncate(value: Any, width: int = MAX_CELL_WIDTH) -> Any:
    text = str(value)
    if len(text) > width:
        return text[: width - 3] + "..."
    return value


def _project_fields(rows: List[Dict[str, Any]], fields: List[str]) -> List[Dict[str, Any]]:
    return [{k: _get_path(row, k) for k in fields} for row in rows]


def _dump(data: Any, output_format: str) -> str:
    if output_format == "yaml":
        import yaml

        return yaml.safe_dump(data, sort_keys=False)
    return json.dumps(data, indent=2)


def format_output(rows: List[Dict[str, Any]], fields: List[str], output_format: str) -> str:
    projected = _project_fields(rows, fields)

    if output_format == "csv":
        import csv
        from io import StringIO

        buf = StringIO()
        writer = csv.DictWriter(buf, fieldnames=fields)
        writer.writeheader()
        writer.writerows(projected)
        return buf.getvalue()

    if output_format in ("json", "yaml"):
        return _dump(projected, output_format)

    if not projected:
        return "No results found."
    table = [[_truncate(row.get(f, "")) for f in fields] for row in projected]
    count = len(projected)
    footer = f"\n{count} result{'s' if count != 1 else ''}"
    return tabulate(table, headers=fields, tablefmt="github") + "\n" + footer


def format_record(record: Dict[str, Any], fields: List[str], output_format: str) -> str:
    """Render one entity: raw for json/yaml, field/value pairs otherwise."""
    if output_format in ("json", "yaml"):
        return _dump(record, output_format)
    if output_format == "csv":
        return format_output([record], fields, "csv")
    table = [[f, _get_path(record, f)] for f in fields if _get_path(record, f) not in ("", None)]
    return tabulate(table, headers=["field", "value"], tablefmt="github")


def _col_value(row: Dict[str, Any], index: int) -> str:
    cols = row.get("ColData") or []
    if len(cols) > index and isinstance(cols[index], dict):
        return str(cols[index].get("value") or "")
    return ""


def _as_list(value: Any) -> List[Dict[str, Any]]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def flatten_report(report: Dict[str, Any]) -> List[Dict[str, str]]:
    """Flatten nested report sections into indented label/value rows."""
    rows: List[Dict[str, str]] = []

    def walk(section: Dict[str, Any], depth: int) -> None:
        indent = "  " * depth
        header = section.get("Header") or {}
        header_label = _col_value(header, 0) if isinstance(header, dict) else ""
        if header_label:
            rows.append({"label": indent + header_label, "value": ""})
        for row in _as_list((section.get("Rows") or {}).get("Row")):
            if row.get("Rows") or row.get("Summary"):
                walk(row, depth + 1)
                continue
            label, value = _col_value(row, 0), _col_value(row, 1)
            if label or value:
                rows.append({"label": "  " * (depth + 1) + label, "value": value})
        summary = section.get("Summary") or {}
        summary_label, summary_value = _col_value(summary, 0), _col_value(summary, 1)
        if summary_label or summary_value:
            rows.append({"label": indent + summary_label, "value": summary_value})

    for section in _as_list((report.get("Rows") or {}).get("Row")):
        if section.get("Rows") or section.get("Summary") or section.get("Header"):
            walk(section, 0)
        else:
            label, value = _col_value(section, 0), _col_value(section, 1)
            if label or value:
                rows.append({"label": label, "value": value})
    return rows


def parse_json_body(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON body: {exc}") from exc


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )


# Field sets for plain output

CUSTOMER_LIST_FIELDS = [
    "Id",
    "DisplayName",
    "PrimaryEmailAddr.Address",
    "PrimaryPhone.FreeFormNumber",
    "Balance",
    "Active",
]
CUSTOMER_FIELDS = [
    "Id",
    "DisplayName",
    "CompanyName",
    "PrimaryEmailAddr.Address",
    "PrimaryPhone.FreeFormNumber",
    "Mobile.FreeFormNumber",
    "Balance",
    "Active",
    "BillAddr.Line1",
    "BillAddr.City",
    "BillAddr.CountrySubDivisionCode",
    "BillAddr.PostalCode",
    "BillAddr.Country",
]
VENDOR_LIST_FIELDS = CUSTOMER_LIST_FIELDS
VENDOR_FIELDS = [
    "Id",
    "DisplayName",
    "CompanyName",
    "PrimaryEmailAddr.Address",
    "PrimaryPhone.FreeFormNumber",
    "Balance",
    "Active",
    "BillAddr.Line1",
    "BillAddr.City",
    "BillAddr.PostalCode",
]
INVOICE_LIST_FIELDS = ["Id", "DocNumber", "CustomerRef.name", "TxnDate", "DueDate", "TotalAmt", "Balance"]
INVOICE_FIELDS = [
    "Id",
    "DocNumber",
    "CustomerRef.name",
    "TxnDate",
    "DueDate",
    "TxnStatus",
    "TotalAmt",
    "Balance",
    "CurrencyRef.value",
]
BILL_LIST_FIELDS = ["Id", "DocNumber", "VendorRef.name", "TxnDate", "DueDate", "TotalAmt", "Balance"]
BILL_FIELDS = ["Id", "DocNumber", "VendorRef.name", "TxnDate", "DueDate", "TotalAmt", "Balance", "CurrencyRef.value"]
PAYMENT_LIST_FIELDS = ["Id", "CustomerRef.name", "TxnDate", "TotalAmt", "UnappliedAmt", "PaymentMethodRef.name"]
PAYMENT_FIELDS = [
    "Id",
    "CustomerRef.name",
    "TxnDate",
    "TotalAmt",
    "UnappliedAmt",
    "PaymentMethodRef.name",
    "DepositToAccountRef.name",
    "CurrencyRef.value",
]
ACCOUNT_LIST_FIELDS = ["Id", "Name", "AccountType", "AccountSubType", "CurrentBalance", "Active"]
ACCOUNT_FIELDS = [
    "Id",
    "Name",
    "FullyQualifiedName",
    "AccountType",
    "AccountSubType",
    "Classification",
    "CurrentBalance",
    "CurrencyRef.value",
    "Active",
]
LINE_FIELDS = ["LineNum", "Description", "Amount"]


# Handlers for subcommands


def _print_list(client: QuickBooksClient, args: argparse.Namespace, sql: str, entity: str, fields: List[str]) -> None:
    rows = client.run_query(sql, entity=entity)
    print(format_output(rows, fields, args.format))


def handle_config_set(args: argparse.Namespace, client: QuickBooksClient) -> None:
    updates = {
        "client_id": args.client_id,
        "client_secret": args.client_secret,
        "realm_id": args.realm_id,
        "access_token": args.access_token,
        "refresh_token": args.refresh_token,
        "sandbox": args.sandbox,
    }
    updates = {k: v for k, v in updates.items() if v not in (None, "")}
    if not updates:
        raise SystemExit("No values provided. Use --client-id, --client-secret, --realm-id, etc.")
    client.store.write(**updates)
    print(f"Configuration saved to {client.store.path}.")
    for key in sorted(updates):
        value = updates[key]
        if key in ("client_secret", "access_token", "refresh_token"):
            value = "set"
        elif key == "client_id":
            value = f"{value[:8]}..."
        print(f"  {key}: {value}")


def handle_config_get(args: argparse.Namespace, client: QuickBooksClient) -> None:
    described = client.store.describe()
    if args.format in ("json", "yaml"):
        print(_dump(described, args.format))
        return
    print(tabulate([[k, v] for k, v in described.items()], headers=["key", "value"], tablefmt="github"))


def handle_config_path(args: argparse.Namespace, client: QuickBooksClient) -> None:
    print(client.store.path)


def handle_config_clear(args: argparse.Namespace, client: QuickBooksClient) -> None:
    client.store.clear()
    print("Configuration cleared.")


def handle_auth_status(args: argparse.Namespace, client: QuickBooksClient) -> None:
    credentials = client.store.read()
    configured = bool(credentials.client_id and credentials.client_secret and credentials.realm_id)
    if credentials.access_token:
        access = "expired" if credentials.is_expired() else "present"
    else:
        access = "missing"
    status: Dict[str, Any] = {
        "credentials": "configured" if configured else "missing",
        "access_token": access,
        "refresh_token": "present" if credentials.refresh_token else "missing",
        "environment": "sandbox" if credentials.sandbox else "production",
    }
    if credentials.token_expiry:
        status["token_expiry"] = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(credentials.token_expiry))

    if args.format in ("json", "yaml"):
        print(_dump(status, args.format))
        return
    print(tabulate([[k, v] for k, v in status.items()], headers=["item", "status"], tablefmt="github"))
    if not configured:
        print("\nRun: quickbooks config set --client-id <id> --client-secret <secret> --realm-id <id>")
    if not credentials.access_token:
        print(f"\nSet {CREDENTIAL_KEYS['access_token']} or configure OAuth tokens (see: quickbooks auth login).")


def handle_auth_refresh(args: argparse.Namespace, client: QuickBooksClient) -> None:
    credentials = client.refresh_tokens()
    print("Access token refreshed successfully.")
    if credentials.token_expiry:
        print("Expires at " + time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(credentials.token_expiry)))


LOGIN_INSTRUCTIONS = """QuickBooks OAuth 2.0 setup

1. Create an Intuit Developer app: https://developer.intuit.com/app/developer/myapps
2. Copy the Client ID and Client Secret from the app settings, and the
   Realm ID (Company ID) from QuickBooks Online.
3. Complete the OAuth flow to obtain tokens:
     Authorization URL: https://appcenter.intuit.com/connect/oauth2
     Scope: com.intuit.quickbooks.accounting
4. Configure the CLI:
     quickbooks config set --client-id <id> --client-secret <secret> \\
       --realm-id <realm> --access-token <token> --refresh-token <token>
5. Or export QB_CLIENT_ID, QB_CLIENT_SECRET, QB_REALM_ID,
   QB_ACCESS_TOKEN and QB_REFRESH_TOKEN.

Access tokens expire after 1 hour and are refreshed automatically on the
next call (or with `quickbooks auth refresh`). Refresh tokens expire after
100 days."""


def handle_auth_login(args: argparse.Namespace, client: QuickBooksClient) -> None:
    print(LOGIN_INSTRUCTIONS)


def handle_customers_list(args: argparse.Namespace, client: QuickBooksClient) -> None:
    conditions = []
    if args.search:
        conditions.append(f"DisplayName LIKE {sql_literal('%' + args.search + '%')}")
    if args.active_only:
        conditions.append("Active = true")
    sql = build_select("Customer", conditions, order_by="DisplayName", limit=args.limit)
    _print_list(client, args, sql, "Customer", CUSTOMER_LIST_FIELDS)


def handle_customers_create(args: argparse.Namespace, client: QuickBooksClient) -> None:
    data: Dict[str, Any] = {"DisplayName": args.name}
    if args.email:
        data["PrimaryEmailAddr"] = {"Address": args.email}
    if args.phone:
        data["PrimaryPhone"] = {"FreeFormNumber": args.phone}
    if args.company:
        data["CompanyName"] = args.company
    if args.given_name:
        data["GivenName"] = args.given_name
    if args.family_name:
        data["FamilyName"] = args.family_name
    if args.dry_run:
        print(json.dumps(data, indent=2))
        return
    customer = client.create_entity("Customer", data)
    print(format_record(customer, ["Id", "DisplayName", "PrimaryEmailAddr.Address"], args.format))


def handle_vendors_list(args: argparse.Namespace, client: QuickBooksClient) -> None:
    conditions = []
    if args.search:
        conditions.append(f"DisplayName LIKE {sql_literal('%' + args.search + '%')}")
    sql = build_select("Vendor", conditions, order_by="DisplayName", limit=args.limit)
    _print_list(client, args, sql, "Vendor", VENDOR_LIST_FIELDS)


def handle_invoices_list(args: argparse.Namespace, client: QuickBooksClient) -> None:
    conditions = []
    if args.status:
        conditions.append(f"TxnStatus = {sql_literal(args.status)}")
    if args.customer_id:
        conditions.append(f"CustomerRef = {sql_literal(args.customer_id)}")
    sql = build_select("Invoice", conditions, order_by="MetaData.LastUpdatedTime DESC", limit=args.limit)
    _print_list(client, args, sql, "Invoice", INVOICE_LIST_FIELDS)


def handle_invoices_create(args: argparse.Namespace, client: QuickBooksClient) -> None:
    line_items = parse_json_body(args.line_items)
    if not isinstance(line_items, list):
        raise SystemExit("--line-items must be a JSON array")
    data: Dict[str, Any] = {"CustomerRef": {"value": args.customer_id}, "Line": line_items}
    if args.due_date:
        data["DueDate"] = args.due_date
    if args.txn_date:
        data["TxnDate"] = args.txn_date
    if args.memo:
        data["PrivateNote"] = args.memo
    if args.customer_memo:
        data["CustomerMemo"] = {"value": args.customer_memo}
    if args.dry_run:
        print(json.dumps(data, indent=2))
        return
    invoice = client.create_entity("Invoice", data)
    print(format_record(invoice, ["Id", "DocNumber", "CustomerRef.name", "TotalAmt", "DueDate"], args.format))


def handle_bills_list(args: argparse.Namespace, client: QuickBooksClient) -> None:
    conditions = []
    if args.vendor_id:
        conditions.append(f"VendorRef = {sql_literal(args.vendor_id)}")
    sql = build_select("Bill", conditions, order_by="MetaData.LastUpdatedTime DESC", limit=args.limit)
    _print_list(client, args, sql, "Bill", BILL_LIST_FIELDS)


def handle_payments_list(args: argparse.Namespace, client: QuickBooksClient) -> None:
    conditions = []
    if args.customer_id:
        conditions.append(f"CustomerRef = {sql_literal(args.customer_id)}")
    sql = build_select("Payment", conditions, order_by="TxnDate DESC", limit=args.limit)
    _print_list(client, args, sql, "Payment", PAYMENT_LIST_FIELDS)


def handle_accounts_list(args: argparse.Namespace, client: QuickBooksClient) -> None:
    conditions = []
    if args.type:
        conditions.append(f"AccountType = {sql_literal(args.type)}")
    sql = build_select("Account", conditions, order_by="Name", limit=args.limit)
    _print_list(client, args, sql, "Account", ACCOUNT_LIST_FIELDS)


def handle_entity_get(args: argparse.Namespace, client: QuickBooksClient) -> None:
    entity = client.fetch_entity(args.entity, args.id)
    print(format_record(entity, args.fields, args.format))
    lines = [
        line
        for line in entity.get("Line") or []
        if line.get("DetailType") not in ("SubTotalLineDetail",)
    ]
    if args.format == "plain" and lines and args.entity in ("Invoice", "Bill"):
        print("\nLine items:")
        print(format_output(lines, LINE_FIELDS, args.format))


def handle_entity_update(args: argparse.Namespace, client: QuickBooksClient) -> None:
    body = parse_json_body(args.body)
    if args.dry_run:
        print(json.dumps(body, indent=2))
        return
    entity = client.update_entity(args.entity, body)
    print(json.dumps(entity, indent=2))


def handle_entity_delete(args: argparse.Namespace, client: QuickBooksClient) -> None:
    label = args.entity.lower()
    if args.dry_run:
        print(f"[dry-run] Would delete {label} {args.id}")
        return
    current = client.fetch_entity(args.entity, args.id)
    client.delete_entity(args.entity, {"Id": args.id, "SyncToken": current.get("SyncToken", "0")})
    print(f"Deleted {label} {args.id}")


def _print_report(report: Dict[str, Any], args: argparse.Namespace, title: str) -> None:
    if args.format in ("json", "yaml"):
        print(_dump(report, args.format))
        return
    header = report.get("Header") or {}
    print(header.get("ReportName") or title)
    start, end = header.get("StartPeriod"), header.get("EndPeriod")
    if start or end:
        print(f"Period: {start or 'N/A'} to {end or 'N/A'}")
    if header.get("ReportBasis"):
        print(f"Basis: {header['ReportBasis']}")
    print()
    rows = flatten_report(report)
    if args.format == "csv":
        print(format_output(rows, ["label", "value"], "csv"))
        return
    print(tabulate([[r["label"], r["value"]] for r in rows], headers=["label", "value"], tablefmt="github"))


def handle_reports_profit_loss(args: argparse.Namespace, client: QuickBooksClient) -> None:
    params = {
        "accounting_method": args.accounting_method,
        "start_date": args.start_date,
        "end_date": args.end_date,
    }
    params = {k: v for k, v in params.items() if v not in (None, "")}
    report = client.fetch_report("ProfitAndLoss", params)
    _print_report(report, args, "Profit & Loss")


def handle_reports_balance_sheet(args: argparse.Namespace, client: QuickBooksClient) -> None:
    params = {"accounting_method": args.accounting_method, "as_of": args.as_of}
    params = {k: v for k, v in params.items() if v not in (None, "")}
    report = client.fetch_report("BalanceSheet", params)
    _print_report(report, args, "Balance Sheet")


def handle_reports_cash_flow(args: argparse.Namespace, client: QuickBooksClient) -> None:
    params = {"start_date": args.start_date, "end_date": args.end_date}
    params = {k: v for k, v in params.items() if v}
    report = client.fetch_report("CashFlow", params)
    _print_report(report, args, "Cash Flow")


def handle_reports_ar_aging(args: argparse.Namespace, client: QuickBooksClient) -> None:
    params = {"as_of": args.as_of}
    params = {k: v for k, v in params.items() if v}
    report = client.fetch_report("AgedReceivables", params)
    _print_report(report, args, "A/R Aging")


def handle_query(args: argparse.Namespace, client: QuickBooksClient) -> None:
    if args.all:
        rows = list(paginate_query(client, args.sql, entity=args.entity, max_pages=args.max_pages))
    else:
        rows = client.run_query(args.sql, entity=args.entity)
    if args.format == "plain":
        fields = [k for k, v in rows[0].items() if not isinstance(v, (dict, list))] if rows else []
        print(format_output(rows, fields, args.format))
        return
    if args.format == "csv":
        fields = sorted({k for row in rows for k, v in row.items() if not isinstance(v, (dict, list))})
        print(format_output(rows, fields, "csv"))
        return
    print(_dump(rows, args.format))


# CLI assembly


def _add_entity_commands(
    subparsers: argparse._SubParsersAction,
    name: str,
    entity: str,
    *,
    help_text: str,
    list_handler: Callable[[argparse.Namespace, QuickBooksClient], None],
    fields: List[str],
    default_limit: int = 20,
) -> argparse._SubParsersAction:
    group = subparsers.add_parser(name, help=help_text)
    group_sub = group.add_subparsers(dest="action", required=True)

    list_p = group_sub.add_parser("list", help=f"List {name}")
    list_p.add_argument("-l", "--limit", type=int, default=default_limit, help="Maximum number of results")
    list_p.set_defaults(func=list_handler)

    get_p = group_sub.add_parser("get", help=f"Get a {entity.lower()} by ID")
    get_p.add_argument("id", help=f"{entity} ID")
    get_p.set_defaults(func=handle_entity_get, entity=entity, fields=fields)

    update_p = group_sub.add_parser("update", help=f"Update a {entity.lower()} from JSON body")
    update_p.add_argument(
        "--body",
        required=True,
        help='JSON payload including Id and SyncToken: {"Id": "1", "SyncToken": "0", "sparse": true, ...}',
    )
    update_p.add_argument("--dry-run", action="store_true", help="Preview update without calling the API")
    update_p.set_defaults(func=handle_entity_update, entity=entity)

    delete_p = group_sub.add_parser("delete", help=f"Delete a {entity.lower()}")
    delete_p.add_argument("id", help=f"{entity} ID")
    delete_p.add_argument("--dry-run", action="store_true", help="Preview deletion without calling the API")
    delete_p.set_defaults(func=handle_entity_delete, entity=entity)

    return group_sub


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quickbooks", description="QuickBooks Online CLI")
    parser.add_argument(
        "--env-file",
        default=os.environ.get("QB_CONFIG_FILE") or str(DEFAULT_ENV_FILE),
        help=f"Path to the credentials file (default: {DEFAULT_ENV_FILE})",
    )
    parser.add_argument(
        "--format",
        default="plain",
        choices=["plain", "csv", "json", "yaml"],
        help="Output format",
    )
    parser.add_argument("--debug", action="store_true", help="Log verbose debug output for HTTP calls")
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="HTTP connect/read timeout in seconds (default: 30)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Config
    config = subparsers.add_parser("config", help="Manage stored configuration")
    config_sub = config.add_subparsers(dest="action", required=True)

    config_set = config_sub.add_parser("set", help="Set configuration values")
    config_set.add_argument("--client-id", help="OAuth 2.0 Client ID")
    config_set.add_argument("--client-secret", help="OAuth 2.0 Client Secret")
    config_set.add_argument("--realm-id", help="QuickBooks Company ID (realm ID)")
    config_set.add_argument("--access-token", help="OAuth 2.0 Access Token")
    config_set.add_argument("--refresh-token", help="OAuth 2.0 Refresh Token")
    config_set.add_argument(
        "--sandbox",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use the sandbox (--sandbox) or production (--no-sandbox) environment",
    )
    config_set.set_defaults(func=handle_config_set)

    config_get = config_sub.add_parser("get", help="Show current configuration (secrets masked)")
    config_get.set_defaults(func=handle_config_get)

    config_path = config_sub.add_parser("path", help="Show configuration file path")
    config_path.set_defaults(func=handle_config_path)

    config_clear = config_sub.add_parser("clear", help="Clear all stored configuration")
    config_clear.set_defaults(func=handle_config_clear)

    # Auth
    auth = subparsers.add_parser("auth", help="Manage OAuth authentication")
    auth_sub = auth.add_subparsers(dest="action", required=True)

    auth_status = auth_sub.add_parser("status", help="Show authentication status")
    auth_status.set_defaults(func=handle_auth_status)

    auth_refresh = auth_sub.add_parser("refresh", help="Refresh the access token using the refresh token")
    auth_refresh.set_defaults(func=handle_auth_refresh)

    auth_login = auth_sub.add_parser("login", help="Display OAuth 2.0 setup instructions")
    auth_login.set_defaults(func=handle_auth_login)

    # Customers
    cust_sub = _add_entity_commands(
        subparsers,
        "customers",
        "Customer",
        help_text="Customer operations",
        list_handler=handle_customers_list,
        fields=CUSTOMER_FIELDS,
    )
    cust_list = cust_sub.choices["list"]
    cust_list.add_argument("-s", "--search", help="Search by display name")
    cust_list.add_argument("--active-only", action="store_true", help="Show only active customers")

    cust_create = cust_sub.add_parser("create", help="Create a customer")
    cust_create.add_argument("--name", required=True, help="Customer display name")
    cust_create.add_argument("--email", help="Primary email address")
    cust_create.add_argument("--phone", help="Primary phone number")
    cust_create.add_argument("--company", help="Company name")
    cust_create.add_argument("--given-name", help="First name")
    cust_create.add_argument("--family-name", help="Last name")
    cust_create.add_argument("--dry-run", action="store_true", help="Preview creation without calling the API")
    cust_create.set_defaults(func=handle_customers_create)

    # Vendors
    vend_sub = _add_entity_commands(
        subparsers,
        "vendors",
        "Vendor",
        help_text="Vendor operations",
        list_handler=handle_vendors_list,
        fields=VENDOR_FIELDS,
    )
    vend_sub.choices["list"].add_argument("-s", "--search", help="Search by display name")

    # Invoices
    inv_sub = _add_entity_commands(
        subparsers,
        "invoices",
        "Invoice",
        help_text="Invoice operations",
        list_handler=handle_invoices_list,
        fields=INVOICE_FIELDS,
    )
    inv_list = inv_sub.choices["list"]
    inv_list.add_argument("--status", help="Filter by status (Open, Paid, Voided)")
    inv_list.add_argument("--customer-id", help="Filter by customer ID")

    inv_create = inv_sub.add_parser("create", help="Create an invoice")
    inv_create.add_argument("--customer-id", required=True, help="Customer ID (CustomerRef)")
    inv_create.add_argument("--line-items", default="[]", help="Line items as a JSON array")
    inv_create.add_argument("--due-date", help="Due date (YYYY-MM-DD)")
    inv_create.add_argument("--txn-date", help="Transaction date (YYYY-MM-DD)")
    inv_create.add_argument("--memo", help="Private memo")
    inv_create.add_argument("--customer-memo", help="Customer-facing memo")
    inv_create.add_argument("--dry-run", action="store_true", help="Preview creation without calling the API")
    inv_create.set_defaults(func=handle_invoices_create)

    # Bills
    bills_sub = _add_entity_commands(
        subparsers,
        "bills",
        "Bill",
        help_text="Bill operations",
        list_handler=handle_bills_list,
        fields=BILL_FIELDS,
    )
    bills_sub.choices["list"].add_argument("--vendor-id", help="Filter by vendor ID")

    # Payments
    pay_sub = _add_entity_commands(
        subparsers,
        "payments",
        "Payment",
        help_text="Payment operations",
        list_handler=handle_payments_list,
        fields=PAYMENT_FIELDS,
    )
    pay_sub.choices["list"].add_argument("--customer-id", help="Filter by customer ID")

    # Accounts
    acct_sub = _add_entity_commands(
        subparsers,
        "accounts",
        "Account",
        help_text="Chart of accounts operations",
        list_handler=handle_accounts_list,
        fields=ACCOUNT_FIELDS,
        default_limit=50,
    )
    acct_sub.choices["list"].add_argument("--type", help="Filter by account type (Bank, Expense, etc.)")

    # Reports
    reports = subparsers.add_parser("reports", help="Financial reports")
    rep_sub = reports.add_subparsers(dest="action", required=True)

    rep_pl = rep_sub.add_parser("profit-loss", help="Profit & Loss report")
    rep_pl.add_argument("--start-date", help="Start date (YYYY-MM-DD)")
    rep_pl.add_argument("--end-date", help="End date (YYYY-MM-DD)")
    rep_pl.add_argument("--accounting-method", choices=["Cash", "Accrual"], default="Accrual")
    rep_pl.set_defaults(func=handle_reports_profit_loss)

    rep_bs = rep_sub.add_parser("balance-sheet", help="Balance Sheet report")
    rep_bs.add_argument("--as-of", help="As of date (YYYY-MM-DD)")
    rep_bs.add_argument("--accounting-method", choices=["Cash", "Accrual"], default="Accrual")
    rep_bs.set_defaults(func=handle_reports_balance_sheet)

    rep_cf = rep_sub.add_parser("cash-flow", help="Cash Flow statement")
    rep_cf.add_argument("--start-date", help="Start date (YYYY-MM-DD)")
    rep_cf.add_argument("--end-date", help="End date (YYYY-MM-DD)")
    rep_cf.set_defaults(func=handle_reports_cash_flow)

    rep_ar = rep_sub.add_parser("ar-aging", help="Accounts Receivable Aging report")
    rep_ar.add_argument("--as-of", help="As of date (YYYY-MM-DD)")
    rep_ar.set_defaults(func=handle_reports_ar_aging)

    # Raw query
    query = subparsers.add_parser("query", help="Run a raw query statement")
    query.add_argument("sql", help="Query, e.g. \"SELECT * FROM Customer WHERE Active = true\"")
    query.add_argument("--entity", help="Entity key in the response (default: taken from FROM)")
    query.add_argument("--all", action="store_true", help="Fetch every page with STARTPOSITION/MAXRESULTS")
    query.add_argument("--max-pages", type=int, default=None, help="Page cap when using --all")
    query.set_defaults(func=handle_query)

    return parser


def describe_error(exc: QuickBooksError) -> str:
    if isinstance(exc, ConfigurationError):
        return (
            f"{exc}\nRun: quickbooks config set --client-id <id> --client-secret <secret> --realm-id <id>\n"
            "Or set environment variables: QB_CLIENT_ID, QB_CLIENT_SECRET, QB_REALM_ID"
        )
    if isinstance(exc, ApiError):
        return f"QuickBooks API Error: {exc.message}"
    if isinstance(exc, RefreshFailedError):
        return f"{exc}\nRe-authenticate with: quickbooks auth login"
    if isinstance(exc, TransportError) and exc.retryable:
        return f"{exc} (transient; try again)"
    return str(exc)


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)
    config = AppConfig(
        env_file=Path(args.env_file).expanduser(),
        output_format=args.format,
        debug=args.debug,
        request_timeout=args.timeout,
    )
    store = CredentialStore(config.env_file)
    client = QuickBooksClient(store, timeout=config.request_timeout)

    try:
        args.func(args, client)
    except QuickBooksError as exc:
        logger.debug("Command failed", exc_info=True)
        raise SystemExit(f"Error: {describe_error(exc)}") from exc


if __name__ == "__main__":
    main()
