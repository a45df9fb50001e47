"""A small client for the CometBFT RPC /status endpoint."""

from __future__ import annotations

import json
import re
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlsplit, urlunsplit

_MAX_UINT64 = 2**64 - 1
_DIGITS = re.compile(r"[0-9]+")
_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})"
)


class CometClientError(Exception):
    """A status request failed or its response could not be understood."""


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise TypeError(f"{key}: expected an object, got {type(value).__name__}")
    return value


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{key}: expected a string, got {type(value).__name__}")
    return value


def _flag(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise TypeError(f"{key}: expected a boolean, got {type(value).__name__}")
    return value


def _time(data: Mapping[str, Any], key: str) -> datetime | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{key}: expected a timestamp string, got {type(value).__name__}")
    match = _RFC3339.fullmatch(value)
    if match is None:
        raise ValueError(f"{key}: invalid timestamp {value!r}")
    year, month, day, hour, minute, second, fraction, offset = match.groups()
    micros = int((fraction or "").ljust(6, "0")[:6])
    if offset in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    parsed = datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tzinfo=tz
    )
    return parsed.astimezone(timezone.utc)


@dataclass
class ValidatorInfo:
    """The node's validator identity."""

    address: str = ""
    pub_key_type: str = ""
    pub_key_value: str = ""
    voting_power: str = ""

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> ValidatorInfo:
        pub_key = _section(data, "pub_key") or {}
        return cls(
            address=_text(data, "address"),
            pub_key_type=_text(pub_key, "type"),
            pub_key_value=_text(pub_key, "value"),
            voting_power=_text(data, "voting_power"),
        )


@dataclass
class NodeInfo:
    """Network identity and software versions of the node."""

    protocol_p2p: str = ""
    protocol_block: str = ""
    protocol_app: str = ""
    id: str = ""
    listen_addr: str = ""
    network: str = ""
    version: str = ""
    channels: str = ""
    moniker: str = ""
    tx_index: str = ""
    rpc_address: str = ""

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> NodeInfo:
        protocol = _section(data, "protocol_version") or {}
        other = _section(data, "other") or {}
        return cls(
            protocol_p2p=_text(protocol, "p2p"),
            protocol_block=_text(protocol, "block"),
            protocol_app=_text(protocol, "app"),
            id=_text(data, "id"),
            listen_addr=_text(data, "listen_addr"),
            network=_text(data, "network"),
            version=_text(data, "version"),
            channels=_text(data, "channels"),
            moniker=_text(data, "moniker"),
            tx_index=_text(other, "tx_index"),
            rpc_address=_text(other, "rpc_address"),
        )


@dataclass
class SyncInfo:
    """Block sync progress of the node."""

    latest_block_hash: str = ""
    latest_app_hash: str = ""
    latest_block_height: str = ""
    latest_block_time: datetime | None = None
    earliest_block_hash: str = ""
    earliest_app_hash: str = ""
    earliest_block_height: str = ""
    earliest_block_time: datetime | None = None
    catching_up: bool = False

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> SyncInfo:
        return cls(
            latest_block_hash=_text(data, "latest_block_hash"),
            latest_app_hash=_text(data, "latest_app_hash"),
            latest_block_height=_text(data, "latest_block_height"),
            latest_block_time=_time(data, "latest_block_time"),
            earliest_block_hash=_text(data, "earliest_block_hash"),
            earliest_app_hash=_text(data, "earliest_app_hash"),
            earliest_block_height=_text(data, "earliest_block_height"),
            earliest_block_time=_time(data, "earliest_block_time"),
            catching_up=_flag(data, "catching_up"),
        )


@dataclass
class CometResult:
    """The result part of a status response."""

    node_info: NodeInfo = field(default_factory=NodeInfo)
    sync_info: SyncInfo = field(default_factory=SyncInfo)
    validator_info: ValidatorInfo = field(default_factory=ValidatorInfo)


@dataclass
class CometStatus:
    """The common response of the /status RPC endpoint."""

    jsonrpc: str = ""
    id: int = 0
    result: CometResult = field(default_factory=CometResult)

    def latest_block_height(self) -> int:
        """The latest block height, or 0 if the reported value is malformed."""
        text = self.result.sync_info.latest_block_height
        if not _DIGITS.fullmatch(text):
            return 0
        return min(int(text), _MAX_UINT64)


def _urlopen(request: urllib.request.Request, timeout: float | None) -> Any:
    try:
        return urllib.request.urlopen(request, timeout=timeout)
    except urllib.error.HTTPError as exc:
        return exc


def _status_url(rpc_host: str) -> str:
    parts = urlsplit(rpc_host)
    if not parts.scheme and not rpc_host.startswith("/"):
        raise CometClientError(f"malformed host: invalid URI {rpc_host!r}")
    return urlunsplit((parts.scheme, parts.netloc, "/status", parts.query, parts.fragment))


def _decode(body: bytes) -> CometResult:
    try:
        payload = json.loads(body)
        if not isinstance(payload, Mapping):
            raise TypeError(f"expected an object, got {type(payload).__name__}")
        if payload.get("validator_info") is not None:
            source: Mapping[str, Any] = payload
        else:
            source = _section(payload, "result") or {}
        sections = {
            key: _section(source, key) for key in ("node_info", "sync_info", "validator_info")
        }
        missing = [key for key, value in sections.items() if value is None]
        if missing:
            raise KeyError(f"missing {', '.join(missing)}")
        return CometResult(
            node_info=NodeInfo._from_json(sections["node_info"] or {}),
            sync_info=SyncInfo._from_json(sections["sync_info"] or {}),
            validator_info=ValidatorInfo._from_json(sections["validator_info"] or {}),
        )
    except (ValueError, TypeError, KeyError) as exc:
        raise CometClientError(f"malformed json: {exc}") from exc


class CometClient:
    """Makes requests to the CometBFT RPC endpoints.

    ``http_do`` takes a request and a timeout and returns a response with
    ``status``, ``reason``, ``read()`` and ``close()``.
    """

    def __init__(
        self,
        http_do: Callable[[urllib.request.Request, float | None], Any] | None = None,
        timeout: float | None = 30.0,
    ) -> None:
        self._http_do = http_do or _urlopen
        self._timeout = timeout

    def status(self, rpc_host: str, timeout: float | None = None) -> CometStatus:
        """Fetch the latest status from the node at rpc_host."""
        url = _status_url(rpc_host)
        request = urllib.request.Request(url, method="GET")
        effective = self._timeout if timeout is None else timeout
        try:
            response = self._http_do(request, effective)
        except OSError as exc:
            raise CometClientError(str(exc)) from exc
        try:
            code = getattr(response, "status", None) or getattr(response, "code", None)
            if code != 200:
                reason = getattr(response, "reason", "") or ""
                raise CometClientError(f"{code} {reason}".strip())
            body = response.read()
        finally:
            close = getattr(response, "close", None)
            if close is not None:
                close()
        return CometStatus(result=_decode(body))