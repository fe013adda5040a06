"""Subscription request configuration and config file loading."""

from __future__ import annotations

import enum
import ipaddress
import json
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

U64_MAX = 2**64 - 1
_USIZE_RE = re.compile(r"\+?[0-9]+")
_PORT_RE = re.compile(r"[0-9]+")


def load(path: str | Path) -> Any:
    """Read a YAML (.yaml/.yml) or JSON (.json) config file and return its data."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    extension = path.suffix[1:] if path.suffix else None
    if extension in ("yaml", "yml"):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError("failed to parse config from file") from exc
    if extension == "json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError("failed to parse config from file") from exc
    raise ValueError(f"unknown config extension: {extension!r}")


def parse_usize_str(value: Any) -> int:
    """Accept an unsigned integer or a string of digits, with optional '_' separators."""
    if isinstance(value, bool):
        raise ValueError(f"expected an unsigned integer, got {value!r}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        digits = value.replace("_", "")
        if not _USIZE_RE.fullmatch(digits):
            raise ValueError(f"invalid digit found in string: {value!r}")
        number = int(digits)
    else:
        raise ValueError(f"expected an unsigned integer or string, got {value!r}")
    if not 0 <= number <= U64_MAX:
        raise ValueError(f"number out of range: {value!r}")
    return number


def parse_duration_ms_str(value: Any) -> timedelta:
    """Parse a millisecond count (integer or string) into a timedelta."""
    return timedelta(milliseconds=parse_usize_str(value))


def parse_socket_addr(value: Any) -> tuple[str, int]:
    """Parse 'a.b.c.d:port' or '[v6]:port' into a (host, port) pair."""
    if not isinstance(value, str):
        raise ValueError(f"invalid socket address: {value!r}")
    host, sep, port = value.rpartition(":")
    if not sep or not _PORT_RE.fullmatch(port):
        raise ValueError(f"invalid socket address: {value!r}")
    port_number = int(port)
    if port_number > 65535:
        raise ValueError(f"invalid socket address: {value!r}")
    try:
        if host.startswith("[") and host.endswith("]"):
            ip: ipaddress.IPv4Address | ipaddress.IPv6Address = ipaddress.IPv6Address(host[1:-1])
        else:
            ip = ipaddress.IPv4Address(host)
    except ValueError as exc:
        raise ValueError(f"invalid socket address: {value!r}") from exc
    return str(ip), port_number


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what}: expected a mapping, got {data!r}")
    return data


def _u64(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U64_MAX:
        raise ValueError(f"{what}: expected an unsigned 64-bit integer, got {value!r}")
    return value


def _str_list(value: Any, what: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{what}: expected a list of strings, got {value!r}")
    return list(value)


def _opt_bool(value: Any, what: str) -> bool | None:
    if value is not None and not isinstance(value, bool):
        raise ValueError(f"{what}: expected a boolean, got {value!r}")
    return value


def _opt_str(value: Any, what: str) -> str | None:
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{what}: expected a string, got {value!r}")
    return value


def _required(data: Mapping[str, Any], key: str, what: str) -> Any:
    if key not in data:
        raise ValueError(f"{what}: missing field `{key}`")
    return data[key]


def _named_map(value: Any, what: str, parse: Callable[[Any], Any]) -> dict[str, Any]:
    return {str(name): parse(item) for name, item in _mapping(value, what).items()}


class ConfigGrpcRequestCommitment(enum.Enum):
    """Commitment level requested for updates."""

    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    def to_proto(self) -> int:
        return _COMMITMENT_LEVELS[self]


_COMMITMENT_LEVELS = {
    ConfigGrpcRequestCommitment.PROCESSED: 0,
    ConfigGrpcRequestCommitment.CONFIRMED: 1,
    ConfigGrpcRequestCommitment.FINALIZED: 2,
}


@dataclass(frozen=True)
class MemcmpFilter:
    """Match account data at an offset against base58-encoded bytes."""

    offset: int
    base58: str

    def to_proto(self) -> dict[str, Any]:
        return {"memcmp": {"offset": self.offset, "base58": self.base58}}


@dataclass(frozen=True)
class DataSizeFilter:
    """Match accounts whose data has the given size."""

    size: int

    def to_proto(self) -> dict[str, Any]:
        return {"datasize": self.size}


@dataclass(frozen=True)
class TokenAccountStateFilter:
    """Match valid token accounts."""

    def to_proto(self) -> dict[str, Any]:
        return {"token_account_state": True}


AccountsFilter = MemcmpFilter | DataSizeFilter | TokenAccountStateFilter


def accounts_filter_from_value(value: Any) -> AccountsFilter:
    """Build an accounts filter from its tagged form, e.g. {"DataSize": 165}."""
    if value == "TokenAccountState":
        return TokenAccountStateFilter()
    if isinstance(value, Mapping) and len(value) == 1:
        ((tag, body),) = value.items()
        if tag == "Memcmp":
            body = _mapping(body, "Memcmp")
            return MemcmpFilter(
                offset=_u64(_required(body, "offset", "Memcmp"), "Memcmp.offset"),
                base58=_opt_str(_required(body, "base58", "Memcmp"), "Memcmp.base58") or "",
            )
        if tag == "DataSize":
            return DataSizeFilter(_u64(body, "DataSize"))
        if tag == "TokenAccountState" and body is None:
            return TokenAccountStateFilter()
    raise ValueError(f"unknown accounts filter: {value!r}")


def accounts_filter_to_value(accounts_filter: AccountsFilter) -> Any:
    """Return the tagged form of an accounts filter."""
    match accounts_filter:
        case MemcmpFilter(offset=offset, base58=base58):
            return {"Memcmp": {"offset": offset, "base58": base58}}
        case DataSizeFilter(size=size):
            return {"DataSize": size}
        case TokenAccountStateFilter():
            return "TokenAccountState"
    raise TypeError(f"not an accounts filter: {accounts_filter!r}")


@dataclass
class ConfigGrpcRequestSlots:
    filter_by_commitment: bool | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ConfigGrpcRequestSlots:
        data = _mapping(data, "slots")
        return cls(_opt_bool(data.get("filter_by_commitment"), "filter_by_commitment"))

    def to_proto(self) -> dict[str, Any]:
        return {"filter_by_commitment": self.filter_by_commitment}


@dataclass
class ConfigGrpcRequestAccounts:
    account: list[str] = field(default_factory=list)
    owner: list[str] = field(default_factory=list)
    filters: list[AccountsFilter] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ConfigGrpcRequestAccounts:
        data = _mapping(data, "accounts")
        filters = data.get("filters", [])
        if not isinstance(filters, list):
            raise ValueError(f"filters: expected a list, got {filters!r}")
        return cls(
            account=_str_list(data.get("account", []), "account"),
            owner=_str_list(data.get("owner", []), "owner"),
            filters=[accounts_filter_from_value(item) for item in filters],
        )

    def to_proto(self) -> dict[str, Any]:
        return {
            "account": list(self.account),
            "owner": list(self.owner),
            "filters": [item.to_proto() for item in self.filters],
        }


@dataclass
class ConfigGrpcRequestTransactions:
    vote: bool | None = None
    failed: bool | None = None
    signature: str | None = None
    account_include: list[str] = field(default_factory=list)
    account_exclude: list[str] = field(default_factory=list)
    account_required: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ConfigGrpcRequestTransactions:
        data = _mapping(data, "transactions")
        return cls(
            vote=_opt_bool(data.get("vote"), "vote"),
            failed=_opt_bool(data.get("failed"), "failed"),
            signature=_opt_str(data.get("signature"), "signature"),
            account_include=_str_list(data.get("account_include", []), "account_include"),
            account_exclude=_str_list(data.get("account_exclude", []), "account_exclude"),
            account_required=_str_list(data.get("account_required", []), "account_required"),
        )

    def to_proto(self) -> dict[str, Any]:
        return {
            "vote": self.vote,
            "failed": self.failed,
            "signature": self.signature,
            "account_include": list(self.account_include),
            "account_exclude": list(self.account_exclude),
            "account_required": list(self.account_required),
        }


@dataclass
class ConfigGrpcRequestBlocks:
    account_include: list[str] = field(default_factory=list)
    include_transactions: bool | None = None
    include_accounts: bool | None = None
    include_entries: bool | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ConfigGrpcRequestBlocks:
        data = _mapping(data, "blocks")
        return cls(
            account_include=_str_list(data.get("account_include", []), "account_include"),
            include_transactions=_opt_bool(data.get("include_transactions"), "include_transactions"),
            include_accounts=_opt_bool(data.get("include_accounts"), "include_accounts"),
            include_entries=_opt_bool(data.get("include_entries"), "include_entries"),
        )

    def to_proto(self) -> dict[str, Any]:
        return {
            "account_include": list(self.account_include),
            "include_transactions": self.include_transactions,
            "include_accounts": self.include_accounts,
            "include_entries": self.include_entries,
        }


@dataclass
class ConfigGrpcRequestAccountsDataSlice:
    offset: int
    length: int

    @classmethod
    def from_dict(cls, data: Any) -> ConfigGrpcRequestAccountsDataSlice:
        data = _mapping(data, "accounts_data_slice")
        return cls(
            offset=_u64(_required(data, "offset", "accounts_data_slice"), "offset"),
            length=_u64(_required(data, "length", "accounts_data_slice"), "length"),
        )

    def to_proto(self) -> dict[str, Any]:
        return {"offset": self.offset, "length": self.length}


@dataclass
class ConfigGrpcRequest:
    """A complete subscription request as written in a config file."""

    slots: dict[str, ConfigGrpcRequestSlots] = field(default_factory=dict)
    accounts: dict[str, ConfigGrpcRequestAccounts] = field(default_factory=dict)
    transactions: dict[str, ConfigGrpcRequestTransactions] = field(default_factory=dict)
    entries: set[str] = field(default_factory=set)
    blocks: dict[str, ConfigGrpcRequestBlocks] = field(default_factory=dict)
    blocks_meta: set[str] = field(default_factory=set)
    commitment: ConfigGrpcRequestCommitment | None = None
    accounts_data_slice: list[ConfigGrpcRequestAccountsDataSlice] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ConfigGrpcRequest:
        data = _mapping(data, "request")
        commitment = data.get("commitment")
        if commitment is not None:
            try:
                commitment = ConfigGrpcRequestCommitment(commitment)
            except ValueError as exc:
                raise ValueError(f"unknown commitment: {commitment!r}") from exc
        slices = data.get("accounts_data_slice", [])
        if not isinstance(slices, list):
            raise ValueError(f"accounts_data_slice: expected a list, got {slices!r}")
        return cls(
            slots=_named_map(data.get("slots", {}), "slots", ConfigGrpcRequestSlots.from_dict),
            accounts=_named_map(
                data.get("accounts", {}), "accounts", ConfigGrpcRequestAccounts.from_dict
            ),
            transactions=_named_map(
                data.get("transactions", {}),
                "transactions",
                ConfigGrpcRequestTransactions.from_dict,
            ),
            entries=set(_str_list(data.get("entries", []), "entries")),
            blocks=_named_map(data.get("blocks", {}), "blocks", ConfigGrpcRequestBlocks.from_dict),
            blocks_meta=set(_str_list(data.get("blocks_meta", []), "blocks_meta")),
            commitment=commitment,
            accounts_data_slice=[ConfigGrpcRequestAccountsDataSlice.from_dict(s) for s in slices],
        )

    def to_proto(self) -> dict[str, Any]:
        return {
            "slots": {name: item.to_proto() for name, item in self.slots.items()},
            "accounts": {name: item.to_proto() for name, item in self.accounts.items()},
            "transactions": {name: item.to_proto() for name, item in self.transactions.items()},
            "entry": {name: {} for name in self.entries},
            "blocks": {name: item.to_proto() for name, item in self.blocks.items()},
            "blocks_meta": {name: {} for name in self.blocks_meta},
            "commitment": self.commitment.to_proto() if self.commitment is not None else None,
            "accounts_data_slice": [item.to_proto() for item in self.accounts_data_slice],
            "ping": None,
        }