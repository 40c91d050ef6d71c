"""
Relay data model.

Defines the three procurement data kinds, their item records, the paged
payload that travels from upstream (or the substitute generator) to the
webhook, and the per-dispatch outcome records.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Enums
# =============================================================================


class DataKind(str, Enum):
    """Procurement data categories handled by the relay.

    Values are the labels sent as ``metadata.type`` to the webhook.
    """

    BID_NOTICE = "bid_notice"
    PRE_NOTICE = "pre_notice"
    CONTRACT = "contract_status"

    @property
    def status_key(self) -> str:
        """Key used for this kind in relay status dictionaries."""
        return _STATUS_KEYS[self]

    @property
    def label(self) -> str:
        """Human readable name."""
        return _LABELS[self]

    @classmethod
    def parse(cls, value: str) -> DataKind:
        """Resolve a kind from its value, status key or a dashed alias."""
        normalized = value.strip().lower().replace("-", "_")
        for kind in cls:
            if normalized in (kind.value, kind.name.lower(), kind.status_key.lower()):
                return kind
        raise ValueError(f"Unknown data kind: {value!r}")


_STATUS_KEYS = {
    DataKind.BID_NOTICE: "bidNotice",
    DataKind.PRE_NOTICE: "preNotice",
    DataKind.CONTRACT: "contract",
}

_LABELS = {
    DataKind.BID_NOTICE: "bid notice",
    DataKind.PRE_NOTICE: "pre-notice",
    DataKind.CONTRACT: "contract",
}


class PayloadSource(str, Enum):
    """Where a dispatched payload came from."""

    LIVE = "live"
    SUBSTITUTE = "substitute"


# =============================================================================
# Items
# =============================================================================


class _Item(BaseModel):
    """Immutable procurement record.

    Unknown upstream fields are kept as received so a live item is
    forwarded without modification.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    key_field: ClassVar[str]

    @property
    def natural_key(self) -> str:
        return getattr(self, self.key_field)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class BidNoticeItem(_Item):
    """Bid notice (입찰공고)."""

    key_field: ClassVar[str] = "bidNtceNo"

    bidNtceNo: str = Field(min_length=1)
    bidNtceNm: str
    dminsttNm: str
    bidMethdNm: str | None = None
    presmptPrce: str | int | float | None = None
    bidNtceDt: str | None = None
    opengDt: str | None = None
    bidwinnrNm: str | None = None
    bidwinnrPrce: str | int | float | None = None
    bidNtceUrl: str | None = None
    dminsttUrl: str | None = None


class PreNoticeItem(_Item):
    """Pre-announcement of an upcoming bid (사전공고)."""

    key_field: ClassVar[str] = "preBidNtceNo"

    preBidNtceNo: str = Field(min_length=1)
    preBidNtceNm: str
    dminsttNm: str
    preBidNtceDt: str | None = None


class ContractItem(_Item):
    """Awarded contract (계약현황)."""

    key_field: ClassVar[str] = "cntrctNo"

    cntrctNo: str = Field(min_length=1)
    cntrctNm: str
    dminsttNm: str
    cntrctMthdNm: str | None = None
    cntrctPrce: str | int | float | None = None
    cntrctDt: str | None = None
    cntrctUrl: str | None = None


Item = Union[BidNoticeItem, PreNoticeItem, ContractItem]

ITEM_TYPES: dict[DataKind, type[_Item]] = {
    DataKind.BID_NOTICE: BidNoticeItem,
    DataKind.PRE_NOTICE: PreNoticeItem,
    DataKind.CONTRACT: ContractItem,
}


# =============================================================================
# Payload
# =============================================================================


def _unwrap_items(raw: Any) -> list[Any]:
    """Normalize the shapes the upstream uses for ``body.items``.

    Seen in practice: a plain list, ``{"item": [...]}``, ``{"item": {...}}``
    for a single result, and an empty string when there are no results.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, Mapping):
        inner = raw.get("item")
        if inner is None or inner == "":
            return []
        return list(inner) if isinstance(inner, list) else [inner]
    if isinstance(raw, list):
        return raw
    raise ValueError(f"Unrecognized items structure: {type(raw).__name__}")


class Payload(BaseModel):
    """One page of procurement data for a single kind.

    ``total_count`` is the upstream's claimed grand total and is
    independent of ``len(items)``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: DataKind
    total_count: int = Field(alias="totalCount", ge=0)
    page_no: int = Field(alias="pageNo", ge=1)
    num_of_rows: int = Field(alias="numOfRows", ge=1)
    items: tuple[Item, ...] = ()

    @model_validator(mode="after")
    def _check_items(self) -> Payload:
        if len(self.items) > self.num_of_rows:
            raise ValueError(
                f"{len(self.items)} items exceed numOfRows={self.num_of_rows}"
            )
        expected = ITEM_TYPES[self.kind]
        for item in self.items:
            if not isinstance(item, expected):
                raise ValueError(
                    f"{type(item).__name__} is not a {expected.__name__} "
                    f"for kind {self.kind.value}"
                )
        return self

    @classmethod
    def from_body(cls, kind: DataKind, body: Any) -> Payload:
        """Build a payload from an upstream ``response.body`` mapping.

        Raises:
            ValueError: If the body is not a mapping or fails validation
        """
        if not isinstance(body, Mapping):
            raise ValueError("Response body is not an object")

        item_type = ITEM_TYPES[kind]
        items = tuple(item_type.model_validate(raw) for raw in _unwrap_items(body.get("items")))

        return cls(
            kind=kind,
            total_count=body.get("totalCount", len(items)),
            page_no=body.get("pageNo"),
            num_of_rows=body.get("numOfRows"),
            items=items,
        )

    @property
    def item_count(self) -> int:
        return len(self.items)

    def to_wire(self) -> dict[str, Any]:
        """Camel-cased dictionary as forwarded to the webhook."""
        return {
            "totalCount": self.total_count,
            "pageNo": self.page_no,
            "numOfRows": self.num_of_rows,
            "items": [item.to_wire() for item in self.items],
        }


# =============================================================================
# Request parameters
# =============================================================================


@dataclass(frozen=True)
class FetchParams:
    """Paging and date window for an upstream query.

    Dates are passed through untouched; the upstream expects ``YYYYMMDD``.
    """

    page_no: int = 1
    num_of_rows: int = 10
    from_date: str | None = None
    to_date: str | None = None

    def __post_init__(self) -> None:
        if self.page_no < 1:
            raise ValueError("page_no must be >= 1")
        if self.num_of_rows < 1:
            raise ValueError("num_of_rows must be >= 1")

    def to_query(self) -> dict[str, str]:
        query = {
            "pageNo": str(self.page_no),
            "numOfRows": str(self.num_of_rows),
        }
        if self.from_date:
            query["fromDt"] = self.from_date
        if self.to_date:
            query["toDt"] = self.to_date
        return query


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class RelayOutcome:
    """Result of one dispatch for one data kind."""

    kind: DataKind
    delivered: bool
    item_count: int
    duration_ms: int
    # None when the dispatch itself broke before a payload was ready
    source: PayloadSource | None = None
    payload: Payload | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "delivered": self.delivered,
            "itemCount": self.item_count,
            "durationMs": self.duration_ms,
            "source": self.source.value if self.source else None,
        }
        if self.payload is not None:
            data["totalCount"] = self.payload.total_count
            data["pageNo"] = self.payload.page_no
            data["numOfRows"] = self.payload.num_of_rows
        return data


@dataclass(frozen=True)
class AggregateResult:
    """Outcomes of one relay run across all data kinds."""

    outcomes: tuple[RelayOutcome, ...] = ()

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.delivered)

    @property
    def complete(self) -> bool:
        """True when every kind reported an outcome."""
        return {outcome.kind for outcome in self.outcomes} == set(DataKind)

    def outcome_for(self, kind: DataKind) -> RelayOutcome | None:
        for outcome in self.outcomes:
            if outcome.kind is kind:
                return outcome
        return None

    def relay_status(self) -> dict[str, bool]:
        """Delivery flag per kind; kinds without an outcome report False."""
        status = {kind.status_key: False for kind in DataKind}
        for outcome in self.outcomes:
            status[outcome.kind.status_key] = outcome.delivered
        return status

    @property
    def summary(self) -> str:
        return f"{self.success_count}/{len(DataKind)} data sets were relayed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "successCount": self.success_count,
            "complete": self.complete,
            "results": self.relay_status(),
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "message": self.summary,
        }
