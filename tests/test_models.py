from __future__ import annotations

import pytest
from pydantic import ValidationError

from procurerelay.core.models import (
    AggregateResult,
    BidNoticeItem,
    ContractItem,
    DataKind,
    FetchParams,
    Payload,
    PayloadSource,
    RelayOutcome,
)

from conftest import BID_ITEMS, CONTRACT_ITEMS


def _body(items, num_of_rows=10, total_count=123, page_no=1):
    return {"items": items, "numOfRows": num_of_rows, "pageNo": page_no, "totalCount": total_count}


def test_data_kind_wire_labels_and_status_keys():
    assert DataKind.BID_NOTICE.value == "bid_notice"
    assert DataKind.PRE_NOTICE.value == "pre_notice"
    assert DataKind.CONTRACT.value == "contract_status"
    assert [kind.status_key for kind in DataKind] == ["bidNotice", "preNotice", "contract"]


@pytest.mark.parametrize(
    "value, expected",
    [
        ("bid-notice", DataKind.BID_NOTICE),
        ("bidNotice", DataKind.BID_NOTICE),
        ("PRE_NOTICE", DataKind.PRE_NOTICE),
        ("contract", DataKind.CONTRACT),
        ("contract_status", DataKind.CONTRACT),
    ],
)
def test_data_kind_parse(value, expected):
    assert DataKind.parse(value) is expected


def test_data_kind_parse_unknown():
    with pytest.raises(ValueError):
        DataKind.parse("award")


def test_from_body_with_item_list():
    payload = Payload.from_body(DataKind.BID_NOTICE, _body(BID_ITEMS))

    assert payload.total_count == 123
    assert payload.page_no == 1
    assert payload.num_of_rows == 10
    assert payload.item_count == 2
    assert all(isinstance(item, BidNoticeItem) for item in payload.items)
    assert payload.items[0].natural_key == "20250112345"


def test_from_body_with_wrapped_items():
    wrapped_list = Payload.from_body(DataKind.CONTRACT, _body({"item": CONTRACT_ITEMS}))
    wrapped_single = Payload.from_body(DataKind.CONTRACT, _body({"item": CONTRACT_ITEMS[0]}))

    assert wrapped_list.item_count == 1
    assert wrapped_single.item_count == 1
    assert wrapped_single.items[0].cntrctNo == "2025-C-00077"


@pytest.mark.parametrize("empty", ["", None, [], {"item": ""}])
def test_from_body_with_no_items(empty):
    payload = Payload.from_body(DataKind.PRE_NOTICE, _body(empty, total_count=0))

    assert payload.items == ()
    assert payload.total_count == 0


def test_from_body_numeric_strings_are_coerced():
    body = {"items": BID_ITEMS, "numOfRows": "10", "pageNo": "2", "totalCount": "80"}
    payload = Payload.from_body(DataKind.BID_NOTICE, body)

    assert (payload.total_count, payload.page_no, payload.num_of_rows) == (80, 2, 10)


def test_from_body_rejects_more_items_than_rows():
    with pytest.raises(ValueError, match="exceed numOfRows"):
        Payload.from_body(DataKind.BID_NOTICE, _body(BID_ITEMS, num_of_rows=1))


def test_items_equal_to_rows_is_valid():
    items = [dict(BID_ITEMS[0], bidNtceNo=f"2025-{i:03d}") for i in range(10)]
    payload = Payload.from_body(DataKind.BID_NOTICE, _body(items, num_of_rows=10))

    assert payload.item_count == payload.num_of_rows == 10


def test_from_body_rejects_missing_required_field():
    broken = {k: v for k, v in BID_ITEMS[0].items() if k != "bidNtceNm"}
    with pytest.raises(ValueError):
        Payload.from_body(DataKind.BID_NOTICE, _body([broken]))


def test_from_body_rejects_other_kind_records():
    with pytest.raises(ValueError):
        Payload.from_body(DataKind.CONTRACT, _body(BID_ITEMS))


def test_from_body_rejects_non_mapping():
    with pytest.raises(ValueError):
        Payload.from_body(DataKind.CONTRACT, ["not", "a", "body"])


def test_payload_rejects_items_of_wrong_type():
    item = ContractItem.model_validate(CONTRACT_ITEMS[0])
    with pytest.raises(ValidationError):
        Payload(kind=DataKind.BID_NOTICE, total_count=1, page_no=1, num_of_rows=10, items=(item,))


def test_payload_bounds():
    with pytest.raises(ValidationError):
        Payload(kind=DataKind.BID_NOTICE, total_count=-1, page_no=1, num_of_rows=10)
    with pytest.raises(ValidationError):
        Payload(kind=DataKind.BID_NOTICE, total_count=0, page_no=0, num_of_rows=10)
    with pytest.raises(ValidationError):
        Payload(kind=DataKind.BID_NOTICE, total_count=0, page_no=1, num_of_rows=0)


def test_items_are_immutable():
    item = BidNoticeItem.model_validate(BID_ITEMS[0])
    with pytest.raises(ValidationError):
        item.bidNtceNm = "changed"


def test_to_wire_reproduces_upstream_items():
    payload = Payload.from_body(DataKind.BID_NOTICE, _body(BID_ITEMS, total_count=80))

    wire = payload.to_wire()

    assert wire == {"totalCount": 80, "pageNo": 1, "numOfRows": 10, "items": BID_ITEMS}
    # Unknown fields and numeric prices survive unchanged
    assert wire["items"][0]["ntceInsttNm"] == "조달청 정보기획과"
    assert wire["items"][1]["presmptPrce"] == 480000000


def test_fetch_params_query():
    params = FetchParams(page_no=2, num_of_rows=50, from_date="20250101", to_date="20250131")

    assert params.to_query() == {
        "pageNo": "2",
        "numOfRows": "50",
        "fromDt": "20250101",
        "toDt": "20250131",
    }
    assert FetchParams().to_query() == {"pageNo": "1", "numOfRows": "10"}


@pytest.mark.parametrize("page_no, num_of_rows", [(0, 10), (1, 0), (-3, 5)])
def test_fetch_params_rejects_bad_paging(page_no, num_of_rows):
    with pytest.raises(ValueError):
        FetchParams(page_no=page_no, num_of_rows=num_of_rows)


def _outcome(kind, delivered):
    return RelayOutcome(kind=kind, delivered=delivered, item_count=1, duration_ms=5, source=PayloadSource.LIVE)


def test_aggregate_result_counts_delivered():
    result = AggregateResult(
        outcomes=(
            _outcome(DataKind.BID_NOTICE, True),
            _outcome(DataKind.PRE_NOTICE, False),
            _outcome(DataKind.CONTRACT, True),
        )
    )

    assert result.success_count == 2
    assert result.complete
    assert result.relay_status() == {"bidNotice": True, "preNotice": False, "contract": True}
    assert result.summary == "2/3 data sets were relayed"
    assert result.to_dict()["results"] == result.relay_status()


def test_partial_aggregate_result():
    result = AggregateResult(outcomes=(_outcome(DataKind.CONTRACT, True),))

    assert not result.complete
    assert result.success_count == 1
    assert result.outcome_for(DataKind.BID_NOTICE) is None
    assert result.relay_status() == {"bidNotice": False, "preNotice": False, "contract": True}


def test_outcome_to_dict():
    payload = Payload.from_body(DataKind.BID_NOTICE, _body(BID_ITEMS, total_count=80))
    outcome = RelayOutcome(
        kind=DataKind.BID_NOTICE,
        delivered=False,
        item_count=2,
        duration_ms=12,
        source=PayloadSource.LIVE,
        payload=payload,
    )

    assert outcome.to_dict() == {
        "kind": "bid_notice",
        "delivered": False,
        "itemCount": 2,
        "durationMs": 12,
        "source": "live",
        "totalCount": 80,
        "pageNo": 1,
        "numOfRows": 10,
    }
