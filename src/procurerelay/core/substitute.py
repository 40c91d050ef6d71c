"""
Substitute data used when the upstream procurement API cannot be reached.

Payloads have the same shape as live ones (counts, paging, items) so the
relay can always forward something. Output is fixed per kind.
"""

from __future__ import annotations

from typing import Any

from .models import ITEM_TYPES, DataKind, FetchParams, Payload

SAMPLE_PAGE_NO = 1
SAMPLE_NUM_OF_ROWS = 10

_SAMPLES: dict[DataKind, tuple[int, tuple[dict[str, Any], ...]]] = {
    DataKind.BID_NOTICE: (
        100,
        (
            {
                "bidNtceNo": "2025-001",
                "bidNtceNm": "AI 시스템 구축 사업",
                "dminsttNm": "과학기술정보통신부",
                "bidMethdNm": "일반입찰",
                "presmptPrce": "500000000",
                "bidNtceDt": "2025-01-01",
                "opengDt": "2025-01-15",
            },
            {
                "bidNtceNo": "2025-002",
                "bidNtceNm": "클라우드 인프라 구축",
                "dminsttNm": "행정안전부",
                "bidMethdNm": "일반입찰",
                "presmptPrce": "300000000",
                "bidNtceDt": "2025-01-02",
                "opengDt": "2025-01-16",
            },
        ),
    ),
    DataKind.PRE_NOTICE: (
        50,
        (
            {
                "preBidNtceNo": "PRE-2025-001",
                "preBidNtceNm": "사전공고 AI 시스템",
                "dminsttNm": "과학기술정보통신부",
                "preBidNtceDt": "2025-01-01",
            },
        ),
    ),
    DataKind.CONTRACT: (
        75,
        (
            {
                "cntrctNo": "CTR-2025-001",
                "cntrctNm": "AI 시스템 구축 계약",
                "dminsttNm": "과학기술정보통신부",
                "cntrctMthdNm": "일반계약",
                "cntrctPrce": "500000000",
                "cntrctDt": "2025-01-01",
            },
        ),
    ),
}


def generate(kind: DataKind) -> Payload:
    """Return the fixed substitute payload for ``kind``."""
    total_count, samples = _SAMPLES[kind]
    item_type = ITEM_TYPES[kind]
    return Payload(
        kind=kind,
        total_count=total_count,
        page_no=SAMPLE_PAGE_NO,
        num_of_rows=SAMPLE_NUM_OF_ROWS,
        items=tuple(item_type.model_validate(sample) for sample in samples),
    )


def generate_page(kind: DataKind, params: FetchParams | None = None) -> Payload:
    """Substitute payload that echoes the requested paging.

    Items are cut to ``num_of_rows`` so the payload stays valid for small
    page sizes.
    """
    params = params or FetchParams()
    sample = generate(kind)
    return sample.model_copy(
        update={
            "page_no": params.page_no,
            "num_of_rows": params.num_of_rows,
            "items": sample.items[: params.num_of_rows],
        }
    )


def generate_detail(kind: DataKind, key: str) -> Payload:
    """Single-item substitute payload re-keyed to ``key``."""
    sample = generate(kind)
    first = sample.items[0]
    item_type = ITEM_TYPES[kind]
    item = item_type.model_validate({**first.to_wire(), item_type.key_field: key})
    return sample.model_copy(
        update={"total_count": 1, "page_no": 1, "num_of_rows": 1, "items": (item,)}
    )
