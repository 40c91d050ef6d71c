from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from procurerelay.core.config.loader import ENV_OVERRIDES
from procurerelay.core.config.models import AppConfig, UpstreamConfig, WebhookConfig
from procurerelay.core.delivery.webhook import WebhookSender
from procurerelay.core.models import DataKind
from procurerelay.core.relay.dispatcher import RelayDispatcher
from procurerelay.core.upstream.client import LIST_OPERATIONS, UpstreamClient

UPSTREAM_BASE = "https://upstream.test/1230000/BidPublicInfoService02"
WEBHOOK_URL = "https://hooks.test/procurement"
SERVICE_KEY = "abc+def/ghi=="
WEBHOOK_KEY = "webhook-secret"

BID_ITEMS = [
    {
        "bidNtceNo": "20250112345",
        "bidNtceNm": "차세대 전자조달 시스템 고도화",
        "dminsttNm": "조달청",
        "bidMethdNm": "전자입찰",
        "presmptPrce": "1250000000",
        "bidNtceDt": "2025-02-03 10:00:00",
        "opengDt": "2025-02-20 11:00:00",
        "ntceInsttNm": "조달청 정보기획과",
    },
    {
        "bidNtceNo": "20250112346",
        "bidNtceNm": "데이터센터 냉각설비 교체",
        "dminsttNm": "국가정보자원관리원",
        "bidMethdNm": "전자입찰",
        "presmptPrce": 480000000,
        "bidNtceDt": "2025-02-04 09:00:00",
        "opengDt": "2025-02-21 11:00:00",
    },
]

PRE_NOTICE_ITEMS = [
    {
        "preBidNtceNo": "R25BK00012345",
        "preBidNtceNm": "공공 클라우드 전환 컨설팅",
        "dminsttNm": "행정안전부",
        "preBidNtceDt": "2025-01-28",
    },
]

CONTRACT_ITEMS = [
    {
        "cntrctNo": "2025-C-00077",
        "cntrctNm": "통합 유지관리 용역",
        "dminsttNm": "한국지능정보사회진흥원",
        "cntrctMthdNm": "제한경쟁",
        "cntrctPrce": "310000000",
        "cntrctDt": "2025-01-15",
    },
]

ITEMS_BY_OPERATION = {
    LIST_OPERATIONS[DataKind.BID_NOTICE]: BID_ITEMS,
    LIST_OPERATIONS[DataKind.PRE_NOTICE]: PRE_NOTICE_ITEMS,
    LIST_OPERATIONS[DataKind.CONTRACT]: CONTRACT_ITEMS,
}


def envelope(
    items: Any,
    total_count: int | None = None,
    page_no: int = 1,
    num_of_rows: int = 10,
    result_code: str = "00",
    result_msg: str = "NORMAL SERVICE.",
) -> dict[str, Any]:
    """Upstream response envelope around ``items``."""
    return {
        "response": {
            "header": {"resultCode": result_code, "resultMsg": result_msg},
            "body": {
                "items": items,
                "numOfRows": num_of_rows,
                "pageNo": page_no,
                "totalCount": len(items) if total_count is None else total_count,
            },
        }
    }


def healthy_upstream(request: httpx.Request) -> httpx.Response:
    operation = request.url.path.rsplit("/", 1)[-1]
    items = ITEMS_BY_OPERATION.get(operation)
    if items is None:
        return httpx.Response(404, text="unknown operation")
    return httpx.Response(200, json=envelope(items, total_count=len(items) * 40))


def upstream_down(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def webhook_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"received": True})


def webhook_error(request: httpx.Request) -> httpx.Response:
    return httpx.Response(500, text="internal error")


class FakeNetwork:
    """Routes requests to the upstream or webhook handler by host."""

    def __init__(self) -> None:
        self.upstream: Callable[[httpx.Request], httpx.Response] = healthy_upstream
        self.webhook: Callable[[httpx.Request], httpx.Response] = webhook_ok
        self.upstream_requests: list[httpx.Request] = []
        self.webhook_requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "upstream.test":
            self.upstream_requests.append(request)
            return self.upstream(request)
        if request.url.host == "hooks.test":
            self.webhook_requests.append(request)
            return self.webhook(request)
        raise AssertionError(f"Unexpected request to {request.url}")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def webhook_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.webhook_requests]

    def bodies_by_type(self) -> dict[str, dict[str, Any]]:
        return {body["metadata"]["type"]: body for body in self.webhook_bodies()}


@pytest.fixture()
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture()
def upstream_client(network: FakeNetwork) -> UpstreamClient:
    return UpstreamClient(UPSTREAM_BASE, SERVICE_KEY, timeout=5.0, client=network.client())


@pytest.fixture()
def sender(network: FakeNetwork) -> WebhookSender:
    return WebhookSender(WEBHOOK_URL, WEBHOOK_KEY, timeout=5.0, client=network.client())


@pytest.fixture()
def dispatcher(upstream_client: UpstreamClient, sender: WebhookSender) -> RelayDispatcher:
    return RelayDispatcher(upstream_client, sender)


@pytest.fixture()
def app_config() -> AppConfig:
    return AppConfig(
        upstream=UpstreamConfig(base_url=UPSTREAM_BASE, service_key=SERVICE_KEY),
        webhook=WebhookConfig(url=WEBHOOK_URL, api_key=WEBHOOK_KEY),
    )


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """No relay environment variables and no configs/app.yaml in cwd."""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
