from __future__ import annotations

import pytest
from typer.testing import CliRunner

from procurerelay import __version__
from procurerelay.cli.commands import relay as relay_commands
from procurerelay.cli.main import app
from procurerelay.core.relay.service import RelayService

from conftest import SERVICE_KEY, UPSTREAM_BASE, WEBHOOK_URL, upstream_down, webhook_error

runner = CliRunner()


@pytest.fixture()
def relay_env(clean_env, monkeypatch, network):
    """Configured relay whose HTTP traffic goes to the fake network."""
    monkeypatch.setenv("WEBHOOK_URL", WEBHOOK_URL)
    monkeypatch.setenv("G2B_BASE_URL", UPSTREAM_BASE)
    monkeypatch.setenv("G2B_SERVICE_KEY", SERVICE_KEY)
    monkeypatch.setattr(
        relay_commands,
        "build_service",
        lambda config: RelayService(config, client=network.client()),
    )
    return network


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_relay_all(relay_env):
    result = runner.invoke(app, ["relay", "all", "-n", "20", "--from", "20250101"])

    assert result.exit_code == 0, result.output
    assert "3/3 data sets were relayed" in result.output
    assert len(relay_env.webhook_requests) == 3
    query = relay_env.upstream_requests[0].url.params
    assert query["numOfRows"] == "20"
    assert query["fromDt"] == "20250101"


def test_relay_all_with_upstream_down(relay_env):
    relay_env.upstream = upstream_down

    result = runner.invoke(app, ["relay", "all"])

    assert result.exit_code == 0, result.output
    assert "3/3 data sets were relayed" in result.output
    totals = {body["metadata"]["type"]: body["metadata"]["totalCount"] for body in relay_env.webhook_bodies()}
    assert totals == {"bid_notice": 100, "pre_notice": 50, "contract_status": 75}


def test_relay_all_nothing_delivered(relay_env):
    relay_env.webhook = webhook_error

    result = runner.invoke(app, ["relay", "all"])

    assert result.exit_code == 1
    assert "0/3 data sets were relayed" in result.output


def test_relay_all_without_webhook(clean_env):
    result = runner.invoke(app, ["relay", "all"])

    assert result.exit_code == 2
    assert "WEBHOOK_URL" in result.output


def test_relay_send(relay_env):
    result = runner.invoke(app, ["relay", "send", "contract"])

    assert result.exit_code == 0, result.output
    assert relay_env.webhook_bodies()[0]["metadata"]["type"] == "contract_status"


def test_relay_send_delivery_failure(relay_env):
    relay_env.webhook = webhook_error

    result = runner.invoke(app, ["relay", "send", "bid-notice"])

    assert result.exit_code == 1


def test_relay_send_unknown_kind(relay_env):
    result = runner.invoke(app, ["relay", "send", "award"])

    assert result.exit_code == 2
    assert relay_env.webhook_requests == []


def test_test_webhook(relay_env):
    result = runner.invoke(app, ["relay", "test-webhook"])

    assert result.exit_code == 0
    assert "Webhook connection OK" in result.output

    relay_env.webhook = webhook_error
    assert runner.invoke(app, ["relay", "test-webhook"]).exit_code == 1


def test_missing_config_file(clean_env):
    result = runner.invoke(app, ["--config", "missing.yaml", "relay", "all"])

    assert result.exit_code == 2
    assert "Configuration error" in result.output


def test_upstream_bids_without_service_key(clean_env):
    result = runner.invoke(app, ["upstream", "bids", "--keyword", "AI"])

    assert result.exit_code == 0, result.output
    assert "100 total" in result.output
    assert "substitute data" in result.output


def test_upstream_bids_rejects_short_keyword(clean_env):
    result = runner.invoke(app, ["upstream", "bids", "--keyword", "A"])

    assert result.exit_code == 2


def test_upstream_status_without_service_key(clean_env):
    result = runner.invoke(app, ["upstream", "status"])

    assert result.exit_code == 0, result.output
    assert "available" in result.output
    assert SERVICE_KEY not in result.output
