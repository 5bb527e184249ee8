"""Tests for the ``flask tokens`` command group."""

from __future__ import annotations

from datetime import timedelta

import pytest

from tokenkeeper.core.extensions import get_token_service
from tokenkeeper.services._shared.ports import SequenceTokenGenerator


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def token_service(app):
    return get_token_service(app)


def _issue(service, user_id: str, token: str, payload: str = "p") -> None:
    service.save_user_token(
        user_id, SequenceTokenGenerator([token]), payload, timedelta(seconds=60)
    )


def test_issue_prints_new_token(runner, token_service):
    result = runner.invoke(args=["tokens", "issue", "u1", "--ttl", "60", "--payload", "hello"])

    assert result.exit_code == 0, result.output
    token = result.output.strip()
    assert token
    assert token_service.load_user_token("u1", token).token_data == "hello"


def test_issue_rejects_non_positive_ttl(runner):
    result = runner.invoke(args=["tokens", "issue", "u1", "--ttl", "0"])
    assert result.exit_code != 0


def test_list_shows_tokens_and_payloads(runner, token_service):
    _issue(token_service, "u1", "abc", "payload1")

    result = runner.invoke(args=["tokens", "list", "u1"])

    assert result.exit_code == 0, result.output
    assert "abc  payload1" in result.output


def test_list_empty(runner):
    result = runner.invoke(args=["tokens", "list", "nobody"])
    assert result.output.strip() == "(no tokens)"


def test_extend_known_and_unknown_tokens(runner, token_service):
    _issue(token_service, "u1", "abc")

    ok = runner.invoke(args=["tokens", "extend", "u1", "abc", "--ttl", "120"])
    assert ok.exit_code == 0, ok.output
    assert "Extended by 120s" in ok.output

    missing = runner.invoke(args=["tokens", "extend", "u1", "ghost", "--ttl", "120"])
    assert missing.exit_code == 1
    assert "Token not found" in missing.output


def test_cleanup_reports_removed_entries(runner, token_service):
    _issue(token_service, "u1", "abc")
    token_service.store.delete_token("abc")

    result = runner.invoke(args=["tokens", "cleanup", "u1"])

    assert result.exit_code == 0, result.output
    assert "Removed 1 stale entries" in result.output


def test_revoke_and_revoke_all(runner, token_service):
    for token in ("a", "b", "c"):
        _issue(token_service, "u1", token)

    revoked = runner.invoke(args=["tokens", "revoke", "u1", "a"])
    assert "Revoked 1 tokens" in revoked.output

    aborted = runner.invoke(args=["tokens", "revoke-all", "u1"], input="n\n")
    assert aborted.exit_code == 1
    assert len(token_service.load_user_token_list("u1")) == 2

    confirmed = runner.invoke(args=["tokens", "revoke-all", "u1", "--yes"])
    assert confirmed.exit_code == 0, confirmed.output
    assert "Revoked 2 tokens" in confirmed.output
    assert token_service.load_user_token_list("u1") == []


def test_each_command_logs_under_its_own_request_id(runner, caplog):
    with caplog.at_level("INFO", logger="tokenkeeper"):
        runner.invoke(args=["tokens", "issue", "u1", "--ttl", "60"])
        runner.invoke(args=["tokens", "issue", "u1", "--ttl", "60"])

    ids = [r.request_id for r in caplog.records if r.getMessage() == "User token issued"]
    assert len(ids) == 2
    assert all(i.startswith("cli-") for i in ids)
    assert ids[0] != ids[1]
