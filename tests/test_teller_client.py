"""Unit tests for the Teller client over a fake transport."""

from __future__ import annotations

from decimal import Decimal
from urllib.error import URLError

import pytest

from backend.providers.teller.client import TellerClient, TellerSettings
from backend.providers.teller.errors import ProviderError
from shared.models import ConnectionStatus
from tests.fakes import FakeTellerOpener, teller_account, teller_transaction

TOKEN = "token_abc"
TOKEN_AUTH = "Basic dG9rZW5fYWJjOg=="


def _client(opener: FakeTellerOpener) -> TellerClient:
    return TellerClient(TellerSettings(base_url="https://api.teller.test", max_workers=4), opener=opener)


def _error_body(code: str | None, message: str = "Provider failure") -> dict[str, object]:
    error: dict[str, object] = {"message": message}
    if code is not None:
        error["code"] = code
    return {"error": error}


def test_list_transactions_drops_pending_and_sends_basic_auth() -> None:
    opener = FakeTellerOpener(
        routes={
            ("GET", "/accounts/acc_1/transactions"): [
                teller_transaction("txn_1", status="pending"),
                teller_transaction("txn_2", status="posted", amount="-4.50"),
                teller_transaction("txn_3", status="posted", amount="12"),
            ]
        }
    )

    transactions = _client(opener).list_transactions("acc_1", TOKEN, count=50)

    assert [transaction.id for transaction in transactions] == ["txn_2", "txn_3"]
    assert all(transaction.status != "pending" for transaction in transactions)
    assert transactions[0].amount == Decimal("-4.50")
    assert transactions[0].currency == "USD"
    assert transactions[0].category == "dining"
    request = opener.requests[0]
    assert request.get_header("Authorization") == TOKEN_AUTH
    assert opener.query_of(request) == {"count": ["50"]}


def test_list_transactions_latest_caps_count_at_one_hundred() -> None:
    opener = FakeTellerOpener(routes={("GET", "/accounts/acc_1/transactions"): []})

    _client(opener).list_transactions("acc_1", TOKEN, latest=True, count=7)

    assert opener.query_of(opener.requests[0]) == {"count": ["100"]}


@pytest.mark.parametrize("count", [None, 0])
def test_list_transactions_omits_falsy_query_params(count) -> None:
    opener = FakeTellerOpener(routes={("GET", "/accounts/acc_1/transactions"): []})

    _client(opener).list_transactions("acc_1", TOKEN, count=count)

    assert opener.requests[0].full_url == "https://api.teller.test/accounts/acc_1/transactions"


def test_get_account_balance_uses_first_running_balance_after_pending_filter() -> None:
    opener = FakeTellerOpener(
        routes={
            ("GET", "/accounts/acc_1/transactions"): [
                teller_transaction("txn_0", status="pending", running_balance="999.00"),
                teller_transaction("txn_1", running_balance=None),
                teller_transaction("txn_2", running_balance="1250.75"),
                teller_transaction("txn_3", running_balance="1300.00"),
            ]
        }
    )

    balance = _client(opener).get_account_balance("acc_1", TOKEN)

    assert balance.amount == Decimal("1250.75")
    assert balance.currency == "USD"
    assert opener.query_of(opener.requests[0]) == {"count": ["20"]}


def test_get_account_balance_defaults_to_zero_without_running_balance() -> None:
    opener = FakeTellerOpener(routes={("GET", "/accounts/acc_1/transactions"): []})

    balance = _client(opener).get_account_balance("acc_1", TOKEN)

    assert balance.amount == Decimal("0")
    assert balance.currency == "USD"


def test_list_accounts_fetches_one_balance_per_account() -> None:
    opener = FakeTellerOpener(
        routes={
            ("GET", "/accounts"): [teller_account("acc_1"), teller_account("acc_2", name="Savings")],
            ("GET", "/accounts/acc_1/transactions"): [teller_transaction("txn_1", running_balance="10.00")],
            ("GET", "/accounts/acc_2/transactions"): [
                teller_transaction("txn_2", account_id="acc_2", running_balance="20.00")
            ],
        }
    )

    accounts = _client(opener).list_accounts(TOKEN)

    assert [account.id for account in accounts] == ["acc_1", "acc_2"]
    assert accounts[0].balance.amount == Decimal("10.00")
    assert accounts[1].balance.amount == Decimal("20.00")
    assert accounts[1].name == "Savings"
    assert accounts[0].institution is not None
    assert accounts[0].institution.name == "Chase"
    assert len(opener.requests) == 3


def test_list_accounts_fails_when_any_balance_fetch_fails() -> None:
    opener = FakeTellerOpener(
        routes={
            ("GET", "/accounts"): [teller_account("acc_1"), teller_account("acc_2")],
            ("GET", "/accounts/acc_1/transactions"): [],
            ("GET", "/accounts/acc_2/transactions"): (502, _error_body("institution.unavailable")),
        }
    )

    with pytest.raises(ProviderError) as error:
        _client(opener).list_accounts(TOKEN)

    assert error.value.code == "institution.unavailable"


def test_list_institutions_is_unauthenticated() -> None:
    opener = FakeTellerOpener(
        routes={
            ("GET", "/institutions"): [
                {"id": "chase", "name": "Chase", "capabilities": ["detail", "balance", "transaction"]}
            ]
        }
    )

    institutions = _client(opener).list_institutions()

    assert institutions[0].id == "chase"
    assert institutions[0].capabilities == ["detail", "balance", "transaction"]
    assert opener.requests[0].get_header("Authorization") is None


def test_get_raises_provider_error_for_classified_body() -> None:
    opener = FakeTellerOpener(
        routes={("GET", "/accounts"): (404, _error_body("enrollment.disconnected", "Enrollment gone"))}
    )

    with pytest.raises(ProviderError) as error:
        _client(opener).list_accounts(TOKEN)

    assert error.value.code == "enrollment.disconnected"
    assert error.value.message == "Enrollment gone"
    assert error.value.is_enrollment_failure is True


def test_get_returns_unclassifiable_error_body_as_is() -> None:
    opener = FakeTellerOpener(routes={("GET", "/accounts"): (500, {"detail": "unexpected"})})

    assert _client(opener)._get("/accounts", TOKEN) == {"detail": "unexpected"}


def test_get_closes_error_response_after_reading_body() -> None:
    opener = FakeTellerOpener(routes={("GET", "/accounts"): (500, {"detail": "unexpected"})})

    _client(opener)._get("/accounts", TOKEN)

    assert len(opener.error_bodies) == 1
    assert opener.error_bodies[0].closed is True


def test_list_accounts_rejects_account_without_id_before_fetching_balances() -> None:
    account = teller_account("acc_1")
    del account["id"]
    opener = FakeTellerOpener(routes={("GET", "/accounts"): [account]})

    with pytest.raises(ValueError, match="Missing required field 'id'"):
        _client(opener).list_accounts(TOKEN)

    assert len(opener.requests) == 1


def test_transport_failure_propagates_from_reads() -> None:
    opener = FakeTellerOpener(routes={("GET", "/institutions"): URLError("dns failure")})

    with pytest.raises(URLError):
        _client(opener).list_institutions()


@pytest.mark.parametrize(
    ("route", "expected"),
    [
        ([teller_account("acc_1")], ConnectionStatus.CONNECTED),
        (URLError("connection refused"), ConnectionStatus.CONNECTED),
        ((500, {"detail": "not a provider error"}), ConnectionStatus.CONNECTED),
        ((502, b"<html>bad gateway</html>"), ConnectionStatus.CONNECTED),
        ((404, _error_body("enrollment.disconnected")), ConnectionStatus.DISCONNECTED),
        ((404, _error_body("enrollment.disconnected.user_action.mfa_required")), ConnectionStatus.DISCONNECTED),
        ((502, _error_body("institution.unavailable")), ConnectionStatus.CONNECTED),
        ((400, _error_body(None)), ConnectionStatus.CONNECTED),
    ],
)
def test_get_connection_status_only_disconnects_on_enrollment_errors(route, expected) -> None:
    opener = FakeTellerOpener(routes={("GET", "/accounts"): route})

    assert _client(opener).get_connection_status(TOKEN) == expected
    assert len(opener.requests) == 1


def test_get_connection_status_does_not_fetch_balances() -> None:
    opener = FakeTellerOpener(routes={("GET", "/accounts"): [teller_account("acc_1")]})

    _client(opener).get_connection_status(TOKEN)

    assert opener.requests_for("/accounts/acc_1/transactions") == []


def test_healthcheck_maps_transport_failure_to_false() -> None:
    assert _client(FakeTellerOpener(routes={("GET", "/health"): {"status": "ok"}})).healthcheck() is True
    assert _client(FakeTellerOpener(routes={("GET", "/health"): URLError("timeout")})).healthcheck() is False
    assert _client(FakeTellerOpener(routes={("GET", "/health"): OSError("reset")})).healthcheck() is False


def test_healthcheck_treats_http_error_status_as_reachable() -> None:
    opener = FakeTellerOpener(routes={("GET", "/health"): (503, {"status": "degraded"})})

    assert _client(opener).healthcheck() is True


def test_disconnect_issues_authenticated_delete() -> None:
    opener = FakeTellerOpener(routes={("DELETE", "/accounts"): (404, _error_body("not_found"))})

    _client(opener).disconnect(TOKEN)

    request = opener.requests[0]
    assert request.get_method() == "DELETE"
    assert request.get_header("Authorization") == TOKEN_AUTH
    assert opener.error_bodies[0].closed is True


def test_client_uses_module_urlopen_when_no_opener_is_injected(monkeypatch: pytest.MonkeyPatch) -> None:
    opener = FakeTellerOpener(routes={("GET", "/institutions"): []})
    monkeypatch.setattr("backend.providers.teller.client.urlopen", opener)

    client = TellerClient(TellerSettings(base_url="https://api.teller.test/"))

    assert client.list_institutions() == []
    assert opener.requests[0].full_url == "https://api.teller.test/institutions"
