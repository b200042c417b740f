from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Dict, Tuple

import pytest
from conftest import make_keypair_hex
from fastapi.testclient import TestClient

from geyser.api.app import create_app
from geyser.crypto.sig import sign_tx_envelope_dict
from geyser.ledger.constants import GEYSER_ADDRESS
from geyser.runtime import metrics
from geyser.runtime.config import default_geyser_config
from geyser.runtime.executor import GeyserExecutor

INSTANCE = "geyser-api"

Keys = Dict[str, Tuple[str, str]]


class _Clock:
    def __init__(self, t: int) -> None:
        self.t = t

    def __call__(self) -> int:
        return self.t


@pytest.fixture
def clock() -> _Clock:
    return _Clock(10_000)


@pytest.fixture
def keys() -> Keys:
    return {who: make_keypair_hex() for who in ("owner", "alice", "mallory")}


@pytest.fixture
def ex(tmp_path: Path, clock: _Clock, keys: Keys) -> GeyserExecutor:
    cfg = replace(default_geyser_config(), instance_id=INSTANCE, owner="owner", owner_pubkey=keys["owner"][0])
    ex = GeyserExecutor(db_path=str(tmp_path / "geyser.db"), config=cfg, clock=clock)
    for who in ("alice", "mallory"):
        r = ex.submit_tx(
            {"tx_type": "ACCOUNT_REGISTER_KEY", "signer": "SYSTEM", "payload": {"account": who, "pubkey": keys[who][0]}}
        )
        assert r["ok"], r
    for token, who, amount in (("STAKE", "alice", 1_000), ("DIST", "owner", 10_000)):
        assert ex.submit_tx({"tx_type": "TOKEN_MINT", "signer": "SYSTEM", "payload": {"token": token, "to": who, "amount": amount}})["ok"]
    return ex


@pytest.fixture
def client(ex: GeyserExecutor):
    app = create_app(boot_runtime=False)
    app.state.executor = ex
    with TestClient(app) as c:
        yield c


def _signed(client: TestClient, privkey: str, tx_type: str, signer: str, **payload) -> dict:
    nonce = client.get(f"/v1/accounts/{signer}").json()["next_nonce"]
    tx = {"tx_type": tx_type, "signer": signer, "nonce": nonce, "payload": payload}
    return sign_tx_envelope_dict(tx=tx, privkey=privkey, instance_id=INSTANCE)


def _submit(client: TestClient, keys: Keys, tx_type: str, signer: str, **payload):
    env = _signed(client, keys[signer][1], tx_type, signer, **payload)
    return client.post("/v1/tx/submit", json=env)


def test_status_and_health(client: TestClient) -> None:
    h = client.get("/v1/health").json()
    assert h["ok"] is True
    assert h["instance_id"] == INSTANCE

    s = client.get("/v1/status").json()
    assert s["staking_token"] == "STAKE"
    assert s["distribution_token"] == "DIST"
    assert s["clock"] == 10_000


def test_account_route_reports_keys_and_next_nonce(client: TestClient, keys: Keys) -> None:
    a = client.get("/v1/accounts/alice").json()
    assert a["registered"] is True
    assert a["pubkeys"] == [keys["alice"][0]]
    assert a["next_nonce"] == 1

    owner = client.get("/v1/accounts/owner").json()
    assert owner["pubkeys"] == [keys["owner"][0]]

    nobody = client.get("/v1/accounts/eve").json()
    assert (nobody["registered"], nobody["pubkeys"], nobody["next_nonce"]) == (False, [], 1)

    assert _submit(client, keys, "TOKEN_APPROVE", "alice", token="STAKE", spender=GEYSER_ADDRESS, amount=1).status_code == 200
    assert client.get("/v1/accounts/alice").json()["next_nonce"] == 2


def test_stake_flow_over_http(client: TestClient, keys: Keys, clock: _Clock) -> None:
    assert _submit(client, keys, "TOKEN_APPROVE", "alice", token="STAKE", spender=GEYSER_ADDRESS, amount=1_000).status_code == 200
    assert _submit(client, keys, "TOKEN_APPROVE", "owner", token="DIST", spender=GEYSER_ADDRESS, amount=10_000).status_code == 200

    r = _submit(client, keys, "LOCK_TOKENS", "owner", amount=1_000, duration_sec=100)
    assert r.status_code == 200, r.text
    r = _submit(client, keys, "STAKE", "alice", amount=400)
    assert r.status_code == 200, r.text
    assert r.json()["minted_shares"] == 400

    clock.t += 50
    acct = client.get("/v1/geyser/accounts/alice", params={"projected": True}).json()
    assert acct["total_staked_for"] == 400
    assert acct["projected_share_seconds"] == 400 * 50
    assert acct["projected_rewards"] == 500
    assert acct["stakes"] == [{"shares": 400, "timestamp": 10_000}]

    sched = client.get("/v1/geyser/schedules").json()
    assert sched["items"][0]["unlockable_shares"] == 500
    assert sched["total_locked"] == 1_000

    totals = client.get("/v1/geyser/totals").json()
    assert totals["total_staked"] == 400
    assert totals["total_locked"] == 1_000
    assert totals["unlock_schedule_count"] == 1

    bal = client.get("/v1/tokens/STAKE/balances/alice").json()
    assert bal["balance"] == 600
    assert bal["allowance_to_geyser"] == 600


def test_rejected_tx_maps_to_400_and_spends_the_nonce(client: TestClient, keys: Keys) -> None:
    r = _submit(client, keys, "UNSTAKE", "alice", amount=1)
    assert r.status_code == 400
    body = r.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "insufficient_balance"
    assert body["error"]["message"] == "unstake_exceeds_staked"

    assert client.get("/v1/accounts/alice").json()["next_nonce"] == 2


def test_forged_signer_is_401_and_moves_nothing(client: TestClient, ex: GeyserExecutor, keys: Keys) -> None:
    before = ex.read_state()

    # No signature at all.
    r = client.post(
        "/v1/tx/submit",
        json={"tx_type": "TOKEN_TRANSFER", "signer": "alice", "nonce": 1, "payload": {"token": "STAKE", "to": "mallory", "amount": 500}},
    )
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "bad_sig"

    # Mallory's own key, alice's name.
    forged = _signed(client, keys["mallory"][1], "TOKEN_TRANSFER", "alice", token="STAKE", to="mallory", amount=500)
    r = client.post("/v1/tx/submit", json=forged)
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "bad_sig"

    forged = _signed(client, keys["mallory"][1], "TRANSFER_OWNERSHIP", "owner", new_owner="mallory")
    r = client.post("/v1/tx/submit", json=forged)
    assert r.status_code == 401

    # A name nobody registered a key for.
    _, eve_priv = make_keypair_hex()
    r = client.post("/v1/tx/submit", json=_signed(client, eve_priv, "TOKEN_TRANSFER", "eve", token="STAKE", to="eve", amount=1))
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "unknown_signer"

    assert ex.read_state() == before
    assert client.get("/v1/tokens/STAKE/balances/alice").json()["balance"] == 1_000
    assert client.get("/v1/tokens/STAKE/balances/mallory").json()["balance"] == 0
    assert client.get("/v1/status").json()["owner"] == "owner"


def test_signature_is_bound_to_payload_and_instance(client: TestClient, keys: Keys) -> None:
    env = _signed(client, keys["alice"][1], "TOKEN_TRANSFER", "alice", token="STAKE", to="mallory", amount=1)
    env["payload"] = dict(env["payload"], amount=1_000)
    r = client.post("/v1/tx/submit", json=env)
    assert r.status_code == 401

    tx = {"tx_type": "TOKEN_TRANSFER", "signer": "alice", "nonce": 1, "payload": {"token": "STAKE", "to": "mallory", "amount": 1}}
    other = sign_tx_envelope_dict(tx=tx, privkey=keys["alice"][1], instance_id="some-other-geyser")
    r = client.post("/v1/tx/submit", json=other)
    assert r.status_code == 401


def test_replayed_envelope_is_refused(client: TestClient, ex: GeyserExecutor, keys: Keys) -> None:
    env = _signed(client, keys["alice"][1], "TOKEN_TRANSFER", "alice", token="STAKE", to="mallory", amount=100)
    assert client.post("/v1/tx/submit", json=env).status_code == 200

    r = client.post("/v1/tx/submit", json=env)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_nonce"
    assert client.get("/v1/tokens/STAKE/balances/mallory").json()["balance"] == 100


def test_rotated_key_replaces_the_old_one(client: TestClient, keys: Keys) -> None:
    new_pub, new_priv = make_keypair_hex()
    assert _submit(client, keys, "ACCOUNT_ROTATE_KEY", "alice", pubkey=new_pub).status_code == 200
    assert client.get("/v1/accounts/alice").json()["pubkeys"] == [new_pub]

    r = _submit(client, keys, "TOKEN_APPROVE", "alice", token="STAKE", spender=GEYSER_ADDRESS, amount=1)
    assert r.status_code == 401

    keys["alice"] = (new_pub, new_priv)
    r = _submit(client, keys, "TOKEN_APPROVE", "alice", token="STAKE", spender=GEYSER_ADDRESS, amount=1)
    assert r.status_code == 200, r.text


def test_system_txs_are_refused(client: TestClient, ex: GeyserExecutor, keys: Keys) -> None:
    before = ex.read_state()

    r = client.post("/v1/tx/submit", json={"tx_type": "TOKEN_MINT", "signer": "SYSTEM", "payload": {"token": "STAKE", "to": "mallory", "amount": 10}})
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "system_tx_forbidden"

    r = client.post(
        "/v1/tx/submit",
        json={"tx_type": "TOKEN_MINT", "signer": "mallory", "system": True, "payload": {}},
    )
    assert r.status_code == 403

    r = _submit(client, keys, "TOKEN_MINT", "mallory", token="STAKE", to="mallory", amount=10)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "forbidden"

    r = _submit(client, keys, "ACCOUNT_REGISTER_KEY", "mallory", account="alice", pubkey=keys["mallory"][0])
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "system_tx_required"

    assert ex.read_state() == before


def test_malformed_body_is_422(client: TestClient) -> None:
    r = client.post("/v1/tx/submit", json={"signer": "alice"})
    assert r.status_code == 422

    r = client.post("/v1/tx/submit", json={"tx_type": "STAKE", "signer": "alice", "nonce": -1, "payload": {}})
    assert r.status_code == 422


def test_unknown_token_balance_is_404(client: TestClient) -> None:
    r = client.get("/v1/tokens/NOPE/balances/alice")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "unknown_token"


def test_receipts_endpoint_lists_newest_first(client: TestClient, keys: Keys) -> None:
    _submit(client, keys, "UNSTAKE", "alice", amount=1)
    items = client.get("/v1/tx/receipts", params={"signer": "alice"}).json()["items"]
    assert items[0]["tx_type"] == "UNSTAKE"
    assert items[0]["ok"] is False


def test_metrics_are_opt_in(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEYSER_METRICS_ENABLED", raising=False)
    assert client.get("/v1/metrics").status_code == 404

    monkeypatch.setenv("GEYSER_METRICS_ENABLED", "1")
    r = client.get("/v1/metrics")
    assert r.status_code == 200
    assert "geyser_uptime_ms" in r.text
    assert "geyser_ledger_height" in r.text
    assert "geyser_tx_applied_total" in r.text
    assert metrics.snapshot()["counters"]["tx_applied_total"] >= 2
