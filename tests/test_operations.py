"""Read-only operation catalogue against mocked clients."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from ewc_trigger.chain.constants import DID_ATTRIBUTE_CLAIM_TOPIC, DID_REGISTRY_ADDRESS, WEI_PER_EWT
from ewc_trigger.operations import accounts, assets, dids, events, network, tokens, transactions, utility
from ewc_trigger.operations import origin as origin_ops

from tests.factories import ALICE, BOB, CERT_CONTRACT, OPERATOR, address_topic, make_block, make_log, tx_hash

TX = tx_hash(77)


# ── Network ───────────────────────────────────────────────────────


async def test_network_status(clients, rpc):
    rpc.responses = {"eth_chainId": "0xf6", "eth_gasPrice": hex(10**9)}
    rpc.fail_methods["net_peerCount"] = "method not found"

    status = await network.get_network_status(clients)

    assert status["chainId"] == 246
    assert status["networkName"] == "Energy Web Chain"
    assert status["latestBlock"] == 500
    assert status["gasPriceGwei"] == "1"
    assert status["peerCount"] == 0
    assert status["symbol"] == "EWT"


async def test_network_status_on_volta(clients, rpc):
    rpc.responses = {"eth_chainId": hex(73799), "eth_gasPrice": "0x1", "net_peerCount": "0x5"}
    status = await network.get_network_status(clients)
    assert status["networkName"] == "Volta Testnet"
    assert status["symbol"] == "VT"
    assert status["peerCount"] == 5


async def test_gas_price_suggestions(clients, rpc):
    rpc.responses = {"eth_gasPrice": hex(10 * 10**9)}
    rpc.blocks[500] = make_block(500)

    result = await network.get_gas_price(clients)

    assert result["suggestions"] == {"slow": "8", "standard": "10", "fast": "12"}
    assert result["blockGasInfo"]["gasLimit"] == 8_000_000
    assert "baseFeePerGas" not in result


async def test_validators_from_explorer(clients, explorer):
    explorer.routes["/v1/validators"] = {"items": [
        {"address": {"hash": ALICE}, "is_active": True, "blocks_validated_count": 10},
        {"address": {"hash": BOB}, "is_active": False, "blocks_validated_count": 2},
    ]}
    result = await network.get_validators(clients)
    assert result["totalValidators"] == 2
    assert result["activeValidators"] == 1


async def test_validators_fall_back_to_recent_miners(clients, rpc, explorer):
    explorer.fail = "unavailable"
    for n in range(491, 501):
        rpc.blocks[n] = make_block(n)

    result = await network.get_validators(clients)

    assert result["validators"] == [{"address": OPERATOR, "isActive": True}]
    assert result["blocksScanned"] == 10


async def test_get_block_by_number(clients, rpc):
    rpc.blocks[42] = make_block(42, timestamp=0)
    result = await network.get_block(clients, "42")
    assert result["number"] == 42
    assert result["timestampFormatted"] == "1970-01-01T00:00:00.000Z"
    assert result["gasUtilization"] in ("0.26%", "0.27%")


async def test_get_block_by_hash(clients, rpc):
    block_hash = "0x" + "cd" * 32
    rpc.responses["eth_getBlockByHash"] = lambda h, full: make_block(7) if h == block_hash else None
    assert (await network.get_block(clients, block_hash))["number"] == 7


async def test_get_block_not_found(clients):
    with pytest.raises(LookupError, match="Block not found"):
        await network.get_block(clients, "123456")


async def test_get_block_rejects_garbage(clients):
    with pytest.raises(ValueError):
        await network.get_block(clients, "twelve")


# ── Accounts ──────────────────────────────────────────────────────


async def test_balance(clients, rpc):
    rpc.responses["eth_getBalance"] = hex(3 * WEI_PER_EWT // 2)
    result = await accounts.get_balance(clients, ALICE)
    assert result == {
        "address": ALICE,
        "balance": str(3 * WEI_PER_EWT // 2),
        "balanceEwt": "1.5",
        "network": "Energy Web Chain",
    }
    assert rpc.calls[-1] == ("eth_getBalance", [ALICE, "latest"])


async def test_balance_rejects_bad_address(clients):
    with pytest.raises(ValueError, match="Invalid Ethereum address format"):
        await accounts.get_balance(clients, "0xnope")


async def test_token_balances(clients, explorer):
    explorer.routes[f"/v1/addresses/{ALICE}/token-balances"] = [
        {"token": {"address": CERT_CONTRACT, "name": "Token", "symbol": "TKN", "decimals": 6}, "value": "2500000"},
    ]
    result = await accounts.get_token_balances(clients, ALICE)
    assert result["tokenBalances"][0]["balanceFormatted"] == "2.5"


async def test_token_balances_empty_when_explorer_down(clients, explorer):
    explorer.fail = "down"
    assert await accounts.get_token_balances(clients, ALICE) == {"address": ALICE, "tokenBalances": []}


async def test_transaction_history(clients, explorer):
    explorer.routes[f"/v1/addresses/{ALICE}/transactions"] = {
        "items": [{
            "hash": TX, "blockNumber": 10, "timestamp": "2024-01-01T00:00:00Z",
            "from": {"hash": ALICE}, "to": None, "value": str(WEI_PER_EWT),
            "gasUsed": "21000", "status": "ok",
        }],
        "next_page_params": None,
    }
    result = await accounts.get_transaction_history(clients, ALICE, limit=5)

    assert result["transactions"][0]["to"] is None
    assert result["transactions"][0]["valueEwt"] == "1"
    assert result["pagination"] == {"limit": 5, "offset": 0, "hasMore": False}
    assert explorer.calls[-1][1] == {"limit": 5, "offset": 0}


async def test_transaction_history_fallback(clients, explorer):
    explorer.fail = "down"
    result = await accounts.get_transaction_history(clients, ALICE)
    assert result["transactions"] == []
    assert result["latestBlock"] == 500
    assert "EW Scan" in result["message"]


# ── Tokens ────────────────────────────────────────────────────────


def _abi_string(text: str) -> str:
    raw = text.encode().hex()
    return "0x" + "20".rjust(64, "0") + format(len(text), "x").rjust(64, "0") + raw.ljust(64, "0")


def _token_calls(**overrides):
    answers = {
        "0x06fdde03": _abi_string("Energy Token"),
        "0x95d89b41": _abi_string("ENT"),
        "0x313ce567": hex(6),
        "0x18160ddd": hex(2_500_000),
        "0x8da5cb5b": address_topic(BOB),
    }
    answers.update(overrides)

    def _eth_call(tx, tag):
        assert tx["to"] == CERT_CONTRACT
        return answers[tx["data"]]

    return _eth_call


async def test_token_info(clients, rpc):
    rpc.responses["eth_call"] = _token_calls()

    result = await tokens.get_token_info(clients, CERT_CONTRACT)

    assert result == {
        "address": CERT_CONTRACT,
        "name": "Energy Token",
        "symbol": "ENT",
        "decimals": 6,
        "totalSupply": "2500000",
        "totalSupplyFormatted": "2.5",
        "owner": BOB,
    }
    assert rpc.methods() == ["eth_call"] * 5


async def test_token_info_without_owner_or_decimals(clients, rpc):
    rpc.responses["eth_call"] = _token_calls(**{"0x313ce567": "0x", "0x8da5cb5b": "0x"})

    result = await tokens.get_token_info(clients, CERT_CONTRACT)

    assert result["decimals"] == 18
    assert "owner" not in result


async def test_token_info_rejects_bad_address(clients):
    with pytest.raises(ValueError, match="Invalid Ethereum address format"):
        await tokens.get_token_info(clients, "0xabc")


async def test_token_holders(clients, explorer):
    explorer.routes[f"/v1/tokens/{CERT_CONTRACT}/holders"] = {
        "token": {"total_supply": "1000", "decimals": "1"},
        "items": [
            {"address": {"hash": ALICE}, "value": "250"},
            {"address": {"hash": BOB}, "value": "1"},
        ],
    }

    result = await tokens.get_token_holders(clients, CERT_CONTRACT, limit=2)

    assert result["totalHolders"] == 2
    assert result["totalSupply"] == "1000"
    assert result["holders"][0] == {
        "address": ALICE, "balance": "250", "balanceFormatted": "25", "percentage": 25.0,
    }
    assert result["holders"][1]["percentage"] == 0.1
    assert explorer.calls[-1][1] == {"limit": 2}


async def test_token_holders_fallback(clients, explorer):
    explorer.fail = "down"
    result = await tokens.get_token_holders(clients, CERT_CONTRACT)
    assert result["holders"] == []
    assert "EW Scan" in result["message"]


# ── Transactions ──────────────────────────────────────────────────


async def test_get_transaction(clients, rpc):
    rpc.responses = {
        "eth_getTransactionByHash": {"hash": TX, "value": hex(WEI_PER_EWT * 2), "blockNumber": "0x10"},
        "eth_getTransactionReceipt": {"status": "0x1", "gasUsed": "0x5208", "logs": []},
    }
    result = await transactions.get_transaction(clients, TX)
    assert result["valueEwt"] == "2"
    assert result["status"] == "0x1"


async def test_get_transaction_not_found(clients):
    with pytest.raises(LookupError, match="Transaction not found"):
        await transactions.get_transaction(clients, TX)


async def test_transaction_hash_validation(clients):
    with pytest.raises(ValueError, match="Invalid transaction hash format"):
        await transactions.get_transaction_status(clients, "0x1234")


async def test_transaction_status_confirmed(clients, rpc):
    rpc.responses = {
        "eth_getTransactionByHash": {"hash": TX, "blockNumber": hex(491)},
        "eth_getTransactionReceipt": {"status": "0x1", "gasUsed": "0x5208"},
    }
    result = await transactions.get_transaction_status(clients, TX)
    assert result == {
        "hash": TX, "status": "confirmed", "confirmations": 10, "blockNumber": 491, "gasUsed": 21000,
    }


async def test_transaction_status_failed_and_pending(clients, rpc):
    rpc.responses = {
        "eth_getTransactionByHash": {"hash": TX, "blockNumber": hex(500)},
        "eth_getTransactionReceipt": {"status": "0x0", "gasUsed": "0x0"},
    }
    assert (await transactions.get_transaction_status(clients, TX))["status"] == "failed"

    rpc.responses["eth_getTransactionByHash"] = {"hash": TX, "blockNumber": None}
    assert (await transactions.get_transaction_status(clients, TX))["status"] == "pending"


async def test_estimate_gas(clients, rpc):
    rpc.responses = {"eth_estimateGas": "0x5208", "eth_gasPrice": hex(10**9)}
    result = await transactions.estimate_gas(clients, BOB, value="1", from_address=ALICE)

    assert result["gasEstimate"] == 21000
    assert result["estimatedCost"] == str(21000 * 10**9)
    params = rpc.calls[0][1][0]
    assert params == {"to": BOB, "data": "0x", "from": ALICE, "value": hex(WEI_PER_EWT)}


# ── Events ────────────────────────────────────────────────────────


async def test_get_logs_wildcard_topics(clients, rpc):
    rpc.logs = [make_log(["0xaa"], block=450)]
    result = await events.get_logs(clients, from_block=400, to_block=500, topics=["", "null"])

    assert result["count"] == 1
    assert rpc.calls[-1][1][0]["topics"] == [None, None]
    assert result["filter"]["address"] == "all"


async def test_get_logs_formats_entries(clients, rpc):
    rpc.logs = [make_log(["0xaa"], block=450, log_index=2)]
    result = await events.get_logs(clients, from_block=400, to_block=500)

    entry = result["logs"][0]
    assert entry["blockNumber"] == 450
    assert entry["logIndex"] == 2
    assert result["filter"]["topics"] == "none"


async def test_get_logs_passes_block_tags_through(clients, rpc):
    rpc.logs = [make_log(["0xaa"], block=450), make_log(["0xaa"], block=501)]

    result = await events.get_logs(clients, from_block="earliest", to_block="latest")

    params = rpc.calls[-1][1][0]
    assert (params["fromBlock"], params["toBlock"]) == ("earliest", "latest")
    assert [entry["blockNumber"] for entry in result["logs"]] == [450]
    assert result["filter"]["fromBlock"] == "earliest"


async def test_filter_events_topic_layout(clients, rpc):
    await events.filter_events(clients, CERT_CONTRACT, event_signature="ab" * 32, topic2=ALICE[2:])

    topics = rpc.calls[-1][1][0]["topics"]
    assert topics == ["0x" + "ab" * 32, None, address_topic(ALICE)]


async def test_filter_events_requires_contract(clients):
    with pytest.raises(ValueError):
        await events.filter_events(clients, "")


async def test_contract_events_topic_layout(clients, rpc):
    rpc.logs = [make_log(["0x" + "cd" * 32], block=10), make_log(["0x" + "ef" * 32], block=20)]

    result = await events.get_contract_events(
        clients, CERT_CONTRACT, event_signature="cd" * 32, topics=["", ALICE[2:]],
    )

    params = rpc.calls[-1][1][0]
    assert params["fromBlock"] == "earliest"
    assert params["topics"] == ["0x" + "cd" * 32, None, address_topic(ALICE)]
    assert [e["blockNumber"] for e in result["events"]] == [10]
    assert result["totalEvents"] == 1


async def test_contract_events_without_signature(clients, rpc):
    rpc.logs = [make_log(["0xaa"], block=10), make_log(["0xbb"], block=20, address=ALICE)]

    result = await events.get_contract_events(clients, CERT_CONTRACT)

    assert "topics" not in rpc.calls[-1][1][0]
    assert result["eventSignature"] == "all"
    assert result["totalEvents"] == 1


async def test_contract_events_requires_contract(clients):
    with pytest.raises(ValueError, match="Invalid Ethereum address format"):
        await events.get_contract_events(clients, "0x12")


# ── DIDs ──────────────────────────────────────────────────────────


async def test_did_document(clients, rpc):
    def _eth_call(tx, tag):
        assert tx["to"] == DID_REGISTRY_ADDRESS
        if tx["data"].startswith("0x8733d4e8"):
            return address_topic(BOB)
        return hex(1234)

    rpc.responses["eth_call"] = _eth_call

    result = await dids.get_did_document(clients, f"did:ethr:ewc:{ALICE}")

    assert result["did"] == f"did:ethr:ewc:{ALICE}"
    assert result["owner"] == BOB
    assert result["changedBlock"] == 1234
    assert result["document"]["verificationMethod"][0]["blockchainAccountId"] == f"eip155:246:{ALICE}"
    data = rpc.calls[0][1][0]["data"]
    assert data == "0x8733d4e8" + ALICE[2:].rjust(64, "0")


async def test_did_document_rejects_bad_input(clients):
    with pytest.raises(ValueError):
        await dids.get_did_document(clients, "0x123")


async def test_did_claims(clients, rpc):
    rpc.logs = [
        make_log([DID_ATTRIBUTE_CLAIM_TOPIC, address_topic(ALICE)], block=300,
                 address=DID_REGISTRY_ADDRESS, data="0xfeed"),
        make_log([DID_ATTRIBUTE_CLAIM_TOPIC, address_topic(ALICE)], block=320,
                 address=DID_REGISTRY_ADDRESS),
    ]

    result = await dids.get_did_claims(clients, ALICE)

    did = f"did:ethr:ewc:{ALICE}"
    assert result["did"] == did
    assert result["totalClaims"] == 2
    first = result["claims"][0]
    assert first["id"] == f"{did}#claim-1"
    assert first["issuer"] == first["subject"] == did
    assert first["claimData"] == {"raw": "0xfeed", "blockNumber": 300, "transactionHash": tx_hash(300_000)}
    params = rpc.calls[-1][1][0]
    assert params["fromBlock"] == "0x0"
    assert params["address"] == DID_REGISTRY_ADDRESS
    assert params["topics"] == [DID_ATTRIBUTE_CLAIM_TOPIC, address_topic(ALICE)]


async def test_did_claims_keeps_given_did(clients):
    result = await dids.get_did_claims(clients, f"did:ethr:volta:{BOB}")
    assert result["did"] == f"did:ethr:volta:{BOB}"
    assert result["address"] == BOB
    assert result["claims"] == []


def _credential(**overrides):
    credential = {
        "@context": ["https://www.w3.org/2018/credentials/v1"],
        "id": "urn:uuid:1",
        "type": ["VerifiableCredential"],
        "issuer": f"did:ethr:ewc:{OPERATOR}",
        "issuanceDate": "2024-01-01T00:00:00Z",
        "credentialSubject": {"id": f"did:ethr:ewc:{ALICE}"},
    }
    credential.update(overrides)
    return credential


NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


async def test_verify_claim_valid_and_issuer_known(clients, rpc):
    rpc.responses["eth_call"] = hex(42)

    result = await dids.verify_claim(clients, json.dumps(_credential()), now=NOW)

    assert result["isValid"] is True
    assert result["issuerVerified"] is True
    assert all(result["validationResults"].values())
    assert result["verifiedAt"] == "2024-06-01T00:00:00.000Z"
    assert rpc.calls[-1][1][0]["data"] == "0xf96d0f9f" + OPERATOR[2:].rjust(64, "0")


async def test_verify_claim_expired(clients, rpc):
    rpc.responses["eth_call"] = "0x0"
    credential = _credential(expirationDate="2024-05-31T23:59:59")

    result = await dids.verify_claim(clients, credential, now=NOW)

    assert result["validationResults"]["isNotExpired"] is False
    assert result["isValid"] is False
    assert result["issuerVerified"] is False


async def test_verify_claim_structural_failures(clients, rpc):
    credential = _credential(type="VerifiableCredential", credentialSubject={}, expirationDate="soon")
    del credential["@context"]

    result = await dids.verify_claim(clients, credential, now=NOW)

    checks = result["validationResults"]
    assert not checks["hasContext"]
    assert not checks["hasType"]
    assert not checks["hasCredentialSubject"]
    assert not checks["isNotExpired"]
    assert checks["hasIssuer"] and checks["hasId"]


async def test_verify_claim_non_did_issuer_skips_registry(clients, rpc):
    result = await dids.verify_claim(clients, _credential(issuer="https://issuer.example"), now=NOW)
    assert result["issuerVerified"] is False
    assert "eth_call" not in rpc.methods()


async def test_verify_claim_registry_down(clients, rpc):
    rpc.fail_methods["eth_call"] = "node down"
    result = await dids.verify_claim(clients, _credential(), now=NOW)
    assert result["isValid"] is True
    assert result["issuerVerified"] is False


@pytest.mark.parametrize("credential", ["{not json", "[1, 2]"])
async def test_verify_claim_rejects_bad_json(clients, credential):
    with pytest.raises(ValueError, match="Invalid credential JSON"):
        await dids.verify_claim(clients, credential)


# ── Origin ────────────────────────────────────────────────────────


CERT = {
    "id": "7", "deviceId": "dev-1", "generationStartTime": 0, "generationEndTime": 3600,
    "creationTime": 0, "owners": {}, "energy": "2500000", "isRetired": False,
}


async def test_get_certificate(clients, origin):
    origin.routes["/certificates/7"] = CERT
    result = await origin_ops.get_certificate(clients, "7")
    assert result["energyMwh"] == 2.5
    assert result["generationEndFormatted"] == "1970-01-01T01:00:00.000Z"


async def test_get_certificate_degrades(clients, origin):
    origin.fail = "502"
    result = await origin_ops.get_certificate(clients, "7")
    assert result["error"] == "Certificate not found"


async def test_certificate_history(clients, origin):
    origin.routes["/certificates/7/history"] = {
        "certificateId": "7", "events": [{"type": "issued", "timestamp": 0}],
    }
    result = await origin_ops.get_certificate_history(clients, "7")
    assert result["totalEvents"] == 1
    assert result["events"][0]["timestampFormatted"] == "1970-01-01T00:00:00.000Z"


async def test_user_certificates_summary(clients, origin):
    origin.routes["/certificates"] = [CERT, {**CERT, "id": "8", "isRetired": True, "energy": "500000"}]

    result = await origin_ops.get_user_certificates(clients, ALICE, include_retired=True)

    assert result["summary"] == {
        "totalCertificates": 2, "activeCertificates": 1, "retiredCertificates": 1,
        "totalEnergyWh": 3_000_000, "totalEnergyMwh": 3.0,
    }
    assert origin.calls[-1][2] == {"owner": ALICE}


async def test_user_certificates_excludes_retired_by_default(clients, origin):
    origin.routes["/certificates"] = []
    await origin_ops.get_user_certificates(clients, ALICE)
    assert origin.calls[-1][2] == {"owner": ALICE, "retired": "false"}


# ── Assets ────────────────────────────────────────────────────────


async def test_asset_info(clients, origin):
    origin.routes["/devices/dev-1"] = {
        "id": "dev-1", "capacity": "1500", "commissioningDate": "2020-01-01",
    }
    result = await assets.get_asset_info(clients, "dev-1")
    assert result["id"] == "dev-1"
    assert result["capacityKw"] == 1500.0
    assert result["commissioningDateFormatted"] == "2020-01-01"


async def test_asset_info_unparseable_capacity(clients, origin):
    origin.routes["/devices/dev-1"] = {"id": "dev-1", "capacity": "n/a"}
    assert (await assets.get_asset_info(clients, "dev-1"))["capacityKw"] is None


async def test_asset_info_degrades(clients, origin):
    origin.fail = "502"
    result = await assets.get_asset_info(clients, "dev-1")
    assert result["error"] == "Asset not found"
    assert result["assetId"] == "dev-1"


async def test_asset_history(clients, origin):
    origin.routes["/devices/dev-1/history"] = {
        "assetId": "dev-1", "events": [{"type": "registered", "timestamp": 60}],
    }
    result = await assets.get_asset_history(clients, "dev-1")
    assert result["totalEvents"] == 1
    assert result["events"][0]["timestampFormatted"] == "1970-01-01T00:01:00.000Z"


async def test_asset_history_degrades(clients, origin):
    origin.fail = "502"
    result = await assets.get_asset_history(clients, "dev-1")
    assert result["events"] == []
    assert "Origin API" in result["message"]


# ── Utility ───────────────────────────────────────────────────────


def test_convert_units():
    result = utility.convert_units("1.5", "ewt", "gwei")
    assert result["output"] == {"amount": "1500000000", "unit": "gwei"}
    assert result["allUnits"]["wei"] == "1500000000000000000"


def test_convert_units_validation():
    with pytest.raises(ValueError, match="Unknown unit"):
        utility.convert_units("1", "ether", "wei")
    with pytest.raises(ValueError, match="Invalid amount provided"):
        utility.convert_units("lots", "ewt", "wei")


def test_encode_did_operation():
    result = utility.encode_did(ALICE, "volta")
    assert result["did"] == f"did:ethr:volta:{ALICE}"
    assert result["chainId"] == 73799


async def test_api_health(clients, rpc):
    rpc.responses["eth_chainId"] = "0xf6"
    result = await utility.get_api_health(clients)
    assert result["status"] == "healthy"
    assert result["blockNumber"] == 500


async def test_api_health_wrong_chain_is_degraded(clients, rpc):
    rpc.responses["eth_chainId"] = hex(73799)
    assert (await utility.get_api_health(clients))["status"] == "degraded"


async def test_api_health_down(clients, rpc):
    rpc.fail_methods["eth_chainId"] = "refused"
    result = await utility.get_api_health(clients)
    assert result["status"] == "down"
    assert result["rpcConnected"] is False
