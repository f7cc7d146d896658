"""Tests for the AI matching client: prompt shape, validation and failover."""

from __future__ import annotations

import json

import pytest

from smartarchive.core.exceptions import MalformedAIResponseError
from smartarchive.matching.ai_client import (
    AIMatchingClient,
    build_messages,
    parse_matches,
)
from smartarchive.matching.credentials import CredentialPool
from smartarchive.models.classification import Confidence
from tests.fakes import SCHEDULE, MockModelProvider, ai_payload

ITEMS = [(1, "Laporan tahunan bagian umum"), (2, "SK mutasi pegawai")]


@pytest.fixture
def provider():
    return MockModelProvider()


def make_client(provider, keys=("k1", "k2", "k3"), **kwargs):
    return AIMatchingClient(provider, CredentialPool.from_keys(list(keys)), **kwargs)


class TestBuildMessages:
    def test_prompt_lists_schedule_and_items(self):
        messages = build_messages(ITEMS, SCHEDULE)
        assert messages[0]["role"] == "system"
        user = messages[1]["content"]
        assert "KU.01.01: Rencana Anggaran Pendapatan dan Belanja" in user
        assert "ID 1: Laporan tahunan bagian umum" in user
        assert "ID 2: SK mutasi pegawai" in user


class TestParseMatches:
    def test_valid_payload(self):
        raw = ai_payload((1, "UM.01.02", "High"), (2, "KP.02.03", "Medium"))
        matches = parse_matches(raw, {1, 2}, "credential-1")
        assert matches[1].code == "UM.01.02"
        assert matches[2].confidence is Confidence.MEDIUM

    def test_omitted_ids_are_simply_absent(self):
        matches = parse_matches(ai_payload((1, "UM.01.02", "High")), {1, 2}, "credential-1")
        assert set(matches) == {1}

    def test_unrequested_ids_are_dropped(self):
        raw = ai_payload((1, "UM.01.02", "High"), (99, "KP.02.03", "High"))
        assert set(parse_matches(raw, {1}, "credential-1")) == {1}

    def test_duplicate_id_keeps_first(self):
        raw = ai_payload((1, "UM.01.02", "High"), (1, "KP.02.03", "Low"))
        assert parse_matches(raw, {1}, "credential-1")[1].code == "UM.01.02"

    def test_code_is_stripped(self):
        raw = ai_payload((1, "  UM.01.02 ", "High"))
        assert parse_matches(raw, {1}, "credential-1")[1].code == "UM.01.02"

    @pytest.mark.parametrize("raw", [
        "",
        "   ",
        "I think the answer is UM.01.02",
        json.dumps([{"id": 1, "code": "UM.01.02", "confidence": "High"}]),
        json.dumps({"results": []}),
        ai_payload((1, "UM.01.02", "Certain")),
        ai_payload((1, "   ", "High")),
        json.dumps({"matches": [{"id": 1, "code": "UM.01.02"}]}),
        json.dumps({"matches": [{"id": 1, "code": "UM.01.02", "confidence": "High", "reason": "x"}]}),
    ])
    def test_rejects_malformed_payloads(self, raw):
        with pytest.raises(MalformedAIResponseError) as exc_info:
            parse_matches(raw, {1}, "credential-1")
        assert exc_info.value.credential == "credential-1"

    def test_one_bad_entry_rejects_whole_response(self):
        raw = ai_payload((1, "UM.01.02", "High"), (2, "KP.02.03", "Sure"))
        with pytest.raises(MalformedAIResponseError):
            parse_matches(raw, {1, 2}, "credential-1")


class TestFindBestMatches:
    async def test_empty_items_make_no_call(self, provider):
        outcome = await make_client(provider).find_best_matches([], SCHEDULE)
        assert outcome.available
        assert outcome.matches == {}
        assert provider.calls == []

    async def test_first_credential_serves_batch(self, provider):
        provider.set_credential_response("credential-1", ai_payload((1, "UM.01.02", "High")))
        client = make_client(provider)

        outcome = await client.find_best_matches(ITEMS, SCHEDULE)

        assert outcome.available
        assert outcome.credential == "credential-1"
        assert outcome.matches[1].code == "UM.01.02"
        assert [c.credential for c in provider.calls] == ["credential-1"]

    async def test_transport_failure_fails_over(self, provider):
        provider.fail_credential("credential-1", "HTTP 429")
        provider.set_credential_response("credential-2", ai_payload((2, "KP.02.03", "Medium")))
        client = make_client(provider)

        outcome = await client.find_best_matches(ITEMS, SCHEDULE)

        assert outcome.credential == "credential-2"
        assert "HTTP 429" in outcome.errors[0]
        assert client.pool.current.name == "credential-2"

    async def test_malformed_response_fails_over(self, provider):
        provider.set_credential_response("credential-1", "not json at all")
        provider.set_credential_response("credential-2", ai_payload((1, "UM.01.02", "High")))

        outcome = await make_client(provider).find_best_matches(ITEMS, SCHEDULE)

        assert outcome.credential == "credential-2"
        assert outcome.matches[1].code == "UM.01.02"

    async def test_timeout_fails_over(self, provider):
        provider.set_delay(1.0)
        client = make_client(provider, keys=("k1",), timeout=0.01)

        outcome = await client.find_best_matches(ITEMS, SCHEDULE)

        assert not outcome.available
        assert "no response within" in outcome.errors[0]

    async def test_all_credentials_failing_is_unavailable(self, provider):
        for name in ("credential-1", "credential-2", "credential-3"):
            provider.fail_credential(name)
        client = make_client(provider)

        outcome = await client.find_best_matches(ITEMS, SCHEDULE)

        assert not outcome.available
        assert len(outcome.errors) == 3
        assert len(provider.calls) == 3
        assert client.pool.cursor == 0

    async def test_each_credential_tried_once(self, provider):
        provider.fail_credential("credential-2")
        provider.fail_credential("credential-3")
        provider.fail_credential("credential-1")
        client = make_client(provider)
        client.pool.mark_success(client.pool.failover_order()[1])

        await client.find_best_matches(ITEMS, SCHEDULE)

        assert [c.credential for c in provider.calls] == ["credential-2", "credential-3", "credential-1"]

    async def test_empty_pool_is_unavailable(self, provider):
        outcome = await make_client(provider, keys=()).find_best_matches(ITEMS, SCHEDULE)
        assert not outcome.available
        assert outcome.errors == ["no AI credentials configured"]
        assert provider.calls == []

    async def test_next_batch_starts_at_last_good_credential(self, provider):
        provider.fail_credential("credential-1")
        client = make_client(provider)

        await client.find_best_matches(ITEMS, SCHEDULE)
        await client.find_best_matches(ITEMS, SCHEDULE)

        assert [c.credential for c in provider.calls] == ["credential-1", "credential-2", "credential-2"]

    async def test_healthy_pool_stays_on_last_good_credential(self, provider):
        client = make_client(provider)

        for _ in range(3):
            await client.find_best_matches(ITEMS, SCHEDULE)

        assert [c.credential for c in provider.calls] == ["credential-1"] * 3
        assert client.pool.cursor == 0
