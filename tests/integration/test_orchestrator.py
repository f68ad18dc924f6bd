"""Integration tests for the Orchestrator."""

import subprocess
import threading
import time
from pathlib import Path

import pytest
import responses

from broadcast_verifier import Orchestrator, VerificationState, read_deployments
from broadcast_verifier.artifacts import ForgeArtifactBuilder
from broadcast_verifier.orchestrator import SKIPPED_DETAIL, UNPROCESSED_DETAIL
from broadcast_verifier.types import DeploymentRecord

from conftest import (
    ADDRESS_A,
    ADDRESS_B,
    ADDRESS_C,
    CHAIN_ID,
    FakeBuilder,
    FakeClient,
    FakeForgeProcess,
    FakeResolver,
)


def _orchestrator(config, client, resolver=None, builder=None) -> Orchestrator:
    return Orchestrator(config, client=client, resolver=resolver or FakeResolver(), builder=builder or FakeBuilder())


class TestExampleScenario:
    """A already verified, B verified on the third poll attempt."""

    def test_report(self, config, record_a, record_b):
        client = FakeClient(already_verified={ADDRESS_A}, verified_on_check={ADDRESS_B: 4})

        report = _orchestrator(config, client).run([record_a, record_b], CHAIN_ID)

        assert [o.state for o in report.outcomes] == [
            VerificationState.ALREADY_VERIFIED,
            VerificationState.SUCCESS,
        ]
        assert report.already_verified == 1
        assert report.newly_verified == 1
        assert report.failed == 0
        assert report.pending == 0
        assert report.exit_code == 0

    def test_only_unverified_contract_is_submitted(self, config, record_a, record_b):
        client = FakeClient(already_verified={ADDRESS_A}, verified_on_check={ADDRESS_B: 4})

        _orchestrator(config, client).run([record_a, record_b], CHAIN_ID)

        assert [address for address, _ in client.submit_calls] == [ADDRESS_B]


class TestOutcomeCardinality:
    """Exactly one outcome per CREATE record."""

    def test_outcome_count_matches_fixture_creates(self, config, broadcast_file: Path):
        records = read_deployments(broadcast_file)

        report = _orchestrator(config, FakeClient()).run(records, CHAIN_ID)

        assert report.total == 2
        assert [o.contract_name for o in report.outcomes] == ["FraxProxyAdmin", "ImplementationMock"]

    def test_every_error_class_gets_one_outcome(self, config, record_a, record_b, record_c):
        client = FakeClient()
        resolver = FakeResolver(missing={record_a.contract_name})
        builder = FakeBuilder(failing={ADDRESS_B})

        report = _orchestrator(config, client, resolver, builder).run(
            [record_a, record_b, record_c], CHAIN_ID
        )

        assert [o.state for o in report.outcomes] == [
            VerificationState.FAILED,
            VerificationState.FAILED,
            VerificationState.PENDING,
        ]
        assert report.failed == 2
        assert report.pending == 1
        assert report.exit_code == 1

    def test_unexpected_exception_is_contained(self, config, record_a, record_b):
        class ExplodingResolver(FakeResolver):
            def resolve(self, contract_name):
                if contract_name == "FraxProxyAdmin":
                    raise KeyError("boom")
                return super().resolve(contract_name)

        client = FakeClient(verified_on_check={ADDRESS_B: 2})

        report = _orchestrator(config, client, resolver=ExplodingResolver()).run(
            [record_a, record_b], CHAIN_ID
        )

        assert report.outcomes[0].state is VerificationState.FAILED
        assert "Unexpected error" in report.outcomes[0].detail
        assert report.outcomes[1].state is VerificationState.SUCCESS


class TestIdempotence:
    def test_second_run_submits_nothing(self, config, record_a, record_b):
        verified = set()

        class StatefulClient(FakeClient):
            def check_verified(self, chain_id, address):
                if address in verified:
                    self.already_verified.add(address)
                return super().check_verified(chain_id, address)

            def submit(self, chain_id, address, request):
                verified.add(address)
                return super().submit(chain_id, address, request)

        first = _orchestrator(config, StatefulClient()).run([record_a, record_b], CHAIN_ID)
        second_client = StatefulClient()
        second = _orchestrator(config, second_client).run([record_a, record_b], CHAIN_ID)

        assert first.newly_verified == 2
        assert [o.state for o in second.outcomes] == [VerificationState.ALREADY_VERIFIED] * 2
        assert second_client.submit_calls == []


class TestDryRun:
    def test_no_submission_or_poll(self, config, record_a, record_b):
        client = FakeClient(already_verified={ADDRESS_A})
        builder = FakeBuilder()

        report = _orchestrator(config.with_overrides(dry_run=True), client, builder=builder).run(
            [record_a, record_b], CHAIN_ID
        )

        assert client.submit_calls == []
        assert client.poll_calls == []
        assert builder.calls == [(ADDRESS_B, "contracts/ImplementationMock.sol:ImplementationMock")]
        assert report.outcomes[1].dry_run is True
        assert report.exit_code == 0


class TestSkipList:
    def test_skipped_contract_makes_no_calls(self, config, record_a, record_b):
        client = FakeClient(verified_on_check={ADDRESS_B: 2})

        report = _orchestrator(
            config.with_overrides(skip_contracts=frozenset({"FraxProxyAdmin"})), client
        ).run([record_a, record_b], CHAIN_ID)

        assert report.outcomes[0].state is VerificationState.SKIPPED
        assert report.outcomes[0].detail == SKIPPED_DETAIL
        assert client.check_calls[ADDRESS_A] == 0
        assert report.skipped == 1
        assert report.exit_code == 0


class TestConcurrency:
    """Test bounded concurrent execution."""

    def test_outcomes_keep_manifest_order(self, config):
        records = [
            DeploymentRecord(f"Contract{i}", f"0x{i:040x}", f"0x{i:064x}") for i in range(12)
        ]

        class SlowClient(FakeClient):
            def check_verified(self, chain_id, address):
                # later records answer faster
                time.sleep(0.001 * (12 - int(address, 16)))
                return super().check_verified(chain_id, address)

        client = SlowClient(already_verified={r.address for r in records})

        report = _orchestrator(config.with_overrides(max_workers=4), client).run(records, CHAIN_ID)

        assert [o.contract_name for o in report.outcomes] == [r.contract_name for r in records]
        assert report.already_verified == 12

    def test_worker_limit_is_respected(self, config):
        records = [DeploymentRecord(f"C{i}", f"0x{i:040x}", "0x") for i in range(8)]
        lock = threading.Lock()
        active = {"now": 0, "peak": 0}

        class CountingClient(FakeClient):
            def check_verified(self, chain_id, address):
                with lock:
                    active["now"] += 1
                    active["peak"] = max(active["peak"], active["now"])
                time.sleep(0.01)
                with lock:
                    active["now"] -= 1
                return super().check_verified(chain_id, address)

        client = CountingClient(already_verified={r.address for r in records})

        _orchestrator(config.with_overrides(max_workers=3), client).run(records, CHAIN_ID)

        assert 1 <= active["peak"] <= 3


class TestCancellation:
    """Test cancellation and run deadlines."""

    def test_pre_cancelled_run_reports_every_record_pending(self, config, record_a, record_b):
        event = threading.Event()
        event.set()
        client = FakeClient()

        report = _orchestrator(config, client).run([record_a, record_b], CHAIN_ID, cancel_event=event)

        assert report.total == 2
        assert all(o.state is VerificationState.PENDING for o in report.outcomes)
        assert all(o.detail == UNPROCESSED_DETAIL for o in report.outcomes)
        assert sum(client.check_calls.values()) == 0

    def test_cancel_mid_run_keeps_partial_results(self, config, record_a, record_b, record_c):
        event = threading.Event()

        class CancellingClient(FakeClient):
            def check_verified(self, chain_id, address):
                result = super().check_verified(chain_id, address)
                if address == ADDRESS_A:
                    event.set()
                return result

        client = CancellingClient(already_verified={ADDRESS_A})

        report = _orchestrator(config, client).run(
            [record_a, record_b, record_c], CHAIN_ID, cancel_event=event
        )

        assert report.outcomes[0].state is VerificationState.ALREADY_VERIFIED
        assert [o.state for o in report.outcomes[1:]] == [VerificationState.PENDING] * 2
        assert report.exit_code == 1

    def test_run_timeout_interrupts_polling(self, config, record_a):
        config = config.with_overrides(poll_interval=30, max_poll_attempts=20, run_timeout=0.2)
        client = FakeClient()

        started = time.monotonic()
        report = _orchestrator(config, client).run([record_a], CHAIN_ID)
        elapsed = time.monotonic() - started

        assert elapsed < 5
        assert report.outcomes[0].state is VerificationState.PENDING
        assert report.outcomes[0].verification_id == "vid-0001"

    def test_run_timeout_interrupts_running_build(self, config, record_a, monkeypatch):
        forge = FakeForgeProcess(hang=True)
        monkeypatch.setattr(subprocess, "Popen", forge)
        builder = ForgeArtifactBuilder(config.project_root, timeout=30, check_interval=0.01)
        client = FakeClient()

        started = time.monotonic()
        report = _orchestrator(config.with_overrides(run_timeout=0.2), client, builder=builder).run(
            [record_a], CHAIN_ID
        )
        elapsed = time.monotonic() - started

        assert elapsed < 5
        assert forge.killed
        assert report.outcomes[0].state is VerificationState.PENDING
        assert report.failed == 0
        assert client.submit_calls == []


class TestWithHttpClient:
    """Run the orchestrator against a mocked verification service."""

    @responses.activate
    def test_end_to_end(self, config, record_a, record_b):
        base = config.verifier_url
        responses.add(responses.GET, f"{base}/v2/contract/{CHAIN_ID}/{ADDRESS_A}", json={"matchId": "1"})
        # B: unknown twice (404, 500), then verified
        responses.add(responses.GET, f"{base}/v2/contract/{CHAIN_ID}/{ADDRESS_B}", json={}, status=404)
        responses.add(responses.GET, f"{base}/v2/contract/{CHAIN_ID}/{ADDRESS_B}", body="oops", status=500)
        responses.add(
            responses.GET,
            f"{base}/v2/contract/{CHAIN_ID}/{ADDRESS_B}",
            json={"verifiedAt": "2025-06-01T00:00:00Z"},
        )
        responses.add(
            responses.POST, f"{base}/v2/verify/{CHAIN_ID}/{ADDRESS_B}", json={"verificationId": "job-1"}
        )

        report = Orchestrator(config, resolver=FakeResolver(), builder=FakeBuilder()).run(
            [record_a, record_b], CHAIN_ID
        )

        assert report.outcomes[0].state is VerificationState.ALREADY_VERIFIED
        assert report.outcomes[1].state is VerificationState.SUCCESS
        assert report.outcomes[1].verification_id == "job-1"
        assert report.exit_code == 0
