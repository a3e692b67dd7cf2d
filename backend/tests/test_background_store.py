"""Background State Store tests — single-slot lifecycle, invalidation, stale completions."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio

import pytest

from agreement_wizard.background import (
    BackgroundGenerationStore,
    CancellationReason,
    EnrichmentBundle,
    GeneratedDocument,
    GenerationStatus,
    fingerprint,
)
from agreement_wizard.background.types import GenerationOutcome, OutcomeKind

from fakes import FakeGenerator, settle

S1 = {"companyName": "Acme", "employeeName": "Sam Lee", "salary": 85000}
S2 = {"companyName": "Acme", "employeeName": "Sam Lee", "salary": 90000}


# ===================================================================== #
#  start                                                                  #
# ===================================================================== #

class TestStart:
    def test_empty_snapshot_is_noop(self):
        async def scenario():
            generator = FakeGenerator()
            store = BackgroundGenerationStore(generator)
            state = store.start()
            await settle()
            return state, generator

        state, generator = asyncio.run(scenario())
        assert state.status is GenerationStatus.IDLE
        assert state.attempt_id is None
        assert generator.call_count == 0

    def test_pending_then_ready(self):
        async def scenario():
            gate = asyncio.Event()
            generator = FakeGenerator(gates=[gate])
            store = BackgroundGenerationStore(generator)
            store.update_inputs(S1)
            pending = store.start()
            await settle()
            gate.set()
            await settle()
            return pending, store.read()

        pending, ready = asyncio.run(scenario())
        assert pending.status is GenerationStatus.PENDING
        assert pending.fingerprint == fingerprint(S1)
        assert pending.started_at is not None
        assert ready.status is GenerationStatus.READY
        assert ready.attempt_id == pending.attempt_id
        assert ready.is_current is True
        assert ready.completed_at is not None
        assert ready.result.fingerprint == fingerprint(S1)
        assert ready.result.form_data_snapshot == S1
        assert ready.result.usage == {"total_tokens": 42}

    def test_same_fingerprint_does_not_duplicate_call(self):
        async def scenario():
            gate = asyncio.Event()
            generator = FakeGenerator(gates=[gate])
            store = BackgroundGenerationStore(generator)
            store.update_inputs(S1)
            first = store.start()
            await settle()
            second = store.start()
            gate.set()
            await settle()
            third = store.start()
            await settle()
            return first, second, third, generator

        first, second, third, generator = asyncio.run(scenario())
        assert first.attempt_id == second.attempt_id == third.attempt_id
        assert third.status is GenerationStatus.READY
        assert generator.call_count == 1

    def test_reordered_keys_keep_ready_draft(self):
        async def scenario():
            generator = FakeGenerator()
            store = BackgroundGenerationStore(generator)
            store.update_inputs(S1)
            store.start()
            await settle()
            state = store.update_inputs(dict(reversed(list(S1.items()))))
            store.start()
            await settle()
            return state, generator

        state, generator = asyncio.run(scenario())
        assert state.status is GenerationStatus.READY
        assert generator.call_count == 1

    def test_error_state_and_retry(self):
        async def scenario():
            generator = FakeGenerator(fail_with="OpenAI returned empty sections")
            store = BackgroundGenerationStore(generator)
            store.update_inputs(S1)
            store.start()
            await settle()
            failed = store.read()

            generator.fail_with = None
            store.start()
            await settle()
            return failed, store.read(), generator

        failed, retried, generator = asyncio.run(scenario())
        assert failed.status is GenerationStatus.ERROR
        assert failed.error == "OpenAI returned empty sections"
        assert failed.result is None
        assert retried.status is GenerationStatus.READY
        assert retried.attempt_id == failed.attempt_id + 1
        assert generator.call_count == 2

    def test_call_cancelled_by_generator_surfaces_error_and_retries(self):
        """A generator whose own task ends cancelled must not leave the slot pending."""

        async def scenario():
            calls = []

            async def flaky(form_data, enrichment):
                calls.append(form_data)
                if len(calls) == 1:
                    raise asyncio.CancelledError()
                return GeneratedDocument(document={"title": "second try"})

            store = BackgroundGenerationStore(flaky)
            store.update_inputs(S1)
            store.start()
            await settle()
            failed = store.read()

            store.start()
            await settle()
            return failed, store.read(), calls

        failed, retried, calls = asyncio.run(scenario())
        assert failed.status is GenerationStatus.ERROR
        assert failed.error == "cancelled"
        assert failed.completed_at is not None
        assert retried.status is GenerationStatus.READY
        assert retried.result.document == {"title": "second try"}
        assert len(calls) == 2

    def test_enrichment_captured_at_start(self):
        async def scenario():
            gate = asyncio.Event()
            generator = FakeGenerator(gates=[gate])
            store = BackgroundGenerationStore(generator)
            store.update_inputs(S1)
            store.set_enrichment(EnrichmentBundle(jurisdiction={"country": "Germany"}))
            store.start()
            await settle()
            store.set_enrichment(EnrichmentBundle(jurisdiction={"country": "France"}))
            gate.set()
            await settle()
            return store.read(), generator

        state, generator = asyncio.run(scenario())
        assert state.status is GenerationStatus.READY
        assert generator.enrichments[0].jurisdiction == {"country": "Germany"}


# ===================================================================== #
#  update_inputs / invalidation                                           #
# ===================================================================== #

class TestInvalidation:
    def test_input_change_marks_pending_stale_and_cancels(self):
        async def scenario():
            generator = FakeGenerator(gates=[asyncio.Event()])
            store = BackgroundGenerationStore(generator)
            store.update_inputs(S1)
            store.start()
            await settle()
            token = store._attempt.token
            state = store.update_inputs(S2)
            await settle()
            return state, token, generator

        state, token, generator = asyncio.run(scenario())
        assert state.status is GenerationStatus.STALE
        assert state.stale_reason is CancellationReason.FORM_UPDATED
        assert state.is_current is False
        assert token.cancelled is True
        assert generator.cancelled == 1

    def test_ready_draft_kept_when_stale(self):
        async def scenario():
            store = BackgroundGenerationStore(FakeGenerator())
            store.update_inputs(S1)
            store.start()
            await settle()
            return store.update_inputs(S2)

        state = asyncio.run(scenario())
        assert state.status is GenerationStatus.STALE
        assert state.result is not None
        assert state.result.fingerprint == fingerprint(S1)

    def test_error_becomes_stale_on_change(self):
        async def scenario():
            store = BackgroundGenerationStore(FakeGenerator(fail_with="boom"))
            store.update_inputs(S1)
            store.start()
            await settle()
            return store.update_inputs(S2)

        state = asyncio.run(scenario())
        assert state.status is GenerationStatus.STALE
        assert state.error == "boom"

    def test_idle_unaffected_by_change(self):
        store = BackgroundGenerationStore(FakeGenerator())
        store.update_inputs(S1)
        state = store.update_inputs(S2)
        assert state.status is GenerationStatus.IDLE
        assert store.fingerprint == fingerprint(S2)

    def test_merge_inputs(self):
        store = BackgroundGenerationStore(FakeGenerator())
        store.update_inputs(S1)
        store.merge_inputs({"salary": 90000})
        assert store.snapshot == S2
        assert store.fingerprint == fingerprint(S2)

    def test_snapshot_is_copied(self):
        store = BackgroundGenerationStore(FakeGenerator())
        form = {"companyName": "Acme", "benefits": ["health"]}
        store.update_inputs(form)
        form["benefits"].append("dental")
        assert store.snapshot["benefits"] == ["health"]

    def test_clearing_inputs_goes_stale(self):
        async def scenario():
            store = BackgroundGenerationStore(FakeGenerator())
            store.update_inputs(S1)
            store.start()
            await settle()
            return store.update_inputs({}), store.fingerprint

        state, current = asyncio.run(scenario())
        assert current == ""
        assert state.status is GenerationStatus.STALE


# ===================================================================== #
#  Stale completions                                                      #
# ===================================================================== #

class TestStaleCompletion:
    def test_superseded_draft_never_overwrites_newer(self):
        async def scenario():
            first, second = asyncio.Event(), asyncio.Event()
            generator = FakeGenerator(gates=[first, second])
            store = BackgroundGenerationStore(generator)
            store.update_inputs(S1)
            store.start()
            await settle()
            store.update_inputs(S2)
            store.start()
            await settle()

            first.set()
            await settle()
            mid = store.read()

            second.set()
            await settle()
            return mid, store.read(), generator

        mid, final, generator = asyncio.run(scenario())
        assert mid.status is GenerationStatus.PENDING
        assert mid.fingerprint == fingerprint(S2)
        assert final.status is GenerationStatus.READY
        assert final.result.fingerprint == fingerprint(S2)
        assert final.result.document["call"] == 2
        assert generator.call_count == 2

    def test_late_outcome_for_cancelled_attempt_ignored(self):
        async def scenario():
            store = BackgroundGenerationStore(FakeGenerator(gates=[asyncio.Event()]))
            store.update_inputs(S1)
            store.start()
            await settle()
            attempt = store._attempt
            store.update_inputs(S2)
            store._complete(
                attempt,
                GenerationOutcome(
                    kind=OutcomeKind.SUCCEEDED,
                    generated=GeneratedDocument(document={"title": "late"}),
                ),
            )
            return store.read()

        state = asyncio.run(scenario())
        assert state.status is GenerationStatus.STALE
        assert state.result is None

    def test_completion_for_replaced_attempt_ignored(self):
        async def scenario():
            store = BackgroundGenerationStore(FakeGenerator(gates=[asyncio.Event(), asyncio.Event()]))
            store.update_inputs(S1)
            store.start()
            await settle()
            old = store._attempt
            store.update_inputs(S2)
            store.start()
            store._complete(
                old,
                GenerationOutcome(kind=OutcomeKind.FAILED, error="late failure"),
            )
            return store.read()

        state = asyncio.run(scenario())
        assert state.status is GenerationStatus.PENDING
        assert state.error is None


# ===================================================================== #
#  cancel                                                                 #
# ===================================================================== #

class TestCancel:
    def _pending_store(self, generator):
        store = BackgroundGenerationStore(generator)
        store.update_inputs(S1)
        store.start()
        return store

    @pytest.mark.parametrize("reason", ["manual", "consumed"])
    def test_forgetting_reasons_go_idle(self, reason):
        async def scenario():
            generator = FakeGenerator(gates=[asyncio.Event()])
            store = self._pending_store(generator)
            await settle()
            state = store.cancel(reason)
            await settle()
            return state, generator

        state, generator = asyncio.run(scenario())
        assert state.status is GenerationStatus.IDLE
        assert state.attempt_id is None
        assert state.result is None
        assert generator.cancelled == 1

    @pytest.mark.parametrize("reason", ["form-updated", "navigation"])
    def test_invalidating_reasons_go_stale(self, reason):
        async def scenario():
            store = self._pending_store(FakeGenerator(gates=[asyncio.Event()]))
            await settle()
            return store.cancel(reason)

        state = asyncio.run(scenario())
        assert state.status is GenerationStatus.STALE
        assert state.stale_reason == CancellationReason(reason)

    def test_cancel_without_attempt(self):
        store = BackgroundGenerationStore(FakeGenerator())
        assert store.cancel().status is GenerationStatus.IDLE

    def test_unknown_reason_rejected(self):
        store = BackgroundGenerationStore(FakeGenerator())
        with pytest.raises(ValueError):
            store.cancel("bored")

    def test_restart_after_navigation(self):
        async def scenario():
            generator = FakeGenerator(gates=[asyncio.Event()])
            store = self._pending_store(generator)
            await settle()
            store.cancel(CancellationReason.NAVIGATION)
            restarted = store.start()
            await settle()
            return restarted, store.read(), generator

        restarted, final, generator = asyncio.run(scenario())
        assert restarted.status is GenerationStatus.PENDING
        assert final.status is GenerationStatus.READY
        assert generator.call_count == 2

    def test_aclose_cancels_in_flight(self):
        async def scenario():
            generator = FakeGenerator(gates=[asyncio.Event()])
            store = self._pending_store(generator)
            await settle()
            await store.aclose()
            await settle()
            return store.read(), generator

        state, generator = asyncio.run(scenario())
        assert state.status is GenerationStatus.IDLE
        assert generator.cancelled == 1


class TestRead:
    def test_read_returns_copy(self):
        async def scenario():
            store = BackgroundGenerationStore(FakeGenerator())
            store.update_inputs(S1)
            store.start()
            await settle()
            store.read().result.document["title"] = "tampered"
            return store.read()

        state = asyncio.run(scenario())
        assert state.result.document["title"] == "Employment Agreement - Acme"


# ===================================================================== #
#  End-to-end lifecycle                                                   #
# ===================================================================== #

def test_full_lifecycle():
    """Empty -> pending -> ready -> stale on edit -> new draft for new inputs."""

    async def scenario():
        gate = asyncio.Event()
        generator = FakeGenerator(gates=[gate])
        store = BackgroundGenerationStore(generator)
        states = [store.start()]

        store.update_inputs(S1)
        states.append(store.start())
        await settle()
        gate.set()
        await settle()
        states.append(store.read())

        states.append(store.update_inputs(S2))
        states.append(store.start())
        await settle()
        states.append(store.read())
        return states, generator

    states, generator = asyncio.run(scenario())
    assert [s.status for s in states] == [
        GenerationStatus.IDLE,
        GenerationStatus.PENDING,
        GenerationStatus.READY,
        GenerationStatus.STALE,
        GenerationStatus.PENDING,
        GenerationStatus.READY,
    ]
    assert states[-1].result.fingerprint == fingerprint(S2)
    assert states[-1].attempt_id == 2
    assert generator.call_count == 2
