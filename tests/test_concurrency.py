"""
tests/test_concurrency.py

Concurrency safety for WitnessRegistry and ProofVerifier.
Appends from several threads must produce contiguous ids with no lost
epochs, and concurrent readers must never see a half-appended epoch.

Run:
    pytest tests/test_concurrency.py -v --tb=short
"""

import threading

from claimwitness.core.registry import WitnessRegistry
from claimwitness.core.verification import ProofVerifier

from conftest import ADMIN


def _witnesses(tag: int):
    return [("0x" + f"{tag:08x}{i:032x}", f"wss://{tag}-{i}.example") for i in range(3)]


class TestConcurrency:

    def test_concurrent_appends_no_lost_epochs(self):
        """Four writers × 25 appends must yield ids 1..100 exactly once."""
        registry = WitnessRegistry(admin=ADMIN)
        errors   = []
        ids      = []
        ids_lock = threading.Lock()

        def writer(tag):
            try:
                for n in range(25):
                    epoch_id = registry.add_epoch(
                        _witnesses(tag * 100 + n), 2, caller=ADMIN, valid_from=1000,
                    )
                    with ids_lock:
                        ids.append(epoch_id)
            except Exception as e:
                errors.append(str(e))

        threads = [threading.Thread(target=writer, args=(t,)) for t in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        # Step 1 — no exceptions during concurrent appends
        assert errors == [], f"Concurrent appends raised exceptions: {errors}"

        # Step 2 — every append got a unique, contiguous id
        assert sorted(ids) == list(range(1, 101))
        assert registry.current_epoch() == 100

        # Step 3 — stored ids match their positions
        assert [e.id for e in registry.epochs()] == list(range(1, 101))

    def test_readers_never_see_partial_epoch(self):
        """Readers racing one writer always get a complete epoch or None."""
        registry = WitnessRegistry(admin=ADMIN)
        registry.add_epoch(_witnesses(0), 2, caller=ADMIN, valid_from=0)
        stop     = threading.Event()
        problems = []

        def reader():
            while not stop.is_set():
                current = registry.current_epoch()
                epoch   = registry.fetch_epoch(current)
                if epoch is None or epoch.id != current or len(epoch.witnesses) != 3:
                    problems.append((current, epoch))

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        try:
            for n in range(1, 200):
                registry.add_epoch(_witnesses(n), 2, caller=ADMIN, valid_from=n)
        finally:
            stop.set()
            for t in readers:
                t.join()

        assert problems == []
        assert registry.current_epoch() == 200

    def test_shared_verifier_across_threads(self, registry, make_proof):
        """One ProofVerifier serving many threads gives identical results."""
        proof    = make_proof(registry)
        verifier = ProofVerifier(registry)
        results  = []
        lock     = threading.Lock()

        def verify_10():
            for _ in range(10):
                outcome = verifier.verify(proof).valid
                with lock:
                    results.append(outcome)

        threads = [threading.Thread(target=verify_10) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [True] * 40
