"""Tests for the session-wide manifest accumulator."""
import threading

import pytest

from manifest import ManifestAccumulator, ManifestEntry, RemoteArtifact
from resolution.models import ArtifactIdentity, Dependency, Exclusion, Repository

REPO_A = Repository("a", "https://a.example/maven2")
REPO_B = Repository("b", "https://b.example/maven2")


def _remote(artifact="lib", repo=REPO_A, version="1.0"):
    return RemoteArtifact(ArtifactIdentity("com.example", artifact, "jar", None, version), repo)


def _entry(path, url="https://a.example/x", sha1="0" * 40):
    return ManifestEntry(path, url, sha1)


def _claim_and_record(acc, remote, entry):
    assert acc.claim(remote)
    acc.record(remote, entry)


class TestClaim:
    """claim() is an atomic check-and-insert."""

    def test_first_claim_wins(self):
        acc = ManifestAccumulator()
        assert acc.claim(_remote()) is True
        assert acc.claim(_remote()) is False

    def test_same_identity_in_two_repositories_is_two_artifacts(self):
        acc = ManifestAccumulator()
        assert acc.claim(_remote(repo=REPO_A))
        assert acc.claim(_remote(repo=REPO_B))

    def test_concurrent_claims_have_exactly_one_winner_each(self):
        acc = ManifestAccumulator()
        artifacts = [_remote(artifact=f"lib{i}") for i in range(200)]
        wins = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            won = [remote for remote in artifacts if acc.claim(remote)]
            wins.extend(won)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(wins) == len(artifacts)
        assert set(wins) == set(artifacts)


class TestRecord:
    """Recording entries and tombstones."""

    def test_record_requires_claim(self):
        acc = ManifestAccumulator()
        with pytest.raises(KeyError):
            acc.record(_remote(), _entry("p"))

    def test_claimed_but_unrecorded_artifact_is_omitted(self):
        acc = ManifestAccumulator()
        acc.claim(_remote())
        assert acc.entries() == []
        # The tombstone still blocks a second claim.
        assert acc.claim(_remote()) is False

    def test_entries_are_sorted_and_unique(self):
        acc = ManifestAccumulator()
        _claim_and_record(acc, _remote("b"), _entry("com/example/b"))
        _claim_and_record(acc, _remote("a"), _entry("com/example/a"))
        _claim_and_record(acc, _remote("a", REPO_B), _entry("com/example/a"))
        assert acc.entries() == [_entry("com/example/a"), _entry("com/example/b")]

    def test_same_path_sorts_by_url(self):
        acc = ManifestAccumulator()
        _claim_and_record(acc, _remote(repo=REPO_B), _entry("com/example/lib", "https://b.example/x"))
        _claim_and_record(acc, _remote(repo=REPO_A), _entry("com/example/lib", "https://a.example/x"))
        assert [e.url for e in acc.entries()] == ["https://a.example/x", "https://b.example/x"]


class TestExpansion:
    """Dependency collections are reserved apart from artifact claims."""

    def test_first_caller_only(self):
        acc = ManifestAccumulator()
        root = Dependency(_remote().identity)
        assert acc.claim_expansion((root, (REPO_A,))) is True
        assert acc.claim_expansion((root, (REPO_A,))) is False

    def test_independent_of_artifact_claim(self):
        acc = ManifestAccumulator()
        assert acc.claim(_remote())
        assert acc.claim_expansion((Dependency(_remote().identity), (REPO_A,))) is True

    def test_exclusions_and_repositories_make_distinct_keys(self):
        acc = ManifestAccumulator()
        plain = Dependency(_remote().identity)
        narrowed = Dependency(_remote().identity, exclusions=frozenset({Exclusion("com.example", "d")}))
        assert acc.claim_expansion((plain, (REPO_A,)))
        assert acc.claim_expansion((narrowed, (REPO_A,)))
        assert acc.claim_expansion((plain, (REPO_B,)))
        assert not acc.claim_expansion((narrowed, (REPO_A,)))

    def test_concurrent_reservation_has_one_winner(self):
        acc = ManifestAccumulator()
        key = (Dependency(_remote().identity), (REPO_A,))
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(acc.claim_expansion(key))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
