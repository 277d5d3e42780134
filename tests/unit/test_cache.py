"""Tests for the answer cache."""
import pytest

from docqa.rag.cache import AnswerCache, normalize_question


def test_normalization_trims_and_folds_case():
    assert normalize_question("  Hello World ") == "hello world"
    assert normalize_question("STRASSE") == normalize_question("strasse")


@pytest.mark.parametrize("variant", [" Hello", "hello", "HELLO ", "\tHeLLo\n"])
def test_case_and_whitespace_variants_share_an_entry(clock, variant):
    cache = AnswerCache(ttl_seconds=60, clock=clock)
    cache.set("hello ", "world")
    assert cache.get(variant) == "world"
    assert len(cache) == 1


def test_missing_key_is_absent(clock):
    assert AnswerCache(ttl_seconds=60, clock=clock).get("anything") is None


def test_entry_expires_after_ttl(clock):
    cache = AnswerCache(ttl_seconds=1800, clock=clock)
    cache.set("question", "answer")

    clock.advance(1800 - 0.001)
    assert cache.get("question") == "answer"

    clock.advance(0.002)
    assert cache.get("question") is None
    assert len(cache) == 0


def test_set_again_restarts_ttl(clock):
    cache = AnswerCache(ttl_seconds=10, clock=clock)
    cache.set("q", "first")
    clock.advance(8)
    cache.set("Q", "second")
    clock.advance(8)
    assert cache.get("q") == "second"


def test_purge_expired_removes_only_stale_entries(clock):
    cache = AnswerCache(ttl_seconds=10, clock=clock)
    cache.set("old", "a")
    clock.advance(5)
    cache.set("new", "b")
    clock.advance(6)

    assert cache.purge_expired() == 1
    assert cache.get("new") == "b"
    assert len(cache) == 1


def test_max_entries_evicts_oldest(clock):
    cache = AnswerCache(ttl_seconds=60, max_entries=2, clock=clock)
    cache.set("one", "1")
    cache.set("two", "2")
    cache.set("three", "3")

    assert cache.get("one") is None
    assert cache.get("two") == "2"
    assert cache.get("three") == "3"


def test_zero_max_entries_means_unbounded(clock):
    cache = AnswerCache(ttl_seconds=60, max_entries=0, clock=clock)
    for i in range(100):
        cache.set(f"q{i}", str(i))
    assert len(cache) == 100
