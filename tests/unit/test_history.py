"""Tests for capped history logs."""
from docqa.history import HistoryLog


def test_append_and_get():
    log = HistoryLog("search", max_entries=5)
    entry = log.append(question="q", answer="a")

    assert log.get(entry.id) is entry
    assert log.get("missing") is None
    data = entry.to_dict()
    assert data["kind"] == "search"
    assert data["question"] == "q"
    assert "timestamp" in data


def test_oldest_entries_dropped_past_capacity():
    log = HistoryLog("search", max_entries=3)
    entries = [log.append(n=i) for i in range(5)]

    assert len(log) == 3
    assert log.get(entries[0].id) is None
    assert log.get(entries[1].id) is None
    assert [e.data["n"] for e in log.list()] == [4, 3, 2]
    assert [e.data["n"] for e in log.list(newest_first=False)] == [2, 3, 4]


def test_ids_are_unique():
    log = HistoryLog("document", max_entries=10)
    ids = {log.append().id for _ in range(10)}
    assert len(ids) == 10


def test_remove_entry():
    log = HistoryLog("document", max_entries=5)
    first = log.append(n=1)
    second = log.append(n=2)

    assert log.remove(first.id) is True
    assert log.remove(first.id) is False
    assert log.list() == [second]
