import pytest

from prompt_cache.observability import CacheEventRecord, validate_event


def test_cache_event_schema_roundtrip():
    record = CacheEventRecord(
        event="evict",
        size=99,
        key="u1:low:zero:zero:0:en:false:beginner",
        user_id="u1",
        reason="capacity",
    )

    payload = record.to_dict()

    assert payload["event"] == "evict"
    assert payload["count"] == 1
    assert payload["reason"] == "capacity"


def test_unknown_event_rejected():
    with pytest.raises(ValueError):
        CacheEventRecord(event="teleport", size=0).to_dict()


def test_negative_size_rejected():
    payload = CacheEventRecord(event="hit", size=1).to_dict()
    payload["size"] = -1

    with pytest.raises(ValueError):
        validate_event(payload)
