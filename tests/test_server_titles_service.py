import threading
import time

import pytest

import upflix.cooldown as cd
from upflix.errors import ExtractionError, TransportError
from upflix.models import MediaRecord

from upflix_api.api.caching.record_store import RecordStore
from upflix_api.api.services.titles import TitleService


class SpyLimiter(cd.CooldownLimiter):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.signals = 0

    def signal_block(self) -> None:
        self.signals += 1
        super().signal_block()


class SpyStore(RecordStore):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.reads = 0
        self.writes = 0

    def has(self, key):
        self.reads += 1
        return super().has(key)

    def get(self, key):
        self.reads += 1
        return super().get(key)

    def store(self, key, value):
        self.writes += 1
        super().store(key, value)


@pytest.fixture()
def store(tmp_path, clock):
    return SpyStore(tmp_path / "cache.json", clock=clock)


@pytest.fixture()
def limiter():
    return SpyLimiter(cooldown_seconds=600.0)


@pytest.fixture()
def service(store, limiter, fake_fetcher):
    return TitleService(store=store, limiter=limiter, fetcher=fake_fetcher)


def test_miss_fetches_and_stores(service, store, fake_fetcher, clock):
    result = service.lookup("/film/inception")

    assert result.status == "fetched"
    assert result.record.english_title == "Inception"
    assert result.record.fetched_at == clock.now
    assert fake_fetcher.calls == ["/film/inception"]
    assert store.has("/film/inception") is True


def test_second_lookup_is_served_from_cache(service, fake_fetcher):
    first = service.lookup("/film/inception")
    second = service.lookup("/film/inception")

    assert second.status == "cached"
    assert second.record.to_dict() == first.record.to_dict()
    assert len(fake_fetcher.calls) == 1


def test_expired_entry_is_refetched(service, fake_fetcher, clock):
    service.lookup("/film/inception")
    clock.advance(days=7, seconds=1)

    result = service.lookup("/film/inception")

    assert result.status == "fetched"
    assert len(fake_fetcher.calls) == 2


def test_active_limiter_short_circuits_without_cache_read(service, store, limiter, fake_fetcher):
    limiter.signal_block()

    result = service.lookup("/film/inception")

    assert result.rate_limited is True
    assert result.record is None
    assert fake_fetcher.calls == []
    assert store.reads == 0


def test_bypass_ignores_limiter_and_cache(service, store, limiter, fake_fetcher):
    service.lookup("/film/inception")
    limiter.signal_block()
    reads_before = store.reads

    result = service.lookup("/film/inception", bypass=True)

    assert result.status == "fetched"
    assert len(fake_fetcher.calls) == 2
    assert store.reads == reads_before
    # bypass no resetea el limitador
    assert limiter.active() is True


def test_sentinel_title_signals_block_and_skips_cache(service, store, limiter, fake_fetcher):
    fake_fetcher.fields["english_title"] = "Miss Christmas"

    result = service.lookup("/film/x")

    assert result.rate_limited is True
    assert limiter.signals == 1
    assert limiter.active() is True
    assert store.writes == 0
    assert store.has("/film/x") is False


def test_sentinel_keeps_existing_valid_entry(service, store, fake_fetcher):
    service.lookup("/film/inception")
    before = store.get("/film/inception")

    fake_fetcher.fields["english_title"] = "Miss Christmas"
    result = service.lookup("/film/inception", bypass=True)

    assert result.rate_limited is True
    assert store.get("/film/inception") == before
    assert store.writes == 1


def test_sentinel_match_is_exact(service, limiter, fake_fetcher):
    fake_fetcher.fields["english_title"] = "miss christmas"

    result = service.lookup("/film/x")

    assert result.status == "fetched"
    assert limiter.signals == 0


def test_block_then_other_key_is_rate_limited(service, fake_fetcher):
    fake_fetcher.fields["english_title"] = "Miss Christmas"
    assert service.lookup("/film/x").rate_limited is True

    fake_fetcher.fields["english_title"] = "Y"
    assert service.lookup("/film/y").rate_limited is True
    assert fake_fetcher.calls == ["/film/x"]


def test_limiter_cools_down_and_fetches_again(service, fake_fetcher, monkeypatch):
    now = [0.0]
    monkeypatch.setattr(cd.time, "monotonic", lambda: now[0])
    fake_fetcher.fields["english_title"] = "Miss Christmas"
    service.lookup("/film/x")

    fake_fetcher.fields["english_title"] = "X"
    now[0] = 599.0
    assert service.lookup("/film/x").rate_limited is True

    now[0] = 600.5
    assert service.lookup("/film/x").status == "fetched"


@pytest.mark.parametrize("error", [TransportError("down"), ExtractionError("empty")])
def test_fetch_errors_propagate_without_side_effects(service, store, limiter, fake_fetcher, error):
    fake_fetcher.error = error

    with pytest.raises(type(error)):
        service.lookup("/film/x")

    assert store.writes == 0
    assert limiter.active() is False
    assert limiter.signals == 0


def test_custom_sentinel_title(store, limiter, fake_fetcher):
    service = TitleService(store=store, limiter=limiter, fetcher=fake_fetcher, block_sentinel_title="Decoy")
    fake_fetcher.fields["english_title"] = "Decoy"

    assert service.lookup("/film/x").rate_limited is True


def test_concurrent_misses_fetch_once(store, limiter, clock):
    calls = []

    class SlowFetcher:
        def fetch(self, path):
            calls.append(path)
            time.sleep(0.05)
            return MediaRecord(fetched_at=clock(), english_title="Inception")

    service = TitleService(store=store, limiter=limiter, fetcher=SlowFetcher())
    results = []

    def worker():
        results.append(service.lookup("/film/inception"))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert calls == ["/film/inception"]
    assert sorted(r.status for r in results) == ["cached", "cached", "cached", "fetched"]
    assert len({r.record.to_dict()["fetched_at"] for r in results}) == 1
    assert service._key_locks == {}


def test_key_locks_are_released_after_lookups(service, fake_fetcher):
    for i in range(50):
        service.lookup(f"/film/{i}")
    service.lookup("/film/0")
    service.lookup("/film/1", bypass=True)

    assert len(fake_fetcher.calls) == 51
    assert service._key_locks == {}
    assert service._key_users == {}


def test_key_lock_is_released_when_fetch_fails(service, fake_fetcher):
    fake_fetcher.error = TransportError("boom", path="/film/x")

    with pytest.raises(TransportError):
        service.lookup("/film/x")

    assert service._key_locks == {}
