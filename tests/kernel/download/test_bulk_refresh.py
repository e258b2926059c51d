import asyncio

import pytest

from jarkeeper.kernel.artifacts import CacheKey
from jarkeeper.kernel.download import Downloader, TaskSet
from jarkeeper.kernel.errors import BulkRefreshError, NetworkError, NotFoundError
from jarkeeper.kernel.versions import parse_version
from jarkeeper.kinds.factory import get_kind

KEYS = ["paper@1.8.8", "paper@1.12.2", "paper@1.15.2", "paper@1.16.5"]


@pytest.fixture
def downloader(cache, registry):
    return Downloader(cache, registry)


@pytest.fixture
def seeded(cache, registry, seed_cache):
    """Every key cached at build 10; the registry knows build 10 too."""
    for text in KEYS:
        seed_cache(cache, text, 10)
        registry.latest[text] = 10
    return cache


# --- TaskSet ---

def test_task_set_collects_every_outcome_in_order():
    finished = []

    async def ok(value, delay):
        await asyncio.sleep(delay)
        finished.append(value)
        return value

    async def boom():
        raise RuntimeError("boom")

    async def scenario():
        tasks = TaskSet()
        tasks.add(ok("slow", 0.02))
        tasks.add(boom())
        tasks.add(ok("fast", 0))
        return await tasks.wait()

    outcomes = asyncio.run(scenario())

    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[0].value == "slow"
    assert isinstance(outcomes[1].error, RuntimeError)
    assert sorted(finished) == ["fast", "slow"]


# --- download_one / refresh_one ---

def test_download_one_reports_progress(downloader, registry, cache, fake_payload):
    registry.latest["paper@1.16.5"] = 7
    key = CacheKey.parse("paper@1.16.5")
    seen = []

    artifact = asyncio.run(downloader.download_one(key, lambda k, received, total: seen.append((k, received, total))))

    size = len(fake_payload(key, 7))
    assert str(artifact.version) == "1.16.5-7"
    assert cache.get_cached_patch(key) == 7
    assert [received for _, received, _ in seen] == [size // 2, size]
    assert all(k == key and total == size for k, _, total in seen)


def test_refresh_one_skips_current_artifact(downloader, seeded, registry):
    assert asyncio.run(downloader.refresh_one(CacheKey.parse("paper@1.16.5"))) is None
    assert registry.downloads == []


def test_refresh_one_unknown_version(downloader, registry):
    with pytest.raises(NotFoundError):
        asyncio.run(downloader.refresh_one(CacheKey.parse("paper@1.12")))
    assert registry.downloads == []


# --- bulk_refresh ---

def test_bulk_refresh_downloads_exactly_the_stale_keys(downloader, seeded, registry, fake_payload):
    stale = {"paper@1.12.2", "paper@1.16.5"}
    for text in stale:
        registry.latest[text] = 11
    before = {text: seeded.path_for(CacheKey.parse(text)).read_bytes() for text in KEYS}

    outcomes = asyncio.run(downloader.bulk_refresh())

    assert sorted(text for text, _ in registry.downloads) == sorted(stale)
    assert {str(o.key) for o in outcomes if o.downloaded} == stale
    for text in KEYS:
        key = CacheKey.parse(text)
        if text in stale:
            assert seeded.get_cached_patch(key) == 11
            assert seeded.path_for(key).read_bytes() == fake_payload(key, 11)
        else:
            assert seeded.get_cached_patch(key) == 10
            assert seeded.path_for(key).read_bytes() == before[text]


def test_bulk_refresh_on_current_cache_downloads_nothing(downloader, seeded, registry):
    outcomes = asyncio.run(downloader.bulk_refresh())
    assert len(outcomes) == len(KEYS)
    assert registry.downloads == []


def test_bulk_refresh_of_empty_cache(downloader, registry):
    assert asyncio.run(downloader.bulk_refresh()) == []


def test_bulk_refresh_deduplicates_keys(downloader, registry):
    registry.latest["paper@1.16.5"] = 3
    key = CacheKey.parse("paper@1.16.5")
    outcomes = asyncio.run(downloader.bulk_refresh([key, CacheKey.parse("paper@1.16.5")]))
    assert len(outcomes) == 1
    assert registry.downloads == [("paper@1.16.5", 3)]


def test_failed_unit_does_not_cancel_siblings(downloader, seeded, registry):
    for text in KEYS:
        registry.latest[text] = 11
    registry.broken.add("paper@1.8.8")

    with pytest.raises(BulkRefreshError) as excinfo:
        asyncio.run(downloader.bulk_refresh())

    error = excinfo.value
    assert [str(key) for key, _ in error.failures] == ["paper@1.8.8"]
    assert isinstance(error.failures[0][1], NetworkError)
    assert sorted(registry.finished) == sorted(set(KEYS) - {"paper@1.8.8"})
    assert len(error.outcomes) == len(KEYS)

    # The failed unit keeps its previous build, the others moved on
    assert seeded.get_cached_patch(CacheKey.parse("paper@1.8.8")) == 10
    for text in set(KEYS) - {"paper@1.8.8"}:
        assert seeded.get_cached_patch(CacheKey.parse(text)) == 11


def test_every_failure_is_reported(downloader, seeded, registry):
    for text in KEYS:
        registry.latest[text] = 11
    registry.broken.update({"paper@1.8.8", "paper@1.15.2"})
    registry.unreachable.add("paper@1.12.2")

    with pytest.raises(BulkRefreshError) as excinfo:
        asyncio.run(downloader.bulk_refresh())

    failed = sorted(str(key) for key, _ in excinfo.value.failures)
    assert failed == ["paper@1.12.2", "paper@1.15.2", "paper@1.8.8"]
    assert "3 refresh unit(s) failed" in str(excinfo.value)
    assert seeded.get_cached_patch(CacheKey.parse("paper@1.16.5")) == 11


# --- fetch_to_file ---

def test_fetch_to_file_latest_build(downloader, registry, cache, tmp_path, fake_payload):
    registry.latest["paper@1.16.5"] = 9
    destination = tmp_path / "server.jar"

    fetched = asyncio.run(downloader.fetch_to_file(get_kind("paper"), parse_version("1.16.5"), destination))

    assert fetched == parse_version("1.16.5-9")
    assert destination.read_bytes() == fake_payload(CacheKey.parse("paper@1.16.5"), 9)
    assert cache.entries() == {}


def test_fetch_to_file_pinned_build(downloader, registry, tmp_path):
    destination = tmp_path / "server.jar"
    fetched = asyncio.run(downloader.fetch_to_file(get_kind("paper"), parse_version("1.8.8-443"), destination))
    assert fetched.build == 443
    assert registry.downloads == [("paper@1.8.8", 443)]


def test_fetch_to_file_failure_leaves_no_file(downloader, registry, tmp_path):
    registry.latest["paper@1.16.5"] = 9
    registry.broken.add("paper@1.16.5")
    destination = tmp_path / "server.jar"

    with pytest.raises(NetworkError):
        asyncio.run(downloader.fetch_to_file(get_kind("paper"), parse_version("1.16.5"), destination))
    assert list(tmp_path.iterdir()) == [tmp_path / "home"]
