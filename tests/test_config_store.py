import pytest

from autopilot.store.config_store import ConfigConflictError
from autopilot.store.models import ConfigDocument
from autopilot.utils import retry


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    async def _sleep(_delay):
        return None

    monkeypatch.setattr(retry.asyncio, "sleep", _sleep)


@pytest.mark.asyncio
async def test_create_get_replace_bumps_version(config_store):
    created = await config_store.create_document("flags", {"a": 1})
    assert created.version == 1

    loaded = await config_store.get_document("flags")
    assert loaded == ConfigDocument(key="flags", data={"a": 1}, version=1)

    loaded.data = {**loaded.data, "b": [1, 2]}
    replaced = await config_store.replace_document(loaded)
    assert replaced.version == 2
    assert (await config_store.get_document("flags")).data == {"a": 1, "b": [1, 2]}


@pytest.mark.asyncio
async def test_missing_document(config_store):
    assert await config_store.get_document("nope") is None


@pytest.mark.asyncio
async def test_create_existing_returns_current(config_store):
    await config_store.create_document("flags", {"a": 1})
    again = await config_store.create_document("flags", {"a": 2})
    assert again.data == {"a": 1}
    assert again.version == 1


@pytest.mark.asyncio
async def test_stale_replace_conflicts(config_store):
    await config_store.create_document("flags", {"a": 1})
    first = await config_store.get_document("flags")
    second = await config_store.get_document("flags")

    first.data = {"a": 2}
    await config_store.replace_document(first)

    second.data = {"a": 3}
    with pytest.raises(ConfigConflictError) as excinfo:
        await config_store.replace_document(second)
    assert excinfo.value.key == "flags"
    assert excinfo.value.expected_version == 1
    assert (await config_store.get_document("flags")).data == {"a": 2}


@pytest.mark.asyncio
async def test_replace_of_unknown_key_conflicts(config_store):
    with pytest.raises(ConfigConflictError):
        await config_store.replace_document(ConfigDocument(key="ghost", data={}, version=1))


@pytest.mark.asyncio
async def test_retry_reruns_whole_update(config_store):
    await config_store.create_document("counter", {"n": 0})
    calls = []

    @retry.retry_on_conflict
    async def increment():
        document = await config_store.get_document("counter")
        if not calls:
            # A concurrent writer lands between our read and write.
            rival = await config_store.get_document("counter")
            rival.data = {"n": rival.data["n"] + 10}
            await config_store.replace_document(rival)
        calls.append(document.version)
        document.data = {"n": document.data["n"] + 1}
        return await config_store.replace_document(document)

    result = await increment()

    assert calls == [1, 2]
    assert result.data == {"n": 11}
    assert result.version == 3


@pytest.mark.asyncio
async def test_retry_gives_up_after_three_attempts():
    attempts = []

    @retry.retry_on_conflict
    async def always_conflicts():
        attempts.append(1)
        raise ConfigConflictError("busy", 1)

    with pytest.raises(ConfigConflictError):
        await always_conflicts()
    assert len(attempts) == retry.MAX_ATTEMPTS
