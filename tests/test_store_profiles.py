from __future__ import annotations

import asyncio

import pytest

from profile_configs.models import ENCRYPT_BACKUP, USE_DEFAULT_CONFIGS, ConfigEntry
from profile_configs.store import (
    REMOVED_PROFILE,
    ConfigStore,
    ConfigStoreError,
    JsonFileStorage,
    ProfileError,
    StorageError,
)

from conftest import DEFAULT_PROFILE


def test_new_profile_reads_default_profile(store, storage):
    async def scenario():
        await storage.save(ConfigEntry(name="theme", value="light", profile_id=DEFAULT_PROFILE))
        await store.create_profile("work")
        return await store.get_all("work")

    configs = asyncio.run(scenario())

    assert configs.profile_id == DEFAULT_PROFILE
    assert configs.requested_profile == "work"
    assert configs.get("theme").value == "light"
    assert configs.get(USE_DEFAULT_CONFIGS).profile_id == "work"


def test_inheriting_profile_matches_default_values(store):
    async def scenario():
        await store.create_profile("work")
        await store.get_all(DEFAULT_PROFILE)
        await store.save_objects([
            {"name": "theme", "value": "dark"},
            {"name": "pagination", "value": 25},
        ])
        default_configs = await store.get_object()
        await store.get_all("work")
        work_configs = await store.get_object()
        return default_configs, work_configs

    default_configs, work_configs = asyncio.run(scenario())

    for name, value in default_configs.items():
        if name in (USE_DEFAULT_CONFIGS, ENCRYPT_BACKUP):
            continue
        assert work_configs[name] == value
    assert work_configs["theme"] == "dark"
    assert work_configs[USE_DEFAULT_CONFIGS] == 1


def test_saving_from_inheriting_profile_writes_default(store, storage):
    async def scenario():
        await store.create_profile("work")
        await store.get_all("work")
        await store.save_objects({"theme": "dark"})
        return await storage.get(DEFAULT_PROFILE, "theme"), await storage.get("work", "theme")

    default_theme, work_theme = asyncio.run(scenario())

    assert default_theme.value == "dark"
    assert work_theme is None


def test_isolated_profile_keeps_own_settings(store, storage):
    async def scenario():
        await store.get_all(DEFAULT_PROFILE)
        await store.create_profile("work")
        inherited = await store.get_all("work")
        assert inherited.profile_id == DEFAULT_PROFILE

        await store.save_objects({USE_DEFAULT_CONFIGS: 0}, "work")
        isolated = await store.get_all("work")
        assert isolated.profile_id == "work"

        await store.save_objects({"theme": "dark"})
        return (
            await store.get_config("theme"),
            await storage.get(DEFAULT_PROFILE, "theme"),
            await storage.get("work", USE_DEFAULT_CONFIGS),
        )

    theme, default_theme, flag = asyncio.run(scenario())

    assert theme == "dark"
    assert default_theme.value == "default"
    assert flag.value == 0


def test_resolve_profile(store, storage):
    async def scenario():
        await storage.save(ConfigEntry(name=USE_DEFAULT_CONFIGS, value="0", profile_id="home"))
        return (
            await store.resolve_profile(DEFAULT_PROFILE),
            await store.resolve_profile("work"),
            await store.resolve_profile("home"),
        )

    assert asyncio.run(scenario()) == (DEFAULT_PROFILE, DEFAULT_PROFILE, "home")


def test_get_profiles_lists_inheriting_profiles(store):
    async def scenario():
        await store.create_profile("work")
        await store.create_profile("home")
        await store.get_all("home")
        await store.save_objects({USE_DEFAULT_CONFIGS: 0}, "home")
        await store.get_all(DEFAULT_PROFILE)
        return await store.get_profiles()

    assert asyncio.run(scenario()) == [DEFAULT_PROFILE, "work"]


def test_get_profiles_of_isolated_profile(store):
    async def scenario():
        await store.create_profile("home")
        await store.get_all("home")
        await store.save_objects({USE_DEFAULT_CONFIGS: 0}, "home")
        await store.get_all("home")
        return await store.get_profiles()

    assert asyncio.run(scenario()) == ["home"]


def test_get_profiles_when_backup_is_claimed(store, storage):
    async def scenario():
        await storage.save(ConfigEntry(name=ENCRYPT_BACKUP, value={"encrypt": 1}, profile_id="work"))
        configs = await store.get_all("work")
        return configs, await store.get_profiles()

    configs, profiles = asyncio.run(scenario())

    assert configs.profile_id == DEFAULT_PROFILE
    assert configs.get(ENCRYPT_BACKUP).profile_id == "work"
    assert profiles == ["work"]


def test_create_profile_is_listed_immediately(store):
    async def scenario():
        await store.get_all(DEFAULT_PROFILE)
        await store.create_profile("work")
        return await store.get_config("appProfiles"), await store.get_profiles()

    app_profiles, profiles = asyncio.run(scenario())

    assert app_profiles == [DEFAULT_PROFILE, "work"]
    assert profiles == [DEFAULT_PROFILE, "work"]


def test_remove_profile_announces_after_removal(store, recorder):
    async def scenario():
        await store.create_profile("work")
        await store.get_all(DEFAULT_PROFILE)
        await store.remove_profile("work")
        return await store.get_config("appProfiles")

    app_profiles = asyncio.run(scenario())

    assert recorder.payloads(REMOVED_PROFILE) == [("work",)]
    assert app_profiles == [DEFAULT_PROFILE]


def test_remove_profile_failure_announces_nothing(store, storage, recorder, monkeypatch):
    async def failing_remove(name):
        raise StorageError("disk unavailable")

    async def scenario():
        await store.create_profile("work")
        monkeypatch.setattr(storage, "remove_namespace", failing_remove)
        await store.remove_profile("work")

    with pytest.raises(StorageError):
        asyncio.run(scenario())

    assert REMOVED_PROFILE not in recorder.names()


def test_remove_unknown_profile(store, recorder):
    with pytest.raises(ProfileError):
        asyncio.run(store.remove_profile("missing"))

    assert recorder.names() == []


def test_request_dispatch(store):
    async def scenario():
        await store.request("create:profile", "work")
        return await store.request("get:config", "pagination"), await store.request("get:profiles")

    pagination, profiles = asyncio.run(scenario())

    assert pagination == 10
    assert profiles == [DEFAULT_PROFILE, "work"]


def test_request_unknown_name(store):
    with pytest.raises(ConfigStoreError):
        asyncio.run(store.request("get:nothing"))


def test_flag_profile_outside_data_dir_is_rejected(tmp_path, events):
    storage = JsonFileStorage(tmp_path / "data", DEFAULT_PROFILE)
    store = ConfigStore(storage, events=events)

    async def scenario():
        await store.get_all("../escaped")
        await store.save_objects({USE_DEFAULT_CONFIGS: 0}, "../escaped")

    with pytest.raises(ProfileError):
        asyncio.run(scenario())

    assert not (tmp_path / "escaped").exists()
