"""Unit tests for the SQLModel repositories on in-memory SQLite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from sitedeploy.core.database.base import utc_now
from sitedeploy.core.database.entities import (
    BuildGroup,
    BuildHistory,
    BuildStatus,
    EnvVariable,
    EnvVariableScope,
    Site,
    User,
    format_duration,
)


class TestSiteRepository:
    async def test_get_by_name(self, repos, make_site):
        site = await make_site("shop")

        assert (await repos.sites.get_by_name("shop")).id == site.id
        assert await repos.sites.get_by_name("missing") is None

    async def test_get_by_id_or_name_prefers_id(self, repos, make_site):
        first = await make_site("shop")
        # Named like the id of the first site
        await make_site(str(first.id))

        assert (await repos.sites.get_by_id_or_name(str(first.id))).id == first.id
        assert (await repos.sites.get_by_id_or_name("shop")).id == first.id
        assert await repos.sites.get_by_id_or_name("999") is None

    async def test_list_and_count(self, repos, make_site):
        for name in ("a", "b", "c"):
            await make_site(name)

        assert [s.site_name for s in await repos.sites.list(limit=2)] == ["a", "b"]
        assert [s.site_name for s in await repos.sites.list(offset=2)] == ["c"]
        assert await repos.sites.count() == 3
        assert await repos.sites.count({"site_name": "b"}) == 1

    async def test_update_refreshes_updated_at(self, repos, make_site):
        site = await make_site("shop")
        before = site.updated_at

        site.port_pm2 = 3001
        updated = await repos.sites.update(site)

        assert updated.port_pm2 == 3001
        assert updated.updated_at >= before

    async def test_delete_removes_dependent_rows(self, repos, make_site):
        site = await make_site("shop")
        await repos.histories.create(BuildHistory(site_id=site.id))
        await repos.env_variables.create(EnvVariable(variable_name="KEY", variable_value="x", my_site_id=site.id))
        group = await repos.build_groups.create(BuildGroup(name="g"))
        await repos.build_groups.sync_sites(group.id, [site.id])

        assert await repos.sites.delete(site.id) is True

        assert await repos.sites.get_by_id(site.id) is None
        assert await repos.histories.latest_for_site(site.id) is None
        assert await repos.env_variables.get_for_site("KEY", site.id) is None
        assert await repos.build_groups.site_ids(group.id) == []
        assert await repos.sites.delete(site.id) is False


class TestBuildHistoryRepository:
    async def test_latest_for_site(self, repos, make_site):
        site = await make_site("shop")
        now = utc_now()
        await repos.histories.create(BuildHistory(site_id=site.id, status="success", created_at=now - timedelta(hours=1)))
        latest = await repos.histories.create(BuildHistory(site_id=site.id, status="failed", created_at=now))

        assert (await repos.histories.latest_for_site(site.id)).id == latest.id

    async def test_list_for_site_joins_user_name(self, repos, make_site):
        site = await make_site("shop")
        user = await repos.users.create(User(name="Alice", email="alice@example.com"))
        now = utc_now()
        await repos.histories.create(BuildHistory(site_id=site.id, user_id=user.id, created_at=now - timedelta(minutes=5)))
        await repos.histories.create(BuildHistory(site_id=site.id, created_at=now))

        rows = await repos.histories.list_for_site(site.id)

        assert [name for _, name in rows] == [None, "Alice"]
        assert len(await repos.histories.list_for_site(site.id, limit=1)) == 1

    def test_terminal_statuses(self):
        assert BuildStatus.SUCCESS.is_terminal
        assert BuildStatus.FAILED.is_terminal
        assert not BuildStatus.QUEUED.is_terminal
        assert not BuildStatus.PROCESSING.is_terminal

    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, "0s"), (59, "59s"), (60, "1m"), (95, "1m 35s"), (3720, "1h 2m")],
    )
    def test_format_duration(self, seconds, expected):
        start = utc_now()
        assert format_duration(start, start + timedelta(seconds=seconds)) == expected

    def test_format_duration_without_end(self):
        assert format_duration(utc_now(), None) == "—"


class TestEnvVariableRepository:
    async def test_scoped_lookups(self, repos, make_site):
        site = await make_site("shop")
        await repos.env_variables.create(EnvVariable(variable_name="API", variable_value="global"))
        await repos.env_variables.create(EnvVariable(variable_name="API", variable_value="group", group_name="web"))
        await repos.env_variables.create(EnvVariable(variable_name="API", variable_value="site", my_site_id=site.id))

        assert (await repos.env_variables.get_global("API")).variable_value == "global"
        assert (await repos.env_variables.get_for_group("API", "web")).variable_value == "group"
        assert (await repos.env_variables.get_for_site("API", site.id)).variable_value == "site"

    def test_scope_property(self):
        assert EnvVariable(variable_name="A", variable_value="x").scope is EnvVariableScope.GLOBAL
        assert EnvVariable(variable_name="A", variable_value="x", group_name="g").scope is EnvVariableScope.GROUP
        assert EnvVariable(variable_name="A", variable_value="x", my_site_id=1).scope is EnvVariableScope.SITE

    async def test_find_duplicate_treats_null_scope_as_equal(self, repos):
        existing = await repos.env_variables.create(EnvVariable(variable_name="API", variable_value="x"))

        assert (await repos.env_variables.find_duplicate("API", None, None)).id == existing.id
        assert await repos.env_variables.find_duplicate("API", None, None, exclude_id=existing.id) is None
        assert await repos.env_variables.find_duplicate("API", "web", None) is None

    async def test_search_is_case_insensitive(self, repos):
        for name in ("API_URL", "API_KEY", "DB_HOST"):
            await repos.env_variables.create(EnvVariable(variable_name=name, variable_value="x"))

        assert [v.variable_name for v in await repos.env_variables.search("api")] == ["API_KEY", "API_URL"]
        assert len(await repos.env_variables.search(limit=1, offset=1)) == 1
        assert await repos.env_variables.count_matching("db") == 1


class TestBuildGroupRepository:
    async def test_sync_sites_replaces_and_dedupes(self, repos, make_site):
        a, b, c = [await make_site(name) for name in ("a", "b", "c")]
        group = await repos.build_groups.create(BuildGroup(name="web"))

        assert await repos.build_groups.sync_sites(group.id, [a.id, b.id, a.id]) == [a.id, b.id]
        assert await repos.build_groups.site_ids(group.id) == [a.id, b.id]

        await repos.build_groups.sync_sites(group.id, [b.id, c.id])
        assert sorted(await repos.build_groups.site_ids(group.id)) == [b.id, c.id]

    async def test_delete_removes_links(self, repos, make_site):
        site = await make_site("a")
        group = await repos.build_groups.create(BuildGroup(name="web"))
        await repos.build_groups.sync_sites(group.id, [site.id])

        assert await repos.build_groups.delete(group.id) is True
        assert await repos.build_groups.get_by_name("web") is None
        assert await repos.build_groups.site_ids(group.id) == []


class TestParameterAndUserRepositories:
    async def test_upsert_creates_then_updates(self, repos):
        created = await repos.parameters.upsert("path_project", "/srv", "path", "Project root")
        updated = await repos.parameters.upsert("path_project", "/var/www", "path")

        assert updated.id == created.id
        assert updated.value == "/var/www"
        assert updated.description == "Project root"

    async def test_delete_by_key(self, repos):
        await repos.parameters.upsert("k", "v")

        assert await repos.parameters.delete_by_key("k") is True
        assert await repos.parameters.delete_by_key("k") is False

    async def test_names_by_id(self, repos):
        alice = await repos.users.create(User(name="Alice", email="alice@example.com"))

        assert await repos.users.names_by_id([alice.id, None, 999]) == {alice.id: "Alice"}
        assert (await repos.users.get_by_email("alice@example.com")).id == alice.id


class TestTimestamps:
    async def test_timestamps_are_utc_aware_after_reload(self, session_factory, repos, make_site):
        site = await make_site("shop")
        history = await repos.histories.create(BuildHistory(site_id=site.id))

        async with session_factory() as other:
            reloaded = await other.get(BuildHistory, history.id)

        assert reloaded.created_at.tzinfo is not None
        assert reloaded.created_at.utcoffset() == timedelta(0)
        assert reloaded.created_at == history.created_at

    async def test_naive_values_are_stored_as_utc(self, session_factory, repos, make_site):
        site = await make_site("shop")
        naive = datetime(2026, 1, 2, 3, 4, 5)
        site.last_build = naive
        await repos.sites.update(site)

        async with session_factory() as other:
            reloaded = await other.get(Site, site.id)

        assert reloaded.last_build == naive.replace(tzinfo=timezone.utc)
        assert reloaded.updated_at.tzinfo is not None

    async def test_offset_values_are_converted_to_utc(self, session_factory, repos, make_site):
        site = await make_site("shop")
        site.last_build_success = datetime(2026, 1, 2, 10, 0, tzinfo=timezone(timedelta(hours=7)))
        await repos.sites.update(site)

        async with session_factory() as other:
            reloaded = await other.get(Site, site.id)

        assert reloaded.last_build_success == datetime(2026, 1, 2, 3, 0, tzinfo=timezone.utc)
        assert reloaded.last_build_success.utcoffset() == timedelta(0)

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is timezone.utc
