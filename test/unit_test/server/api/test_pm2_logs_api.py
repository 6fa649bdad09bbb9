"""API tests for the PM2 log viewer."""

import asyncio
from unittest.mock import patch

import pytest
import pytest_asyncio

from sitedeploy.build import log_parser
from sitedeploy.build.parameters import LOG_PM2_PATH
from sitedeploy.server.api.v1 import pm2_logs

PM2_LOGS = "/api/v1/pm2-logs"


@pytest_asyncio.fixture
async def pm2_dir(tmp_path, parameters):
    base = tmp_path / "log_pm2"
    (base / "shop").mkdir(parents=True)
    (base / "shop" / "shop-error-0.log").write_text(
        "2026-10-19 08:00 +00:00: boom\n    at main (index.js:1:1)\n2026-10-19 08:01 +00:00: again\n"
    )
    (base / "shop" / "shop-out-0.log").write_text("2026-10-19 08:00 +00:00: ready\n")
    (base / "pm2.log").write_text("".join(f"2026-10-19 08:{i:02d} +00:00: line {i}\n" for i in range(5)))
    await parameters.set_value(LOG_PM2_PATH, str(base), "path")
    return base


class TestListing:
    async def test_base_directory(self, client, pm2_dir):
        body = (await client.get(PM2_LOGS)).json()

        assert [folder["name"] for folder in body["folders"]] == ["shop"]
        assert body["files"] == ["pm2.log"]
        assert body["base_path_error"] is None

    async def test_app_folder(self, client, pm2_dir):
        body = (await client.get(PM2_LOGS, params={"folder": "shop"})).json()

        assert body["files"] == ["shop-error-0.log", "shop-out-0.log"]
        assert body["subfolder"] == "shop"

    async def test_missing_directory(self, client, parameters, tmp_path):
        await parameters.set_value(LOG_PM2_PATH, str(tmp_path / "missing"))

        body = (await client.get(PM2_LOGS)).json()

        assert body["folders"] == []
        assert body["base_path_error"].startswith("Log directory does not exist")


class TestReading:
    async def test_read_base_file(self, client, pm2_dir):
        body = (await client.get(f"{PM2_LOGS}/pm2.log", params={"limit": 2})).json()

        assert [entry["message"] for entry in body["data"]] == ["line 4", "line 3"]
        assert body["last_page"] == 3
        assert body["next_page_url"] == "?page=2"

    async def test_reading_runs_in_worker_thread(self, client, pm2_dir):
        with patch.object(pm2_logs.asyncio, "to_thread", wraps=asyncio.to_thread) as to_thread:
            response = await client.get(f"{PM2_LOGS}/pm2.log", params={"limit": 2})

        assert response.status_code == 200
        assert [c.args[0] for c in to_thread.call_args_list] == [log_parser.read_log_file]

    async def test_read_app_file(self, client, pm2_dir):
        body = (await client.get(f"{PM2_LOGS}/shop-error-0.log", params={"folder": "shop"})).json()

        assert {entry["level"] for entry in body["data"]} == {"ERROR"}
        assert body["total"] == 3

    async def test_advance_groups_and_filters(self, client, pm2_dir):
        response = await client.get(f"{PM2_LOGS}/shop-error-0.log/advance", params={"folder": "shop", "query": "index"})

        body = response.json()
        assert response.status_code == 200
        (entry,) = body["data"]
        assert entry["message"] == "boom"
        assert entry["stack_trace"] == ["at main (index.js:1:1)"]
        assert body["file_size_formatted"].endswith("B")

    async def test_missing_file(self, client, pm2_dir):
        response = await client.get(f"{PM2_LOGS}/ghost.log")

        assert response.status_code == 404
        assert response.json()["error_type"] == "LogFileNotFoundError"

    @pytest.mark.parametrize(
        "filename,params",
        [("notes.txt", {}), ("shop-out-0.log", {"folder": ".."})],
    )
    async def test_invalid_paths(self, client, pm2_dir, filename, params):
        response = await client.get(f"{PM2_LOGS}/{filename}", params=params)

        assert response.status_code == 400
