"""API tests for the environment variable endpoints."""

from sitedeploy.core.crypto import decrypt_value
from sitedeploy.server.api.v1.env_variables import MASK
from sitedeploy.server.core.config import settings

ENV = "/api/v1/env-variables"


class TestCreateEnvVariable:
    async def test_value_is_encrypted_and_masked(self, client, repos):
        response = await client.post(ENV, json={"variable_name": "API_URL", "variable_value": "https://api.test"})

        assert response.status_code == 201
        body = response.json()
        assert body["variable_value"] == MASK
        assert body["scope"] == "global"

        stored = await repos.env_variables.get_by_id(body["id"])
        assert stored.variable_value != "https://api.test"
        assert decrypt_value(stored.variable_value, settings.app_encrypt_key) == "https://api.test"

    async def test_site_scope(self, client, make_site):
        site = await make_site("shop")

        response = await client.post(
            ENV, json={"variable_name": "TOKEN", "variable_value": "t", "my_site_id": site.id, "group_name": "  "}
        )

        assert response.status_code == 201
        assert response.json()["scope"] == "site"
        assert response.json()["group_name"] is None

    async def test_group_and_site_together_rejected(self, client, make_site):
        site = await make_site("shop")

        response = await client.post(
            ENV, json={"variable_name": "TOKEN", "variable_value": "t", "my_site_id": site.id, "group_name": "web"}
        )

        assert response.status_code == 400
        assert response.json()["error_type"] == "InvalidEnvScopeError"

    async def test_unknown_site(self, client):
        response = await client.post(ENV, json={"variable_name": "TOKEN", "variable_value": "t", "my_site_id": 404})

        assert response.status_code == 404

    async def test_duplicate_in_scope(self, client):
        payload = {"variable_name": "API_URL", "variable_value": "a", "group_name": "web"}
        assert (await client.post(ENV, json=payload)).status_code == 201

        response = await client.post(ENV, json=payload)

        assert response.status_code == 409
        assert (await client.post(ENV, json={**payload, "group_name": "other"})).status_code == 201


class TestReadEnvVariables:
    async def test_list_search_and_reveal(self, client):
        for name in ("API_URL", "API_KEY", "DB_HOST"):
            await client.post(ENV, json={"variable_name": name, "variable_value": f"value-{name}"})

        page = (await client.get(ENV, params={"name": "api", "reveal": True})).json()

        assert page["total"] == 2
        assert page["limit"] == 50
        assert {v["variable_name"]: v["variable_value"] for v in page["data"]} == {
            "API_KEY": "value-API_KEY",
            "API_URL": "value-API_URL",
        }

    async def test_pagination(self, client):
        for name in ("A", "B", "C"):
            await client.post(ENV, json={"variable_name": name, "variable_value": "x"})

        page = (await client.get(ENV, params={"limit": 1, "offset": 1})).json()

        assert page["total"] == 3
        assert len(page["data"]) == 1

    async def test_get_one(self, client):
        created = (await client.post(ENV, json={"variable_name": "A", "variable_value": "secret"})).json()

        masked = (await client.get(f"{ENV}/{created['id']}")).json()
        revealed = (await client.get(f"{ENV}/{created['id']}", params={"reveal": "true"})).json()

        assert masked["variable_value"] == MASK
        assert revealed["variable_value"] == "secret"
        assert (await client.get(f"{ENV}/404")).status_code == 404


class TestUpdateDeleteEnvVariable:
    async def test_update_value_and_name(self, client):
        created = (await client.post(ENV, json={"variable_name": "A", "variable_value": "old"})).json()

        response = await client.put(f"{ENV}/{created['id']}", json={"variable_name": "B", "variable_value": "new"})

        assert response.status_code == 200
        revealed = (await client.get(f"{ENV}/{created['id']}", params={"reveal": True})).json()
        assert revealed["variable_name"] == "B"
        assert revealed["variable_value"] == "new"

    async def test_omitted_value_is_kept(self, client):
        created = (await client.post(ENV, json={"variable_name": "A", "variable_value": "keep"})).json()

        await client.put(f"{ENV}/{created['id']}", json={"group_name": "web"})

        revealed = (await client.get(f"{ENV}/{created['id']}", params={"reveal": True})).json()
        assert revealed["variable_value"] == "keep"
        assert revealed["scope"] == "group"

    async def test_update_into_duplicate(self, client):
        await client.post(ENV, json={"variable_name": "A", "variable_value": "x"})
        other = (await client.post(ENV, json={"variable_name": "B", "variable_value": "y"})).json()

        response = await client.put(f"{ENV}/{other['id']}", json={"variable_name": "A"})

        assert response.status_code == 409

    async def test_delete(self, client):
        created = (await client.post(ENV, json={"variable_name": "A", "variable_value": "x"})).json()

        assert (await client.delete(f"{ENV}/{created['id']}")).status_code == 204
        assert (await client.delete(f"{ENV}/{created['id']}")).status_code == 404
