import pytest
import pytest_asyncio
from sqlalchemy import update

from app.features.item_details.models import Unit
from tests.helpers import bearer


ACETONE = {
    "prefix": "ACE",
    "cas": "67-64-1",
    "unit": "mL",
    "size": 500,
    "container": "Bottle",
    "state": "Liquid",
    "type": "Solvent",
    "msds": "2024-03-01T00:00:00",
    "required": 2,
    "note": "Flammable",
}


@pytest_asyncio.fixture
async def acetone(client, admin_token):
    r = await client.post("/api/v1/item-detail/Acetone", json=ACETONE, headers=bearer(admin_token))
    assert r.status_code == 200, r.json()
    return r.json()["data"]


async def get_detail(client, name):
    return await client.get(f"/api/v1/item-detail/{name}")


async def test_add_and_info(client, acetone):
    assert isinstance(acetone, int)
    r = await get_detail(client, "Acetone")
    info = r.json()["data"]
    assert info["name"] == "Acetone"
    assert info["cas"] == "67-64-1"
    assert (info["unit"], info["container"], info["state"], info["type"]) == ("mL", "Bottle", "Liquid", "Solvent")
    assert info["size"] == 500
    assert info["required"] == 2
    assert info["msds"].startswith("2024-03-01")
    assert info["disabled"] is False


async def test_info_unknown(client):
    r = await get_detail(client, "Unobtainium")
    assert r.json() == {"status": 404, "error": "NoTargetItemDetail", "data": None}


async def test_add_requires_capability(api, client, admin_token, hashed):
    r = await client.post("/api/v1/item-detail/Acetone", json=ACETONE)
    assert r.status_code == 401
    alice = await api.user_in_group(admin_token, "alice", "default", hashed("pw"))
    r = await client.post("/api/v1/item-detail/Acetone", json=ACETONE, headers=bearer(alice))
    assert r.status_code == 403


async def test_add_duplicate(client, admin_token, acetone):
    r = await client.post("/api/v1/item-detail/Acetone", json=ACETONE, headers=bearer(admin_token))
    assert (r.status_code, r.json()["error"]) == (409, "ItemDetailAlreadyExist")


async def test_add_invalid_name(client, admin_token):
    r = await client.post("/api/v1/item-detail/.acetone", json=ACETONE, headers=bearer(admin_token))
    assert (r.status_code, r.json()["error"]) == (400, "InvalidItemDetailNameFormat")


@pytest.mark.parametrize("field, error", [
    ("unit", "NoTargetUnit"),
    ("container", "NoTargetContainerType"),
    ("state", "NoTargetPhysicalState"),
    ("type", "NoTargetDetailType"),
])
async def test_add_unknown_lookup(client, admin_token, field, error):
    body = dict(ACETONE, **{field: "Nothing"})
    r = await client.post("/api/v1/item-detail/Acetone", json=body, headers=bearer(admin_token))
    assert (r.status_code, r.json()["error"]) == (404, error)
    assert (await get_detail(client, "Acetone")).status_code == 404


async def test_add_disabled_lookup(client, admin_token, db):
    await db.execute(update(Unit).where(Unit.name == "mL").values(disabled=True))
    await db.commit()
    r = await client.post("/api/v1/item-detail/Acetone", json=ACETONE, headers=bearer(admin_token))
    assert (r.status_code, r.json()["error"]) == (404, "NoTargetUnit")


async def test_add_negative_size(client, admin_token):
    body = dict(ACETONE, size=-1)
    r = await client.post("/api/v1/item-detail/Acetone", json=body, headers=bearer(admin_token))
    assert (r.status_code, r.json()["error"]) == (400, "InvalidParameter")
    assert "size" in r.json()["data"]


async def test_disable(client, admin_token, acetone):
    r = await client.delete("/api/v1/item-detail/Acetone", headers=bearer(admin_token))
    assert r.status_code == 200
    assert (await get_detail(client, "Acetone")).json()["data"]["disabled"] is True


async def test_patch_fields_and_lookups(client, admin_token, acetone):
    r = await client.patch(
        "/api/v1/item-detail/Acetone",
        json={"size": 1, "unit": "L", "msds": None, "note": ""},
        headers=bearer(admin_token),
    )
    # reported in declaration order
    assert list(r.json()["data"]) == ["unit", "size", "msds", "note"]
    info = (await get_detail(client, "Acetone")).json()["data"]
    assert (info["size"], info["unit"], info["msds"], info["note"]) == (1, "L", None, "")


async def test_patch_rename(client, admin_token, acetone):
    r = await client.patch("/api/v1/item-detail/Acetone", json={"name": "Acetone HPLC"}, headers=bearer(admin_token))
    assert r.json()["data"] == {"name": True}
    assert (await get_detail(client, "Acetone HPLC")).status_code == 200


async def test_patch_stops_at_unknown_lookup(client, admin_token, acetone):
    r = await client.patch(
        "/api/v1/item-detail/Acetone",
        json={"cas": "0-0-0", "container": "Barrel", "note": "never"},
        headers=bearer(admin_token),
    )
    assert r.json() == {"status": 404, "error": "NoTargetContainerType", "data": {"cas": True}}
    info = (await get_detail(client, "Acetone")).json()["data"]
    assert (info["cas"], info["container"], info["note"]) == ("0-0-0", "Bottle", "Flammable")


async def test_patch_disabled_needs_its_own_capability(api, client, admin_token, acetone, hashed):
    await api.add_group(admin_token, "stock", permission="ITEM_DETAIL_MODIFY")
    dave = await api.user_in_group(admin_token, "dave", "stock", hashed("pw"))
    r = await client.patch(
        "/api/v1/item-detail/Acetone",
        json={"required": 5, "disabled": True},
        headers=bearer(dave),
    )
    assert r.json() == {"status": 403, "error": "PermissionDenied", "data": {"required": True}}


async def test_count_and_list(client, admin_token, acetone):
    ethanol = dict(ACETONE, cas="64-17-5")
    salt = dict(ACETONE, cas="7647-14-5", type="Reagent", state="Solid", unit="g")
    await client.post("/api/v1/item-detail/Ethanol", json=ethanol, headers=bearer(admin_token))
    await client.post("/api/v1/item-detail/Sodium chloride", json=salt, headers=bearer(admin_token))

    assert (await client.get("/api/v1/item-detail/.count")).json()["data"] == 3
    r = await client.get("/api/v1/item-detail/.count", params={"type": "Solvent"})
    assert r.json()["data"] == 2
    r = await client.get("/api/v1/item-detail/.count", params={"cas": "64-17-5"})
    assert r.json()["data"] == 1

    assert (await client.get("/api/v1/item-detail/.list")).status_code == 401
    r = await client.get("/api/v1/item-detail/.list", params={"skip": 1, "take": 1}, headers=bearer(admin_token))
    assert [d["name"] for d in r.json()["data"]] == ["Ethanol"]
