from sqlalchemy import select

from app.core.config import MODULE
from app.features.tracking.models import TrackLevel, TrackRecord
from app.features.tracking.service import write_track_record
from tests.helpers import ADMIN, bearer


async def track_list(client, token, **params):
    r = await client.get("/api/v1/track/.list", params=params, headers=bearer(token))
    assert r.status_code == 200, r.json()
    return r.json()["data"]


async def test_register_is_tracked(api, client, admin_token, hashed):
    user_id = await api.register(admin_token, "alice", hashed("pw"))
    records = await track_list(client, admin_token, table="user")
    assert len(records) == 1
    record = records[0]
    assert record["level"] == "InfoL3"
    assert record["user"] == ADMIN
    assert record["row"] == user_id
    assert record["column"] == ""
    assert record["note"] == MODULE.add_user


async def test_password_values_are_never_stored(api, client, admin_token, hashed):
    await api.register(admin_token, "alice", hashed("pw"))
    await api.patch_user(admin_token, "alice", password=None)
    await api.patch_user(admin_token, ADMIN, password=hashed("new"))

    records = await track_list(client, admin_token, column="password")
    assert [r["note"] for r in records] == [MODULE.reset_password, MODULE.change_password]
    for record in records:
        assert record["previous"] is None
        assert record["new"] is True


async def test_group_change_stores_names(api, client, admin_token, hashed):
    await api.add_group(admin_token, "chemists")
    await api.register(admin_token, "alice", hashed("pw"))
    await api.patch_user(admin_token, "alice", group="chemists")
    [record] = await track_list(client, admin_token, column="user_group_id")
    assert (record["previous"], record["new"]) == (MODULE.default_user_group, "chemists")


async def test_group_disabled_stores_flags(api, client, admin_token):
    await api.add_group(admin_token, "chemists", permission="USER_MANAGE")
    await client.patch("/api/v1/usergroup/chemists", json={"disabled": True}, headers=bearer(admin_token))
    [record] = await track_list(client, admin_token, table="user_group", column="disabled")
    assert (record["previous"], record["new"]) == (False, True)
    assert record["note"] == MODULE.change_group_disabled


async def test_failed_patch_tracks_only_applied_fields(api, client, admin_token, hashed):
    await api.register(admin_token, "alice", hashed("pw"))
    await api.patch_user(admin_token, "alice", allowMulti=True, group="nonexistent")
    records = await track_list(client, admin_token, table="user")
    assert [r["column"] for r in records] == [""]

    await api.patch_user(admin_token, "alice", password=None, group="nonexistent")
    records = await track_list(client, admin_token, table="user")
    assert [r["column"] for r in records] == ["", "password"]


async def test_filters_and_window(api, client, admin_token, hashed):
    for name in ("alice", "bob", "carol"):
        await api.register(admin_token, name, hashed("pw"))
    await api.add_group(admin_token, "chemists")

    assert len(await track_list(client, admin_token)) == 4
    assert len(await track_list(client, admin_token, level="InfoL3", table="user")) == 3
    assert len(await track_list(client, admin_token, user=ADMIN.upper())) == 4
    assert [r["table"] for r in await track_list(client, admin_token, skip=2, take=5)] == ["user", "user_group"]

    r = await client.get("/api/v1/track/.count", params={"table": "user_group"}, headers=bearer(admin_token))
    assert r.json()["data"] == 1


async def test_invalid_level(client, admin_token):
    r = await client.get("/api/v1/track/.list", params={"level": "Loud"}, headers=bearer(admin_token))
    assert (r.status_code, r.json()["error"]) == (400, "InvalidParameter")


async def test_requires_capability(api, client, admin_token, hashed):
    assert (await client.get("/api/v1/track/.count")).status_code == 401
    alice = await api.user_in_group(admin_token, "alice", MODULE.default_user_group, hashed("pw"))
    r = await client.get("/api/v1/track/.list", headers=bearer(alice))
    assert (r.status_code, r.json()["error"]) == (403, "PermissionDenied")


async def test_write_track_record_encodes_values(db):
    record = await write_track_record(
        db, TrackLevel.WARNING, None, "item_detail", 7, "size",
        note="Resize", previous=1.5, new={"value": 2},
    )
    await db.commit()
    stored = await db.scalar(select(TrackRecord).where(TrackRecord.id == record.id))
    assert stored.level is TrackLevel.WARNING
    assert stored.user_id is None
    assert (stored.previous, stored.new) == (1.5, {"value": 2})
    assert stored.time is not None
