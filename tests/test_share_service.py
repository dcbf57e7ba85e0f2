"""Tests for the share link registry and public collection resolution."""

import json
from datetime import timedelta

import aiosqlite
import pytest

from glasscase.errors import (
    ShareBadRequest,
    ShareDisabled,
    ShareExpired,
    ShareNotFound,
    UpstreamFailure,
)
from glasscase.models.share import VisibilitySettings
from glasscase.services import inventory_service, share_service
from glasscase.services.timestamps import to_iso, utc_now


async def _seed_items(user_id):
    await inventory_service.create_item(
        user_id, name="Jadeite Mug", category="Kitchen", manufacturer="Anchor Hocking",
        year_manufactured=1950, current_value=25, quantity=2, purchase_price=15,
        location="Hutch",
    )
    await inventory_service.create_item(
        user_id, name="Hobnail Vase", category="Vases", manufacturer="Fenton",
        year_manufactured=1962, current_value=10, quantity=1, purchase_price=5,
        location="Mantel",
    )


# ── Registry ─────────────────────────────────────────────────────────────────


class TestShareRegistry:
    @pytest.mark.asyncio
    async def test_create_defaults(self, owner):
        link = await share_service.create_share_link(owner["id"])
        assert link["is_active"] is True
        assert link["expires_at"] is None
        assert link["settings"] == VisibilitySettings()
        assert link["settings"].hide_purchase_price is True
        assert link["url"] == f"https://glass.example.com/share/{link['unique_share_id']}"

    @pytest.mark.asyncio
    async def test_share_ids_unique_and_unguessable(self, owner):
        links = [await share_service.create_share_link(owner["id"]) for _ in range(5)]
        ids = {l["unique_share_id"] for l in links}
        assert len(ids) == 5
        assert all(len(i) >= 20 for i in ids)

    @pytest.mark.asyncio
    async def test_create_with_expiry_and_settings(self, owner):
        link = await share_service.create_share_link(
            owner["id"], {"hide_location": True}, expires_in_days=7
        )
        assert link["settings"].hide_location is True
        assert link["settings"].hide_purchase_price is True
        assert link["expires_at"] is not None

    @pytest.mark.asyncio
    async def test_list_is_owner_scoped(self, owner, stranger):
        await share_service.create_share_link(owner["id"])
        await share_service.create_share_link(owner["id"])
        await share_service.create_share_link(stranger["id"])

        assert len(await share_service.list_share_links(owner["id"])) == 2
        assert len(await share_service.list_share_links(stranger["id"])) == 1

    @pytest.mark.asyncio
    async def test_update_toggles_and_replaces_settings(self, owner):
        link = await share_service.create_share_link(owner["id"])

        updated = await share_service.update_share_link(
            link["id"], owner["id"], visibility={"hide_purchase_price": False}, is_active=False
        )
        assert updated["is_active"] is False
        assert updated["settings"].hide_purchase_price is False

        reactivated = await share_service.update_share_link(link["id"], owner["id"], is_active=True)
        assert reactivated["is_active"] is True
        assert reactivated["settings"].hide_purchase_price is False

    @pytest.mark.asyncio
    async def test_update_expiry(self, owner):
        link = await share_service.create_share_link(owner["id"])
        with_expiry = await share_service.update_share_link(link["id"], owner["id"], expires_in_days=3)
        assert with_expiry["expires_at"] is not None

        cleared = await share_service.update_share_link(link["id"], owner["id"], clear_expiry=True)
        assert cleared["expires_at"] is None

    @pytest.mark.asyncio
    async def test_other_users_cannot_modify(self, owner, stranger):
        link = await share_service.create_share_link(owner["id"])
        assert await share_service.get_share_link(link["id"], stranger["id"]) is None
        assert await share_service.update_share_link(link["id"], stranger["id"], is_active=False) is None
        assert not await share_service.delete_share_link(link["id"], stranger["id"])

        still = await share_service.get_share_link(link["id"], owner["id"])
        assert still["is_active"] is True

    @pytest.mark.asyncio
    async def test_delete(self, owner):
        link = await share_service.create_share_link(owner["id"])
        assert await share_service.delete_share_link(link["id"], owner["id"])
        with pytest.raises(ShareNotFound):
            await share_service.resolve_share_link(link["unique_share_id"])

    @pytest.mark.asyncio
    async def test_unreadable_settings_fall_back_to_defaults(self, owner, db):
        link = await share_service.create_share_link(owner["id"], {"hide_purchase_price": False})
        await db.execute("UPDATE share_links SET settings = 'not json' WHERE id = ?", (link["id"],))
        await db.commit()

        reloaded = await share_service.get_share_link(link["id"], owner["id"])
        assert reloaded["settings"].hide_purchase_price is True

    @pytest.mark.asyncio
    async def test_invalid_flag_values_fall_back_to_defaults(self, owner, db):
        await inventory_service.create_item(owner["id"], name="Cup", purchase_price=15)
        link = await share_service.create_share_link(owner["id"], {"hide_purchase_price": False})
        await db.execute(
            "UPDATE share_links SET settings = ? WHERE id = ?",
            (json.dumps({"hide_purchase_price": "maybe"}), link["id"]),
        )
        await db.commit()

        reloaded = await share_service.get_share_link(link["id"], owner["id"])
        assert reloaded["settings"] == VisibilitySettings()

        collection = await share_service.get_shared_collection(link["unique_share_id"])
        assert "purchase_price" not in collection["items"][0]

    @pytest.mark.asyncio
    async def test_null_flags_in_storage_take_defaults(self, owner, db):
        link = await share_service.create_share_link(owner["id"])
        await db.execute(
            "UPDATE share_links SET settings = ? WHERE id = ?",
            (json.dumps({"hide_purchase_price": None, "hide_location": True}), link["id"]),
        )
        await db.commit()

        reloaded = await share_service.get_share_link(link["id"], owner["id"])
        assert reloaded["settings"].hide_purchase_price is True
        assert reloaded["settings"].hide_location is True


# ── Validation ───────────────────────────────────────────────────────────────


class TestValidateShareLink:
    def _link(self, **overrides):
        link = {"unique_share_id": "abc", "is_active": True, "expires_at": None}
        link.update(overrides)
        return link

    def test_active_without_expiry_passes(self):
        share_service.validate_share_link(self._link())

    def test_future_expiry_passes(self):
        share_service.validate_share_link(self._link(expires_at=to_iso(utc_now() + timedelta(days=1))))

    def test_disabled(self):
        with pytest.raises(ShareDisabled):
            share_service.validate_share_link(self._link(is_active=False))

    def test_expired(self):
        with pytest.raises(ShareExpired):
            share_service.validate_share_link(self._link(expires_at=to_iso(utc_now() - timedelta(days=1))))

    def test_naive_sqlite_timestamp_treated_as_utc(self):
        now = utc_now()
        with pytest.raises(ShareExpired):
            share_service.validate_share_link(
                self._link(expires_at="2000-01-01 00:00:00"), now=now
            )

    def test_disabled_reported_before_expired(self):
        link = self._link(is_active=False, expires_at=to_iso(utc_now() - timedelta(days=1)))
        with pytest.raises(ShareDisabled):
            share_service.validate_share_link(link)

    def test_expiry_boundary_uses_now(self):
        expires = utc_now()
        link = self._link(expires_at=to_iso(expires))
        share_service.validate_share_link(link, now=expires - timedelta(seconds=1))
        with pytest.raises(ShareExpired):
            share_service.validate_share_link(link, now=expires + timedelta(seconds=1))


# ── Public resolution ────────────────────────────────────────────────────────


class TestSharedCollection:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("share_id", [None, "", "   "])
    async def test_missing_id(self, db, share_id):
        with pytest.raises(ShareBadRequest):
            await share_service.get_shared_collection(share_id)

    @pytest.mark.asyncio
    async def test_unknown_id(self, db):
        with pytest.raises(ShareNotFound):
            await share_service.get_shared_collection("does-not-exist")

    @pytest.mark.asyncio
    async def test_disabled_link_returns_no_items(self, owner):
        await _seed_items(owner["id"])
        link = await share_service.create_share_link(owner["id"])
        await share_service.update_share_link(link["id"], owner["id"], is_active=False)

        with pytest.raises(ShareDisabled):
            await share_service.get_shared_collection(link["unique_share_id"])

    @pytest.mark.asyncio
    async def test_expired_link_stays_expired(self, owner, db):
        await _seed_items(owner["id"])
        link = await share_service.create_share_link(owner["id"])
        yesterday = to_iso(utc_now() - timedelta(days=1))
        await db.execute("UPDATE share_links SET expires_at = ? WHERE id = ?", (yesterday, link["id"]))
        await db.commit()

        for _ in range(2):
            with pytest.raises(ShareExpired):
                await share_service.get_shared_collection(link["unique_share_id"])

        # Validation never flips the stored flag
        stored = await share_service.get_share_link(link["id"], owner["id"])
        assert stored["is_active"] is True

    @pytest.mark.asyncio
    async def test_success_payload(self, owner):
        await _seed_items(owner["id"])
        link = await share_service.create_share_link(owner["id"], {"hide_location": True})

        collection = await share_service.get_shared_collection(link["unique_share_id"])

        assert collection["owner"] == {"name": "Jane Collector"}
        assert collection["totalItems"] == 3
        assert collection["totalValue"] == 60
        assert collection["stats"]["categories"] == ["Vases", "Kitchen"]
        assert collection["stats"]["oldestYear"] == 1950
        assert collection["stats"]["newestYear"] == 1962
        assert collection["settings"] == {
            "hidePurchasePrice": True,
            "hidePurchaseDate": False,
            "hideLocation": True,
            "hideDescription": False,
        }
        assert collection["sharedAt"] == link["created_at"]
        for item in collection["items"]:
            assert "purchase_price" not in item
            assert "location" not in item
            assert "user_id" not in item

    @pytest.mark.asyncio
    async def test_items_newest_first(self, owner):
        await _seed_items(owner["id"])
        link = await share_service.create_share_link(owner["id"])
        collection = await share_service.get_shared_collection(link["unique_share_id"])
        assert [i["name"] for i in collection["items"]] == ["Hobnail Vase", "Jadeite Mug"]

    @pytest.mark.asyncio
    async def test_soft_deleted_items_excluded(self, owner):
        await _seed_items(owner["id"])
        link = await share_service.create_share_link(owner["id"])
        items = await inventory_service.list_items(owner["id"])
        await inventory_service.delete_item(items[0]["id"], owner["id"])

        collection = await share_service.get_shared_collection(link["unique_share_id"])
        assert [i["name"] for i in collection["items"]] == ["Jadeite Mug"]
        assert collection["totalItems"] == 2

    @pytest.mark.asyncio
    async def test_only_owner_items_shared(self, owner, stranger):
        await _seed_items(owner["id"])
        await inventory_service.create_item(stranger["id"], name="Not Yours")
        link = await share_service.create_share_link(owner["id"])

        collection = await share_service.get_shared_collection(link["unique_share_id"])
        assert "Not Yours" not in [i["name"] for i in collection["items"]]

    @pytest.mark.asyncio
    async def test_empty_collection(self, owner):
        link = await share_service.create_share_link(owner["id"])
        collection = await share_service.get_shared_collection(link["unique_share_id"])
        assert collection["items"] == []
        assert collection["totalItems"] == 0
        assert collection["totalValue"] == 0

    @pytest.mark.asyncio
    async def test_owner_without_name_is_anonymous(self, stranger):
        link = await share_service.create_share_link(stranger["id"])
        collection = await share_service.get_shared_collection(link["unique_share_id"])
        assert collection["owner"]["name"] == share_service.ANONYMOUS_OWNER

    @pytest.mark.asyncio
    async def test_profile_failure_falls_back_to_anonymous(self, owner, monkeypatch):
        link = await share_service.create_share_link(owner["id"])

        async def broken(user_id):
            raise aiosqlite.OperationalError("database is locked")

        monkeypatch.setattr(share_service.user_service, "get_display_name", broken)
        collection = await share_service.get_shared_collection(link["unique_share_id"])
        assert collection["owner"]["name"] == share_service.ANONYMOUS_OWNER

    @pytest.mark.asyncio
    async def test_item_fetch_failure_is_upstream_error(self, owner, monkeypatch):
        link = await share_service.create_share_link(owner["id"])

        async def broken(user_id):
            raise aiosqlite.OperationalError("disk I/O error")

        monkeypatch.setattr(share_service.inventory_service, "list_active_items", broken)
        with pytest.raises(UpstreamFailure):
            await share_service.get_shared_collection(link["unique_share_id"])

    @pytest.mark.asyncio
    async def test_share_reflects_current_inventory(self, owner):
        link = await share_service.create_share_link(owner["id"])
        assert (await share_service.get_shared_collection(link["unique_share_id"]))["items"] == []

        await inventory_service.create_item(owner["id"], name="New Find", current_value=5)
        collection = await share_service.get_shared_collection(link["unique_share_id"])
        assert [i["name"] for i in collection["items"]] == ["New Find"]
