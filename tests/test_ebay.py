"""Tests for eBay authorization sessions, token refresh and listing creation."""

import asyncio
import json
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from conftest import make_response, mock_async_client
from glasscase.errors import EbayAuthError, EbayListingError, EbayNotConfigured
from glasscase.services import ebay_auth_service, ebay_listing_service, inventory_service
from glasscase.services.timestamps import iso_in, to_iso, utc_now

TOKEN_PAYLOAD = {
    "access_token": "v^1.1#user-access",
    "refresh_token": "v^1.1#user-refresh",
    "expires_in": 7200,
}

SUCCESS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<AddItemResponse xmlns="urn:ebay:apis:eBLBaseComponents">
  <Ack>Success</Ack>
  <ItemID>110554433221</ItemID>
</AddItemResponse>"""

FAILURE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<AddItemResponse xmlns="urn:ebay:apis:eBLBaseComponents">
  <Ack>Failure</Ack>
  <Errors>
    <ShortMessage>Invalid category.</ShortMessage>
    <LongMessage>The category selected is not a leaf category.</LongMessage>
    <SeverityCode>Error</SeverityCode>
  </Errors>
  <Errors>
    <ShortMessage>Funds from your sales may be unavailable.</ShortMessage>
    <SeverityCode>Warning</SeverityCode>
  </Errors>
</AddItemResponse>"""


async def _connect(user_id):
    """Run a full authorization round trip with a mocked token endpoint."""
    started = await ebay_auth_service.start_authorization(user_id)
    with patch("glasscase.services.ebay_auth_service.httpx.AsyncClient") as mock_client_cls:
        mock_async_client(mock_client_cls, post=AsyncMock(return_value=make_response(200, TOKEN_PAYLOAD)))
        await ebay_auth_service.handle_callback("auth-code", started["state"])
    return started


# ── Authorization sessions ───────────────────────────────────────────────────


class TestAuthorizationSessions:
    @pytest.mark.asyncio
    async def test_not_configured(self, owner):
        with pytest.raises(EbayNotConfigured):
            await ebay_auth_service.start_authorization(owner["id"])

    @pytest.mark.asyncio
    async def test_start_builds_auth_url(self, owner, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])

        url = urlparse(started["auth_url"])
        assert url.netloc == "auth.sandbox.ebay.com"
        query = parse_qs(url.query)
        assert query["client_id"] == ["client-id"]
        assert query["redirect_uri"] == ["Glass-Case-RuName"]
        assert query["state"] == [started["state"]]
        assert "sell.inventory" in query["scope"][0]

        session = await ebay_auth_service.get_session(started["state"], owner["id"])
        assert session["status"] == "pending"

    @pytest.mark.asyncio
    async def test_callback_completes_session(self, owner, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])

        with patch("glasscase.services.ebay_auth_service.httpx.AsyncClient") as mock_client_cls:
            mock_client = mock_async_client(
                mock_client_cls, post=AsyncMock(return_value=make_response(200, TOKEN_PAYLOAD))
            )
            result = await ebay_auth_service.handle_callback("auth-code", started["state"])

        assert result["success"] is True
        form = mock_client.post.call_args.kwargs["data"]
        assert form["grant_type"] == "authorization_code"
        assert form["code"] == "auth-code"

        session = await ebay_auth_service.get_session(started["state"], owner["id"])
        assert session["status"] == "completed"
        creds = await ebay_auth_service.get_credentials(owner["id"])
        assert creds["access_token"] == TOKEN_PAYLOAD["access_token"]
        assert creds["refresh_token"] == TOKEN_PAYLOAD["refresh_token"]

    @pytest.mark.asyncio
    async def test_callback_rejects_unknown_state(self, owner, ebay_settings):
        with pytest.raises(EbayAuthError):
            await ebay_auth_service.handle_callback("code", "forged-state")
        with pytest.raises(EbayAuthError):
            await ebay_auth_service.handle_callback(None, "anything")

    @pytest.mark.asyncio
    async def test_callback_token_failure_marks_failed(self, owner, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])
        with patch("glasscase.services.ebay_auth_service.httpx.AsyncClient") as mock_client_cls:
            mock_async_client(
                mock_client_cls, post=AsyncMock(return_value=make_response(400, text="invalid_grant"))
            )
            with pytest.raises(EbayAuthError):
                await ebay_auth_service.handle_callback("bad-code", started["state"])

        session = await ebay_auth_service.get_session(started["state"], owner["id"])
        assert session["status"] == "failed"
        assert await ebay_auth_service.get_credentials(owner["id"]) is None

    @pytest.mark.asyncio
    async def test_callback_unreadable_token_body_marks_failed(self, owner, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])
        resp = make_response(200, text="<html>maintenance</html>")
        resp.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)

        with patch("glasscase.services.ebay_auth_service.httpx.AsyncClient") as mock_client_cls:
            mock_async_client(mock_client_cls, post=AsyncMock(return_value=resp))
            with pytest.raises(EbayAuthError):
                await ebay_auth_service.handle_callback("auth-code", started["state"])

        session = await ebay_auth_service.get_session(started["state"], owner["id"])
        assert session["status"] == "failed"
        assert await ebay_auth_service.get_credentials(owner["id"]) is None

    @pytest.mark.asyncio
    async def test_callback_missing_access_token_marks_failed(self, owner, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])

        with patch("glasscase.services.ebay_auth_service.httpx.AsyncClient") as mock_client_cls:
            mock_async_client(
                mock_client_cls,
                post=AsyncMock(return_value=make_response(200, {"token_type": "User Access Token"})),
            )
            with pytest.raises(EbayAuthError):
                await ebay_auth_service.handle_callback("auth-code", started["state"])

        session = await ebay_auth_service.get_session(started["state"], owner["id"])
        assert session["status"] == "failed"

    @pytest.mark.asyncio
    async def test_callback_failure_wakes_waiter(self, owner, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])
        waiter = asyncio.create_task(
            ebay_auth_service.wait_for_authorization(started["state"], owner["id"], timeout=5)
        )
        await asyncio.sleep(0.05)

        with patch("glasscase.services.ebay_auth_service.httpx.AsyncClient") as mock_client_cls:
            mock_async_client(mock_client_cls, post=AsyncMock(return_value=make_response(200, {})))
            with pytest.raises(EbayAuthError):
                await ebay_auth_service.handle_callback("auth-code", started["state"])

        session = await asyncio.wait_for(waiter, timeout=2)
        assert session["status"] == "failed"

    @pytest.mark.asyncio
    async def test_callback_cannot_be_replayed(self, owner, ebay_settings):
        started = await _connect(owner["id"])
        with pytest.raises(EbayAuthError):
            await ebay_auth_service.handle_callback("auth-code", started["state"])

    @pytest.mark.asyncio
    async def test_session_expires(self, owner, ebay_settings, db):
        started = await ebay_auth_service.start_authorization(owner["id"])
        await db.execute(
            "UPDATE ebay_auth_sessions SET expires_at = ? WHERE state = ?",
            (to_iso(utc_now() - timedelta(seconds=1)), started["state"]),
        )
        await db.commit()

        session = await ebay_auth_service.get_session(started["state"])
        assert session["status"] == "expired"
        with pytest.raises(EbayAuthError):
            await ebay_auth_service.handle_callback("auth-code", started["state"])

    @pytest.mark.asyncio
    async def test_cancel(self, owner, stranger, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])
        assert await ebay_auth_service.cancel_authorization(started["state"], stranger["id"]) is None

        session = await ebay_auth_service.cancel_authorization(started["state"], owner["id"])
        assert session["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_wait_returns_immediately_without_timeout(self, owner, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])
        session = await ebay_auth_service.wait_for_authorization(started["state"], owner["id"], timeout=0)
        assert session["status"] == "pending"

    @pytest.mark.asyncio
    async def test_wait_times_out_pending(self, owner, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])
        session = await ebay_auth_service.wait_for_authorization(
            started["state"], owner["id"], timeout=0.05
        )
        assert session["status"] == "pending"
        assert started["state"] not in ebay_auth_service._waiters
        assert started["state"] not in ebay_auth_service._waiter_counts

    @pytest.mark.asyncio
    async def test_wait_wakes_on_cancel(self, owner, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])

        waiter = asyncio.create_task(
            ebay_auth_service.wait_for_authorization(started["state"], owner["id"], timeout=5)
        )
        await asyncio.sleep(0.05)
        await ebay_auth_service.cancel_authorization(started["state"], owner["id"])

        session = await asyncio.wait_for(waiter, timeout=2)
        assert session["status"] == "cancelled"
        assert started["state"] not in ebay_auth_service._waiters

    @pytest.mark.asyncio
    async def test_wait_for_unknown_session(self, owner, stranger, ebay_settings):
        started = await ebay_auth_service.start_authorization(owner["id"])
        assert await ebay_auth_service.wait_for_authorization(started["state"], stranger["id"], 1) is None


# ── Tokens ───────────────────────────────────────────────────────────────────


class TestTokens:
    @pytest.mark.asyncio
    async def test_refresh_skipped_while_valid(self, owner, ebay_settings):
        await _connect(owner["id"])
        with patch("glasscase.services.ebay_auth_service.httpx.AsyncClient") as mock_client_cls:
            result = await ebay_auth_service.refresh_access_token(owner["id"])
            mock_client_cls.assert_not_called()
        assert result == {"access_token": TOKEN_PAYLOAD["access_token"], "refreshed": False}

    @pytest.mark.asyncio
    async def test_refresh_near_expiry(self, owner, ebay_settings, db):
        await _connect(owner["id"])
        await db.execute(
            "UPDATE ebay_credentials SET expires_at = ? WHERE user_id = ?",
            (iso_in(seconds=60), owner["id"]),
        )
        await db.commit()

        refreshed_payload = {"access_token": "new-access", "expires_in": 7200}
        with patch("glasscase.services.ebay_auth_service.httpx.AsyncClient") as mock_client_cls:
            mock_client = mock_async_client(
                mock_client_cls, post=AsyncMock(return_value=make_response(200, refreshed_payload))
            )
            result = await ebay_auth_service.refresh_access_token(owner["id"])

        assert result == {"access_token": "new-access", "refreshed": True}
        assert mock_client.post.call_args.kwargs["data"]["grant_type"] == "refresh_token"
        creds = await ebay_auth_service.get_credentials(owner["id"])
        assert creds["access_token"] == "new-access"
        # eBay omits the refresh token on refresh; the stored one is kept
        assert creds["refresh_token"] == TOKEN_PAYLOAD["refresh_token"]

    @pytest.mark.asyncio
    async def test_refresh_without_credentials(self, owner, ebay_settings):
        with pytest.raises(EbayAuthError):
            await ebay_auth_service.refresh_access_token(owner["id"])
        assert await ebay_auth_service.get_valid_access_token(owner["id"]) is None

    @pytest.mark.asyncio
    async def test_connection_status_and_disconnect(self, owner, ebay_settings):
        assert (await ebay_auth_service.connection_status(owner["id"]))["connected"] is False
        await _connect(owner["id"])

        status = await ebay_auth_service.connection_status(owner["id"])
        assert status["connected"] is True
        assert status["needs_refresh"] is False

        assert await ebay_auth_service.disconnect(owner["id"])
        assert not await ebay_auth_service.disconnect(owner["id"])

    @pytest.mark.asyncio
    async def test_application_token(self, ebay_settings):
        with patch("glasscase.services.ebay_auth_service.httpx.AsyncClient") as mock_client_cls:
            mock_client = mock_async_client(
                mock_client_cls,
                post=AsyncMock(return_value=make_response(200, {"access_token": "app", "expires_in": 7200})),
            )
            assert await ebay_auth_service.get_application_token() == "app"
        assert mock_client.post.call_args.kwargs["data"]["grant_type"] == "client_credentials"


# ── Listings ─────────────────────────────────────────────────────────────────


LISTING = {
    "title": "Fire-King Jadeite Restaurant Ware Mug",
    "description": "Vintage mug, no chips.",
    "category_id": "870",
    "start_price": 9.99,
    "buy_it_now_price": None,
    "duration": 7,
    "condition": "used",
    "shipping_cost": 8.5,
    "photos": [],
}


class TestListingXml:
    NS = {"e": "urn:ebay:apis:eBLBaseComponents"}

    def _parse(self, body):
        import xml.etree.ElementTree as ET
        return ET.fromstring(body)

    def test_auction(self):
        call_name, body = ebay_listing_service.build_listing_request(LISTING)
        assert call_name == "AddItem"
        root = self._parse(body)
        assert root.tag == "{urn:ebay:apis:eBLBaseComponents}AddItemRequest"
        assert root.findtext("e:Item/e:ListingType", namespaces=self.NS) == "Chinese"
        assert root.findtext("e:Item/e:ListingDuration", namespaces=self.NS) == "Days_7"
        assert root.findtext("e:Item/e:StartPrice", namespaces=self.NS) == "9.99"
        assert root.findtext("e:Item/e:PrimaryCategory/e:CategoryID", namespaces=self.NS) == "870"
        assert root.findtext("e:Item/e:ConditionID", namespaces=self.NS) == "3000"
        assert root.find("e:Item/e:PictureDetails", self.NS) is None

    def test_fixed_price(self):
        call_name, body = ebay_listing_service.build_listing_request(
            {**LISTING, "buy_it_now_price": 24.5, "photos": ["https://img/1.jpg", ""]}
        )
        assert call_name == "AddFixedPriceItem"
        root = self._parse(body)
        assert root.findtext("e:Item/e:ListingType", namespaces=self.NS) == "FixedPriceItem"
        assert root.findtext("e:Item/e:StartPrice", namespaces=self.NS) == "24.50"
        assert root.findtext("e:Item/e:ListingDuration", namespaces=self.NS) == "GTC"
        urls = [el.text for el in root.findall("e:Item/e:PictureDetails/e:PictureURL", self.NS)]
        assert urls == ["https://img/1.jpg"]

    def test_title_is_escaped(self):
        _, body = ebay_listing_service.build_listing_request({**LISTING, "title": "Cup & Saucer <set>"})
        root = self._parse(body)
        assert root.findtext("e:Item/e:Title", namespaces=self.NS) == "Cup & Saucer <set>"

    def test_invalid_auction_duration(self):
        with pytest.raises(ValueError):
            ebay_listing_service.build_listing_request({**LISTING, "duration": 4})

    @pytest.mark.parametrize("condition, expected", [
        ("new", "1000"), ("Like New", "2750"), ("for-parts", "7000"), ("mystery", "3000"), (None, "3000"),
    ])
    def test_condition_ids(self, condition, expected):
        assert ebay_listing_service.condition_id(condition) == expected

    def test_parse_success(self):
        assert ebay_listing_service.parse_listing_response(SUCCESS_XML) == "110554433221"

    def test_parse_failure_reports_errors_only(self):
        with pytest.raises(EbayListingError) as exc_info:
            ebay_listing_service.parse_listing_response(FAILURE_XML)
        assert "not a leaf category" in str(exc_info.value)
        assert "Funds" not in str(exc_info.value)

    def test_parse_garbage(self):
        with pytest.raises(EbayListingError):
            ebay_listing_service.parse_listing_response("<html>oops")


class TestCreateListing:
    @pytest.mark.asyncio
    async def test_creates_and_records_listing(self, owner, ebay_settings):
        await _connect(owner["id"])
        item = await inventory_service.create_item(
            owner["id"], name="Jadeite Mug", photo_url="https://img.example.com/mug.jpg"
        )

        with patch("glasscase.services.ebay_listing_service.httpx.AsyncClient") as mock_client_cls:
            mock_client = mock_async_client(
                mock_client_cls, post=AsyncMock(return_value=make_response(200, text=SUCCESS_XML))
            )
            listing = await ebay_listing_service.create_listing(owner["id"], item["id"], dict(LISTING))

        assert listing["ebay_listing_id"] == "110554433221"
        assert listing["listing_url"] == "https://www.sandbox.ebay.com/itm/110554433221"
        assert listing["status"] == "active"

        call = mock_client.post.call_args
        assert call.args[0] == "https://api.sandbox.ebay.com/ws/api.dll"
        assert call.kwargs["headers"]["X-EBAY-API-CALL-NAME"] == "AddItem"
        assert call.kwargs["headers"]["X-EBAY-API-IAF-TOKEN"] == TOKEN_PAYLOAD["access_token"]
        assert b"https://img.example.com/mug.jpg" in call.kwargs["content"]

        assert len(await ebay_listing_service.list_listings(owner["id"])) == 1

    @pytest.mark.asyncio
    async def test_requires_connection(self, owner, ebay_settings):
        item = await inventory_service.create_item(owner["id"], name="Jadeite Mug")
        with pytest.raises(EbayAuthError):
            await ebay_listing_service.create_listing(owner["id"], item["id"], dict(LISTING))

    @pytest.mark.asyncio
    async def test_unknown_item(self, owner, stranger, ebay_settings):
        item = await inventory_service.create_item(owner["id"], name="Jadeite Mug")
        assert await ebay_listing_service.create_listing(stranger["id"], item["id"], dict(LISTING)) is None

    @pytest.mark.asyncio
    async def test_rejected_listing_not_recorded(self, owner, ebay_settings):
        await _connect(owner["id"])
        item = await inventory_service.create_item(owner["id"], name="Jadeite Mug")

        with patch("glasscase.services.ebay_listing_service.httpx.AsyncClient") as mock_client_cls:
            mock_async_client(
                mock_client_cls, post=AsyncMock(return_value=make_response(200, text=FAILURE_XML))
            )
            with pytest.raises(EbayListingError):
                await ebay_listing_service.create_listing(owner["id"], item["id"], dict(LISTING))

        assert await ebay_listing_service.list_listings(owner["id"]) == []
