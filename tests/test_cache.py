"""The redis cache is optional: every failure degrades to a store read."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from app import paths
from app.cache import (
    LOOKUP_TTL,
    get_profile_cache,
    get_studio_owner_cache,
    invalidate_profile_cache,
    set_studio_owner_cache,
)
from app.crud import document_crud
from app.lookups import get_user_profile, resolve_studio_owner_id

from .factories import ARTIST_ID, STUDIO_ID, STUDIO_OWNER_ID, studio_doc, user_doc


class TestCacheHelpers:
    async def test_set_uses_ttl(self, fake_redis):
        await set_studio_owner_cache(STUDIO_ID, STUDIO_OWNER_ID)
        fake_redis.setex.assert_awaited_once_with(
            f"studio-owner:{STUDIO_ID}", LOOKUP_TTL, STUDIO_OWNER_ID
        )

    async def test_profile_is_json_decoded(self, fake_redis):
        fake_redis.get = AsyncMock(return_value=json.dumps({"displayName": "X"}))
        assert await get_profile_cache(ARTIST_ID) == {"displayName": "X"}

    async def test_redis_errors_are_swallowed(self, fake_redis):
        fake_redis.get = AsyncMock(side_effect=ConnectionError("down"))
        fake_redis.delete = AsyncMock(side_effect=ConnectionError("down"))
        assert await get_studio_owner_cache(STUDIO_ID) is None
        assert await get_profile_cache(ARTIST_ID) is None
        await invalidate_profile_cache(ARTIST_ID)


@pytest.mark.usefixtures("db")
class TestLookups:
    async def test_owner_read_through(self, fake_redis):
        await document_crud.set(paths.studio(STUDIO_ID), studio_doc())
        assert await resolve_studio_owner_id(STUDIO_ID) == STUDIO_OWNER_ID
        fake_redis.setex.assert_awaited_once()

    async def test_owner_cache_hit_skips_store(self, fake_redis):
        fake_redis.get = AsyncMock(return_value="cached-owner")
        assert await resolve_studio_owner_id(STUDIO_ID) == "cached-owner"

    async def test_unknown_studio(self, fake_redis):
        assert await resolve_studio_owner_id(STUDIO_ID) is None
        assert await resolve_studio_owner_id(None) is None
        fake_redis.setex.assert_not_awaited()

    async def test_owner_lookup_with_redis_down(self, fake_redis):
        fake_redis.get = AsyncMock(side_effect=ConnectionError("down"))
        fake_redis.setex = AsyncMock(side_effect=ConnectionError("down"))
        await document_crud.set(paths.studio(STUDIO_ID), studio_doc())
        assert await resolve_studio_owner_id(STUDIO_ID) == STUDIO_OWNER_ID

    async def test_profile_read_through(self, fake_redis):
        await document_crud.set(paths.user(ARTIST_ID), user_doc(displayName="Lil A"))
        profile = await get_user_profile(ARTIST_ID)
        assert profile.label == "Lil A"
        key, ttl, raw = fake_redis.setex.await_args.args
        assert key == f"profile:{ARTIST_ID}"
        assert json.loads(raw)["displayName"] == "Lil A"

    async def test_unknown_user_is_anonymous(self):
        assert (await get_user_profile("ghost")).label == "Someone"
