import redis.asyncio as redis

from app.core.cache import CacheService
from app.db.schemas import LIST_STATUS_PUBLIC, ListCreate, MediaType
from app.services.list_service import ListService

from conftest import add_list, add_members


def test_key_layout():
    assert CacheService.public_lists_key("anime", "popular", 10) == "lists:anime:popular:10"
    assert CacheService.public_lists_paged_key("manga", "recent", None, 2, 30) == "lists_paged:manga:recent:all:2:30"
    assert CacheService.public_lists_paged_key("game", "recent", "top", 1, 5) == "lists_paged:game:recent:top:1:5"


async def test_get_or_load_only_loads_on_miss(cache):
    calls = []

    async def loader():
        calls.append(1)
        return {"value": len(calls)}

    assert await cache.get_or_load("k", loader, ttl=60) == {"value": 1}
    assert await cache.get_or_load("k", loader, ttl=60) == {"value": 1}
    assert len(calls) == 1


async def test_get_or_load_does_not_store_none(cache):
    async def loader():
        return None

    assert await cache.get_or_load("k", loader, ttl=60) is None
    assert await cache._client().exists("k") == 0


async def test_invalidation_is_scoped_to_media_type(cache):
    await cache.set(CacheService.public_lists_key("anime", "recent", 10), [1])
    await cache.set(CacheService.public_lists_paged_key("anime", "popular", None, 1, 30), {"items": []})
    await cache.set(CacheService.public_lists_key("manga", "recent", 10), [2])

    assert await cache.invalidate_public_lists("anime") == 2

    assert await cache.get(CacheService.public_lists_key("anime", "recent", 10)) is None
    assert await cache.get(CacheService.public_lists_key("manga", "recent", 10)) == [2]


async def test_ttl_is_applied(cache):
    await cache.set("k", {"a": 1}, ttl=120)
    ttl = await cache._client().ttl("k")
    assert 0 < ttl <= 120


async def test_undecodable_entry_is_a_miss(cache):
    await cache._client().set("k", "{not json")
    assert await cache.get("k") is None


async def test_listing_survives_cache_outage(db):
    await add_members(db, 1)
    row = await add_list(db, member_id=1)
    # Nothing listens on port 1
    broken = CacheService(client=redis.Redis(host="127.0.0.1", port=1, socket_connect_timeout=0.5))
    service = ListService(db, broken)

    lists = await service.get_public_lists("anime", "recent")
    assert [item["id"] for item in lists] == [row.id]

    created = await service.create_list(
        1, ListCreate(title="Still works", media_type=MediaType.ANIME, status=LIST_STATUS_PUBLIC)
    )
    assert created["title"] == "Still works"
    await broken.close()
