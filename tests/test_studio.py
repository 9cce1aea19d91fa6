import json
import threading
from unittest.mock import AsyncMock

import pytest

from sociai.generation.studio import StudioSession
from sociai.shared.state_file import FileStudioStore
from sociai.specs.common.enums import Direction, MediaSource, MediaType, NotificationType, PostStatus
from sociai.specs.common.errors import (
    AuthorizationRequired,
    GenerationInProgress,
    PaymentError,
    QuotaExceeded,
    ResourceNotFoundError,
)
from sociai.specs.models.domain import SocialPost

ACCOUNT = "owner@beanthere.example"


@pytest.fixture
def store(brand, post):
    store = FileStudioStore()
    store.save_user(ACCOUNT, brand.model_dump(mode="json"))
    store.save_posts(ACCOUNT, [post.model_dump(mode="json")])
    return store


@pytest.fixture
def studio(store, client):
    return StudioSession.load(ACCOUNT, store=store, client=client)


class TestLoadSave:
    def test_load_uses_starting_credits(self, studio):
        assert studio.ledger.balance() == 500
        assert studio.get_post("post-1").content.startswith("Our new autumn roast")

    def test_unknown_account(self, store):
        with pytest.raises(ResourceNotFoundError):
            StudioSession.load("nobody@example.com", store=store)

    async def test_generation_is_persisted(self, studio, store, client):
        session = studio.open_generation("post-1")
        result = await session.start(MediaType.IMAGE)

        assert store.get_credits(ACCOUNT) == 495
        saved = SocialPost.model_validate(store.get_posts(ACCOUNT)[0])
        assert saved.imageUrl == result.url
        assert saved.variants.urls == [result.url]

        reloaded = StudioSession.load(ACCOUNT, store=store, client=client)
        assert reloaded.ledger.balance() == 495
        assert reloaded.get_post("post-1").aiDebug.kind == "image"

    def test_load_returns_the_live_session(self, studio, store):
        assert StudioSession.load(ACCOUNT, store=store) is studio
        store.save_posts(ACCOUNT, [])
        assert StudioSession.load(ACCOUNT).posts == []

    def test_busy_session_is_not_reloaded(self, studio, store):
        with studio.in_flight.claim("post-1"):
            store.save_posts(ACCOUNT, [])
            assert len(StudioSession.load(ACCOUNT).posts) == 1

    async def test_save_keeps_debits_made_elsewhere(self, studio, store, client):
        render = client.generate_image.side_effect

        async def _image(**kwargs):
            # another worker spends 100 credits while this render runs
            store.add_credits(ACCOUNT, -100, initial=500)
            return await render(**kwargs)

        client.generate_image = AsyncMock(side_effect=_image)
        await studio.open_generation("post-1").start(MediaType.IMAGE)

        assert store.get_credits(ACCOUNT) == 395
        assert studio.ledger.balance() == 395

    async def test_generation_saves_off_the_event_loop(self, studio, store, monkeypatch):
        threads = []
        save_posts = store.save_posts

        def _record(account_id, posts):
            threads.append(threading.get_ident())
            save_posts(account_id, posts)

        monkeypatch.setattr(store, "save_posts", _record)
        await studio.open_generation("post-1").start(MediaType.IMAGE)
        assert threads and threading.get_ident() not in threads

    def test_admin_profile_is_unlimited(self, studio):
        studio.update_profile(isAdmin=True)
        assert studio.credits_display == "UNLIMITED"
        studio.ledger.debit(25)
        assert studio.ledger.balance() == 500


class TestPlanner:
    def test_add_and_group_by_date(self, studio):
        studio.add_post_at_date("2026-10-19")
        added = studio.add_post_at_date("2026-10-20")
        assert added.hashtags == ["newpost", "beanthere"]
        assert added.status is PostStatus.DRAFT
        assert added.mediaSource is MediaSource.CLIENT_UPLOAD
        groups = studio.posts_by_date()
        assert list(groups) == ["2026-10-19", "2026-10-20"]
        assert len(groups["2026-10-20"]) == 2

    def test_edit_approve_toggle_delete(self, studio):
        studio.edit_post_content("post-1", "New text")
        studio.approve_post("post-1")
        post = studio.toggle_media_source("post-1")
        assert post.content == "New text"
        assert post.status is PostStatus.APPROVED
        assert post.mediaSource is MediaSource.CLIENT_UPLOAD
        studio.delete_post("post-1")
        with pytest.raises(ResourceNotFoundError):
            studio.get_post("post-1")

    def test_delete_in_flight_post_is_rejected(self, studio):
        with studio.in_flight.claim("post-1"):
            with pytest.raises(GenerationInProgress):
                studio.delete_post("post-1")

    async def test_navigate_variants(self, studio):
        session = studio.open_generation("post-1")
        first = await session.start(MediaType.IMAGE)
        second = await session.regenerate()
        post = studio.get_post("post-1")
        assert post.imageUrl == second.url

        assert studio.navigate_variant("post-1", Direction.NEXT) == first.url
        assert post.imageUrl == first.url
        assert studio.navigate_variant("post-1", "prev") == second.url

    async def test_upload_replaces_ai_variants(self, studio):
        await studio.open_generation("post-1").start(MediaType.IMAGE)
        post = studio.attach_upload("post-1", "https://cdn.example/upload.mp4", MediaType.VIDEO)
        assert post.videoUrl == "https://cdn.example/upload.mp4"
        assert post.imageUrl is None
        assert len(post.variants) == 0
        assert post.mediaSource is MediaSource.CLIENT_UPLOAD


class TestCredits:
    def test_purchase_credits_and_notifies(self, studio, store):
        granted = studio.purchase("power")
        assert granted == 400
        assert studio.ledger.balance() == 900
        assert studio.notifications[0].type is NotificationType.SYSTEM
        assert store.get_credits(ACCOUNT) == 900

    def test_unknown_plan(self, studio):
        with pytest.raises(PaymentError):
            studio.purchase("platinum")
        assert studio.ledger.balance() == 500


class TestCopy:
    async def test_weekly_strategy_debits_fifty(self, studio, client):
        client.generate_json.return_value = json.dumps(
            [{"platform": "facebook", "date": "2026-10-22", "content": "Meet our roaster", "hashtags": ["team"]}]
        )
        posts = await studio.generate_weekly_strategy()
        assert len(posts) == 1
        assert len(studio.posts) == 2
        assert studio.ledger.balance() == 450

    async def test_empty_strategy_is_free(self, studio, client):
        client.generate_json.return_value = "[]"
        assert await studio.generate_weekly_strategy() == []
        assert studio.ledger.balance() == 500

    async def test_strategy_needs_credits(self, brand, client):
        studio = StudioSession(brand, credits=10, client=client)
        with pytest.raises(QuotaExceeded):
            await studio.generate_weekly_strategy()
        client.generate_json.assert_not_awaited()

    async def test_rewrite_copy(self, studio, client):
        client.generate_json.return_value = json.dumps({"content": "Fresh words", "hashtags": ["#Roast", "roast"]})
        post = await studio.rewrite_post_copy("post-1")
        assert post.content.startswith("Fresh words")
        assert post.hashtags == ["Roast"]
        assert post.status is PostStatus.NEEDS_REVIEW
        assert studio.ledger.balance() == 485


class TestOnboarding:
    async def test_create_and_seed_starter_posts(self, brand, client_factory):
        store = FileStudioStore()
        plan = [{"platform": "linkedin", "content": f"Starter {i}"} for i in range(3)]
        studio = StudioSession.create(ACCOUNT, brand, store=store, client=client_factory(json.dumps(plan)))

        posts = await studio.complete_onboarding()

        assert len(posts) == 3
        assert studio.ledger.balance() == 500
        assert store.get_credits(ACCOUNT) == 500
        assert len(store.get_posts(ACCOUNT)) == 3
        welcome = studio.notifications[0]
        assert welcome.type is NotificationType.INSIGHT
        assert "Bean There" in welcome.title
        assert StudioSession.load(ACCOUNT) is studio

    async def test_onboarding_survives_a_failed_starter_plan(self, brand, client):
        client.generate_json.side_effect = AuthorizationRequired("no key")
        studio = StudioSession.create(ACCOUNT, brand, store=FileStudioStore(), client=client)

        assert await studio.complete_onboarding() == []
        assert studio.posts == []
        assert len(studio.notifications) == 1


class TestTrends:
    async def test_trends_are_prepended_and_free(self, studio, store, client):
        studio.notify(NotificationType.SYSTEM, "Older", "older notice")
        client.generate_json.return_value = json.dumps([{"title": "Slow TV", "message": "Long calm pours"}])

        trends = await studio.refresh_trends()

        assert [n.title for n in studio.notifications] == ["Slow TV", "Older"]
        assert trends[0].type is NotificationType.TREND
        assert studio.ledger.balance() == 500
        assert store.get_notifications(ACCOUNT)[0]["title"] == "Slow TV"
