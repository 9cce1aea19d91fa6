"""
Studio session: the single owner of one account's profile, posts,
notifications and credit ledger.

Planner actions and generation sessions mutate state only through this
object; ``save`` writes everything back to the configured store.

``StudioSession.load`` hands out one live session per account and process, so
concurrent requests share the ledger holds and the in-flight set. Balances are
persisted as deltas against the stored value, which keeps debits made by other
processes.
"""
import asyncio
import threading
import uuid
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence

from sociai.agents.brief_agent import BriefAgent
from sociai.agents.render_agent import RenderAgent
from sociai.agents.strategy_agent import StrategyAgent
from sociai.clients.base import GenerativeClient
from sociai.clients.factory import get_generative_client
from sociai.shared.config import StudioConfig, get_studio_config
from sociai.shared.logging_utils import info as log_info, warning as log_warning
from sociai.shared.state import StudioStore, select_store
from sociai.shared.state_common import account_uid, utc_now
from sociai.specs.common.enums import (
    Direction,
    MediaSource,
    MediaType,
    NotificationType,
    Platform,
    PostStatus,
)
from sociai.specs.common.errors import GenerationInProgress, ResourceNotFoundError, StudioError
from sociai.specs.models.domain import BrandProfile, ContentFormat, Notification, SocialPost, normalize_hashtags

from .credit_ledger import COPY_REWRITE_COST, WEEKLY_STRATEGY_COST, CreditLedger
from .payments import PLANS, MockPaymentGateway, PaymentGateway
from .session import GenerationSession, InFlightRegistry

NEW_POST_CONTENT = "Enter the content of the new post..."

_LIVE: Dict[str, "StudioSession"] = {}
_LIVE_LOCK = threading.Lock()


class StudioSession:
    def __init__(
        self,
        profile: BrandProfile,
        posts: Optional[Sequence[SocialPost]] = None,
        notifications: Optional[Sequence[Notification]] = None,
        credits: Optional[int] = None,
        *,
        account_id: Optional[str] = None,
        store: Optional[StudioStore] = None,
        client: Optional[GenerativeClient] = None,
        payments: Optional[PaymentGateway] = None,
        config: Optional[StudioConfig] = None,
    ) -> None:
        self.config = config or get_studio_config()
        self.account_id = account_id
        self.store = store
        self.profile = profile
        self.posts: List[SocialPost] = list(posts or [])
        self.notifications: List[Notification] = list(notifications or [])
        self.ledger = CreditLedger(
            self.config.starting_credits if credits is None else max(credits, 0),
            privileged=profile.isAdmin,
        )
        # Ledger balance that matches the stored one; the difference is unsaved.
        self._synced_balance = self.ledger.balance()
        self._saving = 0
        self._save_lock = threading.RLock()
        self.in_flight = InFlightRegistry()
        self.payments = payments or MockPaymentGateway()
        self._client = client

    @classmethod
    def load(cls, account_id: str, *, store: Optional[StudioStore] = None, **kwargs: Any) -> "StudioSession":
        """Return the live session of ``account_id``, loading it on first use.

        An idle live session is refreshed from the store; one with a request
        in flight is returned as is. ``kwargs`` apply on first load only.
        """
        key = account_uid(account_id)
        with _LIVE_LOCK:
            live = _LIVE.get(key)
            if live is None:
                store = store or select_store()
                live = cls(**cls._read(store, account_id), account_id=account_id, store=store, **kwargs)
                _LIVE[key] = live
            elif not live.busy:
                if store is not None:
                    live.store = store
                live.refresh()
            return live

    @classmethod
    def create(
        cls, account_id: str, profile: BrandProfile, *, store: Optional[StudioStore] = None, **kwargs: Any
    ) -> "StudioSession":
        """Start a fresh account with ``profile`` and make it the live session."""
        session = cls(profile, account_id=account_id, store=store or select_store(), **kwargs)
        session.save()
        with _LIVE_LOCK:
            _LIVE[account_uid(account_id)] = session
        log_info(None, "studio:created", credits=session.ledger.balance())
        return session

    @staticmethod
    def forget(account_id: Optional[str] = None) -> None:
        """Drop the live session of ``account_id`` (all of them when omitted)."""
        with _LIVE_LOCK:
            if account_id is None:
                _LIVE.clear()
            else:
                _LIVE.pop(account_uid(account_id), None)

    @staticmethod
    def _read(store: StudioStore, account_id: str) -> Dict[str, Any]:
        raw_profile = store.get_user(account_id)
        if not raw_profile:
            raise ResourceNotFoundError("BrandProfile", account_id)
        return {
            "profile": BrandProfile.model_validate(raw_profile),
            "posts": [SocialPost.model_validate(p) for p in store.get_posts(account_id)],
            "notifications": [Notification.model_validate(n) for n in store.get_notifications(account_id)],
            "credits": store.get_credits(account_id),
        }

    @property
    def busy(self) -> bool:
        return len(self.in_flight) > 0 or self.ledger.held() > 0 or self._saving > 0

    def refresh(self) -> None:
        """Replace profile, posts, notifications and balance with the stored ones."""
        with self._save_lock:
            state = self._read(self.store, self.account_id)
            self.profile = state["profile"]
            self.posts = state["posts"]
            self.notifications = state["notifications"]
            self.ledger.privileged = self.profile.isAdmin
            if state["credits"] is not None:
                self.ledger.rebase(state["credits"])
                self._synced_balance = self.ledger.balance()

    def _write(self) -> None:
        store, account_id = self.store, self.account_id
        with self._save_lock:
            store.save_user(account_id, self.profile.model_dump(mode="json"))
            store.save_posts(account_id, [p.model_dump(mode="json") for p in self.posts])
            store.save_notifications(account_id, [n.model_dump(mode="json") for n in self.notifications])
            balance = self.ledger.balance()
            stored = store.add_credits(account_id, balance - self._synced_balance, initial=self._synced_balance)
            if stored != balance:
                # another process moved the stored balance
                self.ledger.adjust(stored - balance)
            self._synced_balance = stored

    def save(self) -> None:
        """Write profile, posts, notifications and balance back to the store."""
        if self.store is None or not self.account_id:
            return
        self._write()

    async def save_async(self) -> None:
        """``save`` with the store I/O off the event loop."""
        if self.store is None or not self.account_id:
            return
        self._saving += 1
        try:
            await asyncio.to_thread(self._write)
        finally:
            self._saving -= 1

    @property
    def client(self) -> GenerativeClient:
        if self._client is None:
            self._client = get_generative_client(self.config)
        return self._client

    @property
    def credits_display(self) -> str:
        return self.ledger.display()

    def update_profile(self, **changes: Any) -> BrandProfile:
        data = self.profile.model_dump()
        data.update(changes)
        self.profile = BrandProfile.model_validate(data)
        self.ledger.privileged = self.profile.isAdmin
        return self.profile

    # Planner

    def get_post(self, post_id: str) -> SocialPost:
        for post in self.posts:
            if post.id == post_id:
                return post
        raise ResourceNotFoundError("SocialPost", post_id)

    def posts_by_date(self) -> "OrderedDict[str, List[SocialPost]]":
        groups: Dict[str, List[SocialPost]] = {}
        for post in self.posts:
            groups.setdefault(post.date, []).append(post)
        return OrderedDict((d, groups[d]) for d in sorted(groups))

    def add_post_at_date(self, date: str, platform: Platform = Platform.INSTAGRAM) -> SocialPost:
        post = SocialPost(
            id=uuid.uuid4().hex,
            platform=platform,
            date=date,
            content=NEW_POST_CONTENT,
            hashtags=["newpost", self.profile.name.lower().replace(" ", "")],
            status=PostStatus.DRAFT,
            mediaSource=MediaSource.CLIENT_UPLOAD,
        )
        self.posts.append(post)
        return post

    def edit_post_content(self, post_id: str, content: str) -> SocialPost:
        post = self.get_post(post_id)
        post.content = content
        return post

    def delete_post(self, post_id: str) -> None:
        post = self.get_post(post_id)
        if post_id in self.in_flight:
            raise GenerationInProgress(post_id)
        self.posts.remove(post)

    def approve_post(self, post_id: str) -> SocialPost:
        post = self.get_post(post_id)
        post.status = PostStatus.APPROVED
        return post

    def toggle_media_source(self, post_id: str) -> SocialPost:
        post = self.get_post(post_id)
        post.mediaSource = (
            MediaSource.CLIENT_UPLOAD if post.mediaSource is MediaSource.AI_GENERATED else MediaSource.AI_GENERATED
        )
        return post

    def attach_upload(self, post_id: str, url: str, media_type: MediaType = MediaType.IMAGE) -> SocialPost:
        """Replace the post's media with a client upload; AI variants are dropped."""
        post = self.get_post(post_id)
        post.variants.clear()
        if MediaType(media_type) is MediaType.VIDEO:
            post.videoUrl, post.imageUrl = url, None
        else:
            post.imageUrl, post.videoUrl = url, None
        post.mediaSource = MediaSource.CLIENT_UPLOAD
        return post

    def navigate_variant(self, post_id: str, direction: Direction) -> Optional[str]:
        post = self.get_post(post_id)
        url = post.variants.advance(direction)
        post.sync_media_pointer()
        return url

    # Generation

    def open_generation(self, post_id: str) -> GenerationSession:
        post = self.get_post(post_id)
        return GenerationSession(
            post,
            self.profile,
            self.ledger,
            brief_agent=BriefAgent(self.client, model=self.config.brief_model),
            render_agent=RenderAgent(self.client, config=self.config),
            in_flight=self.in_flight,
            on_success=lambda _session: self.save_async(),
        )

    async def generate_weekly_strategy(
        self, formats: Optional[Sequence[ContentFormat]] = None, language: str = "en"
    ) -> List[SocialPost]:
        hold = self.ledger.hold(WEEKLY_STRATEGY_COST, reason="weekly_strategy")
        try:
            agent = StrategyAgent(self.client, model=self.config.text_model)
            new_posts = await agent.weekly_strategy(self.profile, formats, language)
        except BaseException:
            self.ledger.release(hold)
            raise
        if not new_posts:
            self.ledger.release(hold)
            return []
        self.ledger.settle(hold)
        self.posts.extend(new_posts)
        await self.save_async()
        return new_posts

    async def rewrite_post_copy(self, post_id: str, language: str = "en") -> SocialPost:
        post = self.get_post(post_id)
        with self.in_flight.claim(post_id):
            hold = self.ledger.hold(COPY_REWRITE_COST, reason="copy_rewrite")
            try:
                draft = await StrategyAgent(self.client, model=self.config.text_model).rewrite_copy(
                    post, self.profile, language
                )
            except BaseException:
                self.ledger.release(hold)
                raise
            post.content = draft.content
            post.hashtags = normalize_hashtags(draft.hashtags)
            post.status = PostStatus.NEEDS_REVIEW
            self.ledger.settle(hold)
        await self.save_async()
        return post

    # Onboarding and trends

    async def complete_onboarding(self, language: str = "en") -> List[SocialPost]:
        """Seed a new account with starter posts and a welcome notification.

        The starter plan is free. When it cannot be generated the account is
        still onboarded, just without posts.
        """
        agent = StrategyAgent(self.client, model=self.config.text_model)
        try:
            starters = await agent.initial_strategy(self.profile, language)
        except StudioError as exc:
            log_warning(None, "studio:starter_failed", reason=exc.code, error=str(exc))
            starters = []
        self.posts.extend(starters)
        self.notify(
            NotificationType.INSIGHT,
            f"Welcome, {self.profile.name}",
            f"Your studio is ready with {len(starters)} starter posts and {self.ledger.display()} credits.",
        )
        await self.save_async()
        return starters

    async def refresh_trends(self, language: str = "en") -> List[Notification]:
        trends = await StrategyAgent(self.client, model=self.config.text_model).latest_trends(
            self.profile.industry, language
        )
        self.notifications[:0] = trends
        if trends:
            await self.save_async()
        return trends

    # Credits

    def purchase(self, plan_key: str) -> int:
        granted = self.payments.complete_purchase(plan_key)
        balance = self.ledger.credit(granted, reason=f"purchase:{plan_key}")
        plan = PLANS.get(plan_key)
        self.notify(
            NotificationType.SYSTEM,
            "Credits added",
            f"{granted} credits added ({plan.label if plan else plan_key}). Balance: {self.ledger.display()}.",
        )
        log_info(None, "studio:purchase", plan=plan_key, granted=granted, balance=balance)
        self.save()
        return granted

    def notify(self, kind: NotificationType, title: str, message: str) -> Notification:
        notification = Notification(
            id=uuid.uuid4().hex,
            type=kind,
            title=title,
            message=message,
            timestamp=utc_now(),
        )
        self.notifications.insert(0, notification)
        return notification
