"""
Generation session: the per-post state machine driving brief -> render ->
variant history.

    idle -> preparing -> rendering -> done
    preparing/rendering -> error
    error -> preparing      retry, replays the identical request
    done -> preparing       regenerate, seed + 1

Credits are reserved when preparing starts and only debited once the render
succeeded. A post can only have one request in flight at a time.
"""
import asyncio
import inspect
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

from sociai.agents.brief_agent import BriefAgent
from sociai.agents.render_agent import RenderAgent, aspect_hint_for
from sociai.media.assets import load_reference_assets
from sociai.shared.logging_utils import error as log_error, info as log_info, warning as log_warning
from sociai.specs.common.enums import GenerationMode, GenerationPhase, MediaSource, MediaType, Platform
from sociai.specs.common.errors import AuthorizationRequired, GenerationInProgress, InvalidRequest, InvalidTransition
from sociai.specs.models.domain import BrandProfile, SocialPost
from sociai.specs.models.generation import Brief, GenerationRequest, ReferenceAsset, RenderResult

from .credit_ledger import CreditHold, CreditLedger, cost_of

ReferenceLoader = Callable[[BrandProfile, Optional[str]], Sequence[ReferenceAsset]]
SuccessHook = Callable[["GenerationSession"], Union[None, Awaitable[None]]]

_TRANSITIONS: Dict[GenerationPhase, Set[GenerationPhase]] = {
    GenerationPhase.IDLE: {GenerationPhase.PREPARING},
    # idle/done from an active phase only on cancellation
    GenerationPhase.PREPARING: {
        GenerationPhase.RENDERING,
        GenerationPhase.ERROR,
        GenerationPhase.IDLE,
        GenerationPhase.DONE,
    },
    GenerationPhase.RENDERING: {
        GenerationPhase.DONE,
        GenerationPhase.ERROR,
        GenerationPhase.IDLE,
    },
    GenerationPhase.DONE: {GenerationPhase.PREPARING},
    GenerationPhase.ERROR: {GenerationPhase.PREPARING},
}


class InFlightRegistry:
    """Post ids with a generation request currently running."""

    def __init__(self) -> None:
        self._active: Set[str] = set()

    def __contains__(self, post_id: str) -> bool:
        return post_id in self._active

    def __len__(self) -> int:
        return len(self._active)

    @contextmanager
    def claim(self, post_id: str) -> Iterator[None]:
        if post_id in self._active:
            raise GenerationInProgress(post_id)
        self._active.add(post_id)
        try:
            yield
        finally:
            self._active.discard(post_id)


_DEFAULT_REGISTRY = InFlightRegistry()


class GenerationSession:
    def __init__(
        self,
        post: SocialPost,
        brand: BrandProfile,
        ledger: CreditLedger,
        *,
        brief_agent: BriefAgent,
        render_agent: RenderAgent,
        in_flight: Optional[InFlightRegistry] = None,
        reference_loader: ReferenceLoader = load_reference_assets,
        on_success: Optional[SuccessHook] = None,
    ) -> None:
        self.post = post
        self.brand = brand
        self.ledger = ledger
        self.brief_agent = brief_agent
        self.render_agent = render_agent
        self.in_flight = in_flight if in_flight is not None else _DEFAULT_REGISTRY
        self.reference_loader = reference_loader
        self.on_success = on_success

        self.phase = GenerationPhase.IDLE
        self.phases: List[GenerationPhase] = [GenerationPhase.IDLE]
        self.request: Optional[GenerationRequest] = None
        self.brief: Optional[Brief] = None
        self.result: Optional[RenderResult] = None
        self.error: Optional[Exception] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def trace_id(self) -> Optional[str]:
        return self.request.traceId if self.request else None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None

    @property
    def needs_reauthorization(self) -> bool:
        return isinstance(self.error, AuthorizationRequired)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _transition(self, target: GenerationPhase) -> None:
        if target not in _TRANSITIONS[self.phase]:
            raise InvalidTransition(target.value, self.phase.value)
        log_info(self.trace_id, "session:phase", postId=self.post.id, source=self.phase.value, target=target.value)
        self.phase = target
        self.phases.append(target)

    def _require(self, action: str, *allowed: GenerationPhase) -> None:
        if self.phase not in allowed:
            raise InvalidTransition(action, self.phase.value)

    async def start(
        self,
        media_type: MediaType,
        *,
        mode: GenerationMode = GenerationMode.PHOTO,
        edit_instruction: Optional[str] = None,
        seed: int = 0,
        prompt: Optional[str] = None,
        platform: Optional[Platform] = None,
    ) -> RenderResult:
        """Confirm the generation parameters and run the pipeline."""
        self._require("start", GenerationPhase.IDLE)
        text = (prompt or self.post.content or "").strip()
        if not text:
            raise InvalidRequest("Post has no text to generate media from", details={"postId": self.post.id})
        request = GenerationRequest(
            mediaType=media_type,
            prompt=text,
            postId=self.post.id,
            platform=platform or self.post.platform,
            mode=mode,
            editInstruction=edit_instruction or None,
            seed=seed,
            brand=self.brand.model_dump(mode="json"),
        )
        return await self._execute(request)

    async def regenerate(self, **changes: Any) -> RenderResult:
        """Run again with the next seed; ``changes`` may swap mode or edit instruction."""
        self._require("regenerate", GenerationPhase.DONE)
        return await self._execute(self.request.next_variant(**changes))

    async def retry(self) -> RenderResult:
        """Replay the failed request unchanged (same seed, same prompt)."""
        self._require("retry", GenerationPhase.ERROR)
        return await self._execute(self.request)

    def cancel(self) -> bool:
        """Abort the in-flight request, e.g. when the modal is dismissed."""
        if not self.running:
            return False
        log_info(self.trace_id, "session:cancel", postId=self.post.id, phase=self.phase.value)
        return self._task.cancel()

    async def _execute(self, request: GenerationRequest) -> RenderResult:
        with self.in_flight.claim(self.post.id):
            self.request = request
            self.error = None
            self._transition(GenerationPhase.PREPARING)
            hold: Optional[CreditHold] = None
            try:
                hold = self.ledger.hold(cost_of(request.mediaType), reason=f"generate:{request.mediaType.value}")
                self._task = asyncio.ensure_future(self._pipeline(request))
                brief, result = await self._task
            except asyncio.CancelledError:
                if hold is not None:
                    self.ledger.release(hold)
                self._transition(GenerationPhase.DONE if self.result is not None else GenerationPhase.IDLE)
                raise
            except Exception as exc:
                if hold is not None:
                    self.ledger.release(hold)
                self.error = exc
                log_error(request.traceId, "session:failed", postId=self.post.id, error=str(exc), errorType=type(exc).__name__)
                self._transition(GenerationPhase.ERROR)
                raise
            finally:
                self._task = None

            self._apply(request, brief, result)
            self.ledger.settle(hold)
            self._transition(GenerationPhase.DONE)

        if self.on_success is not None:
            outcome = self.on_success(self)
            if inspect.isawaitable(outcome):
                await outcome
        return result

    async def _pipeline(self, request: GenerationRequest) -> Tuple[Brief, RenderResult]:
        trace_id = request.traceId
        brand = BrandProfile.model_validate(request.brand)
        brief = await self.brief_agent.with_trace(trace_id).synthesize_brief(
            request.prompt,
            brand,
            mode=request.mode,
            edit_instruction=request.editInstruction,
            seed=request.seed,
        )
        references: Sequence[ReferenceAsset] = ()
        if request.mediaType is MediaType.IMAGE:
            references = await asyncio.to_thread(self.reference_loader, brand, trace_id)
        self.brief = brief
        self._transition(GenerationPhase.RENDERING)
        result = await self.render_agent.with_trace(trace_id).render_media(
            brief,
            request.mediaType,
            aspect_hint_for(request.platform, request.mediaType),
            references,
        )
        return brief, result

    def _apply(self, request: GenerationRequest, brief: Brief, result: RenderResult) -> None:
        post = self.post
        before = len(post.variants)
        post.variants.append(result.url, result.mediaType)
        if len(post.variants) == before:
            log_warning(request.traceId, "session:duplicate_variant", postId=post.id)
        post.sync_media_pointer()
        post.mediaSource = MediaSource.AI_GENERATED
        post.variantSeed = request.seed
        post.creativeBrief = brief.model_dump(mode="json")
        post.aiPrompt = result.rawPromptUsed
        post.aiDebug = result.debugInfo
        self.result = result
