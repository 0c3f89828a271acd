"""
Resilient streaming chat session.

``ChatSession`` owns the conversation history and serializes turns: a new
turn waits until the previous turn's stream has fully resolved. Each turn is
driven by a producer task that opens the model stream through the retry
engine, forwards chunks to the caller and commits the model turn only after
the stream passes validation.
"""

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

from ..config.constants import INVALID_CONTENT_INITIAL_DELAY_MS, INVALID_CONTENT_MAX_ATTEMPTS
from ..config.models import is_preview_model, resolve_model
from ..fallback.handler import handle_fallback
from ..models.content import (
    Content,
    PartListUnion,
    create_user_content,
    parts_to_string,
    to_parts,
)
from ..models.events import (
    AgentExecutionBlockedEvent,
    AgentExecutionStoppedEvent,
    Blocked,
    ChunkEvent,
    Committed,
    RetryEvent,
    Stopped,
    TurnOutcome,
)
from ..models.generation import (
    FinishReason,
    GenerateContentConfig,
    GenerateContentRequest,
    GenerateContentResponse,
)
from ..models.tool_calls import CompletedToolCall, ToolCallRecord
from ..observability.logging import ChatLogger
from ..recording.base import MODEL_MESSAGE, USER_MESSAGE
from ..reliability.cancellation import CancellationToken, cancellable_sleep, iterate_with_cancellation
from ..reliability.error_classifier import is_retryable_error
from ..reliability.errors import InvalidStreamError, RequestCancelledError
from ..reliability.retry import RetryManager, RetryOptions
from ..services.model_config import ModelConfigKey
from ..streaming.aggregator import estimate_token_count
from ..streaming.channel import TurnStream
from ..streaming.validator import StreamValidator
from .context import ChatContext
from .history import (
    ensure_active_loop_has_thought_signatures,
    extract_curated_history,
    strip_thoughts,
    validate_history,
)
from .hooks import (
    DEFAULT_AFTER_MODEL_BLOCK_REASON,
    DEFAULT_BLOCK_REASON,
    DEFAULT_STOP_REASON,
    ModelRequest,
)

logger = logging.getLogger(__name__)

NETWORK_RETRY_TYPE = "NETWORK_ERROR"


@dataclass
class _AttemptState:
    """Request parameters as last sent; updated on every call attempt."""
    model: str
    config: GenerateContentConfig
    contents: List[Content]
    request: Optional[ModelRequest] = None
    preview_contents: List[Content] = field(default_factory=list)


def _with_default_finish_reason(
    response: Optional[GenerateContentResponse],
) -> Optional[GenerateContentResponse]:
    if response is None:
        return None
    candidates = [
        candidate if candidate.finish_reason
        else candidate.model_copy(update={"finish_reason": FinishReason.STOP.value})
        for candidate in response.candidates
    ]
    return response.model_copy(update={"candidates": candidates})


class ChatSession:
    """
    One conversation with the model.

    History comes in two views: the comprehensive history holds every turn
    ever produced, the curated history (sent with each request) drops model
    output that failed validation.
    """

    def __init__(
        self,
        context: ChatContext,
        system_instruction: str = "",
        tools: Optional[List[dict]] = None,
        history: Optional[List[Content]] = None,
    ):
        history = list(history or [])
        validate_history(history)
        self.context = context
        self._system_instruction = system_instruction
        self._tools = list(tools or [])
        self._history: List[Content] = history
        self._lock = asyncio.Lock()
        self._last_prompt_token_count = estimate_token_count(
            part for content in history for part in content.parts
        )
        self.logger = ChatLogger("session")

    # Turn driver

    async def send_message_stream(
        self,
        model_config_key: Union[ModelConfigKey, str],
        message: PartListUnion,
        prompt_id: str,
        signal: Optional[CancellationToken] = None,
        display_content: Optional[PartListUnion] = None,
    ) -> TurnStream:
        """
        Send ``message`` and stream the model's response.

        Waits for any previous turn to finish first. The user turn is added to
        history before any network call, so it survives a failed turn.

        Args:
            model_config_key: Which model/config to use (a bare model id is accepted)
            message: Text, parts, or a list of either
            prompt_id: Correlation id for logs and the content generator
            signal: Cancels retries, waits and chunk reads for this turn
            display_content: User-facing rendering to record when it differs

        Returns:
            TurnStream yielding ChunkEvent, RetryEvent and hook stop/block events;
            ``stream.outcome`` holds the TurnOutcome once it is exhausted.
        """
        if isinstance(model_config_key, str):
            model_config_key = ModelConfigKey(model=model_config_key)

        await self._lock.acquire()
        try:
            user_content = create_user_content(message)
            model = self.context.model_config_service.get_resolved_config(model_config_key).model

            if not user_content.is_function_response():
                self._record_user_message(model, user_content, display_content)

            self._history.append(user_content)
            request_contents = self.get_history(curated=True)
        except BaseException:
            self._lock.release()
            raise

        stream = TurnStream(on_release=self._lock.release)
        stream.start(
            lambda channel: self._run_turn(
                channel, model_config_key, model, request_contents, prompt_id, signal
            )
        )
        return stream

    async def _run_turn(
        self,
        channel: TurnStream,
        model_config_key: ModelConfigKey,
        model: str,
        request_contents: List[Content],
        prompt_id: str,
        signal: Optional[CancellationToken],
    ) -> None:
        with self.logger.track_request("turn", model, prompt_id) as tracked:
            await self._attempt_turn(channel, model_config_key, request_contents, prompt_id, signal, tracked)

    async def _attempt_turn(
        self,
        channel: TurnStream,
        model_config_key: ModelConfigKey,
        request_contents: List[Content],
        prompt_id: str,
        signal: Optional[CancellationToken],
        tracked: Dict[str, Any],
    ) -> None:
        last_error: Optional[BaseException] = None
        max_attempts = INVALID_CONTENT_MAX_ATTEMPTS
        # Model swaps made by fallback negotiation carry over to content retries
        initial_active_model = self.context.get_active_model()

        for attempt in range(max_attempts):
            connection_phase = True
            try:
                if attempt > 0:
                    await channel.send(RetryEvent())

                key = model_config_key.as_retry() if attempt > 0 else model_config_key
                opened = await self._open_stream(
                    key, request_contents, prompt_id, signal, initial_active_model
                )
                if isinstance(opened, (Stopped, Blocked)):
                    await self._emit_hook_outcome(channel, opened, prompt_id)
                    return
                connection_phase = False

                chunks, state = opened
                tracked["model"] = state.model
                outcome = await self._process_stream(channel, chunks, state, prompt_id, signal)
                if isinstance(outcome, (Stopped, Blocked)):
                    await self._emit_hook_outcome(channel, outcome, prompt_id)
                    return
                channel.outcome = outcome
                return
            except RequestCancelledError:
                raise
            except Exception as error:  # noqa: BLE001
                retryable = is_retryable_error(error, self.context.retry_fetch_errors)
                cancelled = signal is not None and signal.cancelled

                if connection_phase and (not retryable or cancelled):
                    raise

                last_error = error
                is_content_error = isinstance(error, InvalidStreamError)
                if (is_content_error or (retryable and not cancelled)) and attempt < max_attempts - 1:
                    delay_ms = INVALID_CONTENT_INITIAL_DELAY_MS * (attempt + 1)
                    retry_type = error.reason.value if is_content_error else NETWORK_RETRY_TYPE
                    self.logger.warning(
                        f"Retrying turn ({retry_type})",
                        model=tracked["model"],
                        prompt_id=prompt_id,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay_ms=delay_ms,
                    )
                    self.context.metrics.record_content_retry()
                    await cancellable_sleep(delay_ms, signal)
                    continue
                break

        if last_error is not None:
            if isinstance(last_error, InvalidStreamError):
                self.logger.error(
                    "Content retries exhausted",
                    model=tracked["model"],
                    prompt_id=prompt_id,
                    attempts=max_attempts,
                    error=last_error,
                )
                self.context.metrics.record_content_retry_failure()
            raise last_error

    async def _emit_hook_outcome(
        self, channel: TurnStream, outcome: Union[Stopped, Blocked], prompt_id: str
    ) -> None:
        if isinstance(outcome, Stopped):
            self.logger.info(f"Turn stopped by hook: {outcome.reason}", prompt_id=prompt_id)
            await channel.send(AgentExecutionStoppedEvent(reason=outcome.reason))
        else:
            self.logger.info(f"Turn blocked by hook: {outcome.reason}", prompt_id=prompt_id)
            await channel.send(AgentExecutionBlockedEvent(reason=outcome.reason))
            if outcome.synthetic_response is not None:
                await channel.send(ChunkEvent(value=outcome.synthetic_response))
        channel.outcome = outcome

    async def _open_stream(
        self,
        model_config_key: ModelConfigKey,
        request_contents: List[Content],
        prompt_id: str,
        signal: Optional[CancellationToken],
        initial_active_model: str,
    ):
        """Open the model stream through the retry engine.

        Returns a hook ``Stopped``/``Blocked`` outcome, or the chunk iterator
        with the request state it was opened with.
        """
        service = self.context.model_config_service
        resolved = service.get_resolved_config(model_config_key)
        state = _AttemptState(
            model=resolved.model,
            config=resolved.generate_content_config,
            contents=request_contents,
            preview_contents=self.ensure_active_loop_has_thought_signatures(request_contents),
        )

        async def api_call():
            model = state.model
            active_model = self.context.get_active_model()
            if active_model != initial_active_model:
                model = resolve_model(active_model)
            if model != state.model:
                state.config = service.get_resolved_config(
                    model_config_key.with_model(model)
                ).generate_content_config
            state.model = model

            config = state.config.model_copy(update={
                "system_instruction": self._system_instruction or None,
                "tools": list(self._tools) or None,
            })
            contents = state.preview_contents if is_preview_model(model) else request_contents

            hooks = self.context.hooks
            if hooks is not None:
                before = await hooks.fire_before_model_event(
                    ModelRequest(model=model, config=config, contents=contents)
                )
                if before.stopped:
                    return Stopped(before.reason or DEFAULT_STOP_REASON)
                if before.blocked:
                    return Blocked(
                        before.reason or DEFAULT_BLOCK_REASON,
                        _with_default_finish_reason(before.synthetic_response),
                    )
                if before.modified_config:
                    config = config.merged(before.modified_config)
                if before.modified_contents is not None:
                    contents = list(before.modified_contents)

                selection = await hooks.fire_before_tool_selection_event(
                    ModelRequest(model=model, config=config, contents=contents)
                )
                if selection.tool_config:
                    config = config.model_copy(update={"tool_config": selection.tool_config})
                if selection.tools is not None:
                    config = config.model_copy(update={"tools": selection.tools})

            state.contents = contents
            state.request = ModelRequest(model=model, config=config, contents=contents)
            return await self.context.content_generator.generate_content_stream(
                GenerateContentRequest(model=model, contents=contents, config=config),
                prompt_id,
                signal,
            )

        def on_retry(attempt: int, error: Any, delay_ms: float) -> None:
            self.logger.info(
                f"Retry attempt {attempt}/{self.context.max_attempts}: {error}",
                model=state.model,
                prompt_id=prompt_id,
                delay_ms=int(delay_ms),
            )

        validation_handler = self.context.validation_handler

        def on_validation_required(error):
            return validation_handler(
                error.validation_link, error.validation_description, error.learn_more_url
            )

        options = RetryOptions(
            max_attempts=self.context.max_attempts,
            initial_delay_ms=self.context.initial_delay_ms,
            max_delay_ms=self.context.max_delay_ms,
            on_persistent_429=lambda auth_type, error: handle_fallback(
                self.context, state.model, auth_type, error
            ),
            on_validation_required=on_validation_required if validation_handler else None,
            auth_type=self.context.auth_type,
            retry_fetch_errors=self.context.retry_fetch_errors,
            signal=signal,
            on_retry=on_retry,
            model=state.model,
        )
        result = await RetryManager(self.context.metrics).execute_with_retry(api_call, options)
        if isinstance(result, (Stopped, Blocked)):
            return result
        return result, state

    async def _process_stream(
        self,
        channel: TurnStream,
        chunks: AsyncIterator[GenerateContentResponse],
        state: _AttemptState,
        prompt_id: str,
        signal: Optional[CancellationToken],
    ) -> TurnOutcome:
        validator = StreamValidator()
        hooks = self.context.hooks

        async with aclosing(iterate_with_cancellation(chunks, signal)) as stream:
            async for chunk in stream:
                for thought in validator.observe(chunk):
                    self._record("record_thought", thought)

                if chunk.usage_metadata is not None:
                    self._record("record_message_tokens", chunk.usage_metadata)
                    if chunk.usage_metadata.prompt_token_count is not None:
                        self._last_prompt_token_count = chunk.usage_metadata.prompt_token_count

                if hooks is not None and state.request is not None:
                    after = await hooks.fire_after_model_event(state.request, chunk)
                    if after.stopped:
                        return Stopped(after.reason or DEFAULT_STOP_REASON)
                    if after.blocked:
                        return Blocked(after.reason or DEFAULT_AFTER_MODEL_BLOCK_REASON, after.response)
                    if after.response is not None:
                        chunk = after.response

                await channel.send(ChunkEvent(value=chunk))

        record = validator.finalize()
        if record.text:
            self._record("record_message", state.model, MODEL_MESSAGE, record.text)
        validator.raise_if_invalid()

        content = record.to_content()
        self._history.append(content)
        self.logger.debug(
            "Committed model turn",
            model=state.model,
            prompt_id=prompt_id,
            parts=len(content.parts),
            finish_reason=record.finish_reason,
        )
        return Committed(content)

    # Recording

    def _record(self, method: str, *args: Any) -> None:
        try:
            getattr(self.context.recorder, method)(*args)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                f"Chat recorder {method} failed: {e}",
                extra={"recorder_method": method, "error_type": type(e).__name__},
            )

    def _record_user_message(
        self,
        model: str,
        user_content: Content,
        display_content: Optional[PartListUnion],
    ) -> None:
        final_display = None
        if display_content is not None:
            display_parts = to_parts(display_content)
            if parts_to_string(display_parts) != parts_to_string(user_content.parts):
                final_display = display_parts
        self._record("record_message", model, USER_MESSAGE, user_content.parts, final_display)

    def record_completed_tool_calls(self, model: str, tool_calls: Sequence[CompletedToolCall]) -> None:
        """Forward finished tool calls to the transcript recorder."""
        records = [ToolCallRecord.from_completed(call) for call in tool_calls]
        self._record("record_tool_calls", model, records)

    # History

    def get_history(self, curated: bool = False) -> List[Content]:
        """Deep copy of the comprehensive (default) or curated history."""
        history = extract_curated_history(self._history) if curated else self._history
        return [content.model_copy(deep=True) for content in history]

    def set_history(self, history: List[Content]) -> None:
        history = list(history)
        validate_history(history)
        self._history = history
        self._last_prompt_token_count = estimate_token_count(
            part for content in history for part in content.parts
        )
        self._record("update_messages_from_history", history)

    def clear_history(self) -> None:
        self._history = []

    def add_history(self, content: Content) -> None:
        self._history.append(content)

    def strip_thoughts_from_history(self) -> None:
        self._history = strip_thoughts(self._history)

    def ensure_active_loop_has_thought_signatures(self, contents: List[Content]) -> List[Content]:
        return ensure_active_loop_has_thought_signatures(contents)

    # Request parameters

    def set_system_instruction(self, system_instruction: str) -> None:
        self._system_instruction = system_instruction

    def set_tools(self, tools: List[dict]) -> None:
        self._tools = list(tools)

    def get_last_prompt_token_count(self) -> int:
        return self._last_prompt_token_count

    @property
    def busy(self) -> bool:
        """True while a turn holds the session."""
        return self._lock.locked()
