"""Generic tool-using agent loop.

One ``ToolAgent`` drives one conversation: send the conversation to the
model, execute the tool calls it requests (sequentially, in order), feed the
results back, and repeat until the model answers with text or the iteration
limit is reached. Subclasses hook in a blocking check and result handlers.
"""

import json
import time
from typing import Any, Generic, TypeVar

from loguru import logger
from pydantic import BaseModel

from trainlog.agents.core.tool import AgentTool
from trainlog.agents.core.types import (
    ConversationTurn,
    ModelCallRequest,
    ModelProvider,
    ModelReply,
    ToolResultEntry,
    ToolUse,
)
from trainlog.config.settings import settings
from trainlog.core.errors import WorkoutLoggerError

ContextT = TypeVar("ContextT")

MAX_ITERATIONS_MESSAGE = "Agent exceeded maximum iterations."
LOG_PREVIEW_LENGTH = 200


def truncate_for_log(value: Any, limit: int = LOG_PREVIEW_LENGTH) -> str:
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    return text if len(text) <= limit else f"{text[:limit]}..."


class ToolAgent(Generic[ContextT]):
    """Tool-using conversation loop over a ``ModelProvider``."""

    def __init__(
        self,
        *,
        provider: ModelProvider,
        system_prompt: str,
        tools: list[AgentTool[Any, ContextT]],
        context: ContextT,
        model_id: str,
        max_iterations: int | None = None,
    ):
        self.provider = provider
        self.system_prompt = system_prompt
        self.tools = {tool.name: tool for tool in tools}
        self.context = context
        self.model_id = model_id
        self.max_iterations = max_iterations or settings.agent_max_iterations
        self.conversation: list[ConversationTurn] = []

    async def converse(self, user_message: str) -> str:
        """Run the loop for one user message and return the final text."""
        logger.info("Agent conversation started", tools=list(self.tools), history_turns=len(self.conversation))
        self.conversation.append(ConversationTurn(role="user", text=user_message))

        final_response = ""
        iteration = 0
        finished = False
        while iteration < self.max_iterations:
            iteration += 1
            logger.debug("Agent iteration", iteration=iteration)
            reply = await self._invoke_model()

            if reply.stop_reason == "tool_use" and reply.tool_uses:
                await self._handle_tool_use(reply)
                continue

            if reply.stop_reason == "max_tokens":
                logger.warning("Response hit max tokens limit")
                final_response = reply.text or "Response exceeded token limit."
            elif reply.stop_reason == "content_filtered":
                logger.warning("Response was content filtered")
                final_response = reply.text or "Response was filtered due to content policy."
            else:
                final_response = reply.text
            self.conversation.append(ConversationTurn(role="assistant", text=reply.text))
            finished = True
            break

        if not finished:
            logger.warning("Agent hit max iterations", max_iterations=self.max_iterations)
            final_response = MAX_ITERATIONS_MESSAGE

        logger.info("Agent conversation completed", iterations=iteration, response_length=len(final_response))
        return final_response

    async def _invoke_model(self) -> ModelReply:
        call = ModelCallRequest(
            system_prompt=self.system_prompt,
            conversation=list(self.conversation),
            tools=[tool.definition() for tool in self.tools.values()],
            model_id=self.model_id,
        )
        start = time.monotonic()
        reply = await self.provider.request(call)
        logger.debug(
            "Model call finished",
            stop_reason=reply.stop_reason,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return reply

    async def _handle_tool_use(self, reply: ModelReply) -> None:
        logger.info("Executing tools", count=len(reply.tool_uses))
        self.conversation.append(ConversationTurn(role="assistant", text=reply.text or None, tool_uses=reply.tool_uses))

        results = []
        # Sequential on purpose: later calls in a batch read results of earlier ones
        for tool_use in reply.tool_uses:
            results.append(await self._execute_tool_use(tool_use))

        self.conversation.append(ConversationTurn(role="user", tool_results=results))

    async def _execute_tool_use(self, tool_use: ToolUse) -> ToolResultEntry:
        tool = self.tools.get(tool_use.tool_name)
        if tool is None:
            logger.warning("Tool not found", tool=tool_use.tool_name)
            return self._error_entry(tool_use, f"Tool '{tool_use.tool_name}' not found")

        try:
            tool_input = tool.parse_input(tool_use.input)
        except WorkoutLoggerError as e:
            self._log_tool_execution("error", tool_use, error=e.message, error_type=type(e).__name__)
            self.on_tool_error(tool.name, None, e)
            return self._error_entry(tool_use, e.message)

        blocked = self.enforce_tool_blocking(tool.name, tool_input)
        if blocked is not None:
            self._log_tool_execution("blocked", tool_use, block_reason=getattr(blocked, "reason", None))
            return ToolResultEntry(
                call_id=tool_use.call_id,
                tool_name=tool_use.tool_name,
                content=blocked.model_dump(mode="json"),
                is_error=True,
            )

        self._log_tool_execution("start", tool_use, input_preview=truncate_for_log(tool_use.input))
        start = time.monotonic()
        try:
            result = await tool.execute(tool_input, self.context)
        except Exception as e:
            message = e.message if isinstance(e, WorkoutLoggerError) else str(e)
            self._log_tool_execution("error", tool_use, error=message, error_type=type(e).__name__)
            self.on_tool_error(tool.name, tool_input, e)
            return self._error_entry(tool_use, message)

        self._log_tool_execution(
            "success",
            tool_use,
            duration_ms=int((time.monotonic() - start) * 1000),
            result_preview=truncate_for_log(result),
        )
        self.on_tool_success(tool.name, tool_input, result)
        return ToolResultEntry(
            call_id=tool_use.call_id,
            tool_name=tool_use.tool_name,
            content=result.model_dump(mode="json"),
            is_error=False,
        )

    @staticmethod
    def _error_entry(tool_use: ToolUse, message: str) -> ToolResultEntry:
        return ToolResultEntry(
            call_id=tool_use.call_id,
            tool_name=tool_use.tool_name,
            content={"error": message},
            is_error=True,
        )

    @staticmethod
    def _log_tool_execution(phase: str, tool_use: ToolUse, **details: Any) -> None:
        log = logger.bind(phase=phase, tool=tool_use.tool_name, call_id=tool_use.call_id, **details)
        if phase == "error":
            log.error("Tool execution failed")
        elif phase == "blocked":
            log.warning("Tool execution blocked")
        elif phase == "start":
            log.info("Tool execution started")
        else:
            log.info("Tool execution succeeded")

    def enforce_tool_blocking(self, tool_name: str, tool_input: BaseModel) -> BaseModel | None:
        """Return a blocking result to veto a tool call, or None to allow it."""
        return None

    def on_tool_success(self, tool_name: str, tool_input: BaseModel, result: BaseModel) -> None:
        """Called after a tool returns."""

    def on_tool_error(self, tool_name: str, tool_input: BaseModel | None, error: Exception) -> None:
        """Called after a tool raises or its input fails validation."""
