"""Low-level structured and free-text model calls.

``request_tool_input`` offers the model exactly one tool whose parameters are
an arbitrary JSON schema and returns the arguments of that tool call. It is
used where the schema is composed at runtime and cannot be expressed as a
pydantic output type. ``request_text`` is the plain prompt-in/text-out path
used by fallbacks. Both send attached images alongside the prompt as
multimodal user content.
"""

import base64
import mimetypes
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic_ai import Agent, BinaryContent, ImageUrl
from pydantic_ai.direct import model_request
from pydantic_ai.messages import ModelRequest, SystemPromptPart, TextPart, ToolCallPart, UserPromptPart
from pydantic_ai.models import ModelRequestParameters
from pydantic_ai.settings import ModelSettings
from pydantic_ai.tools import ToolDefinition

from trainlog.config.settings import settings
from trainlog.core.errors import MalformedResponseError
from trainlog.services.llm.model import get_model

DEFAULT_IMAGE_MEDIA_TYPE = "image/jpeg"


def build_image_parts(image_refs: list[str] | None) -> list[ImageUrl | BinaryContent]:
    """Turn image references into model content parts.

    http(s) URLs are passed by reference, base64 data URIs are decoded, and
    anything else is read as a local file.

    Raises:
        OSError: If a local image cannot be read
        ValueError: If a data URI is not base64 encoded
    """
    parts: list[ImageUrl | BinaryContent] = []
    for ref in image_refs or []:
        if ref.startswith(("http://", "https://")):
            parts.append(ImageUrl(url=ref))
            continue
        if ref.startswith("data:"):
            header, _, payload = ref.partition(",")
            if not header.endswith(";base64"):
                raise ValueError("Only base64 data URIs are supported for images")
            media_type = header[len("data:") : -len(";base64")] or DEFAULT_IMAGE_MEDIA_TYPE
            parts.append(BinaryContent(data=base64.b64decode(payload), media_type=media_type))
            continue
        media_type = mimetypes.guess_type(ref)[0] or DEFAULT_IMAGE_MEDIA_TYPE
        parts.append(BinaryContent(data=Path(ref).read_bytes(), media_type=media_type))
    return parts


def build_user_content(user_prompt: str, image_refs: list[str] | None) -> str | list:
    images = build_image_parts(image_refs)
    if not images:
        return user_prompt
    return [user_prompt, *images]


async def request_tool_input(
    *,
    model_name: str,
    system_prompt: str,
    user_prompt: str,
    tool_name: str,
    tool_description: str,
    parameters_schema: dict[str, Any],
    temperature: float = 0.1,
    max_tokens: int | None = None,
    image_refs: list[str] | None = None,
) -> dict[str, Any]:
    """Ask the model to call a single tool and return the call arguments.

    Args:
        model_name: Model identifier
        system_prompt: System instructions
        user_prompt: User content
        tool_name: Name of the only tool offered
        tool_description: Tool description shown to the model
        parameters_schema: JSON schema of the tool arguments
        temperature: Sampling temperature
        max_tokens: Output token limit (provider default when None)
        image_refs: Images sent with the user content

    Returns:
        Tool call arguments as a dict

    Raises:
        MalformedResponseError: If the model answered with text instead of the tool
    """
    model = get_model(settings.llm_provider, model_name)
    messages = [
        ModelRequest(
            parts=[
                SystemPromptPart(content=system_prompt),
                UserPromptPart(content=build_user_content(user_prompt, image_refs)),
            ]
        ),
    ]
    parameters = ModelRequestParameters(
        function_tools=[
            ToolDefinition(
                name=tool_name,
                description=tool_description,
                parameters_json_schema=parameters_schema,
            )
        ],
        allow_text_output=True,
    )

    model_settings = ModelSettings(temperature=temperature)
    if max_tokens is not None:
        model_settings["max_tokens"] = max_tokens

    logger.debug("Requesting structured tool call", model=model_name, tool=tool_name, images=len(image_refs or []))
    response = await model_request(
        model,
        messages,
        model_settings=model_settings,
        model_request_parameters=parameters,
    )

    for part in response.parts:
        if isinstance(part, ToolCallPart) and part.tool_name == tool_name:
            return part.args_as_dict()

    text = "".join(part.content for part in response.parts if isinstance(part, TextPart))
    raise MalformedResponseError(text, message=f"Tool use '{tool_name}' expected but received text response")


async def request_text(
    *,
    model_name: str,
    system_prompt: str,
    user_prompt: str,
    image_refs: list[str] | None = None,
) -> str:
    """Run a plain text completion.

    Returns:
        The model's text output
    """
    agent = Agent(
        model=get_model(settings.llm_provider, model_name),
        system_prompt=system_prompt,
    )
    result = await agent.run(build_user_content(user_prompt, image_refs))
    return result.output
