import json
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

GENERATE_DESIGN_IMAGE = "generate_design_image"


@dataclass(frozen=True)
class GenerateDesignImage:
    """The model asked for a design image to be rendered."""

    prompt: str = ""
    title: str = ""
    description: str = ""

    name = GENERATE_DESIGN_IMAGE


# One constructor per supported tool name.
ToolCallDirective = GenerateDesignImage


def _as_text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def parse_tool_call(raw: dict) -> ToolCallDirective | None:
    """Turn one ``tool_calls`` entry of a chat completion into a directive.

    Unknown tool names return None. Arguments that are not valid JSON are
    treated as empty so the synthesizer can fill in defaults.
    """
    function = raw.get("function") if isinstance(raw, dict) else None
    if not isinstance(function, dict):
        return None

    name = function.get("name")
    if name != GENERATE_DESIGN_IMAGE:
        logger.info("Ignoring unsupported tool call: %s", name)
        return None

    arguments = function.get("arguments") or "{}"
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError:
            logger.warning("Malformed arguments for %s: %s", name, arguments[:200])
            arguments = {}
    if not isinstance(arguments, dict):
        arguments = {}

    return GenerateDesignImage(
        prompt=_as_text(arguments.get("prompt")),
        title=_as_text(arguments.get("title")),
        description=_as_text(arguments.get("description")),
    )


def parse_tool_calls(raw_calls) -> list[ToolCallDirective]:
    if not raw_calls:
        return []
    directives = []
    for raw in raw_calls:
        directive = parse_tool_call(raw)
        if directive is not None:
            directives.append(directive)
    return directives


def find_directive(tool_calls, kind: type) -> ToolCallDirective | None:
    for call in tool_calls:
        if isinstance(call, kind):
            return call
    return None
