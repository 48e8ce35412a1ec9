"""Parse fenced tool-call blocks out of assistant text.

The model requests a tool by emitting::

    ```tool-<name>
    <input>
    ```

Detection and selection are separate steps. ``parse_tool_calls`` reports
every block in order. ``select_tool_call`` applies first-match-wins over the
recognized ones.
"""

import re
from dataclasses import dataclass
from typing import ClassVar

TOOL_BLOCK_PATTERN = re.compile(r"```tool-(.*)\n([\s\S]+?)\n```")


@dataclass(slots=True, frozen=True)
class NoToolCall:
    pass


@dataclass(slots=True, frozen=True)
class SearchCall:
    input: str
    name: ClassVar[str] = "search"


@dataclass(slots=True, frozen=True)
class FetchCall:
    input: str
    name: ClassVar[str] = "fetch"


@dataclass(slots=True, frozen=True)
class UnrecognizedCall:
    name: str
    raw: str


ToolCall = SearchCall | FetchCall
ParsedBlock = SearchCall | FetchCall | UnrecognizedCall

_KNOWN_TOOLS: dict[str, type[SearchCall] | type[FetchCall]] = {
    "search": SearchCall,
    "fetch": FetchCall,
}


def parse_tool_calls(text: str) -> list[ParsedBlock]:
    blocks: list[ParsedBlock] = []
    for match in TOOL_BLOCK_PATTERN.finditer(text):
        name, body = match.group(1), match.group(2)
        factory = _KNOWN_TOOLS.get(name)
        if factory is None:
            blocks.append(UnrecognizedCall(name=name, raw=match.group(0)))
        else:
            blocks.append(factory(input=body))
    return blocks


def has_tool_block(text: str) -> bool:
    """True when the text holds any tool fence, recognized or not."""
    return TOOL_BLOCK_PATTERN.search(text) is not None


def select_tool_call(text: str) -> ToolCall | NoToolCall:
    for block in parse_tool_calls(text):
        if isinstance(block, SearchCall | FetchCall):
            return block
    return NoToolCall()
