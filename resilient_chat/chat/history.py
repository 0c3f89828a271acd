"""
Conversation history helpers.

Comprehensive history keeps every turn ever produced. The curated view drops
runs of model turns that contain invalid output so they are never sent back
to the model.
"""

from typing import Iterable, List

from ..config.constants import SYNTHETIC_THOUGHT_SIGNATURE
from ..models.content import Content, Role, is_valid_content

VALID_ROLES = (Role.USER, Role.MODEL)


def validate_history(history: Iterable[Content]) -> None:
    """Raise ``ValueError`` if any turn has a role other than user/model."""
    for content in history:
        role = content.role if isinstance(content, Content) else (content or {}).get("role")
        if role not in VALID_ROLES:
            raise ValueError(f"Role must be user or model, but got {getattr(role, 'value', role)}.")


def extract_curated_history(comprehensive_history: List[Content]) -> List[Content]:
    """
    Keep user turns and the model-turn runs in which every turn is valid.

    A contiguous run of model turns is kept or dropped as a whole. The result
    is an order-preserving subsequence of the input, and applying the
    function to its own output returns the same list.
    """
    if not comprehensive_history:
        return []

    curated: List[Content] = []
    length = len(comprehensive_history)
    i = 0
    while i < length:
        if comprehensive_history[i].role == Role.USER:
            curated.append(comprehensive_history[i])
            i += 1
            continue

        model_output: List[Content] = []
        is_valid = True
        while i < length and comprehensive_history[i].role == Role.MODEL:
            model_output.append(comprehensive_history[i])
            if is_valid and not is_valid_content(comprehensive_history[i]):
                is_valid = False
            i += 1
        if is_valid:
            curated.extend(model_output)
    return curated


def find_active_loop_start(contents: List[Content]) -> int:
    """
    Index of the user turn that started the current agentic loop.

    That is the last user turn carrying text (as opposed to tool results).
    Returns -1 when there is none.
    """
    for index in range(len(contents) - 1, -1, -1):
        content = contents[index]
        if content.role == Role.USER and any(part.text for part in content.parts):
            return index
    return -1


def ensure_active_loop_has_thought_signatures(contents: List[Content]) -> List[Content]:
    """
    Give every function call in the active loop a thought signature.

    Preview-tier models reject function calls from the current loop that
    lack one. Returns a new list; ``contents`` is left untouched.
    """
    start = find_active_loop_start(contents)
    if start == -1:
        return list(contents)

    result = list(contents[: start + 1])
    for content in contents[start + 1:]:
        if content.role != Role.MODEL or not any(
            part.function_call is not None and not part.thought_signature
            for part in content.parts
        ):
            result.append(content)
            continue
        parts = [
            part.model_copy(update={"thought_signature": SYNTHETIC_THOUGHT_SIGNATURE})
            if part.function_call is not None and not part.thought_signature
            else part
            for part in content.parts
        ]
        result.append(content.model_copy(update={"parts": parts}))
    return result


def strip_thoughts(contents: List[Content]) -> List[Content]:
    """Copy of ``contents`` with thought signatures removed from every part."""
    stripped: List[Content] = []
    for content in contents:
        parts = [
            part.model_copy(update={"thought_signature": None}) if part.thought_signature else part
            for part in content.parts
        ]
        stripped.append(content.model_copy(update={"parts": parts}))
    return stripped
