"""Reshaping history into the strictly alternating turns the dialogue model accepts."""

from dataclasses import dataclass
from typing import Iterable

USER = "user"
MODEL = "model"

MERGE_SEPARATOR = "\n\n---\n\n"
CONTINUE_PROMPT = "Please continue."


@dataclass(frozen=True)
class Turn:
    role: str  # "user" | "model"
    text: str


def to_dialogue_role(role: str | None) -> str:
    """Map stored roles onto the two-party vocabulary; only assistant speaks as the model."""
    return MODEL if role == "assistant" else USER


def normalize_turns(leading: Turn, history: Iterable[Turn]) -> list[Turn]:
    """
    Produce a user/model alternating sequence starting with the leading context turn.

    Same-role runs are merged into the previous turn. A trailing model turn gets
    a synthetic user continuation, since the model cannot be asked to answer itself.
    """
    output = [Turn(USER, leading.text)]
    for turn in history:
        last = output[-1]
        if turn.role == last.role:
            output[-1] = Turn(last.role, f"{last.text}{MERGE_SEPARATOR}{turn.text}")
        else:
            output.append(Turn(turn.role, turn.text))

    if output[-1].role == MODEL:
        output.append(Turn(USER, CONTINUE_PROMPT))
    return output
