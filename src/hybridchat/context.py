"""Which messages go to a backend, and the clear/undo/edit/regenerate moves.

All functions are pure: they take a message tuple and return a new one.
"""

from dataclasses import dataclass
from typing import Iterable

from hybridchat.models import Attachment, Message, Role


@dataclass(frozen=True)
class EditDraft:
    text: str
    attachments: tuple[Attachment, ...] = ()


def is_eligible(message: Message) -> bool:
    return (
        message.role != Role.SYSTEM
        and not message.exclude_from_context
        and not message.is_context_divider
        and not message.is_error
    )


def eligible_messages(messages: Iterable[Message]) -> list[Message]:
    return [m for m in messages if is_eligible(m)]


def clear_context(messages: tuple[Message, ...], divider_text: str) -> tuple[Message, ...]:
    excluded = tuple(
        m if m.exclude_from_context else m.model_copy(update={"exclude_from_context": True})
        for m in messages
    )
    return excluded + (Message.divider(divider_text),)


def undo_clear(messages: tuple[Message, ...], divider_id: str) -> tuple[Message, ...]:
    index = next(
        (i for i, m in enumerate(messages) if m.id == divider_id and m.is_context_divider),
        -1,
    )
    if index == -1:
        return messages

    restored = list(messages[:index]) + list(messages[index + 1 :])
    for i in range(index - 1, -1, -1):
        if restored[i].is_context_divider:
            break
        restored[i] = restored[i].model_copy(update={"exclude_from_context": False})
    return tuple(restored)


def truncate_for_edit(
    messages: tuple[Message, ...], message_id: str
) -> tuple[tuple[Message, ...], EditDraft] | None:
    for index, message in enumerate(messages):
        if message.id == message_id:
            return messages[:index], EditDraft(message.text, message.attachments)
    return None


def truncate_for_regenerate(
    messages: tuple[Message, ...], message_id: str
) -> tuple[tuple[Message, ...], Message] | None:
    for index, message in enumerate(messages):
        if message.id != message_id:
            continue
        if index == 0:
            return None
        previous = messages[index - 1]
        if previous.role != Role.USER:
            return None
        return messages[: index - 1], previous
    return None
