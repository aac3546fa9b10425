from hybridchat.context import (
    EditDraft,
    clear_context,
    eligible_messages,
    is_eligible,
    truncate_for_edit,
    truncate_for_regenerate,
    undo_clear,
)
from hybridchat.models import Attachment, Message, Role


def user(text: str, **kwargs) -> Message:
    return Message(role=Role.USER, text=text, **kwargs)


def model(text: str, **kwargs) -> Message:
    return Message(role=Role.MODEL, text=text, **kwargs)


def dumps(messages) -> list[dict]:
    return [m.model_dump() for m in messages]


def test_clear_excludes_everything_and_appends_divider():
    messages = (user("hi"), model("hello"))

    cleared = clear_context(messages, "Context cleared")

    assert len(cleared) == 3
    assert [m.exclude_from_context for m in cleared] == [True, True, True]
    divider = cleared[-1]
    assert divider.is_context_divider
    assert divider.role == Role.SYSTEM
    assert divider.text == "Context cleared"
    assert eligible_messages(cleared) == []


def test_undo_restores_flags_and_order():
    messages = (user("a"), model("b"), user("c"))
    cleared = clear_context(messages, "x")

    restored = undo_clear(cleared, cleared[-1].id)

    assert dumps(restored) == dumps(messages)
    assert eligible_messages(restored) == eligible_messages(messages)


def test_undo_stops_at_earlier_divider():
    first = clear_context((user("a"), model("b")), "x")
    second = clear_context(first + (user("c"), model("d")), "y")

    restored = undo_clear(second, second[-1].id)

    assert restored[2].is_context_divider
    assert [m.text for m in eligible_messages(restored)] == ["c", "d"]
    assert restored[0].exclude_from_context and restored[1].exclude_from_context


def test_undo_unknown_divider_is_noop():
    messages = clear_context((user("a"),), "x")
    assert undo_clear(messages, "missing") == messages
    assert undo_clear(messages, messages[0].id) == messages


def test_divider_invariant_enforced_on_construction():
    divider = Message(
        role=Role.SYSTEM,
        text="x",
        is_context_divider=True,
        exclude_from_context=False,
        attachments=(Attachment(name="a", mime_type="text/plain", data=""),),
    )
    assert divider.exclude_from_context is True
    assert divider.attachments == ()
    assert divider.usage is None


def test_eligibility_rules():
    assert is_eligible(user("a"))
    assert is_eligible(model("b"))
    assert not is_eligible(Message(role=Role.SYSTEM, text="s"))
    assert not is_eligible(user("a", exclude_from_context=True))
    assert not is_eligible(model("API Error: boom", is_error=True))
    assert not is_eligible(Message.divider("x"))


def test_edit_truncates_before_message():
    attachment = Attachment(name="a.png", mime_type="image/png", data="AAAA")
    messages = (
        user("1"),
        model("2"),
        user("3", attachments=(attachment,)),
        model("4"),
        user("5"),
    )

    kept, draft = truncate_for_edit(messages, messages[2].id)

    assert kept == messages[:2]
    assert draft == EditDraft(text="3", attachments=(attachment,))


def test_edit_unknown_message():
    assert truncate_for_edit((user("1"),), "nope") is None


def test_regenerate_requires_user_predecessor():
    messages = (user("q"), model("a"), model("b"))

    kept, previous = truncate_for_regenerate(messages, messages[1].id)
    assert kept == ()
    assert previous == messages[0]

    assert truncate_for_regenerate(messages, messages[2].id) is None
    assert truncate_for_regenerate(messages, messages[0].id) is None
