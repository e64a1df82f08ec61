import asyncio

import pytest

from civic_chat.config import (
    APOLOGY_REPLY,
    CANONICAL_REFUSAL,
    PROCESSING_PLACEHOLDER,
    ChatConfig,
)
from civic_chat.errors import CredentialError, TransportError, TurnInProgressError
from civic_chat.models import Message, Role, TurnPhase
from civic_chat.services.query_classifier import OPENING_STEP

from conftest import HOUSING_REPLY, FakeGateway, FakeSink


@pytest.mark.asyncio
async def test_housing_question_end_to_end(make_controller, gateway, sleep):
    ctrl = make_controller()
    steps, reveals = [], []

    result = await ctrl.submit(
        "What are your housing plans?", on_step=steps.append, on_reveal=reveals.append
    )

    assert gateway.calls[0]["max_tokens"] == 300
    assert gateway.calls[0]["temperature"] == 0.7
    assert gateway.calls[0]["user_message"] == "What are your housing plans?"
    assert "William Go" in gateway.calls[0]["system_prompt"]

    assert steps[0] == OPENING_STEP
    assert "Loading housing affordability data for Irvine..." in steps
    assert len(steps) == 6
    assert all(1.0 <= w <= 1.5 for w in sleep.waits[:6])

    assert reveals[-1] == HOUSING_REPLY
    assert len(reveals) == len(HOUSING_REPLY)

    assert result.failed is False
    assert result.cancelled is False
    assert result.escalation.needs_escalation is False
    assert result.message.is_revealing is False
    assert result.suggestions == [
        "What's the timeline for new housing developments?",
        "Who qualifies for affordable housing programs?",
    ]

    assert len(ctrl.store.sessions) == 1
    assert len(ctrl.store.sessions[0].messages) == 2
    assert ctrl.phase == TurnPhase.IDLE
    assert ctrl.is_thinking is False
    assert ctrl.follow_ups() == result.suggestions


@pytest.mark.asyncio
async def test_second_turn_stays_in_same_chat_and_skips_asked_suggestions(
    make_controller,
):
    ctrl = make_controller()
    await ctrl.submit("What are your housing plans?")
    result = await ctrl.submit("What's the timeline for new housing developments?")

    assert len(ctrl.store.sessions) == 1
    assert len(ctrl.store.sessions[0].messages) == 4
    assert result.suggestions == [
        "Who qualifies for affordable housing programs?",
        "How will new housing impact traffic?",
    ]


@pytest.mark.asyncio
async def test_greeting_gets_processing_placeholder(make_controller, gateway, sleep):
    ctrl = make_controller()
    steps = []

    await ctrl.submit("hi", on_step=steps.append)

    assert steps == [PROCESSING_PLACEHOLDER]
    assert sleep.waits[0] == 0.5
    assert gateway.calls[0]["max_tokens"] == 150


@pytest.mark.asyncio
async def test_gateway_failure_becomes_apology(make_controller, sink):
    ctrl = make_controller(llm=FakeGateway(error=TransportError()))

    result = await ctrl.submit("What are your housing plans?")

    assert result.failed is True
    assert result.message.content == APOLOGY_REPLY
    assert result.message.is_revealing is False
    assert result.message.needs_escalation is False
    assert result.suggestions == []
    assert ctrl.follow_ups() == []
    assert ctrl.phase == TurnPhase.IDLE


@pytest.mark.asyncio
async def test_second_submit_while_running_is_refused(make_controller):
    started = asyncio.Event()
    release = asyncio.Event()

    class BlockingGateway(FakeGateway):
        async def complete(self, system_prompt, user_message, max_tokens, temperature):
            started.set()
            await release.wait()
            return self.reply

    ctrl = make_controller(llm=BlockingGateway())
    task = asyncio.create_task(ctrl.submit("What are your housing plans?"))
    await started.wait()

    assert ctrl.phase == TurnPhase.AWAITING_RESPONSE
    assert ctrl.accepts_input is False
    with pytest.raises(TurnInProgressError):
        await ctrl.submit("Another question?")

    release.set()
    result = await task
    assert result.cancelled is False
    assert len(ctrl.get_history()) == 2


@pytest.mark.asyncio
async def test_new_chat_mid_turn_drops_the_reply(make_controller, gateway):
    ctrl = make_controller()
    ctrl.new_chat()
    first = ctrl.store.active_id
    gateway.on_call = ctrl.new_chat

    result = await ctrl.submit("What are your housing plans?")

    assert result.cancelled is True
    assert result.session_id == first
    assert ctrl.store.sessions == ()
    assert ctrl.store.active_id != first
    assert ctrl.get_history() == ()
    assert ctrl.phase == TurnPhase.IDLE


@pytest.mark.asyncio
async def test_switching_chats_mid_reveal_leaves_other_chat_alone(
    make_controller, sleep
):
    ctrl = make_controller()
    await ctrl.submit("What are your housing plans?")
    persisted = ctrl.store.active_id

    ctrl.new_chat()
    waits_before = len(sleep.waits)

    def switch_back(n):
        # a few ticks into the reveal of the new chat's reply
        if n == waits_before + 6 + 3:
            ctrl.select_chat(persisted)

    sleep.hook = switch_back
    result = await ctrl.submit("What are your transportation plans?")

    assert result.cancelled is True
    assert ctrl.store.active_id == persisted
    assert len(ctrl.get_history()) == 2
    promoted = ctrl.store.get(result.session_id)
    assert promoted.messages[-1].is_revealing is True


@pytest.mark.asyncio
async def test_strict_persona_canonical_refusal_escalates(make_controller):
    gateway = FakeGateway(reply=CANONICAL_REFUSAL)
    ctrl = make_controller(config=ChatConfig(strict_persona=True), llm=gateway)

    result = await ctrl.submit("Who is the city attorney for Irvine?")

    assert CANONICAL_REFUSAL in gateway.calls[0]["system_prompt"]
    assert result.escalation.needs_escalation is True
    assert result.escalation.trigger == CANONICAL_REFUSAL
    assert result.message.needs_escalation is True
    assert result.suggestions == []


@pytest.mark.asyncio
async def test_uncertain_reply_is_flagged(make_controller):
    ctrl = make_controller(
        llm=FakeGateway(reply="I'm not sure about the exact timeline yet.")
    )
    result = await ctrl.submit("When will the bike lanes open?")

    assert result.message.needs_escalation is True
    assert result.escalation.trigger == "i'm not sure"
    assert ctrl.follow_ups() == []


@pytest.mark.asyncio
async def test_input_validation(make_controller):
    ctrl = make_controller()
    with pytest.raises(ValueError):
        await ctrl.submit("   ")
    assert ctrl.get_history() == ()

    with pytest.raises(CredentialError):
        await make_controller(llm=None).submit("What are your housing plans?")


@pytest.mark.asyncio
async def test_escalate_forwards_transcript_and_marks_chat(make_controller, sink):
    ctrl = make_controller()
    await ctrl.submit("What are your housing plans?")

    assert ctrl.escalate("When exactly does construction start?") is True

    question, context = sink.sent[0]
    assert question == "When exactly does construction start?"
    assert "Resident: What are your housing plans?" in context
    assert ctrl.current_session().escalation_sent is True


@pytest.mark.asyncio
async def test_failed_escalation_leaves_chat_unmarked(make_controller):
    ctrl = make_controller()
    ctrl.sink = FakeSink(ok=False)
    await ctrl.submit("What are your housing plans?")

    assert ctrl.escalate("Anything?") is False
    assert ctrl.current_session().escalation_sent is False


def test_sink_exception_is_reported_as_failure(make_controller):
    class BrokenSink:
        def escalate(self, question, context):
            raise RuntimeError("mail server down")

    ctrl = make_controller()
    ctrl.sink = BrokenSink()
    assert ctrl.escalate("Anything?") is False


@pytest.mark.asyncio
async def test_abandoned_turn_leaves_new_turn_thinking_alone(make_controller):
    started = [asyncio.Event(), asyncio.Event()]
    release = [asyncio.Event(), asyncio.Event()]

    class TwoCallGateway(FakeGateway):
        async def complete(self, system_prompt, user_message, max_tokens, temperature):
            n = len(self.calls)
            self.calls.append(user_message)
            started[n].set()
            await release[n].wait()
            return self.reply

    ctrl = make_controller(llm=TwoCallGateway())
    ctrl.new_chat()
    first = asyncio.create_task(ctrl.submit("What are your housing plans?"))
    await started[0].wait()

    ctrl.new_chat()
    second = asyncio.create_task(ctrl.submit("What is the budget for bike lanes?"))
    await started[1].wait()
    thinking = ctrl.thinking_message
    assert thinking

    release[0].set()
    assert (await first).cancelled is True
    assert ctrl.thinking_message == thinking
    assert ctrl.phase == TurnPhase.AWAITING_RESPONSE

    release[1].set()
    result = await second
    assert result.cancelled is False
    assert len(ctrl.store.sessions) == 1


@pytest.mark.asyncio
async def test_turn_reports_processing_until_reveal_ends(make_controller, sleep):
    ctrl = make_controller()
    phases = set()
    sleep.hook = lambda n: phases.add((ctrl.phase, ctrl.is_processing))

    gateway_seen = []
    ctrl.llm.on_call = lambda: gateway_seen.append((ctrl.phase, ctrl.is_processing))

    await ctrl.submit("What are your housing plans?")

    assert phases == {(TurnPhase.STEPPING, True), (TurnPhase.REVEALING, True)}
    assert gateway_seen == [(TurnPhase.AWAITING_RESPONSE, True)]
    assert ctrl.is_processing is False


def test_finishing_interrupted_reveal_runs_escalation_check(make_controller):
    ctrl = make_controller()
    sid = ctrl.new_chat()
    ctrl.store.append(sid, Message(Role.USER, "When will the bike lanes open?"))
    reply = Message(
        Role.ASSISTANT, "I'm not sure about the exact timeline yet.", is_revealing=True
    )
    ctrl.store.append(sid, reply)

    assert ctrl.finish_reveal(reply.id) is True
    assert ctrl.finish_reveal(reply.id) is False

    latest = ctrl.get_history()[-1]
    assert latest.is_revealing is False
    assert latest.needs_escalation is True
    assert ctrl.follow_ups() == []


def test_finishing_interrupted_apology_is_not_escalated(make_controller):
    ctrl = make_controller()
    sid = ctrl.new_chat()
    ctrl.store.append(sid, Message(Role.USER, "What is the exact date of the vote?"))
    reply = Message(Role.ASSISTANT, APOLOGY_REPLY, is_revealing=True)
    ctrl.store.append(sid, reply)

    assert ctrl.finish_reveal(reply.id) is True
    assert ctrl.get_history()[-1].needs_escalation is False
