"""
UI layer
Purpose: Streamlit-only glue. Renders the chat list, transcript, thinking
indicator, suggestions and escalation prompt, and delegates every turn to
the controller. Keeps layout/widget state apart from the turn pipeline so
the pipeline can be unit tested without Streamlit.
"""

import asyncio
import logging
import time

import streamlit as st

from civic_chat.config import APP_NAME, load_config
from civic_chat.controller import ChatTurnController
from civic_chat.models import Message, Role
from civic_chat.persistence.credentials import CredentialStore
from civic_chat.prompts import DefaultPromptFactory
from civic_chat.services.handoff import LoggingEscalationSink
from civic_chat.services.llm_openai import OpenAILLMClient

# ---------------------------
# Page config
# ---------------------------
config = load_config()
logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("civic_chat.app")

prompts = DefaultPromptFactory()
persona = prompts.persona

st.set_page_config(
    page_title=f"Chat with {persona.name}",
    page_icon="🏛️",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ---------------------------
# UI constants
# ---------------------------
EXAMPLE_TOPICS = [
    "policy",
    "goals",
    "the great park",
    "housing",
    "bike lanes",
    "transportation",
    "community",
]
TOPIC_ROTATE_SECS = 6.5

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
credentials = CredentialStore(st_session)
st_session.setdefault("controller", None)
st_session.setdefault("pending_question", None)
st_session.setdefault("show_archived", False)
st_session.setdefault("escalation_open", False)
st_session.setdefault("busy", False)


# ---------------------------
# Helpers
# ---------------------------
def get_controller() -> ChatTurnController:
    """Return the controller, creating it (and a first draft) on first use."""
    controller = st_session.get("controller")
    if controller is None:
        controller = ChatTurnController(
            None,
            config=config,
            prompts=prompts,
            sink=LoggingEscalationSink(team_name=persona.team_name),
        )
        controller.new_chat()
        st_session.controller = controller
    return controller


def attach_gateway(controller: ChatTurnController) -> bool:
    """
    Fresh async client per turn: every asyncio.run() gets its own loop.
    """
    if not credentials.has_valid():
        controller.set_gateway(None)
        return False
    controller.set_gateway(OpenAILLMClient(credentials.get(), model=config.model))
    return True


def on_new_chat():
    get_controller().new_chat()
    st_session.pending_question = None
    st_session.busy = False
    st_session.escalation_open = False


def on_select_chat(session_id: str):
    get_controller().select_chat(session_id)
    st_session.pending_question = None
    st_session.busy = False
    st_session.escalation_open = False


def on_archive(session_id: str, archived: bool):
    store = get_controller().store
    if archived:
        store.unarchive(session_id)
    else:
        store.archive(session_id)


def on_suggestion(text: str):
    st_session.pending_question = text
    st_session.busy = True


def rotating_topic() -> str:
    return EXAMPLE_TOPICS[int(time.time() / TOPIC_ROTATE_SECS) % len(EXAMPLE_TOPICS)]


def render_message(msg: Message) -> None:
    with st.chat_message(msg.role.value):
        st.markdown(msg.content)


def render_escalation(controller: ChatTurnController) -> None:
    """'Contact team' prompt under an uncertain reply."""
    session = controller.current_session()
    if session and session.escalation_sent:
        st.success("Question forwarded ✓")
        return

    c1, c2 = st.columns([4, 1])
    c1.caption(
        f"Need more specific information? Send this question directly to "
        f"{persona.team_name}."
    )
    if c2.button("Contact Team", key=f"escalate_{session.id if session else ''}"):
        st_session.escalation_open = True

    if st_session.escalation_open:
        with st.form("escalation_form", clear_on_submit=True):
            question = st.text_area(
                "What specific information do you need?",
                placeholder=(
                    "Please provide details about your question or what specific "
                    "information you're looking for..."
                ),
            )
            sent = st.form_submit_button("Send Question", type="primary")
        if sent:
            if not question.strip():
                st.error("Please describe your question first.")
            elif controller.escalate(question):
                st_session.escalation_open = False
                st.toast(
                    f"Your question has been forwarded to {persona.team_name}.",
                    icon="✅",
                )
                st.rerun()
            else:
                st.error("Could not send your question. Please try again.")


def render_follow_ups(controller: ChatTurnController) -> None:
    suggestions = controller.follow_ups()
    if not suggestions:
        return
    st.caption("RELATED")
    for i, s in enumerate(suggestions):
        st.button(f"↗ {s}", key=f"suggestion_{i}", on_click=on_suggestion, args=(s,))


def run_turn(controller: ChatTurnController, text: str) -> None:
    """
    Play one turn live into placeholders, then rerun to render state.
    The busy flag is held for the whole turn so the input stays disabled.
    """
    result = None
    try:
        if not attach_gateway(controller):
            st.toast("Please set your OpenAI API key first.", icon="🔑")
            return

        with st.chat_message(Role.USER.value):
            st.markdown(text)
        with st.chat_message(Role.ASSISTANT.value):
            thinking = st.empty()
            body = st.empty()

            def on_step(step: str) -> None:
                thinking.info(step)

            def on_reveal(revealed: str) -> None:
                thinking.empty()
                body.markdown(revealed + "▌")

            try:
                result = asyncio.run(
                    controller.submit(text, on_step=on_step, on_reveal=on_reveal)
                )
            except ValueError as e:
                thinking.empty()
                st.toast(str(e), icon="⚠️")
    finally:
        st_session.busy = False

    if result is not None and result.cancelled:
        logger.info("Turn for %s was abandoned", result.session_id)
    st.rerun()


# ---------------------------
# SIDEBAR: chats & settings
# ---------------------------
controller = get_controller()

with st.sidebar:
    st.markdown("# Chats")
    st.button("✏️ New Chat", type="primary", on_click=on_new_chat, use_container_width=True)

    st.toggle("Show archived", key="show_archived")
    sessions = controller.store.list_sessions(include_archived=st_session.show_archived)
    if not sessions:
        st.caption("No chats yet.")
    for chat in sessions:
        c1, c2 = st.columns([5, 1])
        label = chat.title + (" (archived)" if chat.archived else "")
        c1.button(
            label,
            key=f"chat_{chat.id}",
            type="secondary" if chat.id != controller.store.active_id else "primary",
            on_click=on_select_chat,
            args=(chat.id,),
            help=chat.last_modified.strftime("%Y-%m-%d %H:%M"),
            use_container_width=True,
        )
        c2.button(
            "↩" if chat.archived else "🗄",
            key=f"archive_{chat.id}",
            on_click=on_archive,
            args=(chat.id, chat.archived),
            help="Unarchive" if chat.archived else "Archive",
        )
    st.divider()

    st.markdown("## Settings")
    st.markdown("### OpenAI API Key")
    with st.form("api_key_form", clear_on_submit=True):
        new_key = st.text_input(
            "Enter your API key",
            type="password",
            placeholder="sk-...",
            help="Your API key stays in this browser session only.",
        )
        if st.form_submit_button("Save API Key"):
            try:
                credentials.set(new_key)
                st.toast("API key saved.", icon="🔑")
            except ValueError as e:
                st.error(str(e))
    if not credentials.has_valid():
        st.warning("Please set your OpenAI API key to start chatting.")
    st.divider()

    st.markdown(f"**{persona.name}**")
    st.caption(persona.office)

# ---------------------------
# Header
# ---------------------------
history = controller.get_history()
if not history:
    st.title(f"Chat with {persona.name}")
    st.caption(persona.office)

# ---------------------------
# Transcript
# ---------------------------
for msg in history:
    render_message(msg)
    if msg.is_revealing and not controller.is_processing:
        # an interrupted reveal is shown in full on the next run
        controller.finish_reveal(msg.id)
history = controller.get_history()

if history and history[-1].role == Role.ASSISTANT and not history[-1].is_revealing:
    if history[-1].needs_escalation:
        render_escalation(controller)
    else:
        render_follow_ups(controller)

# ---------------------------
# Input
# ---------------------------
if credentials.has_valid():
    placeholder = (
        f"Ask {persona.name} about {rotating_topic()}..."
        if not history
        else f"Ask {persona.name} anything..."
    )
else:
    placeholder = "Please set your OpenAI API key first"

if st_session.busy and not st_session.pending_question:
    # a turn killed by a rerun leaves nothing to run
    st_session.busy = False

raw = st.chat_input(
    placeholder,
    disabled=(
        not credentials.has_valid()
        or st_session.busy
        or controller.is_processing
    ),
)
if raw is not None and raw.strip() and not st_session.busy:
    # accept, then rerun so the input renders disabled for the turn
    st_session.pending_question = raw.strip()
    st_session.busy = True
    st.rerun()

if st_session.busy:
    question = st_session.pending_question
    st_session.pending_question = None
    run_turn(controller, question)

st.divider()
st.caption(
    f"{APP_NAME} · Answers are AI-generated and may be incomplete. "
    "Contact the office directly for official information."
)
