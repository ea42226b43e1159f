"""
TaskHive Assistant (Streamlit)
==============================

Chat UI for the TaskHive assistant relay.

Features:
  - Suggested prompts for an empty conversation
  - Streaming replies rendered as they arrive
  - Optional project scope
  - Clear chat

Usage:
    pip install -e ".[ui]"
    TASKHIVE_API_URL=http://localhost:8000 TASKHIVE_ACCESS_TOKEN=... \
        streamlit run apps/streamlit/app.py
"""

import asyncio
import os

import streamlit as st

from app.client import ChatClient, Transcript

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
API_URL = os.environ.get("TASKHIVE_API_URL", "http://localhost:8000")
ACCESS_TOKEN = os.environ.get("TASKHIVE_ACCESS_TOKEN", "")

SUGGESTED_PROMPTS = [
    ("Create tasks", "Help me create tasks for a new feature development"),
    ("Project summary", "Give me a summary of all my active projects"),
    ("Team workload", "Analyze my team's current workload distribution"),
    ("Risk alerts", "What tasks are at risk of missing their deadlines?"),
    ("Prioritize", "Help me prioritize my pending tasks"),
    ("Timeline", "Suggest a realistic timeline for my current project"),
]

st.set_page_config(page_title="TaskHive Assistant", page_icon="✨", layout="centered")

if "transcript" not in st.session_state:
    st.session_state.transcript = Transcript()


def stream_reply(content: str, project_id: str | None, placeholder) -> Transcript:
    """Send *content* and render the reply into *placeholder* as it streams."""

    def render(transcript: Transcript) -> None:
        placeholder.markdown(transcript[-1].content + "▌")

    async def _run() -> Transcript:
        client = ChatClient(API_URL, ACCESS_TOKEN)
        try:
            return await client.send(
                st.session_state.transcript, content, project_id=project_id, on_update=render
            )
        finally:
            await client.aclose()

    transcript = asyncio.run(_run())
    placeholder.markdown(transcript[-1].content)
    return transcript


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title("✨ TaskHive Assistant")
st.sidebar.caption(f"Relay: `{API_URL}`")
project_id = st.sidebar.text_input("Project ID (optional)").strip() or None
if not ACCESS_TOKEN:
    st.sidebar.warning("Set TASKHIVE_ACCESS_TOKEN to authenticate.")

if len(st.session_state.transcript) and st.sidebar.button("Clear chat"):
    st.session_state.transcript = st.session_state.transcript.clear()
    st.rerun()

# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------
pending: str | None = None

if not len(st.session_state.transcript):
    st.header("How can I help?")
    st.write("Ask me anything about your projects, tasks, or team.")
    cols = st.columns(2)
    for i, (label, prompt) in enumerate(SUGGESTED_PROMPTS):
        if cols[i % 2].button(label, use_container_width=True):
            pending = prompt

for message in st.session_state.transcript:
    with st.chat_message(message.role):
        st.markdown(message.content)

typed = st.chat_input("Ask about projects, tasks, insights...")
pending = typed or pending

if pending and pending.strip():
    with st.chat_message("user"):
        st.markdown(pending.strip())
    with st.chat_message("assistant"):
        placeholder = st.empty()
        st.session_state.transcript = stream_reply(pending.strip(), project_id, placeholder)
