"""VoiceToWork -- Streamlit UI.

Record or upload a voice note, review the actions extracted from it, and
send the confirmed list to Jira and Confluence.
"""

from __future__ import annotations

import streamlit as st

from src.extraction.models import ActionType, Target
from src.ui.actions_table import COLUMNS, actions_to_rows, rows_to_actions
from src.ui.api_client import (
    API_URL,
    check_health,
    execute_actions,
    get_session,
    get_workspaces,
    process_session,
)

# ---------------------------------------------------------------------------
# Page config (must be first Streamlit call)
# ---------------------------------------------------------------------------
st.set_page_config(page_title="VoiceToWork", layout="wide")

if "review" not in st.session_state:
    st.session_state.review = None
if "report" not in st.session_state:
    st.session_state.report = None

# ---------------------------------------------------------------------------
# Sidebar -- Atlassian connection + API status
# ---------------------------------------------------------------------------
with st.sidebar:
    st.title("VoiceToWork")
    st.markdown("---")

    st.subheader("Atlassian")
    st.link_button("Connect Atlassian account", f"{API_URL}/oauth/login")
    access_token: str = st.text_input(
        "Access token (optional)",
        type="password",
        help="Leave empty to use the token configured on the server.",
    )

    st.markdown("---")

    api_healthy = check_health()
    if api_healthy:
        st.markdown(":green_circle: API connected")
    else:
        st.markdown(":red_circle: API unreachable")

    # Where new items go when an action names no project or space
    project_key: str | None = None
    space_key: str | None = None
    if api_healthy:
        st.subheader("Workspace")
        workspaces = get_workspaces(access_token or None)
        projects = {p["key"]: p.get("name") or p["key"] for p in workspaces.get("jiraProjects", [])}
        spaces = {s["key"]: s.get("name") or s["key"] for s in workspaces.get("confluenceSpaces", [])}
        project_key = st.selectbox(
            "Jira project",
            list(projects),
            index=None,
            format_func=lambda k: f"{projects[k]} ({k})",
            placeholder="Server default",
        )
        space_key = st.selectbox(
            "Confluence space",
            list(spaces),
            index=None,
            format_func=lambda k: f"{spaces[k]} ({k})",
            placeholder="Server default",
        )

# ---------------------------------------------------------------------------
# Step 1: capture
# ---------------------------------------------------------------------------
st.header("1. Capture")

col_rec, col_up = st.columns(2)
with col_rec:
    recorded = st.audio_input("Record a voice note")
with col_up:
    uploaded = st.file_uploader(
        "...or upload audio",
        type=["mp3", "wav", "m4a", "mp4", "ogg", "flac", "webm"],
    )

typed_transcript = st.text_area(
    "...or paste a transcript",
    placeholder="Create a Jira task to fix the login bug and write a doc about it.",
)

audio_file = recorded or uploaded
can_process = audio_file is not None or bool(typed_transcript.strip())

if st.button("Process", disabled=not can_process):
    if not api_healthy:
        st.error("Cannot process: the API server is not reachable.")
    else:
        with st.spinner("Transcribing and extracting actions..."):
            result = process_session(
                audio=audio_file.getvalue() if audio_file is not None else None,
                filename=(audio_file.name if audio_file is not None else None) or "audio.wav",
                source_transcript=typed_transcript.strip() or None,
            )
        if result:
            st.session_state.review = result
            st.session_state.report = None

# ---------------------------------------------------------------------------
# Step 2: review
# ---------------------------------------------------------------------------
review = st.session_state.review
if review:
    st.header("2. Review")
    st.caption(f"Session `{review['sessionId']}` via {review['processingMethod']}")

    with st.expander("Transcript", expanded=False):
        st.write(review["transcript"] or "_No speech detected._")
    if review.get("summary"):
        st.info(review["summary"])

    if not review["actions"]:
        st.write("No actions were found in this session.")
    else:
        edited = st.data_editor(
            actions_to_rows(review["actions"]),
            column_order=COLUMNS,
            column_config={
                "include": st.column_config.CheckboxColumn("Run", default=True),
                "action": st.column_config.SelectboxColumn(
                    "Action", options=[a.value for a in ActionType], required=True
                ),
                "target": st.column_config.SelectboxColumn(
                    "Target", options=[t.value for t in Target], required=True
                ),
                "title": st.column_config.TextColumn("Title", max_chars=100),
            },
            num_rows="dynamic",
            use_container_width=True,
            key=f"editor_{review['sessionId']}",
        )
        confirmed = rows_to_actions(edited, review["actions"])

        if st.button(f"Execute {len(confirmed)} action(s)", disabled=not confirmed, type="primary"):
            with st.spinner("Creating items in Jira and Confluence..."):
                report = execute_actions(
                    review["sessionId"],
                    confirmed,
                    transcript=review["transcript"],
                    token=access_token or None,
                    project_key=project_key,
                    space_key=space_key,
                )
            if report:
                st.session_state.report = report

# ---------------------------------------------------------------------------
# Step 3: results
# ---------------------------------------------------------------------------
report = st.session_state.report
if report:
    st.header("3. Results")
    st.success(report.get("summary", ""))

    for item in report.get("items", []):
        label = item.get("title") or item.get("type")
        if item.get("url"):
            st.markdown(f"- [{label}]({item['url']}): {item['description']}")
        else:
            st.markdown(f"- **{label}**: {item['description']}")

    for outcome in report.get("failed", []):
        action = outcome["action"]
        st.error(f"{action['action']} \"{action.get('title', '')}\" failed: {outcome.get('error')}")

    with st.expander("Session record"):
        st.json(get_session(report["sessionId"]))
