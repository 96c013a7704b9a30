from __future__ import annotations
import time
from datetime import date, datetime, timedelta
from uuid import uuid4

import pandas as pd
import streamlit as st

from calendar_export import cycle_to_ics
from exceptions import InitializationFailedError, NotFoundError, TimerStateError
from history import summarize_sessions
from logging_config import configure_logging
from models import PlanState, Subject, Topic
from pdf_export import cycle_to_pdf
from plan_store import LEVELS, coerce_level, load_plan, open_ledger, reset_plan, save_plan
from planner import date_key, weekly_limit_check
from progress import ProgressLedger
from sync import regenerate_plan
from timer import IDLE, STUDYING, SessionTimer


FOCUS_MODES = ["balanced", "priority", "difficulty"]
COLORS = ["#8884d8", "#82ca9d", "#ffc658", "#ff7c7c", "#8dd1e1", "#d084d0", "#ffb347", "#87d068"]

st.set_page_config(page_title="Study Cycle Planner", page_icon="📚", layout="wide")


def _ensure_session_state() -> None:
    if "logging_ready" not in st.session_state:
        configure_logging()
        st.session_state.logging_ready = True
    if "state" not in st.session_state:
        st.session_state.state = load_plan()
    if "ledger" not in st.session_state:
        st.session_state.ledger = open_ledger()
    if "timer" not in st.session_state:
        state: PlanState = st.session_state.state
        st.session_state.timer = SessionTimer(
            st.session_state.ledger,
            state.settings.timer,
            history=state.sessions,
            completed_sessions=state.completed_sessions,
        )
        st.session_state.last_tick_at = time.monotonic()


def _queue_toast(message: str) -> None:
    st.session_state.toast_message = message


def _flush_toast() -> None:
    message = st.session_state.pop("toast_message", None)
    if message:
        st.toast(message)


def _sync_timer(timer: SessionTimer, state: PlanState) -> None:
    now = time.monotonic()
    elapsed = int(now - st.session_state.last_tick_at)
    if elapsed > 0:
        before = timer.completed_sessions
        timer.advance(elapsed)
        st.session_state.last_tick_at += elapsed
        if timer.completed_sessions != before:
            state.completed_sessions = timer.completed_sessions
            save_plan(state)


def render_setup(state: PlanState) -> None:
    st.header("Setup")

    st.subheader("Add subject")
    with st.form("add_subject_form", clear_on_submit=True):
        col1, col2, col3 = st.columns([2, 1, 2])
        with col1:
            name = st.text_input("Name", placeholder="Math")
        with col2:
            level = st.selectbox("Level", LEVELS, index=1)
        with col3:
            topic = st.text_input("First topic (optional)", placeholder="Algebra")
        subtopics = st.text_input("Subtopics (comma separated, optional)")
        submitted = st.form_submit_button("Add subject", type="primary")
        if submitted:
            clean = name.strip()
            if not clean:
                st.warning("Name is required.")
            elif any(s.name.lower() == clean.lower() for s in state.subjects):
                st.warning("That subject already exists.")
            else:
                topics = []
                if topic.strip():
                    topics.append(Topic(
                        id=str(uuid4()),
                        name=topic.strip(),
                        subtopics=[p.strip() for p in subtopics.split(",") if p.strip()],
                    ))
                state.subjects.append(Subject(
                    id=str(uuid4()),
                    name=clean,
                    topics=topics,
                    color=COLORS[len(state.subjects) % len(COLORS)],
                ))
                state.levels[clean] = level
                save_plan(state)
                st.toast("Subject added.")

    st.divider()
    st.subheader("Subjects")
    if not state.subjects:
        st.info("No subjects yet.")
        return

    rows = [
        {
            "Delete": False,
            "id": s.id,
            "Name": s.name,
            "Level": state.levels.get(s.name, "intermediate"),
            "Topic": s.topics[0].name if s.topics else "",
        }
        for s in state.subjects
    ]
    edited = st.data_editor(
        pd.DataFrame(rows).set_index("id"),
        hide_index=True,
        use_container_width=True,
        column_config={
            "Delete": st.column_config.CheckboxColumn("Delete"),
            "Level": st.column_config.SelectboxColumn("Level", options=LEVELS, required=True),
        },
        disabled=["Name", "Topic"],
        key="subjects_editor",
    )
    if st.button("Apply changes"):
        records = edited.reset_index().to_dict("records")
        doomed = {r["id"] for r in records if r.get("Delete")}
        for r in records:
            if r["id"] not in doomed:
                state.levels[r["Name"]] = coerce_level(r["Level"])
        removed = [s.name for s in state.subjects if s.id in doomed]
        state.subjects = [s for s in state.subjects if s.id not in doomed]
        for name in removed:
            state.levels.pop(name, None)
        save_plan(state)
        _queue_toast("Subjects updated. Regenerate the cycle to apply them.")
        st.rerun()


def _render_day(index: int, state: PlanState, ledger: ProgressLedger, timer: SessionTimer, over_limit: bool) -> None:
    day = state.cycle[index]
    d = state.cycle_start + timedelta(days=index)
    key = date_key(state.cycle_start, index)
    log = ledger.get_day(key)

    title = f"{day.day_name} - Day {day.day} ({d.strftime('%d %b')})"
    if d == date.today():
        title += " · today"
    if log and log.completed:
        title += " ✅"
    if over_limit:
        title += " ⚠️"

    with st.expander(title, expanded=d == date.today()):
        if not log or not log.tasks:
            st.info("Daily tasks are still being set up.")
            return
        if log.total_planned_hours:
            st.progress(min(1.0, log.total_studied_hours / log.total_planned_hours))
        st.caption(f"{log.total_studied_hours:.1f}h of {log.total_planned_hours:.1f}h")
        for task in log.tasks:
            c1, c2 = st.columns([4, 1])
            label = f"{task.subject}" + (f" · {task.topic}" if task.topic else "") + f" ({task.planned_hours:g}h)"
            checked = c1.checkbox(label, value=task.completed, key=f"task_{key}_{task.id}")
            if checked != task.completed:
                ledger.toggle_task_completion(key, task.id)
                st.rerun()
            if c2.button("Study", key=f"study_{key}_{task.id}", disabled=timer.state != IDLE):
                timer.start(task.subject, task.topic, task.subtopic, task_id=task.id, date_key=key)
                st.session_state.last_tick_at = time.monotonic()
                st.session_state.pending_page = "Timer"
                st.rerun()


def render_cycle(state: PlanState, ledger: ProgressLedger, timer: SessionTimer) -> None:
    st.header("Study cycle")

    col_start, col_action = st.columns([1, 1])
    with col_start:
        start = st.date_input("Cycle starts on", value=state.cycle_start or date.today())
    with col_action:
        if st.button("Generate / Regenerate cycle", type="primary", disabled=not state.subjects):
            try:
                regenerate_plan(state, ledger, start)
            except InitializationFailedError as exc:
                st.error(exc.get_user_message())
            else:
                _queue_toast("Cycle generated.")
            save_plan(state)
            st.rerun()

    if not state.cycle or state.cycle_start is None:
        st.info("Add subjects in Setup, then generate a cycle.")
        return

    check = weekly_limit_check(state.cycle, state.settings.weekly_hours)
    if check["is_over_limit"]:
        st.warning(
            f"The first week sums {check['total_hours']:.1f}h, above the "
            f"{check['limit']:g}h weekly limit. Consider rebalancing."
        )

    for index in range(len(state.cycle)):
        _render_day(index, state, ledger, timer, check["is_over_limit"] and index < 7)

    st.divider()
    st.subheader("Exports")
    ics_bytes, ics_warnings = cycle_to_ics(state.cycle, state.cycle_start, state.settings)
    st.download_button(
        "Download ICS",
        data=ics_bytes,
        file_name=f"study_cycle_{state.cycle_start.isoformat()}.ics",
        mime="text/calendar",
    )
    if ics_warnings:
        st.warning(" | ".join(ics_warnings))
    st.download_button(
        "Download PDF",
        data=cycle_to_pdf(state.cycle, state.cycle_start, ledger),
        file_name=f"study_cycle_{state.cycle_start.isoformat()}.pdf",
        mime="application/pdf",
    )


def render_timer(state: PlanState, timer: SessionTimer) -> None:
    st.header("Timer")
    snap = timer.snapshot()
    session = snap["current_session"]

    minutes, seconds = divmod(snap["remaining_seconds"], 60)
    heading = "📚 Study session" if snap["mode"] == "study" else "☕ Break"
    st.subheader(heading)
    if session:
        st.write(session.subject + (f" · {session.topic}" if session.topic else ""))
    st.metric("Remaining", f"{minutes:02d}:{seconds:02d}")
    st.caption(f"Completed sessions: {snap['completed_sessions']}")

    if snap["state"] == IDLE:
        with st.form("free_session_form"):
            names = [s.name for s in state.subjects]
            subject = st.selectbox("Subject", names) if names else st.text_input("Subject")
            if st.form_submit_button("Start", type="primary"):
                try:
                    timer.start(subject or "")
                except TimerStateError as exc:
                    st.warning(exc.message)
                else:
                    st.session_state.last_tick_at = time.monotonic()
                    st.rerun()
        return

    c1, c2 = st.columns(2)
    if snap["running"]:
        if c1.button("Pause"):
            timer.pause()
            st.rerun()
    elif c1.button("Resume"):
        timer.resume()
        st.session_state.last_tick_at = time.monotonic()
        st.rerun()
    if c2.button("Stop" if snap["state"] == STUDYING else "Skip break"):
        timer.stop()
        save_plan(state)
        st.rerun()

    if snap["running"]:
        time.sleep(1)
        st.rerun()


def render_progress(state: PlanState, ledger: ProgressLedger) -> None:
    st.header("Progress")

    week_start = st.date_input("Week starting", value=state.cycle_start or date.today())
    totals = ledger.weekly_totals(week_start)
    a, b, c = st.columns(3)
    a.metric("Planned (h)", f"{totals['total_planned']:.1f}")
    b.metric("Studied (h)", f"{totals['total_studied']:.1f}")
    c.metric("Remaining (h)", f"{max(0.0, totals['total_planned'] - totals['total_studied']):.1f}")

    st.divider()
    st.subheader("Sessions")
    summary = summarize_sessions(state.sessions)
    if not summary["by_subject"]:
        st.info("No study sessions yet.")
        return
    st.caption(
        f"{summary['total_sessions']} session(s), {summary['completed_sessions']} completed, "
        f"{summary['total_hours']:.1f}h in total"
    )
    df = pd.DataFrame(summary["by_subject"]).rename(columns=str.title)
    st.dataframe(df, use_container_width=True, hide_index=True)

    recent = [
        {
            "Subject": s.subject,
            "Started": s.start_time.strftime("%Y-%m-%d %H:%M"),
            "Minutes": s.duration,
            "Completed": s.completed,
        }
        for s in sorted(state.sessions, key=lambda x: x.start_time, reverse=True)[:20]
    ]
    with st.expander("Recent sessions", expanded=False):
        st.dataframe(pd.DataFrame(recent), use_container_width=True, hide_index=True)


def render_settings(state: PlanState, ledger: ProgressLedger, timer: SessionTimer) -> None:
    st.header("Settings")

    st.subheader("Cycle")
    state.settings.weekly_hours = float(st.number_input(
        "Weekly hours", min_value=1.0, max_value=112.0, value=min(112.0, max(1.0, float(state.settings.weekly_hours))), step=0.5,
    ))
    state.config.focus_mode = st.selectbox(
        "Focus mode", FOCUS_MODES, index=FOCUS_MODES.index(state.config.focus_mode)
    )
    state.config.force_all_subjects = st.checkbox("Include every subject", value=state.config.force_all_subjects)
    state.config.subjects_per_cycle = st.number_input(
        "Subjects per cycle", 1, 50, state.config.subjects_per_cycle,
        disabled=state.config.force_all_subjects,
    )
    state.config.avoid_consecutive = st.checkbox(
        "Avoid the same subject on consecutive days", value=state.config.avoid_consecutive
    )

    with st.expander("Timer", expanded=False):
        t = state.settings.timer
        t.study_time = st.slider("Study (min)", 5, 120, t.study_time // 60) * 60
        t.break_time = st.slider("Short break (min)", 1, 30, t.break_time // 60) * 60
        t.long_break_time = st.slider("Long break (min)", 5, 60, t.long_break_time // 60) * 60
        t.sessions_until_long_break = st.slider("Sessions until long break", 1, 8, t.sessions_until_long_break)

    with st.expander("Calendar export", expanded=False):
        start_hour, end_hour = st.slider(
            "Preferred study hours",
            0,
            23,
            (state.settings.preferred_start_hour, state.settings.preferred_end_hour),
        )
        state.settings.preferred_start_hour = start_hour
        state.settings.preferred_end_hour = end_hour
        state.settings.timezone = st.text_input("Timezone", value=state.settings.timezone)

    if st.button("Save settings", type="primary"):
        if timer.state == IDLE:
            timer.settings = state.settings.timer
        save_plan(state)
        st.toast("Settings saved. Regenerate the cycle to apply them.")

    if st.button("Reset plan (keep settings)"):

        @st.dialog("Reset plan?")
        def _confirm_reset() -> None:
            st.write("This clears subjects, the cycle, sessions and all progress.")
            if st.button("Reset", type="primary"):
                timer.dispose()
                st.session_state.state = reset_plan(state, ledger)
                del st.session_state["timer"]
                _queue_toast("Plan reset.")
                st.rerun()

        _confirm_reset()


_ensure_session_state()
state: PlanState = st.session_state.state
ledger: ProgressLedger = st.session_state.ledger
timer: SessionTimer = st.session_state.timer
_sync_timer(timer, state)

st.title("Study Cycle Planner")
st.caption(f"Local-first study rotation, progress ledger and session timer · {datetime.now():%Y-%m-%d}")
_flush_toast()

if "nav_page" not in st.session_state:
    st.session_state.nav_page = "Setup" if not state.subjects else "Cycle"
if "pending_page" in st.session_state:
    st.session_state.nav_page = st.session_state.pop("pending_page")

with st.sidebar:
    st.header("Navigate")
    pages = ["Setup", "Cycle", "Timer", "Progress", "Settings"]
    page = st.radio("Page", pages, key="nav_page", label_visibility="collapsed")
    st.caption("Workflow: Setup -> Cycle -> Timer -> Progress")

try:
    if page == "Setup":
        render_setup(state)
    elif page == "Cycle":
        render_cycle(state, ledger, timer)
    elif page == "Timer":
        render_timer(state, timer)
    elif page == "Progress":
        render_progress(state, ledger)
    elif page == "Settings":
        render_settings(state, ledger, timer)
except NotFoundError as exc:
    st.error(exc.get_user_message())
