# app.py
import pandas as pd
import streamlit as st

import settings
from ai_tips import ai_enabled, chat_with_ai, get_recommendations
from co2_engine import (
    ACTIVITY_LABELS,
    CATEGORIES,
    CATEGORY_COLORS,
    CATEGORY_LABELS,
    activity_choices,
    unit_for_type,
)
from emission_stats import (
    activity_category,
    activity_date,
    average_daily,
    build_trend,
    category_shares,
    compute_stats,
    progress_to_goal,
)
from errors import ActivityNotFoundError, InvalidArgumentError
from periods import local_date
from storage import ActivityStore, UserStore
from utils import format_date, format_emissions

# Set page config first (must be the first Streamlit command)
st.set_page_config(page_title="Carbon Footprint Tracker", page_icon="🌍", layout="wide")

STATUS_ICONS = {"good": "🟢", "warning": "🟠", "danger": "🔴"}


# =========================
# Helper Functions
# =========================
def activities_frame(activities: list) -> pd.DataFrame:
    """Table shown on the Activities tab, newest first as returned by the store."""
    rows = [
        {
            "Date": format_date(a.date),
            "Category": CATEGORY_LABELS.get(a.category, a.category),
            "Activity": ACTIVITY_LABELS.get(a.type, a.type),
            "Amount": f"{a.value:g} {a.unit}",
            "kg CO₂": a.emission,
            "Notes": a.notes,
        }
        for a in activities
    ]
    return pd.DataFrame(rows, columns=["Date", "Category", "Activity", "Amount", "kg CO₂", "Notes"])


def trend_frame(trend: list) -> pd.DataFrame:
    df = pd.DataFrame(trend, columns=["date", "emission"])
    df["date"] = pd.to_datetime(df["date"])
    return df.set_index("date")


def category_frame(by_category: dict) -> pd.DataFrame:
    shares = category_shares(by_category)
    return pd.DataFrame(
        {
            "kg CO₂": [by_category[c] for c in CATEGORIES],
            "Share %": [shares[c] for c in CATEGORIES],
        },
        index=[CATEGORY_LABELS[c] for c in CATEGORIES],
    )


def goal_caption(monthly: float, goal: int) -> str:
    progress = progress_to_goal(monthly, goal)
    icon = STATUS_ICONS[progress["status"]]
    return f"{icon} {format_emissions(monthly)} / {format_emissions(goal)} ({progress['percentage']:.0f}%)"


def category_chart_frame(by_category: dict) -> pd.DataFrame:
    """One column per category, non-zero only on its own row, so each bar gets its colour."""
    labels = [CATEGORY_LABELS[c] for c in CATEGORIES]
    return pd.DataFrame(
        [[by_category.get(c, 0.0) if c == row else 0.0 for c in CATEGORIES] for row in CATEGORIES],
        index=labels,
        columns=labels,
    )


def category_chart_colors() -> list:
    return [CATEGORY_COLORS[c] for c in CATEGORIES]


def activity_label(activity) -> str:
    return (
        f"{format_date(activity.date)} · {ACTIVITY_LABELS.get(activity.type, activity.type)}"
        f" · {format_emissions(activity.emission)}"
    )


def activity_payload(category: str, activity_type: str, value: float, unit: str, date_val, notes: str) -> dict:
    """Form values as a store payload; listed types always carry their own unit."""
    return {
        "category": category,
        "type": activity_type,
        "value": value,
        "unit": unit_for_type(activity_type) if activity_type in activity_choices(category) else unit,
        "date": date_val,
        "notes": notes,
    }


def edit_defaults(activity) -> dict:
    """Initial values of the edit form for a stored activity."""
    return {
        "category": activity_category(activity),
        "type": activity.type,
        "value": max(float(activity.value), 0.0),
        "unit": activity.unit,
        "date": activity_date(activity) or local_date(),
        "notes": activity.notes,
    }


def flash(state, message: str):
    """Keep a confirmation to show after the next rerun."""
    state["flash"] = message


def pop_flash(state):
    return state.pop("flash", None)


@st.cache_resource
def get_stores():
    return ActivityStore(settings.ACTIVITIES_FILE), UserStore(settings.USERS_FILE)


# =========================
# Streamlit App
# =========================
def sidebar_sign_in(users: UserStore):
    with st.sidebar:
        st.header("Account")
        user = st.session_state.get("user")
        if user:
            st.write(f"Signed in as **{user.display_name}**")
            st.caption(user.email)
            if st.button("Sign out"):
                st.session_state.pop("user", None)
                st.session_state.pop("chat", None)
                st.rerun()
            return user

        with st.form("sign_in"):
            email = st.text_input("Email")
            name = st.text_input("Display name (first visit)")
            if st.form_submit_button("Sign in"):
                try:
                    st.session_state["user"] = users.sign_in(email, name)
                except InvalidArgumentError as e:
                    st.error(str(e))
                else:
                    st.rerun()
    return None


def dashboard_tab(activities: list, user):
    stats = compute_stats(activities)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Today", format_emissions(stats["daily"]))
    c2.metric("This week", format_emissions(stats["weekly"]))
    c3.metric("This month", format_emissions(stats["monthly"]))
    c4.metric("30-day daily average", format_emissions(average_daily(activities, 30)))

    progress = progress_to_goal(stats["monthly"], user.monthly_goal)
    st.caption("Monthly goal")
    st.progress(progress["percentage"] / 100)
    st.write(goal_caption(stats["monthly"], user.monthly_goal))

    left_col, right_col = st.columns([2, 1])
    with right_col:
        st.caption("This month by category")
        cat_df = category_frame(stats["by_category"])
        st.bar_chart(category_chart_frame(stats["by_category"]), color=category_chart_colors(), height=260)
        st.dataframe(cat_df, use_container_width=True)
    with left_col:
        days = st.slider("Trend window (days)", 7, 90, settings.DEFAULT_TREND_DAYS)
        st.caption("Daily emissions (kg CO₂)")
        st.line_chart(trend_frame(build_trend(activities, days))["emission"], height=300)

    return stats


def activities_tab(activities: list, user, store: ActivityStore):
    category = st.selectbox(
        "Category", CATEGORIES, format_func=lambda c: CATEGORY_LABELS[c], key="new_category"
    )
    choices = activity_choices(category)

    with st.form("log_activity", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        with c1:
            if choices:
                activity_type = st.selectbox(
                    "Activity", choices, format_func=lambda t: ACTIVITY_LABELS.get(t, t)
                )
            else:
                activity_type = st.text_input("Activity")
            date_val = st.date_input("Date", value=local_date())
        with c2:
            value = st.number_input("Amount", value=0.0, min_value=0.0, step=1.0)
            unit = st.text_input("Unit", value=unit_for_type(activity_type), disabled=bool(choices))
        with c3:
            notes = st.text_area("Notes", height=100)
        submitted = st.form_submit_button("Log activity")

    if submitted:
        payload = activity_payload(category, activity_type, value, unit, date_val, notes)
        try:
            saved = store.add(user.id, payload)
        except InvalidArgumentError as e:
            st.error(str(e))
        else:
            flash(st.session_state, f"Logged {format_emissions(saved.emission)}.")
            st.rerun()

    if not activities:
        st.info("No activities logged yet.")
        return

    st.dataframe(activities_frame(activities), use_container_width=True, hide_index=True)

    with st.expander("Edit an activity"):
        edit_activity_form(activities, user, store)

    with st.expander("Delete an activity"):
        choice = st.selectbox("Activity", activities, format_func=activity_label, key="delete_choice")
        if st.button("Delete", type="secondary"):
            store.delete(user.id, choice.id)
            flash(st.session_state, "Activity deleted.")
            st.rerun()


def edit_activity_form(activities: list, user, store: ActivityStore):
    choice = st.selectbox("Activity", activities, format_func=activity_label, key="edit_choice")
    defaults = edit_defaults(choice)

    category = st.selectbox(
        "Category",
        CATEGORIES,
        index=CATEGORIES.index(defaults["category"]),
        format_func=lambda c: CATEGORY_LABELS[c],
        key=f"edit_category_{choice.id}",
    )
    choices = activity_choices(category)

    with st.form(f"edit_activity_{choice.id}"):
        c1, c2, c3 = st.columns(3)
        with c1:
            if choices:
                current = choices.index(defaults["type"]) if defaults["type"] in choices else 0
                activity_type = st.selectbox(
                    "Activity", choices, index=current, format_func=lambda t: ACTIVITY_LABELS.get(t, t)
                )
            else:
                activity_type = st.text_input("Activity", value=defaults["type"])
            date_val = st.date_input("Date", value=defaults["date"])
        with c2:
            value = st.number_input("Amount", value=defaults["value"], min_value=0.0, step=1.0)
            unit = st.text_input(
                "Unit", value=unit_for_type(activity_type) or defaults["unit"], disabled=bool(choices)
            )
        with c3:
            notes = st.text_area("Notes", value=defaults["notes"], height=100)
        submitted = st.form_submit_button("Save changes")

    if submitted:
        payload = activity_payload(category, activity_type, value, unit, date_val, notes)
        try:
            saved = store.update(user.id, choice.id, payload)
        except InvalidArgumentError as e:
            st.error(str(e))
        except ActivityNotFoundError:
            st.error("That activity no longer exists.")
        else:
            flash(st.session_state, f"Updated: now {format_emissions(saved.emission)}.")
            st.rerun()


def insights_tab(activities: list, stats: dict):
    if not ai_enabled():
        st.caption("Set OPENAI_API_KEY in .env for personalised AI answers; showing built-in tips.")

    st.subheader("Recommendations")
    with st.spinner("Generating recommendations..."):
        tips = get_recommendations(stats, activities)
    for tip in tips:
        st.markdown(f"- {tip}")

    st.subheader("Ask EcoBot")
    history = st.session_state.setdefault("chat", [])
    for turn in history:
        with st.chat_message(turn["role"]):
            st.markdown(turn["content"])

    message = st.chat_input("Ask about transport, energy, diet or goals")
    if message:
        reply = chat_with_ai(message, history, stats)
        history.append({"role": "user", "content": message})
        history.append({"role": "assistant", "content": reply})
        st.rerun()


def profile_tab(user, users: UserStore):
    with st.form("profile"):
        name = st.text_input("Display name", value=user.display_name)
        goal = st.number_input("Monthly goal (kg CO₂)", value=int(user.monthly_goal), min_value=1, step=10)
        if st.form_submit_button("Save"):
            try:
                st.session_state["user"] = users.update_profile(user.id, name, int(goal))
            except InvalidArgumentError as e:
                st.error(str(e))
            else:
                flash(st.session_state, "Profile saved.")
                st.rerun()


def main():
    st.title("Carbon Footprint Tracker 🌍")
    st.caption("Log transport, energy and meals; see where your CO₂ comes from.")

    store, users = get_stores()
    user = sidebar_sign_in(users)
    if user is None:
        st.info("Sign in with your email to start tracking.")
        return

    message = pop_flash(st.session_state)
    if message:
        st.success(message)

    activities = store.list_for_user(user.id)

    tab_dashboard, tab_activities, tab_insights, tab_profile = st.tabs(
        ["Dashboard", "Activities", "Insights", "Profile"]
    )
    with tab_dashboard:
        stats = dashboard_tab(activities, user)
    with tab_activities:
        activities_tab(activities, user, store)
    with tab_insights:
        insights_tab(activities, stats)
    with tab_profile:
        profile_tab(user, users)


if __name__ == "__main__":
    main()
