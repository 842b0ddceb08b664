import html
from datetime import date, datetime

import streamlit as st
import plotly.express as px

from mealscore.config import (
    ALL_TIME,
    DATA_FOLDER,
    INITIAL_MEMBERS,
    LEADERBOARD_TOP_N,
    MAX_POINTS,
    MIN_POINTS,
    UNKNOWN_LOCATION_LABEL,
)
from mealscore.ledger.origin import client_ip_from_context, lookup_ip_location
from mealscore.ledger.store import LedgerError, LedgerStore
from mealscore.points.standings import build_standings
from mealscore.points.tiers import resolve_points, suggest_points
from mealscore.utils import setup_logging

# --- Page Configuration ---
st.set_page_config(
    page_title="Meal Score",
    page_icon="🍽️",
    layout="centered",
    initial_sidebar_state="collapsed"
)

logger = setup_logging("streamlit_dashboard")

# --- Design System ---
ACCENT_COLORS = {
    "primary": "#0EA5E9",       # Sky blue - primary accent
    "success": "#10B981",       # Green - confirmations
    "danger": "#EF4444",        # Red - destructive actions
    "chart_palette": [
        "#0EA5E9", "#10B981", "#F59E0B", "#EF4444", "#3B82F6",
    ],
}

# Medals for the podium; only shown to members who actually scored
RANK_ICONS = {
    1: {"icon": "🏆", "color": "#EAB308", "label": "Champion"},
    2: {"icon": "🥈", "color": "#9CA3AF", "label": "Runner-up"},
    3: {"icon": "🥉", "color": "#B45309", "label": "Third Place"},
}

TAB_SLUGS = {
    "🏆 Standings": "standings",
    "🍽️ New Dinner": "entry",
    "📜 History": "history",
    "👥 Members": "members",
}
SLUG_TO_TAB = {v: k for k, v in TAB_SLUGS.items()}
TAB_OPTIONS = list(TAB_SLUGS.keys())

DEFAULT_LOCATION = "Location not given"
DEFAULT_DESCRIPTION = "Dinner"

CARD_STYLE = "border:1px solid rgba(128,128,128,0.25);border-radius:12px;padding:0.9rem 1rem;margin-bottom:0.6rem;display:flex;align-items:center;justify-content:space-between;"
MUTED_STYLE = "font-size:0.8rem;opacity:0.7;"


# --- Data Access ---
@st.cache_resource
def get_store():
    """One ledger store per server process."""
    store = LedgerStore(DATA_FOLDER)
    if INITIAL_MEMBERS:
        store.seed_members(INITIAL_MEMBERS)
    return store


def load_snapshot():
    """Members and events fetched together before any aggregation runs."""
    return get_store().snapshot()


@st.cache_data(ttl=3600, show_spinner=False)
def cached_ip_location(ip):
    return lookup_ip_location(ip)


def current_client_ip():
    """Forwarded client address, or the direct peer when no proxy sits in front."""
    return client_ip_from_context(st.context)


def member_names(members, ids):
    """Resolve attendee ids to names; inactive members still resolve."""
    lookup = dict(zip(members['id'], members['name']))
    return ", ".join(lookup[i] for i in ids if i in lookup)


# --- Rendering Helpers ---
def get_rank_badge_html(rank, points):
    """Medal for the top three scorers, plain position otherwise."""
    rank = int(rank)
    if rank in RANK_ICONS and points > 0:
        info = RANK_ICONS[rank]
        return f'<span style="font-size:1.3rem;color:{info["color"]};" title="{info["label"]}">{info["icon"]}</span>'
    return f'<span style="font-weight:700;opacity:0.8;">#{rank}</span>'


def generate_standings_cards(df):
    """
    Generate HTML cards for the full standings list.
    Shows: Rank, Member Name, Dinners Attended, Points.
    """
    if df.empty:
        return "<p>No members yet</p>"

    cards = []
    for _, row in df.iterrows():
        badge = get_rank_badge_html(row['rank'], row['total_points'])
        name = html.escape(str(row['name']))
        cards.append(
            f'<div style="{CARD_STYLE}">'
            f'<div style="display:flex;align-items:center;gap:0.9rem;">'
            f'<div style="width:2.2rem;text-align:center;">{badge}</div>'
            f'<div><div style="font-weight:600;">{name}</div>'
            f'<div style="{MUTED_STYLE}">Attended {int(row["event_count"])} dinners</div></div>'
            f'</div>'
            f'<div><span style="font-size:1.4rem;font-weight:700;color:{ACCENT_COLORS["primary"]};">{int(row["total_points"])}</span>'
            f'<span style="{MUTED_STYLE}"> pts</span></div>'
            f'</div>'
        )
    return "".join(cards)


def apply_plotly_style(fig):
    """Transparent backgrounds and no drag, so the chart sits inside the theme."""
    fig.update_layout(
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        margin=dict(l=10, r=30, t=10, b=10),
        showlegend=False,
        xaxis=dict(visible=False),
        yaxis=dict(title=None, autorange="reversed"),
        dragmode=False,
    )
    return fig


def leaderboard_chart(top):
    fig = px.bar(
        top,
        x="total_points",
        y="name",
        orientation="h",
        text="total_points",
        color="name",
        color_discrete_sequence=ACCENT_COLORS["chart_palette"],
    )
    fig.update_traces(textposition="outside", hovertemplate="%{y}: %{x} pts<extra></extra>")
    return apply_plotly_style(fig)


def format_year(year):
    return "All time" if year == ALL_TIME else str(year)


# --- Tabs ---
def render_standings(members, events):
    url_year = st.query_params.get("year", None)
    result = build_standings(members, events, year=url_year)
    years = result['years']
    options = years + [ALL_TIME]

    selected_year = st.selectbox(
        "Year",
        options=options,
        index=options.index(result['selected_year']),
        format_func=format_year,
        key="standings_year",
    )
    if selected_year != result['selected_year']:
        result = build_standings(members, events, year=selected_year)
    st.query_params["year"] = str(selected_year)

    label = format_year(result['selected_year'])
    st.subheader(f"{label} leaderboard (Top {LEADERBOARD_TOP_N})")
    top = result['top']
    if top.empty:
        st.info("No members yet. Add some on the Members tab.")
    else:
        st.plotly_chart(leaderboard_chart(top), use_container_width=True, config={"displayModeBar": False})

    st.subheader(f"{label} standings")
    st.markdown(generate_standings_cards(result['standings']), unsafe_allow_html=True)


def render_entry(members):
    active = members[members["active"].astype(bool)]
    if active.empty:
        st.warning("No active members. Add members before recording a dinner.")
        return

    dinner_date = st.date_input("Date", value=date.today(), key="entry_date")
    location = st.text_input("Location", key="entry_location")
    description = st.text_area("Notes", key="entry_description")

    search = st.text_input("Search members", key="entry_search").strip().lower()
    visible = active[active['name'].str.lower().str.contains(search, regex=False)] if search else active
    # Keep earlier picks selectable while the search narrows the list
    options = list(dict.fromkeys(st.session_state.get("entry_attendees", []) + visible['id'].tolist()))
    selected_ids = st.multiselect(
        "Who was there?",
        options=options,
        format_func=dict(zip(active['id'], active['name'])).get,
        key="entry_attendees",
    )

    count = len(selected_ids)
    suggested = suggest_points(count)
    override = st.checkbox("Set points manually", key="entry_override")
    manual_points = None
    if override:
        manual_points = st.number_input(
            "Points per person",
            value=suggested,
            step=1,
            key="entry_manual_points",
        )
    final_points = resolve_points(count, manual_points)
    st.caption(f"{count} attendees · suggested {suggested} · awarding {final_points} points each "
               f"(range {MIN_POINTS}-{MAX_POINTS})")

    if st.button("Save dinner", type="primary", key="entry_submit"):
        if count == 0:
            st.error("Pick at least one attendee.")
            return
        try:
            get_store().create_event(
                date=dinner_date,
                location=location.strip() or DEFAULT_LOCATION,
                description=description.strip() or DEFAULT_DESCRIPTION,
                attendees=selected_ids,
                points=final_points,
                ip_address=current_client_ip(),
            )
        except LedgerError as e:
            logger.error(f"Failed to save dinner: {e}")
            st.error(f"Could not save the dinner: {e}")
            return
        st.success(f"Saved: {count} attendees, {final_points} points each")
        for key in ("entry_location", "entry_description", "entry_attendees", "entry_override"):
            st.session_state.pop(key, None)
        st.query_params["tab"] = "history"
        st.session_state.pop("tab_selector", None)
        st.rerun()


def render_history(members, events):
    if events.empty:
        st.info("No dinners recorded yet.")
        return

    for _, event in events.iterrows():
        with st.container(border=True):
            st.markdown(f"**{datetime.strptime(event['date'], '%Y-%m-%d'):%d %b %Y}** · 📍 {html.escape(event['location'])}")
            if event['description']:
                st.write(event['description'])

            names = member_names(members, event['attendees'])
            st.markdown(f"👥 **{len(event['attendees'])} attendees** × {event['points']} pts: {html.escape(names)}")

            ip = event['ip_address'] or None
            location = cached_ip_location(ip) if ip else UNKNOWN_LOCATION_LABEL
            st.caption(f"Submitted {event['created_at']} · IP {ip or UNKNOWN_LOCATION_LABEL} · {location}")

            with st.popover("🗑️ Delete"):
                st.write("Attendees lose this dinner's points.")
                confirmed = st.checkbox("Yes, delete this dinner", key=f"confirm_delete_{event['id']}")
                clicked = st.button("Delete dinner", key=f"delete_{event['id']}", type="primary", disabled=not confirmed)
            if clicked and confirmed:
                try:
                    get_store().delete_event(event['id'])
                except LedgerError as e:
                    st.error(f"Could not delete the dinner: {e}")
                    return
                st.toast("Dinner deleted, points recalculated")
                st.rerun()


def render_members(members):
    with st.form("add_member", clear_on_submit=True):
        name = st.text_input("New member name")
        if st.form_submit_button("Add member"):
            try:
                member = get_store().create_member(name)
            except LedgerError as e:
                st.error(str(e))
            else:
                st.success(f"Added {member['name']}")
                st.rerun()

    search = st.text_input("Search", key="members_search").strip().lower()
    active = members[members["active"].astype(bool)]
    if search:
        active = active[active['name'].str.lower().str.contains(search, regex=False)]

    st.caption(f"{len(active)} active members")
    for _, member in active.iterrows():
        col_name, col_action = st.columns([4, 1])
        col_name.write(member['name'])
        with col_action.popover("Remove"):
            st.write(f"{member['name']} keeps their history but can't join new dinners.")
            confirmed = st.checkbox("Yes, remove", key=f"confirm_remove_{member['id']}")
            clicked = st.button("Remove member", key=f"remove_{member['id']}", type="primary", disabled=not confirmed)
        if clicked and confirmed:
            try:
                get_store().deactivate_member(member['id'])
            except LedgerError as e:
                st.error(str(e))
                return
            st.rerun()


# --- Main App ---
def main():
    st.title("🍽️ Meal Score")

    members, events = load_snapshot()

    url_tab = st.query_params.get("tab", "standings")
    default_tab = SLUG_TO_TAB.get(url_tab, TAB_OPTIONS[0])

    # Radio buttons as navigation so the active tab survives reloads
    active_tab = st.radio(
        "Navigation",
        TAB_OPTIONS,
        index=TAB_OPTIONS.index(default_tab),
        horizontal=True,
        label_visibility="collapsed",
        key="tab_selector"
    )
    new_slug = TAB_SLUGS[active_tab]
    if url_tab != new_slug:
        if "year" in st.query_params:
            del st.query_params["year"]
        st.query_params["tab"] = new_slug

    if active_tab == "🏆 Standings":
        render_standings(members, events)
    elif active_tab == "🍽️ New Dinner":
        render_entry(members)
    elif active_tab == "📜 History":
        render_history(members, events)
    else:
        render_members(members)


if __name__ == "__main__":
    main()
