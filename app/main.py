"""
Streamlit Dashboard for Business Hub

The analytics front end for a single local user.

DESIGN PRINCIPLES:
1. Every number comes from the analytics engine, recomputed per view
2. One sidebar filter applies to every page
3. Failures show as empty views, never as stack traces
4. The timer is always one click away
"""

import asyncio
from datetime import datetime, time, timezone
from typing import Optional

import streamlit as st

from bizhub.config import get_settings, validate_all_settings
from bizhub.fixtures import seed_demo_data
from bizhub.models.analytics import AnalyticsFilter, DateRange
from bizhub.orchestrator import BusinessHub, create_app_components


# Page configuration
st.set_page_config(
    page_title="Business Hub",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> BusinessHub:
    """Get or create application components (cached)."""
    hub = create_app_components()
    if get_settings().app.seed_demo_data:
        run_async(seed_demo_data(hub))
    return hub


def money(value: float) -> str:
    return f"${value:,.2f}"


def build_filter() -> Optional[AnalyticsFilter]:
    """Sidebar filter controls; None when nothing is restricted."""
    st.sidebar.markdown("### Filter")
    use_range = st.sidebar.checkbox("Limit to a date range", value=False)
    include_archived = st.sidebar.checkbox(
        "Include cancelled projects and archived clients",
        value=False,
    )

    date_range = None
    if use_range:
        picked = st.sidebar.date_input("Created between", value=[])
        if isinstance(picked, (list, tuple)) and len(picked) == 2:
            start, end = picked
            date_range = DateRange(
                start=datetime.combine(start, time.min, tzinfo=timezone.utc),
                end=datetime.combine(end, time.max, tzinfo=timezone.utc),
            )

    if date_range is None and not include_archived and not use_range:
        return None
    return AnalyticsFilter(date_range=date_range, include_archived=include_archived)


def render_timer(hub: BusinessHub):
    """Sidebar timer: start against a task or stop the running one."""
    st.sidebar.markdown("### Timer")
    active = run_async(hub.time_entries.get_active_timer())

    if active:
        started = active.start_time.astimezone(timezone.utc).strftime("%H:%M UTC")
        st.sidebar.info(f"Running since {started}")
        if st.sidebar.button("Stop timer"):
            entry = run_async(hub.time_entries.stop_timer())
            if entry:
                st.sidebar.success(f"Logged {entry.duration} minutes")
            else:
                st.sidebar.error("Could not save the time entry")
        return

    tasks = run_async(hub.tasks.get_all())
    if not tasks:
        st.sidebar.caption("Add tasks to start tracking time.")
        return
    task = st.sidebar.selectbox(
        "Task",
        options=tasks,
        format_func=lambda t: t.title,
    )
    if st.sidebar.button("Start timer"):
        timer = run_async(hub.time_entries.start_timer(task.id, task.project_id))
        if timer:
            st.sidebar.success("Timer started")
        else:
            st.sidebar.error("Could not start the timer")


def main():
    """Main application entry point."""
    hub = get_components()

    # Sidebar navigation
    st.sidebar.title("📈 Business Hub")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🏠 Overview", "💵 Revenue", "✅ Productivity", "⏱️ Time", "📊 Trends", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    flt = build_filter()
    st.sidebar.markdown("---")
    render_timer(hub)

    # Route to appropriate page
    if page == "🏠 Overview":
        render_overview_page(hub, flt)
    elif page == "💵 Revenue":
        render_revenue_page(hub, flt)
    elif page == "✅ Productivity":
        render_productivity_page(hub, flt)
    elif page == "⏱️ Time":
        render_time_page(hub, flt)
    elif page == "📊 Trends":
        render_trends_page(hub, flt)
    elif page == "⚙️ Settings":
        render_settings_page(hub)


def render_overview_page(hub: BusinessHub, flt: Optional[AnalyticsFilter]):
    """Render the headline numbers."""
    st.title("🏠 Business Overview")
    overview = run_async(hub.analytics.get_business_overview(flt))
    clients = run_async(hub.analytics.get_client_analytics(flt))

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total revenue", money(overview.total_revenue))
    col2.metric(
        "This month",
        money(overview.monthly_revenue),
        delta=f"{overview.revenue_growth:.1f}%",
    )
    col3.metric("Utilization", f"{overview.utilization:.1f}%")
    col4.metric("Tracked hours", f"{overview.total_hours:.1f}")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Projects", overview.total_projects)
    col2.metric("Active projects", overview.active_projects)
    col3.metric("Clients", overview.total_clients)
    col4.metric("New clients this month", clients.new_clients_this_month)

    st.markdown("### Top clients by revenue")
    if clients.top_clients_by_revenue:
        st.dataframe(
            [c.model_dump() for c in clients.top_clients_by_revenue],
            use_container_width=True,
        )
    else:
        st.info("No client revenue yet.")


def render_revenue_page(hub: BusinessHub, flt: Optional[AnalyticsFilter]):
    """Render revenue by month, project and client."""
    st.title("💵 Revenue")
    revenue = run_async(hub.analytics.get_revenue_analytics(flt))

    col1, col2, col3 = st.columns(3)
    col1.metric("Billable revenue", money(revenue.billable_vs_non_billable.billable))
    col2.metric(
        "Non-billable cost (estimate)",
        money(revenue.billable_vs_non_billable.non_billable),
    )
    col3.metric("Average project value", money(revenue.average_project_value))

    if revenue.monthly:
        st.markdown("### Monthly revenue")
        st.bar_chart(
            [m.model_dump() for m in revenue.monthly],
            x="month",
            y="revenue",
        )

    st.markdown("### Top performing projects")
    st.dataframe(
        [p.model_dump() for p in revenue.top_performing_projects],
        use_container_width=True,
    )

    st.markdown("### Revenue by client")
    st.dataframe([c.model_dump() for c in revenue.by_client], use_container_width=True)


def render_productivity_page(hub: BusinessHub, flt: Optional[AnalyticsFilter]):
    """Render task throughput and project delivery."""
    st.title("✅ Productivity")
    stats = run_async(hub.analytics.get_productivity_analytics(flt))
    performance = run_async(hub.analytics.get_project_performance_analytics(flt))

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Tasks completed", stats.tasks_completed)
    col2.metric("Avg completion (days)", f"{stats.average_task_completion_time:.1f}")
    col3.metric("Overdue", f"{stats.overdue_tasks_percentage:.1f}%")
    col4.metric("On-time delivery", f"{performance.on_time_delivery:.1f}%")

    for bottleneck in stats.bottlenecks:
        st.warning(f"⚠️ {bottleneck.description} (impact: {bottleneck.impact})")

    st.markdown("### Team")
    st.dataframe([t.model_dump() for t in stats.team_efficiency], use_container_width=True)

    st.markdown("### Project profitability")
    st.dataframe(
        [p.model_dump() for p in performance.profitability_analysis],
        use_container_width=True,
    )

    st.markdown("### Status distribution")
    st.dataframe(
        [
            {"status": s.status.value, "count": s.count, "percentage": s.percentage}
            for s in performance.project_status_distribution
        ],
        use_container_width=True,
    )


def render_time_page(hub: BusinessHub, flt: Optional[AnalyticsFilter]):
    """Render tracked time by day, week and project."""
    st.title("⏱️ Time")
    time_view = run_async(hub.analytics.get_time_analytics(flt))

    overtime = time_view.overtime_analysis
    col1, col2, col3 = st.columns(3)
    col1.metric("Overtime hours", f"{overtime.total_overtime_hours:.1f}")
    col2.metric("Overtime share", f"{overtime.overtime_percentage:.1f}%")
    col3.metric("Overtime cost (estimate)", money(overtime.cost_of_overtime))

    if time_view.daily_hours:
        st.markdown("### Daily hours")
        st.bar_chart(
            [d.model_dump() for d in time_view.daily_hours],
            x="date",
            y=["billable_hours", "non_billable_hours"],
        )

    st.markdown("### Weekly trends")
    st.dataframe([w.model_dump() for w in time_view.weekly_trends], use_container_width=True)

    st.markdown("### Project allocation")
    st.dataframe(
        [a.model_dump() for a in time_view.project_time_allocation],
        use_container_width=True,
    )


def render_trends_page(hub: BusinessHub, flt: Optional[AnalyticsFilter]):
    """Render month-over-month growth and seasonality."""
    st.title("📊 Trends")
    trend_view = run_async(hub.analytics.get_trend_analytics(flt))

    if trend_view.revenue_growth:
        st.markdown("### Revenue growth")
        st.line_chart(
            [g.model_dump() for g in trend_view.revenue_growth],
            x="period",
            y="value",
        )

    st.markdown("### Seasonal patterns")
    for pattern in trend_view.seasonal_patterns:
        label = {"peak": "🔺", "low": "🔻"}.get(pattern.pattern, "▪️")
        st.markdown(
            f"{label} **{pattern.period}**: {money(pattern.revenue)} "
            f"from {pattern.project_volume} new projects ({pattern.pattern})"
        )

    st.markdown("### Client growth")
    st.dataframe([g.model_dump() for g in trend_view.client_growth], use_container_width=True)


def render_settings_page(hub: BusinessHub):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")
    status = validate_all_settings()

    for name in ("storage", "analytics", "app"):
        if status.get(name, False):
            st.success(f"✅ {name.title()} settings - OK")
        else:
            error = status.get(f"{name}_error", "Invalid")
            st.error(f"❌ {name.title()} settings - {error}")

    st.markdown("---")
    st.markdown("### Time tracking preferences")
    preferences = run_async(hub.time_entries.get_preferences())
    default_billable = st.checkbox("New timers are billable", value=preferences.default_billable)
    reminder_interval = st.number_input(
        "Reminder interval (minutes)",
        min_value=1,
        value=preferences.reminder_interval,
    )
    if st.button("Save preferences"):
        run_async(hub.time_entries.update_preferences({
            "default_billable": default_billable,
            "reminder_interval": int(reminder_interval),
        }))
        st.success("Preferences saved")

    st.markdown("---")
    st.markdown("### Demo data")
    if st.button("Load demo data"):
        if run_async(seed_demo_data(hub)):
            st.success("Demo data loaded")
        else:
            st.info("Workspace already has clients; nothing loaded.")

    st.markdown(
        "Configure storage with `BIZHUB_STORAGE_BACKEND` and "
        "`BIZHUB_STORAGE_DATA_DIR` in a `.env` file."
    )


if __name__ == "__main__":
    main()
