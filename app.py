from typing import List

import plotly.graph_objects as go
import streamlit as st
from aws_lambda_powertools import Logger
from dotenv import load_dotenv

from sensor_insights.common.config import get_thresholds, load_settings
from sensor_insights.common.models import MetricThresholds
from sensor_insights.insights.builder import METRIC_FORMATS
from sensor_insights.insights.collaborator import make_collaborator
from sensor_insights.pipeline import DashboardResult, DashboardSession, PipelineState
from sensor_insights.sources import SourceFile, SourceLoadError, load_from_url, sample_source

logger = Logger()

SEVERITY_ICONS = {"info": "ℹ️", "warning": "⚠️", "critical": "🚨", "success": "✅"}
METRIC_COLORS = {
    "temperature": "#d62728",
    "humidity": "#1f77b4",
    "light": "#ff7f0e",
    "air_quality": "#2ca02c",
}


def _session() -> DashboardSession:
    if "dashboard" not in st.session_state:
        settings = load_settings()
        logger.setLevel(settings.log_level.value)
        st.session_state.dashboard = DashboardSession(make_collaborator(settings), get_thresholds())
    return st.session_state.dashboard


def _load_url(session: DashboardSession, url: str) -> None:
    try:
        source = load_from_url(url, timeout=load_settings().source_url_timeout_secs)
    except SourceLoadError as exc:
        session.fail(session.upload_received(), str(exc))
        return
    session.process([source])


def _render_upload(session: DashboardSession) -> None:
    st.title("AI-Powered Sensor Dashboard")
    st.write("Upload sensor data to instantly visualize trends and generate intelligent insights.")

    uploads = st.file_uploader("CSV files", type=["csv"], accept_multiple_files=True)
    col_a, col_b = st.columns(2)
    with col_a:
        if st.button("Analyze files", disabled=not uploads):
            sources: List[SourceFile] = [
                SourceFile(name=f.name, content=f.getvalue().decode("utf-8", errors="replace")) for f in uploads or []
            ]
            with st.spinner("Analyzing data..."):
                session.process(sources)
            st.rerun()
    with col_b:
        if st.button("Try sample data"):
            with st.spinner("Analyzing data..."):
                session.process([sample_source()])
            st.rerun()

    st.subheader("Expected CSV format")
    st.code(
        "date,time,temperature,humidity,light,airQuality\n"
        "2024-01-01,10:00,22.5,65,450,85\n"
        "2024-01-01,11:00,23.1,63,520,82",
        language="text",
    )


def _render_failed(session: DashboardSession) -> None:
    st.title("Error")
    st.error(session.error or "Failed to process data")
    if st.button("Try again"):
        session.reset()
        st.query_params.clear()
        st.rerun()


def _metric_chart(result: DashboardResult, thresholds: MetricThresholds, metric: str) -> go.Figure:
    label, unit, _decimals = METRIC_FORMATS[metric]
    readings = [r for r in result.series.readings if r.value_of(metric) is not None]
    x_vals = [r.timestamp if r.timestamp is not None else i for i, r in enumerate(readings)]

    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=x_vals,
            y=[r.value_of(metric) for r in readings],
            mode="lines+markers",
            name=f"{label} ({unit.strip()})",
            line=dict(color=METRIC_COLORS[metric]),
        )
    )
    flagged = [(x, r.value_of(metric)) for x, r in zip(x_vals, readings) if r.is_flagged(metric)]
    if flagged:
        fig.add_trace(
            go.Scatter(
                x=[x for x, _ in flagged],
                y=[y for _, y in flagged],
                mode="markers",
                name="Anomaly",
                marker=dict(color="#000000", size=10, symbol="x"),
            )
        )
    bound = thresholds.for_metric(metric)
    for value in (bound.min, bound.max):
        if value is not None:
            fig.add_hline(y=value, line_dash="dash", line_color="#999", opacity=0.6)

    fig.update_layout(
        title=label,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="left", x=0),
        margin=dict(l=40, r=40, t=50, b=40),
        height=300,
    )
    return fig


def _render_dashboard(session: DashboardSession) -> None:
    result = session.result()
    if result is None:
        return

    st.title("Sensor Dashboard")
    st.caption(f"{result.series.label} · {len(result.series)} readings")
    if st.button("New upload"):
        session.reset()
        st.query_params.clear()
        st.rerun()

    cols = st.columns(len(METRIC_FORMATS))
    for col, (metric, (label, unit, decimals)) in zip(cols, METRIC_FORMATS.items()):
        s = result.stats.for_metric(metric)
        col.metric(
            label,
            f"{s.current:.{decimals}f}{unit}",
            delta=f"{s.change:+.{decimals}f}",
            delta_color="off",
        )
        col.caption(
            f"Avg {s.avg:.{decimals}f} · Min {s.min:.{decimals}f} · Max {s.max:.{decimals}f} · Anomalies {s.anomalies}"
        )

    st.header("AI Insights")
    if session.insights_pending:
        st.info("Generating insights...")
    elif not session.insights:
        st.info("No insights available for this data.")
    for insight in session.insights:
        with st.container(border=True):
            st.markdown(f"**{SEVERITY_ICONS[insight.severity]} {insight.title}**")
            st.write(insight.description)
            st.caption(f"Recommendation: {insight.recommendation}")

    st.header("Trends")
    left, right = st.columns(2)
    for i, metric in enumerate(METRIC_FORMATS):
        target = left if i % 2 == 0 else right
        target.plotly_chart(
            _metric_chart(result, session.thresholds, metric),
            use_container_width=True,
            config={"scrollZoom": False, "displaylogo": False},
        )


def main() -> None:
    load_dotenv()
    st.set_page_config(page_title="Sensor Insights", layout="wide")
    session = _session()

    url = st.query_params.get("url")
    if url and session.state == PipelineState.AWAITING_INPUT:
        with st.spinner("Loading data..."):
            _load_url(session, url)

    if session.state == PipelineState.FAILED:
        _render_failed(session)
    elif session.state == PipelineState.READY:
        _render_dashboard(session)
    else:
        _render_upload(session)


if __name__ == "__main__":
    main()
