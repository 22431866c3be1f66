"""HTML rendering of a :class:`~livedash.presentation.view.DashboardView`."""

from __future__ import annotations

from html import escape

from livedash.presentation.view import NO_CHART_DATA, ChartView, DashboardView, StatCard, ViewState

_BASE_STYLES = """
<style>
body {margin: 0;font-family: system-ui, sans-serif;background: #f9fafb;color: #111827;}
.page {max-width: 80rem;margin: 0 auto;padding: 2.5rem 1.5rem;}
.centered {min-height: 100vh;display: flex;align-items: center;justify-content: center;}
.header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 2rem;}
.header h1 {font-size: 1.9rem;font-weight: 800;margin: 0;}
.identity {font-family: monospace;font-size: 0.85rem;color: #4b5563;background: #f3f4f6;padding: 6px 10px;border-radius: 6px;}
.cards {display: grid;grid-template-columns: repeat(auto-fit, minmax(14rem, 1fr));gap: 1.5rem;margin-bottom: 2.5rem;}
.card {border: 1px solid #f3f4f6;border-radius: 12px;padding: 20px;background: #ffffff;box-shadow: 0 4px 6px rgba(0,0,0,0.06);}
.card-title {font-size: 0.85rem;font-weight: 500;color: #6b7280;}
.card-value {margin-top: 4px;font-size: 1.9rem;font-weight: 700;overflow: hidden;text-overflow: ellipsis;white-space: nowrap;}
.charts {display: grid;grid-template-columns: repeat(auto-fit, minmax(24rem, 1fr));gap: 2rem;}
.chart h2 {font-size: 1.2rem;font-weight: 600;color: #1f2937;margin: 0 0 1rem;}
.chart-empty {min-height: 20rem;display: flex;flex-direction: column;align-items: center;justify-content: center;}
.chart-empty .chart-title {font-size: 1.1rem;font-weight: 600;color: #374151;}
.chart-empty .chart-note {font-size: 0.85rem;color: #6b7280;}
.bar-row {margin-bottom: 1rem;}
.bar-label {display: flex;justify-content: space-between;font-size: 0.85rem;color: #4b5563;margin-bottom: 4px;}
.bar-label .amount {font-weight: 500;color: #1f2937;}
.bar-track {height: 8px;background: #e5e7eb;border-radius: 9999px;}
.bar-fill {height: 100%;border-radius: 9999px;}
.tier-0 {background: #6366f1;}
.tier-1 {background: #818cf8;}
.tier-2 {background: #a5b4fc;}
.error-box {padding: 2rem;background: #fee2e2;border: 1px solid #f87171;border-radius: 12px;text-align: center;}
.error-box h2 {color: #b91c1c;margin-top: 0;}
.error-box p {color: #dc2626;}
.error-box .hint {font-size: 0.85rem;color: #ef4444;}
.loading {font-size: 1.1rem;font-weight: 500;color: #374151;}
</style>
"""

# Each message carries the dashboard revision; reload when it differs from
# the one the page was rendered at, including the message sent on connect.
_LIVE_SCRIPT = """
<script>
(function () {{
  var rendered = {revision};
  var scheme = window.location.protocol === "https:" ? "wss://" : "ws://";
  var socket = new WebSocket(scheme + window.location.host + "{url}");
  socket.onmessage = function (event) {{
    if (JSON.parse(event.data).revision !== rendered) {{ window.location.reload(); }}
  }};
}})();
</script>
"""


def _page(body: str, *, revision: int, live_url: str | None) -> str:
    script = ""
    if live_url:
        script = _LIVE_SCRIPT.format(url=escape(live_url, quote=True), revision=int(revision))
    return (
        "<!DOCTYPE html>\n"
        "<html lang=\"en\"><head><meta charset=\"utf-8\">"
        "<title>Demographics Dashboard</title>"
        f"{_BASE_STYLES}</head><body>{body}{script}</body></html>"
    )


def render_card(card: StatCard) -> str:
    return (
        f"<div class='card' data-icon='{escape(card.icon, quote=True)}'>"
        f"<div class='card-title'>{escape(card.title)}</div>"
        f"<p class='card-value'>{escape(card.value)}</p>"
        "</div>"
    )


def render_chart(chart: ChartView) -> str:
    if chart.empty:
        return (
            "<div class='card chart chart-empty'>"
            f"<p class='chart-title'>{escape(chart.title)}</p>"
            f"<p class='chart-note'>{NO_CHART_DATA}</p>"
            "</div>"
        )

    rows = []
    for bar in chart.bars:
        rows.append(
            "<div class='bar-row'>"
            "<div class='bar-label'>"
            f"<span>{escape(bar.label)}</span>"
            f"<span class='amount'>{escape(bar.display_value)} ({bar.percentage:.1f}%)</span>"
            "</div>"
            "<div class='bar-track'>"
            f"<div class='bar-fill tier-{bar.tier}' style='width: {bar.percentage:.4f}%'></div>"
            "</div></div>"
        )
    return f"<div class='card chart'><h2>{escape(chart.title)}</h2>{''.join(rows)}</div>"


def render_html(view: DashboardView, *, live_url: str | None = "/ws", revision: int = 0) -> str:
    """Render *view* as a complete HTML document.

    When *live_url* is set the page opens a WebSocket to it and reloads
    as soon as the server reports a revision other than *revision*.
    """
    if view.state is ViewState.ERROR:
        body = (
            "<div class='centered'><div class='error-box'>"
            "<h2>Application Error</h2>"
            f"<p>{escape(view.error_message or '')}</p>"
            "<p class='hint'>Please check the server logs for details.</p>"
            "</div></div>"
        )
        # An error view is terminal until reload; no live updates.
        return _page(body, revision=revision, live_url=None)

    if view.state is ViewState.LOADING:
        body = "<div class='centered'><span class='loading'>Loading Dashboard...</span></div>"
        return _page(body, revision=revision, live_url=live_url)

    cards = "".join(render_card(card) for card in view.cards)
    charts = "".join(render_chart(chart) for chart in view.charts)
    body = (
        "<div class='page'>"
        "<header class='header'><h1>Demographics Dashboard</h1>"
        f"<div class='identity'>User ID: <b>{escape(view.identity_id or '')}</b></div>"
        "</header>"
        f"<div class='cards'>{cards}</div>"
        f"<div class='charts'>{charts}</div>"
        "</div>"
    )
    return _page(body, revision=revision, live_url=live_url)
