# charts.py
import io
import zipfile

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import plotly.express as px
import plotly.io as pio

from aggregator import GOOD_PER_PERSON_LIMIT, SHARE_CATEGORIES, history, records_frame

CATEGORY_LABELS = {
    "transport": "Transportation",
    "energy": "Home Energy",
    "food": "Food",
    "waste": "Waste",
    "water": "Water",
}
COLOR_MAP = {
    "Transportation": "#ef4444",
    "Home Energy": "#f97316",
    "Food": "#eab308",
    "Waste": "#22c55e",
    "Water": "#3b82f6",
}


SWEEP = 1.5 * np.pi  # arc spans 270 degrees
GAUGE_HEADROOM = 1.25


def gauge_fraction(value, limit):
    """Where ``value`` sits on a scale running to 125% of ``limit``, clamped to [0, 1]."""
    scale = limit * GAUGE_HEADROOM
    if scale <= 0:
        return 0.0
    return float(np.clip(value / scale, 0.0, 1.0))


def plot_gauge(per_person, title="Per Person", limit=GOOD_PER_PERSON_LIMIT):
    fig, ax = plt.subplots(figsize=(4, 4), subplot_kw={'projection': 'polar'})
    ax.set_theta_offset(np.pi / 2 + SWEEP / 2)
    ax.set_theta_direction(-1)
    needle = gauge_fraction(per_person, limit) * SWEEP
    good = gauge_fraction(limit, limit) * SWEEP
    ax.barh(1, SWEEP, height=0.4, color='#f0f0f0')
    ax.barh(1, min(needle, good), height=0.4, color='#2ecc71')
    if needle > good:
        ax.barh(1, needle - good, height=0.4, left=good, color='#e74c3c')
    ax.plot([needle, needle], [0, 1.2], color='#2c3e50', lw=2.5)
    ax.set_xticks([0, good, SWEEP])
    ax.set_xticklabels(['0', f'{limit:.0f}', f'{limit * GAUGE_HEADROOM:.0f}'], color='#666')
    ax.text(0, 0, f'{per_person:.1f}\nkg CO₂', ha='center', va='center',
            fontsize=14, color='#2c3e50', fontweight='bold')
    ax.set_yticks([])
    ax.spines[:].set_visible(False)
    ax.set_title(title, pad=20, fontsize=14, color='#2c3e50', fontweight='bold')
    fig.tight_layout()
    return fig


def category_pie(summary):
    names = [CATEGORY_LABELS[c] for c in SHARE_CATEGORIES]
    values = [summary.category_shares[c] for c in SHARE_CATEGORIES]
    return px.pie(
        values=values,
        names=names,
        title="Emissions by Category",
        color=names,
        color_discrete_map=COLOR_MAP,
        hole=0.4,
    )


def history_bar(records, limit=6):
    points = history(records, limit)
    # oldest on the left
    points.reverse()
    fig = px.bar(
        x=[f"{p['label']} ({i + 1})" for i, p in enumerate(points)],
        y=[p["total"] for p in points],
        labels={"x": "Calculation", "y": "Emissions (kg CO₂)"},
        title="<b>Emissions History</b>",
        template="plotly_white",
    )
    fig.add_scatter(
        x=[f"{p['label']} ({i + 1})" for i, p in enumerate(points)],
        y=[p["target"] for p in points],
        mode="lines+markers",
        name="Target (-10%)",
    )
    fig.update_layout(plot_bgcolor="rgba(0,0,0,0)", yaxis=dict(showgrid=False))
    return fig


def build_report_zip(records, summary):
    """CSV of all calculations plus PNG charts, zipped."""
    csv = records_frame(records).to_csv(index=False)
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w') as z:
        z.writestr("calculations.csv", csv)
        charts = {
            "category_pie.png": category_pie(summary),
            "history_bar.png": history_bar(records),
        }
        for name, fig in charts.items():
            z.writestr(name, pio.to_image(fig, format='png'))
    buf.seek(0)
    return buf.getvalue()
