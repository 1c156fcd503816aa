import matplotlib.pyplot as plt
import pytest

from aggregator import aggregate
from charts import CATEGORY_LABELS, SWEEP, category_pie, gauge_fraction, history_bar, plot_gauge


def test_category_pie_uses_share_labels(make_record):
    summary = aggregate([make_record(100, transport=60, energy=40)])
    fig = category_pie(summary)
    trace = fig.data[0]
    assert set(trace.labels) == set(CATEGORY_LABELS.values())
    assert sum(trace.values) == 100


def test_history_bar_plots_oldest_first_with_target(make_record):
    records = [make_record(30), make_record(10)]
    fig = history_bar(records)
    bars, target = fig.data
    assert list(bars.y) == [10, 30]
    assert list(target.y) == pytest.approx([9.0, 27.0])


def test_gauge_handles_values_over_the_limit():
    fig = plot_gauge(1500, "Per Person", 1000)
    ax = fig.axes[0]
    assert ax.get_title() == "Per Person"
    assert [t.get_text() for t in ax.get_xticklabels()] == ["0", "1000", "1250"]
    needle = ax.lines[0].get_xdata()
    assert needle[0] == pytest.approx(SWEEP)
    plt.close(fig)


@pytest.mark.parametrize("value, expected", [
    (0, 0.0), (625, 0.5), (1000, 0.8), (1250, 1.0), (5000, 1.0), (-10, 0.0),
])
def test_gauge_fraction_clamps_to_the_scale(value, expected):
    assert gauge_fraction(value, 1000) == pytest.approx(expected)


def test_gauge_fraction_with_zero_limit():
    assert gauge_fraction(50, 0) == 0.0


def test_gauge_defaults_to_the_good_threshold():
    fig = plot_gauge(200)
    assert fig.axes[0].get_xticklabels()[1].get_text() == "1000"
    plt.close(fig)
