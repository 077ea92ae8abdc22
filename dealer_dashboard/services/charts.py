from __future__ import annotations

import io

import matplotlib
matplotlib.use("Agg")  # non-interactive backend
import matplotlib.pyplot as plt
import matplotlib.ticker as mticker

import structlog

from ..pipeline.aggregate import service_family
from ..pipeline.models import ExpiredDealerRecord

log = structlog.get_logger()

FAMILY_COLORS = {"TES": "#3B82F6", "McSOL": "#EF4444"}
LABEL_MAX_CHARS = 15
LABEL_KEEP_CHARS = 12


def _fig_to_bytes(fig) -> bytes:
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=120, bbox_inches="tight", facecolor="#ffffff")
    buf.seek(0)
    plt.close(fig)
    return buf.read()


def _apply_light_theme(ax):
    ax.set_facecolor("#ffffff")
    ax.tick_params(colors="#374151")
    ax.title.set_color("#111827")
    for spine in ax.spines.values():
        spine.set_color("#E5E7EB")
    ax.grid(True, axis="y", alpha=0.6, color="#E5E7EB")
    ax.set_axisbelow(True)


def dealer_label(name: str) -> str:
    if len(name) > LABEL_MAX_CHARS:
        return name[:LABEL_KEEP_CHARS] + "..."
    return name


def generate_expired_chart(records: list[ExpiredDealerRecord]) -> bytes | None:
    """Bar chart of expired users per dealer, colored by service family."""
    if not records:
        return None
    labels = [dealer_label(r.dealer) for r in records]
    values = [r.expired_users for r in records]
    colors = [FAMILY_COLORS[service_family(r.service)] for r in records]

    width = max(6.0, min(0.45 * len(records), 40.0))
    fig, ax = plt.subplots(figsize=(width, 4.5))
    _apply_light_theme(ax)
    bars = ax.bar(range(len(values)), values, color=colors)
    for bar, value in zip(bars, values):
        ax.annotate(
            str(value),
            (bar.get_x() + bar.get_width() / 2, bar.get_height()),
            ha="center",
            va="bottom",
            fontsize=8,
            color="#374151",
            xytext=(0, 2),
            textcoords="offset points",
        )
    ax.set_xticks(range(len(labels)))
    ax.set_xticklabels(labels, rotation=45, ha="right", fontsize=8)
    ax.yaxis.set_major_locator(mticker.MaxNLocator(integer=True))
    ax.set_ylabel("Expired users")
    ax.set_title("Expired Users by Dealer")
    handles = [plt.Rectangle((0, 0), 1, 1, color=c) for c in FAMILY_COLORS.values()]
    ax.legend(handles, list(FAMILY_COLORS), loc="upper right", frameon=False)
    log.debug("expired_chart_rendered", bars=len(records))
    return _fig_to_bytes(fig)
