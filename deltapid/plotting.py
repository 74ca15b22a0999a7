"""
Trace plots for closed-loop runs (requires the "plotting" extra).
"""

from pathlib import Path
from typing import Optional, Sequence, Union

import matplotlib

# Set matplotlib to non-interactive backend
matplotlib.use("Agg")

import matplotlib.pyplot as plt

from .harness import TraceRecord


def plot_trace(
    trace: Sequence[TraceRecord],
    output_path: Union[str, Path],
    golden: Optional[Sequence[float]] = None,
    title: str = "Delta-form PID closed loop",
) -> Path:
    """
    Plot speed, controller output and speed count of a recorded trace.

    Args:
        trace: Records from ValidationHarness.run()
        output_path: PNG file to write
        golden: Optional reference output sequence drawn over y

    Returns:
        Path of the written image
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    t = [r.t for r in trace]
    fig, (ax_speed, ax_out, ax_cnt) = plt.subplots(3, 1, figsize=(10, 9), sharex=True)
    fig.suptitle(title)

    ax_speed.plot(t, [r.w for r in trace], "k--", label="w (target)")
    ax_speed.plot(t, [r.x_true for r in trace], label="x_true")
    ax_speed.step(t, [r.x_meas for r in trace], where="post", label="x_meas")
    ax_speed.set_ylabel("Speed [rad/s]")
    ax_speed.legend(loc="lower right")
    ax_speed.grid(True, alpha=0.3)

    ax_out.plot(t, [r.y for r in trace], label="y (delta)")
    if any(r.y_alt is not None for r in trace):
        ax_out.plot(t, [r.y_alt for r in trace], ":", label="y (reference)")
    if golden is not None:
        n = min(len(golden), len(t))
        ax_out.plot(t[:n], list(golden)[:n], "x", markersize=3, label="golden")
    ax_out.set_ylabel("Output [V]")
    ax_out.legend(loc="upper right")
    ax_out.grid(True, alpha=0.3)

    ax_cnt.bar(t, [r.spdcnt for r in trace], width=(t[1] - t[0]) if len(t) > 1 else 0.001)
    ax_cnt.set_ylabel("spdcnt")
    ax_cnt.set_xlabel("Time [s]")
    ax_cnt.grid(True, alpha=0.3)

    fig.tight_layout()
    fig.savefig(output_path, dpi=100)
    plt.close(fig)
    return output_path
