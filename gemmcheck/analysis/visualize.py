# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import os

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np

from gemmcheck.harness.results import HarnessReport, Mismatch


def difference_map(expected: np.ndarray, actual: np.ndarray) -> np.ndarray:
    """Absolute elementwise difference as float64, inf where only one side is finite.

    Positions where both values are the same non-finite value count as 0.
    """
    exp_f = expected.astype(np.float64)
    act_f = actual.astype(np.float64)
    diff = np.zeros(exp_f.shape, dtype=np.float64)
    finite = np.isfinite(exp_f) & np.isfinite(act_f)
    diff[finite] = np.abs(exp_f[finite] - act_f[finite])
    same_nonfinite = (np.isnan(exp_f) & np.isnan(act_f)) | (np.isinf(exp_f) & (exp_f == act_f))
    diff[~finite & ~same_nonfinite] = np.inf
    return diff


def plot_mismatch(mismatch: Mismatch, expected: np.ndarray, actual: np.ndarray, path: str) -> str:
    """Save a heatmap of |actual - expected| for a failing variant.

    Elements within tolerance are shown as zero, and the first differing
    element is circled.

    Args:
        mismatch: The recorded mismatch.
        expected: Reference rows x cols values.
        actual: Variant rows x cols values.
        path: Destination image file.

    Returns:
        The path the figure was written to.
    """
    diff = difference_map(expected, actual)
    diff[diff <= mismatch.tolerance] = 0.0
    finite_max = float(diff[np.isfinite(diff)].max()) if np.isfinite(diff).any() else 0.0
    diff[np.isinf(diff)] = finite_max * 2 if finite_max > 0 else 1.0

    rows, cols = diff.shape
    fig, ax = plt.subplots(figsize=(max(4, min(16, cols / 4)), max(3, min(12, rows / 4))))
    image = ax.imshow(diff, cmap="magma", interpolation="nearest", aspect="auto")
    fig.colorbar(image, ax=ax, label="|actual - expected|")
    if mismatch.element is not None:
        row, col = mismatch.element
        ax.scatter([col], [row], s=120, facecolors="none", edgecolors="cyan", linewidths=2)
    ax.set_xlabel("col")
    ax.set_ylabel("row")
    m, k, n = mismatch.shape
    ax.set_title(f"{mismatch.case_name} {m}x{k}x{n}\n{mismatch.variant} vs {mismatch.reference}", fontsize=9)
    fig.tight_layout()

    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return path


def plot_case_status(report: HarnessReport, path: str) -> str:
    """Bar chart of passing and failing variants per case."""
    names = [case.name for case in report.cases]
    failing = [sum(1 for v in case.variants if not v.ok) for case in report.cases]
    passing = [len(case.variants) - bad for case, bad in zip(report.cases, failing)]

    plt.figure(figsize=(max(6, len(names) * 0.4), 6))
    x_positions = np.arange(len(names))
    plt.bar(x_positions, passing, color="green", label="ok")
    plt.bar(x_positions, failing, bottom=passing, color="red", label="mismatch")
    for index, case in enumerate(report.cases):
        if case.error is not None:
            plt.annotate(case.error.error_type, (index, len(case.variants)), rotation=90, fontsize=7)
    plt.xlabel("Test case")
    plt.ylabel("Variants")
    plt.title("Variant outcomes per case")
    plt.xticks(x_positions, names, rotation=90)
    plt.legend()
    plt.grid(True, axis="y")
    plt.tight_layout()

    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    plt.savefig(path, dpi=150)
    plt.close()
    return path
