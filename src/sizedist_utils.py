# src/sizedist_utils.py
# small numpy helpers for binned aerosol size distributions (edges-first, ln-space)

from __future__ import annotations
from typing import Optional, Tuple
import numpy as np

NM_TO_UM = 1e-3

# ───────────────────────── geometry ─────────────────────────

def log_edges(d_min: float, d_max: float, bins: int) -> np.ndarray:
    """Log-uniform bin edges, length bins+1, from d_min to d_max inclusive."""
    return np.geomspace(float(d_min), float(d_max), int(bins) + 1)

def _as_edges(edges_nm: np.ndarray) -> np.ndarray:
    e = np.asarray(edges_nm, float)
    if e.ndim != 1 or e.size < 2:
        raise ValueError("edges must be 1-D with length >= 2.")
    if np.any(e <= 0):
        raise ValueError("edges must be positive (ln-space).")
    return e

def mids_from_edges(edges_nm: np.ndarray) -> np.ndarray:
    """Geometric midpoints sqrt(lower*upper) from edges."""
    e = _as_edges(edges_nm)
    return np.sqrt(e[:-1] * e[1:])

def delta_ln_from_edges(edges_nm: np.ndarray) -> np.ndarray:
    """ΔlnDp = ln(upper) - ln(lower) for each bin."""
    e = _as_edges(edges_nm)
    return np.log(e[1:]) - np.log(e[:-1])

# ───────────────────── counts <-> spectrum ──────────────────

def counts_from_dndln(dndln: np.ndarray, edges_nm: np.ndarray) -> np.ndarray:
    """dN per bin = (dN/dlnDp) * ΔlnDp."""
    dlog = delta_ln_from_edges(edges_nm)
    arr = np.asarray(dndln, float)
    if arr.shape != dlog.shape:
        raise ValueError(f"dndln must have length {dlog.size}.")
    return arr * dlog

def dndln_from_counts(counts: np.ndarray, edges_nm: np.ndarray) -> np.ndarray:
    """dN/dlnDp = counts / ΔlnDp."""
    dlog = delta_ln_from_edges(edges_nm)
    arr = np.asarray(counts, float)
    if arr.shape != dlog.shape:
        raise ValueError(f"counts must have length {dlog.size}.")
    return arr / dlog

# ───────────────────────── converters ───────────────────────

def dsdln_from_dndln(bin_mid_nm: np.ndarray, arr: np.ndarray, diameter_scale: float = 1.0) -> np.ndarray:
    """
    arr -> dS/dlnDp via π * D^2, D = bin_mid_nm * diameter_scale.
    Pass diameter_scale=NM_TO_UM for µm² per unit volume.
    """
    D = np.asarray(bin_mid_nm, float) * diameter_scale
    return np.asarray(arr, float) * (np.pi * D**2)

def dvdln_from_dndln(bin_mid_nm: np.ndarray, arr: np.ndarray, diameter_scale: float = 1.0) -> np.ndarray:
    """
    arr -> dV/dlnDp via (π/6) * D^3, D = bin_mid_nm * diameter_scale.
    Pass diameter_scale=NM_TO_UM for µm³ per unit volume.
    """
    D = np.asarray(bin_mid_nm, float) * diameter_scale
    return np.asarray(arr, float) * ((np.pi / 6.0) * D**3)

def dmdln_from_dndln(
    bin_mid_nm: np.ndarray,
    arr: np.ndarray,
    rho_p: float,
    diameter_scale: float = 1.0,
) -> np.ndarray:
    """
    arr -> dM/dlnDp = dV/dlnDp * rho_p (spherical particles).
    With diameter_scale=NM_TO_UM and rho_p in g cm⁻³ the result is µg m⁻³ per unit lnD
    when arr is in cm⁻³.
    """
    return dvdln_from_dndln(bin_mid_nm, arr, diameter_scale) * float(rho_p)

# ───────────────────────── windows ──────────────────────────

def select_between(
    edges_nm: np.ndarray,
    *arrays: np.ndarray,
    xmin: Optional[float] = None,
    xmax: Optional[float] = None,
) -> Tuple[np.ndarray, ...]:
    """
    Keep only bins lying fully inside [xmin, xmax].
    Returns (edges_out, *arrays_out); edges are cropped to bound the kept bins.
    """
    e = _as_edges(edges_nm)
    N = e.size - 1

    if xmin is None:
        left_ok = np.ones(N, dtype=bool)
    else:
        left_ok = (e[:-1] >= float(xmin))

    if xmax is None:
        right_ok = np.ones(N, dtype=bool)
    else:
        right_ok = (e[1:] <= float(xmax))

    keep = left_ok & right_ok

    if not np.any(keep):
        empty = np.array([], dtype=float)
        return (empty,) + tuple(empty for _ in arrays)

    # the kept block is contiguous for a simple interval on sorted edges
    i0 = int(np.argmax(keep))
    i1 = int(np.where(keep)[0][-1])

    out = [e[i0 : i1 + 2]]
    for a in arrays:
        a = np.asarray(a, float)
        if a.size != N:
            raise ValueError(f"select_between: arrays must have length {N}.")
        out.append(a[keep])
    return tuple(out)


__all__ = [
    "NM_TO_UM",
    "log_edges",
    "mids_from_edges",
    "delta_ln_from_edges",
    "counts_from_dndln",
    "dndln_from_counts",
    "dsdln_from_dndln",
    "dvdln_from_dndln",
    "dmdln_from_dndln",
    "select_between",
]
