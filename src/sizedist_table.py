# src/sizedist_table.py
# Tabular views of a SizeDistribution. Rounding and unit labels live here only;
# the distribution itself is never modified.

from __future__ import annotations
from typing import Optional

import numpy as np
import pandas as pd

from lognormal_sizedist import SizeDistribution
from sizedist_utils import NM_TO_UM

# column -> unit, with rho_p in g cm⁻³ and N in cm⁻³
MOMENT_UNITS = {
    "Dlow": "nm",
    "Dup": "nm",
    "Dp": "nm",
    "N": "cm^-3",
    "S": "um^2 cm^-3",
    "V": "um^3 cm^-3",
    "M": "ug m^-3",
}


def _round(df: pd.DataFrame, digits: Optional[int]) -> pd.DataFrame:
    return df if digits is None else df.round(digits)


def moment_table(
    dist: SizeDistribution,
    rho_p: float = 2.0,
    digits: Optional[int] = None,
) -> pd.DataFrame:
    """
    Per-bin number, surface, volume and mass concentration.

    Parameters
    ----------
    dist : SizeDistribution
    rho_p : float, default 2.0
        Particle density [g cm⁻³]; with µm diameters this yields M in µg m⁻³.
    digits : int or None
        Round every column to this many decimals (presentation only).

    Returns
    -------
    DataFrame with columns Dlow, Dup, Dp, N, S, V, M (see MOMENT_UNITS).
    """
    Dp_um = dist.bin_midpoints * NM_TO_UM
    N = np.asarray(dist.number_concentration)
    V = (np.pi / 6.0) * Dp_um**3 * N
    df = pd.DataFrame({
        "Dlow": dist.bin_lower,
        "Dup":  dist.bin_upper,
        "Dp":   dist.bin_midpoints,
        "N":    N,
        "S":    np.pi * Dp_um**2 * N,
        "V":    V,
        "M":    V * float(rho_p),
    })
    return _round(df, digits)


def spectral_table(
    dist: SizeDistribution,
    rho_p: float = 2.0,
    digits: Optional[int] = None,
) -> pd.DataFrame:
    """dN/dlnDp, dS/dlnDp, dV/dlnDp, dM/dlnDp at the bin midpoints (µm-based moments)."""
    df = pd.DataFrame({
        "Dp":      dist.bin_midpoints,
        "dN/dlnD": dist.spectral_density,
        "dS/dlnD": dist.surface_density(NM_TO_UM),
        "dV/dlnD": dist.volume_density(NM_TO_UM),
        "dM/dlnD": dist.mass_density(rho_p, NM_TO_UM),
    })
    return _round(df, digits)


__all__ = ["MOMENT_UNITS", "moment_table", "spectral_table"]
