# src/sizedist_stats.py
# Integral properties of a binned size distribution: totals of the N/S/V/M moments,
# PM mass below a cut size, and number-weighted geometric statistics.
#
# Units with the defaults (diameter_scale=NM_TO_UM, rho_p in g cm⁻³, N in cm⁻³):
#   S  µm² cm⁻³,  V  µm³ cm⁻³,  M  µg m⁻³

from __future__ import annotations
import math

import numpy as np

from lognormal_sizedist import Mode, ModeLike, SizeDistribution, captured_fraction
from sizedist_utils import NM_TO_UM

PM_CUTS_NM = {"PM1": 1000.0, "PM2.5": 2500.0, "PM10": 10000.0}


# ----------------------------- Totals ----------------------------- #

def total_number(dist: SizeDistribution) -> float:
    return float(np.sum(dist.spectral_density * dist.bin_log_width))


def total_surface(dist: SizeDistribution, diameter_scale: float = NM_TO_UM) -> float:
    return float(np.sum(dist.surface_density(diameter_scale) * dist.bin_log_width))


def total_volume(dist: SizeDistribution, diameter_scale: float = NM_TO_UM) -> float:
    return float(np.sum(dist.volume_density(diameter_scale) * dist.bin_log_width))


def total_mass(dist: SizeDistribution, rho_p: float, diameter_scale: float = NM_TO_UM) -> float:
    return float(np.sum(dist.mass_density(rho_p, diameter_scale) * dist.bin_log_width))


def pm_mass(
    dist: SizeDistribution,
    cut_nm: float,
    rho_p: float,
    diameter_scale: float = NM_TO_UM,
) -> float:
    """
    Mass of particles with D < cut_nm (e.g. PM2.5 -> cut_nm=2500).

    Bins entirely below the cut count fully; the bin straddling the cut counts
    with the fraction of its ΔlnDp lying below the cut. Mass beyond the grid's
    upper edge is not represented, so a cut above d_max returns total_mass.
    """
    if not (cut_nm > 0):
        raise ValueError(f"pm_mass: cut_nm must be > 0 (got {cut_nm}).")
    ln_lo = np.log(dist.bin_lower)
    frac_below = np.clip((np.log(cut_nm) - ln_lo) / dist.bin_log_width, 0.0, 1.0)
    per_bin = dist.mass_density(rho_p, diameter_scale) * dist.bin_log_width
    return float(np.sum(per_bin * frac_below))


# ----------------------- Geometric statistics ----------------------- #

def count_median_diameter(dist: SizeDistribution) -> float:
    """Number-weighted geometric mean diameter [nm] of the binned distribution."""
    weights = dist.number_concentration
    n_tot = np.sum(weights)
    if not (n_tot > 0):
        raise ValueError("count_median_diameter: distribution holds no particles.")
    return float(np.exp(np.sum(weights * np.log(dist.bin_midpoints)) / n_tot))


def geometric_std(dist: SizeDistribution) -> float:
    """Number-weighted geometric standard deviation of the binned distribution."""
    weights = dist.number_concentration
    n_tot = np.sum(weights)
    if not (n_tot > 0):
        raise ValueError("geometric_std: distribution holds no particles.")
    ln_cmd = math.log(count_median_diameter(dist))
    var = np.sum(weights * (np.log(dist.bin_midpoints) - ln_cmd) ** 2) / n_tot
    return float(np.exp(np.sqrt(var)))


def fraction_within(mode: ModeLike, k: float = 1.0) -> float:
    """
    Share of a mode's number between D_g / sigma_g**k and D_g * sigma_g**k.
    0.6827 for k=1, 0.9545 for k=2, independent of the mode's parameters.
    """
    m = Mode.coerce(mode)
    if not (k > 0):
        raise ValueError(f"fraction_within: k must be > 0 (got {k}).")
    spread = m.sigma_g ** k
    return captured_fraction(m, m.D_g / spread, m.D_g * spread)


__all__ = [
    "PM_CUTS_NM",
    "total_number",
    "total_surface",
    "total_volume",
    "total_mass",
    "pm_mass",
    "count_median_diameter",
    "geometric_std",
    "fraction_within",
]
