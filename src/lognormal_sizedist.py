# src/lognormal_sizedist.py
# Discretized multimodal lognormal size distributions on a log-uniform diameter grid.
#
# Public API:
#   - Mode(N_t, D_g, sigma_g)                 one lognormal mode (cm⁻³, nm, -)
#   - build_distribution(modes, d_min, d_max, bins, warn_truncation=None) -> SizeDistribution
#   - lognormal_density(mode, diam_nm)        dN/dlnDp of a single mode
#   - captured_fraction(mode, d_min, d_max)   analytic share of a mode inside [d_min, d_max]
#   - ATMOSPHERIC_MODES                       canonical nucleation/Aitken/accumulation/coarse modes
#
# Example:
#   dist = build_distribution([[200.0, 80.0, 1.2]], d_min=30.0, d_max=300.0, bins=10)
#   dist.number_concentration.sum()   # ~200 cm⁻³
#   dist.volume_density(diameter_scale=NM_TO_UM)   # dV/dlnDp in µm³ cm⁻³

from __future__ import annotations
from dataclasses import dataclass
from numbers import Integral
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union
import math
import warnings

import numpy as np
from scipy.special import ndtr

from sizedist_utils import (
    NM_TO_UM, log_edges, mids_from_edges, delta_ln_from_edges,
    counts_from_dndln, dsdln_from_dndln, dvdln_from_dndln, dmdln_from_dndln,
)

DEFAULT_D_MIN_NM = 8.0
DEFAULT_D_MAX_NM = 2000.0
DEFAULT_BINS = 256


# -------------------- errors --------------------

class InvalidModeParameter(ValueError):
    """A mode triplet cannot describe a lognormal mode (sigma_g <= 1, N_t < 0, D_g <= 0)."""


class InvalidGridParameter(ValueError):
    """The diameter grid is ill-defined (d_min <= 0, d_max <= d_min, bins <= 0)."""


class TruncationWarning(RuntimeWarning):
    """A noticeable share of the modes' number lies outside the grid range."""


# -------------------- mode --------------------

@dataclass(frozen=True)
class Mode:
    N_t: float       # total number concentration [cm⁻³]
    D_g: float       # geometric mean diameter [nm]
    sigma_g: float   # geometric standard deviation [-]

    @classmethod
    def coerce(cls, obj: Union["Mode", Sequence[float]]) -> "Mode":
        """Accept a Mode or any (N_t, D_g, sigma_g) sequence."""
        if isinstance(obj, cls):
            return obj
        try:
            N_t, D_g, sigma_g = obj
            return cls(float(N_t), float(D_g), float(sigma_g))
        except (TypeError, ValueError) as exc:
            raise InvalidModeParameter(
                f"mode must be a (N_t, D_g, sigma_g) triplet, got {obj!r}"
            ) from exc

    @property
    def ln_sigma(self) -> float:
        return math.log(self.sigma_g)


ModeLike = Union[Mode, Sequence[float]]

# canonical tropospheric modes (cm⁻³, nm, -)
ATMOSPHERIC_MODES: Dict[str, Mode] = {
    "nucleation":   Mode(3000.0, 7.0, 1.2),
    "aitken":       Mode(4900.0, 30.0, 1.6),
    "accumulation": Mode(900.0, 150.0, 1.7),
    "coarse":       Mode(300.0, 2000.0, 1.9),
}


# -------------------- validation --------------------

def _check_mode(mode: Mode, idx: int = 0) -> None:
    # written as "not (x > a)" so NaN fails too
    if not (mode.sigma_g > 1.0) or not math.isfinite(mode.sigma_g):
        raise InvalidModeParameter(
            f"mode {idx}: sigma_g must be > 1 (got {mode.sigma_g}); 1 is the zero-width limit."
        )
    if not (mode.N_t >= 0.0) or not math.isfinite(mode.N_t):
        raise InvalidModeParameter(f"mode {idx}: N_t must be >= 0 (got {mode.N_t}).")
    if not (mode.D_g > 0.0) or not math.isfinite(mode.D_g):
        raise InvalidModeParameter(f"mode {idx}: D_g must be > 0 (got {mode.D_g}).")


def _check_modes(modes: Iterable[ModeLike]) -> Tuple[Mode, ...]:
    if isinstance(modes, Mode):
        modes = [modes]
    out = tuple(Mode.coerce(m) for m in modes)
    if len(out) == 0:
        raise InvalidModeParameter("modes must contain at least one (N_t, D_g, sigma_g) triplet.")
    for i, m in enumerate(out):
        _check_mode(m, i)
    return out


def _check_grid(d_min: float, d_max: float, bins: int) -> None:
    if isinstance(bins, bool) or not isinstance(bins, Integral):
        raise InvalidGridParameter(f"bins must be a positive integer (got {bins!r}).")
    if bins <= 0:
        raise InvalidGridParameter(f"bins must be a positive integer (got {bins}).")
    if not (d_min > 0.0):
        raise InvalidGridParameter(f"d_min must be > 0 (got {d_min}).")
    if not (d_max > d_min) or not math.isfinite(d_max):
        raise InvalidGridParameter(f"d_max must be finite and > d_min (got d_min={d_min}, d_max={d_max}).")


# -------------------- single-mode math --------------------

def lognormal_density(mode: ModeLike, diam_nm: np.ndarray) -> np.ndarray:
    """
    Spectral number density dN/dlnDp of one lognormal mode.

        f(D) = N_t / (sqrt(2π) ln σg) * exp(-(ln(D/Dg))² / (2 (ln σg)²))

    Parameters
    ----------
    mode : Mode or (N_t, D_g, sigma_g)
    diam_nm : float or array-like
        Diameters [nm], > 0.

    Returns
    -------
    ndarray
        dN/dlnDp in the units of N_t (e.g. cm⁻³).
    """
    m = Mode.coerce(mode)
    _check_mode(m)
    D = np.asarray(diam_nm, float)
    ln_sg = m.ln_sigma
    return m.N_t / (np.sqrt(2.0 * np.pi) * ln_sg) * np.exp(-np.log(D / m.D_g) ** 2 / (2.0 * ln_sg**2))


def captured_fraction(mode: ModeLike, d_min: float, d_max: float) -> float:
    """Analytic fraction of a mode's number with d_min <= D <= d_max (normal CDF in lnD)."""
    m = Mode.coerce(mode)
    _check_mode(m)
    ln_sg = m.ln_sigma
    z_lo = (math.log(d_min) - math.log(m.D_g)) / ln_sg
    z_hi = (math.log(d_max) - math.log(m.D_g)) / ln_sg
    return float(ndtr(z_hi) - ndtr(z_lo))


# -------------------- result --------------------

@dataclass(frozen=True, eq=False)
class SizeDistribution:
    modes: Tuple[Mode, ...]
    bin_edges: np.ndarray             # bins+1, nm
    bin_midpoints: np.ndarray         # bins, nm, geometric
    bin_log_width: np.ndarray         # bins, ΔlnDp
    spectral_density: np.ndarray      # bins, dN/dlnDp
    number_concentration: np.ndarray  # bins, dN

    def __post_init__(self) -> None:
        for arr in (self.bin_edges, self.bin_midpoints, self.bin_log_width,
                    self.spectral_density, self.number_concentration):
            arr.setflags(write=False)

    def __repr__(self) -> str:
        return (f"<SizeDistribution modes={len(self.modes)} bins={self.n_bins} "
                f"D=[{self.bin_edges[0]:g}, {self.bin_edges[-1]:g}] nm N={self.total_number:.4g}>")

    # -------------------- basics --------------------
    @property
    def n_bins(self) -> int:
        return int(self.bin_midpoints.size)

    @property
    def bin_lower(self) -> np.ndarray:
        return self.bin_edges[:-1]

    @property
    def bin_upper(self) -> np.ndarray:
        return self.bin_edges[1:]

    @property
    def total_number(self) -> float:
        return float(np.sum(self.number_concentration))

    # -------------------- moment spectral densities --------------------
    def surface_density(self, diameter_scale: float = 1.0) -> np.ndarray:
        """dS/dlnDp = π Dp² dN/dlnDp."""
        return dsdln_from_dndln(self.bin_midpoints, self.spectral_density, diameter_scale)

    def volume_density(self, diameter_scale: float = 1.0) -> np.ndarray:
        """dV/dlnDp = (π/6) Dp³ dN/dlnDp."""
        return dvdln_from_dndln(self.bin_midpoints, self.spectral_density, diameter_scale)

    def mass_density(self, rho_p: float, diameter_scale: float = 1.0) -> np.ndarray:
        """dM/dlnDp = dV/dlnDp * rho_p."""
        return dmdln_from_dndln(self.bin_midpoints, self.spectral_density, rho_p, diameter_scale)


# -------------------- builder --------------------

def build_distribution(
    modes: Union[ModeLike, Iterable[ModeLike]],
    d_min: float = DEFAULT_D_MIN_NM,
    d_max: float = DEFAULT_D_MAX_NM,
    bins: int = DEFAULT_BINS,
    *,
    warn_truncation: Optional[float] = None,
) -> SizeDistribution:
    """
    Sum one or more lognormal modes on a log-uniform grid.

    Parameters
    ----------
    modes : sequence of Mode or (N_t, D_g, sigma_g)
        Non-empty; N_t >= 0, D_g > 0, sigma_g > 1.
    d_min, d_max : float
        Grid range [nm], 0 < d_min < d_max.
    bins : int
        Number of bins, > 0.
    warn_truncation : float or None
        If given, emit TruncationWarning when the number-weighted share of the
        modes lying outside [d_min, d_max] exceeds this fraction.

    Returns
    -------
    SizeDistribution
        Immutable; edges, geometric midpoints, ΔlnDp, dN/dlnDp and dN per bin.

    Raises
    ------
    InvalidModeParameter, InvalidGridParameter
        Before any numeric work.
    """
    mode_tuple = _check_modes(modes)
    _check_grid(d_min, d_max, bins)

    edges = log_edges(d_min, d_max, bins)
    mids = mids_from_edges(edges)
    dlog = delta_ln_from_edges(edges)

    dndln = np.zeros_like(mids)
    for m in mode_tuple:
        dndln += lognormal_density(m, mids)
    counts = counts_from_dndln(dndln, edges)

    if warn_truncation is not None:
        _warn_if_truncated(mode_tuple, d_min, d_max, float(warn_truncation))

    return SizeDistribution(
        modes=mode_tuple,
        bin_edges=edges,
        bin_midpoints=mids,
        bin_log_width=dlog,
        spectral_density=dndln,
        number_concentration=counts,
    )


def _warn_if_truncated(modes: Tuple[Mode, ...], d_min: float, d_max: float, threshold: float) -> None:
    n_total = sum(m.N_t for m in modes)
    if n_total <= 0.0:
        return
    n_inside = sum(m.N_t * captured_fraction(m, d_min, d_max) for m in modes)
    lost = 1.0 - n_inside / n_total
    if lost > threshold:
        warnings.warn(
            f"{lost:.2%} of the number concentration lies outside [{d_min:g}, {d_max:g}] nm "
            f"(threshold {threshold:.2%}).",
            TruncationWarning,
            stacklevel=3,
        )


__all__ = [
    "DEFAULT_D_MIN_NM",
    "DEFAULT_D_MAX_NM",
    "DEFAULT_BINS",
    "NM_TO_UM",
    "InvalidModeParameter",
    "InvalidGridParameter",
    "TruncationWarning",
    "Mode",
    "ATMOSPHERIC_MODES",
    "SizeDistribution",
    "lognormal_density",
    "captured_fraction",
    "build_distribution",
]
