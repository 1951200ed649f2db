# tests/test_lognormal_sizedist.py

import sys, pathlib
SRC = pathlib.Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import dataclasses
import warnings

import numpy as np
import pytest
from lognormal_sizedist import (
    ATMOSPHERIC_MODES, InvalidGridParameter, InvalidModeParameter, Mode,
    SizeDistribution, TruncationWarning, build_distribution, captured_fraction,
    lognormal_density,
)


# ---------------------------- reference table ---------------------------- #

def test_reference_table_200_80_1p2():
    dist = build_distribution([[200.0, 80.0, 1.2]], d_min=30.0, d_max=300.0, bins=10)

    edges_expected = 30.0 * 10.0 ** (np.arange(11) / 10.0)
    assert np.allclose(dist.bin_edges, edges_expected)
    assert np.allclose(dist.bin_edges[:4], [30.0, 37.77, 47.55, 59.86], atol=0.01)

    N = dist.number_concentration
    assert N[2] == pytest.approx(8.525, rel=1e-2)
    assert N[3] == pytest.approx(63.60, rel=1e-2)
    assert N[4] == pytest.approx(96.23, rel=1e-2)
    assert N[5] == pytest.approx(29.55, rel=1e-2)
    assert round(N[2]) == 9
    assert int(np.argmax(N)) == 4
    # tails beyond 30-300 nm hold < 1e-6 of the mode
    assert N.sum() == pytest.approx(200.0, rel=1e-4)


def test_length_invariants_and_ordering():
    dist = build_distribution([Mode(100.0, 50.0, 1.5)], 10.0, 500.0, 37)
    assert dist.n_bins == 37
    assert dist.bin_edges.size == 38
    for arr in (dist.bin_midpoints, dist.bin_log_width, dist.spectral_density,
                dist.number_concentration):
        assert arr.size == 37
    assert np.all(np.diff(dist.bin_edges) > 0)
    assert np.all(dist.spectral_density >= 0)
    assert np.all(dist.number_concentration >= 0)
    assert np.array_equal(dist.bin_lower, dist.bin_edges[:-1])
    assert np.array_equal(dist.bin_upper, dist.bin_edges[1:])


def test_log_width_constant_and_midpoints_geometric():
    for d_min, d_max, bins in [(1.0, 10000.0, 1000), (30.0, 300.0, 10), (8.0, 2000.0, 256)]:
        dist = build_distribution([[1.0, 100.0, 2.0]], d_min, d_max, bins)
        w = dist.bin_log_width
        assert np.allclose(w, w[0], rtol=1e-9, atol=0.0)
        assert w[0] == pytest.approx(np.log(d_max / d_min) / bins, rel=1e-9)
        e = dist.bin_edges
        assert np.allclose(dist.bin_midpoints, np.sqrt(e[:-1] * e[1:]), rtol=1e-12, atol=0.0)


def test_number_concentration_is_density_times_width():
    dist = build_distribution([[500.0, 40.0, 1.8]], 5.0, 1000.0, 64)
    assert np.allclose(dist.number_concentration, dist.spectral_density * dist.bin_log_width)


def test_default_grid():
    dist = build_distribution([[200.0, 80.0, 1.2]])
    assert dist.n_bins == 256
    assert dist.bin_edges[0] == pytest.approx(8.0)
    assert dist.bin_edges[-1] == pytest.approx(2000.0)


# ---------------------------- convergence ---------------------------- #

@pytest.mark.parametrize("N_t, D_g, sigma_g", [(200.0, 80.0, 1.2), (1000.0, 30.0, 1.6), (5.0, 2000.0, 2.5)])
def test_sum_converges_to_total(N_t, D_g, sigma_g):
    dist = build_distribution([[N_t, D_g, sigma_g]], D_g / sigma_g**6, D_g * sigma_g**6, 10000)
    assert dist.number_concentration.sum() == pytest.approx(N_t, rel=1e-3)


def test_doubling_bins_changes_sum_less_than_one_percent():
    modes = [[1000.0, 30.0, 1.6], [300.0, 150.0, 1.7]]
    for bins in (100, 200, 400):
        s1 = build_distribution(modes, 5.0, 1000.0, bins).number_concentration.sum()
        s2 = build_distribution(modes, 5.0, 1000.0, 2 * bins).number_concentration.sum()
        assert abs(s2 - s1) / s1 < 0.01


def test_truncated_grid_underestimates_total():
    dist = build_distribution([[100.0, 100.0, 2.0]], 100.0, 10000.0, 2000)
    # half the mode lies below D_g
    assert dist.total_number == pytest.approx(50.0, rel=1e-3)
    assert captured_fraction([100.0, 100.0, 2.0], 100.0, 10000.0) == pytest.approx(0.5, rel=1e-6)


# ---------------------------- purity / additivity ---------------------------- #

def test_idempotent_bitwise():
    args = ([[3000.0, 7.0, 1.2], [4900.0, 30.0, 1.6]], 1.0, 1000.0, 300)
    a = build_distribution(*args)
    b = build_distribution(*args)
    for name in ("bin_edges", "bin_midpoints", "bin_log_width", "spectral_density", "number_concentration"):
        assert np.array_equal(getattr(a, name), getattr(b, name))


def test_multimode_additivity():
    mode_a = Mode(4900.0, 30.0, 1.6)
    mode_b = Mode(900.0, 150.0, 1.7)
    ab = build_distribution([mode_a, mode_b], 1.0, 10000.0, 500)
    a = build_distribution([mode_a], 1.0, 10000.0, 500)
    b = build_distribution([mode_b], 1.0, 10000.0, 500)
    assert np.array_equal(ab.bin_edges, a.bin_edges)
    assert np.allclose(ab.spectral_density, a.spectral_density + b.spectral_density, rtol=1e-12, atol=0.0)


def test_atmospheric_modes_sum():
    modes = list(ATMOSPHERIC_MODES.values())
    dist = build_distribution(modes, 1.0, 10000.0, 1000)
    assert dist.total_number == pytest.approx(sum(m.N_t for m in modes), rel=1e-2)
    assert len(dist.modes) == 4


def test_result_is_immutable():
    dist = build_distribution([[200.0, 80.0, 1.2]], 30.0, 300.0, 10)
    with pytest.raises(dataclasses.FrozenInstanceError):
        dist.bins = 5
    with pytest.raises(ValueError):
        dist.spectral_density[0] = 1.0
    with pytest.raises(ValueError):
        dist.bin_edges[0] = 1.0


def test_lognormal_density_peak_and_scalar():
    m = Mode(200.0, 80.0, 1.2)
    peak = 200.0 / (np.sqrt(2.0 * np.pi) * np.log(1.2))
    assert float(lognormal_density(m, 80.0)) == pytest.approx(peak)
    d = np.array([40.0, 80.0, 160.0])
    f = lognormal_density(m, d)
    assert f[1] > f[0] and f[1] > f[2]


def test_zero_number_mode_gives_zero_density():
    dist = build_distribution([[0.0, 80.0, 1.2]], 30.0, 300.0, 10)
    assert np.all(dist.spectral_density == 0.0)


# ---------------------------- validation ---------------------------- #

def test_sigma_equal_one_rejected():
    with pytest.raises(InvalidModeParameter):
        build_distribution([[100.0, 50.0, 1.0]], 10.0, 100.0, 10)


@pytest.mark.parametrize("mode", [
    [100.0, 50.0, 0.9],
    [-1.0, 50.0, 1.5],
    [100.0, 0.0, 1.5],
    [100.0, -5.0, 1.5],
    [100.0, 50.0, float("nan")],
    [100.0, 50.0],
    "abc",
])
def test_invalid_modes_rejected(mode):
    with pytest.raises(InvalidModeParameter):
        build_distribution([[200.0, 80.0, 1.2], mode], 10.0, 100.0, 10)


def test_empty_modes_rejected():
    with pytest.raises(InvalidModeParameter):
        build_distribution([], 10.0, 100.0, 10)


@pytest.mark.parametrize("d_min, d_max, bins", [
    (0.0, 100.0, 10),
    (-1.0, 100.0, 10),
    (100.0, 100.0, 10),
    (100.0, 10.0, 10),
    (10.0, float("inf"), 10),
    (10.0, 100.0, 0),
    (10.0, 100.0, -3),
    (10.0, 100.0, 2.5),
])
def test_invalid_grid_rejected(d_min, d_max, bins):
    with pytest.raises(InvalidGridParameter):
        build_distribution([[200.0, 80.0, 1.2]], d_min, d_max, bins)


def test_errors_are_value_errors():
    assert issubclass(InvalidModeParameter, ValueError)
    assert issubclass(InvalidGridParameter, ValueError)


def test_mode_coerce():
    m = Mode.coerce((200, 80, 1.2))
    assert m == Mode(200.0, 80.0, 1.2)
    assert Mode.coerce(m) is m
    dist = build_distribution(m, 30.0, 300.0, 10)
    assert dist.modes == (m,)


# ---------------------------- truncation diagnostic ---------------------------- #

def test_truncation_warning_emitted_above_threshold():
    with pytest.warns(TruncationWarning):
        build_distribution([[100.0, 80.0, 1.6]], 70.0, 90.0, 10, warn_truncation=0.05)


def test_truncation_silent_by_default_and_below_threshold():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        build_distribution([[100.0, 80.0, 1.6]], 70.0, 90.0, 10)
        build_distribution([[100.0, 80.0, 1.2]], 10.0, 1000.0, 100, warn_truncation=0.01)


def test_far_mode_is_not_an_error():
    dist = build_distribution([[100.0, 1e5, 1.3]], 10.0, 100.0, 10)
    assert dist.total_number < 1e-6
