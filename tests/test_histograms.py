import h5py
import numpy as np
import pytest

from precluster_study.histograms import Histogram, Profile, read_h5


def test_fill_1d_with_flow_bins():
    h = Histogram('h', 'test', [(10, 0., 10., 'x')])
    for x in (-1., 0., 0.5, 9.99, 10., 25.):
        h.fill(x)

    assert h.entries == 6
    assert h.counts[0] == 1
    assert h.counts[1] == 2
    assert h.counts[10] == 1
    assert h.counts[11] == 2
    assert h.integral() == 3


def test_fill_3d():
    h = Histogram('h3', 'test', [(4, 0., 4., 'x'), (2, 0., 2., 'y'), (3, -1.5, 1.5, 'z')])
    h.fill(2.5, 0.5, 0.)
    assert h.counts[3, 1, 2] == 1
    assert h.bin_contents().shape == (4, 2, 3)
    with pytest.raises(ValueError):
        h.fill(1., 2.)


def test_merge_is_order_independent():
    values = np.linspace(-2., 12., 57)
    whole = Histogram('h', 'test', [(7, 0., 10., 'x')])
    first = Histogram('h', 'test', [(7, 0., 10., 'x')])
    second = Histogram('h', 'test', [(7, 0., 10., 'x')])
    for x in values:
        whole.fill(x)
    for x in values[:20]:
        first.fill(x)
    for x in values[20:][::-1]:
        second.fill(x)

    merged = second.merge(first)
    np.testing.assert_array_equal(merged.counts, whole.counts)
    assert merged.entries == whole.entries


def test_merge_different_binning():
    with pytest.raises(ValueError):
        Histogram('a', '', [(10, 0., 1.)]).merge(Histogram('b', '', [(20, 0., 1.)]))


def test_profile_mean():
    p = Profile('p', 'test', (2, 0., 2., 'x'), 'y')
    p.fill(0.5, 1.)
    p.fill(0.5, 3.)
    p.fill(1.5, -4.)

    np.testing.assert_allclose(p.mean(), [2., -4.])
    np.testing.assert_allclose(p.error(), [1. / np.sqrt(2.), 0.])

    empty = Profile('p', 'test', (2, 0., 2., 'x'), 'y')
    assert np.all(np.isnan(empty.mean()))


def test_h5_round_trip(tmp_path):
    h = Histogram('hSize', 'size', [(5, -0.5, 4.5, 'size x'), (5, -0.5, 4.5, 'size y')])
    h.fill(1, 2)
    p = Profile('pAsymm', 'asymm', (4, -0.2, 0.2, 'dx'), 'asymm')
    p.fill(0.01, 0.3)

    fname = str(tmp_path / 'hists.h5')
    with h5py.File(fname, 'w') as f:
        h.to_h5(f.create_group('hSize'))
        p.to_h5(f.create_group('pAsymm'))

    with h5py.File(fname, 'r') as f:
        h2 = read_h5(f['hSize'])
        p2 = read_h5(f['pAsymm'])

    assert isinstance(h2, Histogram) and not isinstance(h2, Profile)
    assert h2.axis_titles == ['size x', 'size y']
    np.testing.assert_array_equal(h2.counts, h.counts)
    assert isinstance(p2, Profile)
    np.testing.assert_array_equal(p2.sum_w, p.sum_w)
    assert p2.entries == 1
