import numpy as np
import pytest

from precluster_study.data_format import cluster_dtype, digit_dtype, track_param_dtype
from precluster_study.geometry import load_geo, save_geo
from precluster_study.reader import ClusterRecord

# NB pads: 1 x 4 cm, 20 columns. B pads: 4 x 0.5 cm, 5 columns
NB_PADS_X = 20
B_PADS_X = 5


def make_de(chamber_id, z):
    return {
        'chamber_id' : chamber_id,
        'translation' : [0., 0., z],
        'rotation' : np.identity(3),
        'wire_pitch' : 0.25,
        'wire_offset' : 0.,
        'cathodes' : {
            'nb' : {'origin' : [-10., -10.], 'pad_size' : [1., 4.], 'n_pads_x' : NB_PADS_X},
            'b' : {'origin' : [-10., -10.], 'pad_size' : [4., 0.5], 'n_pads_x' : B_PADS_X},
        },
    }


@pytest.fixture
def geo_fname(tmp_path):
    geo = {
        100 : make_de(0, -526.),
        202 : make_de(1, -545.),
        300 : make_de(2, -676.),
        500 : make_de(4, -959.),
    }
    return save_geo(geo, str(tmp_path / 'geo-test.json'))


@pytest.fixture
def geo(geo_fname):
    return load_geo(geo_fname)


def nb_pad(ix, iy):
    return iy * NB_PADS_X + ix


def b_pad(ix, iy):
    return iy * B_PADS_X + ix


def make_digits(de_id=100, nb=((9, 2, 1000), (10, 2, 4000), (11, 2, 1000)),
                b=((2, 19, 1000), (2, 20, 2000), (2, 21, 1000)), time=99):
    '''Digits from (ix, iy, adc) tuples on each cathode. Default: 6000 ADC NB, 4000 ADC B'''
    rows = [(de_id, nb_pad(ix, iy), adc, time, False) for ix, iy, adc in nb]
    rows += [(de_id, b_pad(ix, iy), adc, time, True) for ix, iy, adc in b]
    return np.array(rows, dtype=digit_dtype)


def make_record(de_id=100, chamber_id=0, digits=None, track_time=100, py=0., pz=-10., sign=-1,
                x=0.5, y=0.25, z=-526., fit=None):
    if digits is None:
        digits = make_digits(de_id)
    return ClusterRecord(
        track_param=np.array((x, y, z, 0., py, pz, sign), dtype=track_param_dtype)[()],
        track_time=track_time,
        cluster=np.array((de_id, chamber_id, x, y, z), dtype=cluster_dtype)[()],
        digits=digits,
        fit_parameters=None if fit is None else np.array(fit, dtype=float),
    )
