import numpy as np
from scipy import ndimage

from precluster_study.geometry import pad_index, pad_position


def _pad_indices(digits, geo):
    '''(ix, iy) arrays of the pads fired by digits'''
    ix = np.zeros(digits.shape[0], dtype=int)
    iy = np.zeros(digits.shape[0], dtype=int)
    for de_id in np.unique(digits['deId']):
        for is_bending in (False, True):
            m = (digits['deId'] == de_id) & (digits['isBending'] == is_bending)
            if not np.any(m): continue
            ix[m], iy[m] = pad_index(geo, int(de_id), digits['padId'][m].astype(int), is_bending)
    return ix, iy


def get_size(digits, geo):
    '''Return cluster size (sizeX, sizeY): number of pad columns fired on the non-bending
    cathode and number of pad rows fired on the bending cathode. 0 means not measured.'''
    ix, iy = _pad_indices(digits, geo)
    bending = digits['isBending'].astype(bool)
    size_x = np.unique(ix[~bending]).shape[0]
    size_y = np.unique(iy[bending]).shape[0]
    return size_x, size_y


def count_local_maxima(ix, iy, charge):
    '''Count separated local maxima of the charge distribution over the pad grid'''
    if charge.shape[0] == 0:
        return 0
    grid = np.zeros((np.max(ix) - np.min(ix) + 1, np.max(iy) - np.min(iy) + 1))
    np.add.at(grid, (ix - np.min(ix), iy - np.min(iy)), charge)

    # a pad is a maximum if no neighbouring pad (diagonals included) has more charge
    is_max = (grid == ndimage.maximum_filter(grid, size=3, mode='constant', cval=0.)) & (grid > 0)

    # adjacent pads with the same maximum charge form a single maximum
    _, n_max = ndimage.label(is_max, structure=np.ones((3, 3), dtype=int))
    return n_max


def is_composite(digits, geo):
    '''True if any cathode shows more than one local charge maximum'''
    ix, iy = _pad_indices(digits, geo)
    bending = digits['isBending'].astype(bool)
    adc = digits['adc'].astype(float)
    for m in (bending, ~bending):
        if count_local_maxima(ix[m], iy[m], adc[m]) > 1:
            return True
    return False


def get_charge(digits):
    '''Return the raw (non-bending, bending) charge sums [ADC]'''
    bending = digits['isBending'].astype(bool)
    adc = digits['adc'].astype(float)
    return float(np.sum(adc[~bending])), float(np.sum(adc[bending]))


def get_charge_fraction(digits, geo, local_x, local_y, mathieson):
    '''Return the (non-bending, bending) fraction of the total charge, as given by
    the Mathieson distribution centered at (local_x, local_y), collected by the fired pads.

    mathieson is the (x, y) pair of Mathieson parameterizations of the station.'''
    mathieson_x, mathieson_y = mathieson
    fractions = [0., 0.]
    for digit in digits:
        is_bending = bool(digit['isBending'])
        center, half_size = pad_position(geo, int(digit['deId']), int(digit['padId']), is_bending)
        x1, y1 = center - half_size - np.array([local_x, local_y])
        x2, y2 = center + half_size - np.array([local_x, local_y])
        fractions[int(is_bending)] += float(mathieson_x.integrate(x1, x2) * mathieson_y.integrate(y1, y2))
    return fractions[0], fractions[1]
