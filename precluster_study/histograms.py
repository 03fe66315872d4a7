'''
Fixed-binning accumulators.

Every axis has an underflow bin (index 0) and an overflow bin (index n_bins+1), so
no fill is ever lost and two accumulators with the same binning can be merged by
summing their arrays, whatever the order in which they were filled.
'''
import json

import numpy as np


class Histogram:
    '''Counting histogram with 1 to 3 axes, each given as (n_bins, low, high, axis_title)'''

    def __init__(self, name, title, axes):
        if not 1 <= len(axes) <= 3:
            raise ValueError('Histogram {} must have 1 to 3 axes, got {}'.format(name, len(axes)))
        self.name = name
        self.title = title
        self.axis_titles = [axis[3] if len(axis) > 3 else '' for axis in axes]
        self.edges = [np.linspace(low, high, n_bins + 1) for n_bins, low, high, *_ in axes]
        self.counts = np.zeros([edges.shape[0] + 1 for edges in self.edges])
        self.entries = 0

    @property
    def ndim(self):
        return len(self.edges)

    def find_bin(self, axis, value):
        '''Bin index of value along axis, 0 for underflow, n_bins+1 for overflow'''
        return int(np.searchsorted(self.edges[axis], value, side='right'))

    def fill(self, *values):
        if len(values) != self.ndim:
            raise ValueError('Histogram {} expects {} values, got {}'.format(self.name, self.ndim, len(values)))
        idx = tuple(self.find_bin(axis, value) for axis, value in enumerate(values))
        self.counts[idx] += 1
        self.entries += 1

    def integral(self):
        '''Sum of the in-range bins'''
        return float(np.sum(self.counts[(slice(1, -1),) * self.ndim]))

    def bin_contents(self):
        '''Counts without underflow/overflow bins'''
        return self.counts[(slice(1, -1),) * self.ndim]

    def same_binning(self, other):
        return len(self.edges) == len(other.edges) and \
            all(np.array_equal(a, b) for a, b in zip(self.edges, other.edges))

    def merge(self, other):
        if not self.same_binning(other):
            raise ValueError('Cannot merge {} into {}: different binning'.format(other.name, self.name))
        self.counts += other.counts
        self.entries += other.entries
        return self

    def _arrays(self):
        return {'counts' : self.counts}

    def to_h5(self, group):
        for key, d in self._arrays().items():
            group.create_dataset(key, data=d, compression="gzip")
        for axis, edges in enumerate(self.edges):
            group.create_dataset('edges_{}'.format(axis), data=edges)
        group.attrs['kind'] = type(self).__name__
        group.attrs['title'] = self.title
        group.attrs['axis_titles'] = json.dumps(self.axis_titles)
        group.attrs['entries'] = self.entries

    @classmethod
    def from_h5(cls, group, name=None):
        hist = cls.__new__(cls)
        hist.name = name if name is not None else group.name.split('/')[-1]
        hist.title = str(group.attrs['title'])
        hist.axis_titles = json.loads(group.attrs['axis_titles'])
        hist.edges = [np.array(group['edges_{}'.format(axis)]) for axis in range(np.array(group['counts']).ndim)]
        hist.entries = int(group.attrs['entries'])
        for key in cls._array_keys():
            setattr(hist, key, np.array(group[key]))
        return hist

    @classmethod
    def _array_keys(cls):
        return ['counts']


class Profile(Histogram):
    '''Mean (and spread) of a value y in bins of x'''

    def __init__(self, name, title, axis, value_title=''):
        super().__init__(name, title, [axis])
        self.value_title = value_title
        self.sum_w = np.zeros_like(self.counts)
        self.sum_w2 = np.zeros_like(self.counts)

    def fill(self, x, y):
        i = self.find_bin(0, x)
        self.counts[i] += 1
        self.sum_w[i] += y
        self.sum_w2[i] += y * y
        self.entries += 1

    def mean(self):
        '''Mean of y per in-range bin, nan for empty bins'''
        with np.errstate(invalid='ignore', divide='ignore'):
            return (self.sum_w / self.counts)[1:-1]

    def error(self):
        '''Error on the mean per in-range bin, nan for empty bins'''
        with np.errstate(invalid='ignore', divide='ignore'):
            mean = self.sum_w / self.counts
            var = np.maximum(self.sum_w2 / self.counts - mean**2, 0.)
            return np.sqrt(var / self.counts)[1:-1]

    def merge(self, other):
        super().merge(other)
        self.sum_w += other.sum_w
        self.sum_w2 += other.sum_w2
        return self

    def _arrays(self):
        return {'counts' : self.counts, 'sum_w' : self.sum_w, 'sum_w2' : self.sum_w2}

    def to_h5(self, group):
        super().to_h5(group)
        group.attrs['value_title'] = self.value_title

    @classmethod
    def from_h5(cls, group, name=None):
        hist = super().from_h5(group, name)
        hist.value_title = str(group.attrs.get('value_title', ''))
        return hist

    @classmethod
    def _array_keys(cls):
        return ['counts', 'sum_w', 'sum_w2']


def read_h5(group, name=None):
    '''Load a Histogram or Profile written with to_h5'''
    if str(group.attrs['kind']) == 'Profile':
        return Profile.from_h5(group, name)
    return Histogram.from_h5(group, name)
