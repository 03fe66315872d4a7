import os
from dataclasses import dataclass
from typing import Optional

import h5py
import numpy as np

from precluster_study.data_format import DATA_GROUP, N_FIT_PARAMETERS, data_store_nominal

# number of records loaded from the file at once
CHUNK_SIZE = 100000


@dataclass
class ClusterRecord:
    '''One reconstructed cluster with the track crossing it and its digits'''
    track_param: np.void
    track_time: int
    cluster: np.void
    digits: np.ndarray
    fit_parameters: Optional[np.ndarray] = None


class ClusterReader:
    '''Sequential reader of the cluster file. Every iteration restarts from the first record.'''

    def __init__(self, fname, require_fit=False):
        self.fname = fname
        with h5py.File(fname, 'r') as f:
            if DATA_GROUP not in f:
                raise RuntimeError('No "{}" group in {}'.format(DATA_GROUP, fname))
            missing = [key for key in data_store_nominal.keys() if key not in f[DATA_GROUP]]
            if missing:
                raise RuntimeError('unable to load datasets {} from {}'.format(missing, fname))
            self.has_fit = 'fitParameters' in f[DATA_GROUP]
            self.n_records = f[DATA_GROUP]['clusters'].shape[0]

        if require_fit and not self.has_fit:
            raise RuntimeError('unable to load dataset "fitParameters" from {}'.format(fname))

    def __len__(self):
        return self.n_records

    def __iter__(self):
        with h5py.File(self.fname, 'r') as f:
            data = f[DATA_GROUP]
            for first in range(0, self.n_records, CHUNK_SIZE):
                last = min(first + CHUNK_SIZE, self.n_records)
                track_params = data['trackParameters'][first:last]
                track_times = data['trackTime'][first:last]
                clusters = data['clusters'][first:last]
                regions = data['digits_region'][first:last]
                fit_parameters = data['fitParameters'][first:last] if self.has_fit else None

                digit_offset = int(np.min(regions['start'])) if last > first else 0
                digit_end = int(np.max(regions['stop'])) if last > first else 0
                if digit_end > digit_offset:
                    digits = data['digits'][digit_offset:digit_end]
                else:
                    digits = np.zeros(0, dtype=data['digits'].dtype)

                for i in range(last - first):
                    start = int(regions['start'][i]) - digit_offset
                    stop = int(regions['stop'][i]) - digit_offset
                    yield ClusterRecord(
                        track_param=track_params[i],
                        track_time=int(track_times[i]),
                        cluster=clusters[i],
                        digits=digits[start:stop],
                        fit_parameters=None if fit_parameters is None else fit_parameters[i],
                    )


def write_records(fname, records):
    '''Write records to a new cluster file, don't overwrite if the file already exists'''
    if os.path.isfile(fname):
        raise RuntimeError('Not creating file, already exists! {}'.format(fname))

    records = list(records)
    with_fit = len(records) > 0 and all(record.fit_parameters is not None for record in records)

    track_params = np.array([tuple(record.track_param) for record in records], dtype=data_store_nominal['trackParameters'])
    track_times = np.array([record.track_time for record in records], dtype=data_store_nominal['trackTime'])
    clusters = np.array([tuple(record.cluster) for record in records], dtype=data_store_nominal['clusters'])

    n_digits = np.array([record.digits.shape[0] for record in records], dtype=int)
    regions = np.zeros(len(records), dtype=data_store_nominal['digits_region'])
    regions['stop'] = np.cumsum(n_digits)
    regions['start'] = regions['stop'] - n_digits
    if len(records) > 0:
        digits = np.concatenate([np.asarray(record.digits, dtype=data_store_nominal['digits']) for record in records])
    else:
        digits = np.zeros(0, dtype=data_store_nominal['digits'])

    with h5py.File(fname, 'w') as f:
        data = f.create_group(DATA_GROUP)
        data.create_dataset('trackParameters', data=track_params, compression="gzip", maxshape=(None,))
        data.create_dataset('trackTime', data=track_times, compression="gzip", maxshape=(None,))
        data.create_dataset('clusters', data=clusters, compression="gzip", maxshape=(None,))
        data.create_dataset('digits', data=digits, compression="gzip", maxshape=(None,))
        data.create_dataset('digits_region', data=regions, compression="gzip", maxshape=(None,))
        if with_fit:
            fits = np.array([record.fit_parameters for record in records], dtype=float).reshape(-1, N_FIT_PARAMETERS)
            data.create_dataset('fitParameters', data=fits, compression="gzip", maxshape=(None, N_FIT_PARAMETERS))

    return fname
