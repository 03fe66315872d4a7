'''
Run-dependent conditions, resolved once per job:
    - which calibration regime (response parameters, charge ranges) applies to the run
    - which detector elements must be excluded because of known hardware defects
'''
import json
from dataclasses import dataclass, field

import numpy as np

# anode-cathode pitch [cm]
PITCH_ST1 = 0.21
PITCH_ST2345 = 0.25

RUN2_MATHIESON = {
        # sqrt(K3) in x, y
        'St1' : (0.7000, 0.7550),
        'St2345' : (0.7131, 0.7642),
        }

DEFAULT_CONDITIONS = {
    'regimes' : [
        {
            'name' : 'run2',
            'first_run' : 0,
            'last_run' : 299999,
            'mathieson' : RUN2_MATHIESON,
            'adc_max' : 4096,
        },
        {
            # response parameters are taken from the calibration file when one is given
            'name' : 'run3',
            'first_run' : 300000,
            'last_run' : None,
            'mathieson' : RUN2_MATHIESON,
            'adc_max' : 16384,
        },
    ],
    'excluded' : [
        # those 2 DE have lower HV for the run 529691
        {'first_run' : 529691, 'last_run' : 529691, 'de_ids' : [202, 300]},
    ],
}


@dataclass(frozen=True)
class Mathieson:
    '''Mathieson charge distribution along one direction, positions in cm'''
    sqrt_k3: float
    pitch: float

    @property
    def k2(self):
        return np.pi / 2. * (1. - self.sqrt_k3 / 2.)

    @property
    def k4(self):
        k1 = self.k2 * self.sqrt_k3 / 4. / np.arctan(self.sqrt_k3)
        return k1 / self.k2 / self.sqrt_k3

    def integrate(self, u1, u2):
        '''Fraction of the charge between u1 and u2 (distances to the avalanche point)'''
        u1 = np.asarray(u1, dtype=float) / self.pitch
        u2 = np.asarray(u2, dtype=float) / self.pitch
        return 2. * self.k4 * (np.arctan(self.sqrt_k3 * np.tanh(self.k2 * u2))
                               - np.arctan(self.sqrt_k3 * np.tanh(self.k2 * u1)))


@dataclass(frozen=True)
class RunConditions:
    run: int
    regime: str
    mathieson: dict
    adc_max: float
    excluded_de_ids: frozenset = field(default_factory=frozenset)

    def is_excluded(self, de_id):
        return int(de_id) in self.excluded_de_ids

    def mathieson_for_chamber(self, chamber_id):
        '''(x, y) Mathieson parameterizations of the station the chamber belongs to'''
        if chamber_id < 2:
            return self.mathieson['St1']
        return self.mathieson['St2345']


def _in_range(entry, run):
    if run < entry['first_run']:
        return False
    return entry['last_run'] is None or run <= entry['last_run']


def load_conditions(filename=None, calibration_fname=None):
    '''Return the conditions table, optionally overridden by a JSON file'''
    table = {key : list(value) for key, value in DEFAULT_CONDITIONS.items()}
    if filename is not None:
        with open(filename, 'r') as f:
            overrides = json.load(f)
        for key in table.keys():
            if key in overrides:
                table[key] = list(overrides[key])

    if calibration_fname is not None:
        with open(calibration_fname, 'r') as f:
            calibration = json.load(f)
        table['regimes'] = [dict(regime, **calibration) if regime['name'] == 'run3' else regime
                            for regime in table['regimes']]
    return table


def resolve_run_conditions(run, table=None):
    '''Resolve the conditions applying to run. Raise RuntimeError if no regime covers it'''
    if table is None:
        table = DEFAULT_CONDITIONS

    regimes = [regime for regime in table['regimes'] if _in_range(regime, run)]
    if len(regimes) != 1:
        raise RuntimeError('Invalid run number! {} matches {} calibration regimes'.format(run, len(regimes)))
    regime = regimes[0]

    excluded = set()
    for entry in table.get('excluded', []):
        if _in_range(entry, run):
            excluded.update(int(de_id) for de_id in entry['de_ids'])

    mathieson = {}
    for group, pitch in (('St1', PITCH_ST1), ('St2345', PITCH_ST2345)):
        sqrt_kx3, sqrt_ky3 = regime['mathieson'][group]
        mathieson[group] = (Mathieson(float(sqrt_kx3), pitch), Mathieson(float(sqrt_ky3), pitch))

    return RunConditions(run=run, regime=regime['name'], mathieson=mathieson,
                         adc_max=float(regime['adc_max']), excluded_de_ids=frozenset(excluded))
