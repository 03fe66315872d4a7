'''
Selection of clean pre-clusters and derivation of the quantities used to study charge sharing.

A record goes through an ordered chain of stages. Each stage either keeps the record
(possibly after computing new quantities on it) or rejects it, in which case the
remaining stages are skipped. The order matters: later stages use quantities that
are only meaningful once the earlier ones have passed.
'''
from collections import Counter, namedtuple
from dataclasses import dataclass
from typing import Optional

import numpy as np

from precluster_study.data_format import FIT_CHARGE_B, FIT_CHARGE_NB, FIT_LOCAL_X, FIT_LOCAL_Y
from precluster_study.digits import get_charge, get_charge_fraction, get_size, is_composite
from precluster_study.geometry import distance_to_closest_wire, global_to_local

# track angle at the chamber [deg]
MAX_TRACK_ANGLE = 10.
# digit time offset and coincidence window with the track time
DIGIT_TIME_OFFSET = 1.5
MAX_DIGIT_TIME_DIFF = 10.
MAX_CHARGE_ASYMM = 0.5

# alternate cuts, off unless requested by name
MAX_WIRE_DISTANCE = 0.015
MIN_CHARGE = 4000.
MIN_SIZE = 2


@dataclass(frozen=True)
class SelectionFlags:
    apply_track_selection: bool = False
    apply_cluster_selection: bool = False
    apply_time_selection: bool = False
    correct_charge: bool = False
    use_fit_pos: bool = False
    use_fit_charge: bool = False

    @property
    def needs_fit(self):
        return self.use_fit_pos or self.use_fit_charge


@dataclass
class Candidate:
    '''Record being processed, with the quantities derived so far'''
    record: object
    digits: np.ndarray
    size_x: int = 0
    size_y: int = 0
    local_x: float = 0.
    local_y: float = 0.
    dx: float = 0.
    charge_nb: float = 0.
    charge_b: float = 0.
    charge_asymm: float = 0.


@dataclass(frozen=True)
class Accepted:
    '''Quantities of a selected pre-cluster, as used by the Aggregator'''
    charge_nb: float
    charge_b: float
    charge_asymm: float
    size_x: int
    size_y: int
    dx: float
    station: int
    digits: np.ndarray
    track_time: int


def station_index(chamber_id):
    '''0 for St1 (chambers 0,1), 1 for St2 (chambers 2,3), 2 for St345'''
    chamber_id = int(chamber_id)
    return chamber_id // 2 if chamber_id < 4 else 2


def track_angle(track_param):
    '''Track angle at the chamber in the bending plane [deg]'''
    return np.degrees(np.arctan2(track_param['py'], -track_param['pz']))


def charge_asymmetry(charge_nb, charge_b):
    '''(NB - B) / (NB + B), None if there is no charge at all'''
    total = charge_nb + charge_b
    if total == 0:
        return None
    return (charge_nb - charge_b) / total


###
# position and charge providers, chosen once per job

class GeometryPosition:
    '''Local position from the cluster global position'''

    def __init__(self, geo):
        self.geo = geo

    def __call__(self, record):
        cluster = record.cluster
        local = global_to_local(self.geo, int(cluster['deId']), cluster['x'], cluster['y'], cluster['z'])
        return float(local[0]), float(local[1])


class FitPosition:
    '''Local position from the external fit'''

    def __call__(self, record):
        if record.fit_parameters is None:
            raise RuntimeError('fitParameters are required to use the fitted position')
        return float(record.fit_parameters[FIT_LOCAL_X]), float(record.fit_parameters[FIT_LOCAL_Y])


class MathiesonCorrectedCharge:
    '''Pad charges divided by the fraction of the Mathieson distribution the fired pads cover'''

    def __init__(self, geo, conditions):
        self.geo = geo
        self.conditions = conditions

    def __call__(self, candidate):
        mathieson = self.conditions.mathieson_for_chamber(int(candidate.record.cluster['chamberId']))
        frac_nb, frac_b = get_charge_fraction(candidate.digits, self.geo, candidate.local_x,
                                              candidate.local_y, mathieson)
        if frac_nb <= 0 or frac_b <= 0:
            return None
        return candidate.charge_nb / frac_nb, candidate.charge_b / frac_b


class FitCharge:
    '''Charges from the external fit'''

    def __call__(self, candidate):
        fit = candidate.record.fit_parameters
        if fit is None:
            raise RuntimeError('fitParameters are required to use the fitted charge')
        return float(fit[FIT_CHARGE_NB]), float(fit[FIT_CHARGE_B])


###
# stages: func(pipeline, candidate) -> True to keep the record

def reject_excluded_de(pipeline, c):
    return not pipeline.conditions.is_excluded(c.record.cluster['deId'])


def cut_track_angle(pipeline, c):
    return not abs(track_angle(c.record.track_param)) > MAX_TRACK_ANGLE


def cut_track_sign(pipeline, c):
    return not c.record.track_param['sign'] > 0


def select_digit_time(pipeline, c):
    dt = c.digits['time'].astype(float) + DIGIT_TIME_OFFSET - c.record.track_time
    c.digits = c.digits[~(np.absolute(dt) > MAX_DIGIT_TIME_DIFF)]
    return c.digits.shape[0] > 0


def reject_mono_cathode(pipeline, c):
    c.size_x, c.size_y = get_size(c.digits, pipeline.geo)
    return c.size_x > 0 and c.size_y > 0


def reject_composite(pipeline, c):
    return not is_composite(c.digits, pipeline.geo)


def derive_position(pipeline, c):
    c.local_x, c.local_y = pipeline.position(c.record)
    c.dx = float(distance_to_closest_wire(pipeline.geo, int(c.record.cluster['deId']), c.local_x))
    return True


def cut_wire_distance(pipeline, c):
    return not abs(c.dx) > MAX_WIRE_DISTANCE


def derive_charge(pipeline, c):
    c.charge_nb, c.charge_b = get_charge(c.digits)
    asymm = charge_asymmetry(c.charge_nb, c.charge_b)
    if asymm is None:
        return False
    c.charge_asymm = asymm
    return True


def cut_min_charge(pipeline, c):
    return not 0.5 * (c.charge_nb + c.charge_b) < MIN_CHARGE


def cut_charge_asymmetry(pipeline, c):
    return not abs(c.charge_asymm) > MAX_CHARGE_ASYMM


def correct_charge(pipeline, c):
    charges = pipeline.charge_correction(c)
    if charges is None:
        return False
    c.charge_nb, c.charge_b = charges
    asymm = charge_asymmetry(c.charge_nb, c.charge_b)
    if asymm is None:
        return False
    c.charge_asymm = asymm
    return True


def cut_min_size(pipeline, c):
    return not (c.size_x < MIN_SIZE or c.size_y < MIN_SIZE)


def cut_size_asymmetry(pipeline, c):
    return not (c.size_y > c.size_x + 3 or c.size_x > c.size_y + 2)


# name, function, whether the stage is on for the given flags, whether it must be requested explicitly
Stage = namedtuple('Stage', ['name', 'func', 'active', 'optional'])

def always(flags):
    return True


STAGES = [
    Stage('excluded_de', reject_excluded_de, always, False),
    Stage('track_angle', cut_track_angle, lambda flags: flags.apply_track_selection, False),
    Stage('track_sign', cut_track_sign, lambda flags: flags.apply_track_selection, True),
    Stage('digit_time', select_digit_time, lambda flags: flags.apply_time_selection, False),
    Stage('mono_cathode', reject_mono_cathode, always, False),
    Stage('composite', reject_composite, always, False),
    Stage('position', derive_position, always, False),
    Stage('wire_distance', cut_wire_distance, lambda flags: flags.apply_cluster_selection, True),
    Stage('charge', derive_charge, always, False),
    Stage('min_charge', cut_min_charge, lambda flags: flags.apply_cluster_selection, True),
    Stage('charge_asymmetry', cut_charge_asymmetry, lambda flags: flags.apply_cluster_selection, False),
    Stage('charge_correction', correct_charge, lambda flags: flags.correct_charge or flags.use_fit_charge, False),
    Stage('corrected_charge_asymmetry', cut_charge_asymmetry,
          lambda flags: flags.apply_cluster_selection and (flags.correct_charge or flags.use_fit_charge), False),
    Stage('min_size', cut_min_size, lambda flags: flags.apply_cluster_selection, True),
    Stage('size_asymmetry', cut_size_asymmetry, lambda flags: flags.apply_cluster_selection, True),
]

OPTIONAL_CUTS = [stage.name for stage in STAGES if stage.optional]


def build_chain(flags, extra_cuts=()):
    '''Return the ordered list of stages active for flags, including the requested optional cuts'''
    unknown = set(extra_cuts) - set(OPTIONAL_CUTS)
    if unknown:
        raise RuntimeError('Invalid cut name(s)! {} (available: {})'.format(sorted(unknown), OPTIONAL_CUTS))
    return [stage for stage in STAGES
            if stage.active(flags) and (not stage.optional or stage.name in extra_cuts)]


class Pipeline:
    '''Select pre-clusters and compute their derived quantities'''

    def __init__(self, flags, conditions, geo, extra_cuts=()):
        self.flags = flags
        self.conditions = conditions
        self.geo = geo
        self.stages = build_chain(flags, extra_cuts)

        self.position = FitPosition() if flags.use_fit_pos else GeometryPosition(geo)
        self.charge_correction = None
        if flags.use_fit_charge:
            self.charge_correction = FitCharge()
        elif flags.correct_charge:
            self.charge_correction = MathiesonCorrectedCharge(geo, conditions)

        # number of records rejected by each stage
        self.rejections = Counter()
        self.n_accepted = 0

    def process(self, record) -> Optional[Accepted]:
        c = Candidate(record=record, digits=record.digits)
        for stage in self.stages:
            if not stage.func(self, c):
                self.rejections[stage.name] += 1
                return None

        self.n_accepted += 1
        return Accepted(
            charge_nb=c.charge_nb,
            charge_b=c.charge_b,
            charge_asymm=c.charge_asymm,
            size_x=c.size_x,
            size_y=c.size_y,
            dx=c.dx,
            station=station_index(record.cluster['chamberId']),
            digits=c.digits,
            track_time=record.track_time,
        )
