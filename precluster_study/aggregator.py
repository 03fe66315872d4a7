'''
Accumulation of the selected pre-clusters into histogram groups, globally and per station.
'''
import h5py

from precluster_study.data_format import ALL_STATIONS, CATEGORIES, STATION_NAMES
from precluster_study.histograms import Histogram, Profile, read_h5

MAX_CHARGE = 20000.
MAX_SIZE = 20
# distance to the closest wire [cm]
MAX_DX = 0.15
MAX_TIME_DIFF = 100


###
# group creation

def create_cluster_info():
    return [
        Histogram('hCharge', 'cluster charge', [(400, 0., MAX_CHARGE, 'charge (ADC)')]),
        Histogram('hChargeNB', 'non-bending charge', [(400, 0., MAX_CHARGE, 'charge NB (ADC)')]),
        Histogram('hChargeB', 'bending charge', [(400, 0., MAX_CHARGE, 'charge B (ADC)')]),
        Histogram('hChargeBvsNB', 'bending vs non-bending charge',
                  [(200, 0., MAX_CHARGE, 'charge NB (ADC)'), (200, 0., MAX_CHARGE, 'charge B (ADC)')]),
        Histogram('hChargeAsymm', 'charge asymmetry', [(201, -1.005, 1.005, '(NB - B) / (NB + B)')]),
        Histogram('hSizeX', 'size in x (NB)', [(MAX_SIZE, -0.5, MAX_SIZE - 0.5, 'size X (pads)')]),
        Histogram('hSizeY', 'size in y (B)', [(MAX_SIZE, -0.5, MAX_SIZE - 0.5, 'size Y (pads)')]),
        Histogram('hSizeYvsX', 'size in y vs size in x',
                  [(MAX_SIZE, -0.5, MAX_SIZE - 0.5, 'size X (pads)'), (MAX_SIZE, -0.5, MAX_SIZE - 0.5, 'size Y (pads)')]),
        Profile('pChargeAsymmVsSizeX', 'mean charge asymmetry vs size in x',
                (MAX_SIZE, -0.5, MAX_SIZE - 0.5, 'size X (pads)'), '(NB - B) / (NB + B)'),
    ]


def create_cluster_info_3d():
    return [
        Histogram('hPreClusterInfo3D', 'charge NB vs charge B vs distance to closest wire',
                  [(100, 0., MAX_CHARGE, 'charge NB (ADC)'), (100, 0., MAX_CHARGE, 'charge B (ADC)'),
                   (60, -MAX_DX, MAX_DX, 'dx (cm)')]),
    ]


def create_cluster_info_vs_wire():
    return [
        Histogram('hChargeVsWire', 'cluster charge vs distance to closest wire',
                  [(60, -MAX_DX, MAX_DX, 'dx (cm)'), (200, 0., MAX_CHARGE, 'charge (ADC)')]),
        Histogram('hChargeAsymmVsWire', 'charge asymmetry vs distance to closest wire',
                  [(60, -MAX_DX, MAX_DX, 'dx (cm)'), (201, -1.005, 1.005, '(NB - B) / (NB + B)')]),
        Profile('pChargeNBVsWire', 'mean non-bending charge vs distance to closest wire',
                (60, -MAX_DX, MAX_DX, 'dx (cm)'), 'charge NB (ADC)'),
        Profile('pChargeBVsWire', 'mean bending charge vs distance to closest wire',
                (60, -MAX_DX, MAX_DX, 'dx (cm)'), 'charge B (ADC)'),
        Profile('pChargeAsymmVsWire', 'mean charge asymmetry vs distance to closest wire',
                (60, -MAX_DX, MAX_DX, 'dx (cm)'), '(NB - B) / (NB + B)'),
    ]


def create_digit_time_info():
    return [
        Histogram('hTimeDiff', 'digit time - track time',
                  [(2 * MAX_TIME_DIFF, -MAX_TIME_DIFF, MAX_TIME_DIFF, 'digit time - track time')]),
    ]


def create_digit_charge_info(adc_max):
    hists = []
    for cathode in ('NB', 'B'):
        hists += [
            Histogram('hADC{}'.format(cathode), 'digit charge ({})'.format(cathode),
                      [(512, 0., adc_max, 'ADC')]),
            Histogram('hADC{}vsAsymm'.format(cathode), 'digit charge ({}) vs charge asymmetry'.format(cathode),
                      [(101, -1.01, 1.01, '(NB - B) / (NB + B)'), (256, 0., adc_max, 'ADC')]),
            Profile('pADC{}vsAsymm'.format(cathode), 'mean digit charge ({}) vs charge asymmetry'.format(cathode),
                    (101, -1.01, 1.01, '(NB - B) / (NB + B)'), 'ADC'),
        ]
    return hists


###
# filling

def fill_cluster_info(group, charge_nb, charge_b, size_x, size_y):
    charge_asymm = (charge_nb - charge_b) / (charge_nb + charge_b)
    group['hCharge'].fill(0.5 * (charge_nb + charge_b))
    group['hChargeNB'].fill(charge_nb)
    group['hChargeB'].fill(charge_b)
    group['hChargeBvsNB'].fill(charge_nb, charge_b)
    group['hChargeAsymm'].fill(charge_asymm)
    group['hSizeX'].fill(size_x)
    group['hSizeY'].fill(size_y)
    group['hSizeYvsX'].fill(size_x, size_y)
    group['pChargeAsymmVsSizeX'].fill(size_x, charge_asymm)


def fill_cluster_info_3d(group, charge_nb, charge_b, dx):
    group['hPreClusterInfo3D'].fill(charge_nb, charge_b, dx)


def fill_cluster_info_vs_wire(group, charge_nb, charge_b, dx):
    charge_asymm = (charge_nb - charge_b) / (charge_nb + charge_b)
    group['hChargeVsWire'].fill(dx, 0.5 * (charge_nb + charge_b))
    group['hChargeAsymmVsWire'].fill(dx, charge_asymm)
    group['pChargeNBVsWire'].fill(dx, charge_nb)
    group['pChargeBVsWire'].fill(dx, charge_b)
    group['pChargeAsymmVsWire'].fill(dx, charge_asymm)


def fill_digit_time_info(group, digit, track_time):
    group['hTimeDiff'].fill(int(digit['time']) - track_time)


def fill_digit_charge_info(group, digit, charge_asymm):
    cathode = 'B' if digit['isBending'] else 'NB'
    adc = float(digit['adc'])
    group['hADC{}'.format(cathode)].fill(adc)
    group['hADC{}vsAsymm'.format(cathode)].fill(charge_asymm, adc)
    group['pADC{}vsAsymm'.format(cathode)].fill(charge_asymm, adc)


def _as_group(hists):
    return {hist.name : hist for hist in hists}


class Aggregator:
    '''Owns every histogram group of the study'''

    def __init__(self, adc_max=4096.):
        self.adc_max = adc_max

        self.cluster_info = _as_group(create_cluster_info())
        self.cluster_info_st = [_as_group(create_cluster_info()) for _ in STATION_NAMES]

        self.cluster_info_3d = _as_group(create_cluster_info_3d())
        self.cluster_info_3d_st = [_as_group(create_cluster_info_3d()) for _ in STATION_NAMES]

        self.cluster_info_vs_wire_st = [_as_group(create_cluster_info_vs_wire()) for _ in STATION_NAMES]

        self.digit_time_info = _as_group(create_digit_time_info())
        self.digit_charge_info = _as_group(create_digit_charge_info(adc_max))
        self.digit_charge_info_st = [_as_group(create_digit_charge_info(adc_max)) for _ in STATION_NAMES]

    def fill(self, accepted):
        '''Add one selected pre-cluster and all its digits'''
        a = accepted
        fill_cluster_info(self.cluster_info, a.charge_nb, a.charge_b, a.size_x, a.size_y)
        fill_cluster_info_3d(self.cluster_info_3d, a.charge_nb, a.charge_b, a.dx)
        fill_cluster_info(self.cluster_info_st[a.station], a.charge_nb, a.charge_b, a.size_x, a.size_y)
        fill_cluster_info_3d(self.cluster_info_3d_st[a.station], a.charge_nb, a.charge_b, a.dx)
        fill_cluster_info_vs_wire(self.cluster_info_vs_wire_st[a.station], a.charge_nb, a.charge_b, a.dx)

        for digit in a.digits:
            fill_digit_time_info(self.digit_time_info, digit, a.track_time)
            fill_digit_charge_info(self.digit_charge_info, digit, a.charge_asymm)
            fill_digit_charge_info(self.digit_charge_info_st[a.station], digit, a.charge_asymm)

    def groups(self):
        '''Yield (category, station, group) for every histogram group'''
        yield 'cluster', ALL_STATIONS, self.cluster_info
        for st, group in zip(STATION_NAMES, self.cluster_info_st):
            yield 'cluster', st, group

        yield 'cluster3d', ALL_STATIONS, self.cluster_info_3d
        for st, group in zip(STATION_NAMES, self.cluster_info_3d_st):
            yield 'cluster3d', st, group

        for st, group in zip(STATION_NAMES, self.cluster_info_vs_wire_st):
            yield 'vs_wire', st, group

        yield 'digit_time', ALL_STATIONS, self.digit_time_info

        yield 'digit_charge', ALL_STATIONS, self.digit_charge_info
        for st, group in zip(STATION_NAMES, self.digit_charge_info_st):
            yield 'digit_charge', st, group

    def histograms(self):
        '''Yield (path, histogram) for every histogram'''
        for category, station, group in self.groups():
            for name, hist in group.items():
                yield '{}/{}/{}'.format(category, station, name), hist

    def merge(self, other):
        '''Add the content of another Aggregator filled with the same binning'''
        others = dict(other.histograms())
        for path, hist in self.histograms():
            hist.merge(others[path])
        return self

    def save(self, fname):
        '''Write all histograms to fname (recreated)'''
        with h5py.File(fname, 'w') as f:
            f.attrs['adc_max'] = self.adc_max
            for category in CATEGORIES.keys():
                f.create_group(category).attrs['title'] = CATEGORIES[category]
            for path, hist in self.histograms():
                hist.to_h5(f.create_group(path))
        return fname

    @classmethod
    def load(cls, fname):
        with h5py.File(fname, 'r') as f:
            agg = cls(adc_max=float(f.attrs['adc_max']))
            for category, station, group in agg.groups():
                for name in list(group.keys()):
                    group[name] = read_h5(f['{}/{}/{}'.format(category, station, name)], name)
        return agg
