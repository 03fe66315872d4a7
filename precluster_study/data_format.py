#DATA FORMAT OF THE CLUSTER INPUT FILE WITH DESCRIPTIONS
#
# Every reconstructed cluster attached to a track has 1 entry in the 'data' group.
# - trackParameters, trackTime, clusters, digits_region (and fitParameters if present)
#   always have the same length, and an entry at index j is associated with a unique cluster
# - digits is a flat table, the digits of cluster j are digits[start_j:stop_j]
import numpy as np

DATA_GROUP = 'data'

track_param_dtype = np.dtype([
        # track position at the chamber plane [cm]
        ('x', 'f8'), ('y', 'f8'), ('z', 'f8'),
        # track momentum at the chamber plane [GeV/c]
        ('px', 'f8'), ('py', 'f8'), ('pz', 'f8'),
        # track charge sign (+1/-1)
        ('sign', 'i4'),
        ])

cluster_dtype = np.dtype([
        # detector element the cluster belongs to
        ('deId', 'i4'),
        # chamber of the detector element (0..9)
        ('chamberId', 'i4'),
        # reconstructed cluster centroid in global coordinates [cm]
        ('x', 'f8'), ('y', 'f8'), ('z', 'f8'),
        ])

digit_dtype = np.dtype([
        # detector element of the pad
        ('deId', 'i4'),
        # pad index inside the detector element cathode segmentation
        ('padId', 'i4'),
        # raw pad charge [ADC]
        ('adc', 'u4'),
        # digit time [bunch crossings / 4]
        ('time', 'i4'),
        # True if the pad belongs to the bending cathode plane
        ('isBending', '?'),
        ])

region_dtype = np.dtype([
        # first digit of the cluster in the flat digit table
        ('start', 'i8'),
        # one past the last digit of the cluster
        ('stop', 'i8'),
        ])

# fitParameters columns (only written when the external fit was run)
N_FIT_PARAMETERS = 6
FIT_LOCAL_X = 0
FIT_LOCAL_Y = 1
FIT_CHARGE_B = 4
FIT_CHARGE_NB = 5

data_store_nominal = {
        'trackParameters' : track_param_dtype,
        'trackTime' : np.dtype('i4'),
        'clusters' : cluster_dtype,
        'digits' : digit_dtype,
        'digits_region' : region_dtype,
        }

#OUTPUT FILE
#
# One HDF5 group per accumulator: <category>/<station>/<name>
# - category is one of the keys of CATEGORIES
# - station is one of STATION_NAMES, or ALL_STATIONS for the global accumulators
# each group holds 'counts' (plus 'sum_w', 'sum_w2' for profiles) and one 'edges_<axis>' dataset per axis
STATION_NAMES = ['St1', 'St2', 'St345']
ALL_STATIONS = 'all'

CATEGORIES = {
        # charge and size of accepted clusters
        'cluster' : 'PreClusterInfo',
        # (chargeNB, chargeB, dx) 3D accumulator
        'cluster3d' : 'PreClusterInfo3D',
        # charge and asymmetry versus distance to the closest wire
        'vs_wire' : 'PreClusterInfoVsWire',
        # digit time with respect to the track time
        'digit_time' : 'DigitTimeInfo',
        # digit charge versus cluster charge asymmetry
        'digit_charge' : 'DigitChargeInfo',
        }
