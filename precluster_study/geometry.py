import json
import numpy as np

CATHODES = ('nb', 'b')


def load_geo(filename='geo-mch.json'):
    ''' Load geometry file and np-ize it'''
    geo_json={}
    with open(filename, 'r') as f:
        geo_json = json.load(f)

    geo = {}
    for de_id in geo_json.keys():
        de = geo_json[de_id]
        geo[int(de_id)] = {
            'chamber_id' : int(de['chamber_id']),
            'translation' : np.array(de['translation'], dtype=float),
            'rotation' : np.array(de['rotation'], dtype=float).reshape(3, 3),
            'wire_pitch' : float(de['wire_pitch']),
            'wire_offset' : float(de.get('wire_offset', 0.)),
            'cathodes' : {
                cathode : {
                    'origin' : np.array(de['cathodes'][cathode]['origin'], dtype=float),
                    'pad_size' : np.array(de['cathodes'][cathode]['pad_size'], dtype=float),
                    'n_pads_x' : int(de['cathodes'][cathode]['n_pads_x']),
                } for cathode in CATHODES
            },
        }

    return geo


def save_geo(geo_dict, filename='geo-mch.json'):
    '''Save geometry from a dictionary with de_id : detector element description'''

    geo = {}
    for de_id in geo_dict.keys():
        de = geo_dict[de_id]
        geo[int(de_id)] = {
            'chamber_id' : int(de['chamber_id']),
            'translation' : [float(v) for v in np.ravel(de['translation'])],
            'rotation' : np.asarray(de['rotation'], dtype=float).reshape(3, 3).tolist(),
            'wire_pitch' : float(de['wire_pitch']),
            'wire_offset' : float(de.get('wire_offset', 0.)),
            'cathodes' : {
                cathode : {
                    'origin' : [float(v) for v in de['cathodes'][cathode]['origin']],
                    'pad_size' : [float(v) for v in de['cathodes'][cathode]['pad_size']],
                    'n_pads_x' : int(de['cathodes'][cathode]['n_pads_x']),
                } for cathode in CATHODES
            },
        }

    with open(filename, 'w') as f:
        json.dump(geo, f, indent=4)

    return filename


def global_to_local(geo, de_id, x, y, z):
    '''Transform global position (x,y,z) into the local frame of detector element de_id'''
    de = geo[de_id]
    return de['rotation'].T @ (np.array([x, y, z], dtype=float) - de['translation'])


def distance_to_closest_wire(geo, de_id, local_x):
    '''Signed distance from local_x to the closest anode wire'''
    pitch = geo[de_id]['wire_pitch']
    offset = geo[de_id]['wire_offset']
    closest_wire = offset + np.rint((local_x - offset) / pitch) * pitch
    return local_x - closest_wire


def pad_index(geo, de_id, pad_id, is_bending):
    '''Return (ix, iy) column/row of pad pad_id on the given cathode'''
    n_pads_x = geo[de_id]['cathodes']['b' if is_bending else 'nb']['n_pads_x']
    return pad_id % n_pads_x, pad_id // n_pads_x


def pad_position(geo, de_id, pad_id, is_bending):
    '''Return local (x, y) of the pad center and its (dx, dy) half-sizes'''
    cathode = geo[de_id]['cathodes']['b' if is_bending else 'nb']
    ix, iy = pad_index(geo, de_id, pad_id, is_bending)
    size = cathode['pad_size']
    center = cathode['origin'] + (np.array([ix, iy]) + 0.5) * size
    return center, size / 2
