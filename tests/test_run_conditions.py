import json

import pytest

from precluster_study.run_conditions import (PITCH_ST1, PITCH_ST2345, load_conditions,
                                             resolve_run_conditions)


def test_run2_regime():
    conditions = resolve_run_conditions(296000)
    assert conditions.regime == 'run2'
    assert conditions.excluded_de_ids == frozenset()

    mathieson_x, mathieson_y = conditions.mathieson_for_chamber(1)
    assert (mathieson_x.sqrt_k3, mathieson_y.sqrt_k3) == (0.7000, 0.7550)
    assert mathieson_x.pitch == PITCH_ST1

    mathieson_x, mathieson_y = conditions.mathieson_for_chamber(2)
    assert (mathieson_x.sqrt_k3, mathieson_y.sqrt_k3) == (0.7131, 0.7642)
    assert mathieson_y.pitch == PITCH_ST2345


def test_run3_regime_boundary():
    assert resolve_run_conditions(299999).regime == 'run2'
    assert resolve_run_conditions(300000).regime == 'run3'


def test_known_defect_run():
    conditions = resolve_run_conditions(529691)
    assert conditions.regime == 'run3'
    assert conditions.is_excluded(202)
    assert conditions.is_excluded(300)
    assert not conditions.is_excluded(100)
    assert not resolve_run_conditions(529692).is_excluded(202)


def test_invalid_run():
    with pytest.raises(RuntimeError):
        resolve_run_conditions(-1)


def test_conditions_override_file(tmp_path):
    fname = tmp_path / 'conditions.json'
    with open(fname, 'w') as f:
        json.dump({'excluded' : [{'first_run' : 550000, 'last_run' : None, 'de_ids' : [1025]}]}, f)

    table = load_conditions(str(fname))
    assert resolve_run_conditions(560000, table).excluded_de_ids == frozenset({1025})
    assert not resolve_run_conditions(529691, table).is_excluded(202)
    # regimes are kept from the defaults
    assert resolve_run_conditions(100, table).regime == 'run2'


def test_calibration_file_sets_run3_response(tmp_path):
    fname = tmp_path / 'calibration.json'
    with open(fname, 'w') as f:
        json.dump({'mathieson' : {'St1' : [0.71, 0.76], 'St2345' : [0.72, 0.77]}}, f)

    table = load_conditions(calibration_fname=str(fname))
    mathieson_x, mathieson_y = resolve_run_conditions(530000, table).mathieson_for_chamber(5)
    assert (mathieson_x.sqrt_k3, mathieson_y.sqrt_k3) == (0.72, 0.77)

    mathieson_x, _ = resolve_run_conditions(200000, table).mathieson_for_chamber(0)
    assert mathieson_x.sqrt_k3 == 0.7000
