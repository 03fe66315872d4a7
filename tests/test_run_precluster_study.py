import h5py
import numpy as np
import pytest

from precluster_study.reader import ClusterReader, write_records
from precluster_study.run_precluster_study import main

from conftest import make_digits, make_record

DEFECT_RUN = 529691


@pytest.fixture
def three_records():
    return [
        # excluded detector element for this run
        make_record(de_id=202, chamber_id=1, z=-545.),
        # all digits out of time
        make_record(digits=make_digits(time=200)),
        # nominal, chargeNB=6000, chargeB=4000
        make_record(),
    ]


@pytest.fixture
def in_fname(tmp_path, three_records):
    return write_records(str(tmp_path / 'clusters.h5'), three_records)


def test_reader(in_fname, three_records):
    reader = ClusterReader(in_fname)
    assert len(reader) == 3
    assert not reader.has_fit

    records = list(reader)
    assert [int(r.cluster['deId']) for r in records] == [202, 100, 100]
    assert records[1].digits.shape[0] == 6
    np.testing.assert_array_equal(records[1].digits['time'], 200)
    assert records[2].track_time == 100
    assert records[2].fit_parameters is None

    # iterating again restarts from the first record
    assert len(list(reader)) == 3


def test_write_records_does_not_overwrite(in_fname, three_records):
    with pytest.raises(RuntimeError):
        write_records(in_fname, three_records)


def test_reader_with_fit(tmp_path):
    fit = [0.3, 0.1, 0., 0., 3000., 7000.]
    fname = write_records(str(tmp_path / 'fit.h5'), [make_record(fit=fit), make_record(fit=fit)])
    records = list(ClusterReader(fname, require_fit=True))
    np.testing.assert_allclose(records[1].fit_parameters, fit)


def test_missing_fit_parameters(in_fname):
    with pytest.raises(RuntimeError):
        ClusterReader(in_fname, require_fit=True)


def test_three_record_scenario(tmp_path, in_fname, geo_fname):
    out_fname = str(tmp_path / 'displays.h5')
    agg = main(DEFECT_RUN, apply_time_selection=True, in_fname=in_fname, out_fname=out_fname,
               geo_fname=geo_fname)

    hists = dict(agg.histograms())
    assert hists['cluster/all/hCharge'].entries == 1
    assert hists['cluster/St1/hCharge'].entries == 1
    assert hists['cluster/St2/hCharge'].entries == 0

    h = hists['cluster/all/hChargeNB']
    assert h.counts[h.find_bin(0, 6000.)] == 1
    h = hists['cluster/all/hChargeB']
    assert h.counts[h.find_bin(0, 4000.)] == 1
    h = hists['cluster/St1/hChargeAsymm']
    assert h.counts[h.find_bin(0, 0.2)] == 1
    h = hists['cluster3d/St1/hPreClusterInfo3D']
    assert h.counts[h.find_bin(0, 6000.), h.find_bin(1, 4000.), h.find_bin(2, 0.)] == 1
    assert hists['digit_time/all/hTimeDiff'].entries == 6

    with h5py.File(out_fname, 'r') as f:
        assert f['cluster/all/hCharge'].attrs['entries'] == 1
        assert np.sum(f['cluster/St1/hSizeX/counts'][:]) == 1
        assert set(f['vs_wire'].keys()) == {'St1', 'St2', 'St345'}
        assert set(f['cluster'].keys()) == {'all', 'St1', 'St2', 'St345'}


def test_run_is_deterministic(tmp_path, in_fname, geo_fname):
    outputs = []
    for i in range(2):
        out_fname = str(tmp_path / 'displays_{}.h5'.format(i))
        main(DEFECT_RUN, apply_time_selection=True, in_fname=in_fname, out_fname=out_fname, geo_fname=geo_fname)
        with h5py.File(out_fname, 'r') as f:
            outputs.append(np.array(f['digit_charge/St1/hADCNBvsAsymm/counts']))
    np.testing.assert_array_equal(outputs[0], outputs[1])


def test_fit_flag_without_fit_data_fails_before_processing(tmp_path, in_fname, geo_fname):
    out_fname = tmp_path / 'displays.h5'
    with pytest.raises(RuntimeError):
        main(DEFECT_RUN, use_fit_charge=True, in_fname=in_fname, out_fname=str(out_fname), geo_fname=geo_fname)
    assert not out_fname.exists()


def test_draw(tmp_path, in_fname, geo_fname):
    out_fname = str(tmp_path / 'displays.h5')
    main(DEFECT_RUN, in_fname=in_fname, out_fname=out_fname, geo_fname=geo_fname, draw=True)
    assert (tmp_path / 'displays.pdf').stat().st_size > 0
