import argparse
import os
import time

from tqdm import tqdm

from precluster_study.aggregator import Aggregator
from precluster_study.geometry import load_geo
from precluster_study.reader import ClusterReader
from precluster_study.run_conditions import load_conditions, resolve_run_conditions
from precluster_study.selection import OPTIONAL_CUTS, Pipeline, SelectionFlags

# refresh the progress bar every N clusters
PROGRESS_INTERVAL = 100000


def run_study(reader, pipeline, aggregator, progress=True):
    '''Process every record of reader, fill aggregator with the accepted ones'''
    for record in tqdm(reader, total=len(reader), desc='processing clusters...', disable=not progress,
                       miniters=PROGRESS_INTERVAL, mininterval=0):
        accepted = pipeline.process(record)
        if accepted is None: continue
        aggregator.fill(accepted)
    return aggregator


def main(run, apply_track_selection=False, apply_cluster_selection=False, apply_time_selection=False,
         correct_charge=False, use_fit_pos=False, use_fit_charge=False,
         in_fname='clusters.h5', out_fname='displays.h5', geo_fname='geo-mch.json',
         conditions_fname=None, calibration_fname=None, cuts=(), draw=False):

    start=time.time()

    flags = SelectionFlags(
        apply_track_selection=apply_track_selection,
        apply_cluster_selection=apply_cluster_selection,
        apply_time_selection=apply_time_selection,
        correct_charge=correct_charge,
        use_fit_pos=use_fit_pos,
        use_fit_charge=use_fit_charge,
    )

    conditions = resolve_run_conditions(run, load_conditions(conditions_fname, calibration_fname))
    print('==> Run {}: {} regime, excluded DE {}:\t{:0.4f}s'.format(
        run, conditions.regime, sorted(conditions.excluded_de_ids), time.time()-start))

    geo = load_geo(geo_fname)
    print('==> Loaded geometry {}:\t{:0.4f}s'.format(geo_fname, time.time()-start))

    # fails before any record is processed if the fit parameters are needed but missing
    reader = ClusterReader(in_fname, require_fit=flags.needs_fit)
    print('==> Opened input file ({} clusters):\t{:0.4f}s'.format(len(reader), time.time()-start))

    pipeline = Pipeline(flags, conditions, geo, extra_cuts=cuts)
    aggregator = Aggregator(adc_max=conditions.adc_max)

    run_study(reader, pipeline, aggregator)
    print('==> Processing completed, {} / {} clusters selected:\t{:0.4f}s'.format(
        pipeline.n_accepted, len(reader), time.time()-start))
    for stage in pipeline.stages:
        print('\trejected by {}:\t{}'.format(stage.name, pipeline.rejections[stage.name]))

    aggregator.save(out_fname)

    if draw:
        from precluster_study.display import draw_all
        pdf_fname = os.path.splitext(out_fname)[0] + '.pdf'
        draw_all(aggregator, pdf_fname)
        print('==> Displays drawn to {}:\t{:0.4f}s'.format(pdf_fname, time.time()-start))

    print('Completed! Data saved to {}'.format(out_fname))
    return aggregator


def cli():
        parser = argparse.ArgumentParser(description='''Draw pre-cluster and associated digit information''')
        parser.add_argument('--run', '-r', required=True, type=int, help='''Run number, selects the calibration regime and the excluded detector elements''')
        parser.add_argument('--apply_track_selection', action='store_true', help='''Cut on the track angle at the chamber''')
        parser.add_argument('--apply_cluster_selection', action='store_true', help='''Cut on the cluster charge asymmetry''')
        parser.add_argument('--apply_time_selection', action='store_true', help='''Keep only digits in time with the track''')
        parser.add_argument('--correct_charge', action='store_true', help='''Correct the pad charges for the charge fraction outside the pre-cluster''')
        parser.add_argument('--use_fit_pos', action='store_true', help='''Use the fitted cluster position (requires fitParameters)''')
        parser.add_argument('--use_fit_charge', action='store_true', help='''Use the fitted cluster charges (requires fitParameters)''')
        parser.add_argument('--in_fname', '-i', default='clusters.h5', type=str, help='''Cluster file to process''')
        parser.add_argument('--out_fname', '-o', default='displays.h5', type=str, help='''Name/path for output to be written''')
        parser.add_argument('--geo_fname', '-g', default='geo-mch.json', type=str, help='''Detector element geometry file''')
        parser.add_argument('--conditions_fname', default=None, type=str, help='''JSON file overriding the run conditions table''')
        parser.add_argument('--calibration_fname', default=None, type=str, help='''JSON file with the response parameters of the run3 regime''')
        parser.add_argument('--cut', dest='cuts', action='append', default=[], choices=OPTIONAL_CUTS, help='''Enable an additional cut (repeatable)''')
        parser.add_argument('--draw', action='store_true', help='''Also draw all histograms to a pdf next to the output''')
        args = parser.parse_args()
        main(**vars(args))


if __name__ == '__main__':
        cli()
