import numpy as np
import matplotlib
matplotlib.use('Agg')
from matplotlib import pyplot as plt
from matplotlib import colors as mcolors
from matplotlib.backends.backend_pdf import PdfPages

from precluster_study.histograms import Profile


def draw_histogram(ax, hist):
    '''Draw a 1D/2D histogram or a profile. 3D histograms are drawn as their projection on the first 2 axes'''
    ax.set_title(hist.title, fontsize=9)
    ax.set_xlabel(hist.axis_titles[0], fontsize=8)

    if isinstance(hist, Profile):
        centers = (hist.edges[0][1:] + hist.edges[0][:-1]) / 2
        ax.errorbar(centers, hist.mean(), yerr=hist.error(), fmt='.', markersize=2, color='black')
        ax.set_ylabel(hist.value_title, fontsize=8)
        return ax

    contents = hist.bin_contents()
    if hist.ndim == 3:
        contents = np.sum(contents, axis=2)

    if hist.ndim == 1:
        ax.stairs(contents, hist.edges[0], color='blue')
        ax.set_ylabel('entries', fontsize=8)
        if np.any(contents > 0): ax.set_yscale('log')
    else:
        ma_contents = np.ma.masked_where(contents <= 0, contents)
        norm = mcolors.LogNorm() if np.any(contents > 0) else None
        mesh = ax.pcolormesh(hist.edges[0], hist.edges[1], ma_contents.T, norm=norm, cmap='plasma')
        ax.set_ylabel(hist.axis_titles[1], fontsize=8)
        plt.colorbar(mesh, ax=ax, fraction=0.05)

    ax.text(0.98, 0.95, 'entries: {}'.format(hist.entries), transform=ax.transAxes,
            ha='right', va='top', fontsize=7)
    return ax


def draw_group(group, title):
    '''One figure with all histograms of a group'''
    n = len(group)
    ncols = min(n, 3)
    nrows = (n + ncols - 1) // ncols
    fig=plt.figure(figsize=(5*ncols, 4*nrows))
    fig.suptitle(title, fontsize=14, weight='bold')
    for i, hist in enumerate(group.values()):
        ax=fig.add_subplot(nrows, ncols, i+1)
        draw_histogram(ax, hist)
    fig.tight_layout()
    return fig


def draw_all(aggregator, pdf_fname):
    '''Draw every group of the aggregator, one page per group'''
    with PdfPages(pdf_fname) as pdf:
        for category, station, group in aggregator.groups():
            fig = draw_group(group, '{} - {}'.format(category, station))
            pdf.savefig(fig)
            plt.close(fig)
    return pdf_fname
