'''Pre-cluster charge-sharing study: selection of clean clusters and per-station histograms.'''
