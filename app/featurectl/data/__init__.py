"""Bundled data files for featurectl."""
