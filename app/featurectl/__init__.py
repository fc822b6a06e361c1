"""featurectl - Curate exportable configuration packages.

Select which configuration items belong to a feature package and
generate the package from the command line.
"""

__version__ = "0.4.0"
