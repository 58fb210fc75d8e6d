"""holdsweep - bulk litigation hold enforcement for large account populations."""

__version__ = "0.4.0"
