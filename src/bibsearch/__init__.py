"""bibsearch — One normalized search contract over bibliographic search APIs."""

__version__ = "0.1.0"
