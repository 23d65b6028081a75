"""autotest - re-run Go tests on change and report only what moved."""

__version__ = "0.1.0"
