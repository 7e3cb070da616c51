"""
buildstrap - self-bootstrapping build launcher

The launcher acquires a payload package, stages the source tree and runs the
payload under a timeout. The payload runs the tool pipeline against variables
resolved from providers.
"""

__version__ = "0.1.0"
