"""relayrun - run locally built test binaries on a remote host over SSH"""

__version__ = "0.1.0"
