"""CLI package for Claude Pulse

This package provides the command-line front end for logging in, fetching
usage and running the local HTTP bridge.
"""
