"""Benchmarking subsystem for packbench.

Runs each suite in a fresh worker process, repeats the launch a
configured number of times, and re-runs the whole pack while the time
deviation stays above the configured threshold.
"""
