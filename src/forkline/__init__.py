"""
Forkline: declarative ETL pipelines that fan one lazily produced record
stream out to many outputs.

A pipeline is an immutable tree of named stages (one input, sequential
transforms, one or more terminal outputs, nested fork groups) that is built
once and driven any number of times with different run-time arguments.
"""

__version__ = "0.1.0"
