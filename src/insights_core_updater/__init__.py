"""Insights Core updater.

Keeps a local copy of the Insights Core egg and its detached signature in
sync with console.redhat.com, downloading only when the origin reports a
different ETag than the one recorded by the previous successful run.
"""

__version__ = "0.1.0"
