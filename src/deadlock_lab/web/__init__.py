"""HTTP service for the deadlock lab.

This package provides a Flask application that exposes the analysis
engine as JSON endpoints.  It is an **optional** extra — install with::

    pip install deadlock-lab[web]

The ``create_app`` factory in ``app.py`` wires up the detect, step,
resolve, simulate-request and graph endpoints plus export/import and
a health check.
"""
