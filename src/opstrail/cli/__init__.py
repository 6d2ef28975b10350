"""
CLI layer for opstrail.

Inspects report dumps written with ``opstrail.operations.dump_reports``.
All report logic lives in ``opstrail.operations``; this package handles
argument parsing and terminal output only.

Entry point::

    opstrail --help
"""

from opstrail.cli.app import app

__all__ = ["app"]
