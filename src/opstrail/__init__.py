"""
opstrail - operation execution and reporting engine.

Runs named, versioned units of work under a retry policy, composes them
into sequences and keeps an auditable tree of reports for every
execution.

- opstrail.core: errors, logging, settings
- opstrail.operations: definitions, reporters, execute_operation/execute_sequence
- opstrail.cli: report inspection CLI
"""

__version__ = "0.1.0"

from opstrail.operations import *  # noqa
