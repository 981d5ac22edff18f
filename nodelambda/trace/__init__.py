"""
nodelambda.trace - Runtime dependency tracing.
"""

from nodelambda.trace.compile import ContentProvider, TraceOutput, compile_entrypoint
from nodelambda.trace.walker import TraceResult, TraceWarning, node_file_trace

__all__ = [
    "ContentProvider",
    "TraceOutput",
    "compile_entrypoint",
    "TraceResult",
    "TraceWarning",
    "node_file_trace",
]
