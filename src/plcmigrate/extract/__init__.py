"""plcmigrate extract: text-driven extractors over Structured Text source.

Each extractor takes raw source and a project-relative path, never
raises on malformed input, and returns a typed result with a summary.
The ``*_from_files`` variants concatenate per-file records and recompute
the summary.

Public API::

    from plcmigrate.extract import extract_safety, extract_state_machines

    safety = extract_safety(source, "src/Main.st")
    for bypass in safety.bypasses:
        print(bypass.name, bypass.location.line)

    machines = extract_state_machines(source, "src/Main.st")
    print(machines.state_machines[0].visualizations.mermaid)
"""

from ._blocks import extract_blocks, extract_blocks_from_files
from ._comments import extract_comments, extract_comments_from_files, summarize_comments
from ._docstrings import (
    extract_docstrings,
    extract_docstrings_from_files,
    summarize_docstrings,
)
from ._knowledge import (
    KNOWLEDGE_PATTERNS,
    extract_tribal_knowledge,
    extract_tribal_knowledge_from_files,
    summarize_knowledge,
)
from ._safety import (
    CONTEXT_RULES,
    extract_safety,
    extract_safety_from_files,
    summarize_safety,
)
from ._state_machines import (
    COMMON_STATE_NAMES,
    extract_state_machines,
    extract_state_machines_from_files,
    infer_state_name,
    summarize_state_machines,
)
from ._text import SourceText
from ._timers import (
    COUNTER_TYPES,
    TIMER_TYPES,
    extract_timers_counters,
    extract_timers_counters_from_files,
    summarize_timers_counters,
)
from ._variables import (
    extract_variables,
    extract_variables_from_files,
    parse_array_type,
    summarize_variables,
)

__all__ = [
    "COMMON_STATE_NAMES",
    "CONTEXT_RULES",
    "COUNTER_TYPES",
    "KNOWLEDGE_PATTERNS",
    "SourceText",
    "TIMER_TYPES",
    "extract_blocks",
    "extract_blocks_from_files",
    "extract_comments",
    "extract_comments_from_files",
    "extract_docstrings",
    "extract_docstrings_from_files",
    "extract_safety",
    "extract_safety_from_files",
    "extract_state_machines",
    "extract_state_machines_from_files",
    "extract_timers_counters",
    "extract_timers_counters_from_files",
    "extract_tribal_knowledge",
    "extract_tribal_knowledge_from_files",
    "extract_variables",
    "extract_variables_from_files",
    "infer_state_name",
    "parse_array_type",
    "summarize_comments",
    "summarize_docstrings",
    "summarize_knowledge",
    "summarize_safety",
    "summarize_state_machines",
    "summarize_timers_counters",
    "summarize_variables",
]
