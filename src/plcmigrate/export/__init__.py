"""plcmigrate export: report-ready renderings of analysis records.

Public API::

    from plcmigrate.export import render_mermaid, render_ascii, pou_rows
    print(render_mermaid(sm.pou_name, sm.state_variable, sm.states, sm.transitions))
"""

from .diagrams import render_ascii, render_mermaid
from .rows import (
    docstring_rows,
    interlock_rows,
    knowledge_rows,
    pou_rows,
    state_machine_rows,
)

__all__ = [
    "docstring_rows",
    "interlock_rows",
    "knowledge_rows",
    "pou_rows",
    "render_ascii",
    "render_mermaid",
    "state_machine_rows",
]
