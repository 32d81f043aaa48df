"""Project analysis: per-file fan-out, single-reducer fan-in.

Each file runs through the parser and every extractor independently, so
files are analysed concurrently.  All cross-file work (concatenation,
summaries, call graph, scoring, cache writes) happens in one reducer
after every file has finished.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TypeVar

from plcmigrate.config import AnalysisConfig
from plcmigrate.extract import (
    extract_blocks,
    extract_docstrings,
    extract_safety,
    extract_state_machines,
    extract_timers_counters,
    extract_tribal_knowledge,
    extract_variables,
    summarize_docstrings,
    summarize_knowledge,
    summarize_safety,
    summarize_state_machines,
    summarize_timers_counters,
    summarize_variables,
)
from plcmigrate.model.ai_context import AIContext, TargetLanguage
from plcmigrate.model.analysis import (
    FileAnalysis,
    ProjectAnalysis,
    ProjectStatus,
    SourceFile,
    StageResult,
)
from plcmigrate.model.docs import DocstringResult
from plcmigrate.model.extraction import (
    BlockResult,
    TimerCounterResult,
    VariableResult,
)
from plcmigrate.model.knowledge import KnowledgeResult
from plcmigrate.model.parsing import ParseIssue, ParseMetadata, ParseResult
from plcmigrate.model.pou import POU
from plcmigrate.model.safety import SafetyResult
from plcmigrate.model.state_machine import StateMachineResult
from plcmigrate.parse import parse_source

from ._ai_context import build_ai_context
from ._cache import ParseCache, project_key
from ._callgraph import build_call_graph
from ._scorer import MigrationScorer
from ._sources import load_sources

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run_stage(
    stage: str, file_path: str, fn: Callable[[], T], default: T,
) -> tuple[T, StageResult]:
    """Run one stage, turning an exception into a failed :class:`StageResult`."""
    try:
        return fn(), StageResult(stage=stage)
    except Exception as exc:
        logger.warning("%s: %s stage failed: %s", file_path, stage, exc, exc_info=True)
        return default, StageResult(stage=stage, ok=False, error=f"{type(exc).__name__}: {exc}")


def _line_count(content: str) -> int:
    return content.count("\n") + 1 if content else 0


class ProjectAnalyzer:
    """Runs the full pipeline over a set of source files.

    Parameters
    ----------
    config
        Analysis settings; defaults to :class:`AnalysisConfig()`.
    cache
        Optional parse cache.  On a hit the parser is skipped and each
        file's POUs come from the cache; after a miss the reducer stores
        the freshly parsed POUs.
    """

    def __init__(self, config: AnalysisConfig | None = None, cache: ParseCache | None = None) -> None:
        self.config = config or AnalysisConfig()
        self.cache = cache
        self.scorer = MigrationScorer(self.config.scoring.weights)

    # -- per file -----------------------------------------------------------

    def analyze_file(self, file: SourceFile, cached_pous: list[POU] | None = None) -> FileAnalysis:
        cfg = self.config
        content, path = file.content, file.path

        if cached_pous is not None:
            parse = ParseResult(
                file=path,
                pous=cached_pous,
                metadata=ParseMetadata(total_lines=_line_count(content)),
            )
            parse_stage = StageResult(stage="parse")
        else:
            parse, parse_stage = _run_stage(
                "parse", path,
                lambda: parse_source(
                    content, path,
                    extract_docstrings=cfg.parser.extract_docstrings,
                    preserve_comments=cfg.parser.preserve_comments,
                    docstring_tolerance=cfg.parser.docstring_line_tolerance,
                ),
                ParseResult(file=path, success=False),
            )
            if not parse_stage.ok:
                parse = parse.model_copy(update={"errors": [ParseIssue(
                    code="INTERNAL_ERROR", message=parse_stage.error or "",
                    line=1, column=1, recoverable=False,
                )]})

        hint = parse.pous[0].name if parse.pous else file.stem
        sm = cfg.state_machines
        stages = [parse_stage]

        docstrings, st = _run_stage(
            "docstrings", path, lambda: extract_docstrings(content, path), DocstringResult(),
        )
        stages.append(st)
        machines, st = _run_stage(
            "state_machines", path,
            lambda: extract_state_machines(
                content, path, hint,
                min_states=sm.min_states,
                generate_diagrams=sm.generate_diagrams,
                include_transitions=sm.include_transitions,
                fallback_window=sm.fallback_window_chars,
                max_actions=sm.max_actions,
            ),
            StateMachineResult(),
        )
        stages.append(st)
        safety, st = _run_stage(
            "safety", path,
            lambda: extract_safety(
                content, path,
                cfg.safety.extra_bypass_patterns, cfg.safety.extra_role_patterns,
            ),
            SafetyResult(),
        )
        stages.append(st)
        knowledge, st = _run_stage(
            "tribal_knowledge", path,
            lambda: extract_tribal_knowledge(
                content, path,
                include_context=cfg.knowledge.include_context,
                context_lines=cfg.knowledge.context_lines,
            ),
            KnowledgeResult(),
        )
        stages.append(st)
        variables, st = _run_stage(
            "variables", path, lambda: extract_variables(content, path), VariableResult(),
        )
        stages.append(st)
        blocks, st = _run_stage(
            "blocks", path, lambda: extract_blocks(content, path), BlockResult(),
        )
        stages.append(st)
        timers, st = _run_stage(
            "timers", path, lambda: extract_timers_counters(content, path), TimerCounterResult(),
        )
        stages.append(st)

        logger.debug(
            "%s: %d POUs, %d state machines, %d bypasses",
            path, len(parse.pous), len(machines.state_machines), len(safety.bypasses),
        )
        return FileAnalysis(
            file=path,
            parse=parse,
            docstrings=docstrings,
            state_machines=machines,
            safety=safety,
            tribal_knowledge=knowledge,
            variables=variables,
            blocks=blocks,
            timers=timers,
            stages=stages,
        )

    # -- project ------------------------------------------------------------

    def analyze(self, files: list[SourceFile], key: str | None = None) -> ProjectAnalysis:
        """Analyse *files* concurrently and reduce them into one project view.

        *key* identifies the project in the cache; it defaults to a digest
        of the files' paths and contents.
        """
        if self.cache is not None and key is None:
            key = project_key(files)
        cached = self.cache.get(key) if self.cache is not None else None
        if cached is not None:
            logger.debug("Parse cache hit for %s", key)

        def run(file: SourceFile) -> FileAnalysis:
            pous = None
            if cached is not None:
                pous = [p for p in cached if p.location.file == file.path]
            return self.analyze_file(file, pous)

        with ThreadPoolExecutor(max_workers=self.config.analyzer.max_workers) as pool:
            results = list(pool.map(run, files))

        return self._reduce(files, results, key, cached is None)

    def analyze_directory(self, root: str | Path) -> ProjectAnalysis:
        return self.analyze(load_sources(root, self.config.analyzer.extensions))

    def ai_context(
        self,
        project: ProjectAnalysis,
        target: TargetLanguage = TargetLanguage.PYTHON,
        project_name: str = "Unknown Project",
    ) -> AIContext:
        """Translation context for an analysed *project*.

        The vendor is the first one detected in any file, else ``generic-st``.
        """
        vendors = [
            f.parse.metadata.vendor for f in project.files
            if f.parse.metadata.vendor != "generic-st"
        ]
        return build_ai_context(
            project.pous, project.docstrings, project.state_machines, project.safety,
            project.tribal_knowledge, target,
            project_name=project_name,
            vendor=vendors[0] if vendors else "generic-st",
        )

    def _reduce(
        self,
        files: list[SourceFile],
        results: list[FileAnalysis],
        key: str | None,
        store: bool,
    ) -> ProjectAnalysis:
        pous = [p for r in results for p in r.parse.pous]
        if self.cache is not None and key is not None and store:
            self.cache.put(key, pous)

        doc_list = [d for r in results for d in r.docstrings.docstrings]
        machine_list = [m for r in results for m in r.state_machines.state_machines]
        interlocks = [i for r in results for i in r.safety.interlocks]
        bypasses = [b for r in results for b in r.safety.bypasses]
        warnings = [w for r in results for w in r.safety.critical_warnings]
        items = [i for r in results for i in r.tribal_knowledge.items]
        var_list = [v for r in results for v in r.variables.variables]
        timers = [t for r in results for t in r.timers.timers]
        counters = [c for r in results for c in r.timers.counters]

        docstrings = DocstringResult(docstrings=doc_list, summary=summarize_docstrings(doc_list))
        machines = StateMachineResult(
            state_machines=machine_list, summary=summarize_state_machines(machine_list),
        )
        safety = SafetyResult(
            interlocks=interlocks,
            bypasses=bypasses,
            critical_warnings=warnings,
            summary=summarize_safety(interlocks, bypasses, warnings),
        )
        call_graph = build_call_graph(pous, {f.path: f.content for f in files})
        migration = self.scorer.score(pous, docstrings, machines, safety, call_graph)

        by_ext: dict[str, int] = {}
        for file in files:
            by_ext[file.extension] = by_ext.get(file.extension, 0) + 1
        status = ProjectStatus(
            total_files=len(files),
            files_by_extension=by_ext,
            total_lines=sum(_line_count(f.content) for f in files),
            pou_count=len(pous),
            state_machine_count=len(machine_list),
            interlock_count=len(interlocks),
            bypass_count=len(bypasses),
            tribal_knowledge_count=len(items),
            docstring_count=len(doc_list),
            health_score=round(min(len(doc_list) / len(pous), 1) * 100) if pous else 0,
        )

        failed = sum(len(r.issues) for r in results)
        logger.info(
            "Analysed %d files: %d POUs, %d state machines, %d bypasses, %d failed stages",
            len(files), len(pous), len(machine_list), len(bypasses), failed,
        )
        return ProjectAnalysis(
            files=results,
            pous=pous,
            docstrings=docstrings,
            state_machines=machines,
            safety=safety,
            tribal_knowledge=KnowledgeResult(items=items, summary=summarize_knowledge(items)),
            variables=VariableResult(
                variables=var_list,
                io_mappings=[m for r in results for m in r.variables.io_mappings],
                summary=summarize_variables(var_list),
            ),
            blocks=BlockResult(
                blocks=[b for r in results for b in r.blocks.blocks],
                errors=[f"{r.file}: {e}" for r in results for e in r.blocks.errors],
            ),
            timers=TimerCounterResult(
                timers=timers,
                counters=counters,
                summary=summarize_timers_counters(timers, counters),
            ),
            call_graph=call_graph,
            migration=migration,
            status=status,
        )
