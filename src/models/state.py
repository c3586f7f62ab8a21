"""
Program state for the page rendering pipeline

ProgramState travels through the CLI stages; each stage returns a copy
with its own fields filled in. RenderResult is what pages_render leaves
behind for the report.
"""

import dataclasses
from argparse import Namespace
from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path
from typing import Callable, Dict, List, Optional, Type, TypeVar


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class RenderResult:
    """
    Outcome of rendering every selected page

    Attributes:
        pages: Written HTML files, in render order
        failures: Page file -> samples on that page rendered as error blocks
        status: False if a page could not be rendered at all
    """
    pages: List[Path] = field(default_factory=list)
    failures: Dict[Path, int] = field(default_factory=dict)
    status: bool = True

    @property
    def failure_count(self) -> int:
        return sum(self.failures.values())


@dataclass
class ProgramState:
    """
    State bus for the CLI pipeline

    Stage by stage:
        - from the command line: inputdir, outputdir, verbosity, inputFile, strict
        - env_check: sourceFiles, envOK
        - sources_read: sourceTexts
        - pages_render: renderResult
        - results_report: reads renderResult only

    The verbosity field is what LOG() consults once the state is connected
    with state_connectToLogger().
    """

    inputdir: Optional[Path] = None
    outputdir: Optional[Path] = None
    verbosity: int = 1
    inputFile: str = ""
    strict: bool = False

    envOK: bool = False
    sourceFiles: List[Path] = field(default_factory=list)
    sourceTexts: Dict[Path, str] = field(default_factory=dict)
    renderResult: Optional[RenderResult] = None

    @classmethod
    def state_createFromNamespace(
        cls: Type[PS], options: Namespace, inputdir: Path, outputdir: Path
    ) -> PS:
        """
        Build the initial state from parsed CLI options

        Options without a matching field (chris_plugin adds its own) are
        ignored; the directories always come from the plugin wrapper.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        values = {name: value for name, value in vars(options).items() if name in known}
        values.update(inputdir=inputdir, outputdir=outputdir)
        return cls(**values)

    def copy(self: PS) -> PS:
        """Shallow copy for the next stage to fill in"""
        return dataclasses.replace(self)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Run stages left to right, each one fed the state the previous returned

    Example:
        pipeline(state, env_check, sources_read, pages_render, results_report)
    """
    return reduce(lambda state, stage: stage(state), stages, initial_state)
