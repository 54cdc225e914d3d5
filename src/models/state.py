"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing conversion stages.
"""

import dataclasses
from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, List, Dict, Callable
from dataclasses import dataclass, field


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the conversion pipeline (state bus pattern).

    This dataclass carries all program state through the functional pipeline,
    with each stage adding new fields as the conversion progresses.

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, inputFile, direction,
                   revealPrivacy, includeToc, frontMatterFile
        - env_check: sourceFiles, frontMatter, envOK
        - source_read: sources
        - content_convert: converted
        - results_write: convertResult
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Directory containing source files
        outputdir: Directory for converted files
        verbosity: Logging verbosity level (1-3)
        inputFile: Single input filename (relative to inputdir); empty means
                   every matching file in inputdir
        direction: 'md2html', 'html2md' or 'export'
        revealPrivacy: Keep masked content when exporting
        includeToc: Keep [[toc]] markers when exporting
        frontMatterFile: YAML file whose mapping is prepended on export
        envOK: Environment validation passed
        sourceFiles: Resolved input paths
        frontMatter: Mapping loaded from frontMatterFile
        sources: Source text per input filename
        converted: Converted text per output filename
        convertResult: Conversion results (output_files, file_count, status)
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    inputFile: str = field(default="")
    direction: str = field(default="md2html")
    revealPrivacy: bool = field(default=False)
    includeToc: bool = field(default=False)
    frontMatterFile: Optional[str] = field(default=None)

    # Pipeline state
    envOK: bool = field(default=False)
    sourceFiles: List[Path] = field(default_factory=list)
    frontMatter: Dict[str, Any] = field(default_factory=dict)
    sources: Dict[str, str] = field(default_factory=dict)
    converted: Dict[str, str] = field(default_factory=dict)
    convertResult: Optional[Dict] = field(default=None)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        CLI options that are not ProgramState fields are ignored.

        Args:
            options: Parsed CLI arguments (inputFile, direction, etc.)
            inputdir: Directory containing source files
            outputdir: Directory for conversion output

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        valid_fields = {f.name for f in dataclasses.fields(cls)}
        filtered_options = {k: v for k, v in vars(options).items() if k in valid_fields}
        return cls(**{**filtered_options, "inputdir": inputdir, "outputdir": outputdir})

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            source_read,
            content_convert,
            results_write,
            results_report
        )

    This is equivalent to:
        results_report(results_write(content_convert(source_read(env_check(initial_state)))))
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
