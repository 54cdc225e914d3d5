#!/usr/bin/env python3
"""
inkbridge - Markdown dialect ⇄ HTML transcoding and sanitization

Batch converter between the inkbridge Markdown dialect and the sanitized
canonical HTML the document editor stores.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Directions:
    md2html   *.md   → sanitized *.html   (markdown_to_html)
    html2md   *.html → *.md               (html_to_markdown)
    export    *.html → *.md with privacy redaction, TOC handling and
              optional front matter       (export_to_markdown)

Usage:
    inkbridge inputdir/ outputdir/ [--inputFile doc.md] [--direction md2html]

Examples:
    # Render every Markdown file in a directory
    inkbridge docs/ site/

    # Export one stored document for an auditor, masks redacted
    inkbridge store/ out/ --inputFile policy.html --direction export \\
        --frontMatterFile meta.yaml

    # Verbose output
    inkbridge docs/ site/ -vv
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter
from typing import Callable, Dict

import yaml
from chris_plugin import chris_plugin

from .lib import (
    __version__,
    export_to_markdown,
    html_to_markdown,
    markdown_to_html,
    LOG,
    state_connectToLogger,
    state_disconnectFromLogger,
)
from .models import ExportOptions, ProgramState, pipeline


DISPLAY_TITLE = r"""
   _       _    _          _     _
  (_)_ __ | | _| |__  _ __(_) __| | __ _  ___
  | | '_ \| |/ / '_ \| '__| |/ _` |/ _` |/ _ \
  | | | | |   <| |_) | |  | | (_| | (_| |  __/
  |_|_| |_|_|\_\_.__/|_|  |_|\__,_|\__, |\___|
                                   |___/
  Markdown dialect <-> HTML
"""

# Input glob and output suffix per direction
DIRECTIONS: Dict[str, Dict[str, str]] = {
    "md2html": {"glob": "*.md", "suffix": ".html"},
    "html2md": {"glob": "*.html", "suffix": ".md"},
    "export": {"glob": "*.html", "suffix": ".md"},
}

# Define CLI arguments
parser = ArgumentParser(
    description="inkbridge - convert between a Markdown dialect and sanitized HTML",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--inputFile",
    default="",
    type=str,
    help="Single input file (relative to inputdir). Defaults to every matching file in inputdir",
)

parser.add_argument(
    "--direction",
    default="md2html",
    choices=sorted(DIRECTIONS),
    help="Conversion direction",
)

parser.add_argument(
    "--revealPrivacy",
    default=False,
    action="store_true",
    help="export: keep privacy-masked content instead of its placeholder",
)

parser.add_argument(
    "--includeToc",
    default=False,
    action="store_true",
    help="export: keep [[toc]] markers",
)

parser.add_argument(
    "--frontMatterFile",
    default=None,
    type=str,
    help="export: YAML mapping (relative to inputdir) written as front matter",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and resolve all file paths.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - sourceFiles: Input paths to convert
            - frontMatter: Mapping from --frontMatterFile (export only)
            - envOK: True if environment is valid

    Exits:
        1 if the input file, the input directory or the front matter file
        is missing or unusable
    """

    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    if state.inputdir is None or not state.inputdir.is_dir():
        print(f"Error: Input directory not found: {state.inputdir}", file=sys.stderr)
        sys.exit(1)

    if state.inputFile:
        input_file = state.inputdir / state.inputFile
        if not input_file.exists():
            print(f"Error: Input file not found: {input_file}", file=sys.stderr)
            state.envOK = False
            sys.exit(1)
        state.sourceFiles = [input_file]
    else:
        pattern = DIRECTIONS[state.direction]["glob"]
        state.sourceFiles = sorted(state.inputdir.glob(pattern))
        if not state.sourceFiles:
            print(f"Error: No {pattern} files in {state.inputdir}", file=sys.stderr)
            state.envOK = False
            sys.exit(1)
    LOG(f"Input files: {', '.join(p.name for p in state.sourceFiles)}", level=2)

    if state.frontMatterFile:
        meta_file = state.inputdir / state.frontMatterFile
        try:
            meta = yaml.safe_load(meta_file.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            print(f"Error reading front matter file {meta_file}: {e}", file=sys.stderr)
            sys.exit(1)
        if meta is None:
            meta = {}
        if not isinstance(meta, dict):
            print(f"Error: Front matter file {meta_file} must contain a mapping", file=sys.stderr)
            sys.exit(1)
        state.frontMatter = meta
        LOG(f"Front matter keys: {', '.join(map(str, meta))}", level=2)

    state.outputdir.mkdir(parents=True, exist_ok=True)
    LOG(f"Output directory: {state.outputdir}", level=2)

    state.envOK = True
    return state


def source_read(inputstate: ProgramState) -> ProgramState:
    """
    Read every source file.

    Returns:
        ProgramState with added field:
            - sources: Source text keyed by input filename

    Exits:
        1 if a file cannot be read
    """

    state = inputstate.copy()

    LOG("Reading source files...", level=1)

    sources: Dict[str, str] = {}
    for path in state.sourceFiles:
        try:
            sources[path.name] = path.read_text(encoding="utf-8")
        except Exception as e:
            print(f"Error reading input file {path}: {e}", file=sys.stderr)
            sys.exit(1)
        LOG(f"Read {len(sources[path.name])} characters from {path.name}", level=2)

    state.sources = sources
    return state


def converter_get(state: ProgramState) -> Callable[[str], str]:
    """Conversion function for the state's direction"""
    if state.direction == "md2html":
        return markdown_to_html
    if state.direction == "html2md":
        return html_to_markdown

    options = ExportOptions(
        reveal_privacy=state.revealPrivacy,
        include_toc=state.includeToc,
        front_matter=state.frontMatter,
    )
    return lambda html: export_to_markdown(html, options)


def content_convert(inputstate: ProgramState) -> ProgramState:
    """
    Convert every source in the chosen direction.

    Returns:
        ProgramState with added field:
            - converted: Output text keyed by output filename
    """

    state = inputstate.copy()

    LOG(f"Converting ({state.direction})...", level=1)

    convert = converter_get(state)
    suffix = DIRECTIONS[state.direction]["suffix"]

    converted: Dict[str, str] = {}
    for name, source in state.sources.items():
        output_name = Path(name).stem + suffix
        converted[output_name] = convert(source)
        LOG(f"{name} → {output_name}", level=2)

    state.converted = converted
    return state


def results_write(inputstate: ProgramState) -> ProgramState:
    """
    Write converted files to the output directory.

    Returns:
        ProgramState with added field:
            - convertResult: Dict containing:
                - status: bool
                - output_files: List[str]
                - file_count: int

    Exits:
        1 if a file cannot be written
    """

    state = inputstate.copy()

    output_files = []
    for name, content in state.converted.items():
        output_file = state.outputdir / name
        try:
            output_file.write_text(content, encoding="utf-8")
        except Exception as e:
            print(f"Error writing {output_file}: {e}", file=sys.stderr)
            if state.verbosity >= 3:
                import traceback

                traceback.print_exc()
            sys.exit(1)
        LOG(f"Wrote {output_file}", level=2)
        output_files.append(str(output_file))

    state.convertResult = {
        "status": True,
        "output_files": output_files,
        "file_count": len(output_files),
    }
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display conversion results.

    Returns:
        ProgramState unchanged (terminal pipeline stage)

    Exits:
        1 if convertResult is None
    """
    state: ProgramState = inputstate.copy()
    if not state.convertResult:
        print("Error: Conversion failed", file=sys.stderr)
        sys.exit(1)

    LOG("\n✓ Conversion successful!", level=1)
    LOG(f"  Direction: {state.direction}", level=1)
    LOG(f"  Files: {state.convertResult['file_count']}", level=1)
    for output_file in state.convertResult["output_files"]:
        LOG(f"  Output: {output_file}", level=1)
    return state


@chris_plugin(
    parser=parser,
    title="inkbridge - Markdown dialect / HTML converter",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - convert documents between the dialect and HTML.

    Orchestrates the conversion pipeline:
        1. env_check: Validate paths, load front matter
        2. source_read: Read input files
        3. content_convert: Convert each source
        4. results_write: Write outputs
        5. results_report: Display results to user

    Args:
        options: CLI arguments from argparse
        inputdir: Directory containing source files
        outputdir: Directory where converted files will be written

    Note:
        This function is wrapped by @chris_plugin which handles CLI
        argument parsing and invokes this function with parsed values.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)
    try:
        pipeline(state, env_check, source_read, content_convert, results_write, results_report)
    finally:
        state_disconnectFromLogger()


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
