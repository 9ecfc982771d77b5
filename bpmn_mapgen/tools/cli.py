"""
BPMN Mapgen CLI Interface

Command-line tool for compiling process descriptions (JSON) into BPMN 2.0
XML, validating BPMN files and listing the built-in process archetypes.
"""

import dataclasses
import json
import logging
import sys
from typing import Any, Dict, Optional

import click

from bpmn_mapgen.compiler import BPMNCompiler, CompilationResult, CompilerConfig
from bpmn_mapgen.core.errors import BPMNCompilerError
from bpmn_mapgen.core.observability import LogLevel, ObservabilityManager
from bpmn_mapgen.models.layout import LayoutStrategy
from bpmn_mapgen.stages.archetypes import DEFAULT_ARCHETYPES
from bpmn_mapgen.tools.validation import BPMNXMLValidator

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """BPMN Mapgen CLI - Compile process descriptions to BPMN diagrams."""
    pass


@cli.command()
@click.argument("input_file", type=click.File("r", encoding="utf-8"), default="-")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    help="Output file path for generated BPMN XML",
)
@click.option(
    "--layout",
    type=click.Choice([s.value for s in LayoutStrategy]),
    default=None,
    help="Layout strategy (default: auto)",
)
@click.option(
    "--honor-gateways",
    is_flag=True,
    default=False,
    help="Turn gateway steps with listed outcomes into branch points",
)
@click.option(
    "--no-validate",
    is_flag=True,
    default=False,
    help="Skip structural validation of the generated document",
)
@click.option(
    "--json-output",
    is_flag=True,
    help="Output in JSON format (includes metadata)",
)
@click.option(
    "--verbose/--quiet",
    default=False,
    help="Verbose logging output",
)
def compile(
    input_file,
    output: Optional[str],
    layout: Optional[str],
    honor_gateways: bool,
    no_validate: bool,
    json_output: bool,
    verbose: bool,
) -> None:
    """
    Compile a JSON process description into BPMN 2.0 XML.

    \b
    Examples:
        # Compile from file to stdout
        bpmn-mapgen compile process.json

        # Compile from stdin to a file
        cat process.json | bpmn-mapgen compile - -o diagram.bpmn

        # Force the layered layout and honour gateway outcomes
        bpmn-mapgen compile process.json --layout layered --honor-gateways
    """
    config = CompilerConfig.from_env()
    overrides: Dict[str, Any] = {}
    if layout:
        overrides["layout_strategy"] = LayoutStrategy(layout)
    if honor_gateways:
        overrides["honor_gateways"] = True
    if no_validate:
        overrides["validate_output"] = False
    if verbose:
        overrides["log_level"] = LogLevel.DEBUG
    config = dataclasses.replace(config, **overrides)

    _setup_observability(config)

    try:
        description = json.load(input_file)
    except json.JSONDecodeError as e:
        click.echo(f"Error: Input is not valid JSON: {e}", err=True)
        sys.exit(1)

    if not isinstance(description, dict):
        click.echo("Error: Input must be a JSON object", err=True)
        sys.exit(1)

    try:
        result = BPMNCompiler(config).compile_with_artifacts(description)
    except BPMNCompilerError as e:
        logger.debug("Compilation failed", exc_info=True)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if json_output:
        _output_json(result, output)
    else:
        _output_text(result, output)


@cli.command()
@click.argument("bpmn_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def validate(bpmn_file: str, format: str) -> None:
    """
    Validate a BPMN XML file for structural correctness.

    Exits with status 1 when the document has errors.

    \b
    Examples:
        bpmn-mapgen validate diagram.bpmn
        bpmn-mapgen validate diagram.bpmn --format json
    """
    try:
        with open(bpmn_file, "r", encoding="utf-8") as f:
            xml_content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    result = BPMNXMLValidator().validate(xml_content)

    if format == "json":
        payload = {"file": bpmn_file, **result.to_dict()}
        click.echo(json.dumps(payload, indent=2))
    else:
        click.echo(f"File: {bpmn_file}")
        click.echo(f"Valid: {result.is_valid}")
        click.echo(f"Score: {result.overall_score:.0f}")
        for key, value in result.metrics.items():
            click.echo(f"{key.replace('_', ' ').capitalize()}: {value}")
        for issue in result.issues:
            where = f" [{issue.element_id}]" if issue.element_id else ""
            click.echo(f"  {issue.level.value.upper()}: {issue.message}{where}")

    if not result.is_valid:
        sys.exit(1)


@cli.command()
def archetypes() -> None:
    """List the built-in process archetypes in match order."""
    for index, archetype in enumerate(DEFAULT_ARCHETYPES, start=1):
        click.echo(f"{index}. {archetype.name}")
        if archetype.description:
            click.echo(f"   {archetype.description}")


@cli.command()
def info() -> None:
    """Show version and configuration information."""
    from bpmn_mapgen import __version__

    config = CompilerConfig.from_env()
    info_dict = {
        "name": "BPMN Mapgen",
        "version": __version__,
        "description": "Compile structured process descriptions to BPMN 2.0 diagrams",
        "layout_strategies": [s.value for s in LayoutStrategy],
        "archetypes": [a.name for a in DEFAULT_ARCHETYPES],
        "config": {
            "target_namespace": config.target_namespace,
            "exporter": config.exporter,
            "layout_strategy": config.layout_strategy.value,
            "honor_gateways": config.honor_gateways,
            "validate_output": config.validate_output,
            "include_documentation": config.include_documentation,
        },
    }

    click.echo(json.dumps(info_dict, indent=2))


# ==================
# Helper Functions
# ==================


def _setup_observability(config: CompilerConfig) -> None:
    """(Re)initialize logging for this invocation."""
    ObservabilityManager.reset()
    obs_config = config.observability_config()
    obs_config.service_name = "bpmn-mapgen-cli"
    ObservabilityManager.initialize(obs_config)


def _output_text(result: CompilationResult, output_file: Optional[str]) -> None:
    """Output results as plain text."""
    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(result.xml)
        click.echo(f"BPMN XML written to: {output_file}", err=True)
    else:
        click.echo(result.xml, nl=False)


def _output_json(result: CompilationResult, output_file: Optional[str]) -> None:
    """Output results as JSON."""
    output = {
        "status": "complete",
        "process_id": result.process_id,
        "archetype": result.archetype,
        "layout_strategy": result.layout.strategy.value,
        "nodes": len(result.graph.nodes),
        "edges": len(result.graph.edges),
        "xml": result.xml,
    }
    if result.validation is not None:
        output["validation"] = result.validation.to_dict()

    output_json = json.dumps(output, indent=2)

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(output_json)
        click.echo(f"JSON output written to: {output_file}", err=True)
    else:
        click.echo(output_json)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
