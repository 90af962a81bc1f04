#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Command-line interface for SourceTrace.

This module provides the main CLI entry point and all subcommands for
contamination source traceback on layered supply networks.
"""

import sys
import math
import click
from pathlib import Path
from typing import List
import yaml

from .version import __version__
from .config.schema import (
    TEMPLATES,
    load_config,
    merge_overrides,
    save_config_template,
    validate_config,
)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, verbose, quiet):
    """
    SourceTrace: Contamination Source Traceback for Supply Networks

    Ranks the farms of a layered supply network by their posterior probability
    of having caused a set of contamination reports, using transport-time and
    product-volume evidence.
    """
    # Ensure context object exists
    ctx.ensure_object(dict)
    ctx.obj['VERBOSE'] = verbose
    ctx.obj['QUIET'] = quiet


def _load_run_config(ctx, config_file, overrides):
    """Load config, apply CLI overrides and verbosity, and validate."""
    config = load_config(Path(config_file) if config_file else None)
    config = merge_overrides(config, overrides)
    if ctx.obj.get('VERBOSE'):
        config['output']['logging']['level'] = 'DEBUG'
    elif ctx.obj.get('QUIET'):
        config['output']['logging']['level'] = 'ERROR'

    errors = validate_config(config)
    if errors:
        click.echo("✗ Configuration validation failed:", err=True)
        for error in errors:
            click.echo(f"  • {error}", err=True)
        sys.exit(1)
    return config


def _parse_method_list(text: str) -> List[int]:
    """Parse '4-11' or '1,3,5-7' into a list of method ids."""
    ids: List[int] = []
    for part in text.split(','):
        part = part.strip()
        if not part:
            continue
        if '-' in part:
            lo, hi = part.split('-', 1)
            ids.extend(range(int(lo), int(hi) + 1))
        else:
            ids.append(int(part))
    return ids


def _format_t(value: float) -> str:
    return "n/a" if math.isnan(value) else f"{value:.3f}"


# ============================================================================
# Configuration Management Commands
# ============================================================================

@main.group()
def config():
    """Configuration management commands."""
    pass


@config.command('init')
@click.option('--output', '-o', type=click.Path(), default='sourcetrace_config.yaml',
              help='Output configuration file path')
@click.option('--template', '-t', type=click.Choice(TEMPLATES),
              default='default', help='Configuration template type')
def config_init(output, template):
    """Generate a template configuration file with all available parameters."""
    click.echo(f"Generating {template} configuration template: {output}")

    try:
        save_config_template(Path(output), template=template)
        click.echo(f"✓ Configuration file created: {output}")
        click.echo("\nEdit this file to customize the traceback method and time model.")
    except Exception as e:
        click.echo(f"✗ Error creating configuration: {e}", err=True)
        sys.exit(1)


@config.command('validate')
@click.argument('config_file', type=click.Path(exists=True))
def config_validate(config_file):
    """Validate a configuration file."""
    click.echo(f"Validating configuration file: {config_file}")

    try:
        config = load_config(Path(config_file))
        errors = validate_config(config)
    except Exception as e:
        click.echo(f"✗ Error validating configuration: {e}", err=True)
        sys.exit(1)

    if errors:
        click.echo("\n✗ Configuration validation failed:")
        for error in errors:
            click.echo(f"  • {error}", err=True)
        sys.exit(1)

    click.echo("✓ Configuration is valid")
    click.echo("\nKey Settings:")
    click.echo(f"  Method: {config['traceback']['method']}")
    click.echo(f"  Feasibility fraction: {config['traceback']['feasibility_fraction']}")
    click.echo(f"  Transport deviation: {config['traceback']['transport_dev_frac']}")


@config.command('show')
@click.argument('config_file', type=click.Path(exists=True))
@click.option('--format', '-f', type=click.Choice(['yaml', 'summary']), default='summary',
              help='Output format')
def config_show(config_file, format):
    """Display configuration settings."""
    try:
        config = load_config(Path(config_file))
    except Exception as e:
        click.echo(f"✗ Error reading configuration: {e}", err=True)
        sys.exit(1)

    if format == 'yaml':
        click.echo(yaml.dump(config, default_flow_style=False, sort_keys=False))
        return

    click.echo(f"Configuration from: {config_file}")
    click.echo("=" * 60)

    traceback_cfg = config['traceback']
    click.echo("\nTraceback:")
    click.echo(f"  Method: {traceback_cfg['method']}")
    click.echo(f"  Feasibility fraction: {traceback_cfg['feasibility_fraction']}")
    click.echo(f"  Transport deviation: {traceback_cfg['transport_dev_frac']}")
    click.echo(f"  Workers: {traceback_cfg['num_workers']}")

    model = config['model']
    click.echo("\nTime model:")
    click.echo(f"  Transport speed: {model['transport_speed']} per day")
    click.echo(f"  Delay: mean {model['delay_mean']}, variance {model['delay_variance']}")
    click.echo(f"  Pseudo-inverse fallback: {model['pseudo_inverse_fallback']}")

    exact = config['exact']
    click.echo("\nExact enumeration:")
    click.echo(f"  Max trajectories: {exact['max_trajectories']:,} ({exact['on_overflow']} on overflow)")

    click.echo("\nOutput:")
    click.echo(f"  Format: {config['output']['format']}")
    click.echo(f"  Log: {config['output']['logging']['log_file']} ({config['output']['logging']['level']})")


# ============================================================================
# Traceback Commands
# ============================================================================

@main.command()
def methods():
    """List the available traceback methods."""
    from .traceback_core import METHOD_SPECS

    click.echo(f"{'ID':>3}  {'Name':<24} Description")
    click.echo("─" * 72)
    for method, spec in METHOD_SPECS.items():
        click.echo(f"{int(method):>3}  {method.name.lower():<24} {spec.description}")


@main.command()
@click.argument('scenario_file', type=click.Path(exists=True))
@click.option('--method', '-m', default=None,
              help='Method id (1-11) or name (default from config)')
@click.option('--config', '-c', 'config_file', type=click.Path(exists=True),
              help='Configuration file (YAML)')
@click.option('--fraction', '-p', type=float, default=None,
              help='Feasibility fraction P')
@click.option('--dev-frac', type=float, default=None,
              help='Transit-time standard deviation as a fraction of its mean')
@click.option('--workers', '-t', type=int, default=None,
              help='Threads for per-source evaluation')
@click.option('--output', '-o', type=click.Path(),
              help='Write the result to this file')
@click.option('--top', type=int, default=5, show_default=True,
              help='Number of ranked sources to print')
@click.pass_context
def trace(ctx, scenario_file, method, config_file, fraction, dev_frac, workers, output, top):
    """Rank candidate source farms for a contamination scenario."""
    from .io_utils import load_scenario
    from .traceback_core import TracebackError, parse_method
    from .utils.pipeline import TracebackPipeline

    if method is not None:
        try:
            method = int(parse_method(method))
        except ValueError as e:
            click.echo(f"✗ {e}", err=True)
            sys.exit(1)

    config = _load_run_config(ctx, config_file, {
        'traceback.method': method,
        'traceback.feasibility_fraction': fraction,
        'traceback.transport_dev_frac': dev_frac,
        'traceback.num_workers': workers,
    })

    def progress(source, done, total):
        if ctx.obj.get('VERBOSE'):
            click.echo(f"  source {source}: {done:,}/{total:,} trajectories", err=True)

    try:
        method = parse_method(config['traceback']['method'])
        scenario = load_scenario(scenario_file)
        output_dir = Path(output).parent if output else None
        pipeline = TracebackPipeline(config, output_dir=output_dir)
        result = pipeline.run(scenario, method=method, output_path=output,
                              progress_callback=progress)
    except (TracebackError, ValueError, FileNotFoundError) as e:
        click.echo(f"✗ Traceback failed: {e}", err=True)
        sys.exit(1)

    if ctx.obj.get('QUIET'):
        return

    click.echo(f"{'='*60}")
    click.echo(f"SourceTrace v{__version__}: method {int(method)} ({method.name.lower()})")
    click.echo(f"{'='*60}")
    click.echo(f"Feasible sources: {len(result.feasible_sources)} of {scenario.network.num_farms} farms")
    click.echo(f"\n{'Rank':>4}  {'Farm':>6}  {'Posterior':>10}  {'t_s*':>10}")
    for rank, (source, p) in enumerate(result.ranked_sources(top), 1):
        click.echo(f"{rank:>4}  {source:>6}  {p:>10.4f}  {_format_t(result.t_s_stars[source]):>10}")
    if result.failures:
        click.echo(f"\n⚠ {len(result.failures)} source(s) could not be evaluated:")
        for source, error in result.failures.items():
            click.echo(f"  • {source}: {error}")
    if output:
        click.echo(f"\n✓ Result written to {output}")


@main.command()
@click.argument('scenario_file', type=click.Path(exists=True))
@click.option('--methods', '-m', 'method_list', default='4-11', show_default=True,
              help="Method ids, e.g. '4-11' or '1,3,7'")
@click.option('--config', '-c', 'config_file', type=click.Path(exists=True),
              help='Configuration file (YAML)')
@click.option('--fraction', '-p', type=float, default=None,
              help='Feasibility fraction P')
@click.option('--dev-frac', type=float, default=None,
              help='Transit-time standard deviation as a fraction of its mean')
@click.option('--output', '-o', type=click.Path(),
              help='Write all results to this file')
@click.option('--summary', '-s', type=click.Path(),
              help='Write the method summary table (TSV)')
@click.pass_context
def compare(ctx, scenario_file, method_list, config_file, fraction, dev_frac, output, summary):
    """Run several traceback methods on one scenario."""
    from .io_utils import load_scenario
    from .traceback_core import parse_method
    from .utils.pipeline import TracebackPipeline

    config = _load_run_config(ctx, config_file, {
        'traceback.feasibility_fraction': fraction,
        'traceback.transport_dev_frac': dev_frac,
    })

    try:
        method_ids = [parse_method(m) for m in _parse_method_list(method_list)]
        scenario = load_scenario(scenario_file)
        output_dir = Path(output).parent if output else None
        pipeline = TracebackPipeline(config, output_dir=output_dir)
        comparison = pipeline.compare(scenario, method_ids, output_path=output,
                                      summary_path=summary)
    except (ValueError, FileNotFoundError) as e:
        click.echo(f"✗ Comparison failed: {e}", err=True)
        sys.exit(1)

    if ctx.obj.get('QUIET'):
        return

    click.echo(f"\n{'ID':>3}  {'Name':<24} {'Best farm':>9}  {'Posterior':>10}  {'t_s*(best)':>10}")
    click.echo("─" * 64)
    for row in comparison.rows:
        name = row.method.name.lower()
        if row.result is None:
            click.echo(f"{int(row.method):>3}  {name:<24} ✗ {row.error}")
            continue
        best = row.result.most_likely_source()
        click.echo(
            f"{int(row.method):>3}  {name:<24} {best:>9}  {row.result.pmf[best]:>10.4f}  "
            f"{_format_t(row.result.t_s_stars[best]):>10}"
        )
    if output:
        click.echo(f"\n✓ Results written to {output}")
    if summary:
        click.echo(f"✓ Summary written to {summary}")


@main.command()
@click.argument('scenario_file', type=click.Path(exists=True))
@click.option('--config', '-c', 'config_file', type=click.Path(exists=True),
              help='Configuration file (YAML)')
@click.option('--fraction', '-p', type=float, default=None,
              help='Feasibility fraction P')
@click.pass_context
def inspect(ctx, scenario_file, config_file, fraction):
    """Show feasible sources and trajectory-space sizes for a scenario."""
    from .io_utils import load_scenario
    from .utils.pipeline import TracebackPipeline

    config = _load_run_config(ctx, config_file, {'traceback.feasibility_fraction': fraction})
    config['output']['logging']['log_file'] = None

    try:
        scenario = load_scenario(scenario_file)
        summary = TracebackPipeline(config).inspect(scenario)
    except (ValueError, FileNotFoundError) as e:
        click.echo(f"✗ Inspection failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"Scenario: {scenario_file}")
    click.echo("=" * 60)
    click.echo(f"  Nodes: {summary['num_nodes']} ({summary['num_farms']} farms)")
    click.echo(f"  Edges: {summary['num_edges']}")
    click.echo(f"  Reports: {summary['num_reports']} at {len(summary['contaminated_nodes'])} node(s)")
    click.echo(f"  Feasibility fraction: {summary['feasibility_fraction']}")
    click.echo(f"\nFeasible sources: {len(summary['feasible_sources'])}")
    for source in summary['feasible_sources']:
        count = summary['trajectory_counts'][source]
        flag = "  ⚠ over limit" if source in summary['over_limit'] else ""
        click.echo(
            f"  • farm {source}: reaches {summary['reach_counts'][source]} node(s), "
            f"{count:,} trajectories{flag}"
        )


# ============================================================================
# Utility Commands
# ============================================================================

@main.command()
def version():
    """Show version information."""
    import numpy
    import scipy

    click.echo(f"SourceTrace v{__version__}")
    click.echo("\nDependencies:")
    click.echo(f"  NumPy: {numpy.__version__}")
    click.echo(f"  SciPy: {scipy.__version__}")
    click.echo(f"  PyYAML: {yaml.__version__}")


if __name__ == '__main__':
    sys.exit(main())
